# MurmurHash3_x64_128, bit-exact with Appleby's reference. Python ints do not wrap,
# so every multiply, add and shift is masked back to 64 bits.
import operator
import struct

MASK64 = 0xFFFFFFFFFFFFFFFF

C1 = 0x87C37B91114253D5
C2 = 0x4CF5AD432745937F

_BLOCK = struct.Struct("<QQ")


def rotl64(x: int, r: int) -> int:
    """Rotate a 64-bit word left by r bits"""
    return ((x << r) | (x >> (64 - r))) & MASK64


def fmix64(k: int) -> int:
    """Finalization mix: force all bits of a 64-bit block to avalanche"""
    k ^= k >> 33
    k = (k * 0xFF51AFD7ED558CCD) & MASK64
    k ^= k >> 33
    k = (k * 0xC4CEB9FE1A85EC53) & MASK64
    k ^= k >> 33
    return k


def _mix_k1(k1: int) -> int:
    k1 = (k1 * C1) & MASK64
    k1 = rotl64(k1, 31)
    return (k1 * C2) & MASK64


def _mix_k2(k2: int) -> int:
    k2 = (k2 * C2) & MASK64
    k2 = rotl64(k2, 33)
    return (k2 * C1) & MASK64


def hash128(data, seed: int = 0) -> tuple[int, int]:
    """Hash a byte sequence to two unsigned 64-bit halves (h1, h2).

    Args:
        data: bytes, bytearray, memoryview or any object exposing the
            buffer protocol (pyarrow.Buffer included). May be empty.
        seed: unsigned 32-bit seed
    Returns:
        (h1, h2), the two little-endian u64 words of the 128-bit digest
    """
    seed = operator.index(seed)
    if not 0 <= seed <= 0xFFFFFFFF:
        raise ValueError(f"seed must fit in 32 bits, got {seed}")

    data = memoryview(data).cast("B")
    length = len(data)
    nblocks = length // 16

    h1 = seed
    h2 = seed

    # body
    for i in range(nblocks):
        k1, k2 = _BLOCK.unpack_from(data, i * 16)

        h1 ^= _mix_k1(k1)
        h1 = rotl64(h1, 27)
        h1 = (h1 + h2) & MASK64
        h1 = (h1 * 5 + 0x52DCE729) & MASK64

        h2 ^= _mix_k2(k2)
        h2 = rotl64(h2, 31)
        h2 = (h2 + h1) & MASK64
        h2 = (h2 * 5 + 0x38495AB5) & MASK64

    # tail: bytes 8..14 land in k2, bytes 0..7 in k1, highest index first
    tail = data[nblocks * 16:]
    rem = len(tail)
    k1 = 0
    k2 = 0
    for j in range(rem - 1, -1, -1):
        if j >= 8:
            k2 ^= tail[j] << ((j - 8) * 8)
        else:
            k1 ^= tail[j] << (j * 8)
    if rem > 8:
        h2 ^= _mix_k2(k2)
    if rem > 0:
        h1 ^= _mix_k1(k1)

    # finalization
    h1 ^= length
    h2 ^= length

    h1 = (h1 + h2) & MASK64
    h2 = (h2 + h1) & MASK64

    h1 = fmix64(h1)
    h2 = fmix64(h2)

    h1 = (h1 + h2) & MASK64
    h2 = (h2 + h1) & MASK64

    return h1, h2


def hash128_int(data, seed: int = 0) -> int:
    """128-bit digest as one integer, the 16 output bytes read little-endian"""
    h1, h2 = hash128(data, seed)
    return (h2 << 64) | h1
