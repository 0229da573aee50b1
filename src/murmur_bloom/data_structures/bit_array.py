import numpy as np
import pyarrow as pa

from murmur_bloom.errors import AllocationFailure


def get_bit(buffer, index: int) -> bool:
    """Read bit index from an MSB-first packed buffer"""
    return bool(buffer[index >> 3] & (0x80 >> (index & 7)))


def set_bit(buffer, index: int) -> None:
    """Set bit index in an MSB-first packed buffer"""
    buffer[index >> 3] |= 0x80 >> (index & 7)


class BitArray:
    """Fixed-length packed bitset, most-significant-bit first within a byte.

    Bit i lives in byte i // 8 at mask 0x80 >> (i % 8). Storage is an owned
    bytearray rounded up to whole bytes; the padding bits past num_bits are
    never addressed. as_buffer() hands out a zero-copy PyArrow view of the
    same memory.

    Args:
        num_bits: Number of addressable bits (>= 1)

    Example:
        >>> bits = BitArray(10)
        >>> bits.set(0)
        >>> bits.to_bytes()
        b'\\x80\\x00'
    """
    def __init__(self, num_bits: int, _data: bytearray | None = None):
        if num_bits < 1:
            raise ValueError(f"num_bits must be positive, got {num_bits}")
        self.num_bits = num_bits
        if _data is not None:
            self._data = _data
            return
        try:
            self._data = bytearray((num_bits + 7) // 8)
        except MemoryError as exc:
            raise AllocationFailure(
                f"cannot allocate {(num_bits + 7) // 8} bytes for {num_bits} bits") from exc

    @classmethod
    def from_bytes(cls, data, num_bits: int) -> "BitArray":
        """Rebuild from packed bytes; length must be exactly ceil(num_bits/8)"""
        raw = bytearray(memoryview(data).cast("B"))
        expected = (num_bits + 7) // 8
        if len(raw) != expected:
            raise ValueError(
                f"{num_bits} bits need {expected} bytes, got {len(raw)}")
        return cls(num_bits, raw)

    def _check(self, index: int) -> None:
        if not 0 <= index < self.num_bits:
            raise IndexError(f"bit index {index} out of range [0, {self.num_bits})")

    def get(self, index: int) -> bool:
        self._check(index)
        return get_bit(self._data, index)

    def set(self, index: int) -> None:
        self._check(index)
        set_bit(self._data, index)

    def __len__(self) -> int:
        return self.num_bits

    @property
    def num_bytes(self) -> int:
        return len(self._data)

    def popcount(self) -> int:
        """Number of set bits"""
        return int(np.unpackbits(np.frombuffer(self._data, dtype=np.uint8)).sum())

    def as_buffer(self) -> pa.Buffer:
        """Zero-copy Arrow view of the packed bytes"""
        return pa.py_buffer(self._data)

    def to_bytes(self) -> bytes:
        return bytes(self._data)
