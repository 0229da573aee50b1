import logging
import math
import struct

import pyarrow as pa

from murmur_bloom.algorithms.key_codec import check_int_width, encode_key
from murmur_bloom.algorithms.murmur3 import hash128
from murmur_bloom.config import (DEFAULT_INT_WIDTH, DEFAULT_SEED, LN2, FilterParams,
                                 check_seed, hashes_for)
from murmur_bloom.data_structures.bit_array import BitArray
from murmur_bloom.errors import CorruptFilterError, SerializationLimitError

log = logging.getLogger(__name__)

# bits_per_entry (float64), num_hashes (uint32), bit_length (uint32)
_HEADER = struct.Struct("<dII")
_UINT32_MAX = 0xFFFFFFFF


class BloomFilter:
    """Space-efficient probabilistic membership tester over MurmurHash3.

    Bloom filters answer "has this key possibly been inserted?". A False
    answer is certain; a True answer is wrong with probability close to
    target_fpr once expected_entries keys are in. This makes them a cheap
    existence check in front of an expensive lookup such as a disk read.

    Sizing follows the fixed formulas

        bits_per_entry = -log2(fpr) / ln(2)
        num_hashes     = ceil(bits_per_entry * ln(2))
        bit_length     = ceil(bits_per_entry * expected_entries)

    and never changes after construction. Each insert or query hashes the
    key once with MurmurHash3_x64_128 and derives num_hashes positions by
    double hashing: p_i = (h1 + i * h2) mod bit_length. Python integers do
    not wrap, so h1 + i * h2 is reduced exactly, without a 64-bit overflow.

    Bits are packed most-significant-bit first in a PyArrow-viewable
    bytearray owned by the filter; dropping the filter releases it.

    Attributes:
        expected_entries (int | None): Capacity the filter was sized for
            (None for a filter loaded with from_bytes).
        target_fpr (float): Requested false positive rate.
        bits_per_entry (float): Bits allocated per expected entry.
        num_hashes (int): Bit positions touched per key.
        bit_length (int): Number of addressable bits.
        seed (int): MurmurHash3 seed used for every key.
        int_width (int): Byte width integer keys are encoded with.
        count (int): Number of insert calls so far.

    Example:
        >>> bf = BloomFilter(expected_entries=1000, target_fpr=0.01)
        >>> bf.insert(7)
        >>> 7 in bf
        True
        >>> bf.contains(8)
        False  # Potentially True with probability ~1%
    """
    def __init__(self, expected_entries: int, target_fpr: float, *,
                 seed: int = DEFAULT_SEED, int_width: int = DEFAULT_INT_WIDTH):
        params = FilterParams.for_capacity(expected_entries, target_fpr)
        self._setup(seed, int_width)
        self.expected_entries = params.expected_entries
        self.target_fpr = params.target_fpr
        self.bits_per_entry = params.bits_per_entry
        self.num_hashes = params.num_hashes
        self.bit_length = params.bit_length
        self._bits = BitArray(params.bit_length)
        log.debug("bloom filter sized: n=%d fpr=%g bpe=%.4f k=%d m=%d (%d bytes)",
                  self.expected_entries, self.target_fpr, self.bits_per_entry,
                  self.num_hashes, self.bit_length, self._bits.num_bytes)

    def _setup(self, seed: int, int_width: int) -> None:
        self.seed = check_seed(seed)
        self.int_width = check_int_width(int_width)
        self.count = 0
        self._overfill_warned = False

    def positions(self, key) -> list[int]:
        """Bit positions touched by key, in round order"""
        h1, h2 = hash128(encode_key(key, self.int_width), self.seed)
        m = self.bit_length
        return [(h1 + i * h2) % m for i in range(self.num_hashes)]

    def insert(self, key) -> None:
        """Insert key into filter"""
        for pos in self.positions(key):
            self._bits.set(pos)
        self.count += 1
        if (self.expected_entries is not None and not self._overfill_warned
                and self.count > self.expected_entries):
            self._overfill_warned = True
            log.warning("bloom filter past capacity: %d inserts for %d expected entries; "
                        "false positive rate will exceed %g",
                        self.count, self.expected_entries, self.target_fpr)

    add = insert

    def contains(self, key) -> bool:
        """Check key membership; False is definitive, True may be a false positive"""
        h1, h2 = hash128(encode_key(key, self.int_width), self.seed)
        bits = self._bits
        m = self.bit_length
        for i in range(self.num_hashes):
            if not bits.get((h1 + i * h2) % m):
                return False
        return True

    def __contains__(self, key) -> bool:
        return self.contains(key)

    def insert_many(self, keys) -> None:
        """Insert every key from an iterable or a PyArrow (Chunked)Array"""
        if isinstance(keys, (pa.Array, pa.ChunkedArray)):
            keys = keys.to_pylist()
        for key in keys:
            self.insert(key)

    def contains_many(self, keys) -> pa.BooleanArray:
        """Vectorised membership check returning an Arrow boolean array"""
        if isinstance(keys, (pa.Array, pa.ChunkedArray)):
            keys = keys.to_pylist()
        return pa.array([self.contains(key) for key in keys], type=pa.bool_())

    def fill_ratio(self) -> float:
        """Fraction of addressable bits that are set"""
        return self._bits.popcount() / self.bit_length

    def estimated_fp_rate(self) -> float:
        """Current FP rate estimated from the fill ratio: fill_ratio ** k"""
        return self.fill_ratio() ** self.num_hashes

    def memory_bytes(self) -> int:
        return self._bits.num_bytes

    def __len__(self) -> int:
        return self.bit_length

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(bits_per_entry={self.bits_per_entry:.4f}, "
                f"num_hashes={self.num_hashes}, bit_length={self.bit_length}, "
                f"seed={self.seed}, count={self.count})")

    def to_bytes(self) -> bytes:
        """Serialize as <d bpe><I k><I m> followed by the packed bitset"""
        if self.bit_length > _UINT32_MAX or self.num_hashes > _UINT32_MAX:
            raise SerializationLimitError(
                f"bit_length={self.bit_length} num_hashes={self.num_hashes} exceed the "
                f"uint32 header fields of the serialized layout")
        sink = pa.BufferOutputStream()
        sink.write(_HEADER.pack(self.bits_per_entry, self.num_hashes, self.bit_length))
        sink.write(self._bits.as_buffer())
        return sink.getvalue().to_pybytes()

    @classmethod
    def from_bytes(cls, data, *, seed: int = DEFAULT_SEED,
                   int_width: int = DEFAULT_INT_WIDTH) -> "BloomFilter":
        """Load a filter written by to_bytes.

        The layout does not record the seed or integer width; pass the
        ones the filter was built with.
        """
        buf = data if isinstance(data, pa.Buffer) else pa.py_buffer(data)
        if buf.size < _HEADER.size:
            raise CorruptFilterError(
                f"filter data is {buf.size} bytes, header needs {_HEADER.size}")
        bpe, num_hashes, bit_length = _HEADER.unpack(buf.slice(0, _HEADER.size).to_pybytes())
        if not math.isfinite(bpe) or bpe < 0:
            raise CorruptFilterError(f"invalid bits_per_entry {bpe}")
        if num_hashes < 1 or bit_length < 1:
            raise CorruptFilterError(
                f"invalid sizing: num_hashes={num_hashes} bit_length={bit_length}")
        if num_hashes != hashes_for(bpe):
            raise CorruptFilterError(
                f"num_hashes={num_hashes} disagrees with bits_per_entry={bpe} "
                f"(expected {hashes_for(bpe)})")
        payload = buf.slice(_HEADER.size)
        try:
            bits = BitArray.from_bytes(payload, bit_length)
        except ValueError as exc:
            raise CorruptFilterError(str(exc)) from exc

        bf = cls.__new__(cls)
        bf._setup(seed, int_width)
        bf.expected_entries = None
        bf.target_fpr = 2.0 ** (-bpe * LN2)
        bf.bits_per_entry = bpe
        bf.num_hashes = num_hashes
        bf.bit_length = bit_length
        bf._bits = bits
        log.debug("bloom filter loaded: bpe=%.4f k=%d m=%d", bpe, num_hashes, bit_length)
        return bf
