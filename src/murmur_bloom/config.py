import math
import numbers
import operator
from dataclasses import dataclass

from murmur_bloom.errors import InvalidConfiguration

# Seed passed to the hash mixer by every filter unless overridden
DEFAULT_SEED = 42

# Integer keys hash as a native 32-bit C int
DEFAULT_INT_WIDTH = 4
SUPPORTED_INT_WIDTHS = (1, 2, 4, 8)

LN2 = math.log(2)


@dataclass(frozen=True)
class FilterParams:
    """Derived sizing for a Bloom filter.

    Args:
        expected_entries: Number of keys the filter is sized for
        target_fpr: Desired false positive rate, strictly between 0 and 1
        bits_per_entry: -log2(fpr) / ln(2)
        num_hashes: Bit positions touched per insert/query
        bit_length: Total addressable bits
    """
    expected_entries: int
    target_fpr: float
    bits_per_entry: float
    num_hashes: int
    bit_length: int

    @classmethod
    def for_capacity(cls, expected_entries: int, target_fpr: float) -> "FilterParams":
        """Validate (n, p) and derive bpe, k and m"""
        if isinstance(expected_entries, bool) or not isinstance(expected_entries, numbers.Integral):
            raise InvalidConfiguration(
                f"expected_entries must be an int, got {type(expected_entries).__name__}")
        if expected_entries <= 0:
            raise InvalidConfiguration(
                f"expected_entries must be positive, got {expected_entries}")
        expected_entries = operator.index(expected_entries)
        if isinstance(target_fpr, bool) or not isinstance(target_fpr, numbers.Real):
            raise InvalidConfiguration(
                f"target_fpr must be a float, got {type(target_fpr).__name__}")
        if not (0.0 < target_fpr < 1.0):
            raise InvalidConfiguration(f"target_fpr must be in (0, 1), got {target_fpr}")
        target_fpr = float(target_fpr)

        bpe = -math.log2(target_fpr) / LN2
        num_hashes = hashes_for(bpe)
        bit_length = max(1, math.ceil(bpe * expected_entries))
        return cls(expected_entries, target_fpr, bpe, num_hashes, bit_length)

    @property
    def num_bytes(self) -> int:
        return (self.bit_length + 7) // 8

    @property
    def expected_fpr(self) -> float:
        """Theoretical FP rate at capacity: (1 - e^(-kn/m))^k"""
        k, n, m = self.num_hashes, self.expected_entries, self.bit_length
        return (1.0 - math.exp(-k * n / m)) ** k


def hashes_for(bits_per_entry: float) -> int:
    """num_hashes = ceil(bpe * ln 2), never below 1"""
    return max(1, math.ceil(bits_per_entry * LN2))


def check_seed(seed) -> int:
    """Seeds are unsigned 32-bit integers"""
    if isinstance(seed, bool) or not isinstance(seed, numbers.Integral):
        raise InvalidConfiguration(f"seed must be an int, got {type(seed).__name__}")
    if not 0 <= seed <= 0xFFFFFFFF:
        raise InvalidConfiguration(f"seed must fit in 32 bits, got {seed}")
    return operator.index(seed)
