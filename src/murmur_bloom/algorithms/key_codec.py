import numbers
import operator

import pyarrow as pa

from murmur_bloom.config import DEFAULT_INT_WIDTH, SUPPORTED_INT_WIDTHS
from murmur_bloom.errors import InvalidConfiguration, KeyEncodingError


def check_int_width(int_width: int) -> int:
    if int_width not in SUPPORTED_INT_WIDTHS:
        raise InvalidConfiguration(
            f"int_width must be one of {SUPPORTED_INT_WIDTHS}, got {int_width!r}")
    return int_width


def encode_key(key, int_width: int = DEFAULT_INT_WIDTH) -> bytes:
    """Return the canonical bytes for key.

    Integers (numpy scalars included) are two's complement, little-endian,
    exactly int_width bytes; bytes-likes are verbatim; str is UTF-8.
    """
    if isinstance(key, numbers.Integral):
        try:
            return operator.index(key).to_bytes(int_width, "little", signed=True)
        except OverflowError:
            raise KeyEncodingError(
                f"integer key {key} does not fit in {int_width} bytes") from None
    if isinstance(key, bytes):
        return key
    if isinstance(key, (bytearray, memoryview, pa.Buffer)):
        return bytes(memoryview(key).cast("B"))
    if isinstance(key, str):
        return key.encode("utf-8")
    raise TypeError(f"unsupported key type: {type(key).__name__}")
