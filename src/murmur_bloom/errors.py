class BloomFilterError(Exception):
    """Base class for all filter errors; subclasses also derive the matching builtin"""


class InvalidConfiguration(BloomFilterError, ValueError):
    """Construction parameters are outside their valid domain."""


class AllocationFailure(BloomFilterError, MemoryError):
    """The backing bit buffer could not be allocated."""


class KeyEncodingError(BloomFilterError, ValueError):
    """A key has no canonical byte representation at the configured width."""


class CorruptFilterError(BloomFilterError, ValueError):
    """Serialized filter data is truncated or inconsistent."""


class SerializationLimitError(BloomFilterError, OverflowError):
    """Filter sizing exceeds the uint32 fields of the serialized header."""
