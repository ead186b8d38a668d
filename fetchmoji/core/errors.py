"""
Error taxonomy for the codec, the vector stores and artifact loading.
"""


class FetchmojiError(Exception):
    """Base class for fetchmoji errors."""
    pass


class ValidationError(FetchmojiError, ValueError):
    """Wrong vector length or type at the codec or store-query boundary."""
    pass


class EmptyBatch(ValidationError):
    """An embedding batch had no rows."""
    pass


class DimensionMismatch(ValidationError):
    """A vector's length differs from the batch or store dimension."""

    def __init__(self, expected: int, actual: int, index: int = None):
        self.expected = expected
        self.actual = actual
        self.index = index
        where = f" at row {index}" if index is not None else ""
        super().__init__(f"Vector dimension {actual}{where} does not match expected dimension {expected}")


class FormatError(FetchmojiError, ValueError):
    """A binary embeddings blob is corrupt or incompatible."""
    pass


class BadMagic(FormatError):
    pass


class BadVersion(FormatError):
    pass


class UnsupportedDtype(FormatError):
    pass


class MetaLengthMismatch(FormatError):
    pass


class StoreInitError(FetchmojiError, RuntimeError):
    """The backing vector engine could not start."""
    pass


class TransportError(FetchmojiError, IOError):
    """Fetching a prebuilt artifact failed."""
    pass
