"""
Error taxonomy for the GFF codec.

Every failure aborts the whole encode or decode call. There is no degraded
mode: a malformed file never yields a partial tree, and a value that cannot
be encoded never yields a partial buffer.

Errors carry optional context so a caller can find the problem:
    offset: byte position in the file (or in the table named in the message)
    index:  struct, field, label or list index involved
"""

from typing import Optional


class GFFError(Exception):
    """Base class for all codec errors."""

    def __init__(self, message: str, *, offset: Optional[int] = None, index: Optional[int] = None):
        self.offset = offset
        self.index = index
        context = []
        if offset is not None:
            context.append(f"offset {offset}")
        if index is not None:
            context.append(f"index {index}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class HeaderError(GFFError):
    """Raised when header offsets or counts are malformed."""
    pass


class TruncatedData(GFFError):
    """Raised when the header, a table or a record extends past the source."""
    pass


class InvalidIndex(GFFError):
    """Raised when a struct, field, label or list index is out of range, or a struct is referenced twice."""
    pass


class LabelTooLong(GFFError):
    """Raised when a label needs more than 16 bytes of UTF-8."""

    def __init__(self, label: str, length: int):
        self.label = label
        self.length = length
        super().__init__(
            f"Label {label!r} is {length} bytes in UTF-8, labels can contain up to 16 bytes"
        )


class InvalidTopLevelShape(GFFError):
    """Raised when the top-level value is not a Struct."""
    pass


class UnsupportedKeyType(GFFError):
    """Raised when a mapping key is not a string."""
    pass


class MissingRequiredField(GFFError):
    """Raised when a target shape requires a field the tree does not have."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Required field {label!r} is missing")


class UnknownWireType(GFFError):
    """Raised when a field type tag is not one of the known wire types."""
    pass


class InvalidValue(GFFError):
    """Raised when a scalar payload does not fit its wire type or a value cannot be placed."""
    pass


class InvalidEncoding(GFFError):
    """Raised when string bytes cannot be decoded or text cannot be encoded."""
    pass


class ShapeMismatch(GFFError):
    """Raised when a value does not have the shape a consumer asked for."""
    pass


class AdapterError(GFFError):
    """Raised when producer calls are not well nested."""
    pass


__all__ = [
    "GFFError",
    "HeaderError",
    "TruncatedData",
    "InvalidIndex",
    "LabelTooLong",
    "InvalidTopLevelShape",
    "UnsupportedKeyType",
    "MissingRequiredField",
    "UnknownWireType",
    "InvalidValue",
    "InvalidEncoding",
    "ShapeMismatch",
    "AdapterError",
]
