"""
Field labels.

On disk every label occupies exactly 16 bytes, NUL-padded. The logical name
ends at the first NUL byte (or after all 16 bytes when none is present).
"""

from dataclasses import dataclass

from bgff.errors import InvalidEncoding, InvalidValue, LabelTooLong, UnsupportedKeyType


LABEL_SIZE = 16


@dataclass(frozen=True)
class Label:
    """A field name as stored in the label table (16 raw bytes)."""

    raw: bytes

    @classmethod
    def from_str(cls, name: str) -> "Label":
        """
        Build a label from a field name.

        Raises:
            UnsupportedKeyType: If name is not a str
            InvalidValue: If name contains a NUL character
            LabelTooLong: If the UTF-8 form is longer than 16 bytes
        """
        if not isinstance(name, str):
            raise UnsupportedKeyType(f"Field labels must be strings, got {type(name).__name__}")
        if "\x00" in name:
            raise InvalidValue(f"Field label {name!r} contains a NUL character")
        return cls.from_bytes(name.encode("utf-8"), name=name)

    @classmethod
    def from_bytes(cls, data: bytes, name: str | None = None) -> "Label":
        if len(data) > LABEL_SIZE:
            raise LabelTooLong(name if name is not None else repr(data), len(data))
        return cls(bytes(data).ljust(LABEL_SIZE, b"\x00"))

    def as_str(self) -> str:
        end = self.raw.find(b"\x00")
        name = self.raw if end == -1 else self.raw[:end]
        try:
            return name.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidEncoding(f"Label {name!r} is not valid UTF-8: {e.reason}")

    def __str__(self) -> str:
        return self.as_str()


def check_label(name) -> str:
    """Validate a field name for encoding and return it unchanged."""
    Label.from_str(name)
    return name
