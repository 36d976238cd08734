"""
GFF Value Model

The in-memory tree a GFF document decodes to, and encodes from:

    - Struct: ordered (label, Value) pairs plus a caller-assigned type tag
    - List: ordered sequence of Structs
    - Scalar: one of the 14 scalar wire types with its payload
    - Document: root Struct plus the file-type and version header tags

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about offsets, tables or byte layout
        - Are encoded by value: a Struct reachable twice is written twice
        - Are not modified by the Writer or by consumers
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Iterator, List as TList, Optional, Tuple

from bgff.errors import InvalidValue
from bgff.layout import (
    DEFAULT_SIGNATURE,
    DEFAULT_VERSION,
    FieldType,
    Signature,
    Version,
    check_scalar,
    coerce_tag,
)
from bgff.strings import LocString


class Value(ABC):
    """
    Base class for every node of the value tree.

    Structure only. Encoding belongs to the Writer, decoding to the Reader.
    """
    pass


@dataclass(frozen=True)
class Scalar(Value):
    """
    A leaf value of one scalar wire type.

    Example:
        Scalar(FieldType.WORD, 1)
        Scalar(FieldType.STRING, "Hello")

    The payload is validated on construction: integers must fit their width,
    strings must be str, VOID must be bytes. Anything else raises InvalidValue.
    """

    kind: FieldType
    value: object

    def __post_init__(self):
        try:
            kind = FieldType(self.kind)
        except ValueError:
            raise InvalidValue(f"Unknown scalar kind {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", check_scalar(kind, self.value))


@dataclass
class Struct(Value):
    """
    A labelled record.

    Properties:
        fields: (label, Value) pairs in file order
        tag: Struct type id, opaque to the codec (0 for generic structs)

    Labels are not required to be unique by the format. Lookups by label
    return the first occurrence.
    """

    fields: TList[Tuple[str, Value]] = field(default_factory=list)
    tag: int = 0

    def add(self, label: str, value: Value) -> "Struct":
        """Append a field and return self so calls can be chained."""
        self.fields.append((label, value))
        return self

    def get(self, label: str) -> Optional[Value]:
        """
        Retrieve a field value by label.

        Returns:
            First value with this label, or None if not found
        """
        for name, value in self.fields:
            if name == label:
                return value
        return None

    def labels(self) -> TList[str]:
        return [name for name, _ in self.fields]

    def __iter__(self) -> Iterator[Tuple[str, Value]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, label: str) -> bool:
        return any(name == label for name, _ in self.fields)

    def __getitem__(self, label: str) -> Value:
        value = self.get(label)
        if value is None:
            raise KeyError(label)
        return value


@dataclass
class List(Value):
    """
    An ordered list of Structs.

    On the wire every list element is a struct index, so elements are Structs.
    Elements need not share the same set of fields.
    """

    items: TList[Struct] = field(default_factory=list)

    def append(self, item: Struct) -> "List":
        self.items.append(item)
        return self

    def __iter__(self) -> Iterator[Struct]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Struct:
        return self.items[index]


@dataclass
class Document:
    """
    A complete GFF file: header tags and the root struct.

    Properties:
        root: Top-level Struct (struct index 0 on disk)
        signature: File-type tag, e.g. b"IFO "
        version: Version tag, b"V3.2" by default
    """

    root: Struct = field(default_factory=Struct)
    signature: bytes = DEFAULT_SIGNATURE
    version: bytes = DEFAULT_VERSION

    def __post_init__(self):
        self.signature = coerce_tag(self.signature, "Signature")
        self.version = coerce_tag(self.version, "Version")

    @property
    def file_type(self) -> Optional[Signature]:
        """Known file type for the signature, or None."""
        return Signature.lookup(self.signature)

    @property
    def format_version(self) -> Version:
        return Version(self.version)


__all__ = ["Value", "Scalar", "Struct", "List", "Document"]
