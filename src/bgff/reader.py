"""
GFF Reader (bytes -> Value Model).

Decoding happens in three steps:
    1. Parse the header and check every table against the source length
    2. Slice the tables into a RawGff
    3. Materialize struct 0 as the root, then every struct it reaches

Any malformed offset, truncated record or out-of-range index aborts the whole
decode. The format is a tree: every struct index is reachable from exactly
one place, so a second reference to an index (a cycle or a shared child) is
rejected.

Structs are materialized from an explicit worklist, so nesting depth is
bounded by the file size rather than by the interpreter stack.
"""

import logging
import warnings
from typing import List as TList, Optional, Set, Tuple

from bgff.config import DEFAULT_OPTIONS, CodecOptions
from bgff.errors import InvalidIndex, UnknownWireType
from bgff.layout import WIRE_RULES, FieldType, unpack_inline
from bgff.model import Document, List, Scalar, Struct, Value
from bgff.raw import RawGff


logger = logging.getLogger(__name__)


class Reader:
    """Decodes one GFF buffer. Create one Reader per call."""

    def __init__(self, data: bytes, options: Optional[CodecOptions] = None):
        self.options = options or DEFAULT_OPTIONS
        self.raw = RawGff.read(data)
        self.claimed: Set[int] = set()
        self.pending: TList[Tuple[int, Struct]] = []

    def read(self) -> Document:
        header = self.raw.header
        logger.debug(
            "Decoding GFF %r %r: %d structs, %d fields, %d labels, %d bytes of field data",
            header.signature, header.version, header.structs.count,
            header.fields.count, header.labels.count, header.field_data.count,
        )
        root = self._claim(0)
        while self.pending:
            index, target = self.pending.pop()
            self._fill_struct(index, target)
        return Document(root=root, signature=header.signature, version=header.version)

    def _claim(self, index: int) -> Struct:
        """Create the (still empty) Struct for a struct index and queue its fields."""
        entry = self.raw.struct_entry(index)
        if index in self.claimed:
            raise InvalidIndex("Struct is referenced more than once (cycle or shared child)", index=index)
        self.claimed.add(index)
        result = Struct(tag=entry.tag)
        self.pending.append((index, result))
        return result

    def _fill_struct(self, index: int, target: Struct) -> None:
        entry = self.raw.struct_entry(index)
        seen = set()
        for field_index in self.raw.struct_field_indices(entry):
            label, value = self._read_field(field_index)
            if label in seen:
                warnings.warn(f"Struct {index} has more than one field labelled {label!r}", UserWarning)
            seen.add(label)
            target.fields.append((label, value))

    def _read_field(self, index: int) -> Tuple[str, Value]:
        entry = self.raw.field_entry(index)
        try:
            kind = FieldType(entry.type)
        except ValueError:
            raise UnknownWireType(f"Unknown field type tag {entry.type}", index=index)
        label = self.raw.label(entry.label_index).as_str()

        if kind == FieldType.STRUCT:
            return label, self._claim(entry.slot_u32)
        if kind == FieldType.LIST:
            items = [self._claim(i) for i in self.raw.list_block(entry.slot_u32)]
            return label, List(items)

        rule = WIRE_RULES[kind]
        if rule.inline is not None:
            payload = unpack_inline(kind, entry.slot)
        else:
            payload = rule.record.decode(self.raw.field_data, entry.slot_u32, self.options)
        return label, Scalar(kind, payload)


def read_document(data: bytes, options: Optional[CodecOptions] = None) -> Document:
    """
    Decode a GFF buffer into a Document.

    Raises:
        TruncatedData, HeaderError, InvalidIndex, UnknownWireType, InvalidEncoding
    """
    return Reader(data, options).read()


def from_bytes(data: bytes, options: Optional[CodecOptions] = None) -> Struct:
    """Decode a GFF buffer and return its root Struct."""
    return read_document(data, options).root


def load(fp, options: Optional[CodecOptions] = None) -> Document:
    """Decode a GFF document from a binary file object."""
    return read_document(fp.read(), options)


def load_file(path, options: Optional[CodecOptions] = None) -> Document:
    """Decode a GFF file from disk."""
    with open(path, "rb") as fh:
        data = fh.read()
    return read_document(data, options)


__all__ = ["Reader", "read_document", "from_bytes", "load", "load_file"]
