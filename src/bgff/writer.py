"""
GFF Writer (Value Model -> bytes).

Encoding is done in two passes so no offset ever has to be patched in
already-written output:

    1. Plan: walk the tree depth-first. Every Struct gets the next struct
       index, every field the next field index. Multi-field structs reserve a
       run in the pending field-indices table, list fields reserve a block in
       the pending list-indices table, and wide or variable-length payloads
       are appended to the pending field-data blob. Labels are validated and
       appended to the label table as they are met.
    2. Emit: all table sizes are now fixed, so the header is computed and the
       tables are concatenated in on-disk order.

Nothing is written to a sink unless both passes succeed.
"""

import logging
from typing import Dict, Iterator, List as TList, Optional, Set, Tuple

from bgff.config import DEFAULT_OPTIONS, CodecOptions
from bgff.errors import InvalidTopLevelShape, InvalidValue
from bgff.label import Label
from bgff.layout import (
    DEFAULT_SIGNATURE,
    DEFAULT_VERSION,
    INDEX_SIZE,
    NO_FIELDS,
    WIRE_RULES,
    FieldEntry,
    FieldType,
    StructEntry,
    coerce_tag,
    pack_index,
    pack_inline,
)
from bgff.model import Document, List, Scalar, Struct, Value
from bgff.raw import RawGff


logger = logging.getLogger(__name__)


class _Plan:
    """
    Pending tables of one encode call, indexed by sequential integers.

    Each open Struct is a generator over its fields. A generator yields the
    generator of a child struct when it meets one, and walk() runs the
    stack of generators, so depth-first numbering is kept without recursion.
    """

    def __init__(self, options: CodecOptions):
        self.options = options
        self.raw = RawGff()
        self.field_data = bytearray()
        self.field_indices = bytearray()
        self.list_indices = bytearray()
        self.label_slots: Dict[str, int] = {}
        self.open_structs: Set[int] = set()

    def add_label(self, name: str) -> int:
        label = Label.from_str(name)
        if self.options.dedupe_labels and name in self.label_slots:
            return self.label_slots[name]
        index = len(self.raw.labels)
        self.raw.labels.append(label)
        self.label_slots.setdefault(name, index)
        return index

    def walk(self, root: Struct) -> None:
        _, steps = self.open_struct(root)
        stack: TList[Iterator] = [steps]
        while stack:
            try:
                child = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            stack.append(child)

    def open_struct(self, value: Struct) -> Tuple[int, Iterator]:
        """Assign the next struct index and reserve its field-indices run."""
        tag = value.tag
        if isinstance(tag, bool) or not isinstance(tag, int) or not 0 <= tag <= 0xFFFF_FFFF:
            raise InvalidValue(f"Struct tag {tag!r} is not a 32-bit unsigned integer")
        if id(value) in self.open_structs:
            raise InvalidValue("Struct contains itself, GFF files are trees")
        self.open_structs.add(id(value))

        index = len(self.raw.structs)
        count = len(value.fields)
        entry = StructEntry(tag=tag, data_or_offset=NO_FIELDS, field_count=count)
        self.raw.structs.append(entry)

        run_start = len(self.field_indices)
        if count > 1:
            entry.data_or_offset = run_start
            self.field_indices += bytes(count * INDEX_SIZE)
        return index, self.struct_fields(value, entry, run_start)

    def struct_fields(self, value: Struct, entry: StructEntry, run_start: int) -> Iterator:
        count = len(value.fields)
        for i, (label, child) in enumerate(value.fields):
            field_index = len(self.raw.fields)
            field = FieldEntry(type=0, label_index=self.add_label(label))
            self.raw.fields.append(field)
            if count == 1:
                entry.data_or_offset = field_index
            else:
                pos = run_start + i * INDEX_SIZE
                self.field_indices[pos:pos + INDEX_SIZE] = pack_index(field_index)

            if isinstance(child, Struct):
                field.type = FieldType.STRUCT
                index, steps = self.open_struct(child)
                field.slot = pack_index(index)
                yield steps
            elif isinstance(child, List):
                field.type = FieldType.LIST
                offset = len(self.list_indices)
                field.slot = pack_index(offset)
                self.list_indices += pack_index(len(child.items))
                self.list_indices += bytes(len(child.items) * INDEX_SIZE)
                for j, item in enumerate(child.items):
                    if not isinstance(item, Struct):
                        raise InvalidValue(
                            f"List {label!r} element {j} is {type(item).__name__}, list elements must be Structs"
                        )
                    index, steps = self.open_struct(item)
                    pos = offset + (j + 1) * INDEX_SIZE
                    self.list_indices[pos:pos + INDEX_SIZE] = pack_index(index)
                    yield steps
            elif isinstance(child, Scalar):
                field.type = child.kind
                field.slot = self.add_scalar(child)
            else:
                raise InvalidValue(
                    f"Field {label!r} holds {type(child).__name__}, expected a Value", index=field_index
                )
        self.open_structs.discard(id(value))

    def add_scalar(self, value: Scalar) -> bytes:
        rule = WIRE_RULES[value.kind]
        if rule.inline is not None:
            return pack_inline(value.kind, value.value)
        offset = len(self.field_data)
        self.field_data += rule.record.encode(value.value, self.options)
        return pack_index(offset)

    def finish(self, signature: bytes, version: bytes) -> RawGff:
        self.raw.header.signature = signature
        self.raw.header.version = version
        self.raw.field_data = bytes(self.field_data)
        self.raw.field_indices = bytes(self.field_indices)
        self.raw.list_indices = bytes(self.list_indices)
        self.raw.update_header()
        return self.raw


def plan(
    value: Struct,
    signature=DEFAULT_SIGNATURE,
    version=DEFAULT_VERSION,
    options: Optional[CodecOptions] = None,
) -> RawGff:
    """
    Run the planning pass and return the fully resolved tables.

    Raises:
        InvalidTopLevelShape: value is not a Struct
        LabelTooLong, UnsupportedKeyType, InvalidValue, InvalidEncoding
    """
    if not isinstance(value, Struct):
        raise InvalidTopLevelShape(
            f"GFF root must be a Struct, got {type(value).__name__}. Wrap the value in a Struct"
        )
    signature = coerce_tag(signature, "Signature")
    version = coerce_tag(version, "Version")

    pending = _Plan(options or DEFAULT_OPTIONS)
    pending.walk(value)
    raw = pending.finish(signature, version)
    logger.debug(
        "Planned GFF %r: %d structs, %d fields, %d labels, %d bytes of field data",
        signature, len(raw.structs), len(raw.fields), len(raw.labels), len(raw.field_data),
    )
    return raw


def to_bytes(
    value,
    signature=DEFAULT_SIGNATURE,
    version=DEFAULT_VERSION,
    options: Optional[CodecOptions] = None,
) -> bytes:
    """
    Encode a root Struct (or a Document) to GFF bytes.

    When value is a Document its own signature and version are used.
    """
    if isinstance(value, Document):
        return write_document(value, options)
    return plan(value, signature, version, options).to_bytes()


def write_document(document: Document, options: Optional[CodecOptions] = None) -> bytes:
    return plan(document.root, document.signature, document.version, options).to_bytes()


def dump(value, fp, signature=DEFAULT_SIGNATURE, version=DEFAULT_VERSION,
         options: Optional[CodecOptions] = None) -> None:
    """Encode value and write it to a binary file object."""
    fp.write(to_bytes(value, signature, version, options))


def save_file(value, path, signature=DEFAULT_SIGNATURE, version=DEFAULT_VERSION,
              options: Optional[CodecOptions] = None) -> None:
    """Encode value and write it to path. The file is only created if encoding succeeds."""
    data = to_bytes(value, signature, version, options)
    with open(path, "wb") as fh:
        fh.write(data)


__all__ = ["plan", "to_bytes", "write_document", "dump", "save_file"]
