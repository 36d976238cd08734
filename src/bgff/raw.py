"""
Raw GFF tables.

RawGff holds the seven regions of a GFF file as they are stored on disk,
without materializing a value tree. The Reader builds one from bytes and then
resolves it; the Writer fills one during planning and emits it by
concatenation. It is also handy for inspecting files and checking the table
layout of an encoded buffer.
"""

import struct
from dataclasses import dataclass, field
from typing import List

from bgff.errors import InvalidIndex
from bgff.label import Label
from bgff.layout import (
    FIELD_ENTRY_SIZE,
    HEADER_SIZE,
    INDEX_FMT,
    INDEX_SIZE,
    LABEL_ENTRY_SIZE,
    STRUCT_ENTRY_SIZE,
    FieldEntry,
    Header,
    Section,
    StructEntry,
)


@dataclass
class RawGff:
    header: Header = field(default_factory=Header)
    structs: List[StructEntry] = field(default_factory=list)
    fields: List[FieldEntry] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)
    field_data: bytes = b""
    field_indices: bytes = b""
    list_indices: bytes = b""

    @classmethod
    def read(cls, data: bytes) -> "RawGff":
        """
        Parse the header and slice out every table.

        Raises:
            TruncatedData: Header or a table extends past the end of data
            HeaderError: Tables overlap, are misaligned, or there are no structs
        """
        data = bytes(data)
        header = Header.unpack(data)
        header.validate(len(data))

        def region(section: Section, size: int) -> bytes:
            return data[section.offset:section.offset + size]

        structs_blob = region(header.structs, header.byte_size("structs"))
        fields_blob = region(header.fields, header.byte_size("fields"))
        labels_blob = region(header.labels, header.byte_size("labels"))

        return cls(
            header=header,
            structs=[
                StructEntry.unpack_from(structs_blob, i * STRUCT_ENTRY_SIZE)
                for i in range(header.structs.count)
            ],
            fields=[
                FieldEntry.unpack_from(fields_blob, i * FIELD_ENTRY_SIZE)
                for i in range(header.fields.count)
            ],
            labels=[
                Label(labels_blob[i * LABEL_ENTRY_SIZE:(i + 1) * LABEL_ENTRY_SIZE])
                for i in range(header.labels.count)
            ],
            field_data=region(header.field_data, header.byte_size("field_data")),
            field_indices=region(header.field_indices, header.byte_size("field_indices")),
            list_indices=region(header.list_indices, header.byte_size("list_indices")),
        )

    def update_header(self) -> Header:
        """Recompute table offsets and counts for a sequential layout."""
        sizes = [
            ("structs", len(self.structs), len(self.structs) * STRUCT_ENTRY_SIZE),
            ("fields", len(self.fields), len(self.fields) * FIELD_ENTRY_SIZE),
            ("labels", len(self.labels), len(self.labels) * LABEL_ENTRY_SIZE),
            ("field_data", len(self.field_data), len(self.field_data)),
            ("field_indices", len(self.field_indices), len(self.field_indices)),
            ("list_indices", len(self.list_indices), len(self.list_indices)),
        ]
        offset = HEADER_SIZE
        for name, count, size in sizes:
            setattr(self.header, name, Section(offset=offset, count=count))
            offset += size
        return self.header

    def to_bytes(self) -> bytes:
        """Emit header and tables in the fixed on-disk order."""
        self.update_header()
        out = bytearray(self.header.pack())
        for entry in self.structs:
            out += entry.pack()
        for entry in self.fields:
            out += entry.pack()
        for label in self.labels:
            out += label.raw
        out += self.field_data
        out += self.field_indices
        out += self.list_indices
        return bytes(out)

    # -------------------------------------------------------------------------
    # Index lookups with bounds checks
    # -------------------------------------------------------------------------

    def struct_entry(self, index: int) -> StructEntry:
        if not 0 <= index < len(self.structs):
            raise InvalidIndex(f"Struct index out of range (file has {len(self.structs)} structs)", index=index)
        return self.structs[index]

    def field_entry(self, index: int) -> FieldEntry:
        if not 0 <= index < len(self.fields):
            raise InvalidIndex(f"Field index out of range (file has {len(self.fields)} fields)", index=index)
        return self.fields[index]

    def label(self, index: int) -> Label:
        if not 0 <= index < len(self.labels):
            raise InvalidIndex(f"Label index out of range (file has {len(self.labels)} labels)", index=index)
        return self.labels[index]

    def struct_field_indices(self, entry: StructEntry) -> List[int]:
        """Field indices that belong to a struct, in order."""
        if entry.field_count == 0:
            return []
        if entry.field_count == 1:
            return [entry.data_or_offset]
        return _read_indices(
            self.field_indices, entry.data_or_offset, entry.field_count, "Field indices"
        )

    def list_block(self, offset: int) -> List[int]:
        """Struct indices of the list whose size prefix starts at offset."""
        (count,) = _read_indices(self.list_indices, offset, 1, "List indices")
        return _read_indices(self.list_indices, offset + INDEX_SIZE, count, "List indices")


def _read_indices(table: bytes, offset: int, count: int, what: str) -> List[int]:
    end = offset + count * INDEX_SIZE
    if end > len(table):
        raise InvalidIndex(
            f"{what} run of {count} entries ends past the {len(table)}-byte table", offset=offset
        )
    return [struct.unpack_from(INDEX_FMT, table, offset + i * INDEX_SIZE)[0] for i in range(count)]
