"""
Tests for the two-pass Writer.

Encoded buffers are inspected through RawGff so table contents and offsets
can be checked without relying on the Reader.
"""

import io
import struct

import pytest

from bgff.config import CodecOptions
from bgff.errors import (
    InvalidEncoding,
    InvalidTopLevelShape,
    InvalidValue,
    LabelTooLong,
    UnsupportedKeyType,
)
from bgff.examples import build_example_struct, build_module_info
from bgff.layout import HEADER_SIZE, NO_FIELDS, FieldType
from bgff.model import List, Scalar, Struct
from bgff.raw import RawGff
from bgff.writer import dump, plan, save_file, to_bytes, write_document


def indices(blob: bytes):
    return list(struct.unpack(f"<{len(blob) // 4}I", blob))


class TestTableLayout:
    """Table contents for the small example record."""

    @pytest.fixture
    def raw(self):
        return RawGff.read(to_bytes(build_example_struct()))

    def test_counts(self, raw):
        """Entry counts for entry tables, byte counts for the rest."""
        header = raw.header
        assert header.structs.count == 3
        assert header.fields.count == 7
        assert header.labels.count == 7
        assert header.field_data.count == 10
        assert header.field_indices.count == 28
        assert header.list_indices.count == 12

    def test_offsets_are_sequential(self, raw):
        """Tables follow the header in fixed order without gaps."""
        header = raw.header
        assert header.structs.offset == HEADER_SIZE
        assert header.fields.offset == 56 + 3 * 12
        assert header.labels.offset == 92 + 7 * 12
        assert header.field_data.offset == 176 + 7 * 16
        assert header.field_indices.offset == 288 + 10
        assert header.list_indices.offset == 298 + 28

    def test_total_size(self):
        """The example record encodes to 338 bytes."""
        assert len(to_bytes(build_example_struct())) == 338

    def test_depth_first_order(self, raw):
        """Structs and fields are numbered in depth-first order."""
        assert [s.field_count for s in raw.structs] == [3, 2, 2]
        assert [s.data_or_offset for s in raw.structs] == [0, 12, 20]
        assert indices(raw.field_indices) == [0, 1, 2, 3, 4, 5, 6]
        assert [label.as_str() for label in raw.labels] == [
            "u16", "string", "list", "u8", "i8", "u8", "i8",
        ]

    def test_list_block(self, raw):
        """List block: element count, then struct indices."""
        list_field = raw.fields[2]
        assert list_field.type == FieldType.LIST
        assert list_field.slot_u32 == 0
        assert indices(raw.list_indices) == [2, 1, 2]

    def test_inline_and_blob_slots(self, raw):
        """Small values sit in the slot, strings in field data."""
        assert raw.fields[0].slot == b"\x01\x00\x00\x00"
        assert raw.fields[4].slot == b"\xf8\x00\x00\x00"
        assert raw.fields[1].type == FieldType.STRING
        assert raw.fields[1].slot_u32 == 0
        assert raw.field_data == b"\x06\x00\x00\x00String"

    def test_tables_do_not_overlap(self):
        """Every table of a large document slices cleanly."""
        data = to_bytes(build_module_info(area_count=5))
        raw = RawGff.read(data)
        end = HEADER_SIZE
        for name, section in raw.header.sections():
            assert section.offset == end
            end += raw.header.byte_size(name)
        assert end == len(data)


class TestStructLocator:
    """The data_or_offset field of a struct entry."""

    def test_empty_root(self):
        """Zero-field root is a valid file."""
        data = to_bytes(Struct())
        raw = RawGff.read(data)
        assert len(data) == HEADER_SIZE + 12
        assert raw.structs[0].data_or_offset == NO_FIELDS
        assert raw.structs[0].field_count == 0

    def test_single_field(self):
        """One field: the locator is the field index itself."""
        raw = plan(Struct().add("a", Scalar(FieldType.BYTE, 1)))
        assert raw.structs[0].data_or_offset == 0
        assert raw.structs[0].field_count == 1
        assert raw.field_indices == b""

    def test_tag(self):
        """The struct tag is written to the entry."""
        raw = plan(Struct(tag=42))
        assert raw.structs[0].tag == 42

    def test_nested_struct_slot(self):
        """A STRUCT field slot holds the child's struct index."""
        root = Struct().add("a", Scalar(FieldType.BYTE, 1)).add("child", Struct(tag=3))
        raw = plan(root)
        assert raw.fields[1].type == FieldType.STRUCT
        assert raw.fields[1].slot_u32 == 1
        assert raw.structs[1].tag == 3

    def test_nesting_past_recursion_limit(self):
        """Planning handles nesting deeper than the interpreter stack."""
        root = Struct()
        node = root
        for _ in range(5000):
            child = Struct()
            node.add("n", child)
            node = child
        raw = plan(root)
        assert len(raw.structs) == 5001
        assert raw.structs[-1].field_count == 0
        assert raw.fields[-1].slot_u32 == 5000

    def test_shared_struct_written_twice(self):
        """The same Struct object in two places is encoded as two structs."""
        shared = Struct(tag=4).add("x", Scalar(FieldType.BYTE, 1))
        raw = plan(Struct().add("a", shared).add("b", shared))
        assert [s.tag for s in raw.structs] == [0, 4, 4]
        assert raw.fields[0].slot_u32 == 1
        assert raw.fields[2].slot_u32 == 2


class TestEncodeErrors:
    """Encode failures abort the call."""

    def test_label_too_long(self):
        """Should reject labels over 16 bytes."""
        root = Struct().add("A" * 17, Scalar(FieldType.BYTE, 0))
        with pytest.raises(LabelTooLong):
            to_bytes(root)

    def test_label_too_long_writes_nothing(self, tmp_path):
        """The sink is not created when encoding fails."""
        path = tmp_path / "out.gff"
        root = Struct().add("A" * 17, Scalar(FieldType.BYTE, 0))
        with pytest.raises(LabelTooLong):
            save_file(root, path)
        assert not path.exists()

    def test_label_not_a_string(self):
        """Should reject non-string labels."""
        with pytest.raises(UnsupportedKeyType):
            to_bytes(Struct(fields=[(1, Scalar(FieldType.BYTE, 0))]))

    @pytest.mark.parametrize("value", [
        Scalar(FieldType.INT, 1),
        List([Struct()]),
        {"a": 1},
    ])
    def test_top_level_shape(self, value):
        """Only a Struct can be the root."""
        with pytest.raises(InvalidTopLevelShape):
            to_bytes(value)

    def test_list_element_must_be_struct(self):
        """Lists hold structs only."""
        root = Struct().add("items", List([Scalar(FieldType.BYTE, 1)]))
        with pytest.raises(InvalidValue):
            to_bytes(root)

    def test_resref_over_capacity(self):
        """RESREF length is checked against the options."""
        root = Struct().add("ref", Scalar(FieldType.RESREF, "x" * 17))
        with pytest.raises(InvalidValue):
            to_bytes(root)
        to_bytes(root, options=CodecOptions(resref_max_len=32))

    def test_unencodable_text(self):
        """Text the codec cannot encode fails."""
        root = Struct().add("name", Scalar(FieldType.STRING, "日本"))
        with pytest.raises(InvalidEncoding):
            to_bytes(root, options=CodecOptions(encoding="ascii"))

    def test_self_containing_struct(self):
        """A struct inside itself cannot be encoded."""
        root = Struct()
        root.add("me", root)
        with pytest.raises(InvalidValue):
            to_bytes(root)

    def test_struct_tag_out_of_range(self):
        """Struct tags are 32-bit unsigned."""
        with pytest.raises(InvalidValue):
            to_bytes(Struct(tag=-1))

    @pytest.mark.parametrize("tag", ["a", 1.5, None, True])
    def test_struct_tag_not_an_integer(self, tag):
        """A non-integer tag is an invalid value, not a TypeError."""
        with pytest.raises(InvalidValue):
            to_bytes(Struct(tag=tag))

    def test_nested_tag_checked(self):
        """Tags of nested structs and list elements are checked too."""
        with pytest.raises(InvalidValue):
            to_bytes(Struct().add("child", Struct(tag="x")))
        with pytest.raises(InvalidValue):
            to_bytes(Struct().add("items", List([Struct(tag=2 ** 32)])))

    def test_label_with_nul(self):
        """A NUL inside a label would be cut short on decode."""
        with pytest.raises(InvalidValue):
            to_bytes(Struct().add("a\x00b", Scalar(FieldType.BYTE, 1)))


class TestOptionsAndTags:
    """Header tags, label sharing and sinks."""

    def test_signature(self):
        """Header tags come from the arguments."""
        data = to_bytes(Struct(), signature=b"UTC ", version=b"V3.3")
        assert data[:8] == b"UTC V3.3"

    def test_document_tags(self):
        """A Document supplies its own tags."""
        doc = build_module_info()
        assert write_document(doc)[:8] == b"IFO V3.2"
        assert to_bytes(doc) == write_document(doc)

    def test_no_dedupe_by_default(self):
        """Every field gets its own label slot by default."""
        raw = plan(build_example_struct())
        assert len(raw.labels) == 7

    def test_dedupe_labels(self):
        """Fields with the same name share one label slot."""
        raw = plan(build_example_struct(), options=CodecOptions(dedupe_labels=True))
        assert [label.as_str() for label in raw.labels] == ["u16", "string", "list", "u8", "i8"]
        assert raw.fields[5].label_index == raw.fields[3].label_index

    def test_dump(self):
        """Should write the encoded bytes to a file object."""
        buf = io.BytesIO()
        dump(build_example_struct(), buf)
        assert buf.getvalue() == to_bytes(build_example_struct())

    def test_save_file(self, tmp_path):
        """Should write the encoded bytes to a path."""
        path = tmp_path / "module.ifo"
        save_file(build_module_info(), path)
        assert path.read_bytes() == to_bytes(build_module_info())

    def test_deterministic(self):
        """The same tree always encodes to the same bytes."""
        assert to_bytes(build_module_info()) == to_bytes(build_module_info())

    def test_writer_does_not_modify_input(self):
        """Encoding leaves the tree untouched."""
        root = build_example_struct()
        to_bytes(root)
        assert root == build_example_struct()
