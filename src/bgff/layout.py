"""
GFF wire layout.

Single source of truth for on-disk record shapes, header tags and the
wire-type table. Reader and Writer must both go through this module.

File layout (all integers little-endian):

    Header          56 bytes
    Struct table    count x 12 bytes   (tag, data_or_offset, field_count)
    Field table     count x 12 bytes   (type, label_index, 4-byte slot)
    Label table     count x 16 bytes   (NUL padded names)
    Field data      count bytes        (variable-length records)
    Field indices   count bytes        (u32 field indices)
    List indices    count bytes        (u32 size, then size x u32 struct index)

The 4-byte field slot is polymorphic. WIRE_RULES maps every wire type to the
rule used to fill or interpret it: an inline struct format for values that fit
in four bytes, or a field-data record codec for everything else. STRUCT and
LIST slots hold a struct index and a list-indices byte offset respectively.
"""

import struct
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple

from bgff.errors import HeaderError, InvalidEncoding, InvalidValue, TruncatedData
from bgff.strings import LocString, SubString


# =============================================================================
# Record formats
# =============================================================================

# Header: [Signature(4) | Version(4) | 6 x (offset u32, count u32)] = 56 bytes
HEADER_FMT = "<4s4s12I"
HEADER_SIZE = struct.calcsize(HEADER_FMT)

STRUCT_ENTRY_FMT = "<III"
STRUCT_ENTRY_SIZE = 12

FIELD_ENTRY_FMT = "<II4s"
FIELD_ENTRY_SIZE = 12

LABEL_ENTRY_SIZE = 16

INDEX_FMT = "<I"
INDEX_SIZE = 4

# Filler written to data_or_offset of structs with no fields
NO_FIELDS = 0xFFFFFFFF
# StrRef value meaning "no TLK entry"
NO_STR_REF = 0xFFFFFFFF

DEFAULT_SIGNATURE = b"GFF "
DEFAULT_VERSION = b"V3.2"


class FieldType(IntEnum):
    """Wire type tags stored in the field table."""

    BYTE = 0
    CHAR = 1
    WORD = 2
    SHORT = 3
    DWORD = 4
    INT = 5
    DWORD64 = 6
    INT64 = 7
    FLOAT = 8
    DOUBLE = 9
    STRING = 10
    RESREF = 11
    LOCSTRING = 12
    VOID = 13
    STRUCT = 14
    LIST = 15

    @property
    def is_inline(self) -> bool:
        """Value is stored directly in the field slot."""
        return WIRE_RULES[self].inline is not None

    @property
    def is_complex(self) -> bool:
        """Value is stored in the field-data blob, the slot holds its offset."""
        return WIRE_RULES[self].record is not None

    @property
    def is_scalar(self) -> bool:
        return self not in (FieldType.STRUCT, FieldType.LIST)


SCALAR_TYPES = tuple(t for t in FieldType if t.is_scalar)


class Signature(Enum):
    """File-type tags used by the Aurora and Electron engines."""

    IFO = b"IFO "  # Module info
    ARE = b"ARE "  # Area static properties
    GIT = b"GIT "  # Area dynamic instances
    GIC = b"GIC "  # Area comments
    UTC = b"UTC "  # Creature blueprint
    UTD = b"UTD "  # Door blueprint
    UTE = b"UTE "  # Encounter blueprint
    UTI = b"UTI "  # Item blueprint
    UTP = b"UTP "  # Placeable blueprint
    UTS = b"UTS "  # Sound blueprint
    UTM = b"UTM "  # Store blueprint
    UTT = b"UTT "  # Trigger blueprint
    UTW = b"UTW "  # Waypoint blueprint
    DLG = b"DLG "  # Dialog
    JRL = b"JRL "  # Journal
    FAC = b"FAC "  # Faction
    ITP = b"ITP "  # Palette
    PTM = b"PTM "  # Plot manager
    PTT = b"PTT "  # Plot wizard blueprint
    BIC = b"BIC "  # Player character

    @classmethod
    def lookup(cls, tag: bytes) -> Optional["Signature"]:
        """Return the known signature for a tag, or None for other file kinds."""
        for sig in cls:
            if sig.value == tag:
                return sig
        return None


@dataclass(frozen=True)
class Version:
    """Format version tag, e.g. b"V3.2"."""

    raw: bytes = DEFAULT_VERSION

    @classmethod
    def new(cls, major: int, minor: int) -> "Version":
        return cls(f"V{major}.{minor}".encode("ascii"))

    @property
    def major(self) -> int:
        return self.raw[1] - ord("0")

    @property
    def minor(self) -> int:
        return self.raw[3] - ord("0")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


def coerce_tag(value, what: str) -> bytes:
    """Turn a Signature, Version, str or bytes into a 4-byte header tag."""
    if isinstance(value, Signature):
        value = value.value
    elif isinstance(value, Version):
        value = value.raw
    elif isinstance(value, str):
        value = value.encode("ascii")
    if not isinstance(value, (bytes, bytearray)) or len(value) != 4:
        raise InvalidValue(f"{what} must be exactly 4 bytes, got {value!r}")
    return bytes(value)


# =============================================================================
# Header and table entries
# =============================================================================

@dataclass
class Section:
    """Location of one table: byte offset from file start and count."""

    offset: int = 0
    count: int = 0


# Table name, entry size in bytes (None: count is already a byte count)
SECTION_LAYOUT: Tuple[Tuple[str, Optional[int]], ...] = (
    ("structs", STRUCT_ENTRY_SIZE),
    ("fields", FIELD_ENTRY_SIZE),
    ("labels", LABEL_ENTRY_SIZE),
    ("field_data", None),
    ("field_indices", None),
    ("list_indices", None),
)


@dataclass
class Header:
    """
    GFF header.

    Properties:
        signature: File-type tag (4 bytes)
        version: Version tag (4 bytes)
        structs, fields, labels: entry counts
        field_data, field_indices, list_indices: byte counts
    """

    signature: bytes = DEFAULT_SIGNATURE
    version: bytes = DEFAULT_VERSION
    structs: Section = field(default_factory=Section)
    fields: Section = field(default_factory=Section)
    labels: Section = field(default_factory=Section)
    field_data: Section = field(default_factory=Section)
    field_indices: Section = field(default_factory=Section)
    list_indices: Section = field(default_factory=Section)

    def sections(self) -> List[Tuple[str, Section]]:
        return [(name, getattr(self, name)) for name, _ in SECTION_LAYOUT]

    def byte_size(self, name: str) -> int:
        """Size in bytes of the named table."""
        entry_size = dict(SECTION_LAYOUT)[name]
        section = getattr(self, name)
        return section.count if entry_size is None else section.count * entry_size

    def pack(self) -> bytes:
        values = []
        for _, section in self.sections():
            values.extend((section.offset, section.count))
        return struct.pack(HEADER_FMT, self.signature, self.version, *values)

    @classmethod
    def unpack(cls, data: bytes) -> "Header":
        if len(data) < HEADER_SIZE:
            raise TruncatedData(
                f"File is {len(data)} bytes, the header alone needs {HEADER_SIZE}", offset=len(data)
            )
        signature, version, *values = struct.unpack_from(HEADER_FMT, data, 0)
        header = cls(signature=signature, version=version)
        for i, (name, _) in enumerate(SECTION_LAYOUT):
            setattr(header, name, Section(offset=values[2 * i], count=values[2 * i + 1]))
        return header

    def validate(self, file_size: int) -> None:
        """
        Check every table lies inside the file and that tables do not overlap.

        Raises:
            TruncatedData: A table extends past file_size
            HeaderError: Tables overlap, start inside the header, or are misaligned
        """
        spans = []
        for name, section in self.sections():
            size = self.byte_size(name)
            if name in ("field_indices", "list_indices") and size % INDEX_SIZE:
                raise HeaderError(f"Size of {name} table is not a multiple of {INDEX_SIZE}", offset=size)
            if size == 0:
                continue
            if section.offset < HEADER_SIZE:
                raise HeaderError(f"Table {name} starts inside the header", offset=section.offset)
            if section.offset + size > file_size:
                raise TruncatedData(
                    f"Table {name} ends at byte {section.offset + size} past end of file ({file_size} bytes)",
                    offset=section.offset,
                )
            spans.append((section.offset, section.offset + size, name))

        spans.sort()
        for (_, end, name), (start, _, other) in zip(spans, spans[1:]):
            if start < end:
                raise HeaderError(f"Tables {name} and {other} overlap", offset=start)

        if self.structs.count == 0:
            raise HeaderError("File has no top-level struct")


@dataclass
class StructEntry:
    tag: int = 0
    data_or_offset: int = NO_FIELDS
    field_count: int = 0

    def pack(self) -> bytes:
        return struct.pack(STRUCT_ENTRY_FMT, self.tag, self.data_or_offset, self.field_count)

    @classmethod
    def unpack_from(cls, data: bytes, offset: int) -> "StructEntry":
        return cls(*struct.unpack_from(STRUCT_ENTRY_FMT, data, offset))


@dataclass
class FieldEntry:
    type: int
    label_index: int
    slot: bytes = b"\x00\x00\x00\x00"

    def pack(self) -> bytes:
        return struct.pack(FIELD_ENTRY_FMT, self.type, self.label_index, self.slot)

    @classmethod
    def unpack_from(cls, data: bytes, offset: int) -> "FieldEntry":
        return cls(*struct.unpack_from(FIELD_ENTRY_FMT, data, offset))

    @property
    def slot_u32(self) -> int:
        return struct.unpack(INDEX_FMT, self.slot)[0]


def pack_index(value: int) -> bytes:
    return struct.pack(INDEX_FMT, value)


# =============================================================================
# Scalar validation
# =============================================================================

INT_RANGES: Dict[FieldType, Tuple[int, int]] = {
    FieldType.BYTE: (0, 0xFF),
    FieldType.CHAR: (-0x80, 0x7F),
    FieldType.WORD: (0, 0xFFFF),
    FieldType.SHORT: (-0x8000, 0x7FFF),
    FieldType.DWORD: (0, 0xFFFF_FFFF),
    FieldType.INT: (-0x8000_0000, 0x7FFF_FFFF),
    FieldType.DWORD64: (0, 0xFFFF_FFFF_FFFF_FFFF),
    FieldType.INT64: (-0x8000_0000_0000_0000, 0x7FFF_FFFF_FFFF_FFFF),
}


def check_scalar(kind: FieldType, value):
    """
    Validate a scalar payload against its wire type and return it normalized.

    Raises:
        InvalidValue: Wrong Python type, or integer/float out of range
    """
    if kind in INT_RANGES:
        if not isinstance(value, int):
            raise InvalidValue(f"{kind.name} expects an int, got {type(value).__name__}")
        low, high = INT_RANGES[kind]
        if not low <= value <= high:
            raise InvalidValue(f"{kind.name} value {value} is outside {low}..{high}")
        return int(value)

    if kind in (FieldType.FLOAT, FieldType.DOUBLE):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidValue(f"{kind.name} expects a float, got {type(value).__name__}")
        value = float(value)
        if kind == FieldType.FLOAT:
            # Stored as f32, so keep the value the wire will give back
            try:
                value = struct.unpack("<f", struct.pack("<f", value))[0]
            except OverflowError:
                raise InvalidValue(f"FLOAT value {value} does not fit in 32 bits")
        return value

    if kind in (FieldType.STRING, FieldType.RESREF):
        if not isinstance(value, str):
            raise InvalidValue(f"{kind.name} expects a str, got {type(value).__name__}")
        return value

    if kind == FieldType.LOCSTRING:
        if not isinstance(value, LocString):
            raise InvalidValue(f"LOCSTRING expects a LocString, got {type(value).__name__}")
        return value

    if kind == FieldType.VOID:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidValue(f"VOID expects bytes, got {type(value).__name__}")
        return bytes(value)

    raise InvalidValue(f"{FieldType(kind).name} is not a scalar wire type")


# =============================================================================
# Field-data record codecs
# =============================================================================

def _need(blob: bytes, offset: int, size: int, what: str) -> None:
    if offset < 0 or offset + size > len(blob):
        raise TruncatedData(
            f"{what} record of {size} bytes runs past the field data ({len(blob)} bytes)", offset=offset
        )


def _encode_text(text: str, options, what: str) -> bytes:
    try:
        return text.encode(options.encoding, options.errors)
    except UnicodeEncodeError as e:
        raise InvalidEncoding(f"{what} {text!r} cannot be encoded as {options.encoding}: {e.reason}")


def _decode_text(data: bytes, options, what: str, offset: int) -> str:
    try:
        return data.decode(options.encoding, options.errors)
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"{what} bytes are not valid {options.encoding}: {e.reason}", offset=offset)


class FixedRecord:
    """Fixed-size number (8-byte integers and doubles)."""

    def __init__(self, fmt: str):
        self.fmt = fmt
        self.size = struct.calcsize(fmt)

    def encode(self, value, options) -> bytes:
        return struct.pack(self.fmt, value)

    def decode(self, blob: bytes, offset: int, options):
        _need(blob, offset, self.size, "Number")
        return struct.unpack_from(self.fmt, blob, offset)[0]


class BlobRecord:
    """Length-prefixed bytes, optionally decoded as text."""

    def __init__(self, prefix_fmt: str, text: bool, name: str):
        self.prefix_fmt = prefix_fmt
        self.prefix_size = struct.calcsize(prefix_fmt)
        self.text = text
        self.name = name

    def capacity(self, options) -> int:
        if self.prefix_size == 1:
            return options.resref_max_len
        return 0xFFFF_FFFF

    def encode(self, value, options) -> bytes:
        data = _encode_text(value, options, self.name) if self.text else value
        if len(data) > self.capacity(options):
            raise InvalidValue(
                f"{self.name} of {len(data)} bytes exceeds capacity of {self.capacity(options)} bytes"
            )
        return struct.pack(self.prefix_fmt, len(data)) + data

    def decode(self, blob: bytes, offset: int, options):
        _need(blob, offset, self.prefix_size, self.name)
        (length,) = struct.unpack_from(self.prefix_fmt, blob, offset)
        start = offset + self.prefix_size
        _need(blob, start, length, self.name)
        data = blob[start:start + length]
        return _decode_text(data, options, self.name, start) if self.text else data


class LocStringRecord:
    """
    Localized string:
        u32 total size (bytes after this field), u32 StrRef, u32 count,
        count x (u32 string id, u32 length, bytes)
    """

    def encode(self, value: LocString, options) -> bytes:
        body = bytearray()
        str_ref = NO_STR_REF if value.str_ref is None else value.str_ref
        if not 0 <= str_ref <= 0xFFFF_FFFF:
            raise InvalidValue(f"StrRef {str_ref} does not fit in 32 bits")
        body += struct.pack("<II", str_ref, len(value.strings))
        for sub in value.strings:
            data = _encode_text(sub.text, options, "LocString substring")
            if not 0 <= sub.string_id <= 0xFFFF_FFFF:
                raise InvalidValue(f"Substring id {sub.string_id} does not fit in 32 bits")
            body += struct.pack("<II", sub.string_id, len(data))
            body += data
        return struct.pack("<I", len(body)) + bytes(body)

    def decode(self, blob: bytes, offset: int, options) -> LocString:
        _need(blob, offset, 12, "LocString")
        total, str_ref, count = struct.unpack_from("<III", blob, offset)
        _need(blob, offset + 4, total, "LocString")
        pos = offset + 12
        strings = []
        for _ in range(count):
            _need(blob, pos, 8, "LocString substring")
            string_id, length = struct.unpack_from("<II", blob, pos)
            pos += 8
            _need(blob, pos, length, "LocString substring")
            text = _decode_text(blob[pos:pos + length], options, "LocString substring", pos)
            strings.append(SubString.from_string_id(string_id, text))
            pos += length
        return LocString(str_ref=None if str_ref == NO_STR_REF else str_ref, strings=strings)


@dataclass(frozen=True)
class WireRule:
    """How a wire type uses the 4-byte field slot."""

    inline: Optional[str] = None
    record: object = None


WIRE_RULES: Dict[FieldType, WireRule] = {
    FieldType.BYTE: WireRule(inline="<B"),
    FieldType.CHAR: WireRule(inline="<b"),
    FieldType.WORD: WireRule(inline="<H"),
    FieldType.SHORT: WireRule(inline="<h"),
    FieldType.DWORD: WireRule(inline="<I"),
    FieldType.INT: WireRule(inline="<i"),
    FieldType.FLOAT: WireRule(inline="<f"),
    FieldType.DWORD64: WireRule(record=FixedRecord("<Q")),
    FieldType.INT64: WireRule(record=FixedRecord("<q")),
    FieldType.DOUBLE: WireRule(record=FixedRecord("<d")),
    FieldType.STRING: WireRule(record=BlobRecord("<I", text=True, name="String")),
    FieldType.RESREF: WireRule(record=BlobRecord("<B", text=True, name="ResRef")),
    FieldType.LOCSTRING: WireRule(record=LocStringRecord()),
    FieldType.VOID: WireRule(record=BlobRecord("<I", text=False, name="Void")),
    FieldType.STRUCT: WireRule(),
    FieldType.LIST: WireRule(),
}


def pack_inline(kind: FieldType, value) -> bytes:
    """Encode an inline scalar into a 4-byte slot, zero padded."""
    return struct.pack(WIRE_RULES[kind].inline, value).ljust(4, b"\x00")


def unpack_inline(kind: FieldType, slot: bytes):
    return struct.unpack_from(WIRE_RULES[kind].inline, slot, 0)[0]
