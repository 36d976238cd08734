"""
BioWare Generic File Format (GFF) codec.

Reads and writes the GFF V3.2 container used for module, area, creature,
item and dialog files by the Aurora and Electron engines.

ARCHITECTURAL GUARANTEE:
------------------------
The codec contains ZERO knowledge of:
    - What any particular file type means
    - Which labels a file is expected to contain
    - Game rules or resource lookups

It encodes and decodes STRUCTURE only. Mapping GFF trees to game objects
happens in the caller, through the adapter.
"""

from bgff.adapter import (
    FieldSpec,
    ListShape,
    ScalarShape,
    StructShape,
    ValueBuilder,
    ValueConsumer,
    decode_into,
    extract,
    from_python,
    to_python,
)
from bgff.config import CodecOptions, load_options
from bgff.errors import (
    AdapterError,
    GFFError,
    HeaderError,
    InvalidEncoding,
    InvalidIndex,
    InvalidTopLevelShape,
    InvalidValue,
    LabelTooLong,
    MissingRequiredField,
    ShapeMismatch,
    TruncatedData,
    UnknownWireType,
    UnsupportedKeyType,
)
from bgff.layout import FieldType, Signature, Version
from bgff.model import Document, List, Scalar, Struct, Value
from bgff.reader import from_bytes, load, load_file, read_document
from bgff.strings import Gender, Language, LocString, SubString
from bgff.writer import dump, save_file, to_bytes, write_document

__version__ = "0.1.0"

__all__ = [
    "FieldSpec",
    "ListShape",
    "ScalarShape",
    "StructShape",
    "ValueBuilder",
    "ValueConsumer",
    "decode_into",
    "extract",
    "from_python",
    "to_python",
    "CodecOptions",
    "load_options",
    "AdapterError",
    "GFFError",
    "HeaderError",
    "InvalidEncoding",
    "InvalidIndex",
    "InvalidTopLevelShape",
    "InvalidValue",
    "LabelTooLong",
    "MissingRequiredField",
    "ShapeMismatch",
    "TruncatedData",
    "UnknownWireType",
    "UnsupportedKeyType",
    "FieldType",
    "Signature",
    "Version",
    "Document",
    "List",
    "Scalar",
    "Struct",
    "Value",
    "from_bytes",
    "load",
    "load_file",
    "read_document",
    "Gender",
    "Language",
    "LocString",
    "SubString",
    "dump",
    "save_file",
    "to_bytes",
    "write_document",
]
