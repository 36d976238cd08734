"""
Serialization helpers for GFF values (Struct, List, Scalar, Document).

Provides lossless JSON/YAML round-trip via intermediate dict representation,
useful for diffing game files or editing them by hand. Field order and
repeated labels are kept: struct fields are a list, not a mapping.

    {"type": "struct", "tag": 0, "fields": [{"label": "Name", "value": {...}}]}
    {"type": "list", "items": [...]}
    {"type": "word", "value": 1}
"""
from __future__ import annotations

import base64
import json
from typing import Any, Dict

import yaml

from bgff.layout import FieldType
from bgff.model import Document, List, Scalar, Struct, Value
from bgff.strings import LocString, SubString


def locstring_to_dict(s: LocString) -> Dict[str, Any]:
    return {
        "str_ref": s.str_ref,
        "strings": [
            {"language": int(sub.language), "gender": int(sub.gender), "text": sub.text}
            for sub in s.strings
        ],
    }


def locstring_from_dict(d: Dict[str, Any]) -> LocString:
    return LocString(
        str_ref=d.get("str_ref"),
        strings=[SubString(s["language"], s["gender"], s["text"]) for s in d.get("strings", [])],
    )


def scalar_to_dict(s: Scalar) -> Dict[str, Any]:
    if s.kind == FieldType.VOID:
        payload = base64.b64encode(s.value).decode("ascii")
    elif s.kind == FieldType.LOCSTRING:
        payload = locstring_to_dict(s.value)
    else:
        payload = s.value
    return {"type": s.kind.name.lower(), "value": payload}


def scalar_from_dict(d: Dict[str, Any]) -> Scalar:
    try:
        kind = FieldType[d["type"].upper()]
    except KeyError:
        raise TypeError(f"Unsupported value dict type: {d.get('type')}")
    payload = d["value"]
    if kind == FieldType.VOID:
        payload = base64.b64decode(payload)
    elif kind == FieldType.LOCSTRING:
        payload = locstring_from_dict(payload)
    return Scalar(kind, payload)


def value_to_dict(v: Value) -> Dict[str, Any]:
    if isinstance(v, Struct):
        return {
            "type": "struct",
            "tag": v.tag,
            "fields": [{"label": label, "value": value_to_dict(child)} for label, child in v.fields],
        }
    if isinstance(v, List):
        return {"type": "list", "items": [value_to_dict(item) for item in v.items]}
    if isinstance(v, Scalar):
        return scalar_to_dict(v)
    raise TypeError(f"Unsupported Value type: {type(v)}")


def value_from_dict(d: Dict[str, Any]) -> Value:
    t = d.get("type")
    if t == "struct":
        return Struct(
            fields=[(f["label"], value_from_dict(f["value"])) for f in d.get("fields", [])],
            tag=d.get("tag", 0),
        )
    if t == "list":
        return List([value_from_dict(item) for item in d.get("items", [])])
    return scalar_from_dict(d)


def document_to_dict(doc: Document) -> Dict[str, Any]:
    # latin-1 maps every byte to one character, so any tag survives
    return {
        "signature": doc.signature.decode("latin-1"),
        "version": doc.version.decode("latin-1"),
        "root": value_to_dict(doc.root),
    }


def document_from_dict(d: Dict[str, Any]) -> Document:
    root = value_from_dict(d["root"])
    if not isinstance(root, Struct):
        raise TypeError(f"Document root must be a struct, got {d['root'].get('type')}")
    return Document(
        root=root,
        signature=d.get("signature", "GFF ").encode("latin-1"),
        version=d.get("version", "V3.2").encode("latin-1"),
    )


def document_to_json(doc: Document) -> str:
    return json.dumps(document_to_dict(doc), sort_keys=True)


def document_from_json(s: str) -> Document:
    d = json.loads(s)
    return document_from_dict(d)


def document_to_yaml(doc: Document) -> str:
    return yaml.safe_dump(document_to_dict(doc))


def document_from_yaml(s: str) -> Document:
    d = yaml.safe_load(s)
    return document_from_dict(d)


__all__ = [
    "locstring_to_dict",
    "locstring_from_dict",
    "scalar_to_dict",
    "scalar_from_dict",
    "value_to_dict",
    "value_from_dict",
    "document_to_dict",
    "document_from_dict",
    "document_to_json",
    "document_from_json",
    "document_to_yaml",
    "document_from_yaml",
]
