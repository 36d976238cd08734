#!/usr/bin/env python3
"""
Round-trip Demo: Value tree → GFF bytes → Value tree → YAML

Shows the full workflow:
1. Build an IFO-style document
2. Encode it to GFF bytes
3. Inspect the raw tables
4. Decode it back and compare
5. Extract a typed record through the adapter
6. Dump the tree as YAML
"""

import sys

from bgff import FieldSpec, FieldType, ListShape, ScalarShape, StructShape, decode_into, read_document, to_bytes
from bgff.examples import build_module_info
from bgff.raw import RawGff
from bgff.serialization import document_to_yaml


def main():
    print("=" * 80)
    print("ROUND-TRIP DEMO: Value tree → GFF → Value tree → YAML")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Build
    # =========================================================================
    print("\n1. BUILDING DOCUMENT...")
    doc = build_module_info(area_count=3)
    print(f"   ✓ File type: {doc.file_type.name}")
    print(f"   ✓ Version: {doc.format_version}")
    print(f"   ✓ Top-level fields: {len(doc.root)}")

    # =========================================================================
    # STEP 2: Encode
    # =========================================================================
    print("\n2. ENCODING...")
    data = to_bytes(doc)
    print(f"   ✓ {len(data)} bytes")

    # =========================================================================
    # STEP 3: Inspect tables
    # =========================================================================
    print("\n3. TABLES...")
    raw = RawGff.read(data)
    for name, section in raw.header.sections():
        print(f"   {name:<14} offset {section.offset:>6}  count {section.count:>6}")

    # =========================================================================
    # STEP 4: Decode
    # =========================================================================
    print("\n4. DECODING...")
    decoded = read_document(data)
    same = decoded == doc
    print(f"   ✓ Decoded tree equals original: {same}")

    # =========================================================================
    # STEP 5: Extract
    # =========================================================================
    print("\n5. EXTRACTING...")
    shape = StructShape((
        FieldSpec("Mod_Tag", ScalarShape(FieldType.STRING), attr="tag"),
        FieldSpec("Mod_Entry_Area", ScalarShape(FieldType.RESREF), attr="entry_area"),
        FieldSpec(
            "Mod_Area_list",
            ListShape(StructShape((FieldSpec("Area_Name", ScalarShape(FieldType.RESREF)),))),
            attr="areas",
        ),
        FieldSpec("Mod_Hak", ScalarShape(FieldType.STRING), optional=True, default="", attr="hak"),
    ))
    info = decode_into(data, shape)
    print(f"   ✓ Tag: {info['tag']}")
    print(f"   ✓ Entry area: {info['entry_area']}")
    print(f"   ✓ Areas: {[a['Area_Name'] for a in info['areas']]}")
    print(f"   ✓ Hak (optional, absent): {info['hak']!r}")

    # =========================================================================
    # STEP 6: YAML
    # =========================================================================
    print("\n6. YAML DUMP (first 20 lines)...")
    for line in document_to_yaml(decoded).splitlines()[:20]:
        print(f"   {line}")

    print("\n" + "=" * 80)
    return 0 if same else 1


if __name__ == "__main__":
    sys.exit(main())
