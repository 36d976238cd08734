"""
Example documents for demos and tests.

build_example_document() is the small mixed record used throughout the test
suite. build_module_info() is shaped like a module's IFO file and uses every
wire type at least once.
"""
from bgff.layout import FieldType, Signature
from bgff.model import Document, List, Scalar, Struct
from bgff.strings import Gender, Language, LocString, SubString


def build_example_struct() -> Struct:
    root = Struct()
    root.add("u16", Scalar(FieldType.WORD, 1))
    root.add("string", Scalar(FieldType.STRING, "String"))

    items = List()
    items.append(Struct().add("u8", Scalar(FieldType.BYTE, 7)).add("i8", Scalar(FieldType.CHAR, -8)))
    items.append(Struct().add("u8", Scalar(FieldType.BYTE, 9)).add("i8", Scalar(FieldType.CHAR, -10)))
    root.add("list", items)
    return root


def build_example_document() -> Document:
    return Document(root=build_example_struct())


def build_module_info(area_count: int = 2) -> Document:
    root = Struct()

    # Header-ish scalars
    root.add("Mod_ID", Scalar(FieldType.VOID, bytes(range(16))))
    root.add("Mod_Name", Scalar(FieldType.LOCSTRING, LocString(
        str_ref=None,
        strings=[
            SubString(Language.ENGLISH, Gender.MALE, "Prelude"),
            SubString(Language.GERMAN, Gender.MALE, "Vorspiel"),
        ],
    )))
    root.add("Mod_Description", Scalar(FieldType.LOCSTRING, LocString(str_ref=0x0100_0203)))
    root.add("Mod_Tag", Scalar(FieldType.STRING, "prelude"))
    root.add("Mod_Entry_Area", Scalar(FieldType.RESREF, "area001"))
    root.add("Mod_Entry_X", Scalar(FieldType.FLOAT, 12.5))
    root.add("Mod_Entry_Y", Scalar(FieldType.FLOAT, -3.25))
    root.add("Mod_Entry_Z", Scalar(FieldType.FLOAT, 0.0))
    root.add("Mod_DawnHour", Scalar(FieldType.BYTE, 6))
    root.add("Mod_DuskHour", Scalar(FieldType.BYTE, 18))
    root.add("Mod_MinPerHour", Scalar(FieldType.BYTE, 2))
    root.add("Mod_StartYear", Scalar(FieldType.DWORD, 1372))
    root.add("Mod_XPScale", Scalar(FieldType.BYTE, 100))
    root.add("Mod_Creator_ID", Scalar(FieldType.INT, -1))
    root.add("Mod_Version", Scalar(FieldType.WORD, 3))
    root.add("Mod_Effect_NxtId", Scalar(FieldType.DWORD64, 0x1_0000_0000))
    root.add("Mod_StartTime", Scalar(FieldType.INT64, -1_234_567_890_123))
    root.add("Mod_TimeScale", Scalar(FieldType.DOUBLE, 0.125))
    root.add("Mod_Difficulty", Scalar(FieldType.SHORT, -2))
    root.add("Mod_IsSaveGame", Scalar(FieldType.CHAR, 0))

    areas = List()
    for i in range(area_count):
        areas.append(Struct(tag=6).add("Area_Name", Scalar(FieldType.RESREF, f"area{i + 1:03d}")))
    root.add("Mod_Area_list", areas)

    root.add("Mod_HakList", List())
    root.add("Mod_Expan_List", List([Struct(tag=0)]))
    root.add("Mod_Weather", Struct(tag=9).add("Wind", Scalar(FieldType.BYTE, 1)))

    return Document(root=root, signature=Signature.IFO.value)


__all__ = ["build_example_struct", "build_example_document", "build_module_info"]
