"""
Data-Model Adapter (host data <-> Value Model).

Two directions:

    Producer: ValueBuilder receives a stream of begin/field/end calls from a
    mapping layer and assembles a Value tree. from_python() drives it from
    plain dicts, lists and scalars.

    Consumer: ValueConsumer walks a Value tree for a mapping layer.
    extract() populates plain Python data (or host objects, through a
    factory) for a target shape description.

ARCHITECTURAL RULE:
    The root of every GFF file is a Struct. The producer refuses any other
    top-level shape at the call that tries to create it, and checks labels
    when the field is produced rather than leaving it to the Writer.

Consumer policy:
    - Fields present in the tree but absent from the target shape are ignored
    - Fields named by the shape but absent from the tree are an error, unless
      the FieldSpec is optional (then its default is used)
    - When a struct repeats a label, the first occurrence is used
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List as TList, Optional, Tuple, Union

from bgff.errors import (
    AdapterError,
    InvalidTopLevelShape,
    InvalidValue,
    MissingRequiredField,
    ShapeMismatch,
)
from bgff.label import check_label
from bgff.layout import INT_RANGES, FieldType
from bgff.model import List, Scalar, Struct, Value
from bgff.reader import from_bytes
from bgff.strings import LocString


# =============================================================================
# Producer
# =============================================================================

class ValueBuilder:
    """
    Assembles a Value tree from nested begin/end calls.

    Example:
        b = ValueBuilder()
        b.begin_struct()
        b.field("u16", FieldType.WORD, 1)
        b.begin_list("list")
        b.begin_struct()
        b.field("u8", FieldType.BYTE, 7)
        b.end_struct()
        b.end_list()
        b.end_struct()
        root = b.build()

    Inside a Struct every produced value needs a label. Inside a List values
    are unlabelled and must be Structs.
    """

    def __init__(self):
        self._stack: TList[Union[Struct, List]] = []
        self._root: Optional[Struct] = None

    @property
    def depth(self) -> int:
        return len(self._stack)

    def _top_level(self, what: str) -> None:
        if self._root is not None:
            raise AdapterError(f"Cannot {what}: the top-level struct is already complete")

    def _attach(self, label: Optional[str], value: Value, what: str) -> None:
        """Place value into the open container (or make it the root)."""
        if not self._stack:
            self._top_level(what)
            if not isinstance(value, Struct):
                raise InvalidTopLevelShape(
                    f"Cannot {what} at the top level: a GFF file must start with a Struct"
                )
            if label is not None:
                raise AdapterError("The top-level struct has no label")
            return

        parent = self._stack[-1]
        if isinstance(parent, Struct):
            if label is None:
                raise AdapterError(f"Cannot {what} inside a struct without a label")
            parent.fields.append((check_label(label), value))
        else:
            if label is not None:
                raise AdapterError(f"List elements are unlabelled, got label {label!r}")
            if not isinstance(value, Struct):
                raise InvalidValue(
                    f"Cannot {what} inside a list: list elements must be Structs"
                )
            parent.items.append(value)

    def begin_struct(self, label: Optional[str] = None, tag: int = 0) -> "ValueBuilder":
        struct = Struct(tag=tag)
        self._attach(label, struct, "begin a struct")
        self._stack.append(struct)
        return self

    def end_struct(self) -> "ValueBuilder":
        if not self._stack or not isinstance(self._stack[-1], Struct):
            raise AdapterError("end_struct() without a matching begin_struct()")
        struct = self._stack.pop()
        if not self._stack:
            self._root = struct
        return self

    def begin_list(self, label: str) -> "ValueBuilder":
        if not self._stack:
            self._top_level("begin a list")
            raise InvalidTopLevelShape("Cannot begin a list at the top level: a GFF file must start with a Struct")
        if isinstance(self._stack[-1], List):
            raise InvalidValue("Lists cannot be nested directly: list elements must be Structs")
        items = List()
        self._attach(check_label(label), items, "begin a list")
        self._stack.append(items)
        return self

    def end_list(self) -> "ValueBuilder":
        if not self._stack or not isinstance(self._stack[-1], List):
            raise AdapterError("end_list() without a matching begin_list()")
        self._stack.pop()
        return self

    def field(self, label: str, kind: FieldType, value: Any) -> "ValueBuilder":
        """Produce a scalar field. The label is checked before the payload."""
        if not self._stack:
            self._top_level("produce a scalar")
            raise InvalidTopLevelShape(
                "Cannot produce a scalar at the top level: a GFF file must start with a Struct"
            )
        if isinstance(self._stack[-1], List):
            raise InvalidValue("Cannot produce a scalar inside a list: list elements must be Structs")
        check_label(label)
        self._attach(label, Scalar(kind, value), "produce a scalar")
        return self

    def add(self, label: Optional[str], value: Value) -> "ValueBuilder":
        """Produce an already built Value (label is None inside a list or at the top)."""
        if not isinstance(value, Value):
            raise InvalidValue(f"Expected a Value, got {type(value).__name__}")
        self._attach(label, value, f"add a {type(value).__name__}")
        if not self._stack:
            self._root = value
        return self

    def unit(self, label: Optional[str] = None, tag: int = 0) -> "ValueBuilder":
        """Produce a struct with no fields."""
        return self.begin_struct(label, tag).end_struct()

    def build(self) -> Struct:
        if self._stack:
            raise AdapterError(f"build() called with {len(self._stack)} container(s) still open")
        if self._root is None:
            raise AdapterError("build() called before anything was produced")
        return self._root


def infer_kind(value: Any) -> FieldType:
    """
    Pick the wire type for a plain Python scalar.

    bool -> BYTE, int -> INT, INT64 or DWORD64 (first that fits),
    float -> DOUBLE, str -> STRING, bytes -> VOID, LocString -> LOCSTRING
    """
    if isinstance(value, bool):
        return FieldType.BYTE
    if isinstance(value, int):
        for kind in (FieldType.INT, FieldType.INT64, FieldType.DWORD64):
            low, high = INT_RANGES[kind]
            if low <= value <= high:
                return kind
        raise InvalidValue(f"Integer {value} does not fit in 64 bits")
    if isinstance(value, float):
        return FieldType.DOUBLE
    if isinstance(value, str):
        return FieldType.STRING
    if isinstance(value, (bytes, bytearray)):
        return FieldType.VOID
    if isinstance(value, LocString):
        return FieldType.LOCSTRING
    raise InvalidValue(f"{type(value).__name__} has no GFF representation")


def from_python(obj: Any, tag: int = 0) -> Struct:
    """
    Build a Value tree from plain Python data.

    Mappings become Structs (keys are labels), lists and tuples become Lists
    of Structs, scalars are typed with infer_kind(). Value instances are used
    as they are. None at the top level gives an empty struct.

    Raises:
        InvalidTopLevelShape: obj is not a mapping, Struct or None
        UnsupportedKeyType: A mapping key is not a str
        LabelTooLong: A mapping key is longer than 16 bytes
        InvalidValue: A value cannot be represented
    """
    if isinstance(obj, Struct):
        return obj
    builder = ValueBuilder()
    if obj is None:
        return builder.unit(tag=tag).build()
    if not isinstance(obj, Mapping):
        raise InvalidTopLevelShape(
            f"Cannot encode {type(obj).__name__} at the top level: a GFF file must start with a mapping"
        )
    builder.begin_struct(tag=tag)
    _produce_mapping(builder, obj)
    builder.end_struct()
    return builder.build()


def _produce_mapping(builder: ValueBuilder, mapping: Mapping) -> None:
    for key, value in mapping.items():
        check_label(key)
        _produce(builder, key, value)


def _produce(builder: ValueBuilder, label: Optional[str], value: Any) -> None:
    if isinstance(value, Value):
        builder.add(label, value)
    elif isinstance(value, Mapping):
        builder.begin_struct(label)
        _produce_mapping(builder, value)
        builder.end_struct()
    elif isinstance(value, (list, tuple)):
        builder.begin_list(label)
        for item in value:
            _produce(builder, None, item)
        builder.end_list()
    elif label is None:
        raise InvalidValue(f"List elements must be mappings or Structs, got {type(value).__name__}")
    else:
        builder.field(label, infer_kind(value), value)


# =============================================================================
# Consumer
# =============================================================================

@dataclass(frozen=True)
class ScalarShape:
    """A scalar of the given kind, or of any scalar kind when kind is None."""

    kind: Optional[FieldType] = None


@dataclass(frozen=True)
class ListShape:
    """A list whose elements all have the element shape."""

    element: "Shape"


@dataclass(frozen=True)
class FieldSpec:
    """
    One requested field of a StructShape.

    Properties:
        label: GFF label to look up
        shape: Expected shape of the value (None: convert whatever is there)
        optional: Use default instead of failing when the label is absent
        default: Value used for an absent optional field
        attr: Key in the extracted dict (defaults to label)
    """

    label: str
    shape: Optional["Shape"] = None
    optional: bool = False
    default: Any = None
    attr: Optional[str] = None

    @property
    def key(self) -> str:
        return self.attr or self.label


@dataclass(frozen=True)
class StructShape:
    """
    A struct with (at least) the requested fields.

    When factory is set, the extracted dict is passed to it as keyword
    arguments, e.g. factory=SomeDataclass.
    """

    fields: Tuple[FieldSpec, ...] = ()
    factory: Optional[Callable[..., Any]] = None

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))


Shape = Union[StructShape, ListShape, ScalarShape]


class ValueConsumer:
    """
    Read-only cursor over one node of a Value tree.

    path is a dotted description of where the node sits, used in errors.
    """

    def __init__(self, value: Value, path: str = "<root>"):
        self.value = value
        self.path = path

    def current_shape(self) -> Shape:
        """Describe the node (recursively for structs and lists)."""
        value = self.value
        if isinstance(value, Struct):
            return StructShape(tuple(
                FieldSpec(label, ValueConsumer(child, label).current_shape())
                for label, child in value.fields
            ))
        if isinstance(value, List):
            if value.items:
                return ListShape(ValueConsumer(value.items[0]).current_shape())
            return ListShape(StructShape())
        return ScalarShape(value.kind)

    def fields_of(self) -> Iterator[Tuple[str, "ValueConsumer"]]:
        if not isinstance(self.value, Struct):
            raise ShapeMismatch(f"{self.path}: expected a struct, found {self._describe()}")
        for label, child in self.value.fields:
            yield label, ValueConsumer(child, f"{self.path}.{label}")

    def elements_of(self) -> Iterator["ValueConsumer"]:
        if not isinstance(self.value, List):
            raise ShapeMismatch(f"{self.path}: expected a list, found {self._describe()}")
        for i, item in enumerate(self.value.items):
            yield ValueConsumer(item, f"{self.path}[{i}]")

    def scalar(self, kind: Optional[FieldType] = None) -> Any:
        value = self.value
        if not isinstance(value, Scalar):
            raise ShapeMismatch(f"{self.path}: expected a scalar, found {self._describe()}")
        if kind is not None and value.kind != kind:
            raise ShapeMismatch(
                f"{self.path}: expected {FieldType(kind).name}, found {value.kind.name}"
            )
        return value.value

    def extract(self, shape: Optional[Shape] = None) -> Any:
        if shape is None:
            return to_python(self.value)
        if isinstance(shape, ScalarShape):
            return self.scalar(shape.kind)
        if isinstance(shape, ListShape):
            return [element.extract(shape.element) for element in self.elements_of()]
        if isinstance(shape, StructShape):
            return self._extract_struct(shape)
        raise TypeError(f"Not a shape: {shape!r}")

    def _extract_struct(self, shape: StructShape) -> Any:
        present: Dict[str, ValueConsumer] = {}
        for label, child in self.fields_of():
            present.setdefault(label, child)

        result = {}
        for spec in shape.fields:
            child = present.get(spec.label)
            if child is not None:
                result[spec.key] = child.extract(spec.shape)
            elif spec.optional:
                result[spec.key] = spec.default
            else:
                raise MissingRequiredField(spec.label)

        if shape.factory is not None:
            return shape.factory(**result)
        return result

    def _describe(self) -> str:
        if isinstance(self.value, Scalar):
            return self.value.kind.name
        return type(self.value).__name__


def to_python(value: Value) -> Any:
    """Convert a whole tree to dicts, lists and scalar payloads (first label wins)."""
    if isinstance(value, Struct):
        result = {}
        for label, child in value.fields:
            if label not in result:
                result[label] = to_python(child)
        return result
    if isinstance(value, List):
        return [to_python(item) for item in value.items]
    return value.value


def extract(value: Value, shape: Optional[Shape] = None) -> Any:
    """
    Populate plain Python data from a Value tree for a target shape.

    Raises:
        MissingRequiredField: A required field is absent
        ShapeMismatch: A node is not the shape or kind requested
    """
    return ValueConsumer(value).extract(shape)


def decode_into(data: bytes, shape: Optional[Shape] = None, options=None) -> Any:
    """Decode a GFF buffer and extract its root struct for shape."""
    return extract(from_bytes(data, options), shape)


__all__ = [
    "ValueBuilder",
    "infer_kind",
    "from_python",
    "ScalarShape",
    "ListShape",
    "FieldSpec",
    "StructShape",
    "Shape",
    "ValueConsumer",
    "to_python",
    "extract",
    "decode_into",
]
