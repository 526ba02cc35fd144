"""
shapes.py

PURPOSE: Describe a Python response type as a closed tree of shapes.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
describe_type() is the single place that looks at type annotations. Both
the schema generator and the response parser consume its output, so the
schema sent to a model and the conversion applied to its reply can never
disagree about a type.

    Shape := ScalarShape | EnumShape | ArrayShape | ObjectShape | MapShape

Supported inputs:
- str, int, float, Decimal, bool
- datetime, date, time, timedelta, UUID (strings with a JSON Schema format)
- Enum / Flag subclasses and Literal["a", "b"]
- list[T], set[T], frozenset[T], tuple[T, ...], Sequence[T]
- dict[str, T] (maps; only allowed by non-strict schemas)
- pydantic models, dataclasses and plain classes with annotated attributes
- Optional[T] / T | None (marks the shape nullable)
- Annotated[T, "description"] or Annotated[T, Field(description=...)]

Anything else (callables, Any, multi-type unions, recursive types) raises
SchemaGenerationError naming the offending member.
"""

import collections.abc
import dataclasses
import inspect
import types
import typing
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum, Flag
from typing import Any, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel

from unified_ai.errors import SchemaGenerationError

_SEQUENCE_ORIGINS = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
    collections.abc.Iterable: list,
}

_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

# datetime before date: datetime is a date subclass
_STRING_FORMATS = (
    (datetime, "date-time"),
    (date, "date"),
    (time, "time"),
    (timedelta, "duration"),
    (UUID, "uuid"),
)


@dataclass(frozen=True)
class ScalarShape:
    json_type: str  # string | integer | number | boolean
    python_type: type
    nullable: bool = False
    description: str | None = None
    format: str | None = None  # JSON Schema string format (date-time, uuid, ...)


@dataclass(frozen=True)
class EnumShape:
    members: tuple[str, ...]
    enum_type: type[Enum] | None  # None for Literal
    is_flag: bool = False
    nullable: bool = False
    description: str | None = None


@dataclass(frozen=True)
class ArrayShape:
    items: "Shape"
    container: type = list
    nullable: bool = False
    description: str | None = None


@dataclass(frozen=True)
class MapShape:
    values: "Shape"
    nullable: bool = False
    description: str | None = None


@dataclass(frozen=True)
class FieldShape:
    """One member of an object."""

    name: str  # Name on the wire (pydantic alias if set)
    attribute: str  # Name on the Python object
    shape: "Shape"
    required: bool  # False when the member has a default
    description: str | None = None


@dataclass(frozen=True)
class ObjectShape:
    model: type
    kind: str  # pydantic | dataclass | plain
    fields: tuple[FieldShape, ...]
    nullable: bool = False
    description: str | None = None


Shape = Union[ScalarShape, EnumShape, ArrayShape, MapShape, ObjectShape]


def type_name(tp: Any) -> str:
    """Readable name of a type or annotation."""
    return getattr(tp, "__name__", None) or repr(tp)


def _docstring(tp: type) -> str | None:
    doc = tp.__dict__.get("__doc__")
    if not doc:
        return None
    # Generated docstrings carry no meaning
    if doc.startswith(f"{tp.__name__}(") or doc == "An enumeration.":
        return None
    return inspect.cleandoc(doc)


def _annotated_description(metadata: tuple[Any, ...]) -> str | None:
    for item in metadata:
        if isinstance(item, str):
            return item
        description = getattr(item, "description", None)
        if isinstance(description, str):
            return description
    return None


def describe_type(tp: Any) -> Shape:
    """
    Describe a response type.

    Args:
        tp: The type or annotation to describe

    Returns:
        The root Shape

    Raises:
        SchemaGenerationError: If any member cannot be described
    """
    return _describe(tp, type_name(tp), ())


def _describe(tp: Any, path: str, stack: tuple[type, ...]) -> Shape:
    origin = get_origin(tp)

    if origin is typing.Annotated:
        base, *metadata = get_args(tp)
        shape = _describe(base, path, stack)
        description = _annotated_description(tuple(metadata))
        return replace(shape, description=description) if description else shape

    if origin is Union or origin is types.UnionType:
        arguments = get_args(tp)
        members = [arg for arg in arguments if arg is not type(None)]
        if len(members) != 1:
            raise SchemaGenerationError(
                "Unions of several types cannot be described; use one type or Optional[T]",
                path,
            )
        shape = _describe(members[0], path, stack)
        if len(members) < len(arguments):
            shape = replace(shape, nullable=True)
        return shape

    if origin is Literal:
        values = get_args(tp)
        if not values or not all(isinstance(value, str) for value in values):
            raise SchemaGenerationError("Only string Literal values are supported", path)
        return EnumShape(members=tuple(values), enum_type=None)

    if origin is collections.abc.Callable or tp is collections.abc.Callable:
        raise SchemaGenerationError("Callable members have no JSON representation", path)

    if origin in _SEQUENCE_ORIGINS:
        element = _element_type(tp, origin, path)
        return ArrayShape(
            items=_describe(element, f"{path}[]", stack),
            container=_SEQUENCE_ORIGINS[origin],
        )

    if origin in _MAP_ORIGINS:
        arguments = get_args(tp)
        if len(arguments) != 2:
            raise SchemaGenerationError("Maps need key and value types", path)
        if arguments[0] is not str:
            raise SchemaGenerationError("Map keys must be str", path)
        return MapShape(values=_describe(arguments[1], f"{path}{{}}", stack))

    if origin is not None:
        raise SchemaGenerationError(f"Unsupported generic type {tp!r}", path)

    if tp is Any or tp is object:
        raise SchemaGenerationError("Any has no JSON representation", path)
    if not isinstance(tp, type):
        raise SchemaGenerationError(f"Cannot describe {tp!r}", path)

    return _describe_class(tp, path, stack)


def _element_type(tp: Any, origin: Any, path: str) -> Any:
    arguments = get_args(tp)
    if origin is tuple:
        if len(arguments) == 2 and arguments[1] is Ellipsis:
            return arguments[0]
        raise SchemaGenerationError(
            "Fixed-length tuples are not supported; use tuple[T, ...]", path
        )
    if len(arguments) != 1:
        raise SchemaGenerationError(f"{type_name(origin)} needs an element type", path)
    return arguments[0]


def _describe_class(tp: type, path: str, stack: tuple[type, ...]) -> Shape:
    # Order matters: bool is an int, IntEnum/StrEnum are ints/strs
    if issubclass(tp, bool):
        return ScalarShape("boolean", tp)
    if issubclass(tp, Enum):
        return EnumShape(
            members=tuple(tp.__members__),
            enum_type=tp,
            is_flag=issubclass(tp, Flag),
            description=_docstring(tp),
        )
    for format_type, string_format in _STRING_FORMATS:
        if issubclass(tp, format_type):
            return ScalarShape("string", tp, format=string_format)
    if issubclass(tp, str):
        return ScalarShape("string", tp)
    if issubclass(tp, int):
        return ScalarShape("integer", tp)
    if issubclass(tp, (float, Decimal)):
        return ScalarShape("number", tp)
    if issubclass(tp, (bytes, bytearray)):
        raise SchemaGenerationError("Binary members have no JSON representation", path)
    if tp in (list, tuple, set, frozenset, dict):
        raise SchemaGenerationError(f"Bare {tp.__name__} needs type parameters", path)

    if tp in stack:
        raise SchemaGenerationError(f"Recursive type {tp.__name__} cannot be described", path)
    stack = (*stack, tp)

    if issubclass(tp, BaseModel):
        fields = tuple(
            _field(
                name=info.alias or name,
                attribute=name,
                annotation=info.annotation,
                required=info.is_required(),
                description=info.description or _annotated_description(tuple(info.metadata)),
                path=path,
                stack=stack,
            )
            for name, info in tp.model_fields.items()
        )
        return ObjectShape(tp, "pydantic", fields, description=_docstring(tp))

    hints = _type_hints(tp, path)

    if dataclasses.is_dataclass(tp):
        fields = tuple(
            _field(
                name=item.name,
                attribute=item.name,
                annotation=hints.get(item.name, item.type),
                required=(
                    item.default is dataclasses.MISSING
                    and item.default_factory is dataclasses.MISSING
                ),
                description=item.metadata.get("description"),
                path=path,
                stack=stack,
            )
            for item in dataclasses.fields(tp)
            if item.init
        )
        return ObjectShape(tp, "dataclass", fields, description=_docstring(tp))

    members = {
        name: annotation
        for name, annotation in hints.items()
        if not name.startswith("_") and get_origin(annotation) is not typing.ClassVar
    }
    if not members:
        raise SchemaGenerationError(f"{tp.__name__} has no annotated public members", path)
    fields = tuple(
        _field(
            name=name,
            attribute=name,
            annotation=annotation,
            required=not hasattr(tp, name),
            description=None,
            path=path,
            stack=stack,
        )
        for name, annotation in members.items()
    )
    return ObjectShape(tp, "plain", fields, description=_docstring(tp))


def _type_hints(tp: type, path: str) -> dict[str, Any]:
    try:
        return typing.get_type_hints(tp, include_extras=True)
    except NameError as e:
        raise SchemaGenerationError(f"Unresolvable annotation: {e}", path) from e


def _field(
    *,
    name: str,
    attribute: str,
    annotation: Any,
    required: bool,
    description: str | None,
    path: str,
    stack: tuple[type, ...],
) -> FieldShape:
    shape = _describe(annotation, f"{path}.{name}", stack)
    return FieldShape(
        name=name,
        attribute=attribute,
        shape=shape,
        required=required,
        description=description or shape.description,
    )
