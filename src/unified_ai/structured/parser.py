"""
parser.py

PURPOSE: Turn a model's raw reply into an instance of the response type.
DEPENDENCIES: shapes, pydantic

ARCHITECTURE NOTES:
Pipeline:
1. Strip a Markdown code fence around the reply, if any
2. json.loads (floats kept as Decimal so Decimal members lose nothing)
3. Unwrap the {"result": ...} envelope when present
4. Convert the payload along describe_type(target)

Conversion is lenient about naming (keys match ignoring case and
separators, unknown keys are ignored) and strict about values: a wrong
type, a null for a non-nullable member or an unknown enum name is a
ParseError. Every failure carries the raw reply text. Nothing here
retries; that is the caller's decision.

A target of plain `str` is freeform mode: the text is returned without its
code fence, or unwrapped when the model answered with an enveloped JSON
string.

Dates, times, durations and UUIDs travel as formatted strings and are read
back with pydantic TypeAdapters, so they accept exactly what pydantic
accepts (ISO 8601).
"""

import dataclasses
import functools
import json
import logging
import operator
import re
from datetime import date, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar, overload
from uuid import UUID

from pydantic import BaseModel, TypeAdapter, ValidationError

from unified_ai.errors import ParseError
from unified_ai.naming import match_key
from unified_ai.structured.schema import RESULT_PROPERTY
from unified_ai.structured.shapes import (
    ArrayShape,
    EnumShape,
    MapShape,
    ObjectShape,
    ScalarShape,
    Shape,
    describe_type,
    type_name,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE = re.compile(r"^\s*```[\w+.-]*[ \t]*\r?\n?(?P<body>.*?)\s*```\s*$", re.DOTALL)
_FLAG_SEPARATORS = re.compile(r"\s*[,|]\s*")


class _ConversionError(Exception):
    """Internal: a value does not fit its shape. Surfaces as ParseError."""


def strip_code_fence(text: str) -> str:
    """
    Remove a surrounding Markdown code fence.

    ```json\\n{...}\\n``` becomes {...}; text without a fence is only
    stripped of surrounding whitespace.
    """
    match = _FENCE.match(text)
    if match:
        return match.group("body").strip()
    return text.strip()


@overload
def parse_response(raw_text: str, target: type[T]) -> T: ...


@overload
def parse_response(raw_text: str, target: Any) -> Any: ...


def parse_response(raw_text: str, target: Any) -> Any:
    """
    Parse a model reply into the target type.

    Args:
        raw_text: The reply exactly as received
        target: The response type (str for freeform text)

    Returns:
        An instance of target

    Raises:
        ParseError: If the reply is not JSON or does not fit the target
        SchemaGenerationError: If the target type itself cannot be described
    """
    if target is str:
        return _parse_freeform(raw_text)

    shape = describe_type(target)
    text = strip_code_fence(raw_text)
    try:
        document = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ParseError(f"Response is not valid JSON: {e}", raw_text) from e

    payload = _unwrap(document, shape)
    try:
        return _convert(payload, shape, type_name(target))
    except _ConversionError as e:
        raise ParseError(f"Response does not match {type_name(target)}: {e}", raw_text) from e


def _parse_freeform(raw_text: str) -> str:
    candidate = strip_code_fence(raw_text)
    if candidate.startswith(("{", '"')):
        try:
            document = json.loads(candidate)
        except json.JSONDecodeError:
            return candidate
        if isinstance(document, dict) and isinstance(document.get(RESULT_PROPERTY), str):
            return document[RESULT_PROPERTY]
        if isinstance(document, str):
            return document
    return candidate


def _unwrap(document: Any, shape: Shape) -> Any:
    if not isinstance(document, dict) or RESULT_PROPERTY not in document:
        return document
    # An unwrapped object that itself declares a "result" member keeps its siblings
    declares_result = isinstance(shape, ObjectShape) and any(
        match_key(field.name) == RESULT_PROPERTY for field in shape.fields
    )
    if declares_result and len(document) > 1:
        return document
    return document[RESULT_PROPERTY]


def _convert(value: Any, shape: Shape, path: str) -> Any:
    if value is None:
        if shape.nullable:
            return None
        raise _ConversionError(f"{path}: null is not allowed")

    if isinstance(shape, ScalarShape):
        return _convert_scalar(value, shape, path)
    if isinstance(shape, EnumShape):
        return _convert_enum(value, shape, path)
    if isinstance(shape, ArrayShape):
        if not isinstance(value, list):
            raise _ConversionError(f"{path}: expected an array, got {_json_kind(value)}")
        items = [_convert(item, shape.items, f"{path}[{i}]") for i, item in enumerate(value)]
        return shape.container(items)
    if isinstance(shape, MapShape):
        if not isinstance(value, dict):
            raise _ConversionError(f"{path}: expected an object, got {_json_kind(value)}")
        return {key: _convert(item, shape.values, f"{path}.{key}") for key, item in value.items()}
    return _build_object(value, shape, path)


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    return "number"


def _convert_scalar(value: Any, shape: ScalarShape, path: str) -> Any:
    kind = shape.json_type

    if kind == "string" and shape.format is not None:
        if isinstance(value, str):
            try:
                return _adapter(shape.python_type).validate_python(value)
            except ValidationError as e:
                message = e.errors()[0]["msg"]
                raise _ConversionError(
                    f"{path}: invalid {shape.format} {value!r}: {message}"
                ) from e
    elif kind == "string":
        if isinstance(value, str):
            return value if shape.python_type is str else shape.python_type(value)
    elif kind == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
    elif kind == "integer":
        if isinstance(value, bool):
            pass
        elif isinstance(value, int):
            return shape.python_type(value)
        elif isinstance(value, Decimal) and value == value.to_integral_value():
            return shape.python_type(int(value))
    elif kind == "number":
        if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
            return shape.python_type(value)
        if isinstance(value, str):
            try:
                return shape.python_type(Decimal(value))
            except InvalidOperation:
                pass

    raise _ConversionError(f"{path}: expected {kind}, got {_json_kind(value)} {value!r}")


@functools.lru_cache(maxsize=None)
def _adapter(tp: type) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def _enum_by_text(enum_type: type[Enum], text: str) -> Enum | None:
    wanted = text.strip().lower()
    for name, member in enum_type.__members__.items():
        if name.lower() == wanted:
            return member
    for member in enum_type.__members__.values():
        if str(member.value).lower() == wanted:
            return member
    return None


def _convert_enum(value: Any, shape: EnumShape, path: str) -> Any:
    if shape.enum_type is None:
        if isinstance(value, str):
            for member in shape.members:
                if member.lower() == value.lower():
                    return member
    elif isinstance(value, str):
        member = _enum_by_text(shape.enum_type, value)
        if member is not None:
            return member
        if shape.is_flag:
            parts = [part for part in _FLAG_SEPARATORS.split(value.strip()) if part]
            members = [_enum_by_text(shape.enum_type, part) for part in parts]
            if len(parts) > 1 and all(member is not None for member in members):
                return functools.reduce(operator.or_, members)
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return shape.enum_type(value)
        except ValueError:
            pass

    owner = type_name(shape.enum_type) if shape.enum_type else "Literal"
    raise _ConversionError(
        f"{path}: Invalid enum value '{value}' for type '{owner}'. "
        f"Valid values are: {', '.join(shape.members)}"
    )


def _build_object(value: Any, shape: ObjectShape, path: str) -> Any:
    if not isinstance(value, dict):
        raise _ConversionError(f"{path}: expected an object, got {_json_kind(value)}")

    supplied = {match_key(str(key)): item for key, item in value.items()}
    arguments: dict[str, Any] = {}
    for field in shape.fields:
        member_path = f"{path}.{field.name}"
        # pydantic validates by alias, the other kinds take attribute names
        target_key = field.name if shape.kind == "pydantic" else field.attribute

        for key in (match_key(field.name), match_key(field.attribute)):
            if key in supplied:
                arguments[target_key] = _convert(supplied[key], field.shape, member_path)
                break
        else:
            if not field.required:
                continue
            if field.shape.nullable:
                arguments[target_key] = None
                continue
            raise _ConversionError(f"{member_path}: required member is missing")

    return _instantiate(shape, arguments, path)


def _instantiate(shape: ObjectShape, arguments: dict[str, Any], path: str) -> Any:
    model = shape.model
    if shape.kind == "pydantic":
        assert issubclass(model, BaseModel)
        try:
            return model.model_validate(arguments)
        except ValidationError as e:
            raise _ConversionError(f"{path}: {e}") from e

    if shape.kind == "dataclass":
        try:
            return model(**arguments)
        except (TypeError, ValueError) as e:
            raise _ConversionError(f"{path}: {e}") from e

    instance = model.__new__(model)
    for name, item in arguments.items():
        setattr(instance, name, item)
    return instance


def dump_value(value: Any) -> Any:
    """JSON-friendly form of a parsed value, used by the CLI for display."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: dump_value(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (list, tuple, set, frozenset)):
        return [dump_value(item) for item in value]
    if isinstance(value, dict):
        return {key: dump_value(item) for key, item in value.items()}
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, time, timedelta, UUID)):
        return _adapter(type(value)).dump_python(value, mode="json")
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return {
            name: dump_value(item)
            for name, item in vars(value).items()
            if not name.startswith("_")
        }
    return value
