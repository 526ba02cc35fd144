"""
schema.py

PURPOSE: Generate the JSON Schema used as a structured-output constraint.
DEPENDENCIES: shapes

ARCHITECTURE NOTES:
The generated document always has the same envelope:

    {"type": "object",
     "properties": {"result": <schema of T>},
     "required": ["result"],
     "additionalProperties": false}

Strict mode (the default) matches the strictest vendor profile: every
object lists all of its properties as required, forbids additional
properties and rejects maps. Non-strict mode only requires members that
are neither nullable nor defaulted, and renders dict[str, T] as an object
with typed additionalProperties.

With allow_null_union, nullable members are typed ["<type>", "null"] so a
strict vendor can still return null for them.
"""

import json
from typing import Any

from unified_ai.errors import SchemaGenerationError
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

RESULT_PROPERTY = "result"


def build_schema(
    tp: Any,
    *,
    strict: bool = True,
    allow_null_union: bool = False,
) -> dict[str, Any]:
    """
    Build the enveloped JSON Schema for a response type.

    Args:
        tp: The response type
        strict: List every property as required and reject maps
        allow_null_union: Type nullable members as ["<type>", "null"]

    Returns:
        The schema as a dict

    Raises:
        SchemaGenerationError: If a member cannot be described
    """
    root = _schema_for(
        describe_type(tp),
        strict=strict,
        null_union=allow_null_union,
        path=type_name(tp),
    )
    return {
        "type": "object",
        "properties": {RESULT_PROPERTY: root},
        "required": [RESULT_PROPERTY],
        "additionalProperties": False,
    }


def generate_schema(tp: Any, *, strict: bool = True, allow_null_union: bool = False) -> str:
    """Build the enveloped schema and serialize it to JSON text."""
    return json.dumps(
        build_schema(tp, strict=strict, allow_null_union=allow_null_union),
        ensure_ascii=False,
    )


def schema_description(tp: Any) -> str:
    """Human-readable description of a response type for vendor schema metadata."""
    description = describe_type(tp).description
    return description or f"Response format for {type_name(tp)}"


def _schema_for(shape: Shape, *, strict: bool, null_union: bool, path: str) -> dict[str, Any]:
    schema: dict[str, Any]

    if isinstance(shape, ScalarShape):
        schema = {"type": shape.json_type}
        if shape.format:
            schema["format"] = shape.format

    elif isinstance(shape, EnumShape):
        schema = {"type": "string", "enum": list(shape.members)}

    elif isinstance(shape, ArrayShape):
        schema = {
            "type": "array",
            "items": _schema_for(
                shape.items, strict=strict, null_union=null_union, path=f"{path}[]"
            ),
            "additionalProperties": False,
        }

    elif isinstance(shape, MapShape):
        if strict:
            raise SchemaGenerationError(
                "Maps are not allowed in strict schemas; use a nested type or strict=False",
                path,
            )
        schema = {
            "type": "object",
            "additionalProperties": _schema_for(
                shape.values, strict=strict, null_union=null_union, path=f"{path}{{}}"
            ),
        }

    elif isinstance(shape, ObjectShape):
        properties: dict[str, Any] = {}
        required: list[str] = []
        for field in shape.fields:
            member = _schema_for(
                field.shape, strict=strict, null_union=null_union, path=f"{path}.{field.name}"
            )
            if field.description:
                member["description"] = field.description
            properties[field.name] = member
            if strict or (field.required and not field.shape.nullable):
                required.append(field.name)
        schema = {
            "type": "object",
            "properties": properties,
            "required": required,
            "additionalProperties": False,
        }

    else:
        raise SchemaGenerationError(f"Unknown shape {shape!r}", path)

    if shape.nullable and null_union:
        schema["type"] = [schema["type"], "null"]
        if "enum" in schema:
            schema["enum"].append(None)

    if shape.description:
        schema.setdefault("description", shape.description)

    return schema
