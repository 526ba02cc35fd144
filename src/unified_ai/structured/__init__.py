"""Structured output: type shapes, JSON Schema generation and reply parsing."""

from unified_ai.structured.parser import dump_value, parse_response, strip_code_fence
from unified_ai.structured.schema import build_schema, generate_schema, schema_description
from unified_ai.structured.shapes import describe_type

__all__ = [
    "build_schema",
    "describe_type",
    "dump_value",
    "generate_schema",
    "parse_response",
    "schema_description",
    "strip_code_fence",
]
