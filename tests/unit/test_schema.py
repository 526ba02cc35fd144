"""
TEST DOC: Type Walker and Schema Generator

WHAT: Tests for describe_type() and build_schema()
WHY: The schema is the contract a model must satisfy; it must match the parser
HOW: Describe and generate schemas for pydantic, dataclass and plain types

CASES:
- Scalars, enums, Literals, lists, nested objects
- Dates, times, durations and UUIDs as formatted strings
- Envelope around the root schema
- Strict mode requires every property
- Non-strict mode and null unions

EDGE CASES:
- Maps rejected in strict mode
- Multi-type unions, Any, callables, bytes, recursive types
- Descriptions from docstrings, Field and Annotated
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import UUID

import pytest
from pydantic import BaseModel, Field

from unified_ai.errors import SchemaGenerationError
from unified_ai.structured import build_schema, describe_type, generate_schema, schema_description
from unified_ai.structured.shapes import ArrayShape, EnumShape, ObjectShape, ScalarShape


class Category(Enum):
    """Kind of thing in the picture."""

    ANIMAL = "animal"
    PLANT = "plant"


class ImageDescription(BaseModel):
    """What an image shows."""

    description: str
    main_objects: list[str]
    category: Category | None = None
    confidence: float = Field(default=1.0, description="Between 0 and 1")


@dataclass
class Point:
    x: int
    y: int = 0
    label: Annotated[str | None, "Optional caption"] = None


class PlainRecord:
    name: str
    tags: list[str]
    score: Decimal = Decimal(0)


class Node(BaseModel):
    value: int
    children: list["Node"]


def result_schema(tp, **kwargs):
    return build_schema(tp, **kwargs)["properties"]["result"]


class TestDescribeType:
    """Tests for the type walker."""

    def test_scalars(self):
        """Scalars map to JSON primitive types."""
        assert describe_type(str) == ScalarShape("string", str)
        assert describe_type(int) == ScalarShape("integer", int)
        assert describe_type(float).json_type == "number"
        assert describe_type(Decimal).json_type == "number"
        assert describe_type(bool).json_type == "boolean"

    @pytest.mark.parametrize(
        "tp, string_format",
        [
            (datetime, "date-time"),
            (date, "date"),
            (time, "time"),
            (timedelta, "duration"),
            (UUID, "uuid"),
        ],
    )
    def test_formatted_strings(self, tp, string_format):
        """Dates, times, durations and UUIDs are strings with a format."""
        assert describe_type(tp) == ScalarShape("string", tp, format=string_format)

    def test_enum(self):
        """Enums list their member names."""
        shape = describe_type(Category)
        assert isinstance(shape, EnumShape)
        assert shape.members == ("ANIMAL", "PLANT")
        assert shape.description == "Kind of thing in the picture."

    def test_literal(self):
        """String Literals are enums without a Python enum type."""
        shape = describe_type(Literal["yes", "no"])
        assert isinstance(shape, EnumShape)
        assert shape.enum_type is None
        assert shape.members == ("yes", "no")

    def test_optional_is_nullable(self):
        """Optional[T] describes T with nullable set."""
        shape = describe_type(int | None)
        assert shape == ScalarShape("integer", int, nullable=True)

    def test_collections(self):
        """Sequences and sets become arrays with a container type."""
        assert describe_type(list[int]) == ArrayShape(ScalarShape("integer", int))
        assert describe_type(tuple[str, ...]).container is tuple
        assert describe_type(set[str]).container is set

    def test_pydantic_model(self):
        """Pydantic fields keep order, requiredness and descriptions."""
        shape = describe_type(ImageDescription)
        assert isinstance(shape, ObjectShape)
        assert shape.kind == "pydantic"
        names = [f.name for f in shape.fields]
        assert names == ["description", "main_objects", "category", "confidence"]
        required = {f.name: f.required for f in shape.fields}
        assert required == {
            "description": True,
            "main_objects": True,
            "category": False,
            "confidence": False,
        }
        confidence = shape.fields[3]
        assert confidence.description == "Between 0 and 1"

    def test_dataclass(self):
        """Dataclass defaults make fields optional; Annotated adds descriptions."""
        shape = describe_type(Point)
        assert shape.kind == "dataclass"
        fields = {f.name: f for f in shape.fields}
        assert fields["x"].required is True
        assert fields["y"].required is False
        assert fields["label"].shape.nullable is True
        assert fields["label"].description == "Optional caption"

    def test_plain_class(self):
        """Plain classes are described from their annotations."""
        shape = describe_type(PlainRecord)
        assert shape.kind == "plain"
        fields = {f.name: f for f in shape.fields}
        assert fields["name"].required is True
        assert fields["score"].required is False
        assert fields["tags"].shape == ArrayShape(ScalarShape("string", str))

    @pytest.mark.parametrize(
        "tp",
        [int | str, Any, Callable[[int], int], bytes, list, tuple[int, str]],
    )
    def test_unsupported_types(self, tp):
        """Types without a JSON representation are rejected."""
        with pytest.raises(SchemaGenerationError):
            describe_type(tp)

    def test_error_names_the_member(self):
        """The error path points at the offending member."""

        class Bad(BaseModel):
            callback: Callable[[], None]

        with pytest.raises(SchemaGenerationError) as excinfo:
            describe_type(Bad)
        assert excinfo.value.path == "Bad.callback"

    def test_recursive_type(self):
        """Self-referencing types are rejected."""
        with pytest.raises(SchemaGenerationError, match="Recursive"):
            describe_type(Node)

    def test_map_key_must_be_str(self):
        """Only str-keyed maps can be described."""
        with pytest.raises(SchemaGenerationError, match="keys must be str"):
            describe_type(dict[int, str])


class TestBuildSchema:
    """Tests for schema generation."""

    def test_envelope(self):
        """The root schema sits under a required result property."""
        schema = build_schema(str)
        assert schema == {
            "type": "object",
            "properties": {"result": {"type": "string"}},
            "required": ["result"],
            "additionalProperties": False,
        }

    def test_object_schema(self):
        """Objects carry properties, required and additionalProperties false."""
        schema = result_schema(ImageDescription)
        assert schema["type"] == "object"
        assert schema["additionalProperties"] is False
        assert schema["properties"]["main_objects"] == {
            "type": "array",
            "items": {"type": "string"},
            "additionalProperties": False,
        }
        assert schema["properties"]["category"]["enum"] == ["ANIMAL", "PLANT"]
        assert schema["properties"]["confidence"]["description"] == "Between 0 and 1"
        assert schema["description"] == "What an image shows."

    def test_strict_requires_every_property(self):
        """In strict mode required lists every property, at every depth."""

        class Inner(BaseModel):
            a: int | None = None
            b: str = "x"

        class Outer(BaseModel):
            inner: Inner
            note: str | None = None

        schema = result_schema(Outer)
        assert schema["required"] == list(schema["properties"])
        inner = schema["properties"]["inner"]
        assert inner["required"] == ["a", "b"]

    def test_non_strict_requires_only_mandatory(self):
        """Non-strict mode leaves nullable and defaulted members optional."""
        schema = result_schema(ImageDescription, strict=False)
        assert schema["required"] == ["description", "main_objects"]

    def test_map_rejected_in_strict_mode(self):
        """dict members fail strict generation with a clear error."""

        class WithMap(BaseModel):
            counts: dict[str, int]

        with pytest.raises(SchemaGenerationError, match="Maps are not allowed") as excinfo:
            build_schema(WithMap)
        assert excinfo.value.path == "WithMap.counts"

    def test_map_allowed_in_non_strict_mode(self):
        """Non-strict maps are objects with typed additionalProperties."""
        schema = result_schema(dict[str, int], strict=False)
        assert schema == {"type": "object", "additionalProperties": {"type": "integer"}}

    def test_null_union(self):
        """allow_null_union types nullable members as [type, null]."""
        schema = result_schema(ImageDescription, allow_null_union=True)
        category = schema["properties"]["category"]
        assert category["type"] == ["string", "null"]
        assert category["enum"] == ["ANIMAL", "PLANT", None]
        assert schema["properties"]["description"]["type"] == "string"

    def test_without_null_union(self):
        """Without null unions nullable members keep their plain type."""
        schema = result_schema(ImageDescription)
        assert schema["properties"]["category"]["type"] == "string"

    def test_formatted_members(self):
        """Formatted members carry their JSON Schema format."""

        @dataclass
        class Event:
            happened_on: date
            id: UUID
            starts_at: datetime | None = None

        schema = result_schema(Event)
        assert schema["properties"]["happened_on"] == {"type": "string", "format": "date"}
        assert schema["properties"]["id"] == {"type": "string", "format": "uuid"}
        assert schema["required"] == ["happened_on", "id", "starts_at"]

        nullable = result_schema(Event, allow_null_union=True)["properties"]["starts_at"]
        assert nullable == {"type": ["string", "null"], "format": "date-time"}

    def test_generate_schema_is_json(self):
        """generate_schema serializes the same document."""
        assert json.loads(generate_schema(Point)) == build_schema(Point)

    def test_dataclass_field_metadata_description(self):
        """Dataclass field metadata can carry a description."""

        @dataclass
        class Tagged:
            tag: str = field(metadata={"description": "Short tag"})

        schema = result_schema(Tagged)
        assert schema["properties"]["tag"]["description"] == "Short tag"

    def test_pydantic_annotated_description(self):
        """Pydantic fields take a description from a plain Annotated string."""

        class Labelled(BaseModel):
            label: Annotated[str, "Display label"]

        schema = result_schema(Labelled)
        assert schema["properties"]["label"]["description"] == "Display label"


class TestSchemaDescription:
    """Tests for schema_description()."""

    def test_docstring(self):
        """The type's docstring is used when present."""
        assert schema_description(ImageDescription) == "What an image shows."

    def test_fallback(self):
        """Undocumented types get a generic description."""
        assert schema_description(Point) == "Response format for Point"
