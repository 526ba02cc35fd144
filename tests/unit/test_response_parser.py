"""
TEST DOC: Response Parser

WHAT: Tests for parse_response() and strip_code_fence()
WHY: Model replies are loosely formatted; the typed result must not be
HOW: Parse raw reply strings into pydantic, dataclass and plain targets

CASES:
- Enveloped replies, code fences, key naming tolerance
- Enums by name, value and flag combinations
- Freeform string targets
- Dates, times, durations and UUIDs from ISO strings
- Round trips of nested models, dataclasses and sets

EDGE CASES:
- Missing nullable members parse to None
- Unknown enum values list the valid names
- Non-JSON replies keep the raw text, minus any code fence
- Malformed dates are ParseErrors
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum, Flag, auto
from uuid import UUID

import pytest
from pydantic import BaseModel, Field

from unified_ai.errors import ParseError
from unified_ai.structured import build_schema, dump_value, parse_response, strip_code_fence


class Mood(Enum):
    HAPPY = "happy"
    SAD = "sad"


class Channel(Flag):
    NONE = 0
    TEXT = auto()
    IMAGE = auto()


class Description(BaseModel):
    description: str
    main_objects: list[str]
    category: str


class Review(BaseModel):
    score: int
    mood: Mood | None = None
    price: Decimal | None = None


@dataclass
class Pair:
    left: str
    right: int = 0


class Plain:
    title: str
    tags: list[str]


class Wrapper(BaseModel):
    result: str
    note: str


class Event(BaseModel):
    name: str
    happened_on: date
    starts_at: datetime | None = None
    opens: time | None = None
    length: timedelta | None = None
    id: UUID | None = None


class Address(BaseModel):
    street: str
    zip_code: str | None = None


class Customer(BaseModel):
    name: str
    addresses: list[Address]
    primary: Address | None = None
    mood: Mood = Mood.HAPPY
    balance: Decimal = Decimal(0)


@dataclass(frozen=True)
class Line:
    sku: str
    quantity: int = 1


@dataclass
class Order:
    lines: list[Line]
    tags: frozenset[str]
    placed_on: date
    reference: UUID
    customer: Customer | None = None


HOME = Address(street="1 Main St", zip_code="12345")
CUSTOMER = Customer(
    name="Ada",
    addresses=[HOME, Address(street="2 Side Rd")],
    primary=HOME,
    mood=Mood.SAD,
    balance=Decimal("12.50"),
)
ORDER = Order(
    lines=[Line(sku="A-1", quantity=2), Line(sku="B-2")],
    tags=frozenset({"gift", "express"}),
    placed_on=date(2025, 3, 1),
    reference=UUID("12345678-1234-5678-1234-567812345678"),
    customer=CUSTOMER,
)
EMPTY_ORDER = Order(
    lines=[], tags=frozenset(), placed_on=date(2024, 2, 29), reference=UUID(int=7)
)


ENVELOPED_DESCRIPTION = (
    '{"result":{"description":"a cat","main_objects":["cat"],"category":"animal"}}'
)


class TestEnvelope:
    """Tests for the result envelope and code fences."""

    def test_enveloped_reply(self):
        """An enveloped reply parses into the declared type."""
        value = parse_response(ENVELOPED_DESCRIPTION, Description)
        assert value == Description(description="a cat", main_objects=["cat"], category="animal")

    def test_code_fence(self):
        """A fenced reply parses like the bare one."""
        fenced = f"```json\n{ENVELOPED_DESCRIPTION}\n```"
        expected = parse_response(ENVELOPED_DESCRIPTION, Description)
        assert parse_response(fenced, Description) == expected

    def test_missing_envelope(self):
        """A bare payload is accepted."""
        raw = '{"description":"a dog","main_objects":[],"category":"animal"}'
        assert parse_response(raw, Description).description == "a dog"

    def test_scalar_envelope(self):
        """Scalars come wrapped as well."""
        assert parse_response('{"result": 42}', int) == 42
        assert parse_response("[1, 2]", list[int]) == [1, 2]

    def test_type_declaring_result(self):
        """A type with its own result member keeps sibling keys."""
        value = parse_response('{"result": "ok", "note": "n"}', Wrapper)
        assert value == Wrapper(result="ok", note="n")

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ('```json\n{"a": 1}\n```', '{"a": 1}'),
            ("```\n[1]\n```", "[1]"),
            ("  {}  ", "{}"),
            ("no fence", "no fence"),
        ],
    )
    def test_strip_code_fence(self, raw, expected):
        """Fences and surrounding whitespace are removed."""
        assert strip_code_fence(raw) == expected


class TestConversion:
    """Tests for value conversion."""

    def test_key_naming_tolerance(self):
        """PascalCase and camelCase keys match snake_case fields."""
        raw = '{"result":{"Description":"x","mainObjects":["a"],"CATEGORY":"c"}}'
        value = parse_response(raw, Description)
        assert value.main_objects == ["a"]
        assert value.category == "c"

    def test_unknown_keys_ignored(self):
        """Extra keys in the reply are dropped."""
        raw = '{"result":{"score": 3, "extra": true}}'
        assert parse_response(raw, Review).score == 3

    def test_missing_nullable_enum_is_none(self):
        """A nullable enum absent from the payload parses to None."""
        value = parse_response('{"result":{"score": 5}}', Review)
        assert value.mood is None

    def test_enum_by_name_and_value(self):
        """Enums match their name or value, case-insensitively."""
        assert parse_response('{"result":{"score":1,"mood":"HAPPY"}}', Review).mood is Mood.HAPPY
        assert parse_response('{"result":{"score":1,"mood":"sad"}}', Review).mood is Mood.SAD

    def test_invalid_enum_lists_valid_values(self):
        """An unknown enum name names the type and its members."""
        with pytest.raises(ParseError) as excinfo:
            parse_response('{"result":{"score":1,"mood":"angry"}}', Review)
        message = str(excinfo.value)
        assert "Invalid enum value 'angry' for type 'Mood'" in message
        assert "Valid values are: HAPPY, SAD" in message
        assert excinfo.value.raw_text == '{"result":{"score":1,"mood":"angry"}}'

    def test_flag_combination(self):
        """Flags accept comma or pipe separated names."""
        assert parse_response('{"result": "TEXT, IMAGE"}', Channel) == Channel.TEXT | Channel.IMAGE
        assert parse_response('{"result": "text|image"}', Channel) == Channel.TEXT | Channel.IMAGE

    def test_decimal_precision(self):
        """Decimal members keep the exact digits."""
        value = parse_response('{"result":{"score":1,"price":19.99}}', Review)
        assert value.price == Decimal("19.99")

    def test_integral_number_for_int(self):
        """1.0 is accepted for an int member."""
        assert parse_response('{"result": 1.0}', int) == 1

    def test_wrong_type(self):
        """A string where a number is expected is a ParseError."""
        with pytest.raises(ParseError, match="expected integer"):
            parse_response('{"result":{"score":"high"}}', Review)

    def test_null_for_required(self):
        """null is rejected for non-nullable members."""
        raw = '{"result":{"description":null,"main_objects":[],"category":"a"}}'
        with pytest.raises(ParseError, match="null is not allowed"):
            parse_response(raw, Description)

    def test_missing_required(self):
        """Missing required members are reported."""
        with pytest.raises(ParseError, match="required member is missing"):
            parse_response('{"result":{"main_objects":[]}}', Description)

    def test_invalid_json(self):
        """Non-JSON text is a ParseError carrying the raw text."""
        with pytest.raises(ParseError) as excinfo:
            parse_response("Sure! Here you go.", Description)
        assert excinfo.value.raw_text == "Sure! Here you go."

    def test_dataclass_target(self):
        """Dataclasses are constructed with their defaults."""
        assert parse_response('{"result":{"left":"a"}}', Pair) == Pair(left="a", right=0)

    def test_plain_target(self):
        """Plain classes get their attributes set."""
        value = parse_response('{"result":{"title":"t","tags":["x"]}}', Plain)
        assert isinstance(value, Plain)
        assert value.title == "t"
        assert value.tags == ["x"]

    def test_pydantic_alias(self):
        """Pydantic aliases are the wire names."""

        class Aliased(BaseModel):
            full_name: str = Field(alias="fullName")

        assert parse_response('{"result":{"fullName":"Ada"}}', Aliased).full_name == "Ada"


class TestFreeform:
    """Tests for plain str targets."""

    def test_raw_text(self):
        """Plain text is returned unchanged."""
        assert parse_response("Hello there", str) == "Hello there"

    def test_enveloped_string(self):
        """An enveloped string is unwrapped."""
        assert parse_response('{"result": "Hi"}', str) == "Hi"

    def test_json_object_kept(self):
        """Other JSON stays as text."""
        assert parse_response('{"a": 1}', str) == '{"a": 1}'

    def test_fenced_text(self):
        """A fenced plain-text reply loses its fence."""
        assert parse_response("```\nHello\n```", str) == "Hello"
        assert parse_response("```text\nHello\n```", str) == "Hello"


class TestFormattedStrings:
    """Tests for dates, times, durations and UUIDs."""

    def test_iso_strings(self):
        """ISO 8601 strings become the declared types."""
        raw = json.dumps(
            {
                "result": {
                    "name": "launch",
                    "happened_on": "2025-03-01",
                    "starts_at": "2025-03-01T10:30:00Z",
                    "opens": "09:15:00",
                    "length": "PT1H30M",
                    "id": "12345678-1234-5678-1234-567812345678",
                }
            }
        )

        event = parse_response(raw, Event)

        assert event.happened_on == date(2025, 3, 1)
        assert event.starts_at == datetime(2025, 3, 1, 10, 30, tzinfo=timezone.utc)
        assert event.opens == time(9, 15)
        assert event.length == timedelta(hours=1, minutes=30)
        assert event.id == UUID("12345678-1234-5678-1234-567812345678")

    def test_missing_nullable_members(self):
        """Absent nullable dates parse to None."""
        event = parse_response('{"result":{"name":"x","happened_on":"2025-01-31"}}', Event)
        assert event.starts_at is None
        assert event.id is None

    def test_invalid_date(self):
        """An impossible date is a ParseError naming the member."""
        with pytest.raises(ParseError, match=r"happened_on: invalid date '2025-02-30'"):
            parse_response('{"result":{"name":"x","happened_on":"2025-02-30"}}', Event)

    def test_number_for_date(self):
        """Dates must arrive as strings."""
        with pytest.raises(ParseError, match="expected string"):
            parse_response('{"result":{"name":"x","happened_on":20250301}}', Event)

    def test_dump_value(self):
        """Formatted values dump to their ISO text."""
        assert dump_value(date(2025, 3, 1)) == "2025-03-01"
        assert dump_value(timedelta(minutes=90)) == "PT1H30M"
        assert dump_value(UUID(int=1)) == "00000000-0000-0000-0000-000000000001"


class TestRoundTrip:
    """A dumped value parses back to itself, with or without the envelope."""

    def test_flat_model(self):
        """Enum names and decimal strings survive the envelope."""
        original = Review(score=4, mood=Mood.SAD, price=Decimal("2.50"))
        payload = {"result": {"score": 4, "mood": "SAD", "price": "2.50"}}
        assert parse_response(json.dumps(payload), Review) == original

    @pytest.mark.parametrize("enveloped", [True, False], ids=["enveloped", "bare"])
    @pytest.mark.parametrize(
        "target, original",
        [
            (Customer, CUSTOMER),
            (Customer, Customer(name="Bob", addresses=[])),
            (Order, ORDER),
            (Order, EMPTY_ORDER),
            (list[Line], [Line(sku="C-3", quantity=5)]),
            (frozenset[str], frozenset({"a", "b"})),
        ],
        ids=["customer", "customer-empty", "order", "order-empty", "line-list", "frozenset"],
    )
    def test_nested(self, target, original, enveloped):
        """Nested objects, lists of objects and sets round trip."""
        payload = dump_value(original)
        if enveloped:
            payload = {"result": payload}

        assert parse_response(json.dumps(payload), target) == original

    @pytest.mark.parametrize("target, original", [(Customer, CUSTOMER), (Order, ORDER)])
    def test_dump_matches_schema(self, target, original):
        """Dumped members are exactly the properties the schema asks for."""
        properties = build_schema(target)["properties"]["result"]["properties"]
        assert set(dump_value(original)) == set(properties)
