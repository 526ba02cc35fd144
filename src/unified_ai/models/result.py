"""
result.py

PURPOSE: Call results: the parsed value plus usage and cost metadata.
DEPENDENCIES: llm

ARCHITECTURE NOTES:
Cost is derived, never stored: MetaData asks its model descriptor for the
unit price at the actual token count on every access, so tiered models
are priced correctly and price_total is always exactly
price_input + price_output.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Generic, TypeVar

from unified_ai.models.llm import ONE_MILLION, LlmBase

T = TypeVar("T")


@dataclass(frozen=True)
class UsageDetails:
    """Token breakdown by modality."""

    text: int = 0
    image: int = 0
    audio: int = 0


@dataclass(frozen=True)
class Usage:
    """Token accounting for one call."""

    input: int = 0
    output: int = 0
    input_details: UsageDetails | None = None
    output_details: UsageDetails | None = None
    cached_input: int = 0
    cache_write: int = 0
    reasoning: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output


@dataclass
class MetaData:
    """Diagnostics attached to every Result."""

    model: LlmBase
    usage: Usage
    duration: timedelta
    process: str | None = None

    @property
    def price_input(self) -> Decimal:
        count = self.usage.input
        return self.model.get_input_price(count) * count / ONE_MILLION

    @property
    def price_output(self) -> Decimal:
        count = self.usage.output
        return self.model.get_output_price(count) * count / ONE_MILLION

    @property
    def price_total(self) -> Decimal:
        return self.price_input + self.price_output


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Output of a generation call.

    Immutable except for set_process_name(), which labels the result for
    diagnostics after the fact.
    """

    value: T
    metadata: MetaData = field(compare=False)

    def set_process_name(self, name: str) -> "Result[T]":
        self.metadata.process = name
        return self
