"""
x.py

PURPOSE: xAI Grok model family, live search settings and catalog.
DEPENDENCIES: llm

ARCHITECTURE NOTES:
Grok chat models can run xAI "live search" before answering. The search
configuration is an immutable value on the descriptor (SearchSettings)
and is translated to the search_parameters request field by the X
provider; the enum -> wire string tables live here next to the enums.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from unified_ai.models.llm import (
    ChannelType,
    EndpointsType,
    FeaturesType,
    LlmBase,
    Provider,
    ToolsType,
)

# Grok 4 bills requests above this many tokens at double rate
TIER_THRESHOLD = 128_000


class SearchMode(Enum):
    NEVER = "never"
    ALWAYS = "always"
    AUTO = "auto"


SEARCH_MODE_VALUES: dict[SearchMode, str] = {
    SearchMode.NEVER: "off",
    SearchMode.ALWAYS: "on",
    SearchMode.AUTO: "auto",
}


class XReasoningEffort(Enum):
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True, kw_only=True)
class WebSearchSource:
    country: str | None = None
    excluded_websites: tuple[str, ...] = ()
    allowed_websites: tuple[str, ...] = ()
    safe_search: bool = True

    def __post_init__(self) -> None:
        if self.excluded_websites and self.allowed_websites:
            raise ValueError("Use either excluded_websites or allowed_websites, not both")


@dataclass(frozen=True, kw_only=True)
class XSearchSource:
    included_x_handles: tuple[str, ...] = ()
    excluded_x_handles: tuple[str, ...] = ()
    post_favorite_count: int | None = None
    post_view_count: int | None = None


@dataclass(frozen=True, kw_only=True)
class NewsSearchSource:
    country: str | None = None
    excluded_websites: tuple[str, ...] = ()
    safe_search: bool = True


@dataclass(frozen=True, kw_only=True)
class RssSearchSource:
    links: tuple[str, ...] = ()


SearchSource = WebSearchSource | XSearchSource | NewsSearchSource | RssSearchSource


@dataclass(frozen=True, kw_only=True)
class SearchSettings:
    """Live search configuration for Grok chat models."""

    mode: SearchMode = SearchMode.AUTO
    return_citations: bool = True
    from_date: date | None = None
    to_date: date | None = None
    max_search_results: int = 20
    sources: tuple[SearchSource, ...] = ()


@dataclass(frozen=True, kw_only=True)
class XChatBase(LlmBase):
    provider = Provider.X
    supported_tools = ToolsType.WEB_SEARCH
    supported_endpoints = EndpointsType.CHAT
    supported_features = (
        FeaturesType.STREAMING | FeaturesType.FUNCTION_CALLING | FeaturesType.STRUCTURED_OUTPUTS
    )

    web_search: SearchSettings = field(default_factory=SearchSettings)
    temperature: float | None = None
    top_p: float | None = None


@dataclass(frozen=True, kw_only=True)
class XReasoningBase(XChatBase):
    reason: XReasoningEffort | None = None


class Grok3(XChatBase):
    name = "grok-3"
    price_input = Decimal("3.00")
    price_cached_input = Decimal("0.75")
    price_output = Decimal("15.00")
    max_input_tokens = 131_072
    max_output_tokens = 8_192


class Grok3Fast(Grok3):
    name = "grok-3-fast"
    price_input = Decimal("5.00")
    price_cached_input = Decimal("1.25")
    price_output = Decimal("25.00")


class Grok3Mini(XReasoningBase):
    name = "grok-3-mini"
    price_input = Decimal("0.30")
    price_cached_input = Decimal("0.075")
    price_output = Decimal("0.50")
    max_input_tokens = 131_072
    max_output_tokens = 8_192


class Grok3MiniFast(Grok3Mini):
    name = "grok-3-mini-fast"
    price_input = Decimal("5.00")
    price_cached_input = Decimal("1.25")
    price_output = Decimal("25.00")


class TieredPricing:
    """Doubles input and output prices for calls above TIER_THRESHOLD tokens."""

    price_input: ClassVar[Decimal]
    price_output: ClassVar[Decimal]

    def get_input_price(self, token_count: int) -> Decimal:
        if token_count > TIER_THRESHOLD:
            return self.price_input * 2
        return self.price_input

    def get_output_price(self, token_count: int) -> Decimal:
        if token_count > TIER_THRESHOLD:
            return self.price_output * 2
        return self.price_output


class Grok4(TieredPricing, XChatBase):
    name = "grok-4-0709"
    price_input = Decimal("3.00")
    price_cached_input = Decimal("0.75")
    price_output = Decimal("15.00")
    max_input_tokens = 256_000
    max_output_tokens = 8_192
    input_channels = ChannelType.TEXT | ChannelType.IMAGE


class Grok4FastReasoning(TieredPricing, XReasoningBase):
    name = "grok-4-fast-reasoning"
    price_input = Decimal("0.20")
    price_cached_input = Decimal("0.05")
    price_output = Decimal("0.50")
    max_input_tokens = 2_000_000
    max_output_tokens = 4_000_000
    input_channels = ChannelType.TEXT | ChannelType.IMAGE


class GrokCodeFast1(XChatBase):
    name = "grok-code-fast-1-0825"
    price_input = Decimal("0.20")
    price_cached_input = Decimal("0.05")
    price_output = Decimal("1.50")
    max_input_tokens = 256_000
    max_output_tokens = 480_000
