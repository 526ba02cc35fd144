"""
google.py

PURPOSE: Google Gemini model family and catalog.
DEPENDENCIES: llm
"""

from dataclasses import dataclass
from decimal import Decimal

from unified_ai.models.llm import (
    ChannelType,
    EndpointsType,
    FeaturesType,
    LlmBase,
    Provider,
    ToolsType,
)

# Gemini 2.5 Pro bills long prompts at a higher rate
LONG_CONTEXT_THRESHOLD = 200_000


@dataclass(frozen=True, kw_only=True)
class GoogleBase(LlmBase):
    provider = Provider.GOOGLE
    input_channels = ChannelType.TEXT | ChannelType.IMAGE | ChannelType.AUDIO
    supported_tools = ToolsType.WEB_SEARCH | ToolsType.CODE_INTERPRETER
    supported_features = (
        FeaturesType.STREAMING | FeaturesType.FUNCTION_CALLING | FeaturesType.STRUCTURED_OUTPUTS
    )
    supported_endpoints = EndpointsType.CHAT | EndpointsType.BATCH
    max_input_tokens = 1_048_576
    max_output_tokens = 65_536

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    thinking_budget: int | None = None


class Gemini25Pro(GoogleBase):
    name = "gemini-2.5-pro"
    price_input = Decimal("1.25")
    price_output = Decimal("10.00")
    price_cached_input = Decimal("0.31")

    def get_input_price(self, token_count: int) -> Decimal:
        if token_count > LONG_CONTEXT_THRESHOLD:
            return Decimal("2.50")
        return self.price_input

    def get_output_price(self, token_count: int) -> Decimal:
        if token_count > LONG_CONTEXT_THRESHOLD:
            return Decimal("15.00")
        return self.price_output


class Gemini25Flash(GoogleBase):
    name = "gemini-2.5-flash"
    price_input = Decimal("0.30")
    price_output = Decimal("2.50")
    price_cached_input = Decimal("0.075")


class Gemini25FlashLite(GoogleBase):
    name = "gemini-2.5-flash-lite"
    price_input = Decimal("0.10")
    price_output = Decimal("0.40")
    price_cached_input = Decimal("0.025")
