"""
anthropic.py

PURPOSE: Anthropic Claude model family and catalog.
DEPENDENCIES: llm
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from unified_ai.models.llm import (
    ChannelType,
    EndpointsType,
    FeaturesType,
    LlmBase,
    Provider,
    ToolsType,
)

# Anthropic rejects extended thinking budgets below this
MIN_THINKING_BUDGET = 1024


@dataclass(frozen=True, kw_only=True)
class AnthropicBase(LlmBase):
    """
    Claude models.

    Prompt caching has separate write and read prices. Setting
    thinking_budget enables extended thinking; the budget must be at least
    1024 tokens and below max_tokens.
    """

    provider = Provider.ANTHROPIC
    price_cache_write: ClassVar[Decimal]
    price_cache_read: ClassVar[Decimal]

    input_channels = ChannelType.TEXT | ChannelType.IMAGE
    supported_tools = ToolsType.WEB_SEARCH | ToolsType.MCP
    supported_features = (
        FeaturesType.STREAMING | FeaturesType.FUNCTION_CALLING | FeaturesType.STRUCTURED_OUTPUTS
    )
    supported_endpoints = EndpointsType.CHAT | EndpointsType.RESPONSE

    thinking_budget: int | None = None
    temperature: float | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.thinking_budget is None:
            return
        if self.thinking_budget < MIN_THINKING_BUDGET:
            raise ValueError(
                f"{self.name}: thinking_budget must be at least {MIN_THINKING_BUDGET} tokens"
            )
        if self.thinking_budget >= self.max_tokens:
            raise ValueError(f"{self.name}: thinking_budget must be below max_tokens")


class Sonnet45(AnthropicBase):
    name = "claude-sonnet-4-5-20250929"
    price_input = Decimal("3.00")
    price_output = Decimal("15.00")
    price_cache_write = Decimal("3.75")
    price_cache_read = Decimal("0.30")
    max_input_tokens = 200_000
    max_output_tokens = 64_000


class Sonnet4(Sonnet45):
    name = "claude-sonnet-4-20250514"


class Opus4(AnthropicBase):
    name = "claude-opus-4-20250514"
    price_input = Decimal("15.00")
    price_output = Decimal("75.00")
    price_cache_write = Decimal("18.75")
    price_cache_read = Decimal("1.50")
    max_input_tokens = 200_000
    max_output_tokens = 32_000


class Haiku45(AnthropicBase):
    name = "claude-haiku-4-5-20251001"
    price_input = Decimal("1.00")
    price_output = Decimal("5.00")
    price_cache_write = Decimal("1.25")
    price_cache_read = Decimal("0.10")
    max_input_tokens = 200_000
    max_output_tokens = 64_000
