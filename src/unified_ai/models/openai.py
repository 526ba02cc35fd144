"""
openai.py

PURPOSE: OpenAI model families and catalog.
DEPENDENCIES: llm

ARCHITECTURE NOTES:
Chat models take sampling options, reasoning models take an effort level
and summary mode, image models take quality/size/quantity. Wire strings
for option enums come from explicit lookup tables next to the enums.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from unified_ai.models.llm import (
    ChannelType,
    EndpointsType,
    FeaturesType,
    LlmBase,
    Provider,
    ToolsType,
)

_HOSTED_TOOLS = (
    ToolsType.WEB_SEARCH
    | ToolsType.FILE_SEARCH
    | ToolsType.IMAGE_GENERATION
    | ToolsType.CODE_INTERPRETER
    | ToolsType.MCP
)

_FULL_FEATURES = (
    FeaturesType.STREAMING
    | FeaturesType.FUNCTION_CALLING
    | FeaturesType.STRUCTURED_OUTPUTS
    | FeaturesType.FINE_TUNING
    | FeaturesType.DISTILLATION
    | FeaturesType.PREDICTED_OUTPUTS
)


class ReasoningEffort(Enum):
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReasoningSummary(Enum):
    AUTO = "auto"
    CONCISE = "concise"
    DETAILED = "detailed"


class ImageQuality(Enum):
    AUTO = "auto"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ImageSize(Enum):
    AUTO = "auto"
    SQUARE = "square"
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


IMAGE_QUALITY_VALUES: dict[ImageQuality, str] = {
    ImageQuality.AUTO: "auto",
    ImageQuality.LOW: "low",
    ImageQuality.MEDIUM: "medium",
    ImageQuality.HIGH: "high",
}

IMAGE_SIZE_VALUES: dict[ImageSize, str] = {
    ImageSize.AUTO: "auto",
    ImageSize.SQUARE: "1024x1024",
    ImageSize.LANDSCAPE: "1536x1024",
    ImageSize.PORTRAIT: "1024x1536",
}


@dataclass(frozen=True, kw_only=True)
class OpenAiBase(LlmBase):
    provider = Provider.OPENAI

    store_logs: bool = False


@dataclass(frozen=True, kw_only=True)
class OpenAiChatBase(OpenAiBase):
    """Non-reasoning text models; sampling options are sent only when set."""

    temperature: float | None = None
    top_p: float | None = None


@dataclass(frozen=True, kw_only=True)
class OpenAiReasoningBase(OpenAiBase):
    reason: ReasoningEffort | None = None
    reason_summary: ReasoningSummary | None = None


@dataclass(frozen=True, kw_only=True)
class OpenAiImageBase(OpenAiBase):
    """Image generation models."""

    output_channels = ChannelType.IMAGE
    input_channels = ChannelType.TEXT | ChannelType.IMAGE
    supported_features = FeaturesType.INPAINTING
    supported_endpoints = EndpointsType.IMAGE | EndpointsType.IMAGE_EDIT
    max_input_tokens = 32_000
    max_output_tokens = 0

    quality: ImageQuality = ImageQuality.AUTO
    size: ImageSize = ImageSize.AUTO
    quantity: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if not 1 <= self.quantity <= 10:
            raise ValueError(f"{self.name}: quantity must be between 1 and 10")

    @property
    def quality_value(self) -> str:
        return IMAGE_QUALITY_VALUES[self.quality]

    @property
    def size_value(self) -> str:
        return IMAGE_SIZE_VALUES[self.size]


# ---------------------------------------------------------------------------
# GPT-4.1
# ---------------------------------------------------------------------------


class Gpt41(OpenAiChatBase):
    name = "gpt-4.1-2025-04-14"
    price_input = Decimal("2.00")
    price_output = Decimal("8.00")
    price_cached_input = Decimal("0.50")
    batch_price_input = Decimal("1.00")
    batch_price_output = Decimal("4.00")
    max_input_tokens = 1_047_576
    max_output_tokens = 32_768
    input_channels = ChannelType.TEXT | ChannelType.IMAGE
    supported_tools = _HOSTED_TOOLS
    supported_features = _FULL_FEATURES
    supported_endpoints = (
        EndpointsType.CHAT
        | EndpointsType.RESPONSE
        | EndpointsType.ASSISTANT
        | EndpointsType.BATCH
        | EndpointsType.FINE_TUNING
    )


class Gpt41Mini(Gpt41):
    name = "gpt-4.1-mini-2025-04-14"
    price_input = Decimal("0.40")
    price_output = Decimal("1.60")
    price_cached_input = Decimal("0.10")
    batch_price_input = Decimal("0.20")
    batch_price_output = Decimal("0.80")


class Gpt41Nano(Gpt41):
    name = "gpt-4.1-nano-2025-04-14"
    price_input = Decimal("0.10")
    price_output = Decimal("0.40")
    price_cached_input = Decimal("0.025")
    batch_price_input = Decimal("0.05")
    batch_price_output = Decimal("0.20")


# ---------------------------------------------------------------------------
# GPT-5 and o-series (reasoning)
# ---------------------------------------------------------------------------


class Gpt5(OpenAiReasoningBase):
    name = "gpt-5-2025-08-07"
    price_input = Decimal("1.25")
    price_output = Decimal("10.00")
    price_cached_input = Decimal("0.125")
    batch_price_input = Decimal("0.625")
    batch_price_output = Decimal("5.00")
    max_input_tokens = 400_000
    max_output_tokens = 128_000
    input_channels = ChannelType.TEXT | ChannelType.IMAGE
    supported_tools = _HOSTED_TOOLS
    supported_features = _FULL_FEATURES
    supported_endpoints = (
        EndpointsType.CHAT | EndpointsType.RESPONSE | EndpointsType.ASSISTANT | EndpointsType.BATCH
    )


class Gpt5Mini(Gpt5):
    name = "gpt-5-mini-2025-08-07"
    price_input = Decimal("0.25")
    price_output = Decimal("2.00")
    price_cached_input = Decimal("0.025")
    batch_price_input = Decimal("0.125")
    batch_price_output = Decimal("1.00")


class Gpt5Nano(Gpt5):
    name = "gpt-5-nano-2025-08-07"
    price_input = Decimal("0.05")
    price_output = Decimal("0.40")
    price_cached_input = Decimal("0.005")
    batch_price_input = Decimal("0.025")
    batch_price_output = Decimal("0.20")


class Gpt51(Gpt5):
    name = "gpt-5.1-2025-11-13"
    batch_price_input = None
    batch_price_output = None


class O3(OpenAiReasoningBase):
    name = "o3-2025-04-16"
    price_input = Decimal("2.00")
    price_output = Decimal("8.00")
    price_cached_input = Decimal("0.50")
    batch_price_input = Decimal("1.00")
    batch_price_output = Decimal("4.00")
    max_input_tokens = 200_000
    max_output_tokens = 100_000
    input_channels = ChannelType.TEXT | ChannelType.IMAGE
    supported_tools = _HOSTED_TOOLS
    supported_features = (
        FeaturesType.STREAMING | FeaturesType.FUNCTION_CALLING | FeaturesType.STRUCTURED_OUTPUTS
    )
    supported_endpoints = EndpointsType.CHAT | EndpointsType.RESPONSE | EndpointsType.BATCH


class O4Mini(O3):
    name = "o4-mini-2025-04-16"
    price_input = Decimal("1.10")
    price_output = Decimal("4.40")
    price_cached_input = Decimal("0.275")
    batch_price_input = Decimal("0.55")
    batch_price_output = Decimal("2.20")


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class GptImage1(OpenAiImageBase):
    name = "gpt-image-1"
    price_input = Decimal("10.00")
    price_output = Decimal("40.00")


class GptImage1Mini(OpenAiImageBase):
    name = "gpt-image-1-mini"
    price_input = Decimal("2.00")
    price_output = Decimal("8.00")
