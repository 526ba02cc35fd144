"""
llm.py

PURPOSE: Model descriptors: pricing, limits and capabilities of vendor models.
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
A concrete model is a subclass of one of the family bases below. Static
facts about the model (wire name, prices, limits, channels, tools,
endpoints) are ClassVars; per-call options (max_tokens, temperature,
reasoning effort, ...) are frozen dataclass fields set when the descriptor
is instantiated:

    model = Sonnet45(max_tokens=4096, thinking_budget=2048)

Prices are USD per 1M tokens. get_input_price()/get_output_price() take
the token count so tiered models can override them; cost calculation must
always go through them.

Every concrete model registers itself by wire name (see find_model), and
carries the Provider tag the client dispatches on.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, Flag, auto
from typing import Any, ClassVar

from unified_ai.errors import UnsupportedModelError


class Provider(str, Enum):
    """Vendors the client can dispatch to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    X = "x"


class ChannelType(Flag):
    """Modalities a model accepts or produces."""

    NONE = 0
    TEXT = auto()
    IMAGE = auto()
    AUDIO = auto()


class ToolsType(Flag):
    """Hosted tools a model can use."""

    NONE = 0
    WEB_SEARCH = auto()
    FILE_SEARCH = auto()
    IMAGE_GENERATION = auto()
    CODE_INTERPRETER = auto()
    MCP = auto()


class FeaturesType(Flag):
    NONE = 0
    STREAMING = auto()
    FUNCTION_CALLING = auto()
    STRUCTURED_OUTPUTS = auto()
    FINE_TUNING = auto()
    DISTILLATION = auto()
    PREDICTED_OUTPUTS = auto()
    INPAINTING = auto()


class EndpointsType(Flag):
    """Vendor API endpoints a model is served on."""

    NONE = 0
    CHAT = auto()
    RESPONSE = auto()
    REALTIME = auto()
    ASSISTANT = auto()
    BATCH = auto()
    FINE_TUNING = auto()
    EMBEDDING = auto()
    IMAGE = auto()
    IMAGE_EDIT = auto()
    SPEECH = auto()
    TRANSCRIPTION = auto()
    TRANSLATION = auto()
    MODERATION = auto()
    COMPLETION = auto()


_REGISTRY: dict[str, type["LlmBase"]] = {}

ONE_MILLION = Decimal(1_000_000)


@dataclass(frozen=True, kw_only=True)
class LlmBase:
    """Base for every model descriptor."""

    provider: ClassVar[Provider]
    name: ClassVar[str]

    price_input: ClassVar[Decimal]
    price_output: ClassVar[Decimal]
    price_cached_input: ClassVar[Decimal | None] = None
    batch_price_input: ClassVar[Decimal | None] = None
    batch_price_output: ClassVar[Decimal | None] = None

    max_input_tokens: ClassVar[int]
    max_output_tokens: ClassVar[int]

    input_channels: ClassVar[ChannelType] = ChannelType.TEXT
    output_channels: ClassVar[ChannelType] = ChannelType.TEXT
    supported_tools: ClassVar[ToolsType] = ToolsType.NONE
    supported_features: ClassVar[FeaturesType] = FeaturesType.NONE
    supported_endpoints: ClassVar[EndpointsType] = EndpointsType.NONE

    max_tokens: int = 1024

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "name" in cls.__dict__:
            _REGISTRY[cls.__dict__["name"]] = cls

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"{self.name}: max_tokens must be positive")
        limit = self.max_input_tokens + self.max_output_tokens
        if self.max_tokens > limit:
            raise ValueError(
                f"{self.name}: max_tokens {self.max_tokens} exceeds the model limit of {limit}"
            )

    def get_input_price(self, token_count: int) -> Decimal:  # noqa: ARG002
        """USD per 1M input tokens for a request of this size."""
        return self.price_input

    def get_output_price(self, token_count: int) -> Decimal:  # noqa: ARG002
        """USD per 1M output tokens for a request of this size."""
        return self.price_output

    def supports_endpoint(self, endpoint: EndpointsType) -> bool:
        return endpoint in self.supported_endpoints

    def accepts(self, channel: ChannelType) -> bool:
        return channel in self.input_channels

    def produces(self, channel: ChannelType) -> bool:
        return channel in self.output_channels

    def supports_tools(self, tools: ToolsType) -> bool:
        return tools in self.supported_tools


def find_model(name: str, **options: Any) -> LlmBase:
    """
    Instantiate a registered model by its wire name.

    Args:
        name: Vendor model name, e.g. "claude-sonnet-4-5-20250929"
        **options: Per-call options such as max_tokens

    Raises:
        UnsupportedModelError: If no model with that name is registered
    """
    try:
        model_class = _REGISTRY[name]
    except KeyError:
        raise UnsupportedModelError(name, "unknown model") from None
    return model_class(**options)


def all_models() -> list[type[LlmBase]]:
    """Every registered model class, sorted by provider then name."""
    return sorted(_REGISTRY.values(), key=lambda cls: (cls.provider.value, cls.name))
