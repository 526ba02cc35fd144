"""
TEST DOC: Models

WHAT: Tests for model descriptors, prompts and result metadata
WHY: Pricing and capability checks drive cost reporting and request validation
HOW: Instantiate catalog models and build MetaData with known usage

CASES:
- Catalog lookup by wire name
- Flat and tiered pricing
- Per-call option validation
- Prompt response type and control properties

EDGE CASES:
- Grok 4 tier boundary at 128k tokens
- Thinking budget limits
- Unknown model names
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from unified_ai.errors import UnsupportedModelError
from unified_ai.models import (
    ChannelType,
    EndpointsType,
    FileModel,
    FileSearchTool,
    MetaData,
    PromptBase,
    Provider,
    Result,
    ToolsType,
    Usage,
    WebSearchTool,
    all_models,
    find_model,
)
from unified_ai.models.anthropic import Sonnet45
from unified_ai.models.google import Gemini25Pro
from unified_ai.models.openai import Gpt41Mini, GptImage1, ImageSize
from unified_ai.models.x import TIER_THRESHOLD, Grok4, Grok4FastReasoning, WebSearchSource


def metadata(model, input_tokens: int, output_tokens: int) -> MetaData:
    return MetaData(
        model=model,
        usage=Usage(input=input_tokens, output=output_tokens),
        duration=timedelta(seconds=1),
    )


class Summary(PromptBase[list[str]]):
    prompt = "Summarize {{ text }}"

    text: str


class Chat(PromptBase):
    prompt = "{{ text }}"

    text: str


class TestCatalog:
    """Tests for model registration and lookup."""

    def test_find_model(self):
        """Models resolve by wire name with options."""
        model = find_model("gpt-4.1-mini-2025-04-14", max_tokens=200)
        assert isinstance(model, Gpt41Mini)
        assert model.max_tokens == 200

    def test_unknown_model(self):
        """Unknown names raise UnsupportedModelError."""
        with pytest.raises(UnsupportedModelError, match="unknown model"):
            find_model("gpt-0")

    def test_every_provider_has_models(self):
        """The catalog covers all four vendors."""
        providers = {model.provider for model in all_models()}
        assert providers == set(Provider)

    def test_family_bases_not_registered(self):
        """Only concrete models are in the catalog."""
        names = [model.__dict__.get("name") for model in all_models()]
        assert None not in names


class TestCapabilities:
    """Tests for channel, endpoint and tool declarations."""

    def test_text_model(self):
        """Chat models accept images and produce text."""
        model = Gpt41Mini()
        assert model.accepts(ChannelType.IMAGE)
        assert model.produces(ChannelType.TEXT)
        assert model.supports_endpoint(EndpointsType.RESPONSE)
        assert model.supports_tools(ToolsType.WEB_SEARCH | ToolsType.FILE_SEARCH)

    def test_image_model(self):
        """Image models produce images on the image endpoint only."""
        model = GptImage1(size=ImageSize.LANDSCAPE)
        assert model.produces(ChannelType.IMAGE)
        assert not model.produces(ChannelType.TEXT)
        assert model.supports_endpoint(EndpointsType.IMAGE)
        assert not model.supports_endpoint(EndpointsType.CHAT)
        assert model.size_value == "1536x1024"

    def test_anthropic_tools(self):
        """Claude models do not offer file search."""
        assert not Sonnet45().supports_tools(ToolsType.FILE_SEARCH)


class TestOptions:
    """Tests for per-call option validation."""

    def test_descriptor_is_immutable(self):
        """Descriptors are frozen."""
        model = Gpt41Mini()
        with pytest.raises(AttributeError):
            model.max_tokens = 5

    def test_max_tokens_must_be_positive(self):
        """Zero max_tokens is rejected."""
        with pytest.raises(ValueError, match="positive"):
            Gpt41Mini(max_tokens=0)

    def test_max_tokens_limit(self):
        """max_tokens cannot exceed the model's limit."""
        with pytest.raises(ValueError, match="exceeds"):
            Sonnet45(max_tokens=10_000_000)

    def test_thinking_budget_minimum(self):
        """Thinking budgets below 1024 are rejected."""
        with pytest.raises(ValueError, match="at least 1024"):
            Sonnet45(max_tokens=4096, thinking_budget=500)

    def test_thinking_budget_below_max_tokens(self):
        """The budget must leave room for the answer."""
        with pytest.raises(ValueError, match="below max_tokens"):
            Sonnet45(max_tokens=2048, thinking_budget=2048)

    def test_image_quantity(self):
        """Image quantity is limited to 1-10."""
        with pytest.raises(ValueError, match="quantity"):
            GptImage1(quantity=11)

    def test_search_source_exclusive_lists(self):
        """Web search sources take allowed or excluded sites, not both."""
        with pytest.raises(ValueError, match="either"):
            WebSearchSource(excluded_websites=("a.com",), allowed_websites=("b.com",))


class TestPricing:
    """Tests for cost calculation through MetaData."""

    def test_flat_price(self):
        """Cost is unit price times tokens over one million."""
        meta = metadata(Gpt41Mini(), 1_000_000, 500_000)
        assert meta.price_input == Decimal("0.40")
        assert meta.price_output == Decimal("0.80")

    def test_total_is_sum(self):
        """price_total is exactly input plus output."""
        meta = metadata(Sonnet45(), 1234, 5678)
        assert meta.price_total == meta.price_input + meta.price_output

    def test_grok4_below_tier(self):
        """At the threshold Grok 4 uses the base rate."""
        meta = metadata(Grok4(), TIER_THRESHOLD, TIER_THRESHOLD)
        assert meta.price_input == Decimal("3.00") * TIER_THRESHOLD / Decimal(1_000_000)

    def test_grok4_above_tier(self):
        """Above 128k tokens Grok 4 bills double."""
        tokens = TIER_THRESHOLD + 1
        meta = metadata(Grok4(), tokens, tokens)
        assert meta.price_input == Decimal("6.00") * tokens / Decimal(1_000_000)
        assert meta.price_output == Decimal("30.00") * tokens / Decimal(1_000_000)
        assert meta.price_total == meta.price_input + meta.price_output

    def test_grok4_fast_tier(self):
        """Grok 4 Fast shares the double rate above the threshold."""
        model = Grok4FastReasoning()
        assert model.get_input_price(TIER_THRESHOLD) == Decimal("0.20")
        assert model.get_input_price(TIER_THRESHOLD + 1) == Decimal("0.40")
        assert model.get_output_price(TIER_THRESHOLD + 1) == Decimal("1.00")

    def test_gemini_long_context(self):
        """Gemini 2.5 Pro switches rates above 200k tokens."""
        model = Gemini25Pro()
        assert model.get_input_price(200_000) == Decimal("1.25")
        assert model.get_input_price(200_001) == Decimal("2.50")

    def test_usage_total(self):
        """Usage.total adds input and output."""
        assert Usage(input=3, output=4).total == 7


class TestResult:
    """Tests for Result."""

    def test_set_process_name(self):
        """The process label is stored on the metadata."""
        result = Result(value="x", metadata=metadata(Gpt41Mini(), 1, 1))
        assert result.set_process_name("summarize") is result
        assert result.metadata.process == "summarize"


class TestPrompt:
    """Tests for PromptBase."""

    def test_response_type(self):
        """The generic parameter is the response type."""
        assert Summary.response_type() == list[str]

    def test_default_response_type(self):
        """Prompts without a parameter answer in text."""
        assert Chat.response_type() is str

    def test_inherited_response_type(self):
        """Subclasses of a parameterized prompt keep its response type."""

        class LongSummary(Summary):
            prompt = "Summarize at length: {{ text }}"

        assert LongSummary.response_type() == list[str]

    def test_prompt_is_frozen(self):
        """Prompt instances cannot be modified."""
        prompt = Chat(text="a")
        with pytest.raises(ValueError):
            prompt.text = "b"

    def test_requested_tools(self):
        """Tool types combine into one flag."""
        prompt = Chat(text="a", tools=[WebSearchTool(), FileSearchTool(vector_store_ids=["vs"])])
        assert prompt.requested_tools == ToolsType.WEB_SEARCH | ToolsType.FILE_SEARCH

    def test_image_files(self, png_bytes):
        """Only image attachments are listed as image files."""
        image = FileModel(name="a.png", mime_type="image/png", data=png_bytes)
        text = FileModel(name="a.txt", mime_type="text/plain", data=b"hi")
        prompt = Chat(text="a", files=[image, text])
        assert prompt.image_files == [image]


class TestFileModel:
    """Tests for FileModel."""

    def test_base64_round_trip(self, png_bytes):
        """Bytes survive base64 encoding."""
        file = FileModel(name="a.png", mime_type="image/png", data=png_bytes)
        decoded = FileModel.from_base64("b.png", "image/png", file.to_base64())
        assert decoded.data == png_bytes

    def test_data_url(self):
        """Data URLs carry the MIME type."""
        file = FileModel(name="a.txt", mime_type="text/plain", data=b"hi")
        assert file.to_data_url() == "data:text/plain;base64,aGk="

    def test_from_path_and_save(self, tmp_path, png_bytes):
        """Files load with a guessed MIME type and save back to disk."""
        source = tmp_path / "pic.png"
        source.write_bytes(png_bytes)
        file = FileModel.from_path(source)
        assert file.mime_type == "image/png"
        assert file.is_image

        target = file.save(tmp_path / "out")
        assert target.read_bytes() == png_bytes
