"""
anthropic.py

PURPOSE: Anthropic Claude text provider (Messages API).
DEPENDENCIES: anthropic SDK

ARCHITECTURE NOTES:
Structured output is obtained by forcing a single tool whose input schema
is the enveloped response schema; the tool input is the reply. Forcing a
tool is incompatible with extended thinking and with hosted tools, so in
those cases (and for freeform prompts) the schema goes into the system
prompt instead and the text reply is parsed.

Images are sent as base64 image blocks, PDFs as document blocks, and any
other attachment as a text block with its decoded content.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import anthropic

from unified_ai.config import Settings
from unified_ai.errors import CancelledOrTimedOutError, TransportError
from unified_ai.models.anthropic import AnthropicBase
from unified_ai.models.llm import EndpointsType, Provider
from unified_ai.models.prompt import FileModel, WebSearchTool
from unified_ai.models.result import Usage
from unified_ai.providers.base import (
    ProviderReply,
    ProviderRequest,
    TextProvider,
    structured_instruction,
)
from unified_ai.providers.resilience import ResiliencePolicy

logger = logging.getLogger(__name__)

TOOL_NAME = "structured_response"

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


@contextmanager
def map_anthropic_errors(model_name: str) -> Iterator[None]:
    """Translate anthropic SDK exceptions into library errors."""
    try:
        yield
    except anthropic.APITimeoutError as e:
        raise CancelledOrTimedOutError(model_name) from e
    except anthropic.APIStatusError as e:
        raise TransportError("Anthropic request failed", e.status_code, e.response.text) from e
    except anthropic.APIConnectionError as e:
        raise TransportError(f"Could not reach Anthropic: {e}") from e


def file_block(file: FileModel) -> dict[str, Any]:
    """Messages API content block for an attachment."""
    if file.is_image:
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": file.mime_type, "data": file.to_base64()},
        }
    if file.mime_type == "application/pdf":
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": file.mime_type, "data": file.to_base64()},
        }
    return {"type": "text", "text": f"{file.name}:\n{file.data.decode('utf-8', errors='replace')}"}


class AnthropicProvider(TextProvider):
    """Text generation through the Anthropic Messages API."""

    provider = Provider.ANTHROPIC
    endpoint = EndpointsType.CHAT

    def __init__(
        self,
        settings: Settings,
        policy: ResiliencePolicy | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(settings, policy)
        self._client = client or anthropic.AsyncAnthropic(
            api_key=settings.providers.require_key("anthropic"),
            base_url=settings.providers.anthropic_base_url,
            timeout=settings.resilience.timeout_seconds,
            max_retries=settings.resilience.max_retries,
        )

    async def aclose(self) -> None:
        await self._client.close()

    @staticmethod
    def forces_tool(request: ProviderRequest) -> bool:
        """True if the reply is collected through the forced structured_response tool."""
        model = request.model
        thinking = isinstance(model, AnthropicBase) and model.thinking_budget is not None
        return request.structured and not thinking and not request.prompt.tools

    def build_request(self, request: ProviderRequest) -> dict[str, Any]:
        """Keyword arguments for messages.create()."""
        model = request.model
        prompt = request.prompt

        content = [file_block(file) for file in prompt.files or ()]
        content.append({"type": "text", "text": request.text})

        kwargs: dict[str, Any] = {
            "model": model.name,
            "max_tokens": model.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }

        if isinstance(model, AnthropicBase):
            if model.temperature is not None:
                kwargs["temperature"] = model.temperature
            if model.thinking_budget is not None:
                kwargs["thinking"] = {"type": "enabled", "budget_tokens": model.thinking_budget}

        tools: list[dict[str, Any]] = []
        if self.forces_tool(request):
            tools.append(
                {
                    "name": TOOL_NAME,
                    "description": request.schema_description,
                    "input_schema": request.schema,
                }
            )
            kwargs["tool_choice"] = {"type": "tool", "name": TOOL_NAME}
        elif request.structured:
            kwargs["system"] = structured_instruction(request)

        if any(isinstance(tool, WebSearchTool) for tool in prompt.tools or ()):
            tools.append(WEB_SEARCH_TOOL)
        if tools:
            kwargs["tools"] = tools

        if prompt.user_name:
            kwargs["metadata"] = {"user_id": prompt.user_name}

        return kwargs

    async def send_request(self, request: ProviderRequest) -> ProviderReply:
        kwargs = self.build_request(request)
        with map_anthropic_errors(request.model.name):
            response = await self._client.messages.create(**kwargs)

        logger.debug(f"Anthropic stop reason: {response.stop_reason}")
        return ProviderReply(text=_reply_text(response), usage=_usage(response), raw=response)


def _reply_text(response: Any) -> str:
    for block in response.content:
        if block.type == "tool_use" and block.name == TOOL_NAME:
            return json.dumps(block.input)

    # Fallback: the model answered in text
    text = "".join(block.text for block in response.content if block.type == "text")
    if text:
        logger.debug("No structured_response tool call, parsing text content")
    return text


def _usage(response: Any) -> Usage:
    usage = response.usage
    return Usage(
        input=usage.input_tokens or 0,
        output=usage.output_tokens or 0,
        cached_input=getattr(usage, "cache_read_input_tokens", 0) or 0,
        cache_write=getattr(usage, "cache_creation_input_tokens", 0) or 0,
    )
