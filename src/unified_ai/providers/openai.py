"""
openai.py

PURPOSE: OpenAI text provider (Responses API).
DEPENDENCIES: openai SDK

ARCHITECTURE NOTES:
Structured replies use the Responses API json_schema text format with
strict=True; nullable members are typed ["<type>", "null"] so the model
can still return null for them. Freeform (str) prompts send no format.
Attachments travel inline as data URLs: images as input_image parts,
everything else as input_file parts.

map_openai_errors() is shared with the xAI and image providers, which use
the same SDK.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import openai
from openai import AsyncOpenAI

from unified_ai.config import Settings
from unified_ai.errors import CancelledOrTimedOutError, TransportError
from unified_ai.models.llm import EndpointsType, Provider, ToolsType
from unified_ai.models.openai import OpenAiChatBase, OpenAiReasoningBase
from unified_ai.models.prompt import FileSearchTool, ToolBase, WebSearchTool
from unified_ai.models.result import Usage
from unified_ai.providers.base import ProviderReply, ProviderRequest, TextProvider
from unified_ai.providers.resilience import ResiliencePolicy

logger = logging.getLogger(__name__)

SCHEMA_NAME = "response"

TOOL_CHOICE_VALUES: dict[ToolsType, Any] = {
    ToolsType.NONE: "none",
    ToolsType.WEB_SEARCH: {"type": "web_search_preview"},
    ToolsType.FILE_SEARCH: {"type": "file_search"},
    ToolsType.IMAGE_GENERATION: {"type": "image_generation"},
    ToolsType.CODE_INTERPRETER: {"type": "code_interpreter"},
}


@contextmanager
def map_openai_errors(model_name: str, vendor: str = "OpenAI") -> Iterator[None]:
    """Translate openai SDK exceptions into library errors."""
    try:
        yield
    except openai.APITimeoutError as e:
        raise CancelledOrTimedOutError(model_name) from e
    except openai.APIStatusError as e:
        raise TransportError(f"{vendor} request failed", e.status_code, e.response.text) from e
    except openai.APIConnectionError as e:
        raise TransportError(f"Could not reach {vendor}: {e}") from e


def create_openai_client(settings: Settings, *, api_key: str, base_url: str) -> AsyncOpenAI:
    """Build an SDK client with the configured timeout and retry count."""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=settings.resilience.timeout_seconds,
        max_retries=settings.resilience.max_retries,
    )


def tool_payload(tool: ToolBase) -> dict[str, Any]:
    """Responses API representation of a hosted tool."""
    if isinstance(tool, WebSearchTool):
        payload: dict[str, Any] = {
            "type": "web_search_preview",
            "search_context_size": tool.context_size.value,
        }
        if tool.has_location:
            location = {"type": "approximate"}
            for key in ("country", "region", "city", "timezone"):
                value = getattr(tool, key)
                if value:
                    location[key] = value
            payload["user_location"] = location
        return payload

    if isinstance(tool, FileSearchTool):
        payload = {"type": "file_search", "vector_store_ids": list(tool.vector_store_ids)}
        if tool.max_num_results is not None:
            payload["max_num_results"] = tool.max_num_results
        if tool.ranking_options is not None:
            payload["ranking_options"] = tool.ranking_options.model_dump()
        if tool.filters is not None:
            payload["filters"] = tool.filters
        return payload

    raise ValueError(f"Tool {type(tool).__name__} is not supported by OpenAI")


class OpenAiProvider(TextProvider):
    """Text generation through the OpenAI Responses API."""

    provider = Provider.OPENAI
    endpoint = EndpointsType.RESPONSE
    allow_null_union = True

    def __init__(
        self,
        settings: Settings,
        policy: ResiliencePolicy | None = None,
        client: AsyncOpenAI | None = None,
    ):
        super().__init__(settings, policy)
        self._client = client or create_openai_client(
            settings,
            api_key=settings.providers.require_key("openai"),
            base_url=settings.providers.openai_base_url,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def build_request(self, request: ProviderRequest) -> dict[str, Any]:
        """Keyword arguments for responses.create()."""
        model = request.model
        prompt = request.prompt

        content: list[dict[str, Any]] = [{"type": "input_text", "text": request.text}]
        for file in prompt.files or ():
            if file.is_image:
                content.append({"type": "input_image", "image_url": file.to_data_url()})
            else:
                content.append(
                    {"type": "input_file", "filename": file.name, "file_data": file.to_data_url()}
                )

        kwargs: dict[str, Any] = {
            "model": model.name,
            "input": [{"role": "user", "content": content}],
            "max_output_tokens": model.max_tokens,
            "store": getattr(model, "store_logs", False),
        }

        if request.structured:
            kwargs["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": SCHEMA_NAME,
                    "description": request.schema_description,
                    "schema": request.schema,
                    "strict": True,
                }
            }

        if isinstance(model, OpenAiReasoningBase):
            reasoning: dict[str, str] = {}
            if model.reason is not None:
                reasoning["effort"] = model.reason.value
            if model.reason_summary is not None:
                reasoning["summary"] = model.reason_summary.value
            if reasoning:
                kwargs["reasoning"] = reasoning

        if isinstance(model, OpenAiChatBase):
            if model.temperature is not None:
                kwargs["temperature"] = model.temperature
            if model.top_p is not None:
                kwargs["top_p"] = model.top_p

        if prompt.tools:
            kwargs["tools"] = [tool_payload(tool) for tool in prompt.tools]
        if prompt.tool_choice is not None:
            kwargs["tool_choice"] = TOOL_CHOICE_VALUES.get(prompt.tool_choice, "auto")
        if prompt.user_name:
            kwargs["user"] = prompt.user_name

        return kwargs

    async def send_request(self, request: ProviderRequest) -> ProviderReply:
        kwargs = self.build_request(request)
        with map_openai_errors(request.model.name):
            response = await self._client.responses.create(**kwargs)

        return ProviderReply(text=response.output_text or "", usage=_usage(response), raw=response)


def _usage(response: Any) -> Usage:
    usage = getattr(response, "usage", None)
    if usage is None:
        logger.warning("OpenAI response carried no usage data")
        return Usage()

    input_details = getattr(usage, "input_tokens_details", None)
    output_details = getattr(usage, "output_tokens_details", None)
    return Usage(
        input=usage.input_tokens or 0,
        output=usage.output_tokens or 0,
        cached_input=getattr(input_details, "cached_tokens", 0) or 0,
        reasoning=getattr(output_details, "reasoning_tokens", 0) or 0,
    )
