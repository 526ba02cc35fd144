"""
x.py

PURPOSE: xAI Grok text provider (OpenAI-compatible chat completions).
DEPENDENCIES: openai SDK

ARCHITECTURE NOTES:
xAI speaks the chat completions protocol, so the openai SDK is pointed at
the xAI base URL. Structured replies use response_format json_schema
(strict). xAI-only fields (search_parameters) travel in extra_body.
"""

import logging
from typing import Any

from openai import AsyncOpenAI

from unified_ai.config import Settings
from unified_ai.errors import ResponseShapeError
from unified_ai.models.llm import EndpointsType, Provider
from unified_ai.models.result import Usage
from unified_ai.models.x import (
    SEARCH_MODE_VALUES,
    NewsSearchSource,
    RssSearchSource,
    SearchMode,
    SearchSettings,
    SearchSource,
    WebSearchSource,
    XChatBase,
    XReasoningBase,
    XSearchSource,
)
from unified_ai.providers.base import ProviderReply, ProviderRequest, TextProvider
from unified_ai.providers.openai import SCHEMA_NAME, create_openai_client, map_openai_errors
from unified_ai.providers.resilience import ResiliencePolicy

logger = logging.getLogger(__name__)

# xAI caps website lists per source
MAX_WEBSITES = 5


def search_parameters(search: SearchSettings) -> dict[str, Any]:
    """search_parameters request field for live search."""
    parameters: dict[str, Any] = {
        "mode": SEARCH_MODE_VALUES[search.mode],
        "return_citations": search.return_citations,
    }
    if search.from_date is not None:
        parameters["from_date"] = search.from_date.isoformat()
    if search.to_date is not None:
        parameters["to_date"] = search.to_date.isoformat()
    if search.max_search_results != SearchSettings.max_search_results:
        parameters["max_search_results"] = search.max_search_results
    if search.sources:
        parameters["sources"] = [_source(source) for source in search.sources]
    return parameters


def _source(source: SearchSource) -> dict[str, Any]:
    if isinstance(source, WebSearchSource):
        payload: dict[str, Any] = {"type": "web"}
        if source.country:
            payload["country"] = source.country
        if source.excluded_websites:
            payload["excluded_websites"] = list(source.excluded_websites[:MAX_WEBSITES])
        if source.allowed_websites:
            payload["allowed_websites"] = list(source.allowed_websites[:MAX_WEBSITES])
        if not source.safe_search:
            payload["safe_search"] = False
        return payload

    if isinstance(source, XSearchSource):
        payload = {"type": "x"}
        if source.included_x_handles:
            payload["included_x_handles"] = list(source.included_x_handles)
        if source.excluded_x_handles:
            payload["excluded_x_handles"] = list(source.excluded_x_handles)
        if source.post_favorite_count is not None:
            payload["post_favorite_count"] = source.post_favorite_count
        if source.post_view_count is not None:
            payload["post_view_count"] = source.post_view_count
        return payload

    if isinstance(source, NewsSearchSource):
        payload = {"type": "news"}
        if source.country:
            payload["country"] = source.country
        if source.excluded_websites:
            payload["excluded_websites"] = list(source.excluded_websites[:MAX_WEBSITES])
        if not source.safe_search:
            payload["safe_search"] = False
        return payload

    if isinstance(source, RssSearchSource):
        return {"type": "rss", "links": list(source.links)}

    raise TypeError(f"Unsupported search source {type(source).__name__}")


class XProvider(TextProvider):
    """Text generation through the xAI chat completions API."""

    provider = Provider.X
    endpoint = EndpointsType.CHAT
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
            api_key=settings.providers.require_key("x"),
            base_url=settings.providers.x_base_url,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def build_request(self, request: ProviderRequest) -> dict[str, Any]:
        """Keyword arguments for chat.completions.create()."""
        model = request.model
        prompt = request.prompt

        content: list[dict[str, Any]] = [{"type": "text", "text": request.text}]
        for file in prompt.image_files:
            content.append({"type": "image_url", "image_url": {"url": file.to_data_url()}})

        kwargs: dict[str, Any] = {
            "model": model.name,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": model.max_tokens,
        }
        if request.structured:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": SCHEMA_NAME,
                    "description": request.schema_description,
                    "schema": request.schema,
                    "strict": True,
                },
            }

        extra_body: dict[str, Any] = {}
        if isinstance(model, XChatBase):
            if model.web_search.mode is not SearchMode.NEVER:
                extra_body["search_parameters"] = search_parameters(model.web_search)
            if model.temperature is not None:
                kwargs["temperature"] = model.temperature
            if model.top_p is not None:
                kwargs["top_p"] = model.top_p
        if isinstance(model, XReasoningBase) and model.reason is not None:
            kwargs["reasoning_effort"] = model.reason.value
        if prompt.user_name:
            kwargs["user"] = prompt.user_name
        if extra_body:
            kwargs["extra_body"] = extra_body

        return kwargs

    async def send_request(self, request: ProviderRequest) -> ProviderReply:
        kwargs = self.build_request(request)
        with map_openai_errors(request.model.name, vendor="xAI"):
            response = await self._client.chat.completions.create(**kwargs)

        if not response.choices:
            raise ResponseShapeError(f"{request.model.name} returned no choices")
        text = response.choices[0].message.content or ""
        return ProviderReply(text=text, usage=_usage(response), raw=response)


def _usage(response: Any) -> Usage:
    usage = response.usage
    if usage is None:
        return Usage()
    prompt_details = getattr(usage, "prompt_tokens_details", None)
    completion_details = getattr(usage, "completion_tokens_details", None)
    return Usage(
        input=usage.prompt_tokens or 0,
        output=usage.completion_tokens or 0,
        cached_input=getattr(prompt_details, "cached_tokens", 0) or 0,
        reasoning=getattr(completion_details, "reasoning_tokens", 0) or 0,
    )
