"""
google.py

PURPOSE: Google Gemini text provider (generateContent over HTTP).
DEPENDENCIES: httpx

ARCHITECTURE NOTES:
Gemini is called directly with httpx:

    POST {base}/v1beta/models/{model}:generateContent
    x-goog-api-key: <key>

Structured prompts ask for application/json and carry the schema as an
instruction part ahead of the rendered prompt; the reply is parsed like
any other JSON text. Thought parts (thinking models) are skipped. Gemini
bills thinking tokens as output, so they are added to Usage.output.
"""

import logging
from typing import Any

import httpx

from unified_ai.config import Settings
from unified_ai.errors import CancelledOrTimedOutError, ResponseShapeError, TransportError
from unified_ai.models.google import GoogleBase
from unified_ai.models.llm import EndpointsType, Provider
from unified_ai.models.prompt import WebSearchTool
from unified_ai.models.result import Usage
from unified_ai.providers.base import (
    ProviderReply,
    ProviderRequest,
    TextProvider,
    structured_instruction,
)
from unified_ai.providers.resilience import ResiliencePolicy

logger = logging.getLogger(__name__)


class GoogleProvider(TextProvider):
    """Text generation through the Gemini REST API."""

    provider = Provider.GOOGLE
    endpoint = EndpointsType.CHAT

    def __init__(
        self,
        settings: Settings,
        policy: ResiliencePolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        super().__init__(settings, policy)
        self._api_key = settings.providers.require_key("google")
        self._http = http_client or httpx.AsyncClient(
            base_url=settings.providers.google_base_url,
            timeout=settings.resilience.timeout_seconds,
        )

    def build_request(self, request: ProviderRequest) -> dict[str, Any]:
        """JSON body for generateContent."""
        model = request.model
        prompt = request.prompt

        parts: list[dict[str, Any]] = []
        if request.structured:
            parts.append({"text": structured_instruction(request)})
        parts.append({"text": request.text})
        for file in prompt.files or ():
            parts.append({"inlineData": {"mimeType": file.mime_type, "data": file.to_base64()}})

        generation: dict[str, Any] = {"maxOutputTokens": model.max_tokens}
        if request.structured:
            generation["responseMimeType"] = "application/json"

        if isinstance(model, GoogleBase):
            if model.temperature is not None:
                generation["temperature"] = model.temperature
            if model.top_p is not None:
                generation["topP"] = model.top_p
            if model.top_k is not None:
                generation["topK"] = model.top_k
            if model.thinking_budget is not None:
                generation["thinkingConfig"] = {"thinkingBudget": model.thinking_budget}

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation,
        }
        if any(isinstance(tool, WebSearchTool) for tool in prompt.tools or ()):
            body["tools"] = [{"google_search": {}}]
        return body

    async def send_request(self, request: ProviderRequest) -> ProviderReply:
        model_name = request.model.name
        body = self.build_request(request)
        try:
            response = await self._http.post(
                f"/v1beta/models/{model_name}:generateContent",
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.TimeoutException as e:
            raise CancelledOrTimedOutError(model_name) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach Gemini: {e}") from e

        if not response.is_success:
            raise TransportError("Gemini request failed", response.status_code, response.text)

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {}).get("blockReason", "no candidates")
            raise ResponseShapeError(f"Gemini returned no candidates ({feedback})")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if not part.get("thought"))
        return ProviderReply(text=text, usage=_usage(data.get("usageMetadata") or {}), raw=data)

    async def aclose(self) -> None:
        await self._http.aclose()


def _usage(metadata: dict[str, Any]) -> Usage:
    thoughts = metadata.get("thoughtsTokenCount", 0)
    return Usage(
        input=metadata.get("promptTokenCount", 0),
        output=metadata.get("candidatesTokenCount", 0) + thoughts,
        cached_input=metadata.get("cachedContentTokenCount", 0),
        reasoning=thoughts,
    )
