"""
openai_image.py

PURPOSE: OpenAI image generation provider (Images API).
DEPENDENCIES: openai SDK

ARCHITECTURE NOTES:
The prompt is rendered the same way as for text generation, but nothing
is parsed: the reply is a list of base64 images handed back as FileModels
without inspecting the bytes.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any

from openai import AsyncOpenAI

from unified_ai.config import Settings
from unified_ai.errors import ResponseShapeError, UnsupportedModelError
from unified_ai.models.llm import ChannelType, EndpointsType, LlmBase, Provider
from unified_ai.models.openai import OpenAiImageBase
from unified_ai.models.prompt import FileModel, PromptBase
from unified_ai.models.result import MetaData, Result, Usage, UsageDetails
from unified_ai.observability import get_tracer
from unified_ai.providers.base import run_cancellable
from unified_ai.providers.openai import create_openai_client, map_openai_errors
from unified_ai.providers.resilience import PassthroughPolicy, ResiliencePolicy
from unified_ai.template import build_prompt

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

IMAGE_MIME_TYPE = "image/png"


class OpenAiImageProvider:
    """Image generation through the OpenAI Images API."""

    provider = Provider.OPENAI

    def __init__(
        self,
        settings: Settings,
        policy: ResiliencePolicy | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self._policy: ResiliencePolicy = policy or PassthroughPolicy()
        self._client = client or create_openai_client(
            settings,
            api_key=settings.providers.require_key("openai"),
            base_url=settings.providers.openai_base_url,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def check_support(self, model: LlmBase) -> None:
        if model.provider is not self.provider:
            raise UnsupportedModelError(
                model.name, f"is a {model.provider.value} model, not {self.provider.value}"
            )
        if not model.supports_endpoint(EndpointsType.IMAGE):
            raise UnsupportedModelError(model.name, "does not support the image endpoint")
        if not model.produces(ChannelType.IMAGE):
            raise UnsupportedModelError(model.name, "does not produce image output")

    def build_request(self, model: LlmBase, text: str, user_name: str | None) -> dict[str, Any]:
        """Keyword arguments for images.generate()."""
        kwargs: dict[str, Any] = {"model": model.name, "prompt": text}
        if isinstance(model, OpenAiImageBase):
            kwargs["n"] = model.quantity
            kwargs["quality"] = model.quality_value
            kwargs["size"] = model.size_value
        if user_name:
            kwargs["user"] = user_name
        return kwargs

    async def generate(
        self,
        model: LlmBase,
        prompt: PromptBase[Any],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[list[FileModel]]:
        """
        Generate images for a prompt.

        Returns:
            Result whose value holds one FileModel per generated image

        Raises:
            UnsupportedModelError: If the model cannot generate images
            ResponseShapeError: If the reply holds no image data
        """
        self.check_support(model)
        kwargs = self.build_request(model, build_prompt(prompt), prompt.user_name)

        async def send() -> Any:
            with map_openai_errors(model.name):
                return await self._client.images.generate(**kwargs)

        with tracer.start_as_current_span("ai.generate_image") as span:
            span.set_attribute("ai.provider", self.provider.value)
            span.set_attribute("ai.model", model.name)
            span.set_attribute("ai.prompt", type(prompt).__name__)

            start_time = time.perf_counter()
            response = await run_cancellable(
                send, policy=self._policy, model_name=model.name, cancel_event=cancel_event
            )
            elapsed = time.perf_counter() - start_time

            images = [
                FileModel.from_base64(f"image-{index}.png", IMAGE_MIME_TYPE, item.b64_json)
                for index, item in enumerate(response.data or (), start=1)
                if item.b64_json
            ]
            if not images:
                raise ResponseShapeError(f"{model.name} returned no image data")
            span.set_attribute("ai.images", len(images))

        logger.debug(f"{model.name}: generated {len(images)} image(s) in {elapsed:.2f}s")
        duration = timedelta(seconds=elapsed)
        metadata = MetaData(model=model, usage=_usage(response), duration=duration)
        return Result(value=images, metadata=metadata)


def _usage(response: Any) -> Usage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return Usage()
    details = getattr(usage, "input_tokens_details", None)
    input_details = None
    if details is not None:
        input_details = UsageDetails(
            text=getattr(details, "text_tokens", 0) or 0,
            image=getattr(details, "image_tokens", 0) or 0,
        )
    return Usage(
        input=usage.input_tokens or 0,
        output=usage.output_tokens or 0,
        input_details=input_details,
        output_details=UsageDetails(image=usage.output_tokens or 0),
    )
