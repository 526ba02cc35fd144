"""
client.py

PURPOSE: Single entry point that routes a prompt to the right vendor adapter.
DEPENDENCIES: providers, config

ARCHITECTURE NOTES:
Dispatch is a lookup on the model descriptor's Provider tag. Adapters are
built lazily on first use so that only the vendors actually called need an
API key. register() replaces or adds an adapter for a provider and is the
only extension point. aclose() closes the adapters the client built itself;
registered or injected adapters belong to the caller:

    async with AIClient() as client:
        result = await client.generate(Summarize(text=article), Gpt41Mini())
        print(result.value, result.metadata.price_total)
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from unified_ai.config import Settings, get_settings
from unified_ai.errors import ResponseShapeError, UnsupportedModelError
from unified_ai.models.llm import LlmBase, Provider
from unified_ai.models.prompt import FileModel, PromptBase
from unified_ai.models.result import Result
from unified_ai.providers.anthropic import AnthropicProvider
from unified_ai.providers.base import TextProvider
from unified_ai.providers.google import GoogleProvider
from unified_ai.providers.openai import OpenAiProvider
from unified_ai.providers.openai_image import OpenAiImageProvider
from unified_ai.providers.resilience import ResiliencePolicy
from unified_ai.providers.x import XProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

TEXT_PROVIDERS: dict[Provider, Callable[..., TextProvider]] = {
    Provider.OPENAI: OpenAiProvider,
    Provider.ANTHROPIC: AnthropicProvider,
    Provider.GOOGLE: GoogleProvider,
    Provider.X: XProvider,
}

IMAGE_PROVIDERS: dict[Provider, Callable[..., OpenAiImageProvider]] = {
    Provider.OPENAI: OpenAiImageProvider,
}


class AIClient:
    """
    Multi-vendor generation client.

    Args:
        settings: Configuration; loaded from the environment if omitted
        providers: Prebuilt text adapters keyed by provider
        image_providers: Prebuilt image adapters keyed by provider
        policy: Resilience policy handed to lazily built adapters
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        providers: Mapping[Provider, TextProvider] | None = None,
        image_providers: Mapping[Provider, OpenAiImageProvider] | None = None,
        policy: ResiliencePolicy | None = None,
    ):
        self.settings = settings or get_settings()
        self._policy = policy
        self._providers: dict[Provider, TextProvider] = dict(providers or {})
        self._image_providers: dict[Provider, OpenAiImageProvider] = dict(image_providers or {})
        # Adapters built here, closed by aclose()
        self._owned: list[TextProvider | OpenAiImageProvider] = []

    async def __aenter__(self) -> "AIClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close every adapter this client built and forget it."""
        owned, self._owned = self._owned, []
        for adapter in owned:
            logger.debug(f"Closing {type(adapter).__name__}")
            await adapter.aclose()
        self._providers = {p: a for p, a in self._providers.items() if a not in owned}
        self._image_providers = {
            p: a for p, a in self._image_providers.items() if a not in owned
        }

    def register(self, provider: Provider, adapter: TextProvider) -> None:
        """Use `adapter` for every text call to models tagged with `provider`."""
        logger.debug(f"Registered {type(adapter).__name__} for {provider.value}")
        self._providers[provider] = adapter

    def text_provider(self, provider: Provider) -> TextProvider:
        """
        Return the adapter for a provider, building it on first use.

        Raises:
            UnsupportedModelError: If no adapter exists for the provider
            ConfigurationError: If the provider's API key is missing
        """
        if provider not in self._providers:
            factory = TEXT_PROVIDERS.get(provider)
            if factory is None:
                raise UnsupportedModelError(provider.value, "no text provider registered")
            adapter = factory(self.settings, self._policy)
            self._owned.append(adapter)
            self._providers[provider] = adapter
        return self._providers[provider]

    def image_provider(self, provider: Provider) -> OpenAiImageProvider:
        if provider not in self._image_providers:
            factory = IMAGE_PROVIDERS.get(provider)
            if factory is None:
                raise UnsupportedModelError(provider.value, "no image provider registered")
            image_adapter = factory(self.settings, self._policy)
            self._owned.append(image_adapter)
            self._image_providers[provider] = image_adapter
        return self._image_providers[provider]

    async def generate(
        self,
        prompt: PromptBase[T],
        model: LlmBase,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[T]:
        """
        Render `prompt`, send it to `model` and parse the reply.

        Args:
            prompt: Prompt instance; its generic parameter is the response type
            model: Model descriptor with per-call options
            cancel_event: Setting this event cancels the in-flight call

        Returns:
            Result with the typed value and usage metadata

        Raises:
            AIError: Any of the library error kinds
        """
        return await self.text_provider(model.provider).generate(
            model, prompt, cancel_event=cancel_event
        )

    async def generate_images(
        self,
        prompt: PromptBase[Any],
        model: LlmBase,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[list[FileModel]]:
        """Generate every image the model's quantity option asks for."""
        return await self.image_provider(model.provider).generate(
            model, prompt, cancel_event=cancel_event
        )

    async def generate_image(
        self,
        prompt: PromptBase[Any],
        model: LlmBase,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[FileModel]:
        """
        Generate exactly one image.

        Raises:
            ResponseShapeError: If the vendor returned more than one image
        """
        result = await self.generate_images(prompt, model, cancel_event=cancel_event)
        if len(result.value) != 1:
            raise ResponseShapeError(
                f"{model.name} returned {len(result.value)} images, expected exactly one"
            )
        return Result(value=result.value[0], metadata=result.metadata)
