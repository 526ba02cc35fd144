"""
base.py

PURPOSE: Shared generation pipeline for all text providers.
DEPENDENCIES: template, structured, models, observability

ARCHITECTURE NOTES:
TextProvider.generate() is a template method:

1. check_support()   -> UnsupportedModelError, before anything else
2. build_prompt()    -> TemplateSyntaxError / TemplateRenderError
3. build_schema()    -> SchemaGenerationError
4. send_request()    -> vendor specific, one HTTP call through the
                        ResiliencePolicy, raced against cancel_event
5. parse_response()  -> ParseError

Steps 1-3 finish before any network traffic. Subclasses only implement
send_request(), returning a ProviderReply (text + Usage); they translate
their SDK's exceptions into TransportError / CancelledOrTimedOutError /
ResponseShapeError themselves.
"""

import asyncio
import contextlib
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, ClassVar, TypeVar

from unified_ai.config import Settings
from unified_ai.errors import (
    AIError,
    CancelledOrTimedOutError,
    ResponseShapeError,
    UnsupportedModelError,
)
from unified_ai.models.llm import ChannelType, EndpointsType, LlmBase, Provider
from unified_ai.models.prompt import PromptBase
from unified_ai.models.result import MetaData, Result, Usage
from unified_ai.observability import get_tracer
from unified_ai.providers.resilience import PassthroughPolicy, ResiliencePolicy
from unified_ai.structured import build_schema, parse_response, schema_description
from unified_ai.template import build_prompt

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderReply:
    """What a vendor call produced before parsing."""

    text: str
    usage: Usage
    raw: Any = None


@dataclass(frozen=True)
class ProviderRequest:
    """Everything a provider needs to build its vendor request."""

    model: LlmBase
    prompt: PromptBase[Any]
    text: str
    response_type: Any
    schema: dict[str, Any]

    @property
    def structured(self) -> bool:
        """False for freeform (str) responses."""
        return self.response_type is not str

    @property
    def schema_description(self) -> str:
        return schema_description(self.response_type)


def structured_instruction(request: ProviderRequest) -> str:
    """Instruction text for vendors without a native schema constraint."""
    return (
        "Respond only with a JSON object that matches the JSON Schema below, "
        'with your answer inside the "result" property. Do not add any other text.\n'
        f"Description: {request.schema_description}\n"
        f"Schema: {json.dumps(request.schema, ensure_ascii=False)}"
    )


async def run_cancellable(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: ResiliencePolicy,
    model_name: str,
    cancel_event: asyncio.Event | None,
) -> T:
    """
    Run one vendor call through the resilience policy.

    If cancel_event fires first, the call is cancelled and
    CancelledOrTimedOutError is raised. A TimeoutError raised by the policy
    or the call maps to the same error.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledOrTimedOutError(model_name, "was cancelled")

    try:
        if cancel_event is None:
            return await policy.execute(operation)

        task = asyncio.ensure_future(policy.execute(operation))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if task not in done or task.cancelled():
            raise CancelledOrTimedOutError(model_name, "was cancelled")
        return task.result()
    except TimeoutError as e:
        raise CancelledOrTimedOutError(model_name) from e


class TextProvider(ABC):
    """Base class for vendor adapters that produce text or structured output."""

    provider: ClassVar[Provider]
    endpoint: ClassVar[EndpointsType] = EndpointsType.CHAT
    # Vendors with strict schemas need ["type", "null"] to return null
    allow_null_union: ClassVar[bool] = False

    def __init__(self, settings: Settings, policy: ResiliencePolicy | None = None):
        self._settings = settings
        self._policy: ResiliencePolicy = policy or PassthroughPolicy()

    async def aclose(self) -> None:
        """Release network resources held by the adapter. The default holds none."""

    def check_support(self, model: LlmBase, prompt: PromptBase[Any]) -> None:
        """
        Reject calls the model descriptor does not declare support for.

        Raises:
            UnsupportedModelError: On a provider, endpoint, channel or tool mismatch
        """
        if model.provider is not self.provider:
            raise UnsupportedModelError(
                model.name, f"is a {model.provider.value} model, not {self.provider.value}"
            )
        if not model.supports_endpoint(self.endpoint):
            raise UnsupportedModelError(
                model.name, f"does not support the {self.endpoint.name.lower()} endpoint"
            )
        if not model.produces(ChannelType.TEXT):
            raise UnsupportedModelError(model.name, "does not produce text output")
        if prompt.image_files and not model.accepts(ChannelType.IMAGE):
            raise UnsupportedModelError(model.name, "does not accept image input")
        requested = prompt.requested_tools
        if requested and not model.supports_tools(requested):
            raise UnsupportedModelError(model.name, f"does not support tools {requested!r}")

    def prepare(self, model: LlmBase, prompt: PromptBase[Any]) -> ProviderRequest:
        """Validate, render and build the schema; no network traffic."""
        self.check_support(model, prompt)
        response_type = prompt.response_type()
        text = build_prompt(prompt)
        schema = build_schema(response_type, strict=True, allow_null_union=self.allow_null_union)
        return ProviderRequest(
            model=model,
            prompt=prompt,
            text=text,
            response_type=response_type,
            schema=schema,
        )

    async def generate(
        self,
        model: LlmBase,
        prompt: PromptBase[T],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[T]:
        """
        Run one generation call.

        Args:
            model: Model descriptor with per-call options
            prompt: Prompt whose template and fields produce the request text
            cancel_event: Setting this event cancels the in-flight call

        Returns:
            Result with the parsed value and usage metadata

        Raises:
            AIError: Any of the library error kinds; never a partial result
        """
        request = self.prepare(model, prompt)

        with tracer.start_as_current_span("ai.generate") as span:
            span.set_attribute("ai.provider", self.provider.value)
            span.set_attribute("ai.model", model.name)
            span.set_attribute("ai.prompt", type(prompt).__name__)
            span.set_attribute("ai.max_tokens", model.max_tokens)

            logger.debug(f"Sending {type(prompt).__name__} to {model.name}")
            start_time = time.perf_counter()
            try:
                reply = await run_cancellable(
                    lambda: self.send_request(request),
                    policy=self._policy,
                    model_name=model.name,
                    cancel_event=cancel_event,
                )
                if not reply.text.strip():
                    raise ResponseShapeError(f"{model.name} returned an empty response")
                value = parse_response(reply.text, request.response_type)
            except AIError as e:
                span.record_exception(e)
                raise
            elapsed = time.perf_counter() - start_time

            span.set_attribute("ai.input_tokens", reply.usage.input)
            span.set_attribute("ai.output_tokens", reply.usage.output)
            span.set_attribute("ai.latency_ms", elapsed * 1000)

        logger.debug(
            f"{model.name}: {reply.usage.input} in, {reply.usage.output} out, {elapsed:.2f}s"
        )
        metadata = MetaData(model=model, usage=reply.usage, duration=timedelta(seconds=elapsed))
        return Result(value=value, metadata=metadata)

    @abstractmethod
    async def send_request(self, request: ProviderRequest) -> ProviderReply:
        """Issue the vendor call and return the raw reply text and usage."""
        ...
