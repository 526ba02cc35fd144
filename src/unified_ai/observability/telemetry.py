"""
telemetry.py

PURPOSE: OpenTelemetry setup and the tracer handed to provider adapters.
DEPENDENCIES: opentelemetry-api, opentelemetry-sdk, opentelemetry-exporter-otlp (all optional)

ARCHITECTURE NOTES:
Adapters call get_tracer(__name__) at import time. The returned LazyTracer
resolves to the real OpenTelemetry tracer only once init_telemetry() has
run with tracing enabled; before that (or without the packages) every span
is a NoOpSpan, so adapter code never branches on whether tracing is on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from unified_ai.config import OpenTelemetrySettings

logger = logging.getLogger(__name__)

_initialized = False
_tracer_provider: object | None = None


@runtime_checkable
class Span(Protocol):
    """The subset of the OpenTelemetry span API used by adapters."""

    def __enter__(self) -> Span: ...
    def __exit__(self, *args: object) -> None: ...
    def set_attribute(self, key: str, value: object) -> None: ...
    def record_exception(self, exception: BaseException) -> None: ...


@runtime_checkable
class Tracer(Protocol):
    """The subset of the OpenTelemetry tracer API used by adapters."""

    def start_as_current_span(self, name: str, **kwargs: object) -> Span: ...


class NoOpSpan:
    """Span used while tracing is disabled."""

    def __enter__(self) -> Span:
        return self

    def __exit__(self, *args: object) -> None:
        pass

    def set_attribute(self, key: str, value: object) -> None:  # noqa: ARG002
        pass

    def record_exception(self, exception: BaseException) -> None:  # noqa: ARG002
        pass


class NoOpTracer:
    """Tracer used while tracing is disabled or otel is not installed."""

    def start_as_current_span(self, name: str, **kwargs: object) -> Span:  # noqa: ARG002
        return NoOpSpan()


class LazyTracer:
    """Defers the tracer lookup until a span is actually started."""

    def __init__(self, name: str) -> None:
        self._name = name

    def _resolve(self) -> Tracer:
        if not _initialized or _tracer_provider is None:
            return NoOpTracer()
        try:
            from opentelemetry import trace
        except ImportError:
            return NoOpTracer()
        return trace.get_tracer(self._name)  # type: ignore[return-value]

    def start_as_current_span(self, name: str, **kwargs: object) -> Span:
        return self._resolve().start_as_current_span(name, **kwargs)


def init_telemetry(settings: OpenTelemetrySettings) -> None:
    """
    Initialize OpenTelemetry tracing once per process.

    Safe to call without the otel packages installed; tracing then stays
    in no-op mode and a warning is logged.

    Args:
        settings: Tracing configuration.
    """
    global _initialized, _tracer_provider

    if _initialized:
        logger.debug("Telemetry already initialized")
        return

    _initialized = True
    if not settings.enabled:
        logger.debug("Telemetry disabled")
        return

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    except ImportError:
        logger.warning(
            "OpenTelemetry packages not installed. "
            "Install with: pip install unified-ai[observability]"
        )
        return

    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    if settings.endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        except ImportError:
            logger.warning("OTLP exporter not available, using console only")
        else:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.endpoint))
            )
            logger.info(f"OTLP exporter configured: {settings.endpoint}")

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    logger.info(f"Telemetry initialized: service={settings.service_name}")


def get_tracer(name: str) -> Tracer:
    """
    Get a tracer for a module.

    Args:
        name: Module name (typically __name__).

    Returns:
        A LazyTracer; it becomes a real tracer after init_telemetry().
    """
    return LazyTracer(name)


def shutdown_telemetry() -> None:
    """Flush pending spans and reset; safe when tracing was never started."""
    global _initialized, _tracer_provider

    shutdown = getattr(_tracer_provider, "shutdown", None)
    if callable(shutdown):
        shutdown()
        logger.debug("Telemetry shutdown complete")

    _tracer_provider = None
    _initialized = False
