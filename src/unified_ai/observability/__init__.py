"""
observability/__init__.py

PURPOSE: Opt-in OpenTelemetry tracing for generation calls.
DEPENDENCIES: opentelemetry-api, opentelemetry-sdk (optional, "observability" extra)

ARCHITECTURE NOTES:
- Works without otel packages installed (no-op mode)
- Console output by default when enabled
- OTLP export when an endpoint is configured
"""

from unified_ai.observability.telemetry import get_tracer, init_telemetry, shutdown_telemetry

__all__ = ["get_tracer", "init_telemetry", "shutdown_telemetry"]
