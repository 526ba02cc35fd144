"""
config.py

PURPOSE: Configuration loading and settings management.
DEPENDENCIES: pydantic, pydantic-settings

ARCHITECTURE NOTES:
Configuration comes from (in priority order):
1. Explicit Settings objects passed to AIClient (highest priority)
2. Environment variables (UNIFIED_AI_ prefix, nested with "__")
3. The vendors' standard key variables (OPENAI_API_KEY, ...)
4. Defaults (lowest priority)

Retries and timeouts are handed to the vendor SDKs / httpx rather than
implemented here; ResilienceSettings only carries their parameters.
"""

import os

from pydantic import Field
from pydantic_settings import BaseSettings

from unified_ai.errors import ConfigurationError


class ProviderSettings(BaseSettings):
    """API keys and endpoints for each vendor."""

    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com",
        description="Anthropic API base URL",
    )
    google_api_key: str = Field(default="", description="Google Gemini API key")
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Gemini API base URL",
    )
    x_api_key: str = Field(default="", description="xAI API key")
    x_base_url: str = Field(
        default="https://api.x.ai/v1",
        description="xAI API base URL",
    )

    model_config = {"env_prefix": "UNIFIED_AI_PROVIDER_"}

    def require_key(self, provider: str) -> str:
        """
        Return the API key for a provider.

        Args:
            provider: One of "openai", "anthropic", "google", "x"

        Raises:
            ConfigurationError: If the key is empty
        """
        key = getattr(self, f"{provider}_api_key", "")
        if not key:
            raise ConfigurationError(f"No API key configured for provider '{provider}'")
        return key


class ResilienceSettings(BaseSettings):
    """Parameters handed to the HTTP layer; no retry loop lives in this library."""

    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for a single request attempt",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retry attempts delegated to the vendor SDK",
    )

    model_config = {"env_prefix": "UNIFIED_AI_RESILIENCE_"}


class OpenTelemetrySettings(BaseSettings):
    """Settings for optional OpenTelemetry tracing."""

    enabled: bool = Field(default=False, description="Enable tracing")
    service_name: str = Field(default="unified-ai", description="Service name for traces")
    endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC endpoint (console export only if unset)",
    )

    model_config = {"env_prefix": "UNIFIED_AI_OTEL_"}


class Settings(BaseSettings):
    """Main library settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Enable debug output")
    providers: ProviderSettings = Field(
        default_factory=ProviderSettings,
        description="Vendor credentials and endpoints",
    )
    resilience: ResilienceSettings = Field(
        default_factory=ResilienceSettings,
        description="Timeout and retry parameters",
    )
    otel: OpenTelemetrySettings = Field(
        default_factory=OpenTelemetrySettings,
        description="Tracing settings",
    )

    model_config = {"env_prefix": "UNIFIED_AI_", "env_nested_delimiter": "__"}


# Vendor-standard variables, first match wins
_KEY_VARIABLES = {
    "openai_api_key": ("OPENAI_API_KEY",),
    "anthropic_api_key": ("ANTHROPIC_API_KEY",),
    "google_api_key": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "x_api_key": ("XAI_API_KEY",),
}


def get_settings() -> Settings:
    """Get library settings, loading from environment."""
    providers = ProviderSettings()
    overrides = {}
    for field_name, variables in _KEY_VARIABLES.items():
        if getattr(providers, field_name):
            continue
        for variable in variables:
            value = os.environ.get(variable, "")
            if value:
                overrides[field_name] = value
                break

    if overrides:
        providers = providers.model_copy(update=overrides)

    return Settings(providers=providers)
