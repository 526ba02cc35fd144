"""
conftest.py

Shared pytest fixtures for unified_ai tests.
"""

import pytest

from unified_ai.config import ProviderSettings, ResilienceSettings, Settings

TEST_KEY = "test-api-key"


@pytest.fixture
def settings() -> Settings:
    """Settings with dummy keys for every vendor and SDK retries disabled."""
    return Settings(
        providers=ProviderSettings(
            openai_api_key=TEST_KEY,
            anthropic_api_key=TEST_KEY,
            google_api_key=TEST_KEY,
            x_api_key=TEST_KEY,
        ),
        resilience=ResilienceSettings(timeout_seconds=5.0, max_retries=0),
    )


@pytest.fixture
def keyless_settings() -> Settings:
    """Settings with no API keys configured."""
    return Settings(
        providers=ProviderSettings(
            openai_api_key="",
            anthropic_api_key="",
            google_api_key="",
            x_api_key="",
        ),
        resilience=ResilienceSettings(max_retries=0),
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A 1x1 transparent PNG."""
    return bytes.fromhex(
        "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
        "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
    )
