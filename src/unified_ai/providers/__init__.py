"""
providers/__init__.py

PURPOSE: Vendor adapters behind the shared generation pipeline.
"""

from unified_ai.providers.anthropic import AnthropicProvider
from unified_ai.providers.base import ProviderReply, ProviderRequest, TextProvider
from unified_ai.providers.google import GoogleProvider
from unified_ai.providers.openai import OpenAiProvider
from unified_ai.providers.openai_image import OpenAiImageProvider
from unified_ai.providers.resilience import PassthroughPolicy, ResiliencePolicy
from unified_ai.providers.x import XProvider

__all__ = [
    "AnthropicProvider",
    "GoogleProvider",
    "OpenAiImageProvider",
    "OpenAiProvider",
    "PassthroughPolicy",
    "ProviderReply",
    "ProviderRequest",
    "ResiliencePolicy",
    "TextProvider",
    "XProvider",
]
