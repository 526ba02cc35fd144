"""
Unified AI - typed prompts and structured replies across LLM vendors.

This package provides:
- Prompt classes whose template renders from their own fields
- JSON Schema generation and reply parsing for the declared response type
- Adapters for OpenAI, Anthropic, Google Gemini and xAI Grok
"""

__version__ = "0.1.0"

from unified_ai.client import AIClient  # noqa: E402
from unified_ai.errors import AIError  # noqa: E402
from unified_ai.models import FileModel, PromptBase, Result  # noqa: E402

__all__ = ["AIClient", "AIError", "FileModel", "PromptBase", "Result", "__version__"]
