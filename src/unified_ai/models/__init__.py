"""
models/__init__.py

PURPOSE: Prompt, model descriptor and result types.

ARCHITECTURE NOTES:
Importing this package imports every vendor catalog so that find_model()
can resolve any known model by name.
"""

from unified_ai.models import anthropic, google, openai, x  # noqa: F401
from unified_ai.models.llm import (
    ChannelType,
    EndpointsType,
    FeaturesType,
    LlmBase,
    Provider,
    ToolsType,
    all_models,
    find_model,
)
from unified_ai.models.prompt import FileModel, FileSearchTool, PromptBase, WebSearchTool
from unified_ai.models.result import MetaData, Result, Usage, UsageDetails

__all__ = [
    "ChannelType",
    "EndpointsType",
    "FeaturesType",
    "FileModel",
    "FileSearchTool",
    "LlmBase",
    "MetaData",
    "PromptBase",
    "Provider",
    "Result",
    "ToolsType",
    "Usage",
    "UsageDetails",
    "WebSearchTool",
    "all_models",
    "find_model",
]
