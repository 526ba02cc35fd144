"""
prompt.py

PURPOSE: Prompt base class, hosted tool settings and file attachments.
DEPENDENCIES: pydantic

ARCHITECTURE NOTES:
A prompt is a frozen pydantic model. The template lives in the class
attribute `prompt`; the variables are ordinary fields. The declared
response type is the generic parameter:

    class Translate(PromptBase[str]):
        prompt = "Translate {{ content }} to {{ language }}"
        content: str
        language: str

The control fields below (tools, tool_choice, user_name, files) steer the
request and are never rendered into the template or the schema.
"""

import base64
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from unified_ai.models.llm import ToolsType

ResponseT = TypeVar("ResponseT")

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FileModel:
    """An attachment or generated file, carried as opaque bytes."""

    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @classmethod
    def from_path(cls, path: str | Path) -> "FileModel":
        """Load a file, guessing its MIME type from the extension."""
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, mime_type=mime_type or DEFAULT_MIME_TYPE, data=path.read_bytes())

    @classmethod
    def from_base64(cls, name: str, mime_type: str, encoded: str) -> "FileModel":
        return cls(name=name, mime_type=mime_type, data=base64.b64decode(encoded))

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def extension(self) -> str:
        suffix = Path(self.name).suffix
        return suffix or mimetypes.guess_extension(self.mime_type) or ""

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    def save(self, path: str | Path) -> Path:
        """
        Write the bytes to disk.

        Args:
            path: Target file, or an existing directory to save under self.name

        Returns:
            The path written
        """
        target = Path(path)
        if target.is_dir():
            target = target / self.name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.data)
        return target


class ContextSize(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ToolBase(BaseModel):
    """Hosted tool a prompt asks the model to use."""

    tool_type: ClassVar[ToolsType] = ToolsType.NONE

    model_config = ConfigDict(frozen=True)


class WebSearchTool(ToolBase):
    tool_type: ClassVar[ToolsType] = ToolsType.WEB_SEARCH

    context_size: ContextSize = ContextSize.MEDIUM
    country: str | None = Field(default=None, description="Two-letter ISO country code")
    region: str | None = None
    city: str | None = None
    timezone: str | None = Field(default=None, description="IANA timezone, e.g. Europe/Warsaw")

    @property
    def has_location(self) -> bool:
        return any((self.country, self.region, self.city, self.timezone))


class RankingOptions(BaseModel):
    ranker: str = "auto"
    score_threshold: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class FileSearchTool(ToolBase):
    tool_type: ClassVar[ToolsType] = ToolsType.FILE_SEARCH

    vector_store_ids: list[str] = Field(min_length=1)
    max_num_results: int | None = Field(default=None, ge=1, le=50)
    ranking_options: RankingOptions | None = None
    filters: dict[str, Any] | None = None


class PromptBase(BaseModel, Generic[ResponseT]):
    """
    Base class for prompts.

    Subclasses set the `prompt` template and declare their variables as
    fields; the generic parameter is the response type (str if omitted).
    """

    prompt: ClassVar[str] = ""

    tools: list[ToolBase] | None = None
    tool_choice: ToolsType | None = None
    user_name: str | None = None
    files: list[FileModel] | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def response_type(cls) -> Any:
        """The declared response type."""
        for klass in cls.__mro__:
            metadata = klass.__dict__.get("__pydantic_generic_metadata__")
            if not metadata or metadata.get("origin") is not PromptBase:
                continue
            arguments = metadata.get("args") or ()
            if arguments and not isinstance(arguments[0], TypeVar):
                return arguments[0]
        return str

    @property
    def requested_tools(self) -> ToolsType:
        """Union of the tool types this prompt asks for."""
        requested = ToolsType.NONE
        for tool in self.tools or ():
            requested |= tool.tool_type
        return requested

    @property
    def image_files(self) -> list[FileModel]:
        return [file for file in self.files or () if file.is_image]
