"""
errors.py

PURPOSE: Exception hierarchy shared by every layer of the library.
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
Every failure a caller can observe derives from AIError. The kinds map onto
the stages of a generation call:
- Template and schema errors are raised before any network traffic
- TransportError / CancelledOrTimedOutError come from the HTTP call itself
- ResponseShapeError / ParseError come from interpreting the reply
Adapters wrap vendor SDK exceptions into these kinds at their boundary, so
callers never have to import a vendor SDK to handle failures.
"""


class AIError(Exception):
    """Base class for all library errors."""


class ConfigurationError(AIError):
    """A required setting (usually an API key) is missing or invalid."""


class UnsupportedModelError(AIError):
    """The model descriptor does not support the requested endpoint, channel or tool."""

    def __init__(self, model_name: str, message: str):
        self.model_name = model_name
        super().__init__(f"{model_name}: {message}")


class TemplateError(AIError):
    """Base class for prompt template failures."""


class TemplateSyntaxError(TemplateError):
    """Malformed template source."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"{message} (line {line}, column {column})")


class TemplateRenderError(TemplateError):
    """A well-formed template could not be evaluated against its variables."""


class SchemaGenerationError(AIError):
    """A member of a response type cannot be described as JSON Schema."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class TransportError(AIError):
    """Non-success HTTP status or connectivity failure."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        detail = message
        if status_code is not None:
            detail = f"{message} (HTTP {status_code})"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)


class CancelledOrTimedOutError(AIError):
    """The call was cancelled by the caller or exceeded its timeout."""

    def __init__(self, model_name: str, reason: str = "timed out"):
        self.model_name = model_name
        self.reason = reason
        super().__init__(f"Request to {model_name} {reason}")


class ResponseShapeError(AIError):
    """The vendor answered successfully but without usable content."""


class ParseError(AIError):
    """The reply could not be parsed into the declared response type."""

    def __init__(self, message: str, raw_text: str):
        self.raw_text = raw_text
        super().__init__(f"{message}\nRaw response: {raw_text}")
