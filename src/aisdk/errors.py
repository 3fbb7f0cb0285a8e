"""Errors - Exception types raised by aisdk.

- AISDKError: Base class for everything raised by the SDK
- ProviderError: A language model adapter failed (network, HTTP, parsing)
- ToolCallError / ToolNotFoundError: A tool could not produce a result
- EmptyResponseError: The model returned no content
- SchemaError: Structured output could not be parsed
- ConfigError: Invalid configuration or provider settings

Tool errors never escape a generation run: they are recorded inside a
tool message so the model can react to them. Provider errors end the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .language_model.generate_text import GenerateTextResponse


class AISDKError(Exception):
    """Base class for aisdk errors."""


class ProviderError(AISDKError):
    """A language model adapter failed to produce a response.

    Attributes:
        status_code: HTTP status code, when the failure came from an HTTP response
        response: Partial GenerateTextResponse at the time of the failure
            (set by generate_text so the conversation stays inspectable)
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response: Optional[GenerateTextResponse] = None


class ToolCallError(AISDKError):
    """A tool raised or returned an error."""


class ToolNotFoundError(ToolCallError):
    """No tool with the requested name is registered."""

    def __init__(self, name: str):
        super().__init__("Tool not found")
        self.name = name


class EmptyResponseError(AISDKError):
    """The language model returned no content items."""

    def __init__(self, message: str = "Language model returned empty response"):
        super().__init__(message)


class SchemaError(AISDKError):
    """Response text could not be converted into the requested schema."""

    def __init__(self, message: str, cause: Any = None):
        super().__init__(message)
        self.cause = cause


class ConfigError(AISDKError):
    """Invalid configuration or provider settings."""


__all__ = [
    "AISDKError",
    "ProviderError",
    "ToolCallError",
    "ToolNotFoundError",
    "EmptyResponseError",
    "SchemaError",
    "ConfigError",
]
