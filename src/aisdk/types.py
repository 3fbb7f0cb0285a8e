"""Core types - Content, usage and stop reasons.

This module defines the value types shared by messages, the generation
loops and provider adapters:
- TextContent / ReasoningContent / UnsupportedContent: Assistant payloads
- ContentType: Union of everything an assistant message can carry
- Usage: Token accounting
- StopReason: Why a run halted
- LanguageModelResponse: One non-streaming round from an adapter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .tools.types import ToolApprovalRequest, ToolCallInfo


@dataclass(frozen=True)
class TextContent:
    """Plain text produced by the model."""

    text: str


@dataclass(frozen=True)
class ReasoningContent:
    """Reasoning trace produced by the model.

    Attributes:
        content: Reasoning text (or summary)
        extensions: Provider-specific metadata (signatures, ids)
    """

    content: str
    extensions: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UnsupportedContent:
    """Output the SDK does not understand, kept verbatim."""

    raw: Any = None


ContentType = Union[
    TextContent,
    ReasoningContent,
    ToolCallInfo,
    ToolApprovalRequest,
    UnsupportedContent,
]


def _add_optional(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None and b is None:
        return None
    return (a or 0) + (b or 0)


@dataclass(frozen=True)
class Usage:
    """Token usage. Missing counts are None and add as zero."""

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    reasoning_tokens: Optional[int] = None
    cached_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def __add__(self, other: Usage) -> Usage:
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            input_tokens=_add_optional(self.input_tokens, other.input_tokens),
            output_tokens=_add_optional(self.output_tokens, other.output_tokens),
            reasoning_tokens=_add_optional(self.reasoning_tokens, other.reasoning_tokens),
            cached_tokens=_add_optional(self.cached_tokens, other.cached_tokens),
            total_tokens=_add_optional(self.total_tokens, other.total_tokens),
        )


class StopReasonKind(Enum):
    FINISH = "finish"
    HOOK = "hook"
    ERROR = "error"
    OTHER = "other"


@dataclass(frozen=True)
class StopReason:
    """Why a generation run halted.

    - FINISH: The model produced a final answer
    - HOOK: The stop_when hook returned True
    - ERROR: The adapter failed or returned nothing (``error`` is set)
    - OTHER: Any other halt, e.g. "Waiting for tool approval"
    """

    kind: StopReasonKind
    message: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def finish(cls) -> StopReason:
        return cls(StopReasonKind.FINISH)

    @classmethod
    def hook(cls) -> StopReason:
        return cls(StopReasonKind.HOOK)

    @classmethod
    def from_error(cls, error: BaseException) -> StopReason:
        return cls(StopReasonKind.ERROR, str(error), error)

    @classmethod
    def other(cls, message: str) -> StopReason:
        return cls(StopReasonKind.OTHER, message)

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value


class ReasoningEffort(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class LanguageModelResponse:
    """Result of one non-streaming adapter call.

    Attributes:
        contents: Content items in the order the model produced them
        usage: Token usage for the call
    """

    contents: list[ContentType] = field(default_factory=list)
    usage: Optional[Usage] = None


__all__ = [
    "ContentType",
    "LanguageModelResponse",
    "ReasoningContent",
    "ReasoningEffort",
    "StopReason",
    "StopReasonKind",
    "TextContent",
    "UnsupportedContent",
    "Usage",
]
