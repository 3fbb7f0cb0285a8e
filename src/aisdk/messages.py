"""Messages - The step-tagged conversation log.

A run keeps an append-only list of TaggedMessage entries. Each entry pairs a
Message with the id of the step that produced it; ids never decrease along
the log. Steps are derived views grouping entries by id.

MessageLogMixin gives any object holding ``tagged_messages`` the query
methods used on responses and inside hooks (steps, usage, text, tool calls).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import groupby
from typing import Iterable, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .errors import SchemaError
from .tools.types import ToolApprovalRequest, ToolApprovalResponse, ToolCallInfo, ToolResultInfo
from .types import ContentType, TextContent, Usage

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: str = field(default="system", init=False)


@dataclass(frozen=True)
class DeveloperMessage:
    content: str
    role: str = field(default="developer", init=False)


@dataclass(frozen=True)
class UserMessage:
    content: str
    role: str = field(default="user", init=False)


@dataclass(frozen=True)
class AssistantMessage:
    """Assistant output for one content item.

    Attributes:
        content: Text, reasoning, tool call, approval request or unsupported payload
        usage: Token usage of the model call that produced it
    """

    content: ContentType
    usage: Optional[Usage] = None
    role: str = field(default="assistant", init=False)


@dataclass(frozen=True)
class ToolMessage:
    """Result of a tool call, successful or not."""

    result: ToolResultInfo
    role: str = field(default="tool", init=False)


@dataclass(frozen=True)
class ToolApprovalMessage:
    """A caller's decision on a pending tool approval request."""

    response: ToolApprovalResponse
    role: str = field(default="tool_approval", init=False)


Message = Union[
    SystemMessage,
    DeveloperMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
    ToolApprovalMessage,
]


@dataclass(frozen=True)
class TaggedMessage:
    """A message plus the id of the step that produced it."""

    step_id: int
    message: Message


@dataclass(frozen=True)
class Step:
    """All messages sharing one step id, in log order."""

    step_id: int
    messages: list[Message] = field(default_factory=list)

    def usage(self) -> Usage:
        return sum_usage(self.messages)


def tag_messages(messages: Iterable[Union[Message, TaggedMessage]]) -> list[TaggedMessage]:
    """Turn a mixed list of messages into a log.

    Untagged messages take the step id of the entry before them (0 at the
    start), which keeps ids non-decreasing.
    """
    log: list[TaggedMessage] = []
    current = 0
    for m in messages:
        if isinstance(m, TaggedMessage):
            if m.step_id < current:
                raise ValueError(
                    f"Step ids must not decrease: {m.step_id} follows {current}"
                )
            current = m.step_id
            log.append(m)
        else:
            log.append(TaggedMessage(current, m))
    return log


def sum_usage(messages: Iterable[Message]) -> Usage:
    total = Usage()
    for m in messages:
        if isinstance(m, AssistantMessage) and m.usage is not None:
            total = total + m.usage
    return total


def extract_tool_approval_requests(log: Iterable[TaggedMessage]) -> list[ToolApprovalRequest]:
    return [
        t.message.content
        for t in log
        if isinstance(t.message, AssistantMessage)
        and isinstance(t.message.content, ToolApprovalRequest)
    ]


def extract_tool_approval_responses(log: Iterable[TaggedMessage]) -> list[ToolApprovalResponse]:
    return [t.message.response for t in log if isinstance(t.message, ToolApprovalMessage)]


@dataclass
class CollectedApprovals:
    """Approval requests that have a response, split by decision."""

    approved: list[tuple[ToolApprovalRequest, ToolApprovalResponse]] = field(default_factory=list)
    denied: list[tuple[ToolApprovalRequest, ToolApprovalResponse]] = field(default_factory=list)


def collect_tool_approvals(log: list[TaggedMessage]) -> CollectedApprovals:
    """Match approval requests with their responses by approval_id.

    Requests whose tool call already has a tool result after the request
    are skipped, so resuming a conversation twice does not run a tool twice.
    """
    responses = {r.approval_id: r for r in extract_tool_approval_responses(log)}
    collected = CollectedApprovals()

    for index, entry in enumerate(log):
        message = entry.message
        if not (
            isinstance(message, AssistantMessage)
            and isinstance(message.content, ToolApprovalRequest)
        ):
            continue
        request = message.content
        response = responses.get(request.approval_id)
        if response is None or _has_result_after(log, index, request.tool_call):
            continue
        if response.approved:
            collected.approved.append((request, response))
        else:
            collected.denied.append((request, response))

    return collected


def _has_result_after(log: list[TaggedMessage], index: int, call: ToolCallInfo) -> bool:
    # Without a call id results cannot be told apart
    if not call.id:
        return False
    for entry in log[index + 1 :]:
        message = entry.message
        if (
            isinstance(message, ToolMessage)
            and message.result.id == call.id
            and message.result.name == call.name
        ):
            return True
    return False


def has_pending_approval_requests(log: list[TaggedMessage]) -> bool:
    """True if any approval request has no response with the same id."""
    answered = {r.approval_id for r in extract_tool_approval_responses(log)}
    return any(r.approval_id not in answered for r in extract_tool_approval_requests(log))


class MessageLogMixin:
    """Read accessors over a ``tagged_messages`` log."""

    tagged_messages: list[TaggedMessage]

    def messages(self) -> list[Message]:
        """All messages in log order."""
        return [t.message for t in self.tagged_messages]

    def step_ids(self) -> list[int]:
        return [t.step_id for t in self.tagged_messages]

    def steps(self) -> list[Step]:
        """Every step in ascending id order."""
        return [
            Step(step_id, [t.message for t in group])
            for step_id, group in groupby(self.tagged_messages, key=lambda t: t.step_id)
        ]

    def step(self, index: int) -> Optional[Step]:
        messages = [t.message for t in self.tagged_messages if t.step_id == index]
        if not messages:
            return None
        return Step(index, messages)

    def last_step(self) -> Optional[Step]:
        if not self.tagged_messages:
            return None
        return self.step(max(t.step_id for t in self.tagged_messages))

    def usage(self) -> Usage:
        """Usage summed over every assistant message that reports it."""
        return sum_usage(self.messages())

    def content(self) -> Optional[ContentType]:
        """Content of the most recent assistant message."""
        for t in reversed(self.tagged_messages):
            if isinstance(t.message, AssistantMessage):
                return t.message.content
        return None

    def text(self) -> Optional[str]:
        """Text of the most recent assistant text content."""
        for t in reversed(self.tagged_messages):
            message = t.message
            if isinstance(message, AssistantMessage) and isinstance(message.content, TextContent):
                return message.content.text
        return None

    def tool_calls(self) -> Optional[list[ToolCallInfo]]:
        """Every tool call in the whole log, or None if there are none."""
        calls = [
            t.message.content
            for t in self.tagged_messages
            if isinstance(t.message, AssistantMessage)
            and isinstance(t.message.content, ToolCallInfo)
        ]
        return calls or None

    def tool_results(self) -> Optional[list[ToolResultInfo]]:
        """Every tool result in the whole log, or None if there are none."""
        results = [t.message.result for t in self.tagged_messages if isinstance(t.message, ToolMessage)]
        return results or None

    def pending_tool_approvals(self) -> Optional[list[ToolApprovalRequest]]:
        """Approval requests still waiting for a response."""
        answered = {r.approval_id for r in extract_tool_approval_responses(self.tagged_messages)}
        pending = [
            r
            for r in extract_tool_approval_requests(self.tagged_messages)
            if r.approval_id not in answered
        ]
        return pending or None

    def has_pending_approvals(self) -> bool:
        return has_pending_approval_requests(self.tagged_messages)

    def into_schema(self, model: type[ModelT]) -> ModelT:
        """Parse the final text as JSON into a pydantic model.

        Raises:
            SchemaError: No text response, or the text does not validate
        """
        text = self.text()
        if text is None:
            raise SchemaError("No text response found")
        try:
            return model.model_validate_json(text)
        except ValidationError as e:
            raise SchemaError(f"Response does not match {model.__name__}: {e}", e) from e


__all__ = [
    "AssistantMessage",
    "CollectedApprovals",
    "DeveloperMessage",
    "Message",
    "MessageLogMixin",
    "Step",
    "SystemMessage",
    "TaggedMessage",
    "ToolApprovalMessage",
    "ToolMessage",
    "UserMessage",
    "collect_tool_approvals",
    "extract_tool_approval_requests",
    "extract_tool_approval_responses",
    "has_pending_approval_requests",
    "sum_usage",
    "tag_messages",
]
