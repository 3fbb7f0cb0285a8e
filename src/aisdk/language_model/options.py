"""Run options - The mutable state threaded through a generation run.

LanguageModelOptions holds everything a run needs (prompt, log, tools,
sampling knobs, hooks) plus its progress (current step, stop reason).
Adapters receive a snapshot; the generation loops own the original.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..errors import ToolCallError
from ..messages import (
    AssistantMessage,
    CollectedApprovals,
    Message,
    MessageLogMixin,
    TaggedMessage,
    ToolMessage,
    collect_tool_approvals,
)
from ..tools import (
    ToolApprovalRequest,
    ToolApprovalResponse,
    ToolCallInfo,
    ToolRegistry,
    ToolResultInfo,
)
from ..types import ContentType, ReasoningEffort, StopReason, UnsupportedContent, Usage

logger = logging.getLogger(__name__)

StepStartHook = Callable[["LanguageModelOptions"], None]
StepFinishHook = Callable[["LanguageModelOptions"], None]
StopWhen = Callable[["LanguageModelOptions"], bool]

DEFAULT_DENIAL_REASON = "Tool execution was denied by user"
WAITING_FOR_APPROVAL = "Waiting for tool approval"


@dataclass
class ContentOutcome:
    """What recording one content item did to the log.

    Attributes:
        message: The assistant message appended
        execute: Tool call to run now, if the content was an ungated tool call
        approval_requested: The content was a tool call withheld for approval
    """

    message: AssistantMessage
    execute: Optional[ToolCallInfo] = None
    approval_requested: bool = False


@dataclass
class LanguageModelOptions(MessageLogMixin):
    """Options and state for one generation run.

    Attributes:
        system: System prompt
        tagged_messages: Conversation log
        tools: Tools the model may call
        schema: JSON schema the final answer should follow
        stop_sequences: Sequences that end generation
        temperature: Sampling temperature
        top_p: Nucleus sampling cutoff
        max_output_tokens: Output token limit per call
        reasoning_effort: Reasoning budget hint for reasoning models
        stop_when: Called after each step; returning True halts the run
        on_step_start: Called before each step with mutable options
        on_step_finish: Called after each step
        current_step_id: Id of the step in progress
        stop_reason: Set when the run halts
    """

    system: Optional[str] = None
    tagged_messages: list[TaggedMessage] = field(default_factory=list)
    tools: Optional[ToolRegistry] = None
    schema: Optional[dict[str, Any]] = None
    stop_sequences: Optional[list[str]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    stop_when: Optional[StopWhen] = None
    on_step_start: Optional[StepStartHook] = None
    on_step_finish: Optional[StepFinishHook] = None
    current_step_id: int = 0
    stop_reason: Optional[StopReason] = None

    def snapshot(self) -> LanguageModelOptions:
        """Copy handed to adapters; appending to it does not touch the run."""
        return dataclasses.replace(self, tagged_messages=list(self.tagged_messages))

    def tool_schemas(self) -> list[dict[str, Any]]:
        return self.tools.schemas() if self.tools else []

    def append(self, message: Message, step_id: Optional[int] = None) -> None:
        step = self.current_step_id if step_id is None else step_id
        self.tagged_messages.append(TaggedMessage(step, message))

    def needs_approval(self, call: ToolCallInfo) -> bool:
        if self.tools is None:
            return False
        return self.tools.needs_approval(call, self.messages())

    def record_content(self, content: ContentType, usage: Optional[Usage]) -> ContentOutcome:
        """Append one model content item to the current step.

        Tool calls that need approval are stored as approval requests and
        not executed.
        """
        if isinstance(content, ToolCallInfo) and self.needs_approval(content):
            request = ToolApprovalRequest(tool_call=content)
            message = AssistantMessage(request, usage)
            self.append(message)
            logger.debug("Tool call %s withheld for approval %s", content.name, request.approval_id)
            return ContentOutcome(message, approval_requested=True)

        message = AssistantMessage(content, usage)
        self.append(message)
        if isinstance(content, ToolCallInfo):
            return ContentOutcome(message, execute=content)
        return ContentOutcome(message)

    async def run_tool(self, call: ToolCallInfo) -> ToolResultInfo:
        """Execute a tool call; failures become an error result."""
        if self.tools is None:
            return ToolResultInfo(name=call.name, id=call.id, error="Tool not found")
        try:
            output = await self.tools.execute(call)
        except ToolCallError as e:
            return ToolResultInfo(name=call.name, id=call.id, error=str(e))
        return ToolResultInfo(name=call.name, id=call.id, output=output)

    async def handle_tool_call(self, call: ToolCallInfo, step_id: Optional[int] = None) -> None:
        """Execute a tool call and append its result to the log."""
        result = await self.run_tool(call)
        self.append(ToolMessage(result), step_id)

    def collect_approvals(self) -> CollectedApprovals:
        """Approval requests in the log that now have a decision."""
        return collect_tool_approvals(self.tagged_messages)

    async def reconcile_approvals(self) -> None:
        """Apply approval decisions found in the log.

        Approved calls are executed; denied calls get a tool message
        explaining the denial. Both land in the next step, the one the
        resumed run continues in.
        """
        collected = self.collect_approvals()
        next_step = self.current_step_id + 1

        for request, _response in collected.approved:
            logger.debug("Running approved tool call %s", request.tool_call.name)
            await self.handle_tool_call(request.tool_call, next_step)

        for request, response in collected.denied:
            self.append(ToolMessage(denial_result(request, response)), next_step)


def is_recordable(content: ContentType) -> bool:
    """False for unsupported items and model-echoed approval requests, which are dropped."""
    return not isinstance(content, (UnsupportedContent, ToolApprovalRequest))


def denial_result(request: ToolApprovalRequest, response: ToolApprovalResponse) -> ToolResultInfo:
    """Tool result recorded in place of a denied call."""
    reason = response.reason or DEFAULT_DENIAL_REASON
    logger.debug("Tool call %s denied: %s", request.tool_call.name, reason)
    return ToolResultInfo(
        name=request.tool_call.name,
        id=request.tool_call.id,
        output=f"Tool execution denied: {reason}",
    )


__all__ = [
    "ContentOutcome",
    "denial_result",
    "is_recordable",
    "LanguageModelOptions",
    "StepFinishHook",
    "StepStartHook",
    "StopWhen",
    "DEFAULT_DENIAL_REASON",
    "WAITING_FOR_APPROVAL",
]
