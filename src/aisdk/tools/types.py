"""Tool types - Data structures for tool calling.

This module defines the records exchanged between the model, the
generation loop and the tool registry:
- Tool: A callable tool with its schema and approval policy
- NeedsApproval: Whether a call must be approved before it runs
- ToolCallInfo / ToolResultInfo: A requested call and its outcome
- ToolApprovalRequest / ToolApprovalResponse: Human-in-the-loop gating
"""

from __future__ import annotations

import inspect
import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..messages import Message


@dataclass(frozen=True)
class ToolCallInfo:
    """A tool call requested by the model.

    Attributes:
        name: Name of the tool to call
        id: Call id issued by the provider
        input: JSON arguments for the tool
    """

    name: str
    id: str = ""
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultInfo:
    """Outcome of a tool call.

    Exactly one of ``output`` / ``error`` is meaningful: a failed call keeps
    its error message in ``error`` and leaves ``output`` as None.
    """

    name: str
    id: str = ""
    output: Any = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def output_text(self) -> str:
        """Output as text, the error message for failed calls."""
        if self.error is not None:
            return self.error
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output)


@dataclass(frozen=True)
class ToolApprovalRequest:
    """A tool call withheld until it is approved."""

    tool_call: ToolCallInfo
    approval_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class ToolApprovalResponse:
    """Decision for a ToolApprovalRequest, matched by approval_id."""

    approval_id: str
    approved: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ToolApprovalContext:
    """Context passed to dynamic approval predicates."""

    tool_call_id: str
    messages: list[Message] = field(default_factory=list)


ApprovalPredicate = Callable[[dict[str, Any], ToolApprovalContext], bool]


class ApprovalMode(Enum):
    """How a tool decides whether a call needs approval."""

    NEVER = "never"
    ALWAYS = "always"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class NeedsApproval:
    """Approval policy of a tool.

    Example:
        NeedsApproval.dynamic(lambda args, ctx: args.get("amount", 0) > 100)
    """

    mode: ApprovalMode = ApprovalMode.NEVER
    predicate: Optional[ApprovalPredicate] = None

    @classmethod
    def never(cls) -> NeedsApproval:
        return cls(ApprovalMode.NEVER)

    @classmethod
    def always(cls) -> NeedsApproval:
        return cls(ApprovalMode.ALWAYS)

    @classmethod
    def dynamic(cls, predicate: ApprovalPredicate) -> NeedsApproval:
        return cls(ApprovalMode.DYNAMIC, predicate)

    def evaluate(self, arguments: dict[str, Any], context: ToolApprovalContext) -> bool:
        if self.mode is ApprovalMode.ALWAYS:
            return True
        if self.mode is ApprovalMode.DYNAMIC and self.predicate is not None:
            return bool(self.predicate(arguments, context))
        return False


ToolFunction = Callable[[dict[str, Any]], Any]


@dataclass
class Tool:
    """A tool the model can call.

    Attributes:
        name: Unique tool name (the key the model calls it by)
        description: What the tool does, shown to the model
        execute: Function taking the JSON input dict; sync or async.
            Its return value is the tool output; raising marks the call failed.
        input_schema: JSON schema of the input, or a pydantic model class
        needs_approval: Approval policy. Booleans and bare predicates are accepted.

    Example:
        Tool(
            name="get_weather",
            description="Current weather for a city",
            input_schema={"type": "object", "properties": {"city": {"type": "string"}}},
            execute=lambda args: f"Sunny in {args['city']}",
        )
    """

    name: str
    description: str = ""
    execute: ToolFunction = field(default=lambda _input: "")
    input_schema: Union[dict[str, Any], type[BaseModel], None] = None
    needs_approval: Union[NeedsApproval, bool, ApprovalPredicate] = field(
        default_factory=NeedsApproval.never
    )

    def __post_init__(self) -> None:
        if isinstance(self.input_schema, type) and issubclass(self.input_schema, BaseModel):
            self.input_schema = self.input_schema.model_json_schema()
        elif self.input_schema is None:
            self.input_schema = {"type": "object", "properties": {}}

        if isinstance(self.needs_approval, bool):
            self.needs_approval = (
                NeedsApproval.always() if self.needs_approval else NeedsApproval.never()
            )
        elif not isinstance(self.needs_approval, NeedsApproval):
            self.needs_approval = NeedsApproval.dynamic(self.needs_approval)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.execute)

    @property
    def parameters_schema(self) -> str:
        """Returns the input JSON schema as a compact string."""
        return json.dumps(self.input_schema, separators=(",", ":"))

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, description={self.description!r})"


__all__ = [
    "ApprovalMode",
    "NeedsApproval",
    "Tool",
    "ToolApprovalContext",
    "ToolApprovalRequest",
    "ToolApprovalResponse",
    "ToolCallInfo",
    "ToolFunction",
    "ToolResultInfo",
]
