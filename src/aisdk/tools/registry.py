"""Tool registry - Holds tools and dispatches calls by name."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional

from opentelemetry import trace

from ..errors import ToolCallError, ToolNotFoundError
from .types import Tool, ToolApprovalContext, ToolCallInfo

if TYPE_CHECKING:
    from ..messages import Message

logger = logging.getLogger(__name__)

# Get tracer for tool execution spans
tracer = trace.get_tracer(__name__)


class ToolRegistry:
    """Thread-safe collection of tools shared across a generation run.

    Registering a second tool with an existing name does not replace the
    first one; lookups return the most recently registered tool.
    """

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: list[Tool] = []
        self._lock = threading.Lock()
        for t in tools or []:
            self.add(t)

    def add(self, tool: Tool) -> None:
        """Register a tool."""
        with self._lock:
            if any(existing.name == tool.name for existing in self._tools):
                logger.warning("Tool %r registered more than once; the latest wins", tool.name)
            self._tools.append(tool)

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name (last registered wins)."""
        with self._lock:
            for t in reversed(self._tools):
                if t.name == name:
                    return t
        return None

    def tools(self) -> list[Tool]:
        """Snapshot of the registered tools in registration order."""
        with self._lock:
            return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """Tool definitions for providers, one per distinct name."""
        by_name: dict[str, Tool] = {}
        for t in self.tools():
            by_name[t.name] = t
        return [
            {"name": t.name, "description": t.description, "input_schema": t.input_schema}
            for t in by_name.values()
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.tools())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    async def execute(self, call: ToolCallInfo) -> str:
        """Run the tool named by ``call`` with its input.

        Sync tool functions run in a worker thread so a slow tool does not
        block the event loop.

        Raises:
            ToolNotFoundError: No tool with that name is registered
            ToolCallError: The tool raised
        """
        tool = self.get(call.name)
        if tool is None:
            raise ToolNotFoundError(call.name)

        with tracer.start_as_current_span(
            "aisdk.tool_call",
            attributes={
                "tool.name": call.name,
                "tool.call_id": call.id,
                "tool.arguments": json.dumps(call.input, default=str)[:500],
            },
        ) as span:
            try:
                if tool.is_async:
                    result = await tool.execute(call.input)
                else:
                    result = await asyncio.to_thread(tool.execute, call.input)
            except Exception as e:
                span.set_attribute("tool.success", False)
                span.record_exception(e)
                logger.debug("Tool %s failed: %s", call.name, e)
                raise ToolCallError(str(e)) from e

            span.set_attribute("tool.success", True)

        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)

    def needs_approval(self, call: ToolCallInfo, recent_messages: list[Message]) -> bool:
        """Whether ``call`` must be approved before it runs.

        Unknown tools never need approval; they fail on execution instead.
        """
        tool = self.get(call.name)
        if tool is None:
            return False
        context = ToolApprovalContext(tool_call_id=call.id, messages=list(recent_messages))
        return tool.needs_approval.evaluate(call.input, context)


__all__ = ["ToolRegistry"]
