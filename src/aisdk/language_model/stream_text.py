"""Streaming generation loop.

The loop runs as a background task and publishes events to a
LanguageModelStream while it updates the shared run options. The caller
gets a StreamTextResponse right away: it can consume the events, await the
task, and read the conversation through async accessors.

Run options are guarded by an asyncio.Lock that is only held around
synchronous sections; adapter calls and tool execution happen without it,
so accessors stay responsive while a step is in flight.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Optional, TypeVar

from opentelemetry import trace

from ..errors import EmptyResponseError
from ..messages import Message, Step, ToolMessage
from ..types import ContentType, StopReason, Usage
from .generate_text import resume_step_id
from .options import WAITING_FOR_APPROVAL, LanguageModelOptions, denial_result, is_recordable
from .stream import Delta, End, Failed, Incomplete, LanguageModelStream, Start, StreamEvent

if TYPE_CHECKING:
    from ..tools import ToolApprovalRequest, ToolCallInfo, ToolResultInfo
    from .model import LanguageModel

logger = logging.getLogger(__name__)

# Get tracer for streaming spans
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

STOPPED_BY_HOOK = "Stopped by hook"


class StreamTextResponse:
    """Handle on a running stream_text task.

    Iterate the response (or ``response.stream``) for events; ``await
    response.wait()`` for the task to finish. Accessors read a consistent
    view of the log at the moment they are called.
    """

    def __init__(
        self,
        options: LanguageModelOptions,
        lock: asyncio.Lock,
        stream: LanguageModelStream,
        task: asyncio.Task[None],
    ):
        self.stream = stream
        self._options = options
        self._lock = lock
        self._task = task

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self.stream.__aiter__()

    async def wait(self) -> None:
        """Wait for the background task; re-raises if a hook raised."""
        await self._task

    @property
    def done(self) -> bool:
        return self._task.done()

    async def _read(self, fn: Callable[[LanguageModelOptions], T]) -> T:
        async with self._lock:
            return fn(self._options)

    async def messages(self) -> list[Message]:
        return await self._read(lambda o: o.messages())

    async def step_ids(self) -> list[int]:
        return await self._read(lambda o: o.step_ids())

    async def step(self, index: int) -> Optional[Step]:
        return await self._read(lambda o: o.step(index))

    async def steps(self) -> list[Step]:
        return await self._read(lambda o: o.steps())

    async def last_step(self) -> Optional[Step]:
        return await self._read(lambda o: o.last_step())

    async def usage(self) -> Usage:
        return await self._read(lambda o: o.usage())

    async def content(self) -> Optional[ContentType]:
        return await self._read(lambda o: o.content())

    async def text(self) -> Optional[str]:
        return await self._read(lambda o: o.text())

    async def tool_calls(self) -> Optional[list[ToolCallInfo]]:
        return await self._read(lambda o: o.tool_calls())

    async def tool_results(self) -> Optional[list[ToolResultInfo]]:
        return await self._read(lambda o: o.tool_results())

    async def pending_tool_approvals(self) -> Optional[list[ToolApprovalRequest]]:
        return await self._read(lambda o: o.pending_tool_approvals())

    async def has_pending_approvals(self) -> bool:
        return await self._read(lambda o: o.has_pending_approvals())

    async def stop_reason(self) -> Optional[StopReason]:
        return await self._read(lambda o: o.stop_reason)

    async def into_schema(self, model: type[Any]) -> Any:
        return await self._read(lambda o: o.into_schema(model))


async def run_stream_text(model: LanguageModel, options: LanguageModelOptions) -> StreamTextResponse:
    """Start the streaming loop in a background task.

    Must be called from a running event loop. The returned response's
    stream yields Start first and is closed when the task exits.
    """
    resume_step_id(options)
    lock = asyncio.Lock()
    stream = LanguageModelStream()
    task = asyncio.create_task(_drive(model, options, lock, stream))
    return StreamTextResponse(options, lock, stream, task)


async def _drive(
    model: LanguageModel,
    options: LanguageModelOptions,
    lock: asyncio.Lock,
    stream: LanguageModelStream,
) -> None:
    with tracer.start_as_current_span(
        "aisdk.stream_text",
        attributes={
            "llm.model": model.name,
            "aisdk.messages.count": len(options.tagged_messages),
            "aisdk.tools.count": len(options.tools) if options.tools else 0,
        },
    ) as span:
        try:
            stream.send(Start())
            if await _reconcile_approvals(options, lock):
                while await _stream_step(model, options, lock, stream):
                    pass

            async with lock:
                reason = options.stop_reason
                span.set_attribute("aisdk.steps", options.current_step_id)
            if reason is not None:
                span.set_attribute("aisdk.stop_reason", reason.kind.value)
            logger.debug("stream_text finished: %s", reason)
        finally:
            stream.close()


async def _reconcile_approvals(options: LanguageModelOptions, lock: asyncio.Lock) -> bool:
    """Apply approval decisions found at entry. False if the run must wait."""
    async with lock:
        collected = options.collect_approvals()
        next_step = options.current_step_id + 1

    for request, _response in collected.approved:
        logger.debug("Running approved tool call %s", request.tool_call.name)
        result = await options.run_tool(request.tool_call)
        async with lock:
            options.append(ToolMessage(result), next_step)

    async with lock:
        for request, response in collected.denied:
            options.append(ToolMessage(denial_result(request, response)), next_step)
        if options.has_pending_approvals():
            logger.debug("Run halted before model call: approvals pending")
            options.stop_reason = StopReason.other(WAITING_FOR_APPROVAL)
            return False
    return True


async def _fail(
    options: LanguageModelOptions,
    lock: asyncio.Lock,
    stream: LanguageModelStream,
    span: trace.Span,
    reason: str,
    error: BaseException,
) -> None:
    logger.debug("stream_text failed: %s", reason)
    span.set_status(trace.Status(trace.StatusCode.ERROR, reason))
    span.record_exception(error)
    async with lock:
        options.stop_reason = StopReason.from_error(error)
    stream.send(Failed(reason))


async def _stream_step(
    model: LanguageModel,
    options: LanguageModelOptions,
    lock: asyncio.Lock,
    stream: LanguageModelStream,
) -> bool:
    """Run one streaming step. True if the loop should continue."""
    async with lock:
        options.current_step_id += 1
        step_id = options.current_step_id
        if options.on_step_start:
            options.on_step_start(options)
        snapshot = options.snapshot()

    with tracer.start_as_current_span("aisdk.step", attributes={"step.id": step_id}) as span:
        logger.debug("Step %d: streaming from %s", step_id, model.name)
        try:
            chunks = model.stream(snapshot)
            if inspect.isawaitable(chunks):
                chunks = await chunks
        except Exception as e:
            await _fail(options, lock, stream, span, f"Model streaming failed: {e}", e)
            return False

        saw_done = False
        last_executed_tool = False
        approval_requested = False
        try:
            async for chunk in chunks:
                if isinstance(chunk, Delta):
                    stream.send(chunk.event)
                    continue

                saw_done = True
                if not is_recordable(chunk.message.content):
                    continue
                async with lock:
                    outcome = options.record_content(chunk.message.content, chunk.message.usage)
                approval_requested = approval_requested or outcome.approval_requested

                if outcome.execute is not None:
                    result = await options.run_tool(outcome.execute)
                    async with lock:
                        options.append(ToolMessage(result), step_id)

                async with lock:
                    if options.on_step_finish:
                        options.on_step_finish(options)
                    # A pending approval outranks the hook
                    stopped = not approval_requested and bool(
                        options.stop_when and options.stop_when(options)
                    )
                    if stopped:
                        options.stop_reason = StopReason.hook()

                if stopped:
                    stream.send(Incomplete(STOPPED_BY_HOOK))
                    return False

                stream.send(End(outcome.message))
                last_executed_tool = outcome.execute is not None
        except Exception as e:
            await _fail(options, lock, stream, span, str(e), e)
            return False
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    async with lock:
        if approval_requested:
            options.stop_reason = StopReason.other(WAITING_FOR_APPROVAL)
            return False
        if not saw_done:
            error = EmptyResponseError()
            options.stop_reason = StopReason.from_error(error)
            stream.send(Failed(str(error)))
            return False
        if not last_executed_tool:
            options.stop_reason = StopReason.finish()
            return False
    return True


__all__ = ["STOPPED_BY_HOOK", "StreamTextResponse", "run_stream_text"]
