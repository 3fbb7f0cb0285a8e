"""Non-streaming generation loop.

Drives a language model through repeated rounds until it produces a final
answer, a hook stops it, a tool call waits for approval, or the adapter
fails. Each round is one step: the model call plus every tool executed in
response to it share a step id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from opentelemetry import trace

from ..errors import EmptyResponseError, ProviderError
from ..messages import MessageLogMixin, TaggedMessage
from ..types import StopReason
from .options import WAITING_FOR_APPROVAL, LanguageModelOptions, is_recordable

if TYPE_CHECKING:
    from .model import LanguageModel

logger = logging.getLogger(__name__)

# Get tracer for generation spans
tracer = trace.get_tracer(__name__)


class GenerateTextResponse(MessageLogMixin):
    """Final state of a generate_text run.

    Exposes the conversation log accessors (``text()``, ``steps()``,
    ``usage()``, ``tool_calls()``...) plus the recorded stop reason.
    """

    def __init__(self, options: LanguageModelOptions):
        self.options = options

    @property
    def tagged_messages(self) -> list[TaggedMessage]:
        return self.options.tagged_messages

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self.options.stop_reason

    def __repr__(self) -> str:
        return (
            f"GenerateTextResponse(steps={len(self.steps())}, "
            f"stop_reason={self.stop_reason!s})"
        )


def resume_step_id(options: LanguageModelOptions) -> None:
    """Continue numbering after the highest step id already in the log."""
    options.current_step_id = max(options.step_ids(), default=options.current_step_id)


async def run_generate_text(model: LanguageModel, options: LanguageModelOptions) -> GenerateTextResponse:
    """Run the generation loop to completion.

    Args:
        model: Adapter to call once per step
        options: Run state; mutated in place and owned by this call

    Returns:
        GenerateTextResponse wrapping ``options``

    Raises:
        ProviderError: The adapter failed. ``error.response`` holds the
            conversation up to the failure and its stop reason is ERROR.
    """
    resume_step_id(options)

    with tracer.start_as_current_span(
        "aisdk.generate_text",
        attributes={
            "llm.model": model.name,
            "aisdk.messages.count": len(options.tagged_messages),
            "aisdk.tools.count": len(options.tools) if options.tools else 0,
        },
    ) as span:
        # Approval decisions are only picked up once, at entry
        await options.reconcile_approvals()
        if options.has_pending_approvals():
            logger.debug("Run halted before model call: approvals pending")
            options.stop_reason = StopReason.other(WAITING_FOR_APPROVAL)

        while options.stop_reason is None:
            await _run_step(model, options)

        span.set_attribute("aisdk.steps", options.current_step_id)
        span.set_attribute("aisdk.stop_reason", options.stop_reason.kind.value)
        logger.debug("generate_text finished: %s", options.stop_reason)
        return GenerateTextResponse(options)


async def _run_step(model: LanguageModel, options: LanguageModelOptions) -> None:
    options.current_step_id += 1
    step_id = options.current_step_id
    if options.on_step_start:
        options.on_step_start(options)

    with tracer.start_as_current_span("aisdk.step", attributes={"step.id": step_id}) as span:
        logger.debug("Step %d: calling %s", step_id, model.name)
        try:
            response = await model.generate(options.snapshot())
        except Exception as e:
            options.stop_reason = StopReason.from_error(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            error = e if isinstance(e, ProviderError) else ProviderError(str(e))
            error.response = GenerateTextResponse(options)
            if error is e:
                raise
            raise error from e

        last_executed_tool = False
        approval_requested = False
        contents = [c for c in response.contents if is_recordable(c)]
        for index, content in enumerate(contents):
            # One model call reports usage once; it rides on the last item
            usage = response.usage if index == len(contents) - 1 else None
            outcome = options.record_content(content, usage)
            approval_requested = approval_requested or outcome.approval_requested
            last_executed_tool = outcome.execute is not None
            if outcome.execute is not None:
                await options.handle_tool_call(outcome.execute)

        span.set_attribute("step.contents", len(response.contents))

    if options.on_step_finish:
        options.on_step_finish(options)

    if approval_requested:
        options.stop_reason = StopReason.other(WAITING_FOR_APPROVAL)
    elif not response.contents:
        options.stop_reason = StopReason.from_error(EmptyResponseError())
    elif options.stop_when and options.stop_when(options):
        options.stop_reason = StopReason.hook()
    elif not last_executed_tool:
        options.stop_reason = StopReason.finish()


__all__ = ["GenerateTextResponse", "resume_step_id", "run_generate_text"]
