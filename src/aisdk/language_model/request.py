"""Request surface - Describe a generation run and start it.

Example:
    request = LanguageModelRequest(
        model=OpenAICompatible.from_name("openai"),
        system="You are terse.",
        prompt="What is 2 + 2?",
    )
    response = await request.generate_text()
    print(response.text())

The module-level ``generate_text`` / ``stream_text`` helpers accept the
same keyword arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from pydantic import BaseModel

from ..messages import Message, TaggedMessage, UserMessage, tag_messages
from ..tools import Tool, ToolRegistry
from ..types import ReasoningEffort
from .generate_text import GenerateTextResponse, run_generate_text
from .options import LanguageModelOptions, StepFinishHook, StepStartHook, StopWhen
from .stream_text import StreamTextResponse, run_stream_text

if TYPE_CHECKING:
    from .model import LanguageModel

SchemaLike = Union[dict[str, Any], type[BaseModel]]


@dataclass
class LanguageModelRequest:
    """Everything needed to run one generation.

    Attributes:
        model: Adapter to drive
        prompt: Appended as a final user message when set
        system: System prompt
        messages: Prior conversation; plain messages or TaggedMessage entries
        tools: Tools the model may call (list or shared ToolRegistry)
        schema: JSON schema dict or pydantic model class for the answer
        stop_sequences: Sequences that end generation
        temperature: Sampling temperature
        top_p: Nucleus sampling cutoff
        max_output_tokens: Output token limit per model call
        reasoning_effort: Reasoning budget hint
        stop_when: Called after each step; True halts the run
        on_step_start: Called before each model call
        on_step_finish: Called after each step
    """

    model: LanguageModel
    prompt: Optional[str] = None
    system: Optional[str] = None
    messages: Optional[Iterable[Union[Message, TaggedMessage]]] = None
    tools: Optional[Union[ToolRegistry, Iterable[Tool]]] = None
    schema: Optional[SchemaLike] = None
    stop_sequences: Optional[list[str]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    stop_when: Optional[StopWhen] = None
    on_step_start: Optional[StepStartHook] = None
    on_step_finish: Optional[StepFinishHook] = None

    def build_options(self) -> LanguageModelOptions:
        """Fresh run options for this request."""
        log = tag_messages(self.messages or [])
        if self.prompt is not None:
            step = log[-1].step_id if log else 0
            log.append(TaggedMessage(step, UserMessage(self.prompt)))

        tools = self.tools
        if tools is not None and not isinstance(tools, ToolRegistry):
            tools = ToolRegistry(tools)

        return LanguageModelOptions(
            system=self.system,
            tagged_messages=log,
            tools=tools,
            schema=_schema_dict(self.schema),
            stop_sequences=self.stop_sequences,
            temperature=self.temperature,
            top_p=self.top_p,
            max_output_tokens=self.max_output_tokens,
            reasoning_effort=self.reasoning_effort,
            stop_when=self.stop_when,
            on_step_start=self.on_step_start,
            on_step_finish=self.on_step_finish,
        )

    async def generate_text(self) -> GenerateTextResponse:
        """Run to completion without streaming.

        Raises:
            ProviderError: The adapter failed
        """
        return await run_generate_text(self.model, self.build_options())

    async def stream_text(self) -> StreamTextResponse:
        """Start a streaming run in the background."""
        return await run_stream_text(self.model, self.build_options())


def _schema_dict(schema: Optional[SchemaLike]) -> Optional[dict[str, Any]]:
    if schema is None or isinstance(schema, dict):
        return schema
    return schema.model_json_schema()


async def generate_text(model: LanguageModel, **kwargs: Any) -> GenerateTextResponse:
    """Shorthand for ``LanguageModelRequest(model, **kwargs).generate_text()``."""
    return await LanguageModelRequest(model, **kwargs).generate_text()


async def stream_text(model: LanguageModel, **kwargs: Any) -> StreamTextResponse:
    """Shorthand for ``LanguageModelRequest(model, **kwargs).stream_text()``."""
    return await LanguageModelRequest(model, **kwargs).stream_text()


__all__ = ["LanguageModelRequest", "generate_text", "stream_text"]
