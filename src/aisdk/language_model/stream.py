"""Stream types - Events exchanged during streaming generation.

Two layers of events:
- Adapter chunks (LanguageModelStreamChunk): ``Delta`` carries a partial
  event to forward as-is; ``Done`` carries one finished assistant message.
- Caller events (StreamEvent): ``Start``, the forwarded deltas, then
  ``End`` / ``Incomplete`` / ``Failed`` as the run progresses.

LanguageModelStream is the single-consumer channel between the background
generation task and the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Union

from ..messages import AssistantMessage


@dataclass(frozen=True)
class Start:
    """Emitted once when the stream begins."""


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ReasoningDelta:
    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    """Partial tool call arguments as they arrive."""

    text: str
    name: str = ""
    id: str = ""


@dataclass(frozen=True)
class NotSupported:
    """Provider event the SDK does not model."""

    raw: Any = None


@dataclass(frozen=True)
class End:
    """A content item finished; carries the message appended to the log."""

    message: AssistantMessage


@dataclass(frozen=True)
class Incomplete:
    """The stop_when hook halted the run."""

    reason: str


@dataclass(frozen=True)
class Failed:
    """The adapter failed; the run is over."""

    reason: str


DeltaEvent = Union[TextDelta, ReasoningDelta, ToolCallDelta, NotSupported]
StreamEvent = Union[Start, TextDelta, ReasoningDelta, ToolCallDelta, NotSupported, End, Incomplete, Failed]


@dataclass(frozen=True)
class Delta:
    """Adapter chunk: partial output to forward verbatim."""

    event: DeltaEvent


@dataclass(frozen=True)
class Done:
    """Adapter chunk: one finished content item with usage."""

    message: AssistantMessage


LanguageModelStreamChunk = Union[Delta, Done]

_CLOSED = object()


class LanguageModelStream:
    """Async-iterable channel of StreamEvents.

    The producer calls ``send`` / ``close``; neither ever blocks. Once the
    channel is closed and drained, iteration ends and cannot be restarted.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._finished = False

    def send(self, event: StreamEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item


__all__ = [
    "Delta",
    "DeltaEvent",
    "Done",
    "End",
    "Failed",
    "Incomplete",
    "LanguageModelStream",
    "LanguageModelStreamChunk",
    "NotSupported",
    "ReasoningDelta",
    "Start",
    "StreamEvent",
    "TextDelta",
    "ToolCallDelta",
]
