"""Language model interface, run options and the generation loops."""

from .generate_text import GenerateTextResponse, run_generate_text
from .model import LanguageModel
from .options import (
    DEFAULT_DENIAL_REASON,
    WAITING_FOR_APPROVAL,
    LanguageModelOptions,
    StepFinishHook,
    StepStartHook,
    StopWhen,
)
from .request import LanguageModelRequest, generate_text, stream_text
from .stream import (
    Delta,
    Done,
    End,
    Failed,
    Incomplete,
    LanguageModelStream,
    LanguageModelStreamChunk,
    NotSupported,
    ReasoningDelta,
    Start,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
)
from .stream_text import STOPPED_BY_HOOK, StreamTextResponse, run_stream_text

__all__ = [
    "DEFAULT_DENIAL_REASON",
    "STOPPED_BY_HOOK",
    "WAITING_FOR_APPROVAL",
    "Delta",
    "Done",
    "End",
    "Failed",
    "GenerateTextResponse",
    "Incomplete",
    "LanguageModel",
    "LanguageModelOptions",
    "LanguageModelRequest",
    "LanguageModelStream",
    "LanguageModelStreamChunk",
    "NotSupported",
    "ReasoningDelta",
    "Start",
    "StepFinishHook",
    "StepStartHook",
    "StopWhen",
    "StreamEvent",
    "StreamTextResponse",
    "TextDelta",
    "ToolCallDelta",
    "generate_text",
    "run_generate_text",
    "run_stream_text",
    "stream_text",
]
