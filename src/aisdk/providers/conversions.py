"""Chat Completions wire format conversions.

Translates run options into an OpenAI-compatible ``/chat/completions``
payload and translates responses (whole or streamed) back into aisdk
content types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..language_model.stream import (
    Delta,
    Done,
    LanguageModelStreamChunk,
    ReasoningDelta,
    TextDelta,
    ToolCallDelta,
)
from ..messages import (
    AssistantMessage,
    DeveloperMessage,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from ..tools import ToolApprovalRequest, ToolCallInfo
from ..types import (
    ContentType,
    LanguageModelResponse,
    ReasoningContent,
    TextContent,
    Usage,
)

if TYPE_CHECKING:
    from ..language_model.options import LanguageModelOptions


def parse_arguments(raw: Optional[str]) -> dict[str, Any]:
    """Tool call arguments as a dict; unparseable text is kept under ``_raw``."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return {"_raw": raw}
    if isinstance(value, dict):
        return value
    return {"_raw": raw}


def _tool_call_dict(call: ToolCallInfo) -> dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.name, "arguments": json.dumps(call.input)},
    }


def to_chat_messages(options: LanguageModelOptions) -> list[dict[str, Any]]:
    """Conversation log in Chat Completions message format.

    Reasoning, unsupported content and approval responses are not sent.
    Approval requests are sent as tool calls only once a tool result
    answers them; until then the call has not happened.
    """
    answered = {t.message.result.id for t in options.tagged_messages if isinstance(t.message, ToolMessage)}
    messages: list[dict[str, Any]] = []
    if options.system:
        messages.append({"role": "system", "content": options.system})

    for message in options.messages():
        if isinstance(message, (SystemMessage, DeveloperMessage)):
            messages.append({"role": "system", "content": message.content})
        elif isinstance(message, UserMessage):
            messages.append({"role": "user", "content": message.content})
        elif isinstance(message, ToolMessage):
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": message.result.id,
                    "content": message.result.output_text(),
                }
            )
        elif isinstance(message, AssistantMessage):
            content = message.content
            if isinstance(content, TextContent):
                messages.append({"role": "assistant", "content": content.text})
                continue
            if isinstance(content, ToolApprovalRequest):
                if content.tool_call.id not in answered:
                    continue
                content = content.tool_call
            if isinstance(content, ToolCallInfo):
                last = messages[-1] if messages else None
                # Consecutive calls share one assistant turn
                if last and last["role"] == "assistant" and "tool_calls" in last:
                    last["tool_calls"].append(_tool_call_dict(content))
                else:
                    messages.append(
                        {"role": "assistant", "content": None, "tool_calls": [_tool_call_dict(content)]}
                    )

    return messages


def to_chat_tools(options: LanguageModelOptions) -> list[dict[str, Any]]:
    tools = []
    for schema in options.tool_schemas():
        parameters = dict(schema["input_schema"] or {})
        parameters.setdefault("type", "object")
        if not isinstance(parameters.get("properties"), dict):
            parameters["properties"] = {}
        parameters["additionalProperties"] = False
        tools.append(
            {
                "type": "function",
                "function": {
                    "name": schema["name"],
                    "description": schema["description"],
                    "parameters": parameters,
                },
            }
        )
    return tools


def build_chat_request(
    model: str,
    options: LanguageModelOptions,
    *,
    stream: bool = False,
    default_temperature: Optional[float] = None,
    default_max_tokens: Optional[int] = None,
) -> dict[str, Any]:
    """Full request payload for one round."""
    payload: dict[str, Any] = {"model": model, "messages": to_chat_messages(options)}

    tools = to_chat_tools(options)
    if tools:
        payload["tools"] = tools

    if options.schema is not None:
        payload["response_format"] = {
            "type": "json_schema",
            "json_schema": {"name": "response", "schema": options.schema, "strict": False},
        }

    temperature = options.temperature if options.temperature is not None else default_temperature
    if temperature is not None:
        payload["temperature"] = temperature
    if options.top_p is not None:
        payload["top_p"] = options.top_p
    max_tokens = options.max_output_tokens or default_max_tokens
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens
    if options.stop_sequences:
        payload["stop"] = list(options.stop_sequences)
    if options.reasoning_effort is not None:
        payload["reasoning_effort"] = options.reasoning_effort.value

    if stream:
        payload["stream"] = True
        payload["stream_options"] = {"include_usage": True}

    return payload


def parse_usage(data: Optional[dict[str, Any]]) -> Optional[Usage]:
    if not data:
        return None
    prompt_details = data.get("prompt_tokens_details") or {}
    completion_details = data.get("completion_tokens_details") or {}
    return Usage(
        input_tokens=data.get("prompt_tokens"),
        output_tokens=data.get("completion_tokens"),
        reasoning_tokens=completion_details.get("reasoning_tokens"),
        cached_tokens=prompt_details.get("cached_tokens"),
        total_tokens=data.get("total_tokens"),
    )


def parse_chat_response(data: dict[str, Any]) -> LanguageModelResponse:
    """Contents of a non-streaming response: reasoning, text, then tool calls."""
    choices = data.get("choices") or []
    message = (choices[0].get("message") or {}) if choices else {}
    contents: list[ContentType] = []

    reasoning = message.get("reasoning_content")
    if reasoning:
        contents.append(ReasoningContent(reasoning))
    text = message.get("content")
    if text:
        contents.append(TextContent(text))
    for call in message.get("tool_calls") or []:
        function = call.get("function") or {}
        contents.append(
            ToolCallInfo(
                name=function.get("name", ""),
                id=call.get("id", ""),
                input=parse_arguments(function.get("arguments")),
            )
        )

    return LanguageModelResponse(contents=contents, usage=parse_usage(data.get("usage")))


@dataclass
class _PartialToolCall:
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class ChatStreamAccumulator:
    """Builds stream chunks from Chat Completions SSE payloads.

    ``feed`` turns one decoded ``data:`` payload into Delta chunks while
    accumulating the full response; ``finish`` returns the Done chunks.
    Tool call fragments are merged by their ``index``.
    """

    reasoning: str = ""
    text: str = ""
    tool_calls: dict[int, _PartialToolCall] = field(default_factory=dict)
    usage: Optional[Usage] = None

    def feed(self, payload: dict[str, Any]) -> list[LanguageModelStreamChunk]:
        chunks: list[LanguageModelStreamChunk] = []
        if payload.get("usage"):
            self.usage = parse_usage(payload["usage"])

        for choice in payload.get("choices") or []:
            delta = choice.get("delta") or {}

            reasoning = delta.get("reasoning_content")
            if reasoning:
                self.reasoning += reasoning
                chunks.append(Delta(ReasoningDelta(reasoning)))

            text = delta.get("content")
            if text:
                self.text += text
                chunks.append(Delta(TextDelta(text)))

            for fragment in delta.get("tool_calls") or []:
                partial = self.tool_calls.setdefault(fragment.get("index", 0), _PartialToolCall())
                function = fragment.get("function") or {}
                if fragment.get("id"):
                    partial.id = fragment["id"]
                if function.get("name"):
                    partial.name += function["name"]
                arguments = function.get("arguments") or ""
                partial.arguments += arguments
                chunks.append(Delta(ToolCallDelta(arguments, name=partial.name, id=partial.id)))

        return chunks

    def finish(self) -> list[Done]:
        """One Done per content item. Usage rides on the last one."""
        contents: list[ContentType] = []
        if self.reasoning:
            contents.append(ReasoningContent(self.reasoning))
        if self.text:
            contents.append(TextContent(self.text))
        for index in sorted(self.tool_calls):
            partial = self.tool_calls[index]
            contents.append(
                ToolCallInfo(name=partial.name, id=partial.id, input=parse_arguments(partial.arguments))
            )

        return [
            Done(AssistantMessage(content, self.usage if i == len(contents) - 1 else None))
            for i, content in enumerate(contents)
        ]


__all__ = [
    "ChatStreamAccumulator",
    "build_chat_request",
    "parse_arguments",
    "parse_chat_response",
    "parse_usage",
    "to_chat_messages",
    "to_chat_tools",
]
