"""aisdk - One typed interface for LLM HTTP APIs.

At its core is a multi-step generation engine: it drives a model through
repeated calls, executes the tools the model asks for, holds back tool
calls that need human approval, and records everything in a step-tagged
conversation log. Runs finish with a response object or stream events as
they happen.

Quick Start:
    ```python
    from aisdk import OpenAICompatible, Tool, generate_text

    weather = Tool(
        name="get_weather",
        description="Current weather for a city",
        input_schema={"type": "object", "properties": {"city": {"type": "string"}}},
        execute=lambda args: f"Sunny in {args['city']}",
    )

    response = await generate_text(
        OpenAICompatible.from_name("openai"),
        prompt="What's the weather in Oslo?",
        tools=[weather],
    )
    print(response.text(), response.usage())
    ```

Streaming:
    ```python
    from aisdk import TextDelta, stream_text

    response = await stream_text(model, prompt="Tell me a story")
    async for event in response:
        if isinstance(event, TextDelta):
            print(event.text, end="")
    await response.wait()
    ```

Tool approval:
    ```python
    response = await generate_text(model, prompt=..., tools=[Tool(..., needs_approval=True)])
    decisions = [
        ToolApprovalMessage(ToolApprovalResponse(request.approval_id, approved=True))
        for request in response.pending_tool_approvals() or []
    ]
    # Resume with the previous log plus the decisions
    response = await generate_text(model, messages=response.tagged_messages + decisions)
    ```

Module structure:
    - types / messages: Content, usage, stop reasons, the step-tagged log
    - tools/: Tool definition, approval policies, registry
    - language_model/: Adapter interface, run options, generate/stream loops
    - providers/: OpenAI-compatible HTTP adapter
    - config: aisdk.toml loading
    - telemetry/: OpenTelemetry tracing
"""

# Core types
from .types import (
    ContentType,
    LanguageModelResponse,
    ReasoningContent,
    ReasoningEffort,
    StopReason,
    StopReasonKind,
    TextContent,
    UnsupportedContent,
    Usage,
)

# Messages
from .messages import (
    AssistantMessage,
    DeveloperMessage,
    Message,
    Step,
    SystemMessage,
    TaggedMessage,
    ToolApprovalMessage,
    ToolMessage,
    UserMessage,
    tag_messages,
)

# Tools
from .tools import (
    NeedsApproval,
    Tool,
    ToolApprovalContext,
    ToolApprovalRequest,
    ToolApprovalResponse,
    ToolCallInfo,
    ToolRegistry,
    ToolResultInfo,
)

# Language model
from .language_model import (
    Delta,
    Done,
    End,
    Failed,
    GenerateTextResponse,
    Incomplete,
    LanguageModel,
    LanguageModelOptions,
    LanguageModelRequest,
    LanguageModelStream,
    NotSupported,
    ReasoningDelta,
    Start,
    StreamEvent,
    StreamTextResponse,
    TextDelta,
    ToolCallDelta,
    generate_text,
    stream_text,
)

# Providers
from .providers import OpenAICompatible, ProviderSettings

# Config
from .config import ProjectConfig, load_project_config

# Errors
from .errors import (
    AISDKError,
    ConfigError,
    EmptyResponseError,
    ProviderError,
    SchemaError,
    ToolCallError,
    ToolNotFoundError,
)

# Telemetry
from .telemetry import init_telemetry, shutdown_telemetry

__version__ = "0.1.0"

__all__ = [
    # Core types
    "ContentType",
    "LanguageModelResponse",
    "ReasoningContent",
    "ReasoningEffort",
    "StopReason",
    "StopReasonKind",
    "TextContent",
    "UnsupportedContent",
    "Usage",
    # Messages
    "AssistantMessage",
    "DeveloperMessage",
    "Message",
    "Step",
    "SystemMessage",
    "TaggedMessage",
    "ToolApprovalMessage",
    "ToolMessage",
    "UserMessage",
    "tag_messages",
    # Tools
    "NeedsApproval",
    "Tool",
    "ToolApprovalContext",
    "ToolApprovalRequest",
    "ToolApprovalResponse",
    "ToolCallInfo",
    "ToolRegistry",
    "ToolResultInfo",
    # Language model
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
    "NotSupported",
    "ReasoningDelta",
    "Start",
    "StreamEvent",
    "StreamTextResponse",
    "TextDelta",
    "ToolCallDelta",
    "generate_text",
    "stream_text",
    # Providers
    "OpenAICompatible",
    "ProviderSettings",
    # Config
    "ProjectConfig",
    "load_project_config",
    # Errors
    "AISDKError",
    "ConfigError",
    "EmptyResponseError",
    "ProviderError",
    "SchemaError",
    "ToolCallError",
    "ToolNotFoundError",
    # Telemetry
    "init_telemetry",
    "shutdown_telemetry",
    # Version
    "__version__",
]
