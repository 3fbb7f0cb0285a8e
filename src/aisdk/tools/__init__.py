"""Tools module - Tool definition, registration and execution.

This module provides tool functionality for language model runs:
- Tool: A callable with name, description, input schema and approval policy
- ToolRegistry: Shared collection dispatching calls by name
- NeedsApproval: Never / always / dynamic approval policies
- ToolCallInfo, ToolResultInfo, ToolApprovalRequest, ToolApprovalResponse
"""

from .registry import ToolRegistry
from .types import (
    ApprovalMode,
    NeedsApproval,
    Tool,
    ToolApprovalContext,
    ToolApprovalRequest,
    ToolApprovalResponse,
    ToolCallInfo,
    ToolResultInfo,
)

__all__ = [
    "Tool",
    "ToolRegistry",
    "NeedsApproval",
    "ApprovalMode",
    "ToolCallInfo",
    "ToolResultInfo",
    "ToolApprovalRequest",
    "ToolApprovalResponse",
    "ToolApprovalContext",
]
