"""Unit tests for tool definitions and the tool registry."""

import json
import logging

import pytest
from pydantic import BaseModel

from aisdk import NeedsApproval, Tool, ToolCallInfo, ToolRegistry, UserMessage
from aisdk.errors import ToolCallError, ToolNotFoundError
from aisdk.tools import ApprovalMode, ToolResultInfo


class WeatherInput(BaseModel):
    city: str
    days: int = 1


class TestTool:
    """Tests for Tool construction."""

    def test_default_schema_is_empty_object(self):
        tool = Tool(name="ping")

        assert tool.input_schema == {"type": "object", "properties": {}}

    def test_pydantic_model_schema(self):
        tool = Tool(name="weather", input_schema=WeatherInput)

        assert tool.input_schema["properties"]["city"]["type"] == "string"
        assert "city" in tool.input_schema["required"]

    def test_parameters_schema_is_compact_json(self):
        tool = Tool(name="ping")

        assert json.loads(tool.parameters_schema) == {"type": "object", "properties": {}}

    def test_needs_approval_coercion(self):
        assert Tool(name="a").needs_approval.mode is ApprovalMode.NEVER
        assert Tool(name="b", needs_approval=True).needs_approval.mode is ApprovalMode.ALWAYS
        assert Tool(name="c", needs_approval=False).needs_approval.mode is ApprovalMode.NEVER
        dynamic = Tool(name="d", needs_approval=lambda args, ctx: True)
        assert dynamic.needs_approval.mode is ApprovalMode.DYNAMIC

    def test_is_async(self):
        async def fetch(args):
            return "ok"

        assert Tool(name="fetch", execute=fetch).is_async
        assert not Tool(name="sync", execute=lambda args: "ok").is_async


class TestToolResultInfo:
    def test_success_and_output_text(self):
        ok = ToolResultInfo(name="t", id="1", output={"x": 1})
        failed = ToolResultInfo(name="t", id="1", error="boom")

        assert ok.success
        assert ok.output_text() == '{"x": 1}'
        assert not failed.success
        assert failed.output_text() == "boom"


class TestToolRegistry:
    """Tests for ToolRegistry lookup and execution."""

    def test_add_and_get(self, add_tool):
        registry = ToolRegistry([add_tool])

        assert registry.get("add") is add_tool
        assert registry.get("missing") is None
        assert "add" in registry
        assert len(registry) == 1

    def test_duplicate_names_last_registered_wins(self, caplog):
        first = Tool(name="echo", execute=lambda args: "first")
        second = Tool(name="echo", execute=lambda args: "second")
        registry = ToolRegistry([first])

        with caplog.at_level(logging.WARNING, logger="aisdk.tools.registry"):
            registry.add(second)

        assert registry.get("echo") is second
        assert "registered more than once" in caplog.text
        assert len(registry.schemas()) == 1

    def test_schemas(self, add_tool):
        schemas = ToolRegistry([add_tool]).schemas()

        assert schemas == [
            {
                "name": "add",
                "description": "Add two integers",
                "input_schema": add_tool.input_schema,
            }
        ]

    def test_iteration_is_snapshot(self, add_tool):
        registry = ToolRegistry([add_tool])
        tools = list(registry)
        registry.add(Tool(name="other"))

        assert tools == [add_tool]

    @pytest.mark.asyncio
    async def test_execute_sync_tool(self, add_tool):
        registry = ToolRegistry([add_tool])

        output = await registry.execute(ToolCallInfo(name="add", id="c1", input={"a": 2, "b": 3}))

        assert output == "5"

    @pytest.mark.asyncio
    async def test_execute_async_tool(self):
        async def lookup(args):
            return {"city": args["city"], "temp": 21}

        registry = ToolRegistry([Tool(name="weather", execute=lookup)])

        output = await registry.execute(ToolCallInfo(name="weather", input={"city": "Oslo"}))

        assert json.loads(output) == {"city": "Oslo", "temp": 21}

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self):
        with pytest.raises(ToolNotFoundError, match="Tool not found"):
            await ToolRegistry().execute(ToolCallInfo(name="nope"))

    @pytest.mark.asyncio
    async def test_execute_failure_wrapped(self, failing_tool):
        registry = ToolRegistry([failing_tool])

        with pytest.raises(ToolCallError, match="boom"):
            await registry.execute(ToolCallInfo(name="explode"))


class TestNeedsApproval:
    """Tests for approval policy evaluation."""

    def test_static_policies(self):
        registry = ToolRegistry(
            [
                Tool(name="safe", needs_approval=NeedsApproval.never()),
                Tool(name="risky", needs_approval=NeedsApproval.always()),
            ]
        )

        assert not registry.needs_approval(ToolCallInfo(name="safe"), [])
        assert registry.needs_approval(ToolCallInfo(name="risky"), [])

    def test_dynamic_policy_receives_input_and_context(self):
        seen = []

        def over_limit(args, context):
            seen.append(context)
            return args["amount"] > 100

        registry = ToolRegistry([Tool(name="pay", needs_approval=NeedsApproval.dynamic(over_limit))])
        history = [UserMessage("pay the bill")]

        assert registry.needs_approval(ToolCallInfo(name="pay", id="c9", input={"amount": 500}), history)
        assert not registry.needs_approval(ToolCallInfo(name="pay", id="c10", input={"amount": 5}), history)
        assert seen[0].tool_call_id == "c9"
        assert seen[0].messages == history

    def test_unknown_tool_needs_no_approval(self):
        assert not ToolRegistry().needs_approval(ToolCallInfo(name="ghost"), [])
