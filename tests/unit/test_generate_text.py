"""Unit tests for the non-streaming generation loop."""

import pytest
from pydantic import BaseModel

from aisdk import (
    AssistantMessage,
    LanguageModelRequest,
    LanguageModelResponse,
    NeedsApproval,
    ReasoningContent,
    StopReasonKind,
    TaggedMessage,
    TextContent,
    Tool,
    ToolApprovalMessage,
    ToolApprovalRequest,
    ToolApprovalResponse,
    ToolCallInfo,
    ToolMessage,
    UnsupportedContent,
    Usage,
    UserMessage,
    generate_text,
)
from aisdk.errors import EmptyResponseError, ProviderError
from mock_model import MockLanguageModel, text_response, tool_call_response


class TestSingleStep:
    """Tests for runs that finish on the first model call."""

    @pytest.mark.asyncio
    async def test_text_answer_finishes(self):
        model = MockLanguageModel([text_response("Hello!")])

        response = await generate_text(model, prompt="Hi", system="Be friendly")

        assert response.text() == "Hello!"
        assert response.stop_reason.kind is StopReasonKind.FINISH
        assert len(model.calls) == 1

    @pytest.mark.asyncio
    async def test_unsupported_and_echoed_approval_content_dropped(self):
        echoed = ToolApprovalRequest(ToolCallInfo("delete_file", "c1"), "a1")
        model = MockLanguageModel(
            [
                LanguageModelResponse(
                    contents=[UnsupportedContent({"type": "audio"}), echoed, TextContent("Hello!")],
                    usage=Usage(output_tokens=3),
                )
            ]
        )

        response = await generate_text(model, prompt="Hi")

        assert response.messages() == [
            UserMessage("Hi"),
            AssistantMessage(TextContent("Hello!"), Usage(output_tokens=3)),
        ]
        assert not response.has_pending_approvals()
        assert response.stop_reason.kind is StopReasonKind.FINISH

    @pytest.mark.asyncio
    async def test_adapter_receives_prompt_and_settings(self):
        model = MockLanguageModel([text_response("ok")])

        await generate_text(model, prompt="Hi", system="sys", temperature=0.3, max_output_tokens=50)

        options = model.calls[0]
        assert options.system == "sys"
        assert options.temperature == 0.3
        assert options.max_output_tokens == 50
        assert options.messages() == [UserMessage("Hi")]

    @pytest.mark.asyncio
    async def test_step_ids(self):
        """Prompt is step 0, the first model call is step 1."""
        model = MockLanguageModel([text_response("ok")])

        response = await generate_text(model, prompt="Hi")

        assert response.step_ids() == [0, 1]
        assert response.last_step().step_id == 1

    @pytest.mark.asyncio
    async def test_reasoning_then_text(self):
        model = MockLanguageModel(
            [LanguageModelResponse([ReasoningContent("think"), TextContent("answer")], Usage(output_tokens=9))]
        )

        response = await generate_text(model, prompt="Q")

        assert response.text() == "answer"
        assert response.stop_reason.kind is StopReasonKind.FINISH
        assert response.usage().output_tokens == 9

    @pytest.mark.asyncio
    async def test_schema_model_becomes_json_schema(self):
        class Answer(BaseModel):
            value: int

        model = MockLanguageModel([text_response('{"value": 4}')])

        response = await generate_text(model, prompt="2+2", schema=Answer)

        assert model.calls[0].schema["properties"]["value"]["type"] == "integer"
        assert response.into_schema(Answer).value == 4


class TestToolLoop:
    """Tests for tool execution across steps."""

    @pytest.mark.asyncio
    async def test_tool_call_then_answer(self, add_tool):
        model = MockLanguageModel(
            [
                tool_call_response("add", {"a": 2, "b": 3}, usage=Usage(input_tokens=10, output_tokens=5)),
                text_response("The sum is 5", usage=Usage(input_tokens=20, output_tokens=4)),
            ]
        )

        response = await generate_text(model, prompt="2+3?", tools=[add_tool])

        assert response.text() == "The sum is 5"
        assert response.stop_reason.kind is StopReasonKind.FINISH
        assert [c.name for c in response.tool_calls()] == ["add"]
        assert response.tool_results()[0].output == "5"
        assert response.usage() == Usage(input_tokens=30, output_tokens=9)

    @pytest.mark.asyncio
    async def test_tool_call_and_result_share_step(self, add_tool):
        model = MockLanguageModel([tool_call_response("add", {"a": 1, "b": 1}), text_response("2")])

        response = await generate_text(model, prompt="1+1", tools=[add_tool])

        step_1 = response.step(1)
        assert isinstance(step_1.messages[0], AssistantMessage)
        assert isinstance(step_1.messages[1], ToolMessage)
        assert response.step_ids() == [0, 1, 1, 2]

    @pytest.mark.asyncio
    async def test_second_call_sees_tool_result(self, add_tool):
        model = MockLanguageModel([tool_call_response("add", {"a": 1, "b": 1}), text_response("2")])

        await generate_text(model, prompt="1+1", tools=[add_tool])

        assert len(model.calls[0].messages()) == 1
        second = model.calls[1].messages()
        assert isinstance(second[-1], ToolMessage)
        assert second[-1].result.output == "2"

    @pytest.mark.asyncio
    async def test_tool_failure_is_recorded_not_raised(self, failing_tool):
        model = MockLanguageModel([tool_call_response("explode", {}), text_response("sorry")])

        response = await generate_text(model, prompt="go", tools=[failing_tool])

        result = response.tool_results()[0]
        assert not result.success
        assert result.error == "boom"
        assert response.stop_reason.kind is StopReasonKind.FINISH

    @pytest.mark.asyncio
    async def test_unknown_tool_is_recorded(self):
        model = MockLanguageModel([tool_call_response("ghost", {}), text_response("hm")])

        response = await generate_text(model, prompt="go")

        assert response.tool_results()[0].error == "Tool not found"


class TestHooks:
    """Tests for step hooks and stop conditions."""

    @pytest.mark.asyncio
    async def test_hooks_run_around_each_step(self, add_tool):
        events = []
        model = MockLanguageModel([tool_call_response("add", {"a": 1, "b": 2}), text_response("3")])

        await generate_text(
            model,
            prompt="1+2",
            tools=[add_tool],
            on_step_start=lambda o: events.append(("start", o.current_step_id)),
            on_step_finish=lambda o: events.append(("finish", o.current_step_id)),
        )

        assert events == [("start", 1), ("finish", 1), ("start", 2), ("finish", 2)]

    @pytest.mark.asyncio
    async def test_step_start_can_modify_options(self):
        def lower_temperature(options):
            options.temperature = 0.0

        model = MockLanguageModel([text_response("ok")])

        await generate_text(model, prompt="Hi", temperature=1.0, on_step_start=lower_temperature)

        assert model.calls[0].temperature == 0.0

    @pytest.mark.asyncio
    async def test_stop_when_halts_after_first_step(self, add_tool):
        model = MockLanguageModel([tool_call_response("add", {"a": 1, "b": 2}), text_response("3")])

        response = await generate_text(model, prompt="1+2", tools=[add_tool], stop_when=lambda o: True)

        assert response.stop_reason.kind is StopReasonKind.HOOK
        assert len(model.calls) == 1
        assert response.tool_results()[0].output == "3"

    @pytest.mark.asyncio
    async def test_stop_when_on_step_count(self, add_tool):
        model = MockLanguageModel([tool_call_response("add", {"a": 1, "b": 1}, call_id=f"c{i}") for i in range(5)])

        response = await generate_text(
            model,
            prompt="loop",
            tools=[add_tool],
            stop_when=lambda o: o.current_step_id >= 3,
        )

        assert len(model.calls) == 3
        assert response.stop_reason.kind is StopReasonKind.HOOK

    @pytest.mark.asyncio
    async def test_pending_approval_outranks_stop_hook(self, guarded_tool):
        model = MockLanguageModel([tool_call_response("delete_file", {"path": "/tmp"})])

        response = await generate_text(model, prompt="clean", tools=[guarded_tool], stop_when=lambda o: True)

        assert response.stop_reason.kind is StopReasonKind.OTHER
        assert response.has_pending_approvals()


class TestFailures:
    """Tests for adapter failures and empty responses."""

    @pytest.mark.asyncio
    async def test_provider_error_raised_with_response(self):
        model = MockLanguageModel([ProviderError("HTTP error 500: oops", 500)])

        with pytest.raises(ProviderError) as exc_info:
            await generate_text(model, prompt="Hi")

        error = exc_info.value
        assert error.status_code == 500
        assert error.response.stop_reason.kind is StopReasonKind.ERROR
        assert error.response.messages() == [UserMessage("Hi")]

    @pytest.mark.asyncio
    async def test_other_exceptions_wrapped_in_provider_error(self):
        model = MockLanguageModel([ConnectionError("refused")])

        with pytest.raises(ProviderError, match="refused") as exc_info:
            await generate_text(model, prompt="Hi")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.response.stop_reason.error is not None

    @pytest.mark.asyncio
    async def test_empty_response_stops_with_error(self):
        model = MockLanguageModel([LanguageModelResponse([])])

        response = await generate_text(model, prompt="Hi")

        assert response.stop_reason.kind is StopReasonKind.ERROR
        assert isinstance(response.stop_reason.error, EmptyResponseError)
        assert len(model.calls) == 1


class TestApprovals:
    """Tests for tool approval gating and resumption."""

    @pytest.mark.asyncio
    async def test_gated_call_waits_for_approval(self, guarded_tool):
        model = MockLanguageModel([tool_call_response("delete_file", {"path": "/tmp/x"})])

        response = await generate_text(model, prompt="clean up", tools=[guarded_tool])

        assert response.stop_reason.kind is StopReasonKind.OTHER
        assert response.stop_reason.message == "Waiting for tool approval"
        assert guarded_tool.calls == []
        assert response.tool_results() is None
        pending = response.pending_tool_approvals()
        assert len(pending) == 1
        assert pending[0].tool_call.name == "delete_file"
        assert isinstance(response.content(), ToolApprovalRequest)

    @pytest.mark.asyncio
    async def test_approved_call_runs_on_resume(self, guarded_tool):
        model = MockLanguageModel(
            [tool_call_response("delete_file", {"path": "/tmp/x"}), text_response("Deleted.")]
        )
        first = await generate_text(model, prompt="clean up", tools=[guarded_tool])
        request = first.pending_tool_approvals()[0]

        second = await generate_text(
            model,
            messages=first.tagged_messages + [ToolApprovalMessage(ToolApprovalResponse(request.approval_id, True))],
            tools=[guarded_tool],
        )

        assert guarded_tool.calls == [{"path": "/tmp/x"}]
        assert second.text() == "Deleted."
        assert second.stop_reason.kind is StopReasonKind.FINISH
        result = second.tool_results()[0]
        assert result.output == "deleted /tmp/x"
        assert second.step(2).messages[0].result == result
        assert isinstance(model.calls[1].messages()[-1], ToolMessage)

    @pytest.mark.asyncio
    async def test_denied_call_never_runs(self, guarded_tool):
        model = MockLanguageModel(
            [tool_call_response("delete_file", {"path": "/"}), text_response("Okay, I won't.")]
        )
        first = await generate_text(model, prompt="wipe", tools=[guarded_tool])
        request = first.pending_tool_approvals()[0]

        second = await generate_text(
            model,
            messages=first.tagged_messages
            + [ToolApprovalMessage(ToolApprovalResponse(request.approval_id, False))],
            tools=[guarded_tool],
        )

        assert guarded_tool.calls == []
        assert second.tool_results()[0].output == "Tool execution denied: Tool execution was denied by user"
        assert second.stop_reason.kind is StopReasonKind.FINISH

    @pytest.mark.asyncio
    async def test_denial_reason_is_passed_on(self, guarded_tool):
        model = MockLanguageModel([text_response("Understood.")])
        request = ToolApprovalRequest(guarded_tool_call(), approval_id="a1")
        log = [
            TaggedMessage(0, UserMessage("wipe")),
            TaggedMessage(1, AssistantMessage(request)),
            TaggedMessage(1, ToolApprovalMessage(ToolApprovalResponse("a1", False, "too risky"))),
        ]

        response = await generate_text(model, messages=log, tools=[guarded_tool])

        assert response.tool_results()[0].output == "Tool execution denied: too risky"

    @pytest.mark.asyncio
    async def test_unanswered_request_blocks_model_call(self, guarded_tool):
        model = MockLanguageModel([text_response("never")])
        log = [
            TaggedMessage(0, UserMessage("wipe")),
            TaggedMessage(1, AssistantMessage(ToolApprovalRequest(guarded_tool_call(), approval_id="a1"))),
        ]

        response = await generate_text(model, messages=log, tools=[guarded_tool])

        assert model.calls == []
        assert response.stop_reason.message == "Waiting for tool approval"

    @pytest.mark.asyncio
    async def test_response_with_unknown_id_does_not_execute(self, guarded_tool):
        model = MockLanguageModel([text_response("never")])
        log = [
            TaggedMessage(1, AssistantMessage(ToolApprovalRequest(guarded_tool_call(), approval_id="a1"))),
            TaggedMessage(1, ToolApprovalMessage(ToolApprovalResponse("not-a1", True))),
        ]

        response = await generate_text(model, messages=log, tools=[guarded_tool])

        assert guarded_tool.calls == []
        assert model.calls == []
        assert response.has_pending_approvals()

    @pytest.mark.asyncio
    async def test_resuming_twice_runs_tool_once(self, guarded_tool):
        model = MockLanguageModel([text_response("done"), text_response("still done")])
        log = [
            TaggedMessage(0, UserMessage("wipe")),
            TaggedMessage(1, AssistantMessage(ToolApprovalRequest(guarded_tool_call(), approval_id="a1"))),
            TaggedMessage(1, ToolApprovalMessage(ToolApprovalResponse("a1", True))),
        ]

        first = await generate_text(model, messages=log, tools=[guarded_tool])
        await generate_text(model, messages=first.tagged_messages, tools=[guarded_tool])

        assert len(guarded_tool.calls) == 1

    @pytest.mark.asyncio
    async def test_dynamic_approval_only_gates_matching_calls(self):
        transfer = Tool(
            name="transfer",
            execute=lambda args: "sent",
            needs_approval=NeedsApproval.dynamic(lambda args, ctx: args["amount"] > 100),
        )
        model = MockLanguageModel(
            [
                tool_call_response("transfer", {"amount": 10}, call_id="c1"),
                tool_call_response("transfer", {"amount": 1000}, call_id="c2"),
            ]
        )

        response = await generate_text(model, prompt="pay", tools=[transfer])

        assert [r.id for r in response.tool_results()] == ["c1"]
        assert response.pending_tool_approvals()[0].tool_call.id == "c2"
        assert response.stop_reason.kind is StopReasonKind.OTHER


class TestRequest:
    """Tests for LanguageModelRequest option building."""

    def test_prompt_appended_after_messages(self):
        request = LanguageModelRequest(
            model=MockLanguageModel(),
            messages=[TaggedMessage(2, UserMessage("earlier"))],
            prompt="now",
        )

        options = request.build_options()

        assert options.tagged_messages[-1] == TaggedMessage(2, UserMessage("now"))

    def test_tools_list_becomes_registry(self, add_tool):
        options = LanguageModelRequest(model=MockLanguageModel(), tools=[add_tool]).build_options()

        assert options.tools.get("add") is add_tool

    def test_snapshot_is_isolated(self):
        options = LanguageModelRequest(model=MockLanguageModel(), prompt="Hi").build_options()

        snapshot = options.snapshot()
        snapshot.tagged_messages.append(TaggedMessage(0, UserMessage("extra")))

        assert len(options.tagged_messages) == 1


def guarded_tool_call():
    return ToolCallInfo(name="delete_file", id="call_9", input={"path": "/data"})
