"""Tests for the chat turn state machine."""

import asyncio

import pytest
from fakes import FakeTransport, function_call, text
from langchain_core.messages import AIMessage, SystemMessage, ToolMessage

from coachlix.clients.base import ModelTransportError
from coachlix.graphs.edges import recursion_limit
from coachlix.graphs.turn import EMPTY_TURN_RESPONSE, TRANSPORT_ERROR_MESSAGE, ChatTurnOrchestrator
from coachlix.models.llm import ConversationTurn, StreamChunk
from coachlix.prompts import TOOL_SELECTION_INSTRUCTIONS
from coachlix.streaming.dispatch import ToolDispatcher
from coachlix.tools.base import ToolDefinition, ToolInput
from coachlix.utils.metrics import fallback_metrics


SYSTEM_PROMPT = "You are Alex, a fitness coach."


def make_orchestrator(transport, registry, **kwargs) -> ChatTurnOrchestrator:
    dispatcher = ToolDispatcher(registry, context_args={"userId": "u1"})
    return ChatTurnOrchestrator(transport, dispatcher, **kwargs)


class TestPlainAnswer:
    """Tests for turns answered without tools."""

    @pytest.mark.asyncio
    async def test_streams_words_then_completion(self, registry, recorder):
        """Test a single streamed answer delivered word by word."""
        transport = FakeTransport(streams=[[text("Great "), text("question!")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("Hi coach", [], SYSTEM_PROMPT, recorder)

        assert result.status == "ok"
        assert result.final_text == "Great question!"
        assert result.used_tools == []
        assert result.llm_calls == 1
        assert "".join(recorder.words) == "Great question!"
        assert len(recorder.completions) == 1
        assert recorder.deltas[-1].is_complete
        assert recorder.deltas[-1].partial_response == "Great question!"

    @pytest.mark.asyncio
    async def test_first_call_messages(self, registry):
        """Test that the first model call gets system prompt, history and message."""
        transport = FakeTransport(streams=[[text("ok")]])
        orchestrator = make_orchestrator(transport, registry)

        await orchestrator.run("Hi", [ConversationTurn(role="user", content="earlier")], SYSTEM_PROMPT)

        messages = transport.stream_calls[0]
        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == SYSTEM_PROMPT
        assert messages[1].content == "earlier"
        assert messages[-1].content == "Hi"

    @pytest.mark.asyncio
    async def test_empty_answer_gets_fallback(self, registry, recorder):
        """Test that a turn producing no text still answers."""
        transport = FakeTransport(streams=[[]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("Hi", [], SYSTEM_PROMPT, recorder)

        assert result.final_text == EMPTY_TURN_RESPONSE
        assert recorder.completions[0].partial_response == EMPTY_TURN_RESPONSE
        assert fallback_metrics.count("empty_turn") == 1


class TestToolRound:
    """Tests for turns with one tool execution."""

    @pytest.mark.asyncio
    async def test_workout_plan_round_trip(self, registry, recorder):
        """Test detect, execute and a second streamed answer using the tool result."""
        transport = FakeTransport(
            streams=[
                [text("Let me check. "), function_call("get_workout_plan", {"userId": "u1"}, call_id="toolu_1")],
                [text("You're on Push Pull Legs.")],
            ]
        )
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("What's my workout plan?", [], SYSTEM_PROMPT, recorder)

        assert len(transport.stream_calls) == 2
        second_call = transport.stream_calls[1]
        assert isinstance(second_call[-2], AIMessage)
        assert second_call[-2].tool_calls[0]["name"] == "get_workout_plan"
        tool_message = second_call[-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.tool_call_id == "toolu_1"
        assert "Push Pull Legs" in tool_message.content

        assert result.status == "ok"
        assert result.used_tools == ["get_workout_plan"]
        assert result.final_text == "You're on Push Pull Legs."
        assert result.llm_calls == 2
        assert len(recorder.completions) == 1
        assert recorder.completions[0].partial_response == "You're on Push Pull Legs."

    @pytest.mark.asyncio
    async def test_user_id_filled_from_context(self, registry):
        """Test that a call without userId still reaches the user's data."""
        transport = FakeTransport(streams=[[function_call("get_workout_plan")], [text("Done.")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("plan?", [], SYSTEM_PROMPT)

        assert result.used_tools == ["get_workout_plan"]
        assert "Push Pull Legs" in transport.stream_calls[1][-1].content

    @pytest.mark.asyncio
    async def test_single_tool_round_by_default(self, registry):
        """Test that a tool call in the second answer is not executed."""
        transport = FakeTransport(
            streams=[
                [function_call("get_workout_plan")],
                [text("Here it is."), function_call("calculate_health_metrics")],
            ]
        )
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("plan?", [], SYSTEM_PROMPT)

        assert len(transport.stream_calls) == 2
        assert result.used_tools == ["get_workout_plan"]
        assert result.final_text == "Here it is."

    @pytest.mark.asyncio
    async def test_second_round_when_allowed(self, registry):
        """Test that raising max_tool_rounds allows a chained tool call."""
        transport = FakeTransport(
            streams=[
                [function_call("get_workout_plan")],
                [function_call("calculate_health_metrics")],
                [text("All set.")],
            ]
        )
        orchestrator = make_orchestrator(transport, registry, max_tool_rounds=2)

        result = await orchestrator.run("plan and metrics?", [], SYSTEM_PROMPT)

        assert result.used_tools == ["get_workout_plan", "calculate_health_metrics"]
        assert result.llm_calls == 3

    @pytest.mark.asyncio
    async def test_invalid_args_end_turn(self, registry, recorder):
        """Test that a call missing required args ends the turn with the text so far."""
        transport = FakeTransport(streams=[[text("Let me look that up."), function_call("nutrition_lookup", {})]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("calories?", [], SYSTEM_PROMPT, recorder)

        assert len(transport.stream_calls) == 1
        assert result.final_text == "Let me look that up."
        assert result.used_tools == []
        assert fallback_metrics.count("tool_args_invalid") == 1
        assert len(recorder.completions) == 1

    @pytest.mark.asyncio
    async def test_tool_error_fed_back(self, registry):
        """Test that a failing tool is reported to the model as an error result."""

        async def handler(params):
            raise RuntimeError("storage offline")

        registry.register_tool(
            ToolDefinition(name="flaky_tool", description="fails", input_schema_class=ToolInput, handler=handler)
        )
        transport = FakeTransport(streams=[[function_call("flaky_tool")], [text("Sorry, try later.")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("go", [], SYSTEM_PROMPT)

        tool_message = transport.stream_calls[1][-1]
        assert tool_message.status == "error"
        assert "storage offline" in tool_message.content
        assert result.status == "tool_error"
        assert "storage offline" in result.error
        assert result.final_text == "Sorry, try later."
        assert result.used_tools == []

    @pytest.mark.asyncio
    async def test_second_call_failure_after_tool(self, registry, recorder):
        """Test that no completion is signalled when the answer after a tool never streams."""
        transport = FakeTransport(
            streams=[[text("Checking."), function_call("get_workout_plan")], [ModelTransportError("dropped")]]
        )
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("What do I train today?", [], SYSTEM_PROMPT, recorder)

        assert result.status == "transport_error"
        assert result.final_text == TRANSPORT_ERROR_MESSAGE
        assert result.error == "dropped"
        assert recorder.completions == []


class TestTransportErrors:
    """Tests for model transport failures."""

    @pytest.mark.asyncio
    async def test_error_before_any_text(self, registry, recorder):
        """Test that a failed first call reports the generic error and signals nothing."""
        transport = FakeTransport(streams=[[ModelTransportError("connection reset")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("Hi", [], SYSTEM_PROMPT, recorder)

        assert result.status == "transport_error"
        assert result.final_text == TRANSPORT_ERROR_MESSAGE
        assert result.error == "connection reset"
        assert recorder.deltas == []

    @pytest.mark.asyncio
    async def test_error_after_partial_text(self, registry, recorder):
        """Test that text streamed before the failure is kept and completed."""
        transport = FakeTransport(streams=[[text("Squats work"), ModelTransportError("stream dropped")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("Hi", [], SYSTEM_PROMPT, recorder)

        assert result.status == "transport_error"
        assert result.final_text == "Squats work"
        assert recorder.completions[0].partial_response == "Squats work"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, registry):
        """Test that non-transport exceptions are reported, not raised."""
        transport = FakeTransport(streams=[[RuntimeError("boom")]])
        orchestrator = make_orchestrator(transport, registry)

        result = await orchestrator.run("Hi", [], SYSTEM_PROMPT)

        assert result.status == "transport_error"
        assert result.final_text == TRANSPORT_ERROR_MESSAGE


class TestCancellation:
    """Tests for cancelling a running turn."""

    @pytest.mark.asyncio
    async def test_cancel_stops_output(self, registry):
        """Test that no words or completion are delivered after cancel()."""
        transport = FakeTransport(streams=[[text("one"), text(" two"), text(" three")]])
        orchestrator = make_orchestrator(transport, registry)
        received = []

        async def on_chunk(delta):
            received.append(delta)
            orchestrator.cancel()

        result = await orchestrator.run("Hi", [], SYSTEM_PROMPT, on_chunk)

        assert result.status == "cancelled"
        assert len(received) == 1
        assert not received[0].is_complete

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, registry):
        """Test that cancelling the surrounding task raises CancelledError."""
        started = asyncio.Event()

        class HangingTransport(FakeTransport):
            async def invoke_streaming(self, messages):
                started.set()
                await asyncio.Event().wait()
                yield StreamChunk(content="never")

        orchestrator = make_orchestrator(HangingTransport(), registry)
        task = asyncio.create_task(orchestrator.run("Hi", [], SYSTEM_PROMPT))
        await started.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert orchestrator.cancelled

    @pytest.mark.asyncio
    async def test_cancel_during_tool_discards_result(self, registry, recorder):
        """Test that a running tool finishes but no second model call follows."""
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def handler(params):
            started.set()
            await release.wait()
            finished.append(True)
            return "Leg day"

        registry.register_tool(
            ToolDefinition(name="slow_tool", description="waits", input_schema_class=ToolInput, handler=handler)
        )
        transport = FakeTransport(streams=[[function_call("slow_tool")], [text("Never sent.")]])
        orchestrator = make_orchestrator(transport, registry)

        task = asyncio.create_task(orchestrator.run("go", [], SYSTEM_PROMPT, recorder))
        await started.wait()
        orchestrator.cancel()
        release.set()
        result = await task

        assert finished == [True]
        assert result.status == "cancelled"
        assert len(transport.stream_calls) == 1
        assert recorder.deltas == []


class TestJsonToolMode:
    """Tests for JSON tool selection."""

    @pytest.mark.asyncio
    async def test_json_decision_runs_tool(self, registry, recorder):
        """Test a fenced JSON decision followed by a streamed answer."""
        decision = StreamChunk(
            content='```json\n{"needs_tool": true, "tool_name": "calculate_health_metrics", "tool_args": {}}\n```'
        )
        transport = FakeTransport(once=[decision], streams=[[text("Your BMI is 24.1.")]])
        orchestrator = make_orchestrator(transport, registry, tool_mode="json")

        result = await orchestrator.run("What's my BMI?", [], SYSTEM_PROMPT, recorder)

        planning_system = transport.once_calls[0][0]
        assert TOOL_SELECTION_INSTRUCTIONS in planning_system.content
        assert "BMI: 24.1" in transport.stream_calls[0][-1].content
        assert result.used_tools == ["calculate_health_metrics"]
        assert result.final_text == "Your BMI is 24.1."
        assert result.llm_calls == 2

    @pytest.mark.asyncio
    async def test_json_direct_answer(self, registry, recorder):
        """Test that a no-tool decision is streamed without a second call."""
        transport = FakeTransport(once=[StreamChunk(content='{"needs_tool": false, "assistant_response": "Rest up!"}')])
        orchestrator = make_orchestrator(transport, registry, tool_mode="json")

        result = await orchestrator.run("Tired today", [], SYSTEM_PROMPT, recorder)

        assert transport.stream_calls == []
        assert result.final_text == "Rest up!"
        assert "".join(recorder.words) == "Rest up!"

    @pytest.mark.asyncio
    async def test_json_prose_is_answer(self, registry):
        """Test that non-JSON output is used as the reply."""
        transport = FakeTransport(once=[StreamChunk(content="Just drink water.")])
        orchestrator = make_orchestrator(transport, registry, tool_mode="json")

        result = await orchestrator.run("Hydration?", [], SYSTEM_PROMPT)

        assert result.final_text == "Just drink water."


class TestEdges:
    """Tests for graph routing helpers."""

    def test_recursion_limit_grows_with_rounds(self):
        """Test the step budget for one and two tool rounds."""
        assert recursion_limit(1) == 10
        assert recursion_limit(2) == 14
