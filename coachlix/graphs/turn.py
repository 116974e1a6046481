"""Per-request chat turn orchestration as a LangGraph state machine.

One turn streams the model's answer; if the model asks for a tool, the
arguments are validated, the tool runs once, and its result is fed back
for a second, streamed answer:

    respond -> finish
    respond -> validate -> execute -> respond -> finish

In JSON-intent mode a non-streaming ``plan`` call replaces the first
``respond``, and the model states its tool choice as a JSON object.
"""

import asyncio
from collections.abc import Sequence
from contextlib import aclosing
from typing import Any

from cuid2 import cuid_wrapper
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage
from langgraph.graph import END, StateGraph

from coachlix.clients.base import ModelTransport, ModelTransportError
from coachlix.graphs.edges import recursion_limit, route_model_output, route_tool_output, route_validation_output
from coachlix.graphs.state import TurnState, initial_turn_input
from coachlix.models.chat import ToolMode
from coachlix.models.llm import ChatTurnResult, ConversationTurn, FunctionCallPayload, OnChunk, UserMessage
from coachlix.prompts import build_tool_selection_prompt
from coachlix.streaming.detector import detect_function_call
from coachlix.streaming.dispatch import ToolDispatcher
from coachlix.streaming.emitter import emit_text, extract_chunk_text, send_completion
from coachlix.streaming.history import HISTORY_WINDOW, build_history, build_initial_messages
from coachlix.utils.logging import get_logger
from coachlix.utils.metrics import fallback_metrics
from coachlix.utils.parse_json import fallback_json_extract, intent_from_parsed, parse_json

logger = get_logger(__name__)

cuid = cuid_wrapper()

TRANSPORT_ERROR_MESSAGE = "I'm having trouble processing your request right now. Please try again in a moment."
EMPTY_TURN_RESPONSE = "I'm sorry, I couldn't come up with a response. Could you rephrase your question?"


class ChatTurnOrchestrator:
    """Runs a single chat turn. Create one per request; instances are not reusable."""

    def __init__(
        self,
        transport: ModelTransport,
        dispatcher: ToolDispatcher,
        *,
        max_tool_rounds: int = 1,
        history_window: int = HISTORY_WINDOW,
        tool_mode: ToolMode = "native",
        turn_id: str | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            transport: Model transport for streaming and one-shot calls
            dispatcher: Request-scoped tool dispatcher
            max_tool_rounds: Tool executions allowed per turn; 1 disables nested tool chains
            history_window: Number of past turns sent to the model
            tool_mode: ``native`` detects provider function calls in the stream,
                ``json`` asks the model for a JSON tool decision first
            turn_id: Identifier reported in the result
        """
        self.transport = transport
        self.dispatcher = dispatcher
        self.max_tool_rounds = max(0, max_tool_rounds)
        self.history_window = history_window
        self.tool_mode = tool_mode
        self.turn_id = turn_id or cuid()

        self.on_chunk: OnChunk | None = None
        self._cancelled = False
        self.graph = self._build_graph()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop delivering output; a tool already running completes but its result is discarded."""
        if not self._cancelled:
            logger.info(f"Turn {self.turn_id} cancelled")
        self._cancelled = True

    def _build_graph(self):
        workflow = StateGraph(TurnState)

        workflow.add_node("respond", self.respond)
        workflow.add_node("validate", self.validate)
        workflow.add_node("execute", self.execute)
        workflow.add_node("finish", self.finish)

        if self.tool_mode == "json":
            workflow.add_node("plan", self.plan)
            workflow.set_entry_point("plan")
            workflow.add_conditional_edges("plan", route_model_output, {"validate": "validate", "finish": "finish"})
        else:
            workflow.set_entry_point("respond")

        workflow.add_conditional_edges("respond", route_model_output, {"validate": "validate", "finish": "finish"})
        workflow.add_conditional_edges(
            "validate", route_validation_output, {"execute": "execute", "finish": "finish"}
        )
        workflow.add_conditional_edges("execute", route_tool_output, {"respond": "respond", "finish": "finish"})
        workflow.add_edge("finish", END)

        return workflow.compile()

    async def _emit(self, new_text: str, accumulated: str) -> str:
        if self._cancelled:
            return ""
        return await emit_text(new_text, accumulated, self.on_chunk)

    async def respond(self, state: TurnState) -> dict[str, Any]:
        """Stream one model call, forwarding text and watching for a tool call."""
        detection_enabled = state.tool_rounds < self.max_tool_rounds
        phase = "awaiting_first_response" if state.tool_rounds == 0 else "awaiting_second_response"
        logger.debug(f"Turn {self.turn_id}: model call in phase {phase}, tool detection {detection_enabled}")

        response_text = state.response_text
        last_word = state.last_word
        payload: FunctionCallPayload | None = None

        try:
            async with aclosing(self.transport.invoke_streaming(state.messages)) as stream:
                async for chunk in stream:
                    if self._cancelled:
                        break

                    if detection_enabled and payload is None:
                        payload = detect_function_call(chunk)
                        if payload:
                            logger.info(f"Turn {self.turn_id}: model requested tool '{payload.name}'")

                    text = extract_chunk_text(chunk)
                    if text:
                        response_text += text
                        word = await self._emit(text, response_text)
                        last_word = word or last_word
        except ModelTransportError as e:
            logger.error(f"Turn {self.turn_id}: model transport failed: {e}")
            return self._transport_failure(state, e, response_text, last_word)
        except Exception as e:
            logger.error(f"Turn {self.turn_id}: unexpected streaming error: {e}", exc_info=True)
            return self._transport_failure(state, e, response_text, last_word)

        update: dict[str, Any] = {
            "response_text": response_text,
            "last_word": last_word,
            "llm_calls": state.llm_calls + 1,
            "phase": phase,
        }
        if self._cancelled:
            return {**update, "status": "cancelled", "next_step": "finish"}
        if payload:
            return {**update, "pending_call": payload, "phase": "tool_detected", "next_step": "validate"}
        return {**update, "next_step": "finish"}

    def _transport_failure(
        self, state: TurnState, error: Exception, response_text: str, last_word: str
    ) -> dict[str, Any]:
        return {
            "response_text": response_text,
            "last_word": last_word,
            "llm_calls": state.llm_calls + 1,
            "status": "transport_error",
            "error": str(error) or type(error).__name__,
            "next_step": "finish",
        }

    async def plan(self, state: TurnState) -> dict[str, Any]:
        """Ask the model for a JSON tool decision in one non-streaming call."""
        system, *rest = state.messages
        planning_messages: list[BaseMessage] = [
            SystemMessage(content=build_tool_selection_prompt(str(system.content))),
            *rest,
        ]

        try:
            chunk = await self.transport.invoke_once(planning_messages)
        except ModelTransportError as e:
            logger.error(f"Turn {self.turn_id}: tool selection call failed: {e}")
            return self._transport_failure(state, e, "", "")
        except Exception as e:
            logger.error(f"Turn {self.turn_id}: unexpected tool selection error: {e}", exc_info=True)
            return self._transport_failure(state, e, "", "")

        raw = extract_chunk_text(chunk)
        parsed = parse_json(raw)
        if parsed is None:
            parsed = fallback_json_extract(raw)
        intent = intent_from_parsed(parsed, raw)

        update: dict[str, Any] = {"llm_calls": state.llm_calls + 1}
        if self._cancelled:
            return {**update, "status": "cancelled", "next_step": "finish"}

        if intent.needs_tool and state.tool_rounds < self.max_tool_rounds:
            logger.info(f"Turn {self.turn_id}: JSON intent selected tool '{intent.tool_name}'")
            payload = FunctionCallPayload(name=intent.tool_name, args=intent.tool_args or {})
            return {**update, "pending_call": payload, "phase": "tool_detected", "next_step": "validate"}

        answer = intent.assistant_response or ""
        last_word = await self._emit(answer, answer)
        return {**update, "response_text": answer, "last_word": last_word, "next_step": "finish"}

    async def validate(self, state: TurnState) -> dict[str, Any]:
        """Check the detected call's arguments and the once-per-turn guard."""
        prepared = self.dispatcher.prepare(state.pending_call)
        if prepared is None:
            logger.info(f"Turn {self.turn_id}: tool call '{state.pending_call.name}' rejected, ending turn")
            return {"phase": "validating_args", "prepared_call": None, "next_step": "finish"}

        return {"phase": "validating_args", "prepared_call": prepared, "next_step": "execute"}

    async def execute(self, state: TurnState) -> dict[str, Any]:
        """Run the tool and append the call and its result to the message sequence."""
        call = state.prepared_call
        if self._cancelled:
            return {"phase": "executing_tool", "status": "cancelled", "next_step": "finish"}

        # Shielded so a cancelled request cannot interrupt a tool halfway through
        result = await asyncio.shield(self.dispatcher.dispatch(call))

        if self._cancelled:
            logger.info(f"Turn {self.turn_id}: discarding result of '{call.name}' after cancellation")
            return {"phase": "executing_tool", "status": "cancelled", "next_step": "finish"}
        if result is None:
            return {"phase": "executing_tool", "next_step": "finish"}

        messages = [
            *state.messages,
            AIMessage(
                content=state.response_text,
                tool_calls=[{"name": call.name, "args": call.args, "id": call.call_id}],
            ),
            ToolMessage(
                content=result.content,
                tool_call_id=result.tool_call_id,
                name=result.tool_name,
                status="error" if result.is_error else "success",
            ),
        ]

        return {
            "messages": messages,
            "phase": "executing_tool",
            "tool_rounds": state.tool_rounds + 1,
            # The answer after the tool replaces any text streamed before it
            "response_text": "",
            "last_word": "",
            "status": "tool_error" if result.is_error else state.status,
            "error": result.content if result.is_error else state.error,
            "next_step": "respond",
        }

    async def finish(self, state: TurnState) -> dict[str, Any]:
        """Close the turn: substitute a fallback for empty answers and send the completion signal."""
        if self._cancelled or state.status == "cancelled":
            return {"phase": "done", "status": "cancelled"}

        if state.status == "transport_error":
            # Nothing streamed means no completion signal; the caller reports the error instead
            await send_completion(self.on_chunk, state.response_text, state.last_word)
            return {"phase": "done"}

        response_text = state.response_text
        last_word = state.last_word
        if not response_text.strip():
            logger.warning(f"Turn {self.turn_id}: model produced no text, sending fallback answer")
            fallback_metrics.record("empty_turn")
            response_text = EMPTY_TURN_RESPONSE
            last_word = await self._emit(response_text, response_text) or last_word

        if not self._cancelled:
            await send_completion(self.on_chunk, response_text, last_word)
        return {"phase": "done", "response_text": response_text, "last_word": last_word}

    def _result(self, values: dict[str, Any]) -> ChatTurnResult:
        status = "cancelled" if self._cancelled else values.get("status", "ok")
        response_text = values.get("response_text", "")
        if status == "transport_error":
            final_text = response_text or TRANSPORT_ERROR_MESSAGE
        else:
            final_text = response_text

        return ChatTurnResult(
            turn_id=self.turn_id,
            final_text=final_text,
            used_tools=list(self.dispatcher.used_tools),
            error=values.get("error"),
            status=status,
            llm_calls=values.get("llm_calls", 0),
        )

    async def run(
        self,
        user_message: UserMessage,
        conversation_history: Sequence[ConversationTurn] | None,
        system_prompt: str,
        on_chunk: OnChunk | None = None,
    ) -> ChatTurnResult:
        """Run the turn to completion.

        Never raises, except ``asyncio.CancelledError`` when the surrounding
        task is cancelled.

        Args:
            user_message: Current message, plain text or multimodal parts
            conversation_history: Stored past turns, oldest first
            system_prompt: Persona and context prompt
            on_chunk: Awaited for every streamed word and the completion signal

        Returns:
            The turn result
        """
        self.on_chunk = on_chunk

        history = build_history(conversation_history, self.history_window)
        messages = build_initial_messages(system_prompt, history, user_message)
        logger.info(f"Turn {self.turn_id}: starting with {len(history)} history messages, mode {self.tool_mode}")

        try:
            values = await self.graph.ainvoke(
                initial_turn_input(messages),
                config={"recursion_limit": recursion_limit(self.max_tool_rounds)},
            )
        except asyncio.CancelledError:
            self._cancelled = True
            raise
        except Exception as e:
            logger.error(f"Turn {self.turn_id} failed: {e}", exc_info=True)
            return ChatTurnResult(
                turn_id=self.turn_id,
                final_text=TRANSPORT_ERROR_MESSAGE,
                used_tools=list(self.dispatcher.used_tools),
                error=str(e),
                status="transport_error",
            )

        result = self._result(values)
        logger.info(
            f"Turn {self.turn_id} finished: status={result.status}, llm_calls={result.llm_calls}, "
            f"tools={result.used_tools}"
        )
        return result
