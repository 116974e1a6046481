"""State definitions for the LangGraph chat turn flow."""

from typing import Literal

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, ConfigDict, Field

from coachlix.models.llm import FunctionCallPayload, TurnStatus
from coachlix.streaming.dispatch import PreparedToolCall

TurnPhase = Literal[
    "awaiting_first_response",
    "tool_detected",
    "validating_args",
    "executing_tool",
    "awaiting_second_response",
    "done",
]

NextStep = Literal["validate", "execute", "respond", "finish"]


class TurnState(BaseModel):
    """State of one chat turn, passed through every node of the turn graph.

    ``messages`` is replaced wholesale by nodes that extend it, so the list
    always holds the exact sequence sent on the next model call.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: list[BaseMessage]

    # Text streamed since the last tool execution
    response_text: str = ""
    last_word: str = ""

    # Tool call tracking
    pending_call: FunctionCallPayload | None = None
    prepared_call: PreparedToolCall | None = None
    tool_rounds: int = 0

    # Control flow
    phase: TurnPhase = "awaiting_first_response"
    next_step: NextStep | None = None
    status: TurnStatus = "ok"
    error: str | None = None

    llm_calls: int = Field(default=0, ge=0)


def initial_turn_input(messages: list[BaseMessage]) -> dict:
    """Build graph input with every field set, keeping message objects intact."""
    state = TurnState(messages=messages)
    return {name: getattr(state, name) for name in TurnState.model_fields}
