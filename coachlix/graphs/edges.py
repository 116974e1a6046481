"""Edge logic and routing for the chat turn graph."""

from typing import Literal

from coachlix.graphs.state import TurnState
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


def route_model_output(state: TurnState) -> Literal["validate", "finish"]:
    """Route from a model call (``respond`` or ``plan``).

    A detected tool call goes to validation; cancellation, transport
    errors and plain answers end the turn.
    """
    logger.debug(f"Routing from model output. Next step: {state.next_step}, status: {state.status}")

    if state.status in ("transport_error", "cancelled"):
        return "finish"

    if state.next_step == "validate" and state.pending_call is not None:
        return "validate"

    return "finish"


def route_validation_output(state: TurnState) -> Literal["execute", "finish"]:
    """Route from argument validation; rejected calls end the turn with the partial text."""
    if state.next_step == "execute" and state.prepared_call is not None:
        return "execute"
    return "finish"


def route_tool_output(state: TurnState) -> Literal["respond", "finish"]:
    """Route from tool execution back to the model unless the result was discarded."""
    if state.next_step == "respond":
        return "respond"
    return "finish"


def recursion_limit(max_tool_rounds: int) -> int:
    """Graph step budget for a turn allowing ``max_tool_rounds`` tool executions."""
    # Each round visits respond, validate and execute; plan, the final respond and finish add a few more
    return 4 * max_tool_rounds + 6
