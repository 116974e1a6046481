"""Request-scoped tool dispatch with argument validation and a once-per-turn guard."""

import json
from dataclasses import dataclass
from typing import Any, Protocol

from cuid2 import cuid_wrapper

from coachlix.models.llm import FunctionCallPayload, ToolExecutionResult
from coachlix.streaming.detector import is_tool_already_used
from coachlix.utils.logging import get_logger
from coachlix.utils.metrics import fallback_metrics
from coachlix.utils.parse_json import parse_json, validate_tool_args

logger = get_logger(__name__)

cuid = cuid_wrapper()


class CallableTool(Protocol):
    """Anything the dispatcher can invoke by name."""

    async def call(self, args: dict[str, Any]) -> Any: ...


class ToolLookup(Protocol):
    """Tool registry as seen by the dispatcher."""

    def get(self, name: str) -> CallableTool | None: ...


@dataclass
class PreparedToolCall:
    """A detected tool call whose arguments passed validation."""

    name: str
    args: dict[str, Any]
    call_id: str


class ToolDispatcher:
    """Executes tool calls for a single chat turn.

    Owns the turn's used-tools set; a tool is recorded only after it ran
    without raising, so a failed call may be retried by a later detection.
    """

    def __init__(self, registry: ToolLookup, context_args: dict[str, Any] | None = None):
        """Initialize dispatcher.

        Args:
            registry: Tool registry collaborator
            context_args: Server-known arguments (e.g. ``userId``) added when the model omits them
        """
        self.registry = registry
        self.context_args = {k: v for k, v in (context_args or {}).items() if v is not None}
        self.used_tools: list[str] = []

    def resolve_args(self, payload: FunctionCallPayload) -> dict[str, Any] | None:
        """Extract call arguments from a payload and fill in context defaults."""
        if payload.args is not None:
            args = dict(payload.args)
        elif payload.arguments:
            args = parse_json(payload.arguments)
            if args is None:
                return None
        else:
            args = {}

        for key, value in self.context_args.items():
            if args.get(key) is None:
                args[key] = value
        return args

    def prepare(self, payload: FunctionCallPayload) -> PreparedToolCall | None:
        """Validate a detected call.

        Returns:
            The prepared call, or None if the tool already ran this turn or its
            arguments are missing required fields
        """
        if is_tool_already_used(payload.name, self.used_tools):
            logger.info(f"Tool '{payload.name}' already called this turn, ignoring duplicate")
            fallback_metrics.record("tool_duplicate_ignored")
            return None

        args = self.resolve_args(payload)
        if args is None or not validate_tool_args(payload.name, args):
            logger.warning(f"Invalid arguments for tool '{payload.name}': {args!r}")
            fallback_metrics.record("tool_args_invalid")
            return None

        return PreparedToolCall(name=payload.name, args=args, call_id=payload.id or f"call_{cuid()}")

    async def dispatch(self, call: PreparedToolCall) -> ToolExecutionResult | None:
        """Invoke a prepared tool call.

        Returns:
            The execution result (errors included), or None for a duplicate call
        """
        if is_tool_already_used(call.name, self.used_tools):
            logger.info(f"Tool '{call.name}' already executed this turn, skipping")
            fallback_metrics.record("tool_duplicate_ignored")
            return None

        tool = self.registry.get(call.name)
        if tool is None:
            logger.error(f"Tool not found: {call.name}")
            return ToolExecutionResult(
                tool_name=call.name,
                tool_call_id=call.call_id,
                content=f'Error: Tool "{call.name}" is not available.',
                is_error=True,
            )

        logger.info(f"Executing tool {call.name} with args: {call.args}")
        try:
            output = await tool.call(call.args)
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}", exc_info=True)
            return ToolExecutionResult(
                tool_name=call.name,
                tool_call_id=call.call_id,
                content=f"Error executing tool: {e}",
                is_error=True,
            )

        self.used_tools.append(call.name)
        content = output if isinstance(output, str) else json.dumps(output, default=str)
        logger.debug(f"Tool {call.name} succeeded: {content[:100]}...")
        return ToolExecutionResult(tool_name=call.name, tool_call_id=call.call_id, content=content)
