"""Detects tool invocation requests in streamed model output."""

from collections.abc import Collection
from typing import Any

from pydantic import ValidationError

from coachlix.models.llm import FunctionCallPayload, StreamChunk
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


def _coerce_payload(raw: Any, call_id: str | None = None) -> FunctionCallPayload | None:
    if not isinstance(raw, dict):
        return None
    try:
        payload = FunctionCallPayload.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed function call payload {raw!r}: {e.error_count()} validation errors")
        return None
    if payload.id is None and call_id:
        payload.id = call_id
    return payload


def detect_function_call(chunk: StreamChunk) -> FunctionCallPayload | None:
    """Find a function call in a stream chunk.

    Checked in priority order:
    1. ``additional_kwargs["function_call"]`` (legacy direct payload)
    2. ``additional_kwargs["tool_calls"][0]["function"]`` (legacy wrapper list)
    3. every element of a list ``content`` carrying a ``functionCall`` key

    All content parts are scanned since text and function calls can co-occur
    in one chunk, e.g. ``[text, functionCall]``.

    Returns:
        The first payload found, or None
    """
    extra = chunk.additional_kwargs

    payload = _coerce_payload(extra.get("function_call"))
    if payload:
        return payload

    tool_calls = extra.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls and isinstance(tool_calls[0], dict):
        wrapper = tool_calls[0]
        payload = _coerce_payload(wrapper.get("function"), call_id=wrapper.get("id"))
        if payload:
            return payload

    if isinstance(chunk.content, list):
        for item in chunk.content:
            if isinstance(item, dict) and item.get("functionCall"):
                payload = _coerce_payload(item["functionCall"])
                if payload:
                    logger.debug(f"Found function call in content array: {payload.name}")
                    return payload

    return None


def is_tool_already_used(name: str, used_names: Collection[str]) -> bool:
    """Check whether a tool has already run in the current turn."""
    return name in used_names
