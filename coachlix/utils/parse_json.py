"""Tolerant extraction of structured JSON from noisy LLM output."""

import json
import re
from typing import Any

from coachlix.models.llm import ToolCallIntent
from coachlix.utils.logging import get_logger
from coachlix.utils.metrics import fallback_metrics

logger = get_logger(__name__)

GENERIC_FALLBACK_RESPONSE = "I'm having trouble processing your request right now."
MISSING_TOOL_NAME_RESPONSE = "I need more information to help you with that."
MISSING_RESPONSE_FALLBACK = "I understand your request, but I need more context to provide a helpful response."

_LEADING_JSON_FENCE = re.compile(r"^```json\s*", re.IGNORECASE)
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")

_FALLBACK_PATTERNS = (
    re.compile(r"\{[\s\S]*\"needs_tool\"[\s\S]*\}", re.IGNORECASE),
    re.compile(r"\{[\s\S]*\"tool_name\"[\s\S]*\}", re.IGNORECASE),
    re.compile(r"\{[^{}]*\}"),
)

# Required argument keys per tool. Tools missing from this table are accepted as-is.
REQUIRED_TOOL_ARGS: dict[str, list[str]] = {
    "nutrition_lookup": ["foodName"],
    "create_diet_plan": ["userId"],
    "update_workout_plan": ["userId"],
    "calculate_health_metrics": ["userId"],
    "get_workout_plan": ["userId"],
    "fetch_details": ["userId", "type"],
}


def parse_json(raw: str | None) -> dict[str, Any] | None:
    """Extract a JSON object from raw model text.

    Strips markdown code fences, then slices from the first ``{`` to the last
    ``}`` so prose around the object is tolerated.

    Args:
        raw: Raw model output

    Returns:
        The parsed object, or None if no JSON object could be extracted
    """
    if not raw or not isinstance(raw, str):
        logger.warning("parse_json: input is empty or not a string")
        fallback_metrics.record("json_parse_failed")
        return None

    cleaned = raw.strip()
    cleaned = _LEADING_JSON_FENCE.sub("", cleaned)
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1 or last_brace <= first_brace:
        logger.warning(f"parse_json: no JSON object found in text: {raw[:200]!r}")
        fallback_metrics.record("json_parse_failed")
        return None

    try:
        parsed = json.loads(cleaned[first_brace : last_brace + 1])
    except json.JSONDecodeError as e:
        logger.warning(f"parse_json: failed to parse JSON ({e}); original text: {raw[:200]!r}")
        fallback_metrics.record("json_parse_failed")
        return None

    if not isinstance(parsed, dict):
        logger.warning(f"parse_json: parsed value is {type(parsed).__name__}, not an object")
        fallback_metrics.record("json_parse_failed")
        return None

    return parsed


def intent_from_parsed(parsed: dict[str, Any] | None, raw: str | None) -> ToolCallIntent:
    """Shape an extracted JSON object into a ToolCallIntent, enforcing its invariants."""
    if parsed is None:
        logger.info("Could not extract a tool intent, treating raw text as a direct response")
        return ToolCallIntent(assistant_response=raw or GENERIC_FALLBACK_RESPONSE)

    tool_args = parsed.get("tool_args")
    intent = ToolCallIntent(
        needs_tool=parsed.get("needs_tool") is True,
        tool_name=parsed.get("tool_name") or None,
        tool_args=tool_args if isinstance(tool_args, dict) else None,
        assistant_response=parsed.get("assistant_response") or None,
    )

    if intent.needs_tool and not intent.tool_name:
        logger.warning("Tool intent has needs_tool=true but no tool_name")
        fallback_metrics.record("tool_intent_missing_name")
        return ToolCallIntent(assistant_response=intent.assistant_response or MISSING_TOOL_NAME_RESPONSE)

    if not intent.needs_tool and not intent.assistant_response:
        logger.warning("Tool intent has needs_tool=false but no assistant_response")
        fallback_metrics.record("tool_intent_missing_response")
        intent.assistant_response = MISSING_RESPONSE_FALLBACK

    return intent


def parse_tool_call_response(raw: str | None) -> ToolCallIntent:
    """Parse a tool-selection response. Never raises."""
    return intent_from_parsed(parse_json(raw), raw)


def fallback_json_extract(raw: str | None) -> dict[str, Any] | None:
    """Regex-based extraction for output that defeats the bracket slicing in parse_json.

    Patterns anchored on known field names are tried before a generic flat
    object match; the first match that parses wins.
    """
    if not raw:
        return None

    for pattern in _FALLBACK_PATTERNS:
        match = pattern.search(raw)
        if not match:
            continue
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            fallback_metrics.record("json_regex_extracted")
            return parsed

    return None


def validate_tool_args(tool_name: str, args: dict[str, Any] | None) -> bool:
    """Check that every required argument for a tool is present and not None."""
    required = REQUIRED_TOOL_ARGS.get(tool_name)
    if required is None:
        return True
    if not isinstance(args, dict):
        return False

    return all(args.get(field) is not None for field in required)
