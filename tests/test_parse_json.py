"""Tests for tolerant JSON extraction and tool intent parsing."""

from coachlix.utils.metrics import fallback_metrics
from coachlix.utils.parse_json import (
    MISSING_RESPONSE_FALLBACK,
    MISSING_TOOL_NAME_RESPONSE,
    fallback_json_extract,
    parse_json,
    parse_tool_call_response,
    validate_tool_args,
)


class TestParseJson:
    """Tests for extracting a JSON object from model text."""

    def test_plain_object(self):
        """Test a bare JSON object."""
        assert parse_json('{"a": 1}') == {"a": 1}

    def test_fenced_object(self):
        """Test that markdown code fences are stripped."""
        raw = '```json\n{"needs_tool": false, "assistant_response": "Hi"}\n```'
        assert parse_json(raw) == {"needs_tool": False, "assistant_response": "Hi"}

    def test_object_inside_prose(self):
        """Test that prose around the object is ignored."""
        raw = 'Sure! Here is my decision: {"category": "workout_query", "confidence": 0.9} Hope that helps.'
        assert parse_json(raw) == {"category": "workout_query", "confidence": 0.9}

    def test_non_json_returns_none(self):
        """Test that text without an object fails and is counted."""
        assert parse_json("I think you should rest today.") is None
        assert fallback_metrics.count("json_parse_failed") == 1

    def test_empty_input(self):
        """Test empty and missing input."""
        assert parse_json("") is None
        assert parse_json(None) is None

    def test_broken_json(self):
        """Test that a malformed object returns None."""
        assert parse_json('{"a": 1,,}') is None

    def test_two_objects_rejected(self):
        """Test that a slice spanning two objects does not parse."""
        assert parse_json('[{"a": 1}, {"b": 2}]') is None


class TestParseToolCallResponse:
    """Tests for shaping parsed JSON into a tool intent."""

    def test_tool_needed(self):
        """Test a well-formed tool decision."""
        intent = parse_tool_call_response(
            '{"needs_tool": true, "tool_name": "nutrition_lookup", "tool_args": {"foodName": "egg"}}'
        )
        assert intent.needs_tool
        assert intent.tool_name == "nutrition_lookup"
        assert intent.tool_args == {"foodName": "egg"}

    def test_missing_tool_name_coerced(self):
        """Test that needs_tool without a tool name becomes a direct answer."""
        intent = parse_tool_call_response('{"needs_tool": true}')

        assert not intent.needs_tool
        assert intent.assistant_response == MISSING_TOOL_NAME_RESPONSE
        assert fallback_metrics.count("tool_intent_missing_name") == 1

    def test_missing_response_filled(self):
        """Test that a no-tool decision always carries an answer."""
        intent = parse_tool_call_response('{"needs_tool": false}')

        assert intent.assistant_response == MISSING_RESPONSE_FALLBACK
        assert fallback_metrics.count("tool_intent_missing_response") == 1

    def test_non_json_becomes_direct_answer(self):
        """Test that raw prose is passed through as the answer."""
        intent = parse_tool_call_response("Drink more water!")

        assert not intent.needs_tool
        assert intent.assistant_response == "Drink more water!"

    def test_non_boolean_needs_tool(self):
        """Test that only a literal true requests a tool."""
        intent = parse_tool_call_response('{"needs_tool": "yes", "tool_name": "x", "assistant_response": "ok"}')
        assert not intent.needs_tool
        assert intent.assistant_response == "ok"

    def test_empty_args_kept(self):
        """Test that an empty argument object is preserved."""
        intent = parse_tool_call_response('{"needs_tool": true, "tool_name": "get_workout_plan", "tool_args": {}}')
        assert intent.tool_args == {}


class TestFallbackJsonExtract:
    """Tests for regex-based extraction."""

    def test_extracts_first_parsable_object(self):
        """Test output with two objects that defeats bracket slicing."""
        raw = 'First {"needs_tool": true, "tool_name": "fetch_details"} then {"unrelated": 1}'

        assert parse_json(raw) is None
        assert fallback_json_extract(raw) == {"needs_tool": True, "tool_name": "fetch_details"}
        assert fallback_metrics.count("json_regex_extracted") == 1

    def test_nothing_to_extract(self):
        """Test that plain text yields None."""
        assert fallback_json_extract("no braces here") is None


class TestValidateToolArgs:
    """Tests for required argument checks."""

    def test_required_present(self):
        """Test that all required arguments pass."""
        assert validate_tool_args("fetch_details", {"userId": "u1", "type": "diet"})
        assert validate_tool_args("nutrition_lookup", {"foodName": "oats"})
        assert not validate_tool_args("nutrition_lookup", {})

    def test_required_missing_or_none(self):
        """Test that a missing or null required argument fails."""
        assert not validate_tool_args("fetch_details", {"userId": "u1"})
        assert not validate_tool_args("nutrition_lookup", {"foodName": None})

    def test_unknown_tool_accepted(self):
        """Test that tools without requirements accept any arguments."""
        assert validate_tool_args("something_else", {})
        assert validate_tool_args("something_else", None)

    def test_non_dict_rejected(self):
        """Test that non-object arguments fail for tools with requirements."""
        assert not validate_tool_args("fetch_details", None)
        assert not validate_tool_args("nutrition_lookup", ["oats"])
