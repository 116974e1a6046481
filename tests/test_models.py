"""Tests for data models."""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from coachlix.models.chat import ChatRequest, ChatResponse, ClassifyResponse, HealthResponse
from coachlix.models.llm import (
    ConversationTurn,
    FunctionCallPayload,
    ImagePart,
    IntentClassification,
    StreamChunk,
    TextPart,
)
from coachlix.tools.details import FetchDetailsInput
from coachlix.tools.diet import CreateDietPlanInput


class TestChatModels:
    """Tests for chat request/response models."""

    def test_chat_request_from_json(self):
        """Test camelCase request parsing."""
        json_data = """{
            "message": "Plan my week",
            "userId": "u1",
            "plan": "muscle-gain",
            "conversationHistory": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
            "useIntentRouting": true,
            "toolMode": "json"
        }"""
        request = ChatRequest.model_validate(json.loads(json_data))

        assert request.user_id == "u1"
        assert request.plan == "muscle-gain"
        assert len(request.conversation_history) == 2
        assert request.use_intent_routing is True
        assert request.tool_mode == "json"

    def test_chat_request_defaults(self):
        """Test defaults for optional fields."""
        request = ChatRequest(message="Hello", user_id="u1")

        assert request.plan is None
        assert request.conversation_history == []
        assert request.files == []
        assert request.use_intent_routing is None
        assert request.tool_mode == "native"

    def test_invalid_tool_mode(self):
        """Test that only known tool modes are accepted."""
        with pytest.raises(ValidationError):
            ChatRequest(message="Hello", user_id="u1", tool_mode="xml")

    def test_chat_response_serializes_camel_case(self):
        """Test the wire shape of a chat response."""
        response = ChatResponse(success=True, response="Hi", turn_id="t1", plan="general")
        data = response.model_dump(by_alias=True)

        assert data["turnId"] == "t1"
        assert data["usedTools"] == []

    def test_classify_response(self):
        """Test that the classify response extends the classification."""
        response = ClassifyResponse(category="workout_query", confidence=0.7, rationale="", plan="muscle-gain")
        assert isinstance(response, IntentClassification)

    def test_health_response_valid(self):
        """Test valid health response."""
        now = datetime.now(UTC)
        response = HealthResponse(status="healthy", timestamp=now, version="0.1.0")
        assert response.timestamp == now


class TestLLMModels:
    """Tests for provider-agnostic model types."""

    def test_multimodal_turn_discriminates_parts(self):
        """Test that content parts are parsed by their type tag."""
        turn = ConversationTurn.model_validate(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "What is this?"},
                    {"type": "image", "data": "QUJD", "mimeType": "image/jpeg"},
                ],
            }
        )

        assert isinstance(turn.content[0], TextPart)
        assert isinstance(turn.content[1], ImagePart)
        assert turn.content[1].mime_type == "image/jpeg"

    def test_function_call_requires_name(self):
        """Test that a function call payload needs a non-empty name."""
        with pytest.raises(ValidationError):
            FunctionCallPayload(name="")

    def test_stream_chunk_ignores_extra_fields(self):
        """Test that provider extras do not break chunk parsing."""
        chunk = StreamChunk.model_validate({"content": "hi", "response_metadata": {"model": "x"}})
        assert chunk.content == "hi"
        assert chunk.additional_kwargs == {}

    def test_confidence_bounds(self):
        """Test that confidence stays within [0, 1]."""
        with pytest.raises(ValidationError):
            IntentClassification(category="workout_query", confidence=1.5)


class TestToolInputModels:
    """Tests for tool input schemas."""

    def test_fetch_details_input(self):
        """Test camelCase arguments and defaults."""
        params = FetchDetailsInput.model_validate({"userId": "u1", "type": "workout", "dayNumber": 2})

        assert params.user_id == "u1"
        assert params.detail == "today"
        assert params.day_number == 2

    def test_fetch_details_rejects_unknown_type(self):
        """Test the plan type restriction."""
        with pytest.raises(ValidationError):
            FetchDetailsInput.model_validate({"userId": "u1", "type": "sleep"})

    def test_diet_input_ignores_unknown_fields(self):
        """Test that extra model-supplied arguments are ignored."""
        params = CreateDietPlanInput.model_validate({"userId": "u1", "mood": "happy"})
        assert params.duration == 7

    def test_diet_duration_bounds(self):
        """Test duration limits in days."""
        with pytest.raises(ValidationError):
            CreateDietPlanInput.model_validate({"userId": "u1", "duration": 45})

    def test_user_id_required(self):
        """Test that user-scoped inputs need a non-empty user id."""
        with pytest.raises(ValidationError):
            CreateDietPlanInput.model_validate({"userId": ""})
