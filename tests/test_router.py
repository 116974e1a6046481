"""Tests for intent routing."""

import pytest
from fakes import FakeTransport

from coachlix.clients.base import ModelTransportError
from coachlix.models.llm import StreamChunk
from coachlix.services.router import IntentRouter, map_category_to_plan
from coachlix.utils.metrics import fallback_metrics


class TestCategoryToPlan:
    """Tests for mapping intent categories to coaching plans."""

    @pytest.mark.parametrize(
        ("category", "plan"),
        [
            ("badminton_query", "badminton"),
            ("nutrition_query", "weight-loss"),
            ("workout_query", "muscle-gain"),
            ("health_metrics_query", "general"),
            ("general_conversation", "general"),
            (None, "general"),
            ("unknown", "general"),
        ],
    )
    def test_mapping(self, category, plan):
        """Test every category and unknown values."""
        assert map_category_to_plan(category) == plan


class TestIntentRouter:
    """Tests for message classification."""

    @pytest.mark.asyncio
    async def test_valid_classification(self):
        """Test a well-formed classifier response."""
        transport = FakeTransport(
            once=[StreamChunk(content='{"category": "nutrition_query", "confidence": 0.92, "rationale": "food"}')]
        )

        intent = await IntentRouter(transport).classify("How much protein is in eggs?")

        assert intent.category == "nutrition_query"
        assert intent.confidence == pytest.approx(0.92)
        assert intent.rationale == "food"
        assert transport.once_calls[0][-1].content == "How much protein is in eggs?"

    @pytest.mark.asyncio
    async def test_confidence_clamped(self):
        """Test that out-of-range confidence is clamped to [0, 1]."""
        transport = FakeTransport(once=[StreamChunk(content='{"category": "workout_query", "confidence": 1.7}')])

        intent = await IntentRouter(transport).classify("Leg day tips?")

        assert intent.confidence == 1.0

    @pytest.mark.asyncio
    async def test_malformed_output_falls_back(self):
        """Test that non-JSON output yields the fallback classification."""
        transport = FakeTransport(once=[StreamChunk(content="It's probably about workouts.")])

        intent = await IntentRouter(transport).classify("Leg day tips?")

        assert intent.category == "general_conversation"
        assert intent.confidence == pytest.approx(0.4)
        assert intent.rationale == "fallback"
        assert fallback_metrics.count("router_malformed_output") == 1

    @pytest.mark.asyncio
    async def test_unknown_category_falls_back(self):
        """Test that a category outside the known set is rejected."""
        transport = FakeTransport(once=[StreamChunk(content='{"category": "sleep_query", "confidence": 0.8}')])

        intent = await IntentRouter(transport).classify("How do I sleep better?")

        assert intent.category == "general_conversation"
        assert intent.rationale == "fallback"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test that a failed call yields a zero-confidence classification."""
        transport = FakeTransport(once=[ModelTransportError("timeout")])

        intent = await IntentRouter(transport).classify("Hi")

        assert intent.category == "general_conversation"
        assert intent.confidence == 0.0
        assert intent.rationale == "error"
        assert fallback_metrics.count("router_transport_error") == 1
