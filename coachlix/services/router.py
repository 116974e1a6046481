"""Intent routing: classify a raw user message and map it to a coaching plan."""

from typing import get_args

from langchain_core.messages import HumanMessage, SystemMessage

from coachlix.clients.base import ModelTransport, ModelTransportError
from coachlix.models.llm import IntentCategory, IntentClassification
from coachlix.prompts import ROUTER_SYSTEM_PROMPT
from coachlix.streaming.emitter import extract_chunk_text
from coachlix.utils.logging import get_logger
from coachlix.utils.metrics import fallback_metrics
from coachlix.utils.parse_json import parse_json

logger = get_logger(__name__)

INTENT_CATEGORIES: frozenset[str] = frozenset(get_args(IntentCategory))

CATEGORY_PLANS: dict[str, str] = {
    "badminton_query": "badminton",
    "nutrition_query": "weight-loss",
    "workout_query": "muscle-gain",
    "health_metrics_query": "general",
}

MALFORMED_OUTPUT_RESULT = IntentClassification(
    category="general_conversation", confidence=0.4, rationale="fallback"
)
TRANSPORT_ERROR_RESULT = IntentClassification(category="general_conversation", confidence=0.0, rationale="error")


def map_category_to_plan(category: str | None) -> str:
    """Map an intent category to the coaching plan that handles it."""
    return CATEGORY_PLANS.get(category or "", "general")


def _clamp_confidence(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return min(1.0, max(0.0, float(value)))


class IntentRouter:
    """Lightweight classifier routing each message to one of five intent categories."""

    def __init__(self, transport: ModelTransport):
        """Initialize router.

        Args:
            transport: Model transport used for the single classification call
        """
        self.transport = transport

    def interpret(self, raw_output: str) -> IntentClassification:
        """Turn raw classifier output into a classification, falling back on malformed output."""
        parsed = parse_json(raw_output)
        if parsed is None:
            logger.warning("Router returned non-JSON output, using fallback classification")
            fallback_metrics.record("router_malformed_output")
            return MALFORMED_OUTPUT_RESULT.model_copy()

        category = parsed.get("category")
        confidence = _clamp_confidence(parsed.get("confidence"))
        if category not in INTENT_CATEGORIES or confidence is None:
            logger.warning(f"Router returned unusable classification: {parsed!r}")
            fallback_metrics.record("router_malformed_output")
            return MALFORMED_OUTPUT_RESULT.model_copy()

        rationale = parsed.get("rationale")
        return IntentClassification(
            category=category,
            confidence=confidence,
            rationale=rationale if isinstance(rationale, str) else "",
        )

    async def classify(self, raw_message: str) -> IntentClassification:
        """Classify a user message. Never raises.

        Args:
            raw_message: The user's message text

        Returns:
            The classification; ``general_conversation`` when the model output
            is unusable or the call fails
        """
        messages = [SystemMessage(content=ROUTER_SYSTEM_PROMPT), HumanMessage(content=raw_message)]
        try:
            response = await self.transport.invoke_once(messages)
        except ModelTransportError as e:
            logger.error(f"Router classification failed: {e}")
            fallback_metrics.record("router_transport_error")
            return TRANSPORT_ERROR_RESULT.model_copy()
        except Exception as e:
            logger.error(f"Unexpected router error: {e}", exc_info=True)
            fallback_metrics.record("router_transport_error")
            return TRANSPORT_ERROR_RESULT.model_copy()

        classification = self.interpret(extract_chunk_text(response))
        logger.info(
            f"Classified message as {classification.category} "
            f"(confidence {classification.confidence:.2f}, rationale: {classification.rationale!r})"
        )
        return classification
