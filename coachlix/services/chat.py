"""Chat service: runs streaming coaching turns with intent routing and tools."""

import os
from collections.abc import Sequence
from dataclasses import dataclass

from coachlix.clients.anthropic import get_anthropic_transport
from coachlix.clients.base import ModelTransport
from coachlix.graphs.turn import ChatTurnOrchestrator
from coachlix.models.chat import ChatRequest, ToolMode
from coachlix.models.llm import ChatTurnResult, ConversationTurn, IntentClassification, OnChunk, UserMessage
from coachlix.prompts import DEFAULT_PLAN, PERSONA_PROMPTS, build_system_prompt
from coachlix.services.fitness import fitness_data_service
from coachlix.services.nutrition import USDANutritionService
from coachlix.services.router import IntentRouter, map_category_to_plan
from coachlix.streaming.dispatch import ToolDispatcher, ToolLookup
from coachlix.streaming.history import HISTORY_WINDOW, build_multimodal_content
from coachlix.tools.registry import get_tools_registry
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ChatSettings:
    """Chat pipeline settings."""

    history_window: int = HISTORY_WINDOW
    max_tool_rounds: int = 1
    stream_queue_size: int = 64
    intent_routing: bool = False
    max_message_chars: int = 4000  # Roughly 1000 tokens

    @classmethod
    def from_env(cls) -> "ChatSettings":
        """Build settings from defaults overridden by environment variables."""
        settings = cls()
        settings.history_window = int(os.getenv("COACHLIX_HISTORY_WINDOW", settings.history_window))
        settings.max_tool_rounds = int(os.getenv("COACHLIX_MAX_TOOL_ROUNDS", settings.max_tool_rounds))
        settings.stream_queue_size = int(os.getenv("COACHLIX_STREAM_QUEUE_SIZE", settings.stream_queue_size))
        settings.intent_routing = _env_bool("COACHLIX_INTENT_ROUTING", settings.intent_routing)
        return settings


class ChatService:
    """Service for handling coaching chat turns.

    Each turn gets its own orchestrator and tool dispatcher, so concurrent
    requests share nothing mutable beyond the transport and the registry.
    """

    def __init__(
        self,
        transport: ModelTransport,
        registry: ToolLookup,
        router: IntentRouter | None = None,
        settings: ChatSettings | None = None,
    ):
        """Initialize chat service.

        Args:
            transport: Model transport shared by all turns
            registry: Tool registry shared by all turns
            router: Intent router (defaults to one on the same transport)
            settings: Chat settings (defaults to environment configuration)
        """
        self.transport = transport
        self.registry = registry
        self.router = router or IntentRouter(transport)
        self.settings = settings or ChatSettings.from_env()

        logger.info(
            f"ChatService initialized (history window {self.settings.history_window}, "
            f"max tool rounds {self.settings.max_tool_rounds})"
        )

    def validate_request(self, request: ChatRequest) -> None:
        """Check the fields a chat turn cannot run without.

        Raises:
            ValueError: If the message or user id is missing, or the message is too long
        """
        if not request.message or not request.message.strip():
            raise ValueError("Message is required")
        if not request.user_id or not request.user_id.strip():
            raise ValueError("User ID is required")
        if len(request.message) > self.settings.max_message_chars:
            raise ValueError(
                f"Your message is too long. Please keep messages under {self.settings.max_message_chars} characters."
            )

    def create_orchestrator(
        self, user_id: str | None = None, tool_mode: ToolMode = "native"
    ) -> ChatTurnOrchestrator:
        """Create a fresh orchestrator and dispatcher for one turn."""
        dispatcher = ToolDispatcher(self.registry, context_args={"userId": user_id})
        return ChatTurnOrchestrator(
            self.transport,
            dispatcher,
            max_tool_rounds=self.settings.max_tool_rounds,
            history_window=self.settings.history_window,
            tool_mode=tool_mode,
        )

    async def run_chat_turn(
        self,
        user_message: UserMessage,
        conversation_history: Sequence[ConversationTurn] | None,
        system_prompt: str,
        on_chunk: OnChunk | None,
        *,
        user_id: str | None = None,
        tool_mode: ToolMode = "native",
        orchestrator: ChatTurnOrchestrator | None = None,
    ) -> ChatTurnResult:
        """Run one streaming chat turn.

        Args:
            user_message: Current message, plain text or multimodal parts
            conversation_history: Stored past turns, oldest first
            system_prompt: Persona and context prompt
            on_chunk: Awaited for every streamed word and the completion signal
            user_id: Added to tool arguments when the model omits it
            tool_mode: ``native`` or ``json`` tool selection
            orchestrator: Pre-built orchestrator, for callers that need to cancel the turn

        Returns:
            The turn result; failures are reported in it rather than raised
        """
        orchestrator = orchestrator or self.create_orchestrator(user_id, tool_mode)
        return await orchestrator.run(user_message, conversation_history, system_prompt, on_chunk)

    async def resolve_plan(self, request: ChatRequest) -> tuple[str, IntentClassification | None]:
        """Pick the coaching plan for a request, classifying its intent when routing is on.

        Returns:
            The plan and the classification, or None when routing did not run
        """
        use_routing = (
            request.use_intent_routing if request.use_intent_routing is not None else self.settings.intent_routing
        )
        if use_routing:
            intent = await self.router.classify(request.message)
            plan = map_category_to_plan(intent.category)
            logger.info(f"Intent routing selected plan '{plan}' for category {intent.category}")
            return plan, intent

        plan = request.plan if request.plan in PERSONA_PROMPTS else DEFAULT_PLAN
        return plan, None

    async def handle_chat(
        self,
        request: ChatRequest,
        plan: str,
        on_chunk: OnChunk | None = None,
        orchestrator: ChatTurnOrchestrator | None = None,
    ) -> ChatTurnResult:
        """Run a chat turn for an API request with a resolved plan."""
        user_message = build_multimodal_content(request.message, request.files)
        system_prompt = build_system_prompt(plan, request.user_id)

        return await self.run_chat_turn(
            user_message,
            request.conversation_history,
            system_prompt,
            on_chunk,
            user_id=request.user_id,
            tool_mode=request.tool_mode,
            orchestrator=orchestrator,
        )


_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Get or create the chat service with the default transport and tools."""
    global _chat_service

    if _chat_service is None:
        registry = get_tools_registry(fitness_data_service, USDANutritionService())
        _chat_service = ChatService(get_anthropic_transport(registry.tool_schemas()), registry)

    return _chat_service


def set_chat_service(service: ChatService | None) -> None:
    """Replace the process-wide chat service; None resets it."""
    global _chat_service
    _chat_service = service
