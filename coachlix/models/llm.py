"""LLM-related data models and types (provider-agnostic)."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Multimodal content parts
class TextPart(BaseModel):
    """Text part of a multimodal user message."""

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Inline image part of a multimodal user message."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    type: Literal["image"] = "image"
    data: str  # base64 payload
    mime_type: str


MultimodalPart = Annotated[TextPart | ImagePart, Field(discriminator="type")]

UserMessage = str | list[MultimodalPart]


class ConversationTurn(BaseModel):
    """One stored turn of a conversation.

    ``role`` is kept as a plain string: unknown roles are tolerated and skipped
    when the history is built.
    """

    role: str
    content: str | list[MultimodalPart]
    timestamp: datetime | None = None


class StreamChunk(BaseModel):
    """Canonical unit of model output after transport normalization.

    ``content`` is either plain text or a list of mixed parts (text dicts,
    ``{"functionCall": {...}}`` dicts). ``additional_kwargs`` carries the
    legacy ``function_call`` / ``tool_calls`` fields.
    """

    model_config = ConfigDict(extra="ignore")

    content: str | list[Any] = ""
    additional_kwargs: dict[str, Any] = Field(default_factory=dict)


class FunctionCallPayload(BaseModel):
    """A tool invocation request found in model output."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    args: dict[str, Any] | None = None
    arguments: str | None = None  # JSON-encoded args, legacy shape
    id: str | None = None


class ToolCallIntent(BaseModel):
    """Structured tool-selection decision parsed from JSON model output."""

    needs_tool: bool = False
    tool_name: str | None = None
    tool_args: dict[str, Any] | None = None
    assistant_response: str | None = None


class ToolExecutionResult(BaseModel):
    """Outcome of invoking a tool, fed back to the model as a tool turn."""

    tool_name: str
    tool_call_id: str
    content: str
    is_error: bool = False


class StreamDelta(BaseModel):
    """Incremental update delivered to the ``on_chunk`` callback.

    Serialized with camelCase aliases: ``{word, partialResponse, isComplete}``.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    word: str
    partial_response: str
    is_complete: bool = False


OnChunk = Callable[[StreamDelta], Awaitable[None]]

TurnStatus = Literal["ok", "tool_error", "transport_error", "cancelled"]


class ChatTurnResult(BaseModel):
    """Terminal result of one chat turn."""

    turn_id: str
    final_text: str
    used_tools: list[str] = Field(default_factory=list)
    error: str | None = None
    status: TurnStatus = "ok"
    llm_calls: int = 0


IntentCategory = Literal[
    "workout_query",
    "nutrition_query",
    "health_metrics_query",
    "badminton_query",
    "general_conversation",
]


class IntentClassification(BaseModel):
    """Coarse category of a raw user message."""

    category: IntentCategory = "general_conversation"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    rationale: str = ""
