"""Request and response models for the chat API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coachlix.models.llm import ConversationTurn, IntentClassification

ToolMode = Literal["native", "json"]


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase field names."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class UploadedFile(CamelModel):
    """A file attached to a chat message, already base64-encoded by the client."""

    name: str = "attachment"
    type: str | None = None  # MIME type
    base64: str | None = None
    category: Literal["image", "document"] | None = None


class ChatRequest(CamelModel):
    """Request model for chat endpoints."""

    message: str = ""
    user_id: str = ""
    plan: str | None = None
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    files: list[UploadedFile] = Field(default_factory=list)
    use_intent_routing: bool | None = None
    tool_mode: ToolMode = "native"


class ChatResponse(CamelModel):
    """Response model for the non-streaming chat endpoint."""

    success: bool
    response: str
    turn_id: str
    used_tools: list[str] = Field(default_factory=list)
    plan: str
    intent: IntentClassification | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(BaseModel):
    """Request model for the intent classification endpoint."""

    message: str = Field(..., min_length=1)


class ClassifyResponse(IntentClassification):
    """Intent classification plus the plan it maps to."""

    plan: str


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
