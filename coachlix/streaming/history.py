"""Builds the ordered message sequence the chat model consumes."""

from collections.abc import Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from coachlix.models.chat import UploadedFile
from coachlix.models.llm import ConversationTurn, ImagePart, MultimodalPart, TextPart, UserMessage
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

# Only the most recent turns are sent to the model to bound prompt cost
HISTORY_WINDOW = 6

_ASSISTANT_ROLES = {"ai", "assistant"}


def _to_content_blocks(parts: Sequence[MultimodalPart]) -> list[dict[str, Any]]:
    """Convert multimodal parts to LangChain content blocks, preserving order."""
    blocks: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, ImagePart):
            blocks.append({"type": "image_url", "image_url": {"url": f"data:{part.mime_type};base64,{part.data}"}})
        else:
            blocks.append({"type": "text", "text": part.text})
    return blocks


def _to_message_content(content: UserMessage) -> str | list[dict[str, Any]]:
    if isinstance(content, str):
        return content
    return _to_content_blocks(content)


def build_history(past_turns: Sequence[ConversationTurn] | None, window: int = HISTORY_WINDOW) -> list[BaseMessage]:
    """Convert stored conversation turns into chat messages.

    Args:
        past_turns: Stored turns, oldest first
        window: Number of most recent turns to keep

    Returns:
        Human/AI messages for the last ``window`` turns; unknown roles are skipped
    """
    if not past_turns:
        return []

    history: list[BaseMessage] = []
    for turn in list(past_turns)[-window:]:
        if turn.role == "user":
            history.append(HumanMessage(content=_to_message_content(turn.content)))
        elif turn.role in _ASSISTANT_ROLES:
            history.append(AIMessage(content=_to_message_content(turn.content)))
        else:
            logger.debug(f"Skipping conversation turn with unsupported role: {turn.role}")

    return history


def build_initial_messages(
    system_prompt: str, history: Sequence[BaseMessage], user_message: UserMessage
) -> list[BaseMessage]:
    """Assemble system prompt, prior history and the current user message."""
    return [
        SystemMessage(content=system_prompt),
        *history,
        HumanMessage(content=_to_message_content(user_message)),
    ]


def build_multimodal_content(message: str, files: Sequence[UploadedFile] | None = None) -> UserMessage:
    """Combine a text message with uploaded files into multimodal parts.

    Images are attached inline; documents are referenced by name since the
    model does not accept them as inline data. Files missing data or a MIME
    type are skipped.

    Returns:
        The plain message when there are no files, otherwise a list of parts
    """
    if not files:
        return message

    parts: list[MultimodalPart] = []
    if message and message.strip():
        parts.append(TextPart(text=message))

    for index, file in enumerate(files, start=1):
        if not file.base64:
            logger.error(f"File {index} ({file.name}): missing base64 data, skipping")
            continue
        if not file.type:
            logger.error(f"File {index} ({file.name}): missing MIME type, skipping")
            continue

        category = file.category or ("image" if file.type.startswith("image/") else "document")
        if category == "image":
            parts.append(ImagePart(data=file.base64, mime_type=file.type))
        elif category == "document":
            parts.append(TextPart(text=f"[Document attached: {file.name}]"))
        else:
            logger.warning(f"Unknown category for file {index}: {file.name} (category: {category})")

    text_count = sum(1 for p in parts if isinstance(p, TextPart))
    logger.info(
        f"Built multimodal content with {len(parts)} parts ({text_count} text, {len(parts) - text_count} images)"
    )
    return parts or message
