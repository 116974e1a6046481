"""Word-level delivery of streamed text to the caller."""

import re

from coachlix.models.llm import OnChunk, StreamChunk, StreamDelta
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

# Each token is a word with the whitespace that precedes it, or trailing whitespace.
_TOKEN = re.compile(r"\s*\S+|\s+")


def extract_chunk_text(chunk: StreamChunk) -> str:
    """Extract displayable text from a chunk; function-call parts contribute nothing."""
    if isinstance(chunk.content, str):
        return chunk.content

    pieces: list[str] = []
    for item in chunk.content:
        if isinstance(item, str):
            pieces.append(item)
        elif isinstance(item, dict) and isinstance(item.get("text"), str):
            pieces.append(item["text"])

    text = "".join(pieces)
    if not text and chunk.content and not any(isinstance(i, dict) and "functionCall" in i for i in chunk.content):
        logger.debug(f"Failed to extract text from chunk content: {str(chunk.content)[:200]}")
    return text


async def emit_text(new_text: str, accumulated: str, on_chunk: OnChunk | None) -> str:
    """Forward text to the caller word by word, in source order.

    Each callback is awaited before the next word is sent, so a slow consumer
    applies backpressure.

    Args:
        new_text: Newly decoded text
        accumulated: Full response so far, including ``new_text``
        on_chunk: Caller's delta callback

    Returns:
        The last token emitted, or an empty string if nothing was emitted
    """
    if on_chunk is None or not new_text:
        return ""

    last_word = ""
    for token in _TOKEN.findall(new_text):
        if not token:
            continue
        last_word = token
        await on_chunk(StreamDelta(word=token, partial_response=accumulated, is_complete=False))

    return last_word


async def send_completion(on_chunk: OnChunk | None, final_text: str, last_word: str) -> None:
    """Send the terminal delta, only if something was streamed before."""
    if on_chunk is None or not last_word:
        return
    await on_chunk(StreamDelta(word="", partial_response=final_text, is_complete=True))
