"""Streaming chat pipeline building blocks."""

from coachlix.streaming.detector import detect_function_call, is_tool_already_used
from coachlix.streaming.dispatch import PreparedToolCall, ToolDispatcher
from coachlix.streaming.emitter import emit_text, extract_chunk_text, send_completion
from coachlix.streaming.history import build_history, build_initial_messages, build_multimodal_content

__all__ = [
    "PreparedToolCall",
    "ToolDispatcher",
    "build_history",
    "build_initial_messages",
    "build_multimodal_content",
    "detect_function_call",
    "emit_text",
    "extract_chunk_text",
    "is_tool_already_used",
    "send_completion",
]
