"""Model transport interface shared by the chat pipeline."""

from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from langchain_core.messages import BaseMessage

from coachlix.models.llm import StreamChunk


class ModelTransportError(Exception):
    """The model provider could not be reached or rejected the request."""


class ModelTransport(Protocol):
    """Capability to call a chat model.

    Implementations normalize every provider response shape into canonical
    StreamChunks before they reach the pipeline. Connection pooling, auth and
    retries are the implementation's concern.
    """

    def invoke_streaming(self, messages: Sequence[BaseMessage]) -> AsyncIterator[StreamChunk]:
        """Stream the model's response to ``messages`` chunk by chunk."""
        ...

    async def invoke_once(self, messages: Sequence[BaseMessage]) -> StreamChunk:
        """Get the model's complete response to ``messages`` in one call."""
        ...
