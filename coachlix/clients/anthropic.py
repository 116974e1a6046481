"""Anthropic model transport with rate limiting and response normalization."""

import asyncio
import os
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

import httpx
import tiktoken
from anthropic import APIError
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessageChunk, BaseMessage
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from coachlix.clients.base import ModelTransportError
from coachlix.models.llm import StreamChunk
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic transport."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 1000
    temperature: float = 0.7
    max_retries: int = 3

    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000

    @classmethod
    def from_env(cls) -> "AnthropicConfig":
        """Build config from defaults overridden by environment variables."""
        config = cls()
        config.model = os.getenv("COACHLIX_MODEL", config.model)
        config.max_tokens = int(os.getenv("COACHLIX_MAX_TOKENS", config.max_tokens))
        config.temperature = float(os.getenv("COACHLIX_TEMPERATURE", config.temperature))
        return config


class AnthropicRateLimiter:
    """Moving-window rate limiter over requests and estimated tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def _wait_for_window(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the request and token limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(1, estimated_tokens)):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")


def content_text(content: str | list[Any]) -> str:
    """Concatenate the text blocks of provider message content."""
    if isinstance(content, str):
        return content
    return "".join(
        block if isinstance(block, str) else block.get("text", "")
        for block in content
        if isinstance(block, str) or (isinstance(block, dict) and block.get("type", "text") == "text")
    )


def function_call_parts(message: BaseMessage) -> list[dict[str, Any]]:
    """Express a message's parsed tool calls as canonical ``functionCall`` parts."""
    tool_calls = getattr(message, "tool_calls", None) or []
    return [{"functionCall": {"name": tc["name"], "args": tc["args"], "id": tc.get("id")}} for tc in tool_calls]


def normalize_message(message: BaseMessage) -> StreamChunk:
    """Map a complete provider message onto a canonical StreamChunk."""
    text = content_text(message.content)
    calls = function_call_parts(message)
    if not calls:
        return StreamChunk(content=text)

    parts: list[Any] = [{"type": "text", "text": text}] if text else []
    return StreamChunk(content=[*parts, *calls])


class AnthropicTransport:
    """Model transport backed by Claude through LangChain.

    Text deltas are forwarded as soon as they arrive. Anthropic streams tool
    input as partial JSON fragments, so tool calls are accumulated and emitted
    as one ``functionCall`` chunk once the stream ends.
    """

    tokenizer: tiktoken.Encoding | None = None
    rate_limiter: AnthropicRateLimiter | None = None

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        tools: list[dict[str, Any]] | None = None,
        rate_limiter: AnthropicRateLimiter | None = None,
    ):
        """Initialize the transport.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Transport configuration
            tools: Tool schemas (name, description, input_schema) to bind
            rate_limiter: Shared rate limiter
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.config = config or AnthropicConfig.from_env()
        self.rate_limiter = rate_limiter or AnthropicRateLimiter(
            self.config.requests_per_minute, self.config.tokens_per_minute
        )

        self.model = ChatAnthropic(
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            max_retries=self.config.max_retries,
            anthropic_api_key=anthropic_api_key,
        )
        self.runnable = self.model.bind_tools(tools) if tools else self.model

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    def estimate_tokens(self, messages: Sequence[BaseMessage]) -> int:
        """Estimate prompt tokens for rate limiting."""
        text = "".join(content_text(message.content) for message in messages)
        try:
            return len(self.tokenizer.encode(text)) if self.tokenizer else len(text) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(text) // 4

    async def invoke_streaming(self, messages: Sequence[BaseMessage]) -> AsyncIterator[StreamChunk]:
        """Stream normalized chunks for ``messages``."""
        await self.rate_limiter.check_rate_limit(self.estimate_tokens(messages))
        logger.debug(f"Streaming {len(messages)} messages with model {self.config.model}")

        gathered: AIMessageChunk | None = None
        try:
            async with aclosing(self.runnable.astream(list(messages))) as stream:
                async for message_chunk in stream:
                    gathered = message_chunk if gathered is None else gathered + message_chunk
                    text = content_text(message_chunk.content)
                    if text:
                        yield StreamChunk(content=text)
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Anthropic streaming call failed: {e}")
            raise ModelTransportError(str(e)) from e

        if gathered is not None:
            calls = function_call_parts(gathered)
            if calls:
                logger.debug(f"Stream ended with {len(calls)} tool calls")
                yield StreamChunk(content=calls)

    async def invoke_once(self, messages: Sequence[BaseMessage]) -> StreamChunk:
        """Get one complete normalized response for ``messages``."""
        await self.rate_limiter.check_rate_limit(self.estimate_tokens(messages))
        logger.debug(f"Invoking model {self.config.model} with {len(messages)} messages")

        try:
            message = await self.runnable.ainvoke(list(messages))
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Anthropic call failed: {e}")
            raise ModelTransportError(str(e)) from e

        return normalize_message(message)


_anthropic_transport: AnthropicTransport | None = None


def get_anthropic_transport(tools: list[dict[str, Any]] | None = None) -> AnthropicTransport:
    """Get or create the Anthropic transport instance; ``tools`` only apply on creation."""
    global _anthropic_transport
    if _anthropic_transport is None:
        _anthropic_transport = AnthropicTransport(tools=tools)
    return _anthropic_transport
