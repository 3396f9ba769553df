"""Anthropic streaming client with rate limiting and context truncation."""

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import tiktoken
from anthropic import AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from wager_wizard.errors import InvalidRequestError
from wager_wizard.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMMessageComplete,
    LLMStreamEvent,
    LLMTextDelta,
    LLMTool,
    LLMUsage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

# Block types replayed to the model; anything else (thinking, citations) is dropped
_BLOCK_MODELS: dict[str, type[TextBlock] | type[ToolUseBlock]] = {
    "text": TextBlock,
    "tool_use": ToolUseBlock,
}


class CacheControl(BaseModel):
    """Prompt caching marker."""

    type: Literal["ephemeral"] = "ephemeral"


class AnthropicMessage(BaseModel):
    """Message as sent to the Messages API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool as declared to the Messages API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicConfig:
    """Generation settings and context budget for the Anthropic client."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1500
    temperature: float = 0.3
    max_retries: int = 2

    max_conversation_tokens: int = 200000
    token_headroom: int = 2000


class AnthropicRateLimiter:
    """Moving-window limiter over requests and estimated input tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        self.limiter = MovingWindowRateLimiter(MemoryStorage())
        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def acquire(self, estimated_tokens: int, key: str = "anthropic") -> None:
        """Wait until one request costing ``estimated_tokens`` fits both windows."""
        token_cost = min(max(estimated_tokens, 1), self.token_limit.amount)
        await self._wait_for(self.request_limit, key, 1)
        await self._wait_for(self.token_limit, f"{key}:tokens", token_cost)

    async def _wait_for(self, limit: RateLimitItem, identifier: str, cost: int) -> None:
        while not self.limiter.hit(limit, identifier, cost=cost):
            reset_time = self.limiter.get_window_stats(limit, identifier).reset_time
            delay = max(reset_time - time.time(), 0.05)
            logger.warning(f"Rate limit {limit} reached for {identifier}, waiting {delay:.2f}s")
            await asyncio.sleep(delay)


class AnthropicClient:
    """Streaming Anthropic client emitting provider-agnostic events."""

    tokenizer: tiktoken.Encoding | None = None
    client: AsyncAnthropic
    config: AnthropicConfig

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        rate_limiter: AnthropicRateLimiter | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key
            config: Client configuration
            rate_limiter: Shared limiter (a fresh one is created if omitted)
        """
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.config = config or AnthropicConfig()
        self.client = AsyncAnthropic(api_key=api_key, max_retries=self.config.max_retries)
        self.rate_limiter = rate_limiter or AnthropicRateLimiter()

        try:
            # tiktoken has no Claude encoding; cl100k is close enough for budgeting
            self.tokenizer = tiktoken.get_encoding("cl100k_base")
        except Exception:
            logger.warning("tiktoken encoding unavailable, estimating tokens from length")
            self.tokenizer = None

    async def stream_message(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: Sequence[LLMTool] | None = None,
        **kwargs,
    ) -> AsyncIterator[LLMStreamEvent]:
        """Stream one model round.

        Yields an ``LLMTextDelta`` per text chunk, then exactly one
        ``LLMMessageComplete`` with every content block (including tool_use) and
        the stop reason.

        Raises:
            InvalidRequestError: If truncation leaves no user turn to send
        """
        anthropic_tools = self._to_anthropic_tools(tools or [])
        conversation = self.truncate_conversation(
            [AnthropicMessage(role=msg.role, content=msg.content) for msg in messages],
            system_prompt,
            anthropic_tools,
        )
        if not conversation:
            raise InvalidRequestError("Latest user message does not fit the context budget")

        estimated_tokens = self.estimate_message_tokens(
            system_prompt + "".join(self._message_text(message) for message in conversation)
        )
        await self.rate_limiter.acquire(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "system": system_prompt,
            "messages": [message.model_dump() for message in conversation],
        }
        if anthropic_tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in anthropic_tools]

        logger.debug(
            f"Streaming {request_params['model']}: {len(conversation)} messages, "
            f"{len(anthropic_tools)} tools, ~{estimated_tokens} input tokens"
        )

        async with self.client.messages.stream(**request_params) as stream:
            async for event in stream:
                if event.type == "text" and event.text:
                    yield LLMTextDelta(text=event.text)
            final = await stream.get_final_message()

        logger.debug(f"Round finished: stop_reason={final.stop_reason}, {len(final.content)} content blocks")

        yield LLMMessageComplete(
            content=self._convert_content_blocks(final.content),
            stop_reason=final.stop_reason,
            usage=self._usage(final.usage),
            model=final.model,
        )

    def _usage(self, usage: Any) -> LLMUsage:
        if usage is None:
            return LLMUsage()
        return LLMUsage(
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cache_creation_input_tokens=usage.cache_creation_input_tokens or 0,
            cache_read_input_tokens=usage.cache_read_input_tokens or 0,
        )

    def _to_anthropic_tools(self, tools: Sequence[LLMTool]) -> list[AnthropicTool]:
        declared = [
            AnthropicTool(name=tool.name, description=tool.description, input_schema=tool.input_schema)
            for tool in tools
        ]
        if declared:
            # Marking the last tool caches every tool definition before it
            declared[-1].cache_control = CacheControl()
        return declared

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        blocks: list[ContentBlock] = []
        for block in anthropic_content:
            data = block.model_dump() if hasattr(block, "model_dump") else dict(block)
            model = _BLOCK_MODELS.get(data.get("type"))
            if model is None:
                logger.warning(f"Skipping unsupported content block: {data.get('type')}")
                continue
            blocks.append(model.model_validate(data))
        return blocks

    def _message_text(self, message: AnthropicMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        pieces = []
        for block in message.content:
            if isinstance(block, TextBlock):
                pieces.append(block.text)
            elif isinstance(block, ToolResultBlock):
                pieces.append(block.content)
            elif isinstance(block, ToolUseBlock):
                pieces.append(f"{block.name}{block.input}")
        return "".join(pieces)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate the token count of a piece of text.

        Args:
            message: Text to measure

        Returns:
            Estimated token count
        """
        if self.tokenizer is None:
            return len(message) // 4
        try:
            return len(self.tokenizer.encode(message))
        except Exception:
            return len(message) // 4

    def truncate_conversation(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Drop the oldest messages until the conversation fits the context budget.

        The result always starts with a plain user message so that no
        tool_result is left without its tool_use.
        """
        if not messages:
            return messages

        budget = self.config.max_conversation_tokens - self.config.token_headroom
        budget -= self.estimate_message_tokens(system_prompt)
        if tools:
            budget -= self.estimate_message_tokens("".join(f"{t.name}{t.description}{t.input_schema}" for t in tools))

        kept: list[AnthropicMessage] = []
        used = 0
        for message in reversed(messages):
            cost = self.estimate_message_tokens(self._message_text(message))
            if used + cost > budget:
                break
            kept.append(message)
            used += cost
        kept.reverse()

        while kept and not self._is_plain_user_message(kept[0]):
            kept.pop(0)

        if len(kept) < len(messages):
            logger.warning(f"Dropped {len(messages) - len(kept)} oldest messages to fit a {budget} token budget")

        return kept

    def _is_plain_user_message(self, message: AnthropicMessage) -> bool:
        if message.role != "user":
            return False
        if isinstance(message.content, str):
            return True
        return not any(isinstance(block, ToolResultBlock) for block in message.content)

    async def aclose(self) -> None:
        await self.client.close()
