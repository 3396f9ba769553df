"""Tests for the Anthropic client: token limits, truncation and streaming."""

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from anthropic.types import TextBlock as AnthropicTextBlock
from anthropic.types import ToolUseBlock as AnthropicToolUseBlock

from wager_wizard.clients.anthropic import AnthropicClient, AnthropicConfig, AnthropicMessage, AnthropicRateLimiter
from wager_wizard.errors import InvalidRequestError
from wager_wizard.models.llm import (
    LLMMessage,
    LLMMessageComplete,
    LLMTextDelta,
    LLMTool,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)


def make_client(**config) -> AnthropicClient:
    client = AnthropicClient(api_key="test-key", config=AnthropicConfig(**config))
    # Mock tokenizer for consistent testing
    client.tokenizer = Mock()
    return client


class TestClientConstruction:
    def test_missing_api_key_raises(self):
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            AnthropicClient(api_key=None)


class TestTokenEstimation:
    """Tests for token estimation."""

    @pytest.fixture
    def anthropic_client(self):
        return make_client()

    def test_uses_tokenizer(self, anthropic_client):
        """Test that the tokenizer count is used when available."""
        anthropic_client.tokenizer.encode.return_value = ["token"] * 42

        assert anthropic_client.estimate_message_tokens("Arsenal v Spurs") == 42

    def test_fallback_without_tokenizer(self, anthropic_client):
        """Test the length-based estimate when no tokenizer is loaded."""
        anthropic_client.tokenizer = None

        # ~4 characters per token
        assert anthropic_client.estimate_message_tokens("a" * 4000) == 1000

    def test_fallback_when_tokenizer_fails(self, anthropic_client):
        anthropic_client.tokenizer.encode.side_effect = ValueError("disallowed special token")

        assert anthropic_client.estimate_message_tokens("a" * 400) == 100


@pytest.mark.asyncio
class TestRateLimiter:
    async def test_requests_within_limit_do_not_wait(self):
        limiter = AnthropicRateLimiter(requests_per_minute=5, tokens_per_minute=1000)

        async with asyncio.timeout(1):
            for _ in range(5):
                await limiter.acquire(100)

    async def test_oversized_estimate_is_capped(self):
        limiter = AnthropicRateLimiter(requests_per_minute=5, tokens_per_minute=1000)

        async with asyncio.timeout(1):
            await limiter.acquire(50_000)


class TestConversationTruncation:
    """Tests for conversation truncation functionality."""

    @pytest.fixture
    def anthropic_client(self):
        return make_client(max_conversation_tokens=10000, token_headroom=1000)

    def test_truncate_conversation_within_limit(self, anthropic_client):
        """Test that conversations within limits are not truncated."""
        anthropic_client.tokenizer.encode.return_value = ["token"] * 100

        messages = [
            AnthropicMessage(role="user", content="Who plays Saturday?"),
            AnthropicMessage(role="assistant", content="Arsenal v Spurs."),
            AnthropicMessage(role="user", content="Odds?"),
        ]

        result = anthropic_client.truncate_conversation(messages, "System prompt")

        assert result == messages

    def test_truncate_conversation_keeps_most_recent(self, anthropic_client):
        """Test that conversations exceeding limits are truncated from the beginning."""

        def mock_encode(text):
            if "System prompt" in text:
                return ["token"] * 500
            return ["token"] * 3000

        anthropic_client.tokenizer.encode.side_effect = mock_encode

        messages = [
            AnthropicMessage(role="user", content="Message 1"),
            AnthropicMessage(role="assistant", content="Response 1"),
            AnthropicMessage(role="user", content="Message 2"),
            AnthropicMessage(role="assistant", content="Response 2"),
            AnthropicMessage(role="user", content="Message 3"),
        ]

        result = anthropic_client.truncate_conversation(messages, "System prompt")

        assert len(result) < len(messages)
        assert result[0].role == "user"
        assert result[-1].content == "Message 3"

    def test_truncation_never_starts_with_orphaned_tool_result(self, anthropic_client):
        """Test that a leading tool_result is dropped along with its tool_use."""

        def mock_encode(text):
            if "System prompt" in text:
                return ["token"] * 500
            return ["token"] * 2500

        anthropic_client.tokenizer.encode.side_effect = mock_encode

        messages = [
            AnthropicMessage(role="user", content="EPL odds?"),
            AnthropicMessage(
                role="assistant",
                content=[ToolUseBlock(id="toolu_1", name="getUpcomingFootballOdds", input={})],
            ),
            AnthropicMessage(role="user", content=[ToolResultBlock(tool_use_id="toolu_1", content="{}")]),
            AnthropicMessage(role="assistant", content="Here are the odds."),
            AnthropicMessage(role="user", content="And La Liga?"),
        ]

        result = anthropic_client.truncate_conversation(messages, "System prompt")

        assert [m.content for m in result] == ["And La Liga?"]

    def test_truncate_conversation_empty_messages(self, anthropic_client):
        """Test truncation with empty message list."""
        assert anthropic_client.truncate_conversation([], "System prompt") == []


class FakeStream:
    """Stands in for the SDK's message stream context manager."""

    def __init__(self, chunks, final):
        self.chunks = chunks
        self.final = final

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._events()

    async def _events(self):
        yield SimpleNamespace(type="message_start")
        for chunk in self.chunks:
            yield SimpleNamespace(type="text", text=chunk)

    async def get_final_message(self):
        return self.final


@pytest.mark.asyncio
class TestStreamMessage:
    """Tests for translating SDK stream events."""

    @pytest.fixture
    def anthropic_client(self):
        client = AnthropicClient(api_key="test-key")
        client.tokenizer = None
        return client

    def _final(self, content, stop_reason):
        return SimpleNamespace(
            content=content,
            stop_reason=stop_reason,
            model="claude-test",
            usage=SimpleNamespace(
                input_tokens=120,
                output_tokens=30,
                cache_creation_input_tokens=None,
                cache_read_input_tokens=50,
            ),
        )

    async def test_text_deltas_then_complete(self, anthropic_client):
        final = self._final([AnthropicTextBlock(type="text", text="Hello there")], "end_turn")
        anthropic_client.client = Mock()
        anthropic_client.client.messages.stream.return_value = FakeStream(["Hello", " there"], final)

        events = [
            event
            async for event in anthropic_client.stream_message(
                [LLMMessage(role="user", content="hi")], "System prompt"
            )
        ]

        assert events[:2] == [LLMTextDelta(text="Hello"), LLMTextDelta(text=" there")]
        complete = events[-1]
        assert isinstance(complete, LLMMessageComplete)
        assert complete.stop_reason == "end_turn"
        assert complete.content == [TextBlock(text="Hello there")]
        assert complete.usage.input_tokens == 120
        assert complete.usage.cache_creation_input_tokens == 0
        assert complete.usage.cache_read_input_tokens == 50

        params = anthropic_client.client.messages.stream.call_args.kwargs
        assert params["system"] == "System prompt"
        assert params["messages"] == [{"role": "user", "content": "hi"}]
        assert "tools" not in params

    async def test_oversized_latest_message_is_invalid_request(self, anthropic_client):
        """Test that nothing is sent when the newest user message alone exceeds the budget."""
        anthropic_client.config = AnthropicConfig(max_conversation_tokens=1000, token_headroom=0)
        anthropic_client.client = Mock()

        with pytest.raises(InvalidRequestError):
            async for _ in anthropic_client.stream_message(
                [
                    LLMMessage(role="user", content="hi"),
                    LLMMessage(role="assistant", content="Hello!"),
                    LLMMessage(role="user", content="x" * 8000),
                ],
                "System prompt",
            ):
                pass

        anthropic_client.client.messages.stream.assert_not_called()

    async def test_tool_use_round(self, anthropic_client):
        final = self._final(
            [
                AnthropicToolUseBlock(
                    type="tool_use", id="toolu_1", name="getUpcomingFootballOdds", input={"sport": "soccer_epl"}
                )
            ],
            "tool_use",
        )
        anthropic_client.client = Mock()
        anthropic_client.client.messages.stream.return_value = FakeStream([], final)

        async def never_called(params):
            raise AssertionError("client must not run tools")

        tools = [
            LLMTool(
                name="getUpcomingFootballOdds",
                description="Odds lookup",
                input_schema={"type": "object", "properties": {}},
                callable=never_called,
            )
        ]

        events = [
            event
            async for event in anthropic_client.stream_message(
                [LLMMessage(role="user", content="odds?")], "System prompt", tools
            )
        ]

        [complete] = events
        assert complete.tool_uses == [
            ToolUseBlock(id="toolu_1", name="getUpcomingFootballOdds", input={"sport": "soccer_epl"})
        ]

        [tool] = anthropic_client.client.messages.stream.call_args.kwargs["tools"]
        assert tool["name"] == "getUpcomingFootballOdds"
        assert tool["cache_control"] == {"type": "ephemeral"}


if __name__ == "__main__":
    pytest.main([__file__])
