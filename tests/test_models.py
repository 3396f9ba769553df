"""Tests for data models."""

import json
from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from wager_wizard.errors import ErrorKind
from wager_wizard.models.conversation import ChatRequest, HealthResponse
from wager_wizard.models.llm import LLMMessage, LLMUsage, TextBlock, ToolResultBlock, ToolUseBlock
from wager_wizard.models.messages import Message
from wager_wizard.models.odds import BookmakerQuote, OddsSnapshot, ToolFailure, ToolResult, ToolSuccess
from wager_wizard.models.stream import StreamDone, StreamStep, TextDelta


class TestMessageModels:
    """Tests for the inbound message format."""

    def test_parts_format(self):
        """Test the parts-based message format."""
        message = Message.model_validate(
            {"id": "m1", "role": "user", "parts": [{"type": "text", "text": "Who wins "}, {"type": "text", "text": "?"}]}
        )
        assert message.id == "m1"
        assert message.text == "Who wins ?"

    def test_content_string_format(self):
        """Test that a plain content string becomes a single text part."""
        message = Message.model_validate({"role": "assistant", "content": "Arsenal at 2.10"})
        assert message.text == "Arsenal at 2.10"
        assert message.parts[0].type == "text"

    def test_non_text_parts_are_ignored(self):
        """Test that only text parts contribute to message text."""
        message = Message.model_validate(
            {"role": "user", "parts": [{"type": "step-start"}, {"type": "text", "text": "odds"}]}
        )
        assert message.text == "odds"

    def test_id_is_generated(self):
        """Test that messages without an id get one."""
        first = Message.from_text("user", "hi")
        second = Message.from_text("user", "hi")
        assert first.id and second.id and first.id != second.id

    def test_invalid_role(self):
        """Test that unknown roles are rejected."""
        with pytest.raises(ValidationError):
            Message.model_validate({"role": "tool", "content": "x"})

    def test_chat_request_requires_messages(self):
        """Test that an empty message list is rejected."""
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"messages": []})
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({})

    def test_chat_request_from_json(self):
        """Test chat request parsing from JSON."""
        data = json.loads('{"messages": [{"id": "a", "role": "user", "parts": [{"type": "text", "text": "hi"}]}]}')
        request = ChatRequest.model_validate(data)
        assert request.messages[0].text == "hi"

    def test_health_response_valid(self):
        """Test valid health response."""
        now = datetime.now(UTC)
        response = HealthResponse(status="healthy", timestamp=now, version="1.0.0")
        assert response.status == "healthy"
        assert response.timestamp == now


class TestLLMModels:
    """Tests for LLM-related models."""

    def test_llm_message_content_blocks(self):
        """Test LLM message with content blocks."""
        message = LLMMessage(role="assistant", content=[TextBlock(text="Hello")])
        assert message.content[0].text == "Hello"

    def test_tool_result_block_defaults(self):
        """Test tool result block defaults."""
        block = ToolResultBlock(tool_use_id="toolu_1", content="{}")
        assert block.type == "tool_result"
        assert block.is_error is False

    def test_content_blocks_from_anthropic_json(self):
        """Test parsing real Anthropic content blocks from JSON."""
        anthropic_content = [
            {"citations": None, "text": "Let me look up the Premier League odds.", "type": "text"},
            {
                "id": "toolu_01A09q90qw90lq917835lq9",
                "input": {"sport": "soccer_epl", "region": "uk"},
                "name": "getUpcomingFootballOdds",
                "type": "tool_use",
            },
        ]

        text_block = TextBlock.model_validate(anthropic_content[0])
        assert "Premier League" in text_block.text

        tool_block = ToolUseBlock.model_validate(anthropic_content[1])
        assert tool_block.name == "getUpcomingFootballOdds"
        assert tool_block.input == {"sport": "soccer_epl", "region": "uk"}

    def test_usage_accumulates(self):
        """Test usage totals across rounds."""
        usage = LLMUsage()
        usage.add(LLMUsage(input_tokens=100, output_tokens=20, cache_read_input_tokens=100))
        usage.add(LLMUsage(input_tokens=50, output_tokens=10))
        assert usage.total_tokens == 180
        assert usage.cache_hit_rate == pytest.approx(40.0)


class TestOddsModels:
    """Tests for odds snapshots and tool results."""

    def test_quote_price_coercion(self):
        """Test that unusable prices become "N/A"."""
        quote = BookmakerQuote(bookmaker_name="Bet", home_price=None, draw_price="3.5", away_price="evens")
        assert quote.home_price == "N/A"
        assert quote.draw_price == 3.5
        assert quote.away_price == "N/A"

    def test_snapshot_rejects_too_many_quotes(self):
        """Test the per-match quote bound."""
        with pytest.raises(ValidationError):
            OddsSnapshot(
                match_id="m",
                home_team="A",
                away_team="B",
                commence_time="N/A",
                bookmaker_quotes=[BookmakerQuote(bookmaker_name=str(i)) for i in range(4)],
            )

    def test_success_requires_matches(self):
        """Test that a success result is never empty."""
        with pytest.raises(ValidationError):
            ToolSuccess(sport="soccer_epl", league="English Premier League", region="us", matches=[])

    def test_success_content_preserves_prices(self):
        """Test that prices survive serialization exactly."""
        snapshot = OddsSnapshot(
            match_id="m1",
            home_team="Arsenal",
            away_team="Chelsea",
            commence_time=datetime(2026, 10, 24, 14, 0, tzinfo=UTC),
            bookmaker_quotes=[BookmakerQuote(bookmaker_name="Bet", home_price=1.91, draw_price=3.6, away_price=4.33)],
        )

        result = ToolSuccess(sport="soccer_epl", league="English Premier League", region="uk", matches=[snapshot])
        payload = json.loads(result.as_model_content())

        assert payload["league"] == "English Premier League"
        assert "note" not in payload
        [match] = payload["matches"]
        assert match["matchId"] == "m1"
        assert match["commenceTime"].startswith("2026-10-24T14:00:00")
        assert match["bookmakerQuotes"][0] == {
            "bookmakerName": "Bet",
            "homePrice": 1.91,
            "drawPrice": 3.6,
            "awayPrice": 4.33,
        }

    def test_tool_result_discriminator(self):
        """Test that tool results parse by status."""
        adapter = TypeAdapter(ToolResult)
        result = adapter.validate_python({"status": "error", "error": "NO_DATA", "message": "Nothing on."})
        assert isinstance(result, ToolFailure)
        assert result.error == ErrorKind.NO_DATA
        assert result.as_model_content() == "Nothing on."


class TestStreamSteps:
    """Tests for tagged stream steps."""

    def test_steps_parse_by_type(self):
        adapter = TypeAdapter(StreamStep)
        assert isinstance(adapter.validate_python({"type": "text_delta", "text": "hi"}), TextDelta)

        done = adapter.validate_python({"type": "done", "message": {"role": "assistant", "content": "hi"}})
        assert isinstance(done, StreamDone)
        assert done.message.text == "hi"


class TestErrorKinds:
    """Tests for error classification."""

    def test_status_codes(self):
        assert ErrorKind.INVALID_INPUT.status_code == 400
        assert ErrorKind.REQUEST_TIMEOUT.status_code == 408
        assert ErrorKind.UNCLASSIFIED_FAULT.status_code == 500

    def test_tool_scoped_kinds(self):
        assert ErrorKind.TOOL_TIMEOUT.is_tool_scoped
        assert ErrorKind.NO_DATA.is_tool_scoped
        assert not ErrorKind.REQUEST_TIMEOUT.is_tool_scoped
        assert not ErrorKind.PERSISTENCE_FAILURE.is_tool_scoped
