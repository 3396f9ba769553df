"""LLM-related data models and types (provider-agnostic)."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

if TYPE_CHECKING:
    from wager_wizard.models.odds import ToolResult


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore citations and other provider fields


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


@dataclass
class LLMTool:
    """Tool with both schema and callable."""

    name: str
    description: str
    input_schema: dict[str, Any]
    callable: Callable[[dict[str, Any]], Awaitable["ToolResult"]]


@dataclass
class LLMUsage:
    """Token usage accumulated across model rounds."""

    input_tokens: int = 0
    output_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100

    def add(self, other: "LLMUsage") -> None:
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens


# Stream events emitted by an LLM streaming client
@dataclass
class LLMTextDelta:
    """Incremental text produced by the model."""

    text: str


@dataclass
class LLMMessageComplete:
    """Final state of one model round: all content blocks and why it stopped."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: LLMUsage
    model: str

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


LLMStreamEvent = LLMTextDelta | LLMMessageComplete
