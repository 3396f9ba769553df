"""Tagged steps emitted by the stream orchestrator."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from wager_wizard.errors import ErrorKind
from wager_wizard.models.messages import Message


class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class ToolCallRequested(BaseModel):
    type: Literal["tool_call_requested"] = "tool_call_requested"
    tool_use_id: str
    name: str
    input: dict[str, Any]


class ToolResultAvailable(BaseModel):
    type: Literal["tool_result_available"] = "tool_result_available"
    tool_use_id: str
    name: str
    content: str
    is_error: bool = False
    error: ErrorKind | None = None


class StreamDone(BaseModel):
    """Terminal step carrying the finalized assistant message."""

    type: Literal["done"] = "done"
    message: Message


class StreamFailed(BaseModel):
    """Terminal failure step."""

    type: Literal["failed"] = "failed"
    kind: ErrorKind
    message: str


StreamStep = Annotated[
    TextDelta | ToolCallRequested | ToolResultAvailable | StreamDone | StreamFailed,
    Field(discriminator="type"),
]

TERMINAL_STEPS = (StreamDone, StreamFailed)
