"""Conversation message models (UI wire format)."""

from typing import Any, Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, ConfigDict, Field, model_validator

cuid = cuid_wrapper()

Role = Literal["user", "assistant", "system"]


class MessagePart(BaseModel):
    """A single part of a message. Only text parts carry model input."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str = "text"
    text: str = ""


class Message(BaseModel):
    """A role-tagged chat message, oldest first within a conversation."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(default_factory=cuid)
    role: Role
    parts: list[MessagePart] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def parts_from_plain_text(cls, data: Any) -> Any:
        """Accept the older `content` string form and a bare `text` field."""
        if isinstance(data, dict) and "parts" not in data:
            plain = data.get("content", data.get("text"))
            if isinstance(plain, str):
                return {**data, "parts": [{"type": "text", "text": plain}]}
        return data

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if part.type == "text")

    @classmethod
    def from_text(cls, role: Role, text: str, message_id: str | None = None) -> "Message":
        """Build a single-part text message."""
        return cls(id=message_id or cuid(), role=role, parts=[MessagePart(type="text", text=text)])
