"""Request and response models for the HTTP surface."""

from datetime import datetime

from pydantic import BaseModel, Field

from wager_wizard.models.messages import Message


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    messages: list[Message] = Field(..., min_length=1)


class HistoryResponse(BaseModel):
    """Prior conversation rebuilt from stored exchanges."""

    messages: list[Message]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
