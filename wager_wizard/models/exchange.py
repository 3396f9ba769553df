"""Persisted exchange records."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ExchangeRecord:
    """One completed prompt/response pair. Never mutated after creation."""

    id: int
    owner_id: str
    prompt: str
    response: str
    created_at: datetime | None = None
