"""Exchange store interface and implementations."""

import itertools
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from wager_wizard.models.exchange import ExchangeRecord
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)


class ExchangeStore(Protocol):
    """Append-only store of completed exchanges.

    Concurrent writers only ever append independent records; no coordination
    between them is required.
    """

    async def insert(self, owner_id: str, prompt: str, response: str) -> ExchangeRecord:
        """Append one exchange and return the stored record."""
        ...

    async def list_for_owner(self, owner_id: str) -> list[ExchangeRecord]:
        """Return every record for the owner, oldest first."""
        ...


class InMemoryExchangeStore:
    """In-memory exchange store for development and tests."""

    def __init__(self):
        self.records: list[ExchangeRecord] = []
        self._ids = itertools.count(1)

    async def insert(self, owner_id: str, prompt: str, response: str) -> ExchangeRecord:
        record = ExchangeRecord(
            id=next(self._ids),
            owner_id=owner_id,
            prompt=prompt,
            response=response,
            created_at=datetime.now(UTC),
        )
        self.records.append(record)
        return record

    async def list_for_owner(self, owner_id: str) -> list[ExchangeRecord]:
        return sorted((r for r in self.records if r.owner_id == owner_id), key=lambda r: r.id)


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Ignoring unparseable created_at {value!r}")
        return None


class SupabaseExchangeStore:
    """Exchange store backed by a Supabase table through its PostgREST API.

    Expects a table with columns ``id`` (identity), ``user_id``, ``prompt``,
    ``response`` and ``created_at``.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = "chat_history",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def insert(self, owner_id: str, prompt: str, response: str) -> ExchangeRecord:
        resp = await self._client.post(
            self.endpoint,
            json={"user_id": owner_id, "prompt": prompt, "response": response},
            headers={**self.headers, "Prefer": "return=representation"},
        )
        resp.raise_for_status()
        rows = resp.json()
        if not rows:
            raise ValueError("Supabase insert returned no row")
        return self._to_record(rows[0])

    async def list_for_owner(self, owner_id: str) -> list[ExchangeRecord]:
        resp = await self._client.get(
            self.endpoint,
            params={"select": "*", "user_id": f"eq.{owner_id}", "order": "id.asc"},
            headers=self.headers,
        )
        resp.raise_for_status()

        records = []
        for row in resp.json():
            try:
                records.append(self._to_record(row))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable chat_history row {row!r}: {e}")
        return records

    def _to_record(self, row: dict[str, Any]) -> ExchangeRecord:
        created_at = row.get("created_at")
        return ExchangeRecord(
            id=int(row["id"]),
            owner_id=row["user_id"],
            prompt=row.get("prompt") or "",
            response=row.get("response") or "",
            created_at=_parse_timestamp(created_at),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
