"""Fire-and-forget persistence of completed exchanges."""

import asyncio

from wager_wizard.errors import ErrorKind
from wager_wizard.models.exchange import ExchangeRecord
from wager_wizard.services.exchange_store import ExchangeStore
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)


class PersistenceSink:
    """Writes exchanges in the background.

    Durability is best-effort: a failed write is logged and dropped, and the
    response path never waits on it.
    """

    def __init__(self, store: ExchangeStore, owner_id: str = "guest"):
        self.store = store
        self.owner_id = owner_id
        self._tasks: set[asyncio.Task[ExchangeRecord | None]] = set()

    def submit(self, prompt: str, response: str) -> asyncio.Task[ExchangeRecord | None]:
        """Schedule a write and return immediately."""
        task = asyncio.create_task(self.record(prompt, response))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def record(self, prompt: str, response: str) -> ExchangeRecord | None:
        """Write one exchange; never raises."""
        try:
            record = await self.store.insert(self.owner_id, prompt, response)
        except Exception as e:
            logger.error(
                f"{ErrorKind.PERSISTENCE_FAILURE}: could not store exchange for {self.owner_id}: {e}",
                exc_info=True,
            )
            return None

        logger.info(f"Stored exchange {record.id} for {self.owner_id}")
        return record

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight writes to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
