"""Rebuild a prior conversation from stored exchanges."""

from collections.abc import Iterable

from wager_wizard.models.exchange import ExchangeRecord
from wager_wizard.models.messages import Message
from wager_wizard.services.exchange_store import ExchangeStore
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)


def records_to_messages(records: Iterable[ExchangeRecord]) -> list[Message]:
    """Expand each record into its user and assistant messages, in record order."""
    messages: list[Message] = []
    for record in records:
        messages.append(Message.from_text("user", record.prompt, message_id=f"user-{record.id}"))
        messages.append(Message.from_text("assistant", record.response, message_id=f"assistant-{record.id}"))
    return messages


class HistoryHydrator:
    """Loads the owner's history in the inbound message format."""

    def __init__(self, store: ExchangeStore, owner_id: str = "guest"):
        self.store = store
        self.owner_id = owner_id

    async def load_messages(self) -> list[Message]:
        """Return prior messages, or an empty history if the store is unreachable."""
        try:
            records = await self.store.list_for_owner(self.owner_id)
        except Exception as e:
            logger.error(f"Error loading chat history for {self.owner_id}: {e}", exc_info=True)
            return []

        logger.info(f"Loaded {len(records)} exchanges for {self.owner_id}")
        return records_to_messages(records)
