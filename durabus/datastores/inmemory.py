"""In-memory datastore keeping records in publish order."""

import asyncio
from uuid import uuid4

from durabus.core.errors import RecordNotFoundError
from durabus.core.record import EventRecord


class InMemoryDatastore:
    """Async datastore backed by a dict and an insertion-ordered id list.

    This datastore is suitable for development and testing. It provides
    no durability guarantees: records are lost if the process terminates.

    Each call holds an asyncio.Lock for its whole duration, so saves and
    fetches are atomic with respect to each other.
    """

    def __init__(self) -> None:
        self._records: dict[str, EventRecord] = {}
        self._order: list[str] = []
        self._lock = asyncio.Lock()

    async def save_event(self, event: EventRecord) -> EventRecord:
        """Create or replace a record.

        Args:
            event: The EventRecord to store.

        Returns:
            The stored record. New records get a UUID4 id.

        Raises:
            RecordNotFoundError: If event carries an id this datastore never issued.
        """
        async with self._lock:
            if not event.id:
                event = event.model_copy(update={"id": str(uuid4())})
                self._order.append(event.id)
            elif event.id not in self._records:
                raise RecordNotFoundError(event.id)
            self._records[event.id] = event
            return event

    async def get_event(self) -> EventRecord | None:
        """Return the oldest record without finished_at, or None."""
        async with self._lock:
            for record_id in self._order:
                record = self._records[record_id]
                if record.finished_at is None:
                    return record
            return None

    def get(self, record_id: str) -> EventRecord | None:
        return self._records.get(record_id)

    def all_events(self) -> list[EventRecord]:
        """Return every stored record in publish order."""
        return [self._records[record_id] for record_id in self._order]

    def clear(self) -> None:
        self._records.clear()
        self._order.clear()

    def __len__(self) -> int:
        return len(self._records)
