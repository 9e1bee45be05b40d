"""Datastore protocol for event records.

The Dispatcher keeps no records of its own. Every record it reads or writes
goes through the datastore, which owns identity and retrieval order.
"""

from typing import Protocol

from durabus.core.record import EventRecord


class Datastore(Protocol):
    """Protocol defining the interface for durable record storage.

    Datastores are responsible for:
    - Creating and updating records (save_event)
    - Returning the next record to process (get_event)

    Each call must be atomic on its own. The Dispatcher assumes no
    transaction spanning several calls.
    """

    async def save_event(self, event: EventRecord) -> EventRecord:
        """Create or update a record.

        A record with an empty id is created and given a new id; any other
        record replaces the stored one with the same id. Saving the same
        record twice has the same effect as saving it once.

        Args:
            event: The EventRecord to store.

        Returns:
            The stored record, carrying its assigned id.
        """
        ...

    async def get_event(self) -> EventRecord | None:
        """Return the oldest unfinished record in publish order.

        Records carrying an error are returned like any other unfinished
        record so the Dispatcher can halt on them.

        Returns:
            The next candidate record, or None if every record is finished.
        """
        ...
