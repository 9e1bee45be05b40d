"""Event record model for durabus."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RecordState(Enum):
    """Lifecycle state derived from a record's timestamps and error."""

    PENDING = "pending"
    STARTED = "started"
    FINISHED = "finished"
    ERRORED = "errored"


class EventRecord(BaseModel):
    """Immutable, persisted unit of work.

    A record is created by ``Dispatcher.publish`` and then moved through its
    lifecycle by the dispatcher only. Every transition returns a new instance;
    the datastore decides identity and retrieval order.

    Attributes:
        id: Opaque identifier assigned by the datastore. Empty until saved.
        name: Event name matched against registered handlers. Kept verbatim,
            since matching is exact string equality.
        payload: Caller-defined value, passed to handlers unexamined.
        published_at: UTC datetime set once at creation.
        started_at: Set when processing begins, None before that.
        finished_at: Set when every matching handler succeeded.
        error: Message of the failed attempt. A record carrying an error
            blocks the pipeline until ``Dispatcher.restart`` clears it.
    """

    id: str = ""
    name: str
    payload: Any = None
    published_at: datetime = Field(default_factory=_utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @property
    def state(self) -> RecordState:
        if self.error is not None:
            return RecordState.ERRORED
        if self.finished_at is not None:
            return RecordState.FINISHED
        if self.started_at is not None:
            return RecordState.STARTED
        return RecordState.PENDING

    @property
    def is_saved(self) -> bool:
        return bool(self.id)

    def mark_started(self) -> "EventRecord":
        return self.model_copy(update={"started_at": _utcnow()})

    def mark_finished(self) -> "EventRecord":
        return self.model_copy(update={"finished_at": _utcnow()})

    def mark_errored(self, error: str) -> "EventRecord":
        return self.model_copy(update={"error": error})

    def clear_error(self) -> "EventRecord":
        return self.model_copy(update={"error": None})
