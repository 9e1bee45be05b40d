"""durabus - durable, halt-on-error event dispatch for asyncio."""

from durabus.core import (
    DatastoreError,
    Dispatcher,
    DispatcherStats,
    EventRecord,
    HandlerBinding,
    HandlerRegistry,
    RecordNotFoundError,
    RecordSerializationError,
    RecordState,
)
from durabus.datastores import Datastore, InMemoryDatastore, RedisDatastore

__version__ = "0.1.0"

__all__ = [
    # Core
    "EventRecord",
    "RecordState",
    "HandlerRegistry",
    "HandlerBinding",
    "Dispatcher",
    "DispatcherStats",
    # Errors
    "DatastoreError",
    "RecordNotFoundError",
    "RecordSerializationError",
    # Datastores
    "Datastore",
    "InMemoryDatastore",
    "RedisDatastore",
    # Meta
    "__version__",
]
