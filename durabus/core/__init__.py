"""Core components for the durabus event dispatcher.

This module exposes the primary types:

Types:
    EventRecord: Immutable persisted event with lifecycle timestamps and error.
    RecordState: Enum of PENDING, STARTED, FINISHED, ERRORED.
    HandlerRegistry: Ordered handler bindings, injected into the Dispatcher.
    HandlerBinding: One handler bound to one event name.
    Dispatcher: Publishes, processes and restarts events.
    DispatcherStats: Counters collected by a Dispatcher.

Errors:
    DatastoreError: Base class for datastore failures.
    RecordNotFoundError: Update of an unknown record id.
    RecordSerializationError: Record cannot be encoded or decoded.
"""

from durabus.core.dispatcher import Dispatcher, DispatcherStats
from durabus.core.errors import DatastoreError, RecordNotFoundError, RecordSerializationError
from durabus.core.record import EventRecord, RecordState
from durabus.core.registry import Handler, HandlerBinding, HandlerRegistry

__all__ = [
    "EventRecord",
    "RecordState",
    "Handler",
    "HandlerBinding",
    "HandlerRegistry",
    "Dispatcher",
    "DispatcherStats",
    "DatastoreError",
    "RecordNotFoundError",
    "RecordSerializationError",
]
