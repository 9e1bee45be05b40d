"""Dispatcher for durabus event processing.

The Dispatcher is the central orchestrator that:
- Persists published events through the datastore before anything runs
- Schedules a processing task after every successful publish or restart
- Runs the matching handlers for the oldest unfinished record
- Halts on a failed record until restart() clears its error

IMPORTANT: the Dispatcher keeps no records of its own. Every read and write
goes through the datastore.

Processing tasks are not serialized by default. Two tasks scheduled close
together can both fetch the same candidate before either marks it started,
and the handlers for that record then run twice. Pass ``single_flight=True``
to serialize processing within one Dispatcher instance; this does not
coordinate separate processes sharing a datastore.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from durabus.core.logging import DISPATCHER_LOGGER_NAME, configure_dispatcher_logger, log_context
from durabus.core.record import EventRecord
from durabus.core.registry import Handler, HandlerBinding, HandlerRegistry

if TYPE_CHECKING:
    from durabus.datastores.base import Datastore


@dataclass
class DispatcherStats:
    """Counters collected by a Dispatcher."""

    events_published: int = 0
    events_started: int = 0
    events_finished: int = 0
    events_errored: int = 0
    events_halted: int = 0
    restarts: int = 0
    datastore_errors: int = 0
    # Keyed by HandlerBinding.key
    handler_errors: dict[str, int] = field(default_factory=lambda: defaultdict(int))


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class Dispatcher:
    """Durable event dispatcher with halt-on-error processing."""

    def __init__(
        self,
        datastore: "Datastore",
        registry: HandlerRegistry | None = None,
        enable_log: bool = False,
        single_flight: bool = False,
    ) -> None:
        self.datastore = datastore
        self.registry = registry if registry is not None else HandlerRegistry()
        self.enable_log = enable_log
        self.single_flight = single_flight
        self._log = (
            configure_dispatcher_logger() if enable_log else logging.getLogger(DISPATCHER_LOGGER_NAME)
        )
        self._lock = asyncio.Lock() if single_flight else None
        self._tasks: set[asyncio.Task[None]] = set()
        self._stats = DispatcherStats()

    def _emit(
        self,
        level: int,
        message: str,
        event: EventRecord | None = None,
        **fields: Any,
    ) -> None:
        if not self.enable_log:
            return
        self._log.log(level, message, extra=log_context(event, **fields))

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def get_stats(self) -> DispatcherStats:
        """Return a copy of current statistics.

        Returns a snapshot that is safe to inspect without affecting internal state.
        """
        return DispatcherStats(
            events_published=self._stats.events_published,
            events_started=self._stats.events_started,
            events_finished=self._stats.events_finished,
            events_errored=self._stats.events_errored,
            events_halted=self._stats.events_halted,
            restarts=self._stats.restarts,
            datastore_errors=self._stats.datastore_errors,
            handler_errors=defaultdict(int, self._stats.handler_errors),
        )

    def register(self, name: str, handler: Handler) -> HandlerBinding:
        """Bind a handler to an event name.

        Handlers bound to the same name run in registration order. A handler
        receives the event payload, may be sync or async, and fails by
        raising.
        """
        binding = self.registry.register(name, handler)
        self._emit(
            logging.INFO,
            f"Registered handler {binding.handler_name} for {name}",
            event_name=name,
            handler=binding.handler_name,
        )
        return binding

    async def publish(self, name: str, payload: Any = None) -> EventRecord:
        """Persist a new event and schedule a processing attempt.

        The scheduled attempt processes the oldest unfinished record, which
        is not necessarily the one published here.

        Returns:
            The persisted record, carrying the id assigned by the datastore.

        Raises:
            Whatever the datastore raised while saving. Nothing is scheduled
            in that case.
        """
        event = EventRecord(name=name, payload=payload)
        self._emit(logging.INFO, f"Publishing event {name}", event_name=name)

        try:
            saved = await self.datastore.save_event(event)
        except Exception as e:
            self._stats.datastore_errors += 1
            self._emit(
                logging.ERROR,
                f"Failed to save published event: {e}",
                event_name=name,
                error=str(e),
            )
            raise

        self._stats.events_published += 1
        self._trigger()
        return saved

    async def restart(self) -> None:
        """Clear the error on a blocked record and schedule a processing attempt.

        A processing attempt is scheduled whether or not a blocked record was
        found. If the datastore fails, nothing is cleared and nothing is
        scheduled.

        Handlers that succeeded before the failing one run again when the
        record is reprocessed.
        """
        self._stats.restarts += 1
        self._emit(logging.INFO, "Restarting dispatcher")

        try:
            event = await self.datastore.get_event()
        except Exception as e:
            self._stats.datastore_errors += 1
            self._emit(logging.ERROR, f"Failed to get event: {e}", error=str(e))
            return

        if event is not None and event.error is not None:
            self._emit(
                logging.INFO,
                f"Restarting failed event {event.name}",
                event,
                error=event.error,
            )
            if await self._save(event.clear_error()) is None:
                return

        self._trigger()

    async def drain(self) -> None:
        """Wait until every scheduled processing attempt has completed.

        Outcomes are not reported; inspect the datastore instead.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _trigger(self) -> None:
        task = asyncio.create_task(self._process())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self) -> None:
        if self._lock is None:
            await self._process_next()
            return
        async with self._lock:
            await self._process_next()

    async def _save(self, event: EventRecord) -> EventRecord | None:
        """Save inside a processing attempt; log and return None on failure."""
        try:
            return await self.datastore.save_event(event)
        except Exception as e:
            self._stats.datastore_errors += 1
            self._emit(logging.ERROR, f"Failed to save event: {e}", event, error=str(e))
            return None

    async def _invoke_handler(self, binding: HandlerBinding, event: EventRecord) -> None:
        result = binding.handler(event.payload)
        if inspect.isawaitable(result):
            await result

    async def _process_next(self) -> None:
        try:
            event = await self.datastore.get_event()
        except Exception as e:
            self._stats.datastore_errors += 1
            self._emit(logging.ERROR, f"Failed to get event: {e}", error=str(e))
            return

        if event is None:
            self._emit(logging.DEBUG, "No event available")
            return

        # Halt until restart() clears the error
        if event.error is not None:
            self._stats.events_halted += 1
            self._emit(
                logging.WARNING,
                f"Last event aborted with error: {event.error}",
                event,
                error=event.error,
            )
            return

        started = await self._save(event.mark_started())
        if started is None:
            return
        self._stats.events_started += 1

        for binding in self.registry.matching(started.name):
            self._emit(
                logging.INFO,
                f"Dispatching {started.name} to {binding.handler_name}",
                started,
                handler=binding.handler_name,
            )
            try:
                await self._invoke_handler(binding, started)
            except Exception as e:
                self._stats.handler_errors[binding.key] += 1
                self._emit(
                    logging.ERROR,
                    f"Handler {binding.handler_name} raised exception: {e}",
                    started,
                    handler=binding.handler_name,
                    error=str(e),
                )
                if await self._save(started.mark_errored(_describe(e))) is not None:
                    self._stats.events_errored += 1
                return

        if await self._save(started.mark_finished()) is not None:
            self._stats.events_finished += 1
