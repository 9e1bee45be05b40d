"""Pytest configuration, Hypothesis profiles and shared fixtures."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable

import pytest
from hypothesis import settings

from durabus.core.record import EventRecord, RecordState
from durabus.datastores.inmemory import InMemoryDatastore

# Register Hypothesis profiles
settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=20)

# Load dev profile by default, CI can override via --hypothesis-profile=ci
settings.load_profile("dev")


class RecordingDatastore(InMemoryDatastore):
    """In-memory datastore that remembers every successful save."""

    def __init__(self) -> None:
        super().__init__()
        self.saves: list[EventRecord] = []

    async def save_event(self, event: EventRecord) -> EventRecord:
        saved = await super().save_event(event)
        self.saves.append(saved)
        return saved

    def states_of(self, record_id: str) -> list[RecordState]:
        return [saved.state for saved in self.saves if saved.id == record_id]


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend for pytest-asyncio."""
    return "asyncio"


@pytest.fixture
def datastore() -> RecordingDatastore:
    return RecordingDatastore()


@pytest.fixture
def eventually() -> Callable[..., Awaitable[Any]]:
    """Poll a condition until it holds.

    Processing runs in background tasks whose results are never returned,
    so tests observe persisted state instead.
    """

    async def _eventually(
        condition: Callable[[], Any], timeout: float = 2.0, interval: float = 0.005
    ) -> Any:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            result = condition()
            if inspect.isawaitable(result):
                result = await result
            if result:
                return result
            if loop.time() >= deadline:
                raise AssertionError(f"Condition not met within {timeout}s")
            await asyncio.sleep(interval)

    return _eventually
