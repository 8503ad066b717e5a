"""Fixtures for election unit tests."""

import asyncio
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio

from leasekeeper.control import CallbackDispatcher, LeaderElector, LeadershipFlag
from tests.unit.control.fakes import FlakyStore, RecordingCallbacks, make_config

StartedElector = tuple[LeaderElector, RecordingCallbacks, LeadershipFlag, asyncio.Task]


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest_asyncio.fixture
async def start_elector(
    store: FlakyStore,
) -> AsyncGenerator[Callable[..., StartedElector], None]:
    """Factory that starts electors on the shared store and stops them on teardown."""
    started: list[tuple[LeaderElector, asyncio.Task]] = []

    def _start(identity: str, **overrides: object) -> StartedElector:
        callbacks = RecordingCallbacks()
        flag = LeadershipFlag()
        dispatcher = CallbackDispatcher([flag, callbacks])
        elector = LeaderElector(store, make_config(identity, **overrides), dispatcher)
        task = asyncio.create_task(elector.run())
        started.append((elector, task))
        return elector, callbacks, flag, task

    yield _start

    store.unavailable = False
    for elector, _ in started:
        elector.stop()
    for _, task in started:
        if task.done():
            continue
        try:
            await asyncio.wait_for(task, timeout=2.0)
        except (asyncio.CancelledError, TimeoutError):
            pass
