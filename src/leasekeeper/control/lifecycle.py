"""Lifecycle controller: owns the elector task, flag and store connection."""

import asyncio
import logging
from collections.abc import Iterable

from leasekeeper.app.config import ElectionConfig
from leasekeeper.control.dispatcher import CallbackDispatcher
from leasekeeper.control.elector import LeaderElector
from leasekeeper.control.flag import LeadershipFlag
from leasekeeper.core.clock import Clock
from leasekeeper.core.interfaces.callbacks import LeaderCallbacks
from leasekeeper.core.interfaces.lease_store import LeaseStore
from leasekeeper.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)


class LeaderElectionController:
    """Starts the elector on a background task and shuts it down gracefully.

    The controller's LeadershipFlag is subscribed before the application
    callbacks, so it is already cleared when they hear about a loss.

    Usage:
        async with LeaderElectionController(store, config, [MyCallbacks()]) as ctl:
            ...
            if ctl.is_leader():
                ...

    Raises:
        ConfigurationInvalidError: On construction, if config is unsafe.
    """

    def __init__(
        self,
        store: LeaseStore,
        config: ElectionConfig,
        callbacks: Iterable[LeaderCallbacks] = (),
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._flag = LeadershipFlag()
        self._dispatcher = CallbackDispatcher([self._flag, *callbacks])
        self._elector = LeaderElector(store, config, self._dispatcher, clock)
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def elector(self) -> LeaderElector:
        return self._elector

    @property
    def flag(self) -> LeadershipFlag:
        return self._flag

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_leader(self) -> bool:
        """Non-blocking leadership query."""
        return self._flag.is_leader()

    def start(self) -> asyncio.Task[None]:
        """Start the elector task. Returns the existing task if already started."""
        if self._stopped:
            raise RuntimeError("Controller already stopped")
        if self._task is None:
            self._task = asyncio.create_task(self._elector.run(), name="leader-election")
            logger.info(
                "Leader election started",
                extra={"event": LogEvent.APP_STARTED, "lease": str(self._elector.key)},
            )
        return self._task

    async def wait(self) -> None:
        """Wait until the elector task ends (after stop() or a crash)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def stop(self) -> None:
        """Stop the elector, release the lease if held, close the store.

        Waits at most shutdown_grace for the in-flight cycle and the release,
        then cancels the task. Idempotent.
        """
        if self._stopped:
            return
        self._stopped = True

        logger.info(
            "Shutting down leader election",
            extra={"event": LogEvent.APP_STOPPED, "lease": str(self._elector.key)},
        )
        self._elector.stop()

        if self._task is not None:
            await self._join(self._config.shutdown_grace)

        try:
            await self._store.close()
        except Exception as e:
            logger.warning(
                "Error closing lease store: %s",
                e,
                extra={"event": LogEvent.STORE_ERROR, "error": str(e)},
            )

    async def _join(self, grace: float) -> None:
        task = self._task
        assert task is not None
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=grace)
            return
        except TimeoutError:
            logger.warning(
                "Leader election did not stop within %.1fs, cancelling",
                grace,
                extra={"event": LogEvent.APP_STOPPED},
            )
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            return
        except Exception as e:
            logger.error("Leader election failed: %s", e, exc_info=e)
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Leader election failed: %s", e, exc_info=e)

    async def __aenter__(self) -> "LeaderElectionController":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
