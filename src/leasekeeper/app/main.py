"""Command-line entry point: run one election replica until signalled."""

import asyncio
import logging
import signal

from prometheus_client import start_http_server

from leasekeeper import __version__
from leasekeeper.app.config import Settings, get_settings
from leasekeeper.app.logging import setup_logging
from leasekeeper.control import LeaderElectionController
from leasekeeper.core.interfaces import LeaderCallbacks, LeaseStore
from leasekeeper.core.logging_schema import LogEvent
from leasekeeper.infra import (
    InMemoryLeaseStore,
    PostgresLeaseStore,
    RedisLeaseStore,
    create_schema,
    init_db,
    init_redis,
)

logger = logging.getLogger(__name__)


class LoggingCallbacks(LeaderCallbacks):
    """Logs leadership changes; stands in for the application's own handlers."""

    def on_became_leader(self) -> None:
        logger.info("This replica is now the leader", extra={"event": LogEvent.LEADERSHIP_ACQUIRED})

    def on_lost_leadership(self) -> None:
        logger.info("This replica is no longer the leader", extra={"event": LogEvent.LEADERSHIP_LOST})

    def on_observed_leader(self, identity: str) -> None:
        logger.debug("Current leader: %s", identity, extra={"event": LogEvent.LEADER_OBSERVED})


async def build_store(settings: Settings) -> LeaseStore:
    """Create the lease store selected by STORE_BACKEND."""
    backend = settings.store.backend
    timeout = settings.election.store_timeout

    if backend == "postgres":
        engine = await init_db()
        await create_schema(engine)
        return PostgresLeaseStore(engine, timeout=timeout)
    if backend == "redis":
        client = await init_redis()
        return RedisLeaseStore(client, key_prefix=settings.store.key_prefix, timeout=timeout)

    logger.warning("Using in-memory lease store: replicas in other processes will not see it")
    return InMemoryLeaseStore()


async def run(settings: Settings, stop_requested: asyncio.Event | None = None) -> None:
    """Run one replica until stop_requested is set (SIGINT/SIGTERM by default).

    The controller owns the store: its stop() also closes the connection.
    """
    store = await build_store(settings)
    controller = LeaderElectionController(store, settings.election, [LoggingCallbacks()])

    loop = asyncio.get_running_loop()
    signals: tuple[signal.Signals, ...] = ()
    if stop_requested is None:
        stop_requested = asyncio.Event()
        signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, stop_requested.set)

    logger.info(
        "Starting leasekeeper %s (backend=%s)",
        __version__,
        settings.store.backend,
        extra={"event": LogEvent.APP_STARTED},
    )

    try:
        task = controller.start()
        waiter = asyncio.create_task(stop_requested.wait())
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()
    finally:
        await controller.stop()
        for sig in signals:
            loop.remove_signal_handler(sig)
        logger.info("Shutdown complete", extra={"event": LogEvent.APP_STOPPED})


def main() -> None:
    setup_logging()
    settings = get_settings()
    if settings.metrics.enabled:
        start_http_server(settings.metrics.port)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
