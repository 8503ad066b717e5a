"""Lease store backed by a PostgreSQL row with a version column."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from leasekeeper.core.domain import Lease, LeaseKey, LeaseRecord
from leasekeeper.core.errors import (
    ConflictError,
    LeaseKeeperError,
    LeaseNotFoundError,
    StoreUnavailableError,
)
from leasekeeper.core.interfaces.lease_store import LeaseStore
from leasekeeper.core.retryable import is_retryable
from leasekeeper.infra.models import LeaderLease

logger = logging.getLogger(__name__)

T = TypeVar("T")

_table = LeaderLease.__table__


def _new_version() -> str:
    return uuid.uuid4().hex


def _key_clause(key: LeaseKey):
    return (_table.c.namespace == key.namespace) & (_table.c.name == key.name)


def _lease_values(lease: Lease) -> dict:
    return {
        "holder_identity": lease.holder_identity,
        "lease_duration_seconds": lease.lease_duration_seconds,
        "acquire_time": lease.acquire_time,
        "renew_time": lease.renew_time,
        "lease_transitions": lease.lease_transitions,
    }


class PostgresLeaseStore(LeaseStore):
    """Lease store using SQLAlchemy AsyncEngine.

    Each call runs in its own short transaction on a pooled connection, so a
    dropped connection only fails the call in flight. Compare-and-swap is a
    single UPDATE ... WHERE version = :expected, which PostgreSQL serializes
    on the row lock.
    """

    DEFAULT_TIMEOUT: float = 5.0

    def __init__(self, engine: AsyncEngine, timeout: float | None = None) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy AsyncEngine.
            timeout: Per-call timeout in seconds.
        """
        self._engine = engine
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    async def _run(
        self, op: str, key: LeaseKey, fn: Callable[[AsyncConnection], Awaitable[T]]
    ) -> T:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._engine.begin() as conn:
                    return await fn(conn)
        except LeaseKeeperError:
            raise
        except TimeoutError as e:
            raise StoreUnavailableError(f"{op} {key} timed out after {self._timeout}s") from e
        except Exception as e:
            if is_retryable(e):
                raise StoreUnavailableError(f"{op} {key} failed: {e}") from e
            raise

    async def read(self, key: LeaseKey) -> LeaseRecord | None:
        async def _read(conn: AsyncConnection) -> LeaseRecord | None:
            result = await conn.execute(select(_table).where(_key_clause(key)))
            row = result.mappings().first()
            if row is None:
                return None
            lease = Lease(
                holder_identity=row["holder_identity"],
                lease_duration_seconds=row["lease_duration_seconds"],
                acquire_time=row["acquire_time"],
                renew_time=row["renew_time"],
                lease_transitions=row["lease_transitions"],
            )
            return LeaseRecord(lease=lease, version=row["version"])

        return await self._run("read", key, _read)

    async def create_or_update(
        self, key: LeaseKey, expected_version: str | None, lease: Lease
    ) -> str:
        version = _new_version()

        async def _create(conn: AsyncConnection) -> str:
            stmt = (
                insert(_table)
                .values(namespace=key.namespace, name=key.name, version=version, **_lease_values(lease))
                .on_conflict_do_nothing(index_elements=["namespace", "name"])
                .returning(_table.c.version)
            )
            result = await conn.execute(stmt)
            if result.first() is None:
                raise ConflictError(str(key))
            return version

        async def _update(conn: AsyncConnection) -> str:
            stmt = (
                update(_table)
                .where(_key_clause(key) & (_table.c.version == expected_version))
                .values(version=version, **_lease_values(lease))
                .returning(_table.c.version)
            )
            result = await conn.execute(stmt)
            if result.first() is not None:
                return version

            # Distinguish a lost race from an externally deleted row
            exists = await conn.execute(select(_table.c.version).where(_key_clause(key)))
            if exists.first() is None:
                raise LeaseNotFoundError(str(key))
            raise ConflictError(str(key), expected_version)

        if expected_version is None:
            return await self._run("create", key, _create)
        return await self._run("update", key, _update)

    async def delete(self, key: LeaseKey) -> bool:
        """Delete a lease row. Returns True if it existed."""
        async def _delete(conn: AsyncConnection) -> bool:
            result = await conn.execute(
                _table.delete().where(_key_clause(key)).returning(_table.c.version)
            )
            return result.first() is not None

        return await self._run("delete", key, _delete)

    async def close(self) -> None:
        """Return pooled connections. The engine stays usable."""
        await self._engine.dispose()
        logger.info("PostgreSQL lease store closed")
