"""In-process lease store.

Linearizable within one event loop: every read and compare-and-swap runs
under a single asyncio.Lock. Used for tests and single-host deployments where
replicas are tasks in the same process.
"""

import asyncio
import logging

from leasekeeper.core.domain import Lease, LeaseKey, LeaseRecord
from leasekeeper.core.errors import ConflictError, LeaseNotFoundError
from leasekeeper.core.interfaces.lease_store import LeaseStore

logger = logging.getLogger(__name__)


class InMemoryLeaseStore(LeaseStore):
    """Versioned dict of leases. Versions are increasing integers as strings."""

    def __init__(self) -> None:
        self._records: dict[LeaseKey, LeaseRecord] = {}
        self._next_version = 1
        self._lock = asyncio.Lock()

    def _bump(self) -> str:
        version = str(self._next_version)
        self._next_version += 1
        return version

    async def read(self, key: LeaseKey) -> LeaseRecord | None:
        async with self._lock:
            return self._records.get(key)

    async def create_or_update(
        self, key: LeaseKey, expected_version: str | None, lease: Lease
    ) -> str:
        async with self._lock:
            current = self._records.get(key)

            if expected_version is None:
                if current is not None:
                    raise ConflictError(str(key))
            else:
                if current is None:
                    raise LeaseNotFoundError(str(key))
                if current.version != expected_version:
                    raise ConflictError(str(key), expected_version)

            version = self._bump()
            self._records[key] = LeaseRecord(lease=lease, version=version)
            logger.debug("Lease %s written (version=%s, holder=%r)", key, version, lease.holder_identity)
            return version

    async def delete(self, key: LeaseKey) -> bool:
        """Delete a lease record. Returns True if it existed."""
        async with self._lock:
            return self._records.pop(key, None) is not None
