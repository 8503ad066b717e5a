"""Lease store interface for optimistic-concurrency lease records."""

from abc import ABC, abstractmethod

from leasekeeper.core.domain import Lease, LeaseKey, LeaseRecord


class LeaseStore(ABC):
    """Abstract base class for a versioned key-value lease store.

    Implementations must handle:
    - Compare-and-swap: a write succeeds only if expected_version matches
    - Error translation: transient driver faults raise StoreUnavailableError
    - No retries: retry policy belongs to the LeaderElector

    Implementations: InMemoryLeaseStore, PostgresLeaseStore, RedisLeaseStore
    """

    @abstractmethod
    async def read(self, key: LeaseKey) -> LeaseRecord | None:
        """Read the current lease.

        Args:
            key: Lease key.

        Returns:
            LeaseRecord, or None if no lease exists yet.

        Raises:
            StoreUnavailableError: Store could not be reached.
        """
        ...

    @abstractmethod
    async def create_or_update(
        self, key: LeaseKey, expected_version: str | None, lease: Lease
    ) -> str:
        """Create (expected_version=None) or compare-and-swap update a lease.

        Args:
            key: Lease key.
            expected_version: Version last observed, None for initial creation.
            lease: New lease value.

        Returns:
            The new version.

        Raises:
            ConflictError: Record exists (create) or version moved on (update).
            LeaseNotFoundError: Record was deleted since it was read (update).
            StoreUnavailableError: Store could not be reached.
        """
        ...

    async def close(self) -> None:
        """Release the store connection. Default: nothing to release."""
        return None
