"""Unit tests for InMemoryLeaseStore."""

from datetime import UTC, datetime

import pytest

from leasekeeper.core.domain import Lease, LeaseKey
from leasekeeper.core.errors import ConflictError, LeaseNotFoundError
from leasekeeper.infra.memory_lease import InMemoryLeaseStore

KEY = LeaseKey(namespace="default", name="leader-example")
NOW = datetime(2024, 1, 1, tzinfo=UTC)


def _lease(holder: str = "a", transitions: int = 0) -> Lease:
    return Lease(
        holder_identity=holder,
        lease_duration_seconds=30,
        acquire_time=NOW,
        renew_time=NOW,
        lease_transitions=transitions,
    )


@pytest.fixture
def store() -> InMemoryLeaseStore:
    return InMemoryLeaseStore()


class TestCreate:
    @pytest.mark.asyncio
    async def test_read_missing(self, store: InMemoryLeaseStore) -> None:
        assert await store.read(KEY) is None

    @pytest.mark.asyncio
    async def test_create_then_read(self, store: InMemoryLeaseStore) -> None:
        version = await store.create_or_update(KEY, None, _lease())

        record = await store.read(KEY)
        assert record.version == version
        assert record.lease == _lease()

    @pytest.mark.asyncio
    async def test_second_create_conflicts(self, store: InMemoryLeaseStore) -> None:
        """Only one of two racing creators wins."""
        await store.create_or_update(KEY, None, _lease("a"))

        with pytest.raises(ConflictError):
            await store.create_or_update(KEY, None, _lease("b"))

        assert (await store.read(KEY)).lease.holder_identity == "a"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_with_current_version(self, store: InMemoryLeaseStore) -> None:
        v1 = await store.create_or_update(KEY, None, _lease("a"))

        v2 = await store.create_or_update(KEY, v1, _lease("b", 1))

        assert v2 != v1
        assert (await store.read(KEY)).lease.holder_identity == "b"

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, store: InMemoryLeaseStore) -> None:
        v1 = await store.create_or_update(KEY, None, _lease("a"))
        await store.create_or_update(KEY, v1, _lease("b", 1))

        with pytest.raises(ConflictError) as info:
            await store.create_or_update(KEY, v1, _lease("c", 1))

        assert info.value.expected_version == v1

    @pytest.mark.asyncio
    async def test_update_after_delete_not_found(self, store: InMemoryLeaseStore) -> None:
        v1 = await store.create_or_update(KEY, None, _lease("a"))
        assert await store.delete(KEY) is True

        with pytest.raises(LeaseNotFoundError):
            await store.create_or_update(KEY, v1, _lease("a"))

    @pytest.mark.asyncio
    async def test_versions_never_repeat(self, store: InMemoryLeaseStore) -> None:
        """A deleted and recreated lease does not reuse an old version."""
        v1 = await store.create_or_update(KEY, None, _lease("a"))
        await store.delete(KEY)
        v2 = await store.create_or_update(KEY, None, _lease("a"))

        assert v1 != v2

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store: InMemoryLeaseStore) -> None:
        other = LeaseKey(namespace="default", name="other")
        await store.create_or_update(KEY, None, _lease("a"))
        await store.create_or_update(other, None, _lease("b"))

        assert (await store.read(KEY)).lease.holder_identity == "a"
        assert (await store.read(other)).lease.holder_identity == "b"

    @pytest.mark.asyncio
    async def test_delete_missing(self, store: InMemoryLeaseStore) -> None:
        assert await store.delete(KEY) is False
