"""Tests for election domain models and the fencing interface."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from leasekeeper.core.domain import FencingToken, Lease, LeaseKey
from leasekeeper.core.interfaces import FencedResource

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class TestLeaseKey:
    def test_str(self) -> None:
        assert str(LeaseKey(namespace="default", name="leader-example")) == "default/leader-example"

    def test_hashable(self) -> None:
        a = LeaseKey(namespace="ns", name="x")
        b = LeaseKey(namespace="ns", name="x")
        assert {a: 1}[b] == 1


class TestLease:
    def test_unheld(self) -> None:
        lease = Lease(lease_duration_seconds=30)
        assert lease.is_held is False
        assert lease.expired_at(NOW) is True

    def test_not_expired_within_duration(self) -> None:
        lease = Lease(
            holder_identity="a",
            lease_duration_seconds=30,
            acquire_time=NOW,
            renew_time=NOW,
        )
        assert lease.is_held is True
        assert lease.expired_at(NOW + timedelta(seconds=30)) is False
        assert lease.expired_at(NOW + timedelta(seconds=30.001)) is True

    def test_frozen(self) -> None:
        lease = Lease(holder_identity="a", lease_duration_seconds=30)
        with pytest.raises(ValidationError):
            lease.holder_identity = "b"

    def test_model_copy_keeps_acquire_time(self) -> None:
        lease = Lease(holder_identity="a", lease_duration_seconds=30, acquire_time=NOW, renew_time=NOW)
        renewed = lease.model_copy(update={"renew_time": NOW + timedelta(seconds=5)})

        assert renewed.acquire_time == NOW
        assert renewed.renew_time == NOW + timedelta(seconds=5)


class HighestTransitionFence(FencedResource):
    """Accepts a token only if no newer tenure has been seen."""

    def __init__(self) -> None:
        self.highest = -1

    async def check(self, token: FencingToken) -> bool:
        if token.lease_transitions < self.highest:
            return False
        self.highest = token.lease_transitions
        return True


class TestFencedResource:
    @pytest.mark.asyncio
    async def test_rejects_stale_tenure(self) -> None:
        fence = HighestTransitionFence()
        old = FencingToken(holder_identity="a", lease_transitions=3, version="v1")
        new = FencingToken(holder_identity="b", lease_transitions=4, version="v2")

        assert await fence.check(old) is True
        assert await fence.check(new) is True
        assert await fence.check(old) is False

    def test_abstract(self) -> None:
        with pytest.raises(TypeError):
            FencedResource()
