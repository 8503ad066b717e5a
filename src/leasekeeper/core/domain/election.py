"""Election domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ElectionState(StrEnum):
    """In-process election state of one replica."""

    IDLE = "IDLE"
    ACQUIRING = "ACQUIRING"
    LEADING = "LEADING"
    RENEWING = "RENEWING"
    LOST = "LOST"
    STOPPED = "STOPPED"


class AttemptOutcome(StrEnum):
    """Result of one acquire-or-renew attempt."""

    SUCCEEDED = "succeeded"
    CONFLICT = "conflict"
    NOT_ELIGIBLE = "not_eligible"
    RESET = "reset"  # lease deleted externally
    UNAVAILABLE = "unavailable"


class LeaseKey(BaseModel):
    """Scoped identifier of a lease record."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Lease(BaseModel):
    """Durable lease record as stored externally.

    holder_identity is "" when the lease is unheld (never acquired or released).
    Timestamps are timezone-aware UTC.
    """

    model_config = ConfigDict(frozen=True)

    holder_identity: str = ""
    lease_duration_seconds: float
    acquire_time: datetime | None = None
    renew_time: datetime | None = None
    lease_transitions: int = 0

    @property
    def is_held(self) -> bool:
        return bool(self.holder_identity)

    def expired_at(self, now: datetime) -> bool:
        """True if the holder has not renewed within lease_duration_seconds."""
        if self.renew_time is None:
            return True
        return (now - self.renew_time).total_seconds() > self.lease_duration_seconds


class LeaseRecord(BaseModel):
    """Lease together with the store's optimistic-concurrency version."""

    model_config = ConfigDict(frozen=True)

    lease: Lease
    version: str


class FencingToken(BaseModel):
    """Token a protected resource can compare to reject a stale leader.

    Ordered by lease_transitions: a newer tenure always has a larger value.
    """

    model_config = ConfigDict(frozen=True)

    holder_identity: str
    lease_transitions: int
    version: str
