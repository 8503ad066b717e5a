"""Domain models and enums."""

from leasekeeper.core.domain.election import (
    AttemptOutcome,
    ElectionState,
    FencingToken,
    Lease,
    LeaseKey,
    LeaseRecord,
)

__all__ = [
    "AttemptOutcome",
    "ElectionState",
    "FencingToken",
    "Lease",
    "LeaseKey",
    "LeaseRecord",
]
