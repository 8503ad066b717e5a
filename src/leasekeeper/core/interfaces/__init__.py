"""Core interfaces for lease election."""

from leasekeeper.core.interfaces.callbacks import LeaderCallbacks
from leasekeeper.core.interfaces.fencing import FencedResource
from leasekeeper.core.interfaces.lease_store import LeaseStore

__all__ = [
    "FencedResource",
    "LeaderCallbacks",
    "LeaseStore",
]
