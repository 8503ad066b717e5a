"""Election control - elector state machine, dispatch and lifecycle."""

from leasekeeper.control.dispatcher import CallbackDispatcher
from leasekeeper.control.elector import LeaderElector
from leasekeeper.control.flag import LeadershipFlag
from leasekeeper.control.lifecycle import LeaderElectionController

__all__ = [
    "CallbackDispatcher",
    "LeaderElectionController",
    "LeaderElector",
    "LeadershipFlag",
]
