"""Process-wide leadership flag."""

from leasekeeper.core.interfaces.callbacks import LeaderCallbacks


class LeadershipFlag(LeaderCallbacks):
    """Boolean set by became-leader and cleared by lost-leadership.

    Subscribe it to the dispatcher before application callbacks: it is then
    cleared before any other subscriber hears about the loss. Reads are a
    single attribute load, safe from any thread without locking; the only
    writer is the elector's loop.
    """

    def __init__(self) -> None:
        self._value = False

    def is_leader(self) -> bool:
        return self._value

    def __bool__(self) -> bool:
        return self._value

    def on_became_leader(self) -> None:
        self._value = True

    def on_lost_leadership(self) -> None:
        self._value = False
