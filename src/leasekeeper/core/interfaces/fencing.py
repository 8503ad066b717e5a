"""Fencing interface for resources protected by leadership."""

from abc import ABC, abstractmethod

from leasekeeper.core.domain import FencingToken


class FencedResource(ABC):
    """Resource that rejects writes from a leader whose lease has moved on.

    The elector only bounds the time until another replica may take over.
    A leader paused past its lease still believes it leads, so side effects
    must be checked by the resource itself: remember the highest
    lease_transitions seen and reject tokens below it.
    """

    @abstractmethod
    async def check(self, token: FencingToken) -> bool:
        """Return True if a write carrying this token may proceed."""
        ...
