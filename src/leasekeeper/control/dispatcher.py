"""Ordered delivery of leadership transitions to subscribers."""

import inspect
import logging

from leasekeeper.app.metrics import CALLBACK_ERRORS_TOTAL
from leasekeeper.core.interfaces.callbacks import LeaderCallbacks
from leasekeeper.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)


class CallbackDispatcher:
    """Delivers became/lost/observed events to subscribers in order.

    Guarantees for a single elector:
    - became and lost strictly alternate, starting with became
    - each transition is delivered at most once
    - subscribers are called in registration order, one at a time

    Delivery runs on the caller's loop. A subscriber that raises is logged and
    skipped; the remaining subscribers still receive the event.
    """

    def __init__(self, subscribers: list[LeaderCallbacks] | None = None) -> None:
        self._subscribers: list[LeaderCallbacks] = list(subscribers or [])
        self._leading = False
        self._last_observed: str | None = None

    @property
    def leading(self) -> bool:
        """True between a delivered became and the following lost."""
        return self._leading

    def subscribe(self, subscriber: LeaderCallbacks) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: LeaderCallbacks) -> None:
        self._subscribers.remove(subscriber)

    async def became_leader(self) -> bool:
        """Deliver on_became_leader. Returns False if already delivered."""
        if self._leading:
            logger.debug("Skipping duplicate became-leader event")
            return False
        self._leading = True
        for subscriber in list(self._subscribers):
            await self._invoke(subscriber, "on_became_leader")
        return True

    async def lost_leadership(self) -> bool:
        """Deliver on_lost_leadership. Returns False if not leading."""
        if not self._leading:
            logger.debug("Skipping lost-leadership event without tenure")
            return False
        self._leading = False
        for subscriber in list(self._subscribers):
            await self._invoke(subscriber, "on_lost_leadership")
        return True

    async def observed_leader(self, identity: str) -> bool:
        """Deliver on_observed_leader when the visible holder changes."""
        if identity == self._last_observed:
            return False
        self._last_observed = identity
        for subscriber in list(self._subscribers):
            await self._invoke(subscriber, "on_observed_leader", identity)
        return True

    async def _invoke(self, subscriber: LeaderCallbacks, name: str, *args: str) -> None:
        try:
            result = getattr(subscriber, name)(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            CALLBACK_ERRORS_TOTAL.labels(callback=name).inc()
            logger.exception(
                "Leadership callback failed: %s.%s: %s",
                type(subscriber).__name__,
                name,
                e,
                extra={"event": LogEvent.CALLBACK_FAILED, "callback": name},
            )
