"""Lease-based leader elector.

## Algorithm

One elector runs per process as a single asyncio task. Each cycle reads the
lease, decides whether this replica may hold it, and writes it back with
compare-and-swap against the version it read:

    ACQUIRING --(CAS ok)--> LEADING <--(CAS ok)-- RENEWING
        ^                      |                     |
        |                      +--(every retry P)----+
        |                                            |
        +------ LOST <--(conflict / taken / deadline R missed)

A replica may write if the lease is absent, unheld, already its own, or has
not been renewed for lease_duration. The store decides every race: the elector
never picks a winner locally. A replica that finds the lease held elsewhere
waits in IDLE until its next attempt. Every write made while not leading
starts a new tenure and bumps lease_transitions, even on our own lease.

## Deadline policy

The renewal deadline is armed at the start of each successful attempt, so it
never runs past the renew_time other replicas see. A renewal still in flight
when the deadline passes is cancelled and counts as failed. Other replicas may
take over lease_duration after renew_time, so lease_duration - renew_deadline
is the margin left for clock drift.

## Stop

stop() wakes every sleep. A leader first delivers lost-leadership (the app
stops acting as leader) and then makes one bounded attempt to write an empty
holder so the next replica does not wait for expiry.
"""

import asyncio
import logging
import random

from leasekeeper.app.config import ElectionConfig
from leasekeeper.app.metrics import (
    ELECTION_IS_LEADER,
    ELECTION_RENEW_DURATION,
    ELECTION_TRANSITIONS_TOTAL,
    STORE_ERRORS_TOTAL,
)
from leasekeeper.control.dispatcher import CallbackDispatcher
from leasekeeper.core.clock import Clock, Timer, sleep_or_stop
from leasekeeper.core.domain import (
    AttemptOutcome,
    ElectionState,
    FencingToken,
    Lease,
    LeaseKey,
    LeaseRecord,
)
from leasekeeper.core.errors import (
    ConflictError,
    LeaseNotFoundError,
    StoreUnavailableError,
)
from leasekeeper.core.interfaces.lease_store import LeaseStore
from leasekeeper.core.logging_schema import ErrorClass, LogEvent

logger = logging.getLogger(__name__)

_LEADING_STATES = frozenset({ElectionState.LEADING, ElectionState.RENEWING})

_LOSS_REASONS = {
    AttemptOutcome.CONFLICT: "lease updated by another replica",
    AttemptOutcome.NOT_ELIGIBLE: "lease held by another replica",
    AttemptOutcome.RESET: "lease deleted externally",
    AttemptOutcome.UNAVAILABLE: "renew deadline exceeded",
}


class LeaderElector:
    """Drives acquisition, renewal and loss detection for one lease.

    Args:
        store: Lease store client.
        config: Election identity and timing (validated here).
        dispatcher: Receives transitions. A new empty one if omitted.
        clock: Time source.

    Raises:
        ConfigurationInvalidError: Timing or identity cannot run safely.
    """

    def __init__(
        self,
        store: LeaseStore,
        config: ElectionConfig,
        dispatcher: CallbackDispatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        config.check()

        self._store = store
        self._config = config
        self._dispatcher = dispatcher if dispatcher is not None else CallbackDispatcher()
        self._clock = clock if clock is not None else Clock()

        self._key = LeaseKey(namespace=config.namespace, name=config.lease_name)
        self._identity = config.identity
        self._lease_duration = config.lease_duration_seconds
        self._renew_deadline_s = config.renew_deadline_seconds
        self._retry_period = config.retry_period_seconds

        self._state = ElectionState.IDLE
        self._observed: LeaseRecord | None = None
        self._renew_deadline = Timer(self._clock)
        self._stop = asyncio.Event()
        self._running = False
        self._cancelled = False

    # ------------------------------------------------------------------
    # Query interface
    # ------------------------------------------------------------------

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def key(self) -> LeaseKey:
        return self._key

    @property
    def state(self) -> ElectionState:
        return self._state

    @property
    def dispatcher(self) -> CallbackDispatcher:
        return self._dispatcher

    @property
    def is_leader(self) -> bool:
        return self._state in _LEADING_STATES

    @property
    def observed_leader(self) -> str:
        """Holder identity from the most recent read ("" if none)."""
        if self._observed is None:
            return ""
        return self._observed.lease.holder_identity

    @property
    def fencing_token(self) -> FencingToken | None:
        """Token of the current tenure, None when not leading."""
        if not self.is_leader or self._observed is None:
            return None
        lease = self._observed.lease
        return FencingToken(
            holder_identity=lease.holder_identity,
            lease_transitions=lease.lease_transitions,
            version=self._observed.version,
        )

    def _log_extra(self, event: LogEvent, **fields: object) -> dict:
        return {"event": event, "lease": str(self._key), "identity": self._identity, **fields}

    def _set_state(self, state: ElectionState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        logger.debug(
            "Election state %s -> %s",
            previous,
            state,
            extra=self._log_extra(LogEvent.STATE_CHANGED, state=str(state)),
        )

    def _retry_interval(self) -> float:
        jitter = self._config.retry_jitter
        if not jitter:
            return self._retry_period
        return self._retry_period * (1.0 + random.uniform(-jitter, jitter))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the election until stop() is called or the task is cancelled."""
        if self._state is ElectionState.STOPPED:
            logger.info("Elector already stopped", extra=self._log_extra(LogEvent.APP_STOPPED))
            return
        if self._running:
            raise RuntimeError("Elector is already running")

        self._running = True
        logger.info(
            "Starting lease election (duration=%ss, renew_deadline=%ss, retry=%ss)",
            self._lease_duration,
            self._renew_deadline_s,
            self._retry_period,
            extra=self._log_extra(LogEvent.APP_STARTED),
        )

        try:
            while not self._stop.is_set():
                if not await self._acquire():
                    break
                await self._renew_loop()
        except asyncio.CancelledError:
            self._cancelled = True
            raise
        finally:
            try:
                await self._shutdown()
            finally:
                self._running = False

    def stop(self) -> None:
        """Request a stop. Idempotent; safe before run() and after it ends."""
        if self._state is ElectionState.STOPPED:
            return
        self._stop.set()
        if not self._running:
            self._set_state(ElectionState.STOPPED)

    async def _shutdown(self) -> None:
        if self.is_leader:
            await self._lose_leadership("stopped")
            if self._config.release_on_stop and not self._cancelled:
                await self._release()
        self._renew_deadline.clear()
        self._set_state(ElectionState.STOPPED)
        logger.info("Lease election stopped", extra=self._log_extra(LogEvent.APP_STOPPED))

    # ------------------------------------------------------------------
    # Acquire / renew
    # ------------------------------------------------------------------

    async def _acquire(self) -> bool:
        """Retry every retry period until leading. False if stopped first."""
        while not self._stop.is_set():
            self._set_state(ElectionState.ACQUIRING)
            outcome = await self._attempt(self._config.store_timeout)
            if outcome is AttemptOutcome.SUCCEEDED:
                await self._become_leader()
                return True
            if outcome is AttemptOutcome.CONFLICT:
                await self._refresh_observed()
            if outcome in (AttemptOutcome.CONFLICT, AttemptOutcome.NOT_ELIGIBLE):
                # Someone else holds the lease: wait for it to lapse
                self._set_state(ElectionState.IDLE)
            if await sleep_or_stop(self._stop, self._retry_interval()):
                break

        return False

    async def _renew_loop(self) -> None:
        """Renew every retry period. Returns on loss or stop."""
        while not self._stop.is_set():
            wait = min(self._retry_interval(), self._renew_deadline.remaining())
            if await sleep_or_stop(self._stop, wait):
                return

            if self._renew_deadline.expired:
                await self._lose_leadership(_LOSS_REASONS[AttemptOutcome.UNAVAILABLE])
                return

            self._set_state(ElectionState.RENEWING)
            timeout = min(self._config.store_timeout, self._renew_deadline.remaining())
            outcome = await self._attempt(timeout)

            if outcome is AttemptOutcome.SUCCEEDED:
                self._set_state(ElectionState.LEADING)
                continue
            if outcome is AttemptOutcome.UNAVAILABLE and not self._renew_deadline.expired:
                continue

            await self._lose_leadership(_LOSS_REASONS[outcome])
            if outcome is AttemptOutcome.CONFLICT:
                await self._refresh_observed()
            return

    async def _attempt(self, timeout: float) -> AttemptOutcome:
        """One bounded acquire-or-renew attempt, errors mapped to outcomes."""
        started = self._clock.monotonic()
        try:
            async with asyncio.timeout(timeout):
                outcome = await self._try_acquire_or_renew()
        except TimeoutError:
            STORE_ERRORS_TOTAL.labels(lease=str(self._key), kind="unavailable").inc()
            logger.warning(
                "Lease store call timed out after %.2fs",
                timeout,
                extra=self._log_extra(LogEvent.STORE_ERROR, error_class=ErrorClass.TIMEOUT),
            )
            return AttemptOutcome.UNAVAILABLE
        except StoreUnavailableError as e:
            STORE_ERRORS_TOTAL.labels(lease=str(self._key), kind="unavailable").inc()
            logger.warning(
                "Lease store unavailable: %s",
                e,
                extra=self._log_extra(LogEvent.STORE_ERROR, error_class=ErrorClass.TRANSIENT),
            )
            return AttemptOutcome.UNAVAILABLE
        except ConflictError as e:
            STORE_ERRORS_TOTAL.labels(lease=str(self._key), kind="conflict").inc()
            logger.info("Lease write lost a race: %s", e, extra=self._log_extra(LogEvent.LEASE_CONFLICT))
            return AttemptOutcome.CONFLICT
        except LeaseNotFoundError as e:
            STORE_ERRORS_TOTAL.labels(lease=str(self._key), kind="not_found").inc()
            logger.warning(
                "Lease deleted externally, starting over: %s",
                e,
                extra=self._log_extra(LogEvent.LEASE_RESET),
            )
            self._observed = None
            return AttemptOutcome.RESET
        except Exception as e:
            STORE_ERRORS_TOTAL.labels(lease=str(self._key), kind="unavailable").inc()
            logger.exception(
                "Unexpected lease store error: %s",
                e,
                extra=self._log_extra(LogEvent.STORE_ERROR, error_class=ErrorClass.PERMANENT),
            )
            return AttemptOutcome.UNAVAILABLE

        if outcome is AttemptOutcome.SUCCEEDED:
            # Measured from before the read, never later than the stored renew_time
            self._renew_deadline.reset(self._renew_deadline_s, since=started)
            ELECTION_RENEW_DURATION.labels(lease=str(self._key)).observe(
                self._clock.monotonic() - started
            )
        await self._notify_observed()
        return outcome

    async def _try_acquire_or_renew(self) -> AttemptOutcome:
        now = self._clock.now()
        record = await self._store.read(self._key)

        if record is None:
            lease = Lease(
                holder_identity=self._identity,
                lease_duration_seconds=self._lease_duration,
                acquire_time=now,
                renew_time=now,
            )
            version = await self._store.create_or_update(self._key, None, lease)
            self._observed = LeaseRecord(lease=lease, version=version)
            return AttemptOutcome.SUCCEEDED

        self._observed = record
        current = record.lease
        own = current.holder_identity == self._identity

        if not (own or not current.is_held or current.expired_at(now)):
            return AttemptOutcome.NOT_ELIGIBLE

        if own and self.is_leader:
            lease = current.model_copy(
                update={"renew_time": now, "lease_duration_seconds": self._lease_duration}
            )
        else:
            lease = Lease(
                holder_identity=self._identity,
                lease_duration_seconds=self._lease_duration,
                acquire_time=now,
                renew_time=now,
                lease_transitions=current.lease_transitions + 1,
            )

        version = await self._store.create_or_update(self._key, record.version, lease)
        self._observed = LeaseRecord(lease=lease, version=version)
        return AttemptOutcome.SUCCEEDED

    async def _refresh_observed(self) -> None:
        """Re-read after a conflict so observers see the actual winner."""
        try:
            async with asyncio.timeout(self._config.store_timeout):
                self._observed = await self._store.read(self._key)
        except (TimeoutError, StoreUnavailableError) as e:
            logger.debug("Re-read after conflict failed: %s", e)
            return
        await self._notify_observed()

    async def _notify_observed(self) -> None:
        holder = self.observed_leader
        if not holder:
            return
        if await self._dispatcher.observed_leader(holder):
            logger.info("Observed leader %s", holder, extra=self._log_extra(LogEvent.LEADER_OBSERVED, holder=holder))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _become_leader(self) -> None:
        self._set_state(ElectionState.LEADING)
        ELECTION_IS_LEADER.labels(lease=str(self._key)).set(1)
        ELECTION_TRANSITIONS_TOTAL.labels(lease=str(self._key), transition="acquired").inc()
        logger.info("Acquired leadership", extra=self._log_extra(LogEvent.LEADERSHIP_ACQUIRED))
        await self._dispatcher.became_leader()

    async def _lose_leadership(self, reason: str) -> None:
        self._set_state(ElectionState.LOST)
        self._renew_deadline.clear()
        ELECTION_IS_LEADER.labels(lease=str(self._key)).set(0)
        ELECTION_TRANSITIONS_TOTAL.labels(lease=str(self._key), transition="lost").inc()
        logger.warning(
            "Lost leadership (%s)",
            reason,
            extra=self._log_extra(LogEvent.LEADERSHIP_LOST, reason=reason),
        )
        await self._dispatcher.lost_leadership()

    async def _release(self) -> bool:
        """Best-effort write of an empty holder. Never raises."""
        record = self._observed
        if record is None or record.lease.holder_identity != self._identity:
            return False

        released = record.lease.model_copy(
            update={"holder_identity": "", "renew_time": self._clock.now()}
        )
        try:
            async with asyncio.timeout(self._config.release_timeout):
                version = await self._store.create_or_update(self._key, record.version, released)
        except Exception as e:
            logger.warning(
                "Lease release failed, other replicas will wait for expiry: %s",
                e,
                extra=self._log_extra(LogEvent.STORE_ERROR),
            )
            return False

        self._observed = LeaseRecord(lease=released, version=version)
        logger.info("Released leadership", extra=self._log_extra(LogEvent.LEADERSHIP_RELEASED))
        return True
