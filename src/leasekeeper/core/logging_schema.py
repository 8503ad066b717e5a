"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (leasekeeper)
- identity: Holder identity of this replica
- event: Event type (leadership_acquired, lease_conflict, etc.)

Election fields (per log call via extra):
- lease: Lease key (namespace/name)
- holder: Holder identity seen in the store
- state: ElectionState after a transition
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Leadership events
    LEADERSHIP_ACQUIRED = "leadership_acquired"
    LEADERSHIP_LOST = "leadership_lost"
    LEADERSHIP_RELEASED = "leadership_released"
    LEADER_OBSERVED = "leader_observed"
    STATE_CHANGED = "state_changed"

    # Lease store events
    LEASE_CONFLICT = "lease_conflict"
    LEASE_RESET = "lease_reset"
    STORE_ERROR = "store_error"
    STORE_CONNECTED = "store_connected"

    # Callback events
    CALLBACK_FAILED = "callback_failed"

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"


class ErrorClass(StrEnum):
    """Error classification for structured error logging."""

    TRANSIENT = "transient"  # Retryable (network timeout, temp failure)
    PERMANENT = "permanent"  # Not retryable
    TIMEOUT = "timeout"  # Store call exceeded its timeout
