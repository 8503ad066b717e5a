"""Prometheus metrics for lease election."""

from leasekeeper.app.metrics.collector import (
    CALLBACK_ERRORS_TOTAL,
    ELECTION_IS_LEADER,
    ELECTION_RENEW_DURATION,
    ELECTION_TRANSITIONS_TOTAL,
    STORE_ERRORS_TOTAL,
)

__all__ = [
    "CALLBACK_ERRORS_TOTAL",
    "ELECTION_IS_LEADER",
    "ELECTION_RENEW_DURATION",
    "ELECTION_TRANSITIONS_TOTAL",
    "STORE_ERRORS_TOTAL",
]
