"""Prometheus metrics definitions for lease election."""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Histogram Buckets
# =============================================================================
# FAST: store round-trips (1ms ~ 10s, log scale, ratio ≈ 2.15)
_BUCKETS_FAST = (
    0.001, 0.002, 0.005, 0.01, 0.02,
    0.05, 0.1, 0.2, 0.5, 1,
    2, 5, 10,
)  # 13 buckets

# =============================================================================
# Leadership Metrics
# =============================================================================
# lease label = "namespace/name" (bounded: one per configured election)

ELECTION_IS_LEADER = Gauge(
    "leasekeeper_is_leader",
    "1 if this replica currently holds the lease, 0 otherwise",
    ["lease"],
)

ELECTION_TRANSITIONS_TOTAL = Counter(
    "leasekeeper_leadership_transitions_total",
    "Leadership transitions of this replica",
    ["lease", "transition"],  # acquired, lost
)

ELECTION_RENEW_DURATION = Histogram(
    "leasekeeper_renew_duration_seconds",
    "Duration of successful acquire-or-renew attempts",
    ["lease"],
    buckets=_BUCKETS_FAST,
)

# =============================================================================
# Error Metrics
# =============================================================================

STORE_ERRORS_TOTAL = Counter(
    "leasekeeper_store_errors_total",
    "Lease store call failures",
    ["lease", "kind"],  # unavailable, conflict, not_found
)

CALLBACK_ERRORS_TOTAL = Counter(
    "leasekeeper_callback_errors_total",
    "Leadership callbacks that raised",
    ["callback"],
)
