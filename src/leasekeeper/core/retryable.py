"""Retryable error classification for lease store drivers.

Classifies driver errors as retryable (transient) or non-retryable (permanent).
Store adapters translate retryable errors into StoreUnavailableError so the
elector can retry them on its own cadence.

Usage:
    from leasekeeper.core.retryable import is_retryable

    try:
        await conn.execute(stmt)
    except Exception as exc:
        if is_retryable(exc):
            raise StoreUnavailableError(str(exc)) from exc
        raise
"""

import asyncio

import redis.exceptions as redis_exc
from sqlalchemy import exc as sa_exc

from leasekeeper.core.errors import StoreUnavailableError

# =============================================================================
# SQLAlchemy error classification
# =============================================================================

SQLALCHEMY_RETRYABLE = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,  # pool checkout timeout
)


def is_sqlalchemy_retryable(exc: Exception) -> bool:
    """Check if SQLAlchemy exception is retryable."""
    if isinstance(exc, SQLALCHEMY_RETRYABLE):
        return True
    # DBAPIError wraps driver errors; connection_invalidated marks a dropped connection
    if isinstance(exc, sa_exc.DBAPIError):
        return bool(exc.connection_invalidated)
    return False


# =============================================================================
# Redis error classification
# =============================================================================

REDIS_RETRYABLE = (
    redis_exc.ConnectionError,
    redis_exc.TimeoutError,
    redis_exc.BusyLoadingError,
    redis_exc.TryAgainError,
)


def is_redis_retryable(exc: Exception) -> bool:
    """Check if redis exception is retryable."""
    return isinstance(exc, REDIS_RETRYABLE)


# =============================================================================
# Unified classification
# =============================================================================


def is_retryable(exc: Exception) -> bool:
    """Check if error is retryable (transient).

    Args:
        exc: Exception to classify

    Returns:
        True if error is transient and the store call can be retried
    """
    if isinstance(exc, StoreUnavailableError):
        return True

    # asyncio timeout is retryable
    if isinstance(exc, asyncio.TimeoutError):
        return True

    if is_sqlalchemy_retryable(exc):
        return True
    if is_redis_retryable(exc):
        return True

    # Socket-level failures (refused, reset, unreachable)
    if isinstance(exc, OSError):
        return True

    # Unknown errors - conservative: not retryable
    return False

