"""Error handling module for leasekeeper.

Error taxonomy for lease election:

- StoreUnavailableError: transient backend fault. Retried every retry period,
  never fatal.
- ConflictError: another writer updated the lease first. The caller re-reads;
  never surfaced to application code.
- LeaseNotFoundError: the lease was deleted while we held a version of it.
  The elector resets to ACQUIRING.
- ConfigurationInvalidError: fatal at startup, the elector refuses to start.

Usage:
    from leasekeeper.core.errors import ConflictError

    raise ConflictError("default/leader-example", expected_version="3")
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes."""

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    CONFLICT = "CONFLICT"
    LEASE_NOT_FOUND = "LEASE_NOT_FOUND"
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"


class LeaseKeeperError(Exception):
    """Base exception for leasekeeper.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class StoreUnavailableError(LeaseKeeperError):
    """Lease store could not be reached or timed out."""

    def __init__(self, message: str = "Lease store unavailable") -> None:
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message)


class ConflictError(LeaseKeeperError):
    """Compare-and-swap rejected: the stored version no longer matches."""

    def __init__(self, key: str, expected_version: str | None = None) -> None:
        self.key = key
        self.expected_version = expected_version
        if expected_version is None:
            message = f"Lease {key} already exists"
        else:
            message = f"Lease {key} changed since version {expected_version}"
        super().__init__(ErrorCode.CONFLICT, message)


class LeaseNotFoundError(LeaseKeeperError):
    """Update targeted a lease that no longer exists."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(ErrorCode.LEASE_NOT_FOUND, f"Lease {key} not found")


class ConfigurationInvalidError(LeaseKeeperError):
    """Election configuration cannot be run safely."""

    def __init__(self, message: str = "Invalid election configuration") -> None:
        super().__init__(ErrorCode.CONFIGURATION_INVALID, message)
