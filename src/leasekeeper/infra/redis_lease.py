"""Lease store backed by a Redis hash.

Key: {prefix}:{namespace}:{name} (one hash per lease)
Fields: holder_identity, lease_duration_seconds, acquire_time, renew_time,
        lease_transitions, version

Check-and-set runs as a Lua script, so the version comparison and the write
are a single atomic step on the server.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable
from datetime import datetime
from typing import TypeVar

import redis.asyncio as redis

from leasekeeper.core.domain import Lease, LeaseKey, LeaseRecord
from leasekeeper.core.errors import (
    ConflictError,
    LeaseKeeperError,
    LeaseNotFoundError,
    StoreUnavailableError,
)
from leasekeeper.core.interfaces.lease_store import LeaseStore
from leasekeeper.core.retryable import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns 1 on create, 0 if the hash already exists
_CREATE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV))
return 1
"""

# ARGV[1] = expected version, ARGV[2..] = field/value pairs
# Returns 1 on update, 0 on version mismatch, -1 if the hash is gone
_UPDATE_SCRIPT = """
local current = redis.call('HGET', KEYS[1], 'version')
if not current then
    return -1
end
if current ~= ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 2))
return 1
"""


def _decode(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _encode_time(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def _decode_time(value: str) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _lease_fields(lease: Lease, version: str) -> list[str]:
    fields = {
        "holder_identity": lease.holder_identity,
        "lease_duration_seconds": repr(lease.lease_duration_seconds),
        "acquire_time": _encode_time(lease.acquire_time),
        "renew_time": _encode_time(lease.renew_time),
        "lease_transitions": str(lease.lease_transitions),
        "version": version,
    }
    flat: list[str] = []
    for name, value in fields.items():
        flat.extend((name, value))
    return flat


class RedisLeaseStore(LeaseStore):
    """Lease store using redis.asyncio with Lua compare-and-swap."""

    DEFAULT_TIMEOUT: float = 5.0

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "leasekeeper:lease",
        timeout: float | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Redis client.
            key_prefix: Prefix of lease hash keys.
            timeout: Per-call timeout in seconds.
        """
        self._client = client
        self._key_prefix = key_prefix
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._create = client.register_script(_CREATE_SCRIPT)
        self._update = client.register_script(_UPDATE_SCRIPT)

    def _get_key(self, key: LeaseKey) -> str:
        return f"{self._key_prefix}:{key.namespace}:{key.name}"

    async def _run(self, op: str, key: LeaseKey, aw: Awaitable[T]) -> T:
        try:
            async with asyncio.timeout(self._timeout):
                return await aw
        except LeaseKeeperError:
            raise
        except TimeoutError as e:
            raise StoreUnavailableError(f"{op} {key} timed out after {self._timeout}s") from e
        except Exception as e:
            if is_retryable(e):
                raise StoreUnavailableError(f"{op} {key} failed: {e}") from e
            raise

    async def read(self, key: LeaseKey) -> LeaseRecord | None:
        raw = await self._run("read", key, self._client.hgetall(self._get_key(key)))
        if not raw:
            return None

        data = {_decode(k): _decode(v) for k, v in raw.items()}
        lease = Lease(
            holder_identity=data.get("holder_identity", ""),
            lease_duration_seconds=float(data["lease_duration_seconds"]),
            acquire_time=_decode_time(data.get("acquire_time", "")),
            renew_time=_decode_time(data.get("renew_time", "")),
            lease_transitions=int(data.get("lease_transitions", "0")),
        )
        return LeaseRecord(lease=lease, version=data["version"])

    async def create_or_update(
        self, key: LeaseKey, expected_version: str | None, lease: Lease
    ) -> str:
        version = uuid.uuid4().hex
        redis_key = self._get_key(key)
        fields = _lease_fields(lease, version)

        if expected_version is None:
            created = await self._run(
                "create", key, self._create(keys=[redis_key], args=fields)
            )
            if int(created) != 1:
                raise ConflictError(str(key))
            return version

        result = int(
            await self._run(
                "update", key, self._update(keys=[redis_key], args=[expected_version, *fields])
            )
        )
        if result == -1:
            raise LeaseNotFoundError(str(key))
        if result == 0:
            raise ConflictError(str(key), expected_version)
        return version

    async def delete(self, key: LeaseKey) -> bool:
        """Delete a lease hash. Returns True if it existed."""
        count = await self._run("delete", key, self._client.delete(self._get_key(key)))
        return count > 0

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis lease store closed")
