"""Lease store backends and connections (DB, Redis)."""

from leasekeeper.infra.memory_lease import InMemoryLeaseStore
from leasekeeper.infra.pg_lease import PostgresLeaseStore
from leasekeeper.infra.postgresql import create_schema, init_db
from leasekeeper.infra.redis import init_redis
from leasekeeper.infra.redis_lease import RedisLeaseStore

__all__ = [
    # Stores
    "InMemoryLeaseStore",
    "PostgresLeaseStore",
    "RedisLeaseStore",
    # DB
    "init_db",
    "create_schema",
    # Redis
    "init_redis",
]
