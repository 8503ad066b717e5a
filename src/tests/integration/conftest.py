"""Integration test fixtures.

Require live services; set POSTGRES_HOST / REDIS_HOST to run them, otherwise
the tests using these fixtures are skipped.
"""

import os
import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
import redis.asyncio as redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from leasekeeper.infra.postgresql import create_schema

POSTGRES_HOST = os.getenv("POSTGRES_HOST")
POSTGRES_SERVER = f"postgresql+asyncpg://leasekeeper:leasekeeper@{POSTGRES_HOST}:5432"

REDIS_HOST = os.getenv("REDIS_HOST")


@pytest.fixture(scope="function")
def test_db_name() -> str:
    """Unique test database name per test function."""
    return f"leasekeeper_test_{uuid.uuid4().hex[:8]}"


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(test_db_name: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create a temporary database with the leader_leases table.

    1. Connect to 'postgres' DB to create test DB
    2. Create engine for test DB and the schema
    3. Cleanup: Drop test database after the test
    """
    if not POSTGRES_HOST:
        pytest.skip("POSTGRES_HOST not set")

    admin_engine = create_async_engine(f"{POSTGRES_SERVER}/postgres", isolation_level="AUTOCOMMIT")
    async with admin_engine.connect() as conn:
        await conn.execute(text(f"CREATE DATABASE {test_db_name}"))
    await admin_engine.dispose()

    test_engine = create_async_engine(f"{POSTGRES_SERVER}/{test_db_name}", echo=False)
    await create_schema(test_engine)

    yield test_engine

    await test_engine.dispose()
    admin_engine = create_async_engine(f"{POSTGRES_SERVER}/postgres", isolation_level="AUTOCOMMIT")
    async with admin_engine.connect() as conn:
        # Terminate existing connections
        await conn.execute(text(f"""
            SELECT pg_terminate_backend(pid)
            FROM pg_stat_activity
            WHERE datname = '{test_db_name}' AND pid <> pg_backend_pid()
        """))
        await conn.execute(text(f"DROP DATABASE IF EXISTS {test_db_name}"))
    await admin_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    """Redis client; the test's keys live under a unique prefix."""
    if not REDIS_HOST:
        pytest.skip("REDIS_HOST not set")

    client = redis.from_url(f"redis://{REDIS_HOST}:6379", decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def redis_prefix(redis_client: redis.Redis) -> AsyncGenerator[str, None]:
    prefix = f"leasekeeper-test:{uuid.uuid4().hex[:8]}"
    yield prefix
    async for key in redis_client.scan_iter(match=f"{prefix}:*"):
        await redis_client.delete(key)
