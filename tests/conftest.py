"""
Pytest configuration and fixtures for tx_envelope tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator

import asyncpg
import pytest
from dotenv import load_dotenv

from tx_envelope import (
    InMemoryRecordStore,
    PostgresRecordStore,
    TxSecureService,
    generate_master_key,
)


@pytest.fixture
def master_key() -> bytes:
    """A fresh random 32-byte master key."""
    return generate_master_key()


@pytest.fixture
def zero_key() -> bytes:
    """All-zero master key, for deterministic tests only."""
    return bytes(32)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    """Create an in-memory record store for testing."""
    return InMemoryRecordStore()


@pytest.fixture
def service(memory_store: InMemoryRecordStore, master_key: bytes) -> TxSecureService:
    """Transaction service over the in-memory store."""
    return TxSecureService(memory_store, master_key)


@pytest.fixture
async def pg_pool() -> AsyncGenerator[asyncpg.Pool, None]:
    """Create a PostgreSQL connection pool for testing."""
    # Load environment from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(env_path)

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set, skipping PostgreSQL tests")

    pool = await asyncpg.create_pool(database_url)
    if pool is None:
        pytest.skip("Failed to create PostgreSQL connection pool")

    await pool.execute("DROP TABLE IF EXISTS transactions")

    yield pool

    await pool.close()


@pytest.fixture
async def postgres_store(pg_pool: asyncpg.Pool) -> PostgresRecordStore:
    """Create a PostgreSQL record store with a fresh schema."""
    store = PostgresRecordStore(pg_pool)
    await store.ensure_schema()
    return store
