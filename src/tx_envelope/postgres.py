"""
PostgreSQL storage backend for encrypted records.

This module provides:
- PostgresRecordStore: asyncpg-backed RecordStore
- SCHEMA: DDL for the transactions table

Binary fields are stored in their hex wire form, exactly as transported,
and every row read back goes through EncryptedRecord.from_dict so stored
data is validated before it reaches the decryptor.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import asyncpg

from .errors import StorageError, ValidationError
from .record import EncryptedRecord, format_timestamp
from .storage import RecordStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id             TEXT PRIMARY KEY,
    party_id       TEXT NOT NULL,
    created_at     TIMESTAMPTZ NOT NULL,
    payload_nonce  TEXT NOT NULL,
    payload_ct     TEXT NOT NULL,
    payload_tag    TEXT NOT NULL,
    dek_wrap_nonce TEXT NOT NULL,
    dek_wrapped    TEXT NOT NULL,
    dek_wrap_tag   TEXT NOT NULL,
    alg            TEXT NOT NULL DEFAULT 'AES-256-GCM',
    mk_version     INTEGER NOT NULL DEFAULT 1
)
"""

_COLUMNS = (
    "id, party_id, created_at, payload_nonce, payload_ct, payload_tag, "
    "dek_wrap_nonce, dek_wrapped, dek_wrap_tag, alg, mk_version"
)


class PostgresRecordStore(RecordStore):
    """
    PostgreSQL storage backend for encrypted records.

    Rows are keyed by record id.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        """
        Initialize PostgreSQL storage.

        Args:
            pool: asyncpg connection pool
        """
        self._pool = pool

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool."""
        return self._pool

    async def ensure_schema(self) -> None:
        """Create the transactions table if it does not exist."""
        try:
            await self._pool.execute(SCHEMA)
        except Exception as e:
            raise StorageError(f"Failed to create schema: {e}")
        logger.info("transactions table ready")

    async def save(self, record: EncryptedRecord) -> None:
        """
        Store a record (upsert by id).

        Args:
            record: EncryptedRecord to store
        """
        wire = record.to_dict()
        query = f"""
            INSERT INTO transactions ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            ON CONFLICT (id) DO UPDATE SET
                party_id = EXCLUDED.party_id,
                created_at = EXCLUDED.created_at,
                payload_nonce = EXCLUDED.payload_nonce,
                payload_ct = EXCLUDED.payload_ct,
                payload_tag = EXCLUDED.payload_tag,
                dek_wrap_nonce = EXCLUDED.dek_wrap_nonce,
                dek_wrapped = EXCLUDED.dek_wrapped,
                dek_wrap_tag = EXCLUDED.dek_wrap_tag,
                alg = EXCLUDED.alg,
                mk_version = EXCLUDED.mk_version
        """
        try:
            await self._pool.execute(
                query,
                record.id,
                record.party_id,
                record.created_at,
                wire["payload_nonce"],
                wire["payload_ct"],
                wire["payload_tag"],
                wire["dek_wrap_nonce"],
                wire["dek_wrapped"],
                wire["dek_wrap_tag"],
                record.algorithm,
                record.key_version,
            )
        except Exception as e:
            raise StorageError(f"Failed to store record {record.id}: {e}")

    async def get(self, record_id: str) -> Optional[EncryptedRecord]:
        """
        Get a record by id.

        Returns:
            EncryptedRecord if found, None otherwise

        Raises:
            StorageError: On database failure or a corrupt stored row
        """
        query = f"SELECT {_COLUMNS} FROM transactions WHERE id = $1"
        try:
            row = await self._pool.fetchrow(query, record_id)
        except Exception as e:
            raise StorageError(f"Failed to get record: {e}")
        if row is None:
            return None
        try:
            return EncryptedRecord.from_dict(self._row_to_wire(row))
        except ValidationError as e:
            raise StorageError(f"Stored record {record_id} is corrupt: {e}")

    async def count(self) -> int:
        """Number of stored records."""
        try:
            value = await self._pool.fetchval("SELECT count(*) FROM transactions")
        except Exception as e:
            raise StorageError(f"Failed to count records: {e}")
        return int(value or 0)

    @staticmethod
    def _row_to_wire(row: asyncpg.Record) -> Dict[str, Any]:
        """Convert database row to the record wire form."""
        return {
            "id": row["id"],
            "partyId": row["party_id"],
            "createdAt": format_timestamp(row["created_at"]),
            "payload_nonce": row["payload_nonce"],
            "payload_ct": row["payload_ct"],
            "payload_tag": row["payload_tag"],
            "dek_wrap_nonce": row["dek_wrap_nonce"],
            "dek_wrapped": row["dek_wrapped"],
            "dek_wrap_tag": row["dek_wrap_tag"],
            "alg": row["alg"],
            "mk_version": row["mk_version"],
        }
