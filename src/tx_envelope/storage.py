"""
Storage abstractions for encrypted records.

This module provides:
- RecordStore: Abstract interface for record storage backends
- InMemoryRecordStore: In-memory implementation, safe for concurrent tasks

Stores only ever see EncryptedRecord values; they know nothing about keys.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .record import EncryptedRecord


class RecordStore(ABC):
    """
    Abstract storage interface for encrypted records.

    All methods are async to support both in-memory and database backends.
    """

    @abstractmethod
    async def save(self, record: EncryptedRecord) -> None:
        """Store a record, replacing any record with the same id."""
        ...

    @abstractmethod
    async def get(self, record_id: str) -> Optional[EncryptedRecord]:
        """Get a record by id, or None."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
        ...


class InMemoryRecordStore(RecordStore):
    """
    In-memory storage implementation.

    Uses asyncio.Lock for safe concurrent access.
    """

    def __init__(self) -> None:
        self._records: Dict[str, EncryptedRecord] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: EncryptedRecord) -> None:
        async with self._lock:
            self._records[record.id] = record

    async def get(self, record_id: str) -> Optional[EncryptedRecord]:
        async with self._lock:
            return self._records.get(record_id)

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)
