"""
Transaction service: envelope encryption plus a record store.

This module provides:
- TxSecureService: encrypt-and-store, fetch, and decrypt-by-id
- DecryptedTransaction: result of decrypt_record
- status_for / error_body: map error kinds to transport outcomes

The service owns a master key injected at construction time; it never
reads configuration on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Union

from .config import Settings
from .crypto import SecureKey, constant_time_equals
from .envelope import decrypt, encrypt
from .errors import (
    ConfigError,
    CryptoError,
    DecryptionError,
    EncryptionError,
    RecordNotFoundError,
    StorageError,
    TamperedDataError,
    ValidationError,
)
from .record import EncryptedRecord, format_timestamp
from .storage import InMemoryRecordStore, RecordStore
from .validate import validate_record

logger = logging.getLogger(__name__)


@dataclass
class DecryptedTransaction:
    """Result of decrypt_record."""

    record_id: str
    party_id: str
    payload: Any
    decrypted_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "partyId": self.party_id,
            "payload": self.payload,
            "decryptedAt": format_timestamp(self.decrypted_at),
        }


class TxSecureService:
    """
    Encrypted transaction service.

    Encrypts payloads for a party, persists the records, and decrypts them
    again by id.
    """

    def __init__(
        self,
        store: RecordStore,
        master_key: Union[bytes, bytearray, SecureKey],
        key_version: int = 1,
    ) -> None:
        """
        Initialize service.

        Args:
            store: RecordStore backend
            master_key: 32-byte master key
            key_version: Version stamped on newly encrypted records
        """
        self._store = store
        self._master_key = master_key
        self._key_version = key_version

    @classmethod
    def from_settings(
        cls, settings: Settings, store: RecordStore | None = None
    ) -> TxSecureService:
        """
        Create a service from resolved settings.

        Args:
            settings: Settings from config.load_settings
            store: Optional store (in-memory when omitted)

        Returns:
            TxSecureService instance
        """
        return cls(
            store=store if store is not None else InMemoryRecordStore(),
            master_key=settings.master_key,
            key_version=settings.master_key_version,
        )

    @property
    def key_version(self) -> int:
        return self._key_version

    async def encrypt_and_store(self, party_id: str, payload: Dict[str, Any]) -> EncryptedRecord:
        """
        Encrypt a payload for a party and store the record.

        Args:
            party_id: Non-empty party identifier
            payload: JSON object to encrypt

        Returns:
            The stored EncryptedRecord

        Raises:
            ValidationError: If party_id is empty or payload is not an object
            EncryptionError: If encryption fails
        """
        if not isinstance(party_id, str) or not party_id:
            raise ValidationError("partyId must be a non-empty string")
        if not isinstance(payload, dict):
            raise ValidationError(
                f"payload must be a JSON object, got {type(payload).__name__}"
            )

        record = encrypt(self._master_key, party_id, payload, self._key_version)
        validate_record(record)
        await self._store.save(record)

        logger.info("Stored record %s for party %s", record.id, party_id)
        return record

    async def get_record(self, record_id: str) -> EncryptedRecord:
        """
        Fetch a stored record without decrypting it.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        record = await self._store.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    async def decrypt_record(self, record_id: str) -> DecryptedTransaction:
        """
        Decrypt a stored record.

        Raises:
            RecordNotFoundError: If no record has this id
            ValidationError: If the stored record is malformed
            TamperedDataError: If a tag does not verify
            DecryptionError: For other decryption failures
        """
        record = await self.get_record(record_id)
        validate_record(record)
        payload = decrypt(self._master_key, record)
        return DecryptedTransaction(
            record_id=record.id,
            party_id=record.party_id,
            payload=payload,
            decrypted_at=datetime.now(timezone.utc),
        )

    async def verify_record(self, record: EncryptedRecord) -> bool:
        """
        Check that a caller-held record matches the stored copy.

        Tags are compared in constant time; no decryption is performed.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        stored = await self.get_record(record.id)
        payload_match = constant_time_equals(stored.payload_tag, record.payload_tag)
        dek_match = constant_time_equals(stored.dek_wrap_tag, record.dek_wrap_tag)
        return payload_match and dek_match

    async def record_count(self) -> int:
        return await self._store.count()


def status_for(error: BaseException) -> int:
    """
    Response status class for an error kind.

    Malformed input and crypto failures are the caller's problem (400),
    unknown ids are 404, everything else is a server fault (500).
    """
    if isinstance(error, CryptoError):
        return 400
    if isinstance(error, RecordNotFoundError):
        return 404
    return 500


def error_body(error: BaseException) -> Dict[str, Any]:
    """Caller-visible error body; 500s never echo internal messages."""
    if isinstance(error, TamperedDataError):
        message = f"Tampered data detected: {error}"
    elif isinstance(error, ValidationError):
        message = f"Validation failed: {error}"
    elif isinstance(error, DecryptionError):
        message = f"Decryption failed: {error}"
    elif isinstance(error, (EncryptionError, RecordNotFoundError)):
        message = str(error)
    elif isinstance(error, ConfigError):
        message = "Server misconfiguration"
    elif isinstance(error, StorageError):
        message = "Storage unavailable"
    else:
        message = "Internal server error"
    return {"success": False, "error": message}
