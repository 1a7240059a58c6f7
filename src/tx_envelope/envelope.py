"""
Envelope encryption of JSON payloads.

Key hierarchy:
- Master Key (caller-owned, versioned) -> wraps the DEK
- DEK (one per record, never persisted in plaintext) -> encrypts the payload

Crypto flow for encrypt:
1. Generate a fresh 32-byte DEK
2. Serialize the payload to canonical UTF-8 JSON
3. Encrypt the payload with the DEK under a fresh nonce
4. Encrypt the DEK with the master key under a second fresh nonce
5. Assemble the record; zero the DEK on the way out

Decrypt reverses the steps: unwrap the DEK, decrypt the payload, parse the
JSON, zero the DEK. Tag failures in either stage raise TamperedDataError.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Union
from uuid import uuid4

from .crypto import (
    AES_256_KEY_SIZE,
    ALGORITHM,
    NONCE_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    SecureKey,
    generate_dek,
)
from .errors import (
    CryptoError,
    DecryptionError,
    EncryptionError,
    TamperedDataError,
)
from .record import EncryptedRecord

logger = logging.getLogger(__name__)

MasterKey = Union[bytes, bytearray, SecureKey]


def _load_master_key(master_key: Any, error: type[CryptoError]) -> SecureKey:
    """Copy the caller's key into a SecureKey that this call owns and zeroes."""
    if not isinstance(master_key, (bytes, bytearray, SecureKey)):
        raise error(f"Master key must be bytes, got {type(master_key).__name__}")
    if len(master_key) != AES_256_KEY_SIZE:
        raise error(
            f"Master key must be {AES_256_KEY_SIZE} bytes, got {len(master_key)} bytes"
        )
    if isinstance(master_key, SecureKey):
        return SecureKey(master_key.buffer)
    return SecureKey(master_key)


def canonical_json(payload: Any) -> bytes:
    """Compact UTF-8 JSON, key order preserved, NaN/Infinity rejected."""
    return json.dumps(
        payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    ).encode("utf-8")


def encrypt(
    master_key: MasterKey,
    party_id: str,
    payload: Any,
    key_version: int = 1,
) -> EncryptedRecord:
    """
    Encrypt a JSON-compatible payload using envelope encryption.

    Args:
        master_key: 32-byte master key (bytes, bytearray or SecureKey)
        party_id: Identifier of the party owning this transaction
        payload: JSON-serializable value to encrypt
        key_version: Master key version recorded on the record

    Returns:
        EncryptedRecord with both nonce/ciphertext/tag triples

    Raises:
        EncryptionError: If the key is malformed, the version is not a
            positive integer, or the payload cannot be serialized
    """
    if isinstance(key_version, bool) or not isinstance(key_version, int) or key_version < 1:
        raise EncryptionError(f"Key version must be a positive integer, got {key_version!r}")

    with _load_master_key(master_key, EncryptionError) as mk, generate_dek() as dek:
        try:
            plaintext = canonical_json(payload)
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Payload is not JSON-serializable: {e}") from None

        sealed_payload = AesGcmCipher.encrypt(dek, plaintext)
        sealed_dek = AesGcmCipher.encrypt(mk, dek.buffer)

        record = EncryptedRecord(
            id=str(uuid4()),
            party_id=party_id,
            created_at=datetime.now(timezone.utc),
            payload_nonce=sealed_payload.nonce,
            payload_ciphertext=sealed_payload.ciphertext,
            payload_tag=sealed_payload.tag,
            dek_wrap_nonce=sealed_dek.nonce,
            wrapped_dek=sealed_dek.ciphertext,
            dek_wrap_tag=sealed_dek.tag,
            algorithm=ALGORITHM,
            key_version=key_version,
        )

    logger.debug(
        "Encrypted record %s for party %s (key version %d)",
        record.id,
        party_id,
        key_version,
    )
    return record


def _check_scheme(record: EncryptedRecord) -> None:
    """Reject field lengths that cannot belong to AES-256-GCM."""
    for name, value, size in (
        ("dek_wrap_nonce", record.dek_wrap_nonce, NONCE_SIZE),
        ("payload_nonce", record.payload_nonce, NONCE_SIZE),
        ("dek_wrap_tag", record.dek_wrap_tag, TAG_SIZE),
        ("payload_tag", record.payload_tag, TAG_SIZE),
    ):
        if len(value) != size:
            raise DecryptionError(f"{name} must be {size} bytes, got {len(value)}")
    if not record.wrapped_dek or not record.payload_ciphertext:
        raise DecryptionError("Ciphertext fields must not be empty")
    if record.algorithm != ALGORITHM:
        raise DecryptionError(f'Unsupported algorithm "{record.algorithm}"')


def decrypt(
    master_key: MasterKey,
    record: Union[EncryptedRecord, Mapping[str, Any]],
) -> Any:
    """
    Decrypt a record back to the original payload.

    Callers should run validate_record first; a wire mapping passed here is
    parsed (and therefore validated) by EncryptedRecord.from_dict.

    Args:
        master_key: The 32-byte master key that wrapped this record's DEK
        record: EncryptedRecord or its wire mapping

    Returns:
        The payload exactly as given to encrypt

    Raises:
        DecryptionError: Malformed key or record, a record of the wrong type,
            or undecodable plaintext
        TamperedDataError: A tag failed to verify (tampering or wrong key)
        ValidationError: A wire mapping failed structural validation
    """
    if isinstance(record, Mapping):
        record = EncryptedRecord.from_dict(record)
    elif not isinstance(record, EncryptedRecord):
        raise DecryptionError(f"Not an encrypted record: {type(record).__name__}")

    with _load_master_key(master_key, DecryptionError) as mk:
        _check_scheme(record)

        # Stage 1: unwrap the DEK
        try:
            dek_bytes = AesGcmCipher.decrypt(
                mk,
                EncryptedData(
                    nonce=record.dek_wrap_nonce,
                    ciphertext=record.wrapped_dek,
                    tag=record.dek_wrap_tag,
                ),
            )
        except TamperedDataError:
            logger.warning("DEK unwrap failed tag verification for record %s", record.id)
            raise TamperedDataError(
                "DEK unwrap failed: the wrapped DEK or its tag may have been "
                "tampered with, or the wrong master key was used"
            ) from None
        except DecryptionError as e:
            raise DecryptionError(f"DEK unwrap failed: {e}") from None

    dek = SecureKey(dek_bytes)
    del dek_bytes

    with dek:
        if len(dek) != AES_256_KEY_SIZE:
            raise DecryptionError(
                f"DEK unwrap failed: expected {AES_256_KEY_SIZE}-byte key, got {len(dek)}"
            )

        # Stage 2: decrypt the payload with the recovered DEK
        try:
            plaintext = AesGcmCipher.decrypt(
                dek,
                EncryptedData(
                    nonce=record.payload_nonce,
                    ciphertext=record.payload_ciphertext,
                    tag=record.payload_tag,
                ),
            )
        except TamperedDataError:
            logger.warning("Payload failed tag verification for record %s", record.id)
            raise TamperedDataError(
                "Payload decryption failed: the ciphertext or its tag may have been tampered with"
            ) from None
        except DecryptionError as e:
            raise DecryptionError(f"Payload decryption failed: {e}") from None

    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise DecryptionError(
            "Payload decryption failed: authenticated plaintext is not valid UTF-8 JSON"
        ) from None

    logger.debug("Decrypted record %s (key version %d)", record.id, record.key_version)
    return payload
