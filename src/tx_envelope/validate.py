"""
Structural validation of encrypted transaction records.

Run validate_record before attempting decryption: malformed records then
fail with a descriptive ValidationError instead of an opaque AES-GCM error.

Validation rules:
- Nonces must be exactly 12 bytes (24 hex characters)
- Auth tags must be exactly 16 bytes (32 hex characters)
- Hex fields may contain only [0-9a-fA-F] and must have even length
- Ciphertext and wrapped DEK must not be empty
- Algorithm must be "AES-256-GCM"
- Key version must be a positive integer
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .crypto import ALGORITHM, HEX_PATTERN, NONCE_SIZE, TAG_SIZE
from .errors import ValidationError

# (wire key, attribute name, expected byte length or None for "non-empty")
_BINARY_FIELDS = (
    ("payload_nonce", "payload_nonce", NONCE_SIZE),
    ("dek_wrap_nonce", "dek_wrap_nonce", NONCE_SIZE),
    ("payload_tag", "payload_tag", TAG_SIZE),
    ("dek_wrap_tag", "dek_wrap_tag", TAG_SIZE),
    ("payload_ct", "payload_ciphertext", None),
    ("dek_wrapped", "wrapped_dek", None),
)


def _preview(value: str) -> str:
    return value[:20] + ("..." if len(value) > 20 else "")


def _check_hex(value: Any, field: str, expected_bytes: int | None) -> None:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a hex string, got {type(value).__name__}")

    if expected_bytes is None:
        if not value:
            raise ValidationError(f"{field} must not be empty")
        if len(value) % 2:
            raise ValidationError(
                f"{field} has odd-length hex string ({len(value)} chars), invalid hex encoding"
            )

    if not HEX_PATTERN.fullmatch(value):
        raise ValidationError(f'{field} contains invalid hex characters: "{_preview(value)}"')

    if expected_bytes is not None and len(value) != expected_bytes * 2:
        raise ValidationError(
            f"{field} must be exactly {expected_bytes} bytes ({expected_bytes * 2} hex chars), "
            f"got {len(value) / 2:g} bytes ({len(value)} hex chars)"
        )


def _check_bytes(value: Any, field: str, expected_bytes: int | None) -> None:
    if not isinstance(value, (bytes, bytearray)):
        raise ValidationError(f"{field} must be bytes, got {type(value).__name__}")
    if expected_bytes is None:
        if not value:
            raise ValidationError(f"{field} must not be empty")
    elif len(value) != expected_bytes:
        raise ValidationError(
            f"{field} must be exactly {expected_bytes} bytes, got {len(value)} bytes"
        )


def _check_metadata(algorithm: Any, key_version: Any) -> None:
    if algorithm != ALGORITHM:
        raise ValidationError(
            f'Unsupported algorithm "{algorithm}", only "{ALGORITHM}" is supported'
        )

    if isinstance(key_version, bool) or not isinstance(key_version, int) or key_version < 1:
        raise ValidationError(f"mk_version must be a positive integer, got {key_version!r}")


def validate_record(record: Any) -> None:
    """
    Validate an encrypted record for structural correctness.

    Accepts either the wire form (a mapping of hex strings, as stored or
    transported) or an EncryptedRecord holding raw bytes. Checks run in a
    fixed order and the first violation is raised.

    Args:
        record: Wire mapping or EncryptedRecord

    Raises:
        ValidationError: With a descriptive message if any field is invalid
    """
    if isinstance(record, Mapping):
        for wire_key, _, expected in _BINARY_FIELDS:
            if wire_key not in record:
                raise ValidationError(f"{wire_key} is missing")
            _check_hex(record[wire_key], wire_key, expected)
        _check_metadata(record.get("alg"), record.get("mk_version"))
        return

    try:
        for wire_key, attr, expected in _BINARY_FIELDS:
            _check_bytes(getattr(record, attr), wire_key, expected)
        _check_metadata(record.algorithm, record.key_version)
    except AttributeError as e:
        raise ValidationError(f"Not an encrypted record: {e}") from None
