"""
Encrypted transaction record and its hex wire format.

Layout:
    payload_ct     = AES-256-GCM(DEK, canonical JSON payload)
    payload_nonce  = random 12-byte nonce for the payload
    payload_tag    = 16-byte GCM tag for the payload
    dek_wrapped    = AES-256-GCM(MasterKey, DEK)
    dek_wrap_nonce = random 12-byte nonce for the DEK wrap
    dek_wrap_tag   = 16-byte GCM tag for the DEK wrap

Binary fields are raw bytes in memory and lowercase hex on the wire.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from .crypto import ALGORITHM
from .errors import ValidationError
from .validate import validate_record


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not isinstance(text, str):
        raise ValidationError(f"createdAt must be a string, got {type(text).__name__}")
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"createdAt is not an ISO 8601 timestamp: {text[:40]!r}") from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class EncryptedRecord:
    """
    One encrypted transaction.

    Created only by envelope.encrypt and read-only afterwards. Encrypting
    the payload again produces a new record with a new id.
    """

    id: str
    party_id: str
    created_at: datetime
    payload_nonce: bytes
    payload_ciphertext: bytes
    payload_tag: bytes
    dek_wrap_nonce: bytes
    wrapped_dek: bytes
    dek_wrap_tag: bytes
    algorithm: str = ALGORITHM
    key_version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Wire form: binary fields as lowercase hex."""
        return {
            "id": self.id,
            "partyId": self.party_id,
            "createdAt": format_timestamp(self.created_at),
            "payload_nonce": self.payload_nonce.hex(),
            "payload_ct": self.payload_ciphertext.hex(),
            "payload_tag": self.payload_tag.hex(),
            "dek_wrap_nonce": self.dek_wrap_nonce.hex(),
            "dek_wrapped": self.wrapped_dek.hex(),
            "dek_wrap_tag": self.dek_wrap_tag.hex(),
            "alg": self.algorithm,
            "mk_version": self.key_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EncryptedRecord:
        """
        Parse the wire form.

        Args:
            data: Mapping with the keys produced by to_dict

        Returns:
            EncryptedRecord instance

        Raises:
            ValidationError: If any field is missing or malformed
        """
        if not isinstance(data, Mapping):
            raise ValidationError(f"Record must be an object, got {type(data).__name__}")

        validate_record(data)

        for key in ("id", "partyId", "createdAt"):
            if not isinstance(data.get(key), str):
                raise ValidationError(f"{key} must be a string")

        return cls(
            id=data["id"],
            party_id=data["partyId"],
            created_at=parse_timestamp(data["createdAt"]),
            payload_nonce=bytes.fromhex(data["payload_nonce"]),
            payload_ciphertext=bytes.fromhex(data["payload_ct"]),
            payload_tag=bytes.fromhex(data["payload_tag"]),
            dek_wrap_nonce=bytes.fromhex(data["dek_wrap_nonce"]),
            wrapped_dek=bytes.fromhex(data["dek_wrapped"]),
            dek_wrap_tag=bytes.fromhex(data["dek_wrap_tag"]),
            algorithm=data["alg"],
            key_version=data["mk_version"],
        )

    def to_json(self) -> str:
        """Serialize record to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> EncryptedRecord:
        """Deserialize record from JSON string."""
        try:
            data = json.loads(json_str)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Record is not valid JSON: {e}") from None
        return cls.from_dict(data)
