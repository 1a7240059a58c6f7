"""
Exception classes for envelope encryption of transaction records.

Every failure raised by this package derives from EnvelopeError. The four
cryptographic failure kinds share the CryptoError base so a transport layer
can catch them broadly or one kind at a time.
"""

from __future__ import annotations


class EnvelopeError(Exception):
    """Base exception for everything raised by tx_envelope."""

    pass


class CryptoError(EnvelopeError):
    """Cryptographic operation failed (encryption, validation, decryption)."""

    pass


class EncryptionError(CryptoError):
    """Malformed master key or a payload that cannot be serialized."""

    pass


class ValidationError(CryptoError):
    """Encrypted record failed a structural check (length, encoding, algorithm)."""

    pass


class DecryptionError(CryptoError):
    """Decryption failed for a reason other than tag verification."""

    pass


class TamperedDataError(CryptoError):
    """
    Authentication tag did not verify.

    Raised for modified ciphertext, modified tags and for a wrong master key;
    the two cases cannot be told apart without outside context.
    """

    def __init__(
        self, message: str = "Data integrity check failed, possible tampering detected"
    ) -> None:
        super().__init__(message)


class RecordNotFoundError(EnvelopeError):
    """Record not found in storage."""

    pass


class StorageError(EnvelopeError):
    """Storage backend error (database, in-memory, etc.)."""

    pass


class ConfigError(EnvelopeError):
    """Configuration error."""

    pass
