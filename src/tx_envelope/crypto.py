"""
Cryptographic primitives for AES-256-GCM envelope encryption.

This module provides:
- SecureKey: Mutable key buffer with deterministic zeroization
- EncryptedData: AEAD output split into nonce, ciphertext and tag
- AesGcmCipher: AES-256-GCM encryption/decryption operations
- Key generation and constant-time comparison helpers
"""

from __future__ import annotations

import hmac
import re
import secrets
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CryptoError, DecryptionError, EncryptionError, TamperedDataError

# Cryptographic constants
AES_256_KEY_SIZE: int = 32  # 256 bits
NONCE_SIZE: int = 12  # 96 bits (standard for AES-GCM)
TAG_SIZE: int = 16  # 128 bits (authentication tag)
ALGORITHM: str = "AES-256-GCM"

HEX_PATTERN = re.compile(r"[0-9a-fA-F]+")

BytesLike = Union[bytes, bytearray, memoryview]


class SecureKey:
    """
    Key wrapper that zeroes its buffer on request.

    Uses bytearray internally so the material can be overwritten in place.
    Use it as a context manager to zero the key when the block exits,
    whether it exits normally or by exception. __del__ zeroes as a fallback.

    Only this buffer is zeroed. AESGCM keeps its own copy of the key inside
    the cipher object, and AESGCM.decrypt returns immutable bytes; neither
    can be overwritten from Python and both are left to the garbage collector.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key_bytes: BytesLike) -> None:
        """
        Create a SecureKey from raw bytes.

        Args:
            key_bytes: Raw key material (should be 32 bytes for AES-256)
        """
        if not isinstance(key_bytes, (bytes, bytearray, memoryview)):
            raise CryptoError("Key must be bytes or bytearray")
        self._bytes = bytearray(key_bytes)

    @classmethod
    def generate(cls) -> SecureKey:
        """Generate a cryptographically secure random 32-byte key."""
        return cls(secrets.token_bytes(AES_256_KEY_SIZE))

    @classmethod
    def from_hex(cls, encoded: str) -> SecureKey:
        """
        Parse a key from hex text.

        Raises:
            CryptoError: If the text is not valid hex
        """
        if not isinstance(encoded, str) or not HEX_PATTERN.fullmatch(encoded) or len(encoded) % 2:
            raise CryptoError("Key must be an even-length hex string")
        return cls(bytes.fromhex(encoded))

    @property
    def buffer(self) -> bytearray:
        """The live key buffer. It is zeroed together with the key."""
        return self._bytes

    def as_bytes(self) -> bytes:
        """Return key as immutable bytes (a copy that cannot be zeroed)."""
        return bytes(self._bytes)

    def zeroize(self) -> None:
        """Overwrite the key material with zero bytes."""
        self._bytes[:] = bytes(len(self._bytes))

    @property
    def is_zeroed(self) -> bool:
        return not any(self._bytes)

    def __enter__(self) -> SecureKey:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.zeroize()

    def __len__(self) -> int:
        """Return key length in bytes."""
        return len(self._bytes)

    def __repr__(self) -> str:
        """Redacted representation to prevent accidental key disclosure."""
        return "SecureKey([REDACTED])"

    def __del__(self) -> None:
        """Zero memory on deletion (best-effort)."""
        if hasattr(self, "_bytes"):
            self.zeroize()


@dataclass(frozen=True)
class EncryptedData:
    """AES-GCM output with the authentication tag held apart from the ciphertext."""

    nonce: bytes  # 12 bytes
    ciphertext: bytes
    tag: bytes  # 16 bytes


class AesGcmCipher:
    """
    AES-256-GCM authenticated encryption.

    Provides static methods for encryption and decryption with optional
    Additional Authenticated Data (AAD) for binding.
    """

    @staticmethod
    def encrypt(
        key: SecureKey,
        plaintext: BytesLike,
        aad: Optional[bytes] = None,
    ) -> EncryptedData:
        """
        Encrypt plaintext with AES-256-GCM under a fresh random nonce.

        Args:
            key: 32-byte encryption key
            plaintext: Data to encrypt
            aad: Optional Additional Authenticated Data for binding

        Returns:
            EncryptedData with nonce, ciphertext and tag

        Raises:
            EncryptionError: If key size is invalid or encryption fails
        """
        if len(key) != AES_256_KEY_SIZE:
            raise EncryptionError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        nonce = secrets.token_bytes(NONCE_SIZE)

        try:
            sealed = AESGCM(key.buffer).encrypt(nonce, plaintext, aad)
        except Exception as e:
            raise EncryptionError(f"Encryption error: {type(e).__name__}") from None

        return EncryptedData(
            nonce=nonce,
            ciphertext=sealed[:-TAG_SIZE],
            tag=sealed[-TAG_SIZE:],
        )

    @staticmethod
    def decrypt(
        key: SecureKey,
        encrypted: EncryptedData,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Decrypt ciphertext with AES-256-GCM, verifying the tag.

        Args:
            key: 32-byte decryption key
            encrypted: EncryptedData with nonce, ciphertext and tag
            aad: Optional Additional Authenticated Data (must match encryption)

        Returns:
            Decrypted plaintext bytes

        Raises:
            DecryptionError: If key/nonce/tag size is invalid or decryption fails
            TamperedDataError: If the authentication tag does not verify
        """
        if len(key) != AES_256_KEY_SIZE:
            raise DecryptionError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        if len(encrypted.nonce) != NONCE_SIZE:
            raise DecryptionError(
                f"Invalid nonce size: expected {NONCE_SIZE}, got {len(encrypted.nonce)}"
            )

        if len(encrypted.tag) != TAG_SIZE:
            raise DecryptionError(
                f"Invalid tag size: expected {TAG_SIZE}, got {len(encrypted.tag)}"
            )

        try:
            return AESGCM(key.buffer).decrypt(
                encrypted.nonce, encrypted.ciphertext + encrypted.tag, aad
            )
        except InvalidTag:
            raise TamperedDataError() from None
        except Exception as e:
            # Generic error to prevent oracle attacks
            raise DecryptionError(f"Decryption failed: {type(e).__name__}") from None


def generate_random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of bytes to generate

    Returns:
        Random bytes of specified length
    """
    return secrets.token_bytes(length)


def generate_master_key() -> bytes:
    """
    Generate a 32-byte master key.

    The caller owns the result: store it in a secrets manager or the
    MASTER_KEY_HEX environment variable, never in source control.
    """
    return generate_random_bytes(AES_256_KEY_SIZE)


def generate_dek() -> SecureKey:
    """Generate a one-time data encryption key."""
    return SecureKey.generate()


def _comparable(value: Union[BytesLike, str]) -> bytes:
    if isinstance(value, str):
        if len(value) % 2 or (value and not HEX_PATTERN.fullmatch(value)):
            raise ValueError("not hex")
        return bytes.fromhex(value)
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError("expected bytes or hex text")
    return bytes(value)


def constant_time_equals(a: Union[BytesLike, str], b: Union[BytesLike, str]) -> bool:
    """
    Compare two tags without leaking the position of the first mismatch.

    Accepts raw bytes or hex text. Undecodable hex compares unequal.
    Buffers of different length return False straight away; the length
    is public and leaks nothing about the secret.
    """
    try:
        left = _comparable(a)
        right = _comparable(b)
    except (TypeError, ValueError):
        return False

    if len(left) != len(right):
        return False

    return hmac.compare_digest(left, right)
