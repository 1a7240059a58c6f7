"""
tx-envelope: Envelope Encryption for Transaction Records

Encrypts JSON payloads with a fresh per-record AES-256-GCM data key (DEK)
and wraps that DEK with a caller-supplied, versioned master key.

Quick Start
-----------
```python
from tx_envelope import decrypt, encrypt, generate_master_key, validate_record

master_key = generate_master_key()

record = encrypt(master_key, "party-a", {"amount": 100, "currency": "AED"})
wire = record.to_dict()          # hex-encoded, safe for JSON or SQL

validate_record(wire)            # structural check before decryption
payload = decrypt(master_key, wire)
```

Key Features
------------
- **AES-256-GCM**: Authenticated encryption for payload and DEK wrap
- **Per-Record DEKs**: A leaked DEK exposes one record only
- **Key Versions**: Records carry the master key version that wrapped them
- **Tamper Detection**: Tag failures raise TamperedDataError
- **Memory Hygiene**: DEK buffers are zeroed on every exit path (best-effort:
  copies held inside AESGCM cannot be reached from Python)

Modules
-------
- `crypto`: AES-256-GCM primitives, key generation, constant-time compare
- `record`: EncryptedRecord and its hex wire format
- `validate`: Structural record validation
- `envelope`: encrypt / decrypt
- `errors`: Error types and exception classes
- `config`: Environment configuration
- `storage`: Record store interface and in-memory store
- `postgres`: PostgreSQL record store
- `service`: Transaction service and error-to-status mapping
"""

__version__ = "0.1.0"

# =============================================================================
# Crypto Exports
# =============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    ALGORITHM,
    NONCE_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    SecureKey,
    constant_time_equals,
    generate_dek,
    generate_master_key,
    generate_random_bytes,
)

# =============================================================================
# Error Exports
# =============================================================================

from .errors import (
    ConfigError,
    CryptoError,
    DecryptionError,
    EncryptionError,
    EnvelopeError,
    RecordNotFoundError,
    StorageError,
    TamperedDataError,
    ValidationError,
)

# =============================================================================
# Envelope Exports (Primary API)
# =============================================================================

from .record import EncryptedRecord
from .validate import validate_record
from .envelope import decrypt, encrypt

# =============================================================================
# Service, Storage and Config Exports
# =============================================================================

from .config import Settings, load_settings
from .storage import InMemoryRecordStore, RecordStore
from .postgres import PostgresRecordStore
from .service import DecryptedTransaction, TxSecureService, error_body, status_for

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "ALGORITHM",
    "NONCE_SIZE",
    "TAG_SIZE",
    "AesGcmCipher",
    "EncryptedData",
    "SecureKey",
    "constant_time_equals",
    "generate_dek",
    "generate_master_key",
    "generate_random_bytes",
    # Errors
    "EnvelopeError",
    "CryptoError",
    "EncryptionError",
    "ValidationError",
    "DecryptionError",
    "TamperedDataError",
    "RecordNotFoundError",
    "StorageError",
    "ConfigError",
    # Envelope (Primary API)
    "EncryptedRecord",
    "validate_record",
    "encrypt",
    "decrypt",
    # Service, storage, config
    "Settings",
    "load_settings",
    "RecordStore",
    "InMemoryRecordStore",
    "PostgresRecordStore",
    "TxSecureService",
    "DecryptedTransaction",
    "status_for",
    "error_body",
]
