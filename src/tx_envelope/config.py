"""
Environment configuration for services built on tx_envelope.

The cryptographic core never reads the environment. load_settings turns
MASTER_KEY_HEX (and friends) into an explicit Settings value that callers
pass to the service or to encrypt/decrypt directly.

Variables:
- MASTER_KEY_HEX: 64 hex characters (32 bytes), required
- MASTER_KEY_VERSION: positive integer, default 1
- DATABASE_URL: PostgreSQL DSN, optional (in-memory storage when unset)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .crypto import AES_256_KEY_SIZE, SecureKey
from .errors import ConfigError, CryptoError

MASTER_KEY_ENV_VAR = "MASTER_KEY_HEX"
MASTER_KEY_VERSION_ENV_VAR = "MASTER_KEY_VERSION"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


@dataclass(frozen=True)
class Settings:
    """Resolved configuration."""

    master_key: SecureKey
    master_key_version: int = 1
    database_url: Optional[str] = None


def parse_master_key(value: Optional[str]) -> SecureKey:
    """
    Parse a hex-encoded master key.

    Raises:
        ConfigError: If the value is missing, not hex, or not 32 bytes
    """
    if not value:
        raise ConfigError(f"Server misconfiguration: {MASTER_KEY_ENV_VAR} not set")

    try:
        key = SecureKey.from_hex(value.strip())
    except CryptoError:
        raise ConfigError(f"{MASTER_KEY_ENV_VAR} must be hex-encoded") from None

    if len(key) != AES_256_KEY_SIZE:
        raise ConfigError(
            f"{MASTER_KEY_ENV_VAR} must be {AES_256_KEY_SIZE} bytes "
            f"({AES_256_KEY_SIZE * 2} hex chars), got {len(key)} bytes"
        )
    return key


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Union[str, Path]] = None,
) -> Settings:
    """
    Load settings from a mapping or from the process environment.

    When env is None, a .env file (dotenv_path, or the nearest one found)
    is loaded first without overriding variables already set.

    Args:
        env: Explicit variables to read instead of os.environ
        dotenv_path: Optional path to a .env file

    Returns:
        Settings instance

    Raises:
        ConfigError: If a variable is missing or malformed
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    raw_version = env.get(MASTER_KEY_VERSION_ENV_VAR, "1")
    try:
        version = int(raw_version)
    except ValueError:
        raise ConfigError(
            f"{MASTER_KEY_VERSION_ENV_VAR} must be an integer, got {raw_version!r}"
        ) from None
    if version < 1:
        raise ConfigError(f"{MASTER_KEY_VERSION_ENV_VAR} must be positive, got {version}")

    return Settings(
        master_key=parse_master_key(env.get(MASTER_KEY_ENV_VAR)),
        master_key_version=version,
        database_url=env.get(DATABASE_URL_ENV_VAR) or None,
    )
