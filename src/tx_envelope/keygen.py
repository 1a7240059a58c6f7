"""
Master key generator CLI.

Usage:
    tx-envelope-keygen

Or run directly:
    python -m tx_envelope.keygen
"""

from __future__ import annotations

from tx_envelope.config import MASTER_KEY_ENV_VAR
from tx_envelope.crypto import generate_master_key


def main() -> None:
    """CLI entry point for tx-envelope-keygen command."""
    key = generate_master_key()
    print("\nGenerated Master Key (32 bytes, hex-encoded):\n")
    print(f"   {key.hex()}\n")
    print(f"   Copy this value and set it as your {MASTER_KEY_ENV_VAR} environment variable.")
    print("   Do NOT commit this key to source control.\n")


if __name__ == "__main__":
    main()
