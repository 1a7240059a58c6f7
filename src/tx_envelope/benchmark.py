"""
Envelope Encryption Benchmark CLI.

Usage:
    tx-envelope-benchmark

Or run directly:
    python -m tx_envelope.benchmark

Set MASTER_KEY_HEX (environment or .env file). When DATABASE_URL is set the
records are stored in PostgreSQL, otherwise in memory.
"""

from __future__ import annotations

import asyncio
import random
import sys
import time
from typing import List, Optional

import asyncpg

from tx_envelope.config import Settings, load_settings
from tx_envelope.errors import ConfigError, TamperedDataError
from tx_envelope.postgres import PostgresRecordStore
from tx_envelope.record import EncryptedRecord
from tx_envelope.service import TxSecureService
from tx_envelope.storage import InMemoryRecordStore, RecordStore


async def run_benchmark() -> None:
    """Run the envelope encryption benchmark."""
    print("=== Envelope Encryption Benchmark ===\n")

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if not settings.database_url:
        print("[STARTUP] DATABASE_URL not set, using in-memory storage")
        await run_demos(settings, InMemoryRecordStore())
        return

    pool: Optional[asyncpg.Pool] = await asyncpg.create_pool(settings.database_url)
    if pool is None:
        print("ERROR: Failed to create connection pool")
        sys.exit(1)

    try:
        store = PostgresRecordStore(pool)
        await store.ensure_schema()
        print("[STARTUP] Using PostgreSQL storage")
        await run_demos(settings, store)
    finally:
        await pool.close()


async def run_demos(settings: Settings, store: RecordStore) -> None:
    """Run the encrypt, decrypt and tamper demos against a store."""
    try:
        user_input = input("Enter number of records to test (default: 500): ").strip()
        test_quantity = int(user_input) if user_input else 500
    except ValueError:
        test_quantity = 500
    test_quantity = max(test_quantity, 1)
    print(f"Testing with {test_quantity} records\n")

    service = TxSecureService.from_settings(settings, store)

    print("=" * 70)
    print("                    BENCHMARK START")
    print("=" * 70 + "\n")

    # ========================================================================
    # Demo 1: Encrypt and store
    # ========================================================================
    print("+" + "-" * 68 + "+")
    print(f"|  Demo 1: Encrypt and Store {test_quantity} Records" + " " * (30 - len(str(test_quantity))) + "|")
    print("+" + "-" * 68 + "+")

    records: List[EncryptedRecord] = []

    demo1_start = time.perf_counter()
    for i in range(test_quantity):
        payload = {"amount": random.randint(1, 100_000), "currency": "AED", "seq": i}
        records.append(await service.encrypt_and_store(f"party-{i % 10}", payload))

        if (i + 1) % 100 == 0 or (i + 1) == test_quantity:
            print(f"  Progress: {i + 1}/{test_quantity}")

    demo1_duration = time.perf_counter() - demo1_start

    print(f"[OK] Encrypted and stored {test_quantity} records")
    print(f"[PERF] Time: {demo1_duration * 1000:.3f}ms | Rate: {test_quantity / demo1_duration:.2f} ops/sec\n")

    # ========================================================================
    # Demo 2: Decrypt by id
    # ========================================================================
    print("+" + "-" * 68 + "+")
    print("|  Demo 2: Decrypt by ID                                            |")
    print("+" + "-" * 68 + "+")

    demo2_start = time.perf_counter()
    for record in records:
        await service.decrypt_record(record.id)
    demo2_duration = time.perf_counter() - demo2_start

    print(f"[OK] Decrypted {test_quantity} records")
    print(f"[PERF] Time: {demo2_duration * 1000:.3f}ms | Rate: {test_quantity / demo2_duration:.2f} ops/sec\n")

    # ========================================================================
    # Demo 3: Tamper detection
    # ========================================================================
    print("+" + "-" * 68 + "+")
    print("|  Demo 3: Tamper Detection                                         |")
    print("+" + "-" * 68 + "+")

    wire = records[0].to_dict()
    flipped = "0" if wire["payload_ct"][0] != "0" else "1"
    wire["payload_ct"] = flipped + wire["payload_ct"][1:]
    tampered = EncryptedRecord.from_dict(wire)
    await store.save(tampered)

    try:
        await service.decrypt_record(tampered.id)
        print("[ERROR] Tampered record decrypted without error\n")
    except TamperedDataError:
        print("[OK] Tampered ciphertext rejected\n")

    # ========================================================================
    # Summary
    # ========================================================================
    print("=" * 70)
    print("                    BENCHMARK SUMMARY")
    print("=" * 70 + "\n")

    print(f"Stored records: {await service.record_count()}")
    print("\nTest Configuration:")
    print(f"  - Total records tested: {test_quantity}")
    print("  - Crypto: AES-256-GCM envelope (per-record DEK, wrapped by master key)")
    print(f"  - Master key version: {service.key_version}")

    print("\n" + "=" * 70)
    print("                    BENCHMARK COMPLETE")
    print("=" * 70 + "\n")


def main() -> None:
    """CLI entry point for tx-envelope-benchmark command."""
    asyncio.run(run_benchmark())


if __name__ == "__main__":
    main()
