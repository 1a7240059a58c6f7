"""
Tests for the transaction service and error-to-status mapping.
"""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from tx_envelope import (
    ConfigError,
    DecryptionError,
    EncryptionError,
    RecordNotFoundError,
    StorageError,
    TamperedDataError,
    TxSecureService,
    ValidationError,
    error_body,
    load_settings,
    status_for,
)


async def test_encrypt_and_store(service, memory_store):
    record = await service.encrypt_and_store("party-a", {"amount": 100, "currency": "AED"})

    assert await service.record_count() == 1
    assert await memory_store.get(record.id) == record
    assert await service.get_record(record.id) == record


async def test_decrypt_record(service):
    record = await service.encrypt_and_store("party-a", {"amount": 100, "currency": "AED"})

    result = await service.decrypt_record(record.id)
    assert result.record_id == record.id
    assert result.party_id == "party-a"
    assert result.payload == {"amount": 100, "currency": "AED"}

    body = result.to_dict()
    assert body["success"] is True
    assert body["partyId"] == "party-a"
    assert body["decryptedAt"].endswith("Z")


async def test_unknown_record(service):
    with pytest.raises(RecordNotFoundError):
        await service.get_record("does-not-exist")
    with pytest.raises(RecordNotFoundError):
        await service.decrypt_record("does-not-exist")


@pytest.mark.parametrize("party_id", ["", None, 42])
async def test_party_id_is_required(service, party_id):
    with pytest.raises(ValidationError, match="partyId"):
        await service.encrypt_and_store(party_id, {"k": "v"})
    assert await service.record_count() == 0


@pytest.mark.parametrize("payload", [None, [1, 2], "text", 5])
async def test_payload_must_be_object(service, payload):
    with pytest.raises(ValidationError, match="payload must be a JSON object"):
        await service.encrypt_and_store("party", payload)


async def test_unserializable_payload(service):
    with pytest.raises(EncryptionError):
        await service.encrypt_and_store("party", {"k": object()})
    assert await service.record_count() == 0


async def test_tampered_stored_record(service, memory_store):
    record = await service.encrypt_and_store("party", {"k": "v"})
    corrupted = bytes([record.payload_ciphertext[0] ^ 0x80]) + record.payload_ciphertext[1:]
    await memory_store.save(dataclasses.replace(record, payload_ciphertext=corrupted))

    with pytest.raises(TamperedDataError) as exc_info:
        await service.decrypt_record(record.id)
    assert status_for(exc_info.value) == 400


async def test_malformed_stored_record(service, memory_store):
    record = await service.encrypt_and_store("party", {"k": "v"})
    await memory_store.save(dataclasses.replace(record, payload_nonce=b"\x00" * 4))

    with pytest.raises(ValidationError):
        await service.decrypt_record(record.id)


async def test_service_with_other_key_cannot_decrypt(memory_store, master_key):
    writer = TxSecureService(memory_store, master_key)
    reader = TxSecureService(memory_store, bytes(32))
    record = await writer.encrypt_and_store("party", {"k": "v"})

    with pytest.raises(TamperedDataError):
        await reader.decrypt_record(record.id)


async def test_verify_record(service):
    record = await service.encrypt_and_store("party", {"k": "v"})
    assert await service.verify_record(record)

    forged_tag = bytes(16) if record.payload_tag != bytes(16) else b"\x01" * 16
    assert not await service.verify_record(dataclasses.replace(record, payload_tag=forged_tag))


async def test_concurrent_encrypt_and_decrypt(service):
    records = await asyncio.gather(
        *(service.encrypt_and_store(f"party-{i}", {"seq": i}) for i in range(25))
    )
    results = await asyncio.gather(*(service.decrypt_record(r.id) for r in records))

    assert [r.payload for r in results] == [{"seq": i} for i in range(25)]
    assert await service.record_count() == 25


async def test_from_settings(memory_store, master_key):
    settings = load_settings(env={"MASTER_KEY_HEX": master_key.hex(), "MASTER_KEY_VERSION": "4"})
    service = TxSecureService.from_settings(settings, memory_store)

    record = await service.encrypt_and_store("party", {"k": "v"})
    assert record.key_version == 4
    assert (await service.decrypt_record(record.id)).payload == {"k": "v"}


async def test_from_settings_defaults_to_memory_store(master_key):
    settings = load_settings(env={"MASTER_KEY_HEX": master_key.hex()})
    service = TxSecureService.from_settings(settings)
    await service.encrypt_and_store("party", {"k": "v"})
    assert await service.record_count() == 1


@pytest.mark.parametrize(
    "error, status",
    [
        (ValidationError("bad"), 400),
        (TamperedDataError(), 400),
        (DecryptionError("bad"), 400),
        (EncryptionError("bad"), 400),
        (RecordNotFoundError("missing"), 404),
        (ConfigError("no key"), 500),
        (StorageError("down"), 500),
        (RuntimeError("boom"), 500),
    ],
)
def test_status_for(error, status):
    assert status_for(error) == status


def test_error_body_prefixes():
    assert error_body(TamperedDataError("x")) == {
        "success": False,
        "error": "Tampered data detected: x",
    }
    assert error_body(ValidationError("x"))["error"] == "Validation failed: x"
    assert error_body(DecryptionError("x"))["error"] == "Decryption failed: x"
    assert error_body(RecordNotFoundError("Record 1 not found"))["error"] == "Record 1 not found"


def test_error_body_hides_internal_details():
    assert error_body(StorageError("password=secret"))["error"] == "Storage unavailable"
    assert error_body(ConfigError("MASTER_KEY_HEX bad"))["error"] == "Server misconfiguration"
    assert error_body(RuntimeError("trace"))["error"] == "Internal server error"
