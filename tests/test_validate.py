"""
Tests for structural record validation.
"""

from __future__ import annotations

import dataclasses

import pytest

from tx_envelope import ValidationError, encrypt, validate_record

BINARY_FIELDS = [
    "payload_nonce",
    "payload_ct",
    "payload_tag",
    "dek_wrap_nonce",
    "dek_wrapped",
    "dek_wrap_tag",
]


@pytest.fixture
def record(master_key):
    return encrypt(master_key, "party-a", {"amount": 100, "currency": "AED"})


@pytest.fixture
def wire(record):
    return record.to_dict()


def test_valid_record_passes(record, wire):
    validate_record(record)
    validate_record(wire)


def test_uppercase_hex_is_accepted(wire):
    for field in BINARY_FIELDS:
        wire[field] = wire[field].upper()
    validate_record(wire)


def test_short_payload_nonce(wire):
    wire["payload_nonce"] = "00" * 4
    with pytest.raises(ValidationError, match="payload_nonce must be exactly 12 bytes"):
        validate_record(wire)


def test_short_dek_wrap_nonce(wire):
    wire["dek_wrap_nonce"] = "00" * 13
    with pytest.raises(ValidationError, match="dek_wrap_nonce must be exactly 12 bytes"):
        validate_record(wire)


def test_short_payload_tag(wire):
    wire["payload_tag"] = "00" * 4
    with pytest.raises(ValidationError, match="payload_tag must be exactly 16 bytes"):
        validate_record(wire)


def test_short_dek_wrap_tag(wire):
    wire["dek_wrap_tag"] = "00" * 15
    with pytest.raises(ValidationError, match="dek_wrap_tag must be exactly 16 bytes"):
        validate_record(wire)


@pytest.mark.parametrize("field", ["payload_ct", "dek_wrapped"])
def test_empty_ciphertext(wire, field):
    wire[field] = ""
    with pytest.raises(ValidationError, match=f"{field} must not be empty"):
        validate_record(wire)


@pytest.mark.parametrize("field", ["payload_ct", "dek_wrapped"])
def test_odd_length_ciphertext(wire, field):
    wire[field] = wire[field] + "a"
    with pytest.raises(ValidationError, match="odd-length"):
        validate_record(wire)


@pytest.mark.parametrize("field", BINARY_FIELDS)
def test_non_hex_characters(wire, field):
    wire[field] = "zz" + wire[field][2:]
    with pytest.raises(ValidationError, match="invalid hex characters"):
        validate_record(wire)


@pytest.mark.parametrize("field", BINARY_FIELDS)
def test_hex_with_prefix_or_separator_is_rejected(wire, field):
    wire[field] = "0x" + wire[field][2:]
    with pytest.raises(ValidationError):
        validate_record(wire)


@pytest.mark.parametrize("field", BINARY_FIELDS)
def test_trailing_newline_is_rejected(wire, field):
    # Keep the length even so only the character check can catch it
    wire[field] = wire[field][:-1] + "\n"
    with pytest.raises(ValidationError, match="invalid hex characters"):
        validate_record(wire)


@pytest.mark.parametrize("alg", ["AES-128-GCM", "ChaCha20-Poly1305", "aes-256-gcm", "", None])
def test_unsupported_algorithm(wire, alg):
    wire["alg"] = alg
    with pytest.raises(ValidationError, match="Unsupported algorithm"):
        validate_record(wire)


@pytest.mark.parametrize("version", [0, -1, "1", 1.5, True, None])
def test_invalid_key_version(wire, version):
    wire["mk_version"] = version
    with pytest.raises(ValidationError, match="mk_version"):
        validate_record(wire)


@pytest.mark.parametrize("field", BINARY_FIELDS)
def test_missing_field(wire, field):
    del wire[field]
    with pytest.raises(ValidationError, match=f"{field} is missing"):
        validate_record(wire)


def test_non_string_field(wire):
    wire["payload_tag"] = 12345
    with pytest.raises(ValidationError, match="must be a hex string"):
        validate_record(wire)


def test_first_violation_wins(wire):
    wire["payload_tag"] = "00"
    wire["payload_nonce"] = "00"
    with pytest.raises(ValidationError, match="payload_nonce"):
        validate_record(wire)


def test_error_message_truncates_value(wire):
    wire["payload_ct"] = "zz" * 200
    with pytest.raises(ValidationError) as exc_info:
        validate_record(wire)
    assert len(str(exc_info.value)) < 120


class TestRecordObject:
    def test_short_nonce(self, record):
        bad = dataclasses.replace(record, payload_nonce=b"\x00" * 4)
        with pytest.raises(ValidationError, match="12 bytes"):
            validate_record(bad)

    def test_short_tag(self, record):
        bad = dataclasses.replace(record, dek_wrap_tag=b"\x00" * 4)
        with pytest.raises(ValidationError, match="16 bytes"):
            validate_record(bad)

    def test_empty_ciphertext(self, record):
        bad = dataclasses.replace(record, payload_ciphertext=b"")
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_record(bad)

    def test_unknown_algorithm(self, record):
        bad = dataclasses.replace(record, algorithm="XChaCha20")
        with pytest.raises(ValidationError, match="Unsupported algorithm"):
            validate_record(bad)

    def test_non_positive_version(self, record):
        bad = dataclasses.replace(record, key_version=0)
        with pytest.raises(ValidationError, match="mk_version"):
            validate_record(bad)

    def test_not_a_record(self):
        with pytest.raises(ValidationError, match="Not an encrypted record"):
            validate_record(object())
