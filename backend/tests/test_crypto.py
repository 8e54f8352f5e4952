import logging

import pytest

from emailwriter.services.crypto import CredentialCipher, IV_LENGTH


@pytest.mark.parametrize("plaintext", [
    "",
    "sk-1234567890abcdefghijklmnopqrstuvwxyz",
    "exactly-16-bytes",
    "clé secrète ✓",
])
def test_round_trip(cipher, plaintext):
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_encrypt_output_is_hex_iv_plus_ciphertext(cipher):
    blob = cipher.encrypt("sk-test")
    raw = bytes.fromhex(blob)
    # 7 bytes of plaintext pad to a single block
    assert len(raw) == IV_LENGTH + 16


def test_same_plaintext_encrypts_differently(cipher):
    first = cipher.encrypt("sk-same")
    second = cipher.encrypt("sk-same")
    assert first != second
    assert first[:IV_LENGTH * 2] != second[:IV_LENGTH * 2]


def test_any_length_master_key_is_accepted():
    short = CredentialCipher("k")
    long = CredentialCipher("x" * 500)
    assert short.decrypt(short.encrypt("value")) == "value"
    assert long.decrypt(long.encrypt("value")) == "value"


def test_empty_master_key_is_rejected():
    with pytest.raises(ValueError):
        CredentialCipher("")


def test_decrypt_rejects_non_hex(cipher):
    assert cipher.decrypt("notarealhexstring") is None


def test_decrypt_rejects_data_shorter_than_iv(cipher):
    assert cipher.decrypt("aabbcc") is None


def test_decrypt_rejects_iv_without_ciphertext(cipher):
    assert cipher.decrypt("00" * IV_LENGTH) is None


def test_decrypt_rejects_truncated_ciphertext(cipher):
    blob = cipher.encrypt("sk-1234567890abcdefghijklmnopqrstuvwxyz")
    assert cipher.decrypt(blob[:-2]) is None


def test_decrypt_rejects_tampered_ciphertext(cipher):
    blob = bytearray(bytes.fromhex(cipher.encrypt("sk-1234567890abcdefghijklmnopqrstuvwxyz")))
    blob[-1] ^= 0xFF
    assert cipher.decrypt(bytes(blob).hex()) is None


def test_decrypt_with_wrong_key_fails(cipher):
    blob = cipher.encrypt("sk-1234567890abcdefghijklmnopqrstuvwxyz")
    assert CredentialCipher("another-key").decrypt(blob) is None


def test_failures_do_not_log_secrets(cipher, caplog):
    blob = cipher.encrypt("sk-very-secret")
    with caplog.at_level(logging.DEBUG, logger="emailwriter"):
        assert CredentialCipher("another-key").decrypt(blob) is None
    assert caplog.records
    assert "sk-very-secret" not in caplog.text
    assert blob not in caplog.text
    assert "another-key" not in caplog.text
