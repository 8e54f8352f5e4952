"""Symmetric encryption for API keys stored at rest.

Blobs are ``hex(iv || ciphertext)`` using AES-256-CBC with PKCS7 padding.
The AES key is the SHA-256 digest of the operator supplied master key, so
any non-empty string can be used as ``ENCRYPTION_KEY``.
"""

import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

IV_LENGTH = 16  # AES block size in bytes


class CredentialCipher:
    """Encrypts and decrypts secrets with a per-deployment master key."""

    def __init__(self, master_key: str):
        if not master_key:
            raise ValueError("ENCRYPTION_KEY must be set to store API keys")
        self._key = hashlib.sha256(master_key.encode()).digest()

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return (iv + ciphertext).hex()

    def decrypt(self, blob: str) -> Optional[str]:
        """Return the plaintext, or None when the blob cannot be decrypted.

        Failures are logged without the blob or the key.
        """
        try:
            combined = bytes.fromhex(blob)
        except (ValueError, TypeError):
            logger.warning("Decryption failed: input is not valid hex")
            return None

        if len(combined) < IV_LENGTH:
            logger.warning("Decryption failed: data is too short to contain an IV")
            return None

        iv, ciphertext = combined[:IV_LENGTH], combined[IV_LENGTH:]
        if not ciphertext or len(ciphertext) % IV_LENGTH:
            logger.warning("Decryption failed: ciphertext length %d is not a positive multiple of the block size", len(ciphertext))
            return None

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            logger.warning("Decryption failed: wrong key or corrupted data")
            return None
