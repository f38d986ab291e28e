"""
AES-256-GCM encryption for individual string fields.

Ciphertexts are stored as ``<iv hex>:<auth tag hex>:<ciphertext hex>``.
Encryption is only active when CRYPTO_KEY (64 hex chars) is configured;
otherwise encrypt_field/decrypt_field pass values through unchanged.
"""
from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from flask import current_app

EXTENSION_KEY = "field_cipher"
TAG_LENGTH = 16


class CryptoError(Exception):
    """Raised when a stored value cannot be decrypted"""


class FieldCipher:
    def __init__(self, hex_key: str, iv_length: int = 16):
        key = bytes.fromhex(hex_key)
        if len(key) != 32:
            raise ValueError("CRYPTO_KEY must be 32 bytes (64 hex characters)")
        self._aead = AESGCM(key)
        self.iv_length = iv_length

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(self.iv_length)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        try:
            iv_hex, tag_hex, ciphertext_hex = token.split(":")
            iv, tag, ciphertext = bytes.fromhex(iv_hex), bytes.fromhex(tag_hex), bytes.fromhex(ciphertext_hex)
        except ValueError as exc:
            raise CryptoError("Malformed encrypted value") from exc
        try:
            return self._aead.decrypt(iv, ciphertext + tag, None).decode("utf-8")
        except InvalidTag as exc:
            raise CryptoError("Encrypted value failed authentication") from exc


def init_field_cipher(app) -> FieldCipher | None:
    key = app.config.get("CRYPTO_KEY")
    cipher = FieldCipher(key, int(app.config.get("CRYPTO_IV_LENGTH", 16))) if key else None
    app.extensions[EXTENSION_KEY] = cipher
    return cipher


def get_field_cipher() -> FieldCipher | None:
    return current_app.extensions.get(EXTENSION_KEY)


def encrypt_field(value: str | None) -> str | None:
    cipher = get_field_cipher()
    if value is None or cipher is None:
        return value
    return cipher.encrypt(value)


def decrypt_field(value: str | None) -> str | None:
    cipher = get_field_cipher()
    if value is None or cipher is None:
        return value
    return cipher.decrypt(value)
