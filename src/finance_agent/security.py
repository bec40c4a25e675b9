"""API key encryption at rest.

Ciphertext layout, base64 encoded: salt(32) | iv(16) | tag(16) | ciphertext.
The AES-256 key is derived from the server secret with scrypt per value.
"""

from __future__ import annotations

import base64
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from finance_agent.exceptions import EncryptionError

SALT_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32


def _derive_key(secret: str, salt: bytes) -> bytes:
    if not secret:
        raise EncryptionError("Encryption secret is not configured")
    return Scrypt(salt=salt, length=KEY_LENGTH, n=2**14, r=8, p=1).derive(secret.encode("utf-8"))


def encrypt_api_key(api_key: str, secret: str) -> str:
    salt = os.urandom(SALT_LENGTH)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_derive_key(secret, salt)).encrypt(iv, api_key.encode("utf-8"), None)
    # AESGCM appends the tag; store it ahead of the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(salt + iv + tag + ciphertext).decode("ascii")


def decrypt_api_key(encrypted: str, secret: str) -> str:
    try:
        raw = base64.b64decode(encrypted, validate=True)
    except ValueError as e:
        raise EncryptionError("Encrypted API key is not valid base64") from e
    if len(raw) <= SALT_LENGTH + IV_LENGTH + TAG_LENGTH:
        raise EncryptionError("Encrypted API key is truncated")

    salt = raw[:SALT_LENGTH]
    iv = raw[SALT_LENGTH : SALT_LENGTH + IV_LENGTH]
    tag = raw[SALT_LENGTH + IV_LENGTH : SALT_LENGTH + IV_LENGTH + TAG_LENGTH]
    ciphertext = raw[SALT_LENGTH + IV_LENGTH + TAG_LENGTH :]
    try:
        plain = AESGCM(_derive_key(secret, salt)).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise EncryptionError("Failed to decrypt API key") from e
    return plain.decode("utf-8")


def mask_api_key(api_key: str) -> str:
    if not api_key or len(api_key) < 12:
        return "*" * 8
    middle = "*" * min(len(api_key) - 8, 20)
    return f"{api_key[:4]}{middle}{api_key[-4:]}"
