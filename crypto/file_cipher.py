import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from errors import DecryptionFailed, InvalidInput

NONCE_SIZE = 12
TAG_SIZE = 16


def _check_key(key: bytes) -> None:
    if len(key) not in (16, 24, 32):
        raise InvalidInput("AES-GCM key must be 128/192/256 bits")


def encrypt_bytes(plaintext: bytes, key: bytes) -> bytes:
    """
    Encrypt file content with AES-GCM. Returns nonce || ciphertext || tag,
    the single blob that gets pinned.
    """
    _check_key(key)
    if not plaintext:
        raise InvalidInput("cannot encrypt an empty file")
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key).encrypt(nonce, bytes(plaintext), None)


def decrypt_bytes(blob: bytes, key: bytes) -> bytes:
    """Decrypt a blob produced by :func:`encrypt_bytes`. Raises DecryptionFailed on tag mismatch."""
    _check_key(key)
    if len(blob) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailed()
    try:
        return AESGCM(key).decrypt(blob[:NONCE_SIZE], blob[NONCE_SIZE:], None)
    except InvalidTag:
        raise DecryptionFailed() from None
