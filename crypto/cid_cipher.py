"""
CID Cipher

Encrypts a content identifier so that only someone who knows the shared phrase
*and* is connected as the intended recipient address can recover it.

    key  = SHA-256(phrase || lower(recipient_address))
    wire = base64(nonce[12] || ciphertext || tag[16])

The address is lower-cased before hashing so that checksummed and plain spellings
of the same account derive the same key.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import Hash, SHA256

from errors import DecryptionFailed, InvalidInput

NONCE_SIZE = 12
TAG_SIZE = 16


def derive_key(phrase: str, recipient_address: str) -> bytes:
    """
    Derive the 256-bit AES key bound to (phrase, recipient).

    Args:
        phrase: Secret phrase shared out of band
        recipient_address: Address the pointer is sealed for, any case

    Returns:
        32 key bytes, SHA-256(phrase + lower(recipient_address))

    Raises:
        InvalidInput: if either argument is empty
    """
    if not phrase or not recipient_address:
        raise InvalidInput("derive_key: missing phrase or address")
    digest = Hash(SHA256())
    digest.update((phrase + recipient_address.lower()).encode("utf-8"))
    return digest.finalize()


def encrypt_cid(cid: str, phrase: str, recipient_address: str) -> str:
    """
    Encrypt ``cid`` for ``recipient_address``.

    A fresh random nonce is drawn on every call, so encrypting the same CID twice
    gives two different strings.

    Args:
        cid: Content identifier to seal
        phrase: Secret phrase shared with the recipient
        recipient_address: Address the pointer is sealed for

    Returns:
        base64(nonce || ciphertext || tag)
    """
    if not cid:
        raise InvalidInput("encrypt_cid: empty CID")
    key = derive_key(phrase, recipient_address)
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, cid.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_cid(encrypted: str, phrase: str, recipient_address: str) -> str:
    """
    Reverse :func:`encrypt_cid`.

    Args:
        encrypted: String produced by encrypt_cid
        phrase: Secret phrase the pointer was sealed with
        recipient_address: Address of the caller; must be the sealed-for address

    Returns:
        The plaintext content identifier

    Raises:
        DecryptionFailed: for a wrong phrase, a wrong address or any change to the
            encoded string, without saying which
    """
    key = derive_key(phrase, recipient_address)
    try:
        raw = base64.b64decode(encrypted, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise DecryptionFailed() from None
    # Reject non-canonical encodings so that no edit of the string can decode to the same bytes.
    if base64.b64encode(raw).decode("ascii") != encrypted:
        raise DecryptionFailed()
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailed()

    nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        plain = AESGCM(key).decrypt(nonce, sealed, None)
        return plain.decode("utf-8")
    except (InvalidTag, UnicodeDecodeError):
        raise DecryptionFailed() from None
