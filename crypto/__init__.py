"""Cryptography utilities for the phrase-bound file registry."""

from .cid_cipher import (
    derive_key,
    encrypt_cid,
    decrypt_cid,
)

from .file_cipher import (
    encrypt_bytes,
    decrypt_bytes,
)

from .integrity import (
    sha256_hex,
    digest_to_bytes32,
    is_bytes32_digest,
    verify_digest,
)

from .signatures import (
    generate_keypair,
    address_from_public_key,
    sign_payload,
    verify_payload,
)

__all__ = [
    # CID cipher
    "derive_key",
    "encrypt_cid",
    "decrypt_cid",
    # File content
    "encrypt_bytes",
    "decrypt_bytes",
    # Integrity
    "sha256_hex",
    "digest_to_bytes32",
    "is_bytes32_digest",
    "verify_digest",
    # Signatures
    "generate_keypair",
    "address_from_public_key",
    "sign_payload",
    "verify_payload",
]
