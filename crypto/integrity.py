"""
Integrity hashing for registered file content.

The registry stores a fixed-width SHA-256 digest of the plaintext so that anyone
holding the bytes can check them against the record without trusting the store.
"""

import hmac
import re

from cryptography.hazmat.primitives.hashes import Hash, SHA256

from errors import InvalidInput

_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_BYTES32 = re.compile(r"^0x[0-9a-f]{64}$")


def sha256_hex(data: bytes) -> str:
    """SHA-256 of ``data`` as 64 lowercase hex characters."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidInput("sha256_hex expects bytes")
    digest = Hash(SHA256())
    digest.update(bytes(data))
    return digest.finalize().hex()


def digest_to_bytes32(hex_digest: str) -> str:
    """
    Convert a hex digest to the on-ledger form: ``0x`` followed by 64 hex chars.
    Shorter digests are left-padded with zeros.
    """
    h = hex_digest.lower()
    if h.startswith("0x"):
        h = h[2:]
    if not h or len(h) > 64 or not re.fullmatch(r"[0-9a-f]+", h):
        raise InvalidInput(f"not a hex digest: {hex_digest!r}")
    return "0x" + h.rjust(64, "0")


def is_bytes32_digest(value: str) -> bool:
    return isinstance(value, str) and bool(_BYTES32.match(value.lower()))


def verify_digest(data: bytes, expected: str) -> bool:
    """Check ``data`` against a digest in either plain hex or ``0x`` form."""
    expected = expected.lower()
    if expected.startswith("0x"):
        expected = expected[2:]
    if not _HEX64.match(expected):
        return False
    return hmac.compare_digest(sha256_hex(data), expected)
