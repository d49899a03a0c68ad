"""
Transaction signatures and addresses.

Mutating registry calls are signed with RSA-PSS/SHA-256. An address is the last
20 bytes of the SHA-256 of the signer's DER public key, hex encoded with a 0x
prefix, so the ledger can tie a signature to the address that claims it.
"""

import base64
import binascii

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=padding.PSS.MAX_LENGTH,
    )


def generate_keypair(key_size: int = 2048) -> tuple[bytes, bytes]:
    """
    Generate an RSA signing key pair.

    Args:
        key_size: Modulus size in bits

    Returns:
        (private_key_pem, public_key_pem), PKCS8 and SubjectPublicKeyInfo PEM bytes
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def address_from_public_key(public_key_pem: bytes) -> str:
    """
    Derive the account address bound to a public key.

    Args:
        public_key_pem: PEM-encoded public key

    Returns:
        "0x" followed by the last 20 bytes of SHA-256(DER public key), lower-case hex
    """
    public_key = serialization.load_pem_public_key(public_key_pem)
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashes.Hash(hashes.SHA256())
    digest.update(der)
    return "0x" + digest.finalize()[-20:].hex()


def sign_payload(payload: bytes, private_key_pem: bytes) -> str:
    """
    Sign data using RSA-PSS with SHA-256.

    Args:
        payload: The canonical bytes to sign (a transaction payload)
        private_key_pem: PEM-encoded RSA private key

    Returns:
        The signature, base64 encoded
    """
    private_key = serialization.load_pem_private_key(private_key_pem, password=None)
    signature = private_key.sign(payload, _pss(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def verify_payload(payload: bytes, signature_b64: str, public_key_pem: bytes) -> bool:
    """
    Verify a base64 RSA-PSS signature.

    Args:
        payload: The data that was signed
        signature_b64: Base64 signature as produced by sign_payload
        public_key_pem: PEM-encoded RSA public key of the signer

    Returns:
        True if the signature is valid. False otherwise, including for an
        undecodable signature or an unusable key.
    """
    try:
        public_key = serialization.load_pem_public_key(public_key_pem)
        signature = base64.b64decode(signature_b64, validate=True)
    except (ValueError, binascii.Error, UnsupportedAlgorithm):
        return False
    if not isinstance(public_key, rsa.RSAPublicKey):
        return False

    try:
        public_key.verify(signature, payload, _pss(), hashes.SHA256())
        return True
    except InvalidSignature:
        return False
