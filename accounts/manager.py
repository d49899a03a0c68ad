import base64
import logging
import os
from dataclasses import replace
from typing import List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from crypto.signatures import address_from_public_key, generate_keypair
from errors import InvalidInput
from registry.file_registry import canon_address

from .hashing import WalletPasswordHasher
from .models import UnlockedWallet, Wallet
from .storage import IWalletStorage

logger = logging.getLogger(__name__)

KDF_ITERATIONS = 200_000
MIN_PASSWORD_LENGTH = 6


def _password_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


class WalletManager:
    def __init__(self, storage: IWalletStorage, hasher: WalletPasswordHasher, *, key_size: int = 2048):
        self.storage = storage
        self.hasher = hasher
        self.key_size = key_size

    def create(self, label: str, password: str) -> Wallet:
        """Generate a signing key, protect it with ``password`` and store the wallet."""
        label = label.strip()
        if not label:
            raise InvalidInput("wallet label cannot be empty")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

        private_pem, public_pem = generate_keypair(self.key_size)
        address = address_from_public_key(public_pem)

        salt = os.urandom(16)
        nonce = os.urandom(12)
        enc_private_key = AESGCM(_password_key(password, salt)).encrypt(nonce, private_pem, None)

        wallet = Wallet.new(
            address=address,
            label=label,
            pwd_hash=self.hasher.hash(password),
            public_key=base64.b64encode(public_pem).decode("ascii"),
            enc_private_key=base64.b64encode(enc_private_key).decode("ascii"),
            enc_private_key_nonce=base64.b64encode(nonce).decode("ascii"),
            enc_private_key_salt=base64.b64encode(salt).decode("ascii"),
        )
        self.storage.save_wallet(wallet)
        logger.info("created wallet %s (%s)", wallet.address, label)
        return wallet

    def get_wallet(self, address: str) -> Optional[Wallet]:
        return self.storage.get_wallet(canon_address(address))

    def list_wallets(self) -> List[Wallet]:
        return self.storage.get_all_wallets()

    def authenticate(self, address: str, password: str) -> Optional[Wallet]:
        wallet = self.get_wallet(address)
        if not wallet:
            return None
        if not self.hasher.verify(wallet.pwd_hash, password):
            return None
        if self.hasher.needs_rehash(wallet.pwd_hash):
            wallet = replace(wallet, pwd_hash=self.hasher.hash(password))
            self.storage.update_wallet(wallet)
        return wallet

    def public_key_pem(self, wallet: Wallet) -> bytes:
        return base64.b64decode(wallet.public_key)

    def decrypt_private_key(self, wallet: Wallet, password: str) -> bytes:
        """
        Decrypt the wallet's private key PEM. Raises InvalidInput on a wrong
        password or tampered keystore entry.
        """
        salt = base64.b64decode(wallet.enc_private_key_salt)
        nonce = base64.b64decode(wallet.enc_private_key_nonce)
        enc_priv = base64.b64decode(wallet.enc_private_key)
        try:
            return AESGCM(_password_key(password, salt)).decrypt(nonce, enc_priv, None)
        except InvalidTag:
            raise InvalidInput("wrong password for wallet") from None

    def unlock(self, address: str, password: str) -> UnlockedWallet:
        wallet = self.authenticate(address, password)
        if wallet is None:
            raise InvalidInput("unknown wallet or wrong password")
        return UnlockedWallet(
            address=wallet.address,
            public_key_pem=self.public_key_pem(wallet),
            private_key_pem=self.decrypt_private_key(wallet, password),
        )
