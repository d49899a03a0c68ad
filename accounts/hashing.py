from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class WalletPasswordHasher:
    """argon2id hashing of wallet passwords (the key itself is protected separately)."""

    def __init__(self, hasher: PasswordHasher = None):
        self._ph = hasher or PasswordHasher()

    def hash(self, password: str) -> str:
        return self._ph.hash(password)

    def verify(self, stored_hash: str, password: str) -> bool:
        try:
            return self._ph.verify(stored_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, stored_hash: str) -> bool:
        return self._ph.check_needs_rehash(stored_hash)
