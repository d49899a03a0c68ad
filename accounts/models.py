from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from registry.ledger import Transaction


@dataclass(frozen=True)
class Wallet:
    # identity
    address: str   # canonical, lower-case 0x + 40 hex
    label: str
    pwd_hash: str
    created_at: str   # ISO8601 "YYYY-MM-DDTHH:MM:SSZ"

    # signing key, private half encrypted under the wallet password
    public_key: str
    enc_private_key: str
    enc_private_key_nonce: str
    enc_private_key_salt: str
    key_wrap_version: str = "v1"

    @staticmethod
    def new(
        address: str,
        label: str,
        pwd_hash: str,
        public_key: str,
        enc_private_key: str,
        enc_private_key_nonce: str,
        enc_private_key_salt: str,
    ) -> "Wallet":
        now = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        return Wallet(
            address=address.lower(),
            label=label,
            pwd_hash=pwd_hash,
            created_at=now,
            public_key=public_key,
            enc_private_key=enc_private_key,
            enc_private_key_nonce=enc_private_key_nonce,
            enc_private_key_salt=enc_private_key_salt,
        )

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass(frozen=True)
class UnlockedWallet:
    """A wallet whose private key is in memory; able to sign ledger transactions."""

    address: str
    public_key_pem: bytes
    private_key_pem: bytes

    def sign_transaction(self, method: str, args: Dict[str, Any], nonce: int) -> Transaction:
        tx = Transaction(
            sender=self.address,
            method=method,
            args=args,
            nonce=nonce,
            public_key=self.public_key_pem.decode("ascii"),
        )
        return tx.signed(self.private_key_pem)

    def __repr__(self) -> str:
        return f"UnlockedWallet(address={self.address!r})"
