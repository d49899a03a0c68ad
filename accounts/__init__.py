"""Local wallet keystore: addresses and their password-protected signing keys."""

from .hashing import WalletPasswordHasher
from .manager import WalletManager
from .models import UnlockedWallet, Wallet
from .storage import IWalletStorage, JSONWalletStorage

__all__ = [
    "WalletPasswordHasher",
    "WalletManager",
    "UnlockedWallet",
    "Wallet",
    "IWalletStorage",
    "JSONWalletStorage",
]
