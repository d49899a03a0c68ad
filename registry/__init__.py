"""File registry: records, access grants and the ledger that serialises changes to them."""

from .file_registry import (
    FileRegistry,
    canon_address,
    FILE_REGISTERED,
    VERSION_ADDED,
    ACCESS_GRANTED,
    ACCESS_REVOKED,
)
from .ledger import Ledger, PendingTransaction, Receipt, Transaction, TxStatus
from .models import AccessGrant, FileRecord, RegistryEvent

__all__ = [
    "FileRegistry",
    "canon_address",
    "FILE_REGISTERED",
    "VERSION_ADDED",
    "ACCESS_GRANTED",
    "ACCESS_REVOKED",
    "Ledger",
    "PendingTransaction",
    "Receipt",
    "Transaction",
    "TxStatus",
    "AccessGrant",
    "FileRecord",
    "RegistryEvent",
]
