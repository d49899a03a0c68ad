"""
A local, single-writer ledger in front of the FileRegistry.

Signed transactions are authenticated when submitted (shape, sender key,
signature, nonce); a transaction that fails there is rejected outright and never
queued. Queued transactions are mined in submission order under one lock. Each
one either confirms or is reverted by the registry; both outcomes consume the
sender's nonce and are appended to a JSON-lines journal, which is the source of
truth: constructing a Ledger on an existing directory replays it. After every
block the materialized registry layout is written next to the journal for
external scanners.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from cryptography.exceptions import UnsupportedAlgorithm

from crypto.signatures import address_from_public_key, sign_payload, verify_payload
from errors import FileShareError, InvalidInput, TransactionRejected

from .file_registry import FileRegistry, canon_address
from .models import AccessGrant, FileRecord, RegistryEvent

logger = logging.getLogger(__name__)

JOURNAL_NAME = "journal.jsonl"
STATE_NAME = "state.json"

# method -> ordered argument names
MUTATIONS: Dict[str, tuple] = {
    "registerFile": ("encrypted_pointer", "integrity_digest"),
    "addVersion": ("file_id", "new_encrypted_pointer", "new_integrity_digest"),
    "grantAccessKeyPointer": ("file_id", "grantee", "key_pointer"),
    "revokeAccess": ("file_id", "grantee"),
}


def _canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Transaction:
    sender: str
    method: str
    args: Dict[str, Any]
    nonce: int
    public_key: str  # PEM text
    signature: str = ""  # base64 RSA-PSS over payload()

    def payload(self) -> bytes:
        return _canonical_json(
            {"sender": self.sender.lower(), "method": self.method, "args": self.args, "nonce": self.nonce}
        ).encode("utf-8")

    @property
    def tx_hash(self) -> str:
        return "0x" + hashlib.sha256(self.payload()).hexdigest()

    def signed(self, private_key_pem: bytes) -> "Transaction":
        return replace(self, signature=sign_payload(self.payload(), private_key_pem))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "method": self.method,
            "args": dict(self.args),
            "nonce": self.nonce,
            "public_key": self.public_key,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            sender=data["sender"],
            method=data["method"],
            args=dict(data["args"]),
            nonce=int(data["nonce"]),
            public_key=data["public_key"],
            signature=data.get("signature", ""),
        )


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    status: TxStatus
    block_timestamp: int
    events: List[RegistryEvent] = field(default_factory=list)
    error: Optional[str] = None

    def event(self, name: str) -> Optional[RegistryEvent]:
        for ev in self.events:
            if ev.name == name:
                return ev
        return None


class PendingTransaction:
    """Handle returned by :meth:`Ledger.submit`; settles when the ledger mines."""

    def __init__(self, ledger: "Ledger", tx: Transaction, tx_hash: str):
        self._ledger = ledger
        self.tx = tx
        self.tx_hash = tx_hash
        self.status = TxStatus.PENDING
        self.receipt: Optional[Receipt] = None
        self.error: Optional[Exception] = None

    def _settle(self, receipt: Receipt, error: Optional[Exception]) -> None:
        self.receipt = receipt
        self.error = error
        self.status = receipt.status

    def wait(self) -> Receipt:
        """
        Return the receipt of a confirmed transaction, mining first if needed.
        A rejected transaction re-raises its original error unchanged.
        """
        if self.status is TxStatus.PENDING:
            self._ledger.mine()
        if self.error is not None:
            raise self.error
        if self.receipt is None:
            raise TransactionRejected("transaction was dropped before it was mined", self.tx_hash)
        return self.receipt


def _safe_hash(tx: Any) -> str:
    try:
        return tx.tx_hash
    except (AttributeError, TypeError, ValueError):
        return ""


def _check_shape(tx: Any, tx_hash: str) -> None:
    """Reject anything that is not a well-typed, serialisable Transaction."""
    if not isinstance(tx, Transaction):
        raise TransactionRejected("not a transaction", tx_hash)
    typed = (
        isinstance(tx.sender, str)
        and isinstance(tx.method, str)
        and isinstance(tx.args, dict)
        and isinstance(tx.nonce, int)
        and not isinstance(tx.nonce, bool)
        and isinstance(tx.public_key, str)
        and isinstance(tx.signature, str)
    )
    if not typed or not tx_hash:
        raise TransactionRejected("malformed transaction", tx_hash or None)


class Ledger:
    def __init__(self, root: Optional[Path] = None, *, clock: Callable[[], float] = time.time):
        self._lock = threading.RLock()
        self._clock = clock
        self._registry = FileRegistry()
        self._nonces: Dict[str, int] = {}
        self._pending: List[PendingTransaction] = []
        self.height = 0
        self.root = Path(root) if root is not None else None
        if self.root is not None:
            self.root.mkdir(parents=True, exist_ok=True)
            self._replay()

    @property
    def journal_path(self) -> Optional[Path]:
        return self.root / JOURNAL_NAME if self.root is not None else None

    @property
    def state_path(self) -> Optional[Path]:
        return self.root / STATE_NAME if self.root is not None else None

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def submit(self, tx: Transaction) -> PendingTransaction:
        """
        Queue a signed transaction for the next block.

        A transaction that fails authentication (malformed fields, unknown method,
        key/sender mismatch, bad signature, wrong nonce) is never queued: the
        returned handle is already rejected and ``wait()`` raises TransactionRejected.
        """
        tx_hash = _safe_hash(tx)
        with self._lock:
            pending = PendingTransaction(self, tx, tx_hash)
            try:
                _check_shape(tx, tx_hash)
                sender = self._authenticate(tx, tx_hash)
                self._check_nonce(tx, self._queued_nonce(sender), tx_hash)
            except TransactionRejected as exc:
                logger.warning("refused transaction %s: %s", tx_hash[:12] or "<unhashable>", exc)
                receipt = Receipt(tx_hash, TxStatus.REJECTED, int(self._clock()), error=str(exc))
                pending._settle(receipt, exc)
                return pending
            self._pending.append(pending)
        logger.debug("submitted %s %s from %s", tx.method, tx_hash[:12], tx.sender)
        return pending

    def submit_signed(self, signer, method: str, args: Dict[str, Any]) -> PendingTransaction:
        """
        Sign with the next nonce and submit, holding the lock in between so that
        concurrent callers sharing one wallet never reuse a nonce.

        ``signer`` needs an ``address`` and a ``sign_transaction(method, args, nonce)``.
        """
        with self._lock:
            nonce = self.nonce_of(signer.address)
            return self.submit(signer.sign_transaction(method, args, nonce))

    def mine(self) -> List[Receipt]:
        """Apply every pending transaction, in order, as one block."""
        with self._lock:
            batch, self._pending = self._pending, []
            if not batch:
                return []
            timestamp = int(self._clock())
            block = self.height + 1
            receipts = [self._apply(pending, block, timestamp) for pending in batch]
            self.height = block
            self._write_state()
        logger.info("mined block %d with %d transaction(s)", self.height, len(receipts))
        return receipts

    def _apply(self, pending: PendingTransaction, block: int, timestamp: int) -> Receipt:
        tx = pending.tx
        sender = tx.sender.lower()
        try:
            self._check_nonce(tx, self._nonces.get(sender, 0), pending.tx_hash)
        except TransactionRejected as exc:
            receipt = Receipt(pending.tx_hash, TxStatus.REJECTED, timestamp, error=str(exc))
            pending._settle(receipt, exc)
            return receipt

        error: Optional[Exception] = None
        events: List[RegistryEvent] = []
        try:
            events = self._dispatch(tx, timestamp)
        except FileShareError as exc:
            error = exc
        except Exception as exc:  # anything the registry did not anticipate reverts this transaction only
            logger.exception("transaction %s failed unexpectedly", pending.tx_hash[:12])
            error = TransactionRejected(f"malformed transaction: {exc}", pending.tx_hash)

        self._nonces[sender] = self._nonces.get(sender, 0) + 1
        if error is not None:
            self._registry.drain_events()
            logger.warning("reverted %s %s: %s", tx.method, pending.tx_hash[:12], error)
            self._append_journal(tx, block, timestamp, error=str(error))
            receipt = Receipt(pending.tx_hash, TxStatus.REJECTED, timestamp, error=str(error))
            pending._settle(receipt, error)
            return receipt

        self._append_journal(tx, block, timestamp)
        receipt = Receipt(pending.tx_hash, TxStatus.CONFIRMED, timestamp, events=events)
        pending._settle(receipt, None)
        return receipt

    def _authenticate(self, tx: Transaction, tx_hash: str) -> str:
        """Check method, sender key and signature; return the canonical sender."""
        if tx.method not in MUTATIONS:
            raise TransactionRejected(f"unknown method {tx.method!r}", tx_hash)
        try:
            sender = canon_address(tx.sender)
            public_pem = tx.public_key.encode("ascii")
            claimed = address_from_public_key(public_pem)
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm):
            raise TransactionRejected("malformed sender or public key", tx_hash) from None
        if claimed != sender:
            raise TransactionRejected("public key does not match sender address", tx_hash)
        if not verify_payload(tx.payload(), tx.signature, public_pem):
            raise TransactionRejected("bad signature", tx_hash)
        return sender

    @staticmethod
    def _check_nonce(tx: Transaction, expected: int, tx_hash: str) -> None:
        if tx.nonce != expected:
            raise TransactionRejected(f"bad nonce {tx.nonce}, expected {expected}", tx_hash)

    def _queued_nonce(self, sender: str) -> int:
        queued = sum(1 for p in self._pending if p.tx.sender.lower() == sender)
        return self._nonces.get(sender, 0) + queued

    def _dispatch(self, tx: Transaction, timestamp: int) -> List[RegistryEvent]:
        params = MUTATIONS[tx.method]
        if set(tx.args) != set(params):
            raise InvalidInput(f"{tx.method} expects arguments {', '.join(params)}")
        a = tx.args
        reg = self._registry

        if tx.method == "registerFile":
            reg.register_file(tx.sender, a["encrypted_pointer"], a["integrity_digest"], timestamp=timestamp)
        elif tx.method == "addVersion":
            reg.add_version(tx.sender, a["file_id"], a["new_encrypted_pointer"], a["new_integrity_digest"])
        elif tx.method == "grantAccessKeyPointer":
            reg.grant_access_key_pointer(tx.sender, a["file_id"], a["grantee"], a["key_pointer"])
        else:
            reg.revoke_access(tx.sender, a["file_id"], a["grantee"])
        return reg.drain_events()

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def _append_journal(self, tx: Transaction, block: int, timestamp: int, error: Optional[str] = None) -> None:
        if self.journal_path is None:
            return
        entry: Dict[str, Any] = {"block": block, "timestamp": timestamp, "tx": tx.to_dict()}
        if error is not None:
            entry["status"] = TxStatus.REJECTED.value
            entry["error"] = error
        with self.journal_path.open("a", encoding="utf-8") as fh:
            fh.write(_canonical_json(entry) + "\n")
            fh.flush()
            os.fsync(fh.fileno())

    def _write_state(self) -> None:
        if self.state_path is None:
            return
        payload = self._registry.to_dict()
        payload["height"] = self.height
        fd, tmp = tempfile.mkstemp(prefix="state.", suffix=".tmp", dir=str(self.root))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            Path(tmp).replace(self.state_path)
        finally:
            Path(tmp).unlink(missing_ok=True)

    def _replay(self) -> None:
        """
        Rebuild state from the journal. Reverted entries only advance the sender's
        nonce; confirmed entries must apply cleanly again.
        """
        path = self.journal_path
        if path is None or not path.exists():
            return
        count = 0
        with path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, 1):
                if not line.strip():
                    continue
                entry = json.loads(line)
                tx = Transaction.from_dict(entry["tx"])
                try:
                    sender = self._authenticate(tx, tx.tx_hash)
                    self._check_nonce(tx, self._nonces.get(sender, 0), tx.tx_hash)
                    if entry.get("status") != TxStatus.REJECTED.value:
                        self._dispatch(tx, int(entry["timestamp"]))
                except FileShareError as exc:
                    raise ValueError(f"{path}:{lineno} does not replay: {exc}") from exc
                self._nonces[sender] = self._nonces.get(sender, 0) + 1
                count += 1
                self.height = int(entry.get("block", count))
        logger.info("replayed %d transaction(s) from %s", count, path)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_file(self, file_id: int) -> FileRecord:
        with self._lock:
            return self._registry.get_file(file_id)

    def check_access(self, file_id: int, address: str) -> bool:
        with self._lock:
            return self._registry.check_access(file_id, address)

    def get_grant(self, file_id: int, grantee: str) -> Optional[AccessGrant]:
        with self._lock:
            return self._registry.get_grant(file_id, grantee)

    def next_file_id(self) -> int:
        with self._lock:
            return self._registry.next_file_id()

    def files_owned_by(self, address: str) -> List[int]:
        with self._lock:
            return self._registry.files_owned_by(address)

    def nonce_of(self, address: str) -> int:
        """Nonce expected for the next transaction from ``address``, counting queued ones."""
        address = canon_address(address)
        with self._lock:
            return self._queued_nonce(address)
