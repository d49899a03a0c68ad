"""
Client-side workflows.

Each workflow sequences the content store, the hasher, the ciphers and the ledger
in causal order (pin, hash, encrypt pointer, register). Inputs are validated before
anything is pinned or signed. Registry and store errors propagate unchanged; nothing
is retried here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from accounts.models import UnlockedWallet
from content_store.base import ContentStore
from crypto.cid_cipher import decrypt_cid, derive_key, encrypt_cid
from crypto.file_cipher import decrypt_bytes, encrypt_bytes
from crypto.integrity import digest_to_bytes32, sha256_hex, verify_digest
from errors import (
    FileShareError,
    IntegrityMismatch,
    InvalidInput,
    NotFound,
    NotOwner,
    UnauthorizedAccess,
)
from registry.file_registry import FILE_REGISTERED
from registry.ledger import Ledger, Receipt
from registry.models import FileRecord

from .validation import parse_file_id, require_address, require_phrase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    file_id: int
    cid: str
    encrypted_cid: str
    integrity_digest: str
    granted: bool
    grant_error: Optional[str] = None


@dataclass(frozen=True)
class UpdateResult:
    file_id: int
    version: int
    cid: str
    integrity_digest: str


@dataclass(frozen=True)
class DownloadResult:
    file_id: int
    version: int
    cid: str
    data: bytes
    path: Optional[Path] = None


class FileShareClient:
    def __init__(self, ledger: Ledger, store: ContentStore, wallet: UnlockedWallet):
        self.ledger = ledger
        self.store = store
        self.wallet = wallet

    @property
    def address(self) -> str:
        return self.wallet.address

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _transact(self, method: str, args: Dict[str, Any]) -> Receipt:
        return self.ledger.submit_signed(self.wallet, method, args).wait()

    def _require_existing(self, file_id: int) -> FileRecord:
        if file_id >= self.ledger.next_file_id():
            raise NotFound(file_id)
        return self.ledger.get_file(file_id)

    def _require_owner(self, file_id: int) -> FileRecord:
        record = self._require_existing(file_id)
        if record.owner != self.address.lower():
            raise NotOwner(file_id, self.address)
        return record

    def _seal(self, data: bytes, phrase: str, recipient: str, filename: str) -> Tuple[str, str, str]:
        """Encrypt and pin ``data``; return (cid, encrypted cid, on-ledger digest)."""
        if not data:
            raise InvalidInput("cannot upload an empty file")
        key = derive_key(phrase, recipient)
        cid = self.store.store(encrypt_bytes(data, key), filename, "application/octet-stream")
        digest = digest_to_bytes32(sha256_hex(data))
        encrypted_cid = encrypt_cid(cid, phrase, recipient)
        return cid, encrypted_cid, digest

    # ------------------------------------------------------------------
    # workflows
    # ------------------------------------------------------------------

    def upload(
        self,
        data: bytes,
        phrase: str,
        recipient: str,
        *,
        filename: str = "file",
        auto_grant: bool = True,
    ) -> UploadResult:
        """
        Encrypt, pin and register a file for ``recipient``, then grant them access.

        A failed grant after a successful registration does not raise: the file
        exists and the owner can grant again, so the result reports it instead.
        """
        recipient = require_address(recipient, "recipient address")
        require_phrase(phrase)

        cid, encrypted_cid, digest = self._seal(data, phrase, recipient, filename)
        receipt = self._transact(
            "registerFile",
            {"encrypted_pointer": encrypted_cid, "integrity_digest": digest},
        )
        event = receipt.event(FILE_REGISTERED)
        if event is None:
            # registerFile always emits; fall back to the counter like an external scanner would
            file_id = self.ledger.next_file_id() - 1
        else:
            file_id = int(event.args["file_id"])
        logger.info("registered file %d (%s...)", file_id, encrypted_cid[:12])

        if recipient.lower() == self.address.lower():
            return UploadResult(file_id, cid, encrypted_cid, digest, granted=True)
        if not auto_grant:
            return UploadResult(file_id, cid, encrypted_cid, digest, granted=False)

        try:
            self._transact(
                "grantAccessKeyPointer",
                {"file_id": file_id, "grantee": recipient, "key_pointer": ""},
            )
        except FileShareError as exc:
            logger.warning("file %d registered but grant to %s failed: %s", file_id, recipient, exc)
            return UploadResult(file_id, cid, encrypted_cid, digest, granted=False, grant_error=str(exc))
        return UploadResult(file_id, cid, encrypted_cid, digest, granted=True)

    def upload_path(self, path: Path | str, phrase: str, recipient: str, **kwargs) -> UploadResult:
        src = Path(path).expanduser()
        if not src.is_file():
            raise InvalidInput(f"{path} is not a file")
        kwargs.setdefault("filename", src.name)
        return self.upload(src.read_bytes(), phrase, recipient, **kwargs)

    def download(self, file_id, phrase: str, *, dest_dir: Optional[Path] = None) -> DownloadResult:
        """
        Check access, decrypt the pointer with this wallet's address, fetch, decrypt
        and verify the content against the registered digest.
        """
        file_id = parse_file_id(file_id)
        require_phrase(phrase)
        self._require_existing(file_id)

        if not self.ledger.check_access(file_id, self.address):
            raise UnauthorizedAccess(file_id, self.address)
        record = self.ledger.get_file(file_id)

        cid = decrypt_cid(record.encrypted_pointer, phrase, self.address)
        blob = self.store.fetch(cid)
        data = decrypt_bytes(blob, derive_key(phrase, self.address))
        if not verify_digest(data, record.integrity_digest):
            raise IntegrityMismatch(f"file {file_id} does not match its registered digest")

        target = None
        if dest_dir is not None:
            target_dir = Path(dest_dir).expanduser()
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / f"download_{file_id}"
            target.write_bytes(data)
        return DownloadResult(file_id, record.version, cid, data, target)

    def update_version(
        self,
        file_id,
        data: bytes,
        phrase: str,
        recipient: str,
        *,
        filename: str = "file",
    ) -> UpdateResult:
        file_id = parse_file_id(file_id)
        recipient = require_address(recipient, "recipient address")
        require_phrase(phrase)
        self._require_owner(file_id)

        cid, encrypted_cid, digest = self._seal(data, phrase, recipient, filename)
        self._transact(
            "addVersion",
            {"file_id": file_id, "new_encrypted_pointer": encrypted_cid, "new_integrity_digest": digest},
        )
        version = self.ledger.get_file(file_id).version
        logger.info("file %d updated to version %d", file_id, version)
        return UpdateResult(file_id, version, cid, digest)

    def share(self, file_id, grantee: str, key_envelope: Optional[Dict[str, Any]] = None) -> str:
        """
        Grant ``grantee`` access. When ``key_envelope`` is given it is pinned as
        JSON and its CID becomes the grant's key pointer. Returns the key pointer.
        """
        file_id = parse_file_id(file_id)
        grantee = require_address(grantee, "grantee address")
        self._require_owner(file_id)

        key_pointer = self.store.store_json(key_envelope) if key_envelope is not None else ""
        self._transact(
            "grantAccessKeyPointer",
            {"file_id": file_id, "grantee": grantee, "key_pointer": key_pointer},
        )
        return key_pointer

    def fetch_key_envelope(self, file_id) -> Optional[Dict[str, Any]]:
        """The key envelope granted to this wallet, if the owner pinned one."""
        file_id = parse_file_id(file_id)
        self._require_existing(file_id)
        grant = self.ledger.get_grant(file_id, self.address)
        if grant is None:
            raise UnauthorizedAccess(file_id, self.address)
        if not grant.key_pointer:
            return None
        return json.loads(self.store.fetch(grant.key_pointer))

    def revoke(self, file_id, grantee: str) -> Receipt:
        """
        Remove ``grantee``'s grant. Ownership is checked against the record first so
        a doomed transaction is never signed. The phrase-derived key is not rotated.
        """
        file_id = parse_file_id(file_id)
        grantee = require_address(grantee, "grantee address")
        self._require_owner(file_id)
        return self._transact("revokeAccess", {"file_id": file_id, "grantee": grantee})

    def list_files(self) -> Tuple[List[FileRecord], List[FileRecord]]:
        """
        Sweep ids [1, next id) and split them into (owned, accessible).
        Owned files are also accessible.
        """
        me = self.address.lower()
        owned: List[FileRecord] = []
        accessible: List[FileRecord] = []
        for file_id in range(1, self.ledger.next_file_id()):
            record = self.ledger.get_file(file_id)
            if not record.exists:
                continue
            if record.owner == me:
                owned.append(record)
            if self.ledger.check_access(file_id, me):
                accessible.append(record)
        return owned, accessible
