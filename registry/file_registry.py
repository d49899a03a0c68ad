"""
File Registry

The authoritative state machine behind the ledger: file records keyed by integer
id, per-(file, address) access grants and the next-id counter.

A file id is either *nonexistent* (id >= next id) or *registered*; there is no
way back. Every mutation validates everything it needs before touching state, so
a call either applies completely or raises and leaves the registry unchanged.
Serialisation of calls is the ledger's job, not this class's.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

from crypto.integrity import is_bytes32_digest
from errors import InvalidInput, NotFound, NotOwner

from .models import AccessGrant, FileRecord, RegistryEvent

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

FILE_REGISTERED = "FileRegistered"
VERSION_ADDED = "VersionAdded"
ACCESS_GRANTED = "AccessGranted"
ACCESS_REVOKED = "AccessRevoked"


def canon_address(address: str) -> str:
    """Validate an address and return its lower-case form."""
    if not isinstance(address, str) or not ADDRESS_RE.match(address):
        raise InvalidInput(f"invalid address: {address!r}")
    return address.lower()


def _check_file_id(file_id: Any) -> int:
    if isinstance(file_id, bool) or not isinstance(file_id, int):
        raise InvalidInput(f"file id must be an integer, got {file_id!r}")
    return file_id


def _check_pointer(pointer: Any, what: str = "encrypted pointer") -> str:
    if not isinstance(pointer, str):
        raise InvalidInput(f"{what} must be a string")
    return pointer


def _check_digest(digest: Any) -> str:
    if not is_bytes32_digest(digest):
        raise InvalidInput(f"integrity digest must be 0x followed by 64 hex characters, got {digest!r}")
    return digest.lower()


class FileRegistry:
    def __init__(self) -> None:
        self._files: Dict[int, FileRecord] = {}
        self._grants: Dict[int, Dict[str, str]] = {}
        self._owned: Dict[str, List[int]] = {}
        self._next_id = 1
        self._events: List[RegistryEvent] = []

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _emit(self, name: str, **args: Any) -> None:
        self._events.append(RegistryEvent(name=name, args=args))

    def drain_events(self) -> List[RegistryEvent]:
        """Hand over the events emitted since the last drain."""
        events, self._events = self._events, []
        return events

    def _record(self, file_id: int) -> FileRecord:
        record = self._files.get(file_id)
        if record is None or not record.exists:
            raise NotFound(file_id)
        return record

    def _owned_record(self, file_id: int, caller: str) -> FileRecord:
        record = self._record(file_id)
        if record.owner != caller:
            raise NotOwner(file_id, caller)
        return record

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def register_file(self, caller: str, encrypted_pointer: str, integrity_digest: str, *, timestamp: int) -> int:
        """Create a version-1 record owned by ``caller`` and return its id."""
        owner = canon_address(caller)
        pointer = _check_pointer(encrypted_pointer)
        digest = _check_digest(integrity_digest)

        file_id = self._next_id
        self._files[file_id] = FileRecord(
            file_id=file_id,
            owner=owner,
            encrypted_pointer=pointer,
            integrity_digest=digest,
            created_at=int(timestamp),
        )
        self._owned.setdefault(owner, []).append(file_id)
        self._next_id += 1

        logger.debug("registered file %d for %s", file_id, owner)
        self._emit(FILE_REGISTERED, file_id=file_id, owner=owner)
        return file_id

    def add_version(self, caller: str, file_id: int, new_encrypted_pointer: str, new_integrity_digest: str) -> int:
        """Replace pointer and digest together and bump the version. Returns the new version."""
        caller = canon_address(caller)
        file_id = _check_file_id(file_id)
        pointer = _check_pointer(new_encrypted_pointer)
        digest = _check_digest(new_integrity_digest)
        record = self._owned_record(file_id, caller)

        updated = replace(
            record,
            encrypted_pointer=pointer,
            integrity_digest=digest,
            version=record.version + 1,
        )
        self._files[file_id] = updated

        logger.debug("file %d now at version %d", file_id, updated.version)
        self._emit(VERSION_ADDED, file_id=file_id, version=updated.version)
        return updated.version

    def grant_access_key_pointer(self, caller: str, file_id: int, grantee: str, key_pointer: str = "") -> None:
        """Grant ``grantee`` access. Re-granting overwrites the key pointer."""
        caller = canon_address(caller)
        file_id = _check_file_id(file_id)
        grantee = canon_address(grantee)
        key_pointer = _check_pointer(key_pointer, "key pointer")
        self._owned_record(file_id, caller)

        self._grants.setdefault(file_id, {})[grantee] = key_pointer
        self._emit(ACCESS_GRANTED, file_id=file_id, grantee=grantee, key_pointer=key_pointer)

    def revoke_access(self, caller: str, file_id: int, grantee: str) -> None:
        """Remove a grant. Revoking a grant that does not exist is a no-op."""
        caller = canon_address(caller)
        file_id = _check_file_id(file_id)
        grantee = canon_address(grantee)
        self._owned_record(file_id, caller)

        grants = self._grants.get(file_id)
        if grants is not None:
            grants.pop(grantee, None)
            if not grants:
                del self._grants[file_id]
        self._emit(ACCESS_REVOKED, file_id=file_id, grantee=grantee)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def check_access(self, file_id: int, address: str) -> bool:
        """
        True for the owner and for granted addresses. Unknown ids are simply
        not accessible (default deny), they do not raise.
        """
        address = canon_address(address)
        record = self._files.get(_check_file_id(file_id))
        if record is None or not record.exists:
            return False
        if record.owner == address:
            return True
        return address in self._grants.get(file_id, {})

    def get_file(self, file_id: int) -> FileRecord:
        """The full record, pointer included, for any caller."""
        return self._record(_check_file_id(file_id))

    def get_grant(self, file_id: int, grantee: str) -> Optional[AccessGrant]:
        grantee = canon_address(grantee)
        self._record(_check_file_id(file_id))
        grants = self._grants.get(file_id, {})
        if grantee not in grants:
            return None
        return AccessGrant(file_id=file_id, grantee=grantee, key_pointer=grants[grantee])

    def grantees(self, file_id: int) -> List[str]:
        self._record(_check_file_id(file_id))
        return sorted(self._grants.get(file_id, {}))

    def next_file_id(self) -> int:
        return self._next_id

    def files_owned_by(self, address: str) -> List[int]:
        """Secondary owner index; the id-range sweep gives the same answer."""
        return list(self._owned.get(canon_address(address), []))

    # ------------------------------------------------------------------
    # materialized layout
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "next_file_id": self._next_id,
            "files": [self._files[i].to_dict() for i in sorted(self._files)],
            "access": {
                str(file_id): dict(sorted(grants.items()))
                for file_id, grants in sorted(self._grants.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRegistry":
        registry = cls()
        for item in data.get("files", []):
            record = FileRecord.from_dict(item)
            registry._files[record.file_id] = record
            registry._owned.setdefault(record.owner, []).append(record.file_id)
        for file_id, grants in data.get("access", {}).items():
            registry._grants[int(file_id)] = dict(grants)
        registry._next_id = int(data.get("next_file_id", len(registry._files) + 1))
        return registry
