from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict


def _iso(ts: int) -> str:
    """Consistent ISO-8601 rendering of a block timestamp (UTC, seconds precision)."""
    return datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class FileRecord:
    """
    Registry state for one logical file.

    Only the *current* encrypted pointer is kept. ``version`` counts updates; earlier
    pointers are overwritten and cannot be recovered through the registry.

    - `encrypted_pointer`: CID encrypted with the CID cipher (opaque base64)
    - `integrity_digest`: ``0x`` + SHA-256 hex of the current plaintext
    - `created_at`: block timestamp (unix seconds) of the registration
    """

    file_id: int
    owner: str
    encrypted_pointer: str
    integrity_digest: str
    created_at: int
    version: int = 1
    exists: bool = True

    @property
    def created_at_iso(self) -> str:
        return _iso(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        return cls(
            file_id=int(data["file_id"]),
            owner=data["owner"],
            encrypted_pointer=data["encrypted_pointer"],
            integrity_digest=data["integrity_digest"],
            created_at=int(data["created_at"]),
            version=int(data.get("version", 1)),
            exists=bool(data.get("exists", True)),
        )


@dataclass(frozen=True)
class AccessGrant:
    """
    Permission for one (file, address) pair.

    `key_pointer` is a CID of an out-of-band key envelope, or "" when none was supplied.
    """

    file_id: int
    grantee: str
    key_pointer: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RegistryEvent:
    """Log entry emitted by a successful mutation, e.g. FileRegistered(file_id, owner)."""

    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": dict(self.args)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryEvent":
        return cls(name=data["name"], args=dict(data.get("args", {})))
