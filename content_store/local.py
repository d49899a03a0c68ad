from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import settings
from crypto.integrity import sha256_hex
from errors import InvalidInput, NotFound

from .base import ContentStore

logger = logging.getLogger(__name__)

_CID_RE = re.compile(r"^[0-9a-f]{64}$")


def _canonical_bytes(obj: Any) -> bytes:
    """Same object, same bytes, same CID."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


class LocalContentStore(ContentStore):
    """
    Filesystem content-addressed store for offline use. The CID is the SHA-256
    hex of the stored bytes; objects are spread over two-character prefix dirs.
    """

    def __init__(self, root: Path | str = settings.LOCAL_STORE_DIR):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def object_path(self, cid: str) -> Path:
        if not _CID_RE.match(cid):
            raise InvalidInput(f"not a local CID: {cid!r}")
        return self.root / cid[:2] / cid

    def _put(self, data: bytes) -> str:
        cid = sha256_hex(data)
        dst = self.object_path(cid)
        if dst.exists():
            return cid
        dst.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f"{cid[:8]}.", suffix=".tmp", dir=str(dst.parent))
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, dst)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        logger.debug("stored %d bytes as %s", len(data), cid)
        return cid

    def store(self, data: bytes, filename: str = "file", mime_type: str = "application/octet-stream") -> str:
        return self._put(bytes(data))

    def store_json(self, obj: Any) -> str:
        return self._put(_canonical_bytes(obj))

    def fetch(self, cid: str) -> bytes:
        path = self.object_path(cid)
        if not path.exists():
            raise NotFound(cid, what="content")
        return path.read_bytes()
