"""Client orchestration over the content store, the ciphers and the ledger."""

from .validation import is_valid_address, parse_file_id, require_address, require_phrase
from .workflows import DownloadResult, FileShareClient, UpdateResult, UploadResult

__all__ = [
    "is_valid_address",
    "parse_file_id",
    "require_address",
    "require_phrase",
    "DownloadResult",
    "FileShareClient",
    "UpdateResult",
    "UploadResult",
]
