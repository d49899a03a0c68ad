"""
Error taxonomy shared by the registry, the ciphers, the content stores and the client.

Every error derives from FileShareError so callers (the CLI in particular) can catch
one type, while the secondary bases keep them usable with ordinary ``except ValueError``
or ``except PermissionError`` handlers.
"""

from typing import Optional


class FileShareError(Exception):
    """Base class for all application errors."""


class NotFound(FileShareError, LookupError):
    """The file id has no record (id < 1 or id >= next file id), or a CID is not in the store."""

    def __init__(self, file_id, what: str = "file"):
        super().__init__(f"{what} {file_id} does not exist")
        self.file_id = file_id


class NotOwner(FileShareError, PermissionError):
    """The caller is not allowed to mutate this file."""

    def __init__(self, file_id: int, caller: str):
        super().__init__(f"{caller} is not the owner of file {file_id}")
        self.file_id = file_id
        self.caller = caller


class InvalidInput(FileShareError, ValueError):
    """Malformed address, phrase, file id, digest or credential."""


class DecryptionFailed(FileShareError):
    """
    Authenticated decryption failed.

    Deliberately opaque: a wrong phrase, a wrong address and a corrupted blob all
    produce the same message.
    """

    def __init__(self, message: str = "decryption failed: wrong phrase, wrong address or corrupted data"):
        super().__init__(message)


class UploadFailed(FileShareError):
    """The content store rejected a request or could not be reached."""

    def __init__(self, status_code: Optional[int], body: str):
        status = status_code if status_code is not None else "no response"
        super().__init__(f"content store request failed: {status}\n{body}")
        self.status_code = status_code
        self.body = body


class UnauthorizedAccess(FileShareError, PermissionError):
    """checkAccess returned false for the connected address."""

    def __init__(self, file_id: int, address: str):
        super().__init__(f"{address} is not authorized for file {file_id}")
        self.file_id = file_id
        self.address = address


class IntegrityMismatch(FileShareError, ValueError):
    """Downloaded plaintext does not match the registered digest."""


class TransactionRejected(FileShareError):
    """The ledger refused a transaction before it reached the registry."""

    def __init__(self, reason: str, tx_hash: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash
