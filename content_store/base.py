from abc import ABC, abstractmethod
from typing import Any


class ContentStore(ABC):
    """
    Content-addressed storage. ``store`` and ``store_json`` either return a content
    identifier or raise UploadFailed; no retries are attempted here.
    """

    @abstractmethod
    def store(self, data: bytes, filename: str = "file", mime_type: str = "application/octet-stream") -> str: ...

    @abstractmethod
    def store_json(self, obj: Any) -> str: ...

    @abstractmethod
    def fetch(self, cid: str) -> bytes: ...
