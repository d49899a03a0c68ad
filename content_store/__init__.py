"""Content Store adapters: pin bytes or JSON, get a content identifier back."""

from .base import ContentStore
from .local import LocalContentStore
from .pinata import PinataContentStore

__all__ = [
    "ContentStore",
    "LocalContentStore",
    "PinataContentStore",
]
