"""Input checks done before any pinning or ledger call."""

import re

from errors import InvalidInput

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_FILE_ID_RE = re.compile(r"^\d+$")


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and bool(_ADDRESS_RE.match(address))


def require_address(address: str, what: str = "address") -> str:
    address = (address or "").strip()
    if not is_valid_address(address):
        raise InvalidInput(f"enter a valid {what} (0x followed by 40 hex characters)")
    return address


def parse_file_id(value) -> int:
    """Accept an int or a decimal string; file ids start at 1."""
    if isinstance(value, bool):
        raise InvalidInput("file id must be a positive integer")
    if isinstance(value, int):
        file_id = value
    else:
        text = str(value or "").strip()
        if not _FILE_ID_RE.match(text):
            raise InvalidInput("file id must be a positive integer")
        file_id = int(text)
    if file_id < 1:
        raise InvalidInput("file id must be a positive integer")
    return file_id


def require_phrase(phrase: str) -> str:
    if not phrase:
        raise InvalidInput("enter the encryption phrase")
    return phrase
