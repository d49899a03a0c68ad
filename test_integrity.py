import pytest

from crypto.integrity import digest_to_bytes32, is_bytes32_digest, sha256_hex, verify_digest
from errors import InvalidInput

ABC = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
EMPTY = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_known_vectors():
    assert sha256_hex(b"abc") == ABC
    assert sha256_hex(b"") == EMPTY
    assert sha256_hex(bytearray(b"abc")) == ABC


def test_deterministic_and_fixed_width():
    data = b"\x00\x01" * 10_000
    assert sha256_hex(data) == sha256_hex(data)
    assert len(sha256_hex(data)) == 64
    assert sha256_hex(data) != sha256_hex(data + b"\x00")


def test_rejects_non_bytes():
    with pytest.raises(InvalidInput):
        sha256_hex("abc")


def test_bytes32_form():
    assert digest_to_bytes32(ABC) == "0x" + ABC
    assert digest_to_bytes32("0x" + ABC.upper()) == "0x" + ABC
    assert digest_to_bytes32("ff") == "0x" + "0" * 62 + "ff"
    assert is_bytes32_digest("0x" + ABC)
    assert not is_bytes32_digest(ABC)
    assert not is_bytes32_digest("0x" + ABC[:-1])


@pytest.mark.parametrize("bad", ["", "0x", "zz", "0x" + "a" * 65])
def test_bytes32_rejects_malformed(bad):
    with pytest.raises(InvalidInput):
        digest_to_bytes32(bad)


def test_verify_digest():
    assert verify_digest(b"abc", ABC)
    assert verify_digest(b"abc", "0x" + ABC.upper())
    assert not verify_digest(b"abd", ABC)
    assert not verify_digest(b"abc", "0x1234")
