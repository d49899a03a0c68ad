import base64

import pytest

from crypto.cid_cipher import NONCE_SIZE, TAG_SIZE, decrypt_cid, derive_key, encrypt_cid
from crypto.file_cipher import decrypt_bytes, encrypt_bytes
from errors import DecryptionFailed, InvalidInput

CID = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"
ADDR_X = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
ADDR_Y = "0x8ba1f109551bD432803012645Ac136ddd64DBA72"


def test_round_trip():
    for cid in (CID, "Qm" + "a" * 44, "x", "ünïcødé-cid"):
        assert decrypt_cid(encrypt_cid(cid, "phrase", ADDR_X), "phrase", ADDR_X) == cid


def test_fresh_nonce_every_call():
    a = encrypt_cid(CID, "phrase", ADDR_X)
    b = encrypt_cid(CID, "phrase", ADDR_X)
    assert a != b
    assert base64.b64decode(a)[:NONCE_SIZE] != base64.b64decode(b)[:NONCE_SIZE]


def test_wire_format_is_nonce_ciphertext_tag():
    raw = base64.b64decode(encrypt_cid(CID, "phrase", ADDR_X))
    assert len(raw) == NONCE_SIZE + len(CID.encode("utf-8")) + TAG_SIZE


def test_address_case_is_normalised():
    assert derive_key("phrase", ADDR_X) == derive_key("phrase", ADDR_X.lower())
    assert derive_key("phrase", ADDR_X) == derive_key("phrase", ADDR_X.upper().replace("0X", "0x"))
    enc = encrypt_cid(CID, "phrase", ADDR_X.lower())
    assert decrypt_cid(enc, "phrase", ADDR_X) == CID


def test_derive_key_is_sha256_of_phrase_and_lower_address():
    import hashlib

    expected = hashlib.sha256(("phrase" + ADDR_X.lower()).encode("utf-8")).digest()
    assert derive_key("phrase", ADDR_X) == expected
    assert len(derive_key("phrase", ADDR_X)) == 32


@pytest.mark.parametrize("phrase, address", [("", ADDR_X), ("phrase", ""), (None, ADDR_X)])
def test_derive_key_rejects_empty_inputs(phrase, address):
    with pytest.raises(InvalidInput):
        derive_key(phrase, address)


def test_empty_cid_rejected():
    with pytest.raises(InvalidInput):
        encrypt_cid("", "phrase", ADDR_X)


def test_wrong_phrase_fails():
    enc = encrypt_cid(CID, "phraseA", ADDR_X)
    with pytest.raises(DecryptionFailed):
        decrypt_cid(enc, "phraseB", ADDR_X)


def test_wrong_address_fails():
    enc = encrypt_cid(CID, "p", ADDR_X)
    with pytest.raises(DecryptionFailed):
        decrypt_cid(enc, "p", ADDR_Y)


def test_failures_do_not_say_which_factor_was_wrong():
    enc = encrypt_cid(CID, "p", ADDR_X)
    with pytest.raises(DecryptionFailed) as wrong_phrase:
        decrypt_cid(enc, "q", ADDR_X)
    with pytest.raises(DecryptionFailed) as wrong_address:
        decrypt_cid(enc, "p", ADDR_Y)
    assert str(wrong_phrase.value) == str(wrong_address.value)


def test_any_flipped_bit_is_detected():
    raw = bytearray(base64.b64decode(encrypt_cid(CID, "phrase", ADDR_X)))
    for i in range(len(raw)):
        for bit in (0, 3, 7):
            tampered = bytearray(raw)
            tampered[i] ^= 1 << bit
            with pytest.raises(DecryptionFailed):
                decrypt_cid(base64.b64encode(bytes(tampered)).decode("ascii"), "phrase", ADDR_X)


def test_edited_encoding_is_detected():
    enc = encrypt_cid(CID, "phrase", ADDR_X)
    for i in range(len(enc)):
        if enc[i] == "=":
            continue
        replacement = "A" if enc[i] != "A" else "B"
        with pytest.raises(DecryptionFailed):
            decrypt_cid(enc[:i] + replacement + enc[i + 1:], "phrase", ADDR_X)


@pytest.mark.parametrize("garbage", ["", "not base64!!", "AAAA", base64.b64encode(b"short").decode()])
def test_garbage_input_fails_cleanly(garbage):
    with pytest.raises(DecryptionFailed):
        decrypt_cid(garbage, "phrase", ADDR_X)


def test_file_cipher_round_trip_and_tamper():
    key = derive_key("phrase", ADDR_X)
    blob = encrypt_bytes(b"file content", key)
    assert decrypt_bytes(blob, key) == b"file content"

    tampered = bytearray(blob)
    tampered[-1] ^= 1
    with pytest.raises(DecryptionFailed):
        decrypt_bytes(bytes(tampered), key)
    with pytest.raises(DecryptionFailed):
        decrypt_bytes(blob, derive_key("other", ADDR_X))


def test_file_cipher_rejects_empty_plaintext_and_bad_keys():
    with pytest.raises(InvalidInput):
        encrypt_bytes(b"", derive_key("phrase", ADDR_X))
    with pytest.raises(InvalidInput):
        encrypt_bytes(b"data", b"short key")
