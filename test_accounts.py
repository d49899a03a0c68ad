import json
import re

import pytest

from accounts.hashing import WalletPasswordHasher
from accounts.manager import WalletManager
from accounts.storage import JSONWalletStorage
from crypto.signatures import address_from_public_key, verify_payload
from errors import InvalidInput
from registry.ledger import Ledger


@pytest.fixture
def wallets(tmp_path):
    return WalletManager(JSONWalletStorage(tmp_path / "wallets.json"), WalletPasswordHasher())


def test_create_wallet(wallets, tmp_path):
    wallet = wallets.create("alice", "correct horse")
    assert re.fullmatch(r"0x[0-9a-f]{40}", wallet.address)
    assert wallet.address == address_from_public_key(wallets.public_key_pem(wallet))
    assert wallet.pwd_hash.startswith("$argon2")

    stored = json.loads((tmp_path / "wallets.json").read_text())
    assert stored["wallets"][0]["address"] == wallet.address
    assert "correct horse" not in json.dumps(stored)


@pytest.mark.parametrize("label, password", [("", "long enough"), ("   ", "long enough"), ("bob", "short")])
def test_create_rejects_bad_input(wallets, label, password):
    with pytest.raises(InvalidInput):
        wallets.create(label, password)


def test_unlock_and_sign(wallets):
    wallet = wallets.create("alice", "correct horse")
    unlocked = wallets.unlock(wallet.address.upper().replace("0X", "0x"), "correct horse")
    assert unlocked.address == wallet.address
    assert "PRIVATE KEY" not in repr(unlocked)

    tx = unlocked.sign_transaction("registerFile", {"encrypted_pointer": "P", "integrity_digest": "0x" + "00" * 32}, 0)
    assert verify_payload(tx.payload(), tx.signature, unlocked.public_key_pem)

    ledger = Ledger()
    assert ledger.submit(tx).wait().status == "confirmed"
    assert ledger.get_file(1).owner == wallet.address


def test_wrong_password(wallets):
    wallet = wallets.create("alice", "correct horse")
    assert wallets.authenticate(wallet.address, "wrong horse") is None
    with pytest.raises(InvalidInput):
        wallets.unlock(wallet.address, "wrong horse")
    with pytest.raises(InvalidInput):
        wallets.decrypt_private_key(wallet, "wrong horse")


def test_unknown_wallet(wallets):
    assert wallets.authenticate("0x" + "00" * 20, "whatever") is None
    with pytest.raises(InvalidInput):
        wallets.unlock("0x" + "00" * 20, "whatever")
    with pytest.raises(InvalidInput):
        wallets.get_wallet("alice")


def test_wallets_persist_across_instances(wallets, tmp_path):
    a = wallets.create("alice", "correct horse")
    b = wallets.create("bob", "battery staple")
    reopened = WalletManager(JSONWalletStorage(tmp_path / "wallets.json"), WalletPasswordHasher())
    assert {w.address for w in reopened.list_wallets()} == {a.address, b.address}
    assert reopened.unlock(b.address, "battery staple").address == b.address


def test_duplicate_wallet_rejected(tmp_path, wallets):
    wallet = wallets.create("alice", "correct horse")
    with pytest.raises(ValueError):
        JSONWalletStorage(tmp_path / "wallets.json").save_wallet(wallet)
