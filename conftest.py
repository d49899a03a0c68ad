from pathlib import Path

import pytest

from accounts.models import UnlockedWallet
from client.workflows import FileShareClient
from content_store.local import LocalContentStore
from crypto.signatures import address_from_public_key, generate_keypair
from registry.ledger import Ledger

GENESIS = 1_700_000_000


def make_wallet() -> UnlockedWallet:
    private_pem, public_pem = generate_keypair()
    return UnlockedWallet(
        address=address_from_public_key(public_pem),
        public_key_pem=public_pem,
        private_key_pem=private_pem,
    )


@pytest.fixture(scope="session")
def owner() -> UnlockedWallet:
    return make_wallet()


@pytest.fixture(scope="session")
def recipient() -> UnlockedWallet:
    return make_wallet()


@pytest.fixture(scope="session")
def stranger() -> UnlockedWallet:
    return make_wallet()


@pytest.fixture
def ledger(tmp_path: Path) -> Ledger:
    return Ledger(tmp_path / "ledger", clock=lambda: GENESIS)


@pytest.fixture
def store(tmp_path: Path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "store")


@pytest.fixture
def owner_client(ledger, store, owner) -> FileShareClient:
    return FileShareClient(ledger, store, owner)


@pytest.fixture
def recipient_client(ledger, store, recipient) -> FileShareClient:
    return FileShareClient(ledger, store, recipient)


@pytest.fixture
def stranger_client(ledger, store, stranger) -> FileShareClient:
    return FileShareClient(ledger, store, stranger)
