"""
Command-line interface for the phrase-bound file registry.

Provides a text-based menu for:
- Wallet creation and unlocking
- File upload (encrypt, pin, register, auto-grant)
- File download (access check, decrypt, integrity check)
- Version updates, sharing and revoking
- Listing owned and accessible files
"""

import time
from getpass import getpass
from pathlib import Path
from typing import Optional

import settings
from accounts.hashing import WalletPasswordHasher
from accounts.manager import WalletManager
from accounts.models import UnlockedWallet
from accounts.storage import JSONWalletStorage
from client.workflows import FileShareClient
from content_store import ContentStore, LocalContentStore, PinataContentStore
from errors import FileShareError
from logging_config import setup_logging
from registry.ledger import Ledger


def create_wallet_manager() -> WalletManager:
    return WalletManager(JSONWalletStorage(settings.WALLETS_PATH), WalletPasswordHasher())


def create_content_store() -> ContentStore:
    if settings.CONTENT_STORE == "pinata":
        return PinataContentStore()
    return LocalContentStore(settings.LOCAL_STORE_DIR)


def print_menu(address: str = "") -> None:
    print("\n" + "=" * 56)
    if address:
        print(f"  🔐 File Registry - Connected as: {address}")
    else:
        print("  🔐 File Registry")
    print("=" * 56)

    if not address:
        print("  1) Create wallet")
        print("  2) Unlock wallet")
        print("  0) Quit")
    else:
        print("  1) Upload & register file")
        print("  2) Download file")
        print("  3) My files")
        print("  4) Update file version")
        print("  5) Share file")
        print("  6) Revoke access")
        print("  7) Shared key for a file")
        print("  8) Lock wallet")
        print("  0) Quit")
    print("=" * 56)


def handle_create(wallets: WalletManager) -> None:
    print("\n📝 Create Wallet")
    label = input("Label: ").strip()
    password = getpass("Password: ")
    confirm = getpass("Confirm password: ")
    if password != confirm:
        print("❌ Passwords don't match")
        return

    try:
        wallet = wallets.create(label, password)
        print(f"✅ Wallet created: {wallet.address}")
    except FileShareError as e:
        print(f"❌ Error: {e}")


def handle_unlock(wallets: WalletManager) -> Optional[UnlockedWallet]:
    print("\n🔑 Unlock Wallet")
    known = wallets.list_wallets()
    for w in known:
        print(f"   • {w.address} ({w.label})")
    address = input("Address: ").strip()
    password = getpass("Password: ")

    try:
        unlocked = wallets.unlock(address, password)
        print(f"✅ Connected as {unlocked.address}")
        return unlocked
    except FileShareError as e:
        print(f"❌ {e}")
        return None


def handle_upload(client: FileShareClient) -> None:
    print("\n📤 Upload & Register File")
    filepath = input("File path: ").strip()
    phrase = getpass("Encryption phrase: ")
    recipient = input("Recipient address (0x...): ").strip()

    try:
        result = client.upload_path(filepath, phrase, recipient)
    except FileShareError as e:
        print(f"❌ Upload failed: {e}")
        return

    print("\n✅ File registered!")
    print(f"   🔑 File ID: {result.file_id}")
    print(f"   📦 CID: {result.cid}")
    print(f"   🧾 Digest: {result.integrity_digest}")
    if result.granted:
        print(f"   🔗 Access granted to {recipient}")
    else:
        print(f"   ⚠️ Registered but automatic grant failed: {result.grant_error}")


def handle_download(client: FileShareClient) -> None:
    print("\n📥 Download File")
    file_id = input("File ID: ").strip()
    phrase = getpass("Phrase used by the uploader: ")

    try:
        result = client.download(file_id, phrase, dest_dir=settings.DOWNLOAD_DIR)
    except FileShareError as e:
        print(f"❌ Download failed: {e}")
        return

    print("\n✅ File downloaded and verified!")
    print(f"   📁 Saved to: {result.path}")
    print(f"   🔢 Version: {result.version} | {len(result.data):,} bytes")


def handle_list(client: FileShareClient) -> None:
    print("\n📁 Scanning registry...")
    owned, accessible = client.list_files()

    print(f"\nOwned ({len(owned)}):")
    for r in owned:
        print(f"   • #{r.file_id} v{r.version} | {r.created_at_iso} | {r.encrypted_pointer[:16]}...")

    shared = [r for r in accessible if r.owner != client.address]
    print(f"\nShared with me ({len(shared)}):")
    for r in shared:
        print(f"   • #{r.file_id} v{r.version} from {r.owner}")


def handle_update(client: FileShareClient) -> None:
    print("\n🔄 Update File Version")
    file_id = input("File ID: ").strip()
    filepath = input("New file path: ").strip()
    phrase = getpass("Encryption phrase: ")
    recipient = input("Recipient address (0x...): ").strip()

    path = Path(filepath).expanduser()
    if not path.is_file():
        print(f"❌ File not found: {filepath}")
        return

    try:
        result = client.update_version(file_id, path.read_bytes(), phrase, recipient, filename=path.name)
        print(f"✅ File {result.file_id} is now at version {result.version}")
    except FileShareError as e:
        print(f"❌ Update failed: {e}")


def handle_share(client: FileShareClient) -> None:
    print("\n🔗 Share File")
    file_id = input("File ID: ").strip()
    grantee = input("Grantee address (0x...): ").strip()
    key_text = input("Key for the grantee (optional, Enter to skip): ").strip()

    envelope = None
    if key_text:
        envelope = {"encryptedKey": key_text, "createdAt": int(time.time() * 1000), "owner": client.address}

    try:
        key_pointer = client.share(file_id, grantee, envelope)
        print(f"✅ Access granted to {grantee}")
        if key_pointer:
            print(f"   🗝️ Key CID: {key_pointer}")
    except FileShareError as e:
        print(f"❌ Share failed: {e}")


def handle_shared_key(client: FileShareClient) -> None:
    print("\n🗝️ Shared Key")
    file_id = input("File ID: ").strip()

    try:
        envelope = client.fetch_key_envelope(file_id)
    except FileShareError as e:
        print(f"❌ Lookup failed: {e}")
        return

    if envelope is None:
        print("   No key was attached to your grant")
        return
    print(f"   Key: {envelope.get('encryptedKey', '')}")
    if envelope.get("owner"):
        print(f"   From: {envelope['owner']}")


def handle_revoke(client: FileShareClient) -> None:
    print("\n🚫 Revoke Access")
    file_id = input("File ID: ").strip()
    grantee = input("Grantee address (0x...): ").strip()

    confirm = input(f"Revoke access for {grantee} to file {file_id}? (yes/no): ").strip().lower()
    if confirm != "yes":
        print("   Cancelled")
        return

    try:
        client.revoke(file_id, grantee)
        print(f"✅ Access revoked for {grantee[:10]}... on file {file_id}")
        print("   Note: anyone who kept the phrase and pointer can still decrypt the current version.")
    except FileShareError as e:
        print(f"❌ Revoke failed: {e}")


def main():
    setup_logging(settings.LOG_LEVEL)
    wallets = create_wallet_manager()
    ledger = Ledger(settings.LEDGER_DIR)
    store = create_content_store()
    client: Optional[FileShareClient] = None

    print("\n🔐 Phrase-Bound File Registry")
    print("   Encrypted • Pinned • Registered\n")

    while True:
        print_menu(client.address if client else "")
        choice = input("> ").strip()

        if client is None:
            if choice == "1":
                handle_create(wallets)
            elif choice == "2":
                unlocked = handle_unlock(wallets)
                if unlocked:
                    client = FileShareClient(ledger, store, unlocked)
            elif choice == "0":
                print("\nGoodbye! 👋")
                break
            else:
                print("❌ Invalid choice")
        else:
            if choice == "1":
                handle_upload(client)
            elif choice == "2":
                handle_download(client)
            elif choice == "3":
                handle_list(client)
            elif choice == "4":
                handle_update(client)
            elif choice == "5":
                handle_share(client)
            elif choice == "6":
                handle_revoke(client)
            elif choice == "7":
                handle_shared_key(client)
            elif choice == "8":
                print(f"\n👋 Locked {client.address}")
                client = None
            elif choice == "0":
                print("\nGoodbye! 👋")
                break
            else:
                print("❌ Invalid choice")


if __name__ == "__main__":
    main()
