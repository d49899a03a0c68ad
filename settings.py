import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PINATA_JWT = os.getenv("PINATA_JWT")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud")
PINATA_GATEWAY_URL = os.getenv("PINATA_GATEWAY_URL", "https://gateway.pinata.cloud/ipfs")

# "pinata" or "local"; without a JWT there is nothing to pin to
CONTENT_STORE = os.getenv("CONTENT_STORE", "pinata" if PINATA_JWT else "local")
LOCAL_STORE_DIR = Path(os.getenv("LOCAL_STORE_DIR", "ipfs_store"))

LEDGER_DIR = Path(os.getenv("LEDGER_DIR", "ledger"))
WALLETS_PATH = Path(os.getenv("WALLETS_PATH", "wallets.json"))
DOWNLOAD_DIR = Path(os.getenv("DOWNLOAD_DIR", str(Path.home() / "Downloads"))).expanduser()

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
