from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Wallet

_WALLET_FIELDS = {f.name for f in fields(Wallet)}


def _make_wallet(data: Dict[str, Any]) -> Wallet:
    """Build a Wallet, ignoring fields this version does not know about."""
    return Wallet(**{k: v for k, v in data.items() if k in _WALLET_FIELDS})


class IWalletStorage(ABC):
    @abstractmethod
    def get_wallet(self, address: str) -> Optional[Wallet]: ...
    @abstractmethod
    def save_wallet(self, wallet: Wallet) -> None: ...
    @abstractmethod
    def update_wallet(self, wallet: Wallet) -> None: ...
    @abstractmethod
    def get_all_wallets(self) -> List[Wallet]: ...


class JSONWalletStorage(IWalletStorage):
    def __init__(self, path: Path | str = "wallets.json"):
        self.path = Path(path)
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._save({"wallets": []})

    def _load(self) -> Dict[str, Any]:
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, data: Dict[str, Any]) -> None:
        fd, tmp = tempfile.mkstemp(prefix="wallets.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)

    def get_wallet(self, address: str) -> Optional[Wallet]:
        address = address.lower()
        for w in self._load()["wallets"]:
            if w["address"] == address:
                return _make_wallet(w)
        return None

    def save_wallet(self, wallet: Wallet) -> None:
        data = self._load()
        if any(w["address"] == wallet.address for w in data["wallets"]):
            raise ValueError("wallet already exists")
        data["wallets"].append(wallet.to_dict())
        self._save(data)

    def update_wallet(self, wallet: Wallet) -> None:
        data = self._load()
        for i, w in enumerate(data["wallets"]):
            if w["address"] == wallet.address:
                data["wallets"][i] = wallet.to_dict()
                self._save(data)
                return
        raise KeyError(wallet.address)

    def get_all_wallets(self) -> List[Wallet]:
        return [_make_wallet(w) for w in self._load()["wallets"]]
