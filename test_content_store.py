import json
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from content_store.local import LocalContentStore
from content_store.pinata import PinataContentStore
from crypto.integrity import sha256_hex
from errors import InvalidInput, NotFound, UploadFailed


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.text = json.dumps(payload) if payload is not None else content.decode("utf-8", "replace")

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_post(url, **kwargs):
        recorded.append(("POST", url, kwargs))
        return FakeResponse(200, {"IpfsHash": "bafyfake", "PinSize": 3})

    def fake_get(url, **kwargs):
        recorded.append(("GET", url, kwargs))
        return FakeResponse(200, content=b"blob")

    monkeypatch.setattr(requests, "post", fake_post)
    monkeypatch.setattr(requests, "get", fake_get)
    return recorded


@pytest.fixture
def pinata():
    return PinataContentStore("jwt-token", api_url="https://pin.example/", gateway_url="https://gw.example/ipfs", timeout=5)


# ---------------------------------------------------------------------------
# local store
# ---------------------------------------------------------------------------

def test_local_store_and_fetch(store):
    cid = store.store(b"hello", "hello.txt", "text/plain")
    assert cid == sha256_hex(b"hello")
    assert store.fetch(cid) == b"hello"
    assert store.object_path(cid).parent.name == cid[:2]


def test_local_store_is_idempotent(store):
    assert store.store(b"same") == store.store(b"same")


def test_local_json_is_canonical(store):
    a = store.store_json({"b": 1, "a": [1, 2]})
    b = store.store_json({"a": [1, 2], "b": 1})
    assert a == b
    assert json.loads(store.fetch(a)) == {"a": [1, 2], "b": 1}


def test_local_fetch_missing(store):
    with pytest.raises(NotFound):
        store.fetch("0" * 64)
    with pytest.raises(InvalidInput):
        store.fetch("../../etc/passwd")


def test_local_concurrent_writers_of_one_cid(store):
    payload = b"x" * 65536
    with ThreadPoolExecutor(max_workers=8) as pool:
        cids = set(pool.map(lambda _: store.store(payload), range(16)))
    assert len(cids) == 1
    cid = cids.pop()
    assert store.fetch(cid) == payload
    assert [p.name for p in store.object_path(cid).parent.iterdir()] == [cid]


def test_local_store_reopens(tmp_path):
    cid = LocalContentStore(tmp_path / "cas").store(b"kept")
    assert LocalContentStore(tmp_path / "cas").fetch(cid) == b"kept"


# ---------------------------------------------------------------------------
# pinata
# ---------------------------------------------------------------------------

def test_pinata_requires_jwt(monkeypatch):
    monkeypatch.setattr("settings.PINATA_JWT", None)
    with pytest.raises(InvalidInput):
        PinataContentStore()


def test_pinata_store_file(pinata, calls):
    assert pinata.store(b"abc", "a.bin", "application/octet-stream") == "bafyfake"
    method, url, kwargs = calls[0]
    assert (method, url) == ("POST", "https://pin.example/pinning/pinFileToIPFS")
    assert kwargs["headers"]["Authorization"] == "Bearer jwt-token"
    assert kwargs["files"]["file"] == ("a.bin", b"abc", "application/octet-stream")
    assert json.loads(kwargs["data"]["pinataMetadata"]) == {"name": "a.bin"}
    assert json.loads(kwargs["data"]["pinataOptions"]) == {"cidVersion": 1}
    assert kwargs["timeout"] == 5


def test_pinata_store_json(pinata, calls):
    assert pinata.store_json({"encryptedKey": "ab"}) == "bafyfake"
    method, url, kwargs = calls[0]
    assert url == "https://pin.example/pinning/pinJSONToIPFS"
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert json.loads(kwargs["data"]) == {"encryptedKey": "ab"}


def test_pinata_fetch(pinata, calls):
    assert pinata.fetch("bafyfake") == b"blob"
    assert calls[0][1] == "https://gw.example/ipfs/bafyfake"


@pytest.mark.parametrize("status", [400, 401, 500])
def test_pinata_failure_raises_upload_failed(pinata, monkeypatch, status):
    monkeypatch.setattr(requests, "post", lambda url, **kw: FakeResponse(status, {"error": "nope"}))
    with pytest.raises(UploadFailed) as exc:
        pinata.store(b"abc")
    assert exc.value.status_code == status
    assert "nope" in exc.value.body


def test_pinata_success_without_cid_is_a_failure(pinata, monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, **kw: FakeResponse(200, {"unexpected": True}))
    with pytest.raises(UploadFailed):
        pinata.store_json({})


def test_pinata_fetch_errors(pinata, monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, **kw: FakeResponse(404, content=b"missing"))
    with pytest.raises(NotFound):
        pinata.fetch("bafymissing")
    monkeypatch.setattr(requests, "get", lambda url, **kw: FakeResponse(502, content=b"bad gateway"))
    with pytest.raises(UploadFailed):
        pinata.fetch("bafymissing")


@pytest.mark.parametrize("error", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_pinata_transport_errors_raise_upload_failed(pinata, monkeypatch, error):
    def fail(url, **kwargs):
        raise error

    monkeypatch.setattr(requests, "post", fail)
    monkeypatch.setattr(requests, "get", fail)
    with pytest.raises(UploadFailed) as exc:
        pinata.store(b"abc")
    assert exc.value.status_code is None
    with pytest.raises(UploadFailed):
        pinata.store_json({"a": 1})
    with pytest.raises(UploadFailed):
        pinata.fetch("bafyfake")
