"""
Pinata pinning client.

Pins raw files (multipart, CID v1) and JSON documents, and fetches content back
through a gateway. The response field ``IpfsHash`` is the content identifier.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests

import settings
from errors import InvalidInput, NotFound, UploadFailed

from .base import ContentStore

logger = logging.getLogger(__name__)


class PinataContentStore(ContentStore):
    def __init__(
        self,
        jwt: Optional[str] = None,
        *,
        api_url: str = settings.PINATA_API_URL,
        gateway_url: str = settings.PINATA_GATEWAY_URL,
        timeout: Optional[float] = settings.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        jwt = jwt or settings.PINATA_JWT
        if not jwt:
            raise InvalidInput("PINATA_JWT is not set")
        self._jwt = jwt
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._jwt}"}

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request; transport failures surface as UploadFailed with no status code."""
        try:
            return getattr(self.http, method)(url, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method.upper(), url, exc)
            raise UploadFailed(None, str(exc)) from exc

    def _cid_from(self, response: requests.Response, what: str) -> str:
        if not 200 <= response.status_code < 300:
            logger.error("%s pin failed: %s", what, response.status_code)
            raise UploadFailed(response.status_code, response.text)
        try:
            cid = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError):
            raise UploadFailed(response.status_code, response.text) from None
        logger.info("%s pinned: %s", what, cid)
        return cid

    def store(self, data: bytes, filename: str = "file", mime_type: str = "application/octet-stream") -> str:
        response = self._request(
            "post",
            f"{self.api_url}/pinning/pinFileToIPFS",
            headers=self._headers(),
            files={"file": (filename, data, mime_type)},
            data={
                "pinataMetadata": json.dumps({"name": filename}),
                "pinataOptions": json.dumps({"cidVersion": 1}),
            },
            timeout=self.timeout,
        )
        return self._cid_from(response, "file")

    def store_json(self, obj: Any) -> str:
        response = self._request(
            "post",
            f"{self.api_url}/pinning/pinJSONToIPFS",
            headers={**self._headers(), "Content-Type": "application/json"},
            data=json.dumps(obj),
            timeout=self.timeout,
        )
        return self._cid_from(response, "JSON")

    def fetch(self, cid: str) -> bytes:
        response = self._request("get", f"{self.gateway_url}/{cid}", timeout=self.timeout)
        if response.status_code == 404:
            raise NotFound(cid, what="content")
        if not 200 <= response.status_code < 300:
            raise UploadFailed(response.status_code, response.text)
        return response.content
