"""Firebase Realtime Database document store over its REST API.

    GET    {base}/{path}.json   read
    PUT    {base}/{path}.json   replace
    PATCH  {base}/{path}.json   merge top-level children
    DELETE {base}/{path}.json   remove

Realtime Database keys may not contain ``.``, so path segments are encoded
(``boards.greenhouse.io`` is stored as ``boards,greenhouse,io``).
"""

from __future__ import annotations

import logging

import httpx

from formpilot.errors import StoreError
from formpilot.store.base import DocumentStore

log = logging.getLogger(__name__)

_FORBIDDEN = {".": ",", "$": "%24", "#": "%23", "[": "%5B", "]": "%5D"}


def encode_key(segment: str) -> str:
    for char, replacement in _FORBIDDEN.items():
        segment = segment.replace(char, replacement)
    return segment


def encode_path(path: str) -> str:
    return "/".join(encode_key(s) for s in path.strip("/").split("/"))


class FirebaseRestStore(DocumentStore):
    def __init__(
        self,
        database_url: str,
        auth_token: str | None = None,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not database_url:
            raise StoreError("Firebase store requires FIREBASE_DATABASE_URL")
        self.base_url = database_url.rstrip("/")
        self.auth_token = auth_token
        self._client = client or httpx.Client(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{encode_path(path)}.json"

    def _params(self) -> dict:
        return {"auth": self.auth_token} if self.auth_token else {}

    def _request(self, method: str, path: str, doc: dict | None = None) -> httpx.Response:
        try:
            resp = self._client.request(method, self._url(path), params=self._params(), json=doc)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"{method} {path} failed: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e
        return resp

    def get(self, path: str) -> dict | None:
        data = self._request("GET", path).json()
        return data if isinstance(data, dict) else None

    def set(self, path: str, doc: dict, merge: bool = False) -> None:
        self._request("PATCH" if merge else "PUT", path, doc)
        log.debug("Wrote %s (%s)", path, "merge" if merge else "replace")

    def delete(self, path: str) -> None:
        self._request("DELETE", path)

    def list(self, collection: str) -> list[dict]:
        data = self._request("GET", collection).json()
        if not isinstance(data, dict):
            return []
        return [doc for doc in data.values() if isinstance(doc, dict)]

    def close(self) -> None:
        self._client.close()
