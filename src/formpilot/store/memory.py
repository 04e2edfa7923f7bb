"""In-process document store, used for dry runs and tests."""

from __future__ import annotations

import copy
import threading

from formpilot.store.base import DocumentStore, merge_documents


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._docs: dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> dict | None:
        with self._lock:
            doc = self._docs.get(path)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, path: str, doc: dict, merge: bool = False) -> None:
        with self._lock:
            new = merge_documents(self._docs.get(path), doc) if merge else doc
            self._docs[path] = copy.deepcopy(new)

    def delete(self, path: str) -> None:
        with self._lock:
            self._docs.pop(path, None)

    def list(self, collection: str) -> list[dict]:
        prefix = collection.rstrip("/") + "/"
        with self._lock:
            return [
                copy.deepcopy(doc)
                for path, doc in self._docs.items()
                if path.startswith(prefix) and "/" not in path[len(prefix):]
            ]
