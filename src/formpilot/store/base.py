"""Document store abstraction: get / set (optionally merged) / delete by path."""

from __future__ import annotations

from abc import ABC, abstractmethod


class DocumentStore(ABC):
    """Stores JSON-compatible dicts addressed by ``collection/key`` paths.

    ``set(..., merge=True)`` replaces only the top-level keys present in the
    new document and keeps the others. Writes are last-write-wins; there is
    no transaction or compare-and-set.
    """

    @abstractmethod
    def get(self, path: str) -> dict | None:
        ...

    @abstractmethod
    def set(self, path: str, doc: dict, merge: bool = False) -> None:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def list(self, collection: str) -> list[dict]:
        """All documents directly under ``collection``."""
        ...


def merge_documents(existing: dict | None, doc: dict) -> dict:
    merged = dict(existing or {})
    merged.update(doc)
    return merged
