"""Document stores and the domain configuration service built on them."""

from __future__ import annotations

import logging
import os

from formpilot import config
from formpilot.errors import StoreError
from formpilot.store.base import DocumentStore
from formpilot.store.memory import MemoryDocumentStore
from formpilot.store.service import DomainConfigService
from formpilot.store.sqlite import SqliteDocumentStore

log = logging.getLogger(__name__)

VALID_STORES: frozenset[str] = frozenset({"sqlite", "firebase", "memory"})


def get_store(name: str | None = None) -> DocumentStore:
    """Build the configured store backend (FORMPILOT_STORE, default sqlite)."""
    name = (name or config.store_backend()).lower().strip()
    if name == "sqlite":
        return SqliteDocumentStore(config.db_path())
    if name == "firebase":
        from formpilot.store.firebase import FirebaseRestStore

        return FirebaseRestStore(
            os.environ.get("FIREBASE_DATABASE_URL", ""),
            auth_token=os.environ.get("FIREBASE_AUTH_TOKEN") or os.environ.get("FIREBASE_API_KEY") or None,
        )
    if name == "memory":
        log.warning("Using in-memory store: nothing will be persisted")
        return MemoryDocumentStore()
    raise StoreError(f"Invalid store '{name}'. Supported stores: {', '.join(sorted(VALID_STORES))}")


def get_service(name: str | None = None) -> DomainConfigService:
    return DomainConfigService(get_store(name))


__all__ = [
    "DocumentStore",
    "DomainConfigService",
    "MemoryDocumentStore",
    "SqliteDocumentStore",
    "VALID_STORES",
    "get_service",
    "get_store",
]
