"""Tests for document stores and DomainConfigService.

@file test_store.py
@description Memory/SQLite/Firebase backends share one contract; the
             service round-trips DomainConfig documents with real datetimes.
             Firebase runs against httpx.MockTransport, never the network.
"""

from __future__ import annotations

import json
from datetime import datetime

import httpx
import pytest

from formpilot.errors import DomainNotFound, SelectorNotFound, StoreError, TemplateNotFound
from formpilot.models import CommandTemplate, SelectorDefinition, StructuredCommand
from formpilot.models import TestUrl as UrlEntry
from formpilot.store import (
    DomainConfigService,
    MemoryDocumentStore,
    SqliteDocumentStore,
    get_service,
    get_store,
)
from formpilot.store.firebase import FirebaseRestStore, encode_path


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return SqliteDocumentStore(tmp_path / "docs.db")


# ---------------------------------------------------------------------------
# 1. DocumentStore contract
# ---------------------------------------------------------------------------


class TestDocumentStore:
    def test_get_missing(self, store):
        assert store.get("domains/none") is None

    def test_set_and_get(self, store):
        store.set("domains/a", {"domain": "a", "n": 1})
        assert store.get("domains/a") == {"domain": "a", "n": 1}

    def test_replace_drops_other_keys(self, store):
        store.set("domains/a", {"x": 1, "y": 2})
        store.set("domains/a", {"x": 3})
        assert store.get("domains/a") == {"x": 3}

    def test_merge_is_shallow(self, store):
        store.set("domains/a", {"x": 1, "nested": {"k": 1, "j": 2}})
        store.set("domains/a", {"nested": {"k": 9}}, merge=True)
        assert store.get("domains/a") == {"x": 1, "nested": {"k": 9}}

    def test_merge_into_missing_creates(self, store):
        store.set("domains/a", {"x": 1}, merge=True)
        assert store.get("domains/a") == {"x": 1}

    def test_delete(self, store):
        store.set("domains/a", {"x": 1})
        store.delete("domains/a")
        store.delete("domains/a")
        assert store.get("domains/a") is None

    def test_list_direct_children(self, store):
        store.set("domains/a", {"d": "a"})
        store.set("domains/b", {"d": "b"})
        store.set("other/c", {"d": "c"})
        assert sorted(doc["d"] for doc in store.list("domains")) == ["a", "b"]

    def test_returned_documents_are_copies(self, store):
        store.set("domains/a", {"items": [1]})
        doc = store.get("domains/a")
        doc["items"].append(2)
        assert store.get("domains/a") == {"items": [1]}


class TestGetStore:
    def test_default_is_sqlite(self):
        assert isinstance(get_store(), SqliteDocumentStore)

    def test_env_selects_memory(self, monkeypatch):
        monkeypatch.setenv("FORMPILOT_STORE", "Memory")
        assert isinstance(get_store(), MemoryDocumentStore)

    def test_firebase_requires_url(self):
        with pytest.raises(StoreError):
            get_store("firebase")

    def test_firebase_from_env(self, monkeypatch):
        monkeypatch.setenv("FIREBASE_DATABASE_URL", "https://demo.firebaseio.com/")
        monkeypatch.setenv("FIREBASE_AUTH_TOKEN", "tok")
        store = get_store("firebase")
        assert isinstance(store, FirebaseRestStore)
        assert store.base_url == "https://demo.firebaseio.com"
        assert store.auth_token == "tok"

    def test_invalid_name(self):
        with pytest.raises(StoreError, match="Supported stores"):
            get_store("redis")

    def test_sqlite_path_follows_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FORMPILOT_DB", str(tmp_path / "custom.db"))
        get_service().initialize_domain("example.com")
        assert (tmp_path / "custom.db").exists()


# ---------------------------------------------------------------------------
# 2. Firebase REST
# ---------------------------------------------------------------------------


class _FakeFirebase:
    """Minimal Realtime Database over httpx.MockTransport."""

    def __init__(self):
        self.data: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.lstrip("/").removesuffix(".json")
        if request.method == "GET":
            if path in self.data:
                return httpx.Response(200, json=self.data[path])
            children = {
                k.split("/", 1)[1]: v for k, v in self.data.items() if k.startswith(path + "/")
            }
            return httpx.Response(200, json=children or None)
        if request.method == "PUT":
            self.data[path] = json.loads(request.content)
        elif request.method == "PATCH":
            self.data.setdefault(path, {}).update(json.loads(request.content))
        elif request.method == "DELETE":
            self.data.pop(path, None)
        return httpx.Response(200, json=None)


@pytest.fixture
def firebase():
    fake = _FakeFirebase()
    client = httpx.Client(transport=httpx.MockTransport(fake.handler))
    store = FirebaseRestStore("https://demo.firebaseio.com", auth_token="secret", client=client)
    yield fake, store
    store.close()


class TestFirebaseStore:
    def test_encode_path(self):
        assert encode_path("domains/boards.greenhouse.io") == "domains/boards,greenhouse,io"

    def test_put_get_roundtrip(self, firebase):
        fake, store = firebase
        store.set("domains/boards.greenhouse.io", {"domain": "boards.greenhouse.io"})
        assert "domains/boards,greenhouse,io" in fake.data
        assert store.get("domains/boards.greenhouse.io") == {"domain": "boards.greenhouse.io"}

    def test_merge_uses_patch(self, firebase):
        fake, store = firebase
        store.set("domains/a", {"x": 1})
        store.set("domains/a", {"y": 2}, merge=True)
        assert fake.requests[-1].method == "PATCH"
        assert store.get("domains/a") == {"x": 1, "y": 2}

    def test_auth_param_sent(self, firebase):
        fake, store = firebase
        store.get("domains/a")
        assert fake.requests[0].url.params["auth"] == "secret"

    def test_missing_is_none(self, firebase):
        _, store = firebase
        assert store.get("domains/none") is None

    def test_list(self, firebase):
        _, store = firebase
        store.set("domains/a", {"d": "a"})
        store.set("domains/b", {"d": "b"})
        assert sorted(doc["d"] for doc in store.list("domains")) == ["a", "b"]

    def test_http_error_becomes_store_error(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401)))
        store = FirebaseRestStore("https://demo.firebaseio.com", client=client)
        with pytest.raises(StoreError, match="HTTP 401"):
            store.get("domains/a")

    def test_transport_error_becomes_store_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        store = FirebaseRestStore("https://demo.firebaseio.com", client=httpx.Client(transport=httpx.MockTransport(refuse)))
        with pytest.raises(StoreError):
            store.set("domains/a", {"x": 1})


# ---------------------------------------------------------------------------
# 3. DomainConfigService
# ---------------------------------------------------------------------------


@pytest.fixture
def svc(store):
    return DomainConfigService(store)


class TestDomainConfigService:
    def test_roundtrip_preserves_schema_and_dates(self, svc, domain_config):
        domain_config.commands.append(
            CommandTemplate(name="structured", commands=[StructuredCommand(type="check", field="terms", value=True)])
        )
        svc.save_domain_config(domain_config)
        loaded = svc.get_domain_config("boards.greenhouse.io")
        assert loaded.selectors == domain_config.selectors
        assert loaded.commands == domain_config.commands
        assert isinstance(loaded.created_at, datetime)
        assert isinstance(loaded.last_updated, datetime)
        assert loaded.created_at.tzinfo is not None

    def test_wire_format_is_camel_case_iso(self, store, svc, domain_config):
        domain_config.test_urls = [UrlEntry(url="https://x/1", command_list="apply")]
        svc.save_domain_config(domain_config)
        doc = store.get("domains/boards.greenhouse.io")
        assert isinstance(doc["lastUpdated"], str)
        assert doc["testUrls"][0]["commandList"] == "apply"
        assert "last_updated" not in doc

    def test_created_at_kept_on_resave(self, svc, domain_config):
        first = svc.save_domain_config(domain_config).created_at
        again = svc.get_domain_config("boards.greenhouse.io")
        assert svc.save_domain_config(again).created_at == first

    def test_get_is_normalized(self, svc):
        svc.initialize_domain("HTTPS://Example.com/")
        assert svc.get_domain_config("example.com").domain == "example.com"

    def test_missing_domain(self, svc):
        assert svc.get_domain_config("nowhere") is None
        with pytest.raises(DomainNotFound):
            svc.add_selector("nowhere", "k", SelectorDefinition(selector="#k"))

    def test_delete_domain(self, svc):
        svc.initialize_domain("example.com")
        svc.delete_domain("example.com")
        assert svc.get_domain_config("example.com") is None

    def test_selector_crud(self, svc):
        svc.initialize_domain("example.com")
        svc.add_selector("example.com", "email", SelectorDefinition(selector="#email"))
        svc.update_selector("example.com", "email", platform="greenhouse")
        assert svc.get_domain_config("example.com").selectors["email"].platform == "greenhouse"
        svc.delete_selector("example.com", "email")
        assert svc.get_domain_config("example.com").selectors == {}

    def test_update_missing_selector(self, svc):
        svc.initialize_domain("example.com")
        with pytest.raises(SelectorNotFound):
            svc.update_selector("example.com", "email", selector="#x")

    def test_template_crud(self, svc):
        svc.initialize_domain("example.com")
        svc.add_command_template("example.com", CommandTemplate(name="t", commands=["click:a@default"]))
        svc.update_command_template("example.com", "t", description="desc")
        assert svc.get_domain_config("example.com").template("t").description == "desc"
        svc.delete_command_template("example.com", "t")
        assert svc.get_domain_config("example.com").commands == []

    def test_update_missing_template(self, svc):
        svc.initialize_domain("example.com")
        with pytest.raises(TemplateNotFound):
            svc.update_command_template("example.com", "nope", description="x")

    def test_add_test_url_replaces_same_url(self, svc):
        svc.initialize_domain("example.com")
        svc.add_test_url("example.com", UrlEntry(url="https://x/1", description="old"))
        svc.add_test_url("example.com", UrlEntry(url="https://x/1", description="new"))
        urls = svc.get_domain_config("example.com").test_urls
        assert [(u.url, u.description) for u in urls] == [("https://x/1", "new")]

    def test_recent_domains_sorted(self, svc):
        for name in ("a.com", "b.com", "c.com"):
            svc.initialize_domain(name)
        svc.add_selector("a.com", "k", SelectorDefinition(selector="#k"))
        assert [c.domain for c in svc.recent_domains(2)] == ["a.com", "c.com"]
