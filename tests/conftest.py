"""Shared fixtures for FormPilot test suite.

@file conftest.py
@description Provides common fixtures and fakes for offline, deterministic
             testing. No browser, subprocess or network calls.
"""

from __future__ import annotations

import pytest

from fakes import FakeElement, FakeFiller
from formpilot.models import CommandTemplate, DomainConfig, SelectorDefinition
from formpilot.store import DomainConfigService, MemoryDocumentStore


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Ensure every test gets a clean environment.

    - Points FORMPILOT_DIR to a temp directory to avoid touching real data.
    - Removes store/runner overrides so defaults are deterministic.
    """
    for var in (
        "FORMPILOT_STORE",
        "FORMPILOT_RUNNER",
        "FORMPILOT_DB",
        "FORMPILOT_REPORT_DIR",
        "FORM_URL",
        "REPORT_FILE",
        "FIREBASE_DATABASE_URL",
        "FIREBASE_AUTH_TOKEN",
        "FIREBASE_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("FORMPILOT_DIR", str(tmp_path / "formpilot"))
    (tmp_path / "formpilot" / "logs").mkdir(parents=True, exist_ok=True)
    (tmp_path / "formpilot" / "test-reports").mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Fake DOM
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_page():
    """Elements for a small application form."""
    return {
        "#email": FakeElement(),
        "#first_name": FakeElement(),
        "#cover": FakeElement(tag="textarea"),
        "#country": FakeElement(tag="select"),
        "#terms": FakeElement(input_type="checkbox"),
        "#resume": FakeElement(input_type="file"),
        "#submit": FakeElement(tag="button", text="Submit"),
        "#banner": FakeElement(tag="div", text="Apply now", displayed=False),
    }


@pytest.fixture
def fake_filler(fake_page):
    return FakeFiller(fake_page)


# ---------------------------------------------------------------------------
# Domain schema
# ---------------------------------------------------------------------------


@pytest.fixture
def selectors():
    return {
        "email": SelectorDefinition(selector="#email", platform="greenhouse"),
        "first_name": SelectorDefinition(selector="#first_name", platform="greenhouse"),
        "cover": SelectorDefinition(selector="#cover", platform="greenhouse"),
        "country": SelectorDefinition(selector="#country", platform="greenhouse"),
        "terms": SelectorDefinition(selector="#terms", platform="greenhouse"),
        "resume": SelectorDefinition(selector="#resume", platform="greenhouse"),
        "submit": SelectorDefinition(selector="#submit", platform="greenhouse"),
        "banner": SelectorDefinition(selector="#banner", platform="default"),
    }


@pytest.fixture
def domain_config(selectors):
    return DomainConfig(
        domain="boards.greenhouse.io",
        selectors=selectors,
        commands=[
            CommandTemplate(
                name="apply",
                commands=[
                    'fill:email@greenhouse -> value="jane@example.com"',
                    'fill:first_name@greenhouse -> value="Jane"',
                    "check:terms@greenhouse -> value=true",
                    "click:submit@greenhouse",
                ],
            )
        ],
    )


@pytest.fixture
def service():
    return DomainConfigService(MemoryDocumentStore())
