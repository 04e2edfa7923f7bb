"""FormPilot paths, defaults and environment loading.

Everything lives under ~/.formpilot/ unless FORMPILOT_DIR points elsewhere:
  - .env            store credentials and overrides
  - formpilot.db    default sqlite document store
  - logs/           rotating CLI log
  - test-reports/   plain-text reports written by the form runner

Paths are resolved at call time so tests (and load_env()) can redirect them
through the environment.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

DEFAULTS: dict = {
    "parallel": 1,
    "wait_timeout_ms": 5000,
    "poll_interval_ms": 100,
    "store": "sqlite",
    "recent_domains": 20,
}


def app_dir() -> Path:
    return Path(os.environ.get("FORMPILOT_DIR") or Path.home() / ".formpilot").expanduser()


def log_dir() -> Path:
    return app_dir() / "logs"


def report_dir() -> Path:
    override = os.environ.get("FORMPILOT_REPORT_DIR")
    return Path(override).expanduser() if override else app_dir() / "test-reports"


def db_path() -> Path:
    override = os.environ.get("FORMPILOT_DB")
    return Path(override).expanduser() if override else app_dir() / "formpilot.db"


def env_path() -> Path:
    return app_dir() / ".env"


def ensure_dirs() -> None:
    """Create the app, log and report directories if missing."""
    for d in (app_dir(), log_dir(), report_dir()):
        d.mkdir(parents=True, exist_ok=True)


def load_env() -> None:
    """Load ~/.formpilot/.env, then ./.env. Existing variables win."""
    user_env = env_path()
    if user_env.exists():
        load_dotenv(user_env, override=False)
    load_dotenv(Path.cwd() / ".env", override=False)


def store_backend() -> str:
    return (os.environ.get("FORMPILOT_STORE") or DEFAULTS["store"]).lower().strip()


def runner_command() -> list[str]:
    """Command line for the external form runner (FORMPILOT_RUNNER overrides)."""
    override = os.environ.get("FORMPILOT_RUNNER", "").strip()
    if override:
        return override.split()
    return [sys.executable, "-m", "formpilot", "run-form"]
