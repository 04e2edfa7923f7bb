"""Document models for per-domain form automation schemas.

A DomainConfig is the unit persisted in the document store under
``domains/<normalized domain>``. On the wire fields are camelCase and dates
are ISO-8601 strings; validation turns them back into ``datetime`` values.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SelectorType = Literal["css", "xpath", "text"]
TestStatus = Literal["pending", "success", "failed"]

_SCHEME_RE = re.compile(r"^https?://")


def normalize_domain(domain: str) -> str:
    """Lowercase, drop an http(s) scheme and a trailing slash."""
    normalized = _SCHEME_RE.sub("", domain.strip().lower())
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def domain_path(domain: str) -> str:
    return f"domains/{normalize_domain(domain)}"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so history timestamps stay comparable."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize for the store: camelCase keys, ISO dates, no nulls."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class SelectorDefinition(_Document):
    selector: str
    type: SelectorType = "css"
    description: str = ""
    platform: str = "default"
    optional: bool = False


class StructuredCommand(_Document):
    """Pre-parsed template entry, lowered to the DSL before compilation."""

    type: Literal["fill", "select", "check"]
    field: str
    value: Union[bool, str]
    required: bool = True
    description: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        # YAML/JSON numbers (``value: 5``) are field text, not booleans
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class CommandTemplate(_Document):
    name: str
    description: str = ""
    commands: list[Union[StructuredCommand, str]] = Field(default_factory=list)


class TestUrl(_Document):
    url: str
    description: str = ""
    command_list: Optional[str] = Field(None, alias="commandList")
    status: TestStatus = "pending"


class TestHistoryRecord(_Document):
    url: str
    timestamp: datetime
    status: Literal["success", "failed"]
    executed_commands: int = Field(0, alias="executedCommands", ge=0)
    failed_commands: int = Field(0, alias="failedCommands", ge=0)
    report_file: Optional[str] = Field(None, alias="reportFile")

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DomainConfig(_Document):
    domain: str
    selectors: dict[str, SelectorDefinition] = Field(default_factory=dict)
    commands: list[CommandTemplate] = Field(default_factory=list)
    test_urls: list[TestUrl] = Field(default_factory=list, alias="testUrls")
    test_history: list[TestHistoryRecord] = Field(default_factory=list, alias="testHistory")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")

    @field_validator("domain")
    @classmethod
    def normalize_domain_field(cls, value: str) -> str:
        normalized = normalize_domain(value)
        if not normalized:
            raise ValueError("domain must not be empty")
        return normalized

    @field_validator("created_at", "last_updated")
    @classmethod
    def dates_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def template(self, name: str) -> CommandTemplate | None:
        return next((t for t in self.commands if t.name == name), None)
