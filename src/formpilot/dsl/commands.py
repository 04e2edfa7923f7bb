"""Typed form commands produced by the parser.

One frozen dataclass per action. ``selector`` is always the concrete page
selector resolved from the registry, never the symbolic key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

VERIFY_STATES: frozenset[str] = frozenset({"visible", "hidden", "enabled", "disabled", "checked"})


@dataclass(frozen=True)
class Fill:
    action: ClassVar[str] = "fill"
    selector: str
    value: str
    platform: str


@dataclass(frozen=True)
class Click:
    action: ClassVar[str] = "click"
    selector: str
    platform: str


@dataclass(frozen=True)
class Select:
    action: ClassVar[str] = "select"
    selector: str
    value: str
    platform: str


@dataclass(frozen=True)
class Check:
    action: ClassVar[str] = "check"
    selector: str
    value: bool
    platform: str


@dataclass(frozen=True)
class Upload:
    action: ClassVar[str] = "upload"
    selector: str
    file_path: str
    platform: str


@dataclass(frozen=True)
class Wait:
    action: ClassVar[str] = "wait"
    selector: str
    timeout_ms: Optional[int]
    platform: str


@dataclass(frozen=True)
class Verify:
    action: ClassVar[str] = "verify"
    selector: str
    state: str
    platform: str


Command = Union[Fill, Click, Select, Check, Upload, Wait, Verify]

ACTIONS: tuple[str, ...] = ("fill", "click", "select", "check", "upload", "wait", "verify")


def describe(command: Command) -> str:
    """Short human-readable form used in logs and reports."""
    detail = ""
    if isinstance(command, (Fill, Select)):
        detail = f" = {command.value!r}"
    elif isinstance(command, Check):
        detail = f" = {command.value}"
    elif isinstance(command, Upload):
        detail = f" <- {command.file_path}"
    elif isinstance(command, Wait) and command.timeout_ms is not None:
        detail = f" ({command.timeout_ms}ms)"
    elif isinstance(command, Verify):
        detail = f" is {command.state}"
    return f"{command.action} {command.selector}@{command.platform}{detail}"
