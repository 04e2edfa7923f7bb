"""Compiler for the form-command DSL.

Grammar::

    command := action ":" selectorKey "@" platform ["->" "value=" ('"' text '"' | token)]

Examples::

    fill:email@greenhouse -> value="jane@example.com"
    click:submit@myworkday
    check:terms@greenhouse -> value=true
    wait:resume_upload@greenhouse -> value=8000

Every selector key is resolved through the SelectorRegistry, and the
registry's platform must match the platform written in the command. Compiled
commands carry the concrete page selector, so nothing downstream re-reads
DSL strings.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence, Union

from formpilot.dsl.commands import Check, Click, Command, Fill, Select, Upload, Verify, Wait
from formpilot.dsl.registry import SelectorRegistry
from formpilot.errors import (
    InvalidBoolean,
    InvalidFormat,
    MissingValue,
    PlatformMismatch,
    UnknownActionType,
    UnknownSelector,
)
from formpilot.models import CommandTemplate, StructuredCommand

log = logging.getLogger(__name__)

_QUOTED_VALUE_RE = re.compile(r'value="([^"]*)"')
_TOKEN_VALUE_RE = re.compile(r"value=(\S+)")


class CommandParser:
    """Compiles DSL strings into typed commands against one registry."""

    def __init__(self, registry: SelectorRegistry) -> None:
        self.registry = registry

    def parse(self, command: str) -> Command:
        action_selector, _, value_clause = command.partition("->")
        action, key, platform = self._split_action_selector(action_selector.strip(), command)
        value = self._parse_value(value_clause.strip(), command) if value_clause.strip() else None
        return self._build(action, key, platform, value, command)

    def parse_many(self, commands: Sequence[str]) -> list[Command]:
        """Compile commands in order. The first failure propagates; nothing partial is returned."""
        return [self.parse(c) for c in commands]

    def parse_template(
        self,
        template: CommandTemplate,
        platform: str | None = None,
    ) -> list[Command]:
        """Compile every entry of a template, DSL strings and structured entries alike.

        Structured entries carry no platform token; they use ``platform`` when
        given, otherwise the platform their selector is registered under.
        """
        compiled: list[Command] = []
        for entry in template.commands:
            if isinstance(entry, StructuredCommand):
                compiled.append(self._compile_structured(entry, platform))
            else:
                compiled.append(self.parse(entry))
        log.debug("Compiled template '%s': %d commands", template.name, len(compiled))
        return compiled

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _split_action_selector(self, text: str, command: str) -> tuple[str, str, str]:
        parts = text.split("@")
        if len(parts) != 2:
            raise InvalidFormat(command)
        action_and_key, platform = parts
        action, _, key = action_and_key.partition(":")
        action, key, platform = action.strip(), key.strip(), platform.strip()
        if not action or not key or not platform:
            raise InvalidFormat(command)
        return action, key, platform

    def _parse_value(self, clause: str, command: str) -> str:
        match = _QUOTED_VALUE_RE.search(clause) or _TOKEN_VALUE_RE.search(clause)
        if not match:
            raise InvalidFormat(command, f"Invalid value format: {clause}")
        return match.group(1)

    def _compile_structured(self, entry: StructuredCommand, platform: str | None) -> Command:
        if platform is None:
            definition = self.registry.get(entry.field)
            if definition is None:
                raise UnknownSelector(entry.field)
            platform = definition.platform
        value = entry.value
        if isinstance(value, bool):
            value = "true" if value else "false"
        raw = f"{entry.type}:{entry.field}@{platform}"
        return self._build(entry.type, entry.field, platform, value, raw)

    def _build(self, action: str, key: str, platform: str, value: Union[str, None], command: str) -> Command:
        definition = self.registry.get(key)
        if definition is None:
            raise UnknownSelector(key, command)
        if definition.platform != platform:
            raise PlatformMismatch(key, definition.platform, platform, command)

        selector = definition.selector

        if action == "fill":
            if value is None:
                raise MissingValue(action, command)
            return Fill(selector=selector, value=value, platform=platform)

        if action == "click":
            return Click(selector=selector, platform=platform)

        if action == "select":
            if value is None:
                raise MissingValue(action, command)
            return Select(selector=selector, value=value, platform=platform)

        if action == "check":
            return Check(selector=selector, value=self._parse_boolean(value, command), platform=platform)

        if action == "upload":
            if value is None:
                raise MissingValue(action, command)
            return Upload(selector=selector, file_path=value, platform=platform)

        if action == "wait":
            timeout_ms = None
            if value is not None:
                try:
                    timeout_ms = int(value)
                except ValueError:
                    raise InvalidFormat(command, f"Wait timeout must be an integer: {value}") from None
            return Wait(selector=selector, timeout_ms=timeout_ms, platform=platform)

        if action == "verify":
            if value is None:
                raise MissingValue(action, command)
            # State is checked at execution time so new states need no parser change.
            return Verify(selector=selector, state=value, platform=platform)

        raise UnknownActionType(action, command)

    @staticmethod
    def _parse_boolean(value: str | None, command: str) -> bool:
        if value is None:
            return True
        lowered = value.lower()
        if lowered not in ("true", "false"):
            raise InvalidBoolean(value, command)
        return lowered == "true"
