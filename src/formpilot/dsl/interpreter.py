"""Executes compiled commands against per-platform form fillers."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from formpilot.dsl.commands import Check, Click, Command, Fill, Select, Upload, Verify, Wait, describe
from formpilot.errors import ElementNotFound, NoFillerRegistered, VerificationFailed
from formpilot.fillers.base import FormFiller

log = logging.getLogger(__name__)

DEFAULT_PLATFORM = "default"


class CommandInterpreter:
    """Runs commands one at a time on the filler registered for their platform.

    ``click`` and ``check`` are best-effort: a missing element is skipped.
    ``verify`` is strict: a missing element or a wrong state raises.
    """

    def __init__(self, fillers: Mapping[str, FormFiller]) -> None:
        self.fillers = dict(fillers)
        self._handlers: dict[type, Callable[[FormFiller, Command], None]] = {
            Fill: self._fill,
            Click: self._click,
            Select: self._select,
            Check: self._check,
            Upload: self._upload,
            Wait: self._wait,
            Verify: self._verify,
        }

    def filler_for(self, platform: str | None) -> FormFiller:
        name = platform or DEFAULT_PLATFORM
        filler = self.fillers.get(name)
        if filler is None:
            raise NoFillerRegistered(name)
        return filler

    def execute(self, command: Command) -> None:
        filler = self.filler_for(command.platform)
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")
        log.debug("Executing %s", describe(command))
        handler(filler, command)

    def execute_many(self, commands: Sequence[Command]) -> None:
        """Execute in order, stopping at (and re-raising) the first failure."""
        for index, command in enumerate(commands):
            try:
                self.execute(command)
            except Exception:
                log.info("Command %d/%d failed: %s", index + 1, len(commands), describe(command))
                raise

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _fill(self, filler: FormFiller, command: Fill) -> None:
        filler.fill_input(command.selector, command.value)

    def _click(self, filler: FormFiller, command: Click) -> None:
        element = filler.find_element(command.selector)
        if element is None:
            log.debug("Click target missing, skipped: %s", command.selector)
            return
        filler.click_element(element)

    def _select(self, filler: FormFiller, command: Select) -> None:
        filler.select_option(command.selector, command.value)

    def _check(self, filler: FormFiller, command: Check) -> None:
        element = filler.find_element(command.selector)
        if element is None:
            log.debug("Checkbox missing, skipped: %s", command.selector)
            return
        filler.set_checked(element, command.value)

    def _upload(self, filler: FormFiller, command: Upload) -> None:
        filler.upload_file(command.selector, command.file_path)

    def _wait(self, filler: FormFiller, command: Wait) -> None:
        filler.wait_for_element(command.selector, command.timeout_ms)

    def _verify(self, filler: FormFiller, command: Verify) -> None:
        element = filler.find_element(command.selector)
        if element is None:
            raise ElementNotFound(command.selector)

        selector, state = command.selector, command.state
        if state == "visible":
            if not filler.is_displayed(element):
                raise VerificationFailed(selector, state, f"Element is not visible: {selector}")
        elif state == "hidden":
            if filler.is_displayed(element):
                raise VerificationFailed(selector, state, f"Element is visible: {selector}")
        elif state == "enabled":
            if filler.is_disabled(element):
                raise VerificationFailed(selector, state, f"Element is disabled: {selector}")
        elif state == "disabled":
            if not filler.is_disabled(element):
                raise VerificationFailed(selector, state, f"Element is enabled: {selector}")
        elif state == "checked":
            if not filler.is_checked(element):
                raise VerificationFailed(selector, state, f"Element is not checked: {selector}")
        else:
            raise VerificationFailed(selector, state, f"Unsupported verify state '{state}': {selector}")
