"""Default test runner body: fill one URL's form and write a plain-text report.

Spawned once per URL by SubprocessRunner (``formpilot run-form``). The
domain is the URL host; its templates are compiled up front so a broken
schema fails before a browser is started. Each template then runs fail-fast:
the first failing command ends that template and the next one starts.

Exit codes: 0 when every command ran, 1 when something failed or the domain
has no configuration, 2 when a template does not compile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence
from urllib.parse import urlparse

from formpilot.dsl.commands import Command, describe
from formpilot.dsl.interpreter import CommandInterpreter
from formpilot.dsl.parser import CommandParser
from formpilot.dsl.registry import SelectorRegistry
from formpilot.errors import ParseError
from formpilot.models import CommandTemplate, DomainConfig, SelectorDefinition
from formpilot.store.service import DomainConfigService

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARSE_ERROR = 2


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class FormReport:
    """Accumulates report lines; every line is also logged."""

    url: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lines: list[str] = field(default_factory=list)
    executed: int = 0
    failed: int = 0

    def add(self, message: str) -> None:
        log.info(message)
        self.lines.append(message)

    def render(self) -> str:
        header = [
            "Form Fill Test Report",
            f"URL: {self.url}",
            f"Timestamp: {self.timestamp.isoformat()}",
            "",
        ]
        summary = [
            "",
            "Execution Summary:",
            f"Successfully executed: {self.executed}",
            f"Failed: {self.failed}",
        ]
        return "\n".join(header + self.lines + summary) + "\n"

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        log.info("Report saved to %s", path)


# ---------------------------------------------------------------------------
# Compile / execute
# ---------------------------------------------------------------------------


def playwright_selector(definition: SelectorDefinition) -> SelectorDefinition:
    """Prefix xpath/text selectors with the Playwright engine name."""
    prefix = {"xpath": "xpath=", "text": "text="}.get(definition.type)
    if prefix is None or definition.selector.startswith(prefix):
        return definition
    return definition.model_copy(update={"selector": prefix + definition.selector})


def templates_for(config: DomainConfig, command_list: str | None = None) -> list[CommandTemplate]:
    """The named template when ``command_list`` is set, otherwise all of them."""
    if command_list:
        template = config.template(command_list)
        if template is None:
            raise ParseError(f"Command list '{command_list}' not found for {config.domain}")
        return [template]
    return list(config.commands)


def compile_templates(
    config: DomainConfig,
    command_list: str | None = None,
) -> list[tuple[str, list[Command]]]:
    """Compile every selected template. One bad command rejects the whole run."""
    registry = SelectorRegistry(
        {key: playwright_selector(d) for key, d in config.selectors.items()}
    )
    parser = CommandParser(registry)
    return [(t.name, parser.parse_template(t)) for t in templates_for(config, command_list)]


def execute_templates(
    interpreter: CommandInterpreter,
    compiled: Sequence[tuple[str, list[Command]]],
    report: FormReport,
) -> FormReport:
    for name, commands in compiled:
        report.add(f"Using command list: {name} with {len(commands)} commands")
        for index, command in enumerate(commands):
            try:
                interpreter.execute(command)
            except Exception as e:
                report.failed += 1
                report.add(f"FAILED {describe(command)}: {e}")
                skipped = len(commands) - index - 1
                if skipped:
                    report.add(f"Skipped {skipped} remaining command(s) in {name}")
                break
            report.executed += 1
            report.add(f"OK {describe(command)}")
    return report


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def domain_for_url(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        raise ValueError(f"Cannot determine domain from URL: {url}")
    return host


def run_form(
    url: str,
    service: DomainConfigService,
    report_path: Path,
    headless: bool = True,
) -> int:
    """Fill the form at ``url`` with its domain's templates and write the report."""
    report = FormReport(url=url)
    domain = domain_for_url(url)
    report.add(f"Extracted domain: {domain}")

    config = service.get_domain_config(domain)
    if config is None:
        report.add("No domain configuration found. Skipping command execution.")
        report.write(report_path)
        return EXIT_FAILED

    test_url = next((tu for tu in config.test_urls if tu.url == url), None)
    command_list = test_url.command_list if test_url else None

    try:
        compiled = compile_templates(config, command_list)
    except ParseError as e:
        report.failed += 1
        report.add(f"Schema error: {e}")
        report.write(report_path)
        return EXIT_PARSE_ERROR

    if not compiled:
        report.add("No command templates defined for this domain.")
        report.write(report_path)
        return EXIT_FAILED

    from playwright.sync_api import sync_playwright

    from formpilot.fillers.browser import build_fillers

    try:
        with sync_playwright() as pw:
            browser = pw.chromium.launch(headless=headless)
            try:
                page = browser.new_page()
                report.add(f"Navigating to {url}")
                page.goto(url)
                interpreter = CommandInterpreter(build_fillers(page))
                execute_templates(interpreter, compiled, report)
                screenshot = report_path.with_name(f"after-fill-{report_path.stem}.png")
                page.screenshot(path=str(screenshot))
                report.add(f"Form after filling screenshot saved to {screenshot}")
            finally:
                browser.close()
    except Exception as e:
        log.exception("Browser session failed for %s", url)
        report.failed += 1
        report.add(f"Test failed with error: {e}")

    report.write(report_path)
    return EXIT_OK if report.failed == 0 else EXIT_FAILED
