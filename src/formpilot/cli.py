"""FormPilot CLI: test domain URLs, run a single form, manage schemas."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from formpilot import __version__, config
from formpilot.cli_domain import app as domain_app
from formpilot.errors import FormPilotError, TemplateNotFound
from formpilot.models import DomainConfig, TestHistoryRecord

console = Console()

app = typer.Typer(
    name="formpilot",
    help="Schema-driven form automation and bulk URL testing.",
    no_args_is_help=True,
)
app.add_typer(domain_app, name="domain")

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _setup_logging(verbose: bool) -> None:
    """Console logging through rich, plus a rotating file log in log_dir()."""
    logger = logging.getLogger("formpilot")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        config.log_dir() / "formpilot.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)


def _bootstrap(verbose: bool = False) -> None:
    config.load_env()
    config.ensure_dirs()
    _setup_logging(verbose)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"formpilot {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to the console"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    _bootstrap(verbose)


# ---------------------------------------------------------------------------
# test-urls
# ---------------------------------------------------------------------------


def _print_domains() -> None:
    from formpilot.store import get_service

    configs = get_service().recent_domains(config.DEFAULTS["recent_domains"])
    if not configs:
        console.print("[yellow]No domains found.[/yellow] Use 'formpilot save-schema' to add one.")
        return

    table = Table(title="Available Domains", show_header=True)
    table.add_column("Domain", style="cyan")
    table.add_column("Test URLs", justify="right")
    table.add_column("Last Updated", style="dim")
    for cfg in configs:
        updated = cfg.last_updated.strftime("%Y-%m-%d %H:%M") if cfg.last_updated else "-"
        table.add_row(cfg.domain, str(len(cfg.test_urls)), updated)
    console.print(table)
    console.print("\nRun [bold]formpilot test-urls DOMAIN[/bold] to test a domain.")


def _print_result(record: TestHistoryRecord) -> None:
    mark = "[green]✓[/green]" if record.status == "success" else "[red]✗[/red]"
    console.print(
        f"{mark} {record.url}  executed={record.executed_commands} failed={record.failed_commands}"
    )


@app.command("test-urls")
def test_urls(
    domain: Optional[str] = typer.Argument(None, help="Domain to test (e.g. boards.greenhouse.io)"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Test one URL from the schema"),
    failed_only: bool = typer.Option(False, "--failed-only", "-f", help="Only rerun URLs whose last run failed"),
    parallel: int = typer.Option(
        config.DEFAULTS["parallel"], "--parallel", "-p", min=1, help="URLs to run at the same time"
    ),
    headless: bool = typer.Option(False, "--headless", help="Run the browser headless"),
    no_history: bool = typer.Option(False, "--no-history", help="Do not record results in the test history"),
) -> None:
    """Run the test URLs stored in a domain schema."""
    from formpilot.store import get_service
    from formpilot.testrun import SubprocessRunner, TestOrchestrator

    if not domain:
        _print_domains()
        return

    console.print(f"Testing domain [bold]{domain}[/bold]")
    orchestrator = TestOrchestrator(
        get_service(),
        SubprocessRunner(headless=headless),
        track_history=not no_history,
        on_result=_print_result,
    )
    try:
        records = orchestrator.run(domain, url=url, failed_only=failed_only, parallel=parallel)
    except FormPilotError as e:
        _fail(e)

    if not records:
        console.print("[yellow]Nothing to run.[/yellow]")
        return

    failed = [r for r in records if r.status == "failed"]
    console.print(
        f"\n[bold]Summary:[/bold] {len(records) - len(failed)}/{len(records)} passed"
        f"  (reports in {config.report_dir()})"
    )
    if failed:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# run-form
# ---------------------------------------------------------------------------


@app.command("run-form")
def run_form(
    url: str = typer.Argument(..., envvar="FORM_URL", help="Form URL (defaults to $FORM_URL)"),
    report_file: Optional[str] = typer.Option(
        None, "--report-file", envvar="REPORT_FILE", help="Report file name inside the report directory"
    ),
    headless: bool = typer.Option(False, "--headless/--headed", envvar="FORMPILOT_HEADLESS"),
) -> None:
    """Fill one form with its domain's templates and write a report."""
    from formpilot.store import get_service
    from formpilot.testrun import form_runner
    from formpilot.testrun.orchestrator import report_file_name

    try:
        domain = form_runner.domain_for_url(url)
    except ValueError as e:
        _fail(e)

    name = report_file or report_file_name(domain, url, datetime.now(timezone.utc))
    report_path = config.report_dir() / name

    try:
        code = form_runner.run_form(url, get_service(), report_path, headless=headless)
    except FormPilotError as e:
        _fail(e)

    style = "green" if code == 0 else "red"
    console.print(f"[{style}]Finished with exit code {code}[/{style}]; report: {report_path}")
    raise typer.Exit(code=code)


# ---------------------------------------------------------------------------
# save-schema / parse
# ---------------------------------------------------------------------------


def _load_schema_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


@app.command("save-schema")
def save_schema(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Schema file (.json, .yaml)"),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Override the domain in the file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and print without saving"),
) -> None:
    """Validate a domain schema file and save it to the store."""
    from formpilot.store import get_service

    console.print(f"Reading schema from: {file}")
    try:
        data = _load_schema_file(file)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        _fail(e)
    if not isinstance(data, dict):
        _fail(ValueError("Schema must be a mapping"))

    if domain:
        console.print(f"Overriding domain with: {domain}")
        data["domain"] = domain

    try:
        schema = DomainConfig.model_validate(data)
    except ValidationError as e:
        _fail(e)

    if dry_run:
        console.print("Dry run - schema to be saved:")
        console.print_json(json.dumps(schema.to_document()))
        console.print("No changes saved.")
        return

    try:
        get_service().save_domain_config(schema)
    except FormPilotError as e:
        _fail(e)
    console.print(f"[green]Schema saved for domain:[/green] {schema.domain}")


@app.command("parse")
def parse(
    domain: str = typer.Argument(..., help="Domain whose selectors to compile against"),
    template: Optional[str] = typer.Argument(None, help="Template name (default: all)"),
) -> None:
    """Compile a domain's command templates and print the resulting commands."""
    from formpilot.dsl import CommandParser, SelectorRegistry
    from formpilot.dsl.commands import describe
    from formpilot.store import get_service

    try:
        cfg = get_service().require(domain)
        if template:
            found = cfg.template(template)
            if found is None:
                raise TemplateNotFound(template)
            templates = [found]
        else:
            templates = cfg.commands
        parser = CommandParser(SelectorRegistry.from_config(cfg))
        for tpl in templates:
            commands = parser.parse_template(tpl)
            console.print(f"[bold]{tpl.name}[/bold] ({len(commands)} commands)")
            for command in commands:
                console.print(f"  {escape(describe(command))}")
    except FormPilotError as e:
        _fail(e)


if __name__ == "__main__":
    app()
