"""Domain CLI commands for editing stored form schemas."""

from __future__ import annotations

from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formpilot import config
from formpilot.errors import FormPilotError, ParseError
from formpilot.models import CommandTemplate, SelectorDefinition, TestUrl
from formpilot.store import DomainConfigService, get_service

console = Console()

app = typer.Typer(
    name="domain",
    help="Inspect and edit domain schemas: selectors, templates and test URLs.",
    no_args_is_help=True,
)


def _service() -> DomainConfigService:
    return get_service()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(code=1)


@app.command()
def init(domain: str = typer.Argument(..., help="Domain to create (e.g. boards.greenhouse.io)")) -> None:
    """Create an empty schema for a domain."""
    service = _service()
    if service.get_domain_config(domain) is not None:
        console.print(f"[yellow]Domain already exists:[/yellow] {domain}")
        raise typer.Exit(code=0)
    cfg = service.initialize_domain(domain)
    console.print(f"[green]✓[/green] Initialized {cfg.domain}")


@app.command("list")
def list_domains(
    limit: int = typer.Option(config.DEFAULTS["recent_domains"], "--limit", "-n", min=1),
) -> None:
    """List domains, most recently updated first."""
    configs = _service().recent_domains(limit)
    if not configs:
        console.print("[yellow]No domains configured[/yellow]")
        raise typer.Exit(code=0)

    table = Table(title="Domains", show_header=True)
    table.add_column("Domain", style="cyan")
    table.add_column("Selectors", justify="right")
    table.add_column("Templates", justify="right")
    table.add_column("Test URLs", justify="right")
    table.add_column("Last Updated", style="dim")
    for cfg in configs:
        updated = cfg.last_updated.strftime("%Y-%m-%d %H:%M") if cfg.last_updated else "-"
        table.add_row(cfg.domain, str(len(cfg.selectors)), str(len(cfg.commands)), str(len(cfg.test_urls)), updated)
    console.print(table)


@app.command()
def show(domain: str = typer.Argument(..., help="Domain to show")) -> None:
    """Print a domain's selectors, templates and test URLs."""
    try:
        cfg = _service().require(domain)
    except FormPilotError as e:
        _fail(e)

    console.print(f"[bold]{cfg.domain}[/bold]")

    selectors = Table(title="Selectors", show_header=True)
    selectors.add_column("Key", style="cyan")
    selectors.add_column("Selector")
    selectors.add_column("Type")
    selectors.add_column("Platform", style="green")
    selectors.add_column("Optional")
    for key, d in sorted(cfg.selectors.items()):
        selectors.add_row(escape(key), escape(d.selector), d.type, escape(d.platform), "yes" if d.optional else "")
    console.print(selectors)

    templates = Table(title="Command Templates", show_header=True)
    templates.add_column("Name", style="cyan")
    templates.add_column("Commands", justify="right")
    templates.add_column("Description")
    for t in cfg.commands:
        templates.add_row(t.name, str(len(t.commands)), t.description)
    console.print(templates)

    urls = Table(title="Test URLs", show_header=True)
    urls.add_column("URL", style="cyan")
    urls.add_column("Template")
    urls.add_column("Status")
    for tu in cfg.test_urls:
        urls.add_row(tu.url, tu.command_list or "(all)", tu.status)
    console.print(urls)


@app.command()
def delete(
    domain: str = typer.Argument(..., help="Domain to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a domain schema and its history."""
    if not yes and not typer.confirm(f"Delete schema for {domain}?"):
        raise typer.Exit(code=1)
    _service().delete_domain(domain)
    console.print(f"[green]✓[/green] Deleted {domain}")


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------


@app.command("add-selector")
def add_selector(
    domain: str = typer.Argument(...),
    key: str = typer.Argument(..., help="Symbolic key used in commands"),
    selector: str = typer.Argument(..., help="Concrete page selector"),
    selector_type: str = typer.Option("css", "--type", "-t", help="css, xpath or text"),
    platform: str = typer.Option("default", "--platform", "-p"),
    description: str = typer.Option("", "--description"),
    optional: bool = typer.Option(False, "--optional"),
) -> None:
    """Add or replace a selector."""
    try:
        definition = SelectorDefinition(
            selector=selector,
            type=selector_type,
            platform=platform,
            description=description,
            optional=optional,
        )
        _service().add_selector(domain, key, definition)
    except (FormPilotError, ValueError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] {escape(key)} → {escape(selector)} @{escape(platform)}")


@app.command("remove-selector")
def remove_selector(domain: str = typer.Argument(...), key: str = typer.Argument(...)) -> None:
    """Remove a selector."""
    try:
        _service().delete_selector(domain, key)
    except FormPilotError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Removed {key}")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@app.command("add-template")
def add_template(
    domain: str = typer.Argument(...),
    name: str = typer.Argument(..., help="Template name"),
    commands: List[str] = typer.Option(..., "--command", "-c", help="DSL command; repeat for each step"),
    description: str = typer.Option("", "--description"),
    check: bool = typer.Option(True, "--check/--no-check", help="Compile against the domain's selectors first"),
) -> None:
    """Add a command template made of DSL strings."""
    from formpilot.dsl import CommandParser, SelectorRegistry

    service = _service()
    template = CommandTemplate(name=name, description=description, commands=list(commands))
    try:
        if check:
            cfg = service.require(domain)
            CommandParser(SelectorRegistry.from_config(cfg)).parse_template(template)
        service.add_command_template(domain, template)
    except ParseError as e:
        console.print(f"[red]Template does not compile:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except FormPilotError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Added template {name} ({len(commands)} commands)")


@app.command("remove-template")
def remove_template(domain: str = typer.Argument(...), name: str = typer.Argument(...)) -> None:
    """Remove a command template."""
    try:
        _service().delete_command_template(domain, name)
    except FormPilotError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Removed template {name}")


# ---------------------------------------------------------------------------
# Test URLs / history
# ---------------------------------------------------------------------------


@app.command("add-url")
def add_url(
    domain: str = typer.Argument(...),
    url: str = typer.Argument(..., help="Form URL to test"),
    description: str = typer.Option("", "--description"),
    command_list: Optional[str] = typer.Option(None, "--template", help="Only run this template"),
) -> None:
    """Add (or replace) a test URL."""
    try:
        _service().add_test_url(domain, TestUrl(url=url, description=description, command_list=command_list))
    except FormPilotError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Added test URL {url}")


@app.command()
def history(
    domain: str = typer.Argument(...),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
) -> None:
    """Show the most recent test runs for a domain."""
    try:
        cfg = _service().require(domain)
    except FormPilotError as e:
        _fail(e)

    records = sorted(cfg.test_history, key=lambda r: r.timestamp, reverse=True)[:limit]
    if not records:
        console.print("[yellow]No test history[/yellow]")
        raise typer.Exit(code=0)

    table = Table(title=f"Test History: {cfg.domain}", show_header=True)
    table.add_column("Timestamp", style="dim")
    table.add_column("URL", style="cyan")
    table.add_column("Status")
    table.add_column("Executed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Report")
    for r in records:
        status = "[green]success[/green]" if r.status == "success" else "[red]failed[/red]"
        table.add_row(
            r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            r.url,
            status,
            str(r.executed_commands),
            str(r.failed_commands),
            r.report_file or "",
        )
    console.print(table)
