"""
PyHeaderBlock Command Line Interface

Run the filter, validate configuration and dry-run decisions.
"""

import json
from typing import List, Optional, Tuple

import typer
import yaml
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

from .core.config import Settings
from .core.engine import DecisionContext, HeaderBlockEngine
from .core.exceptions import PyHeaderBlockError


app = typer.Typer(
    name="pyheaderblock",
    help="PyHeaderBlock - request filter by client IP and header rules",
    add_completion=False
)

console = Console()

EXIT_DENIED = 2


def _load_settings(config_file: str) -> Settings:
    try:
        return Settings.load_from_file(config_file)
    except PyHeaderBlockError as e:
        console.print(f"❌ Failed to load configuration: {e.message}", style="red")
        for error in e.details.get("validation_errors", []):
            console.print(f"  • {error}", style="red")
        raise typer.Exit(1)


def parse_header_option(raw: str) -> Tuple[str, str]:
    """Split a ``Name: value`` option into its parts"""
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Header must look like 'Name: value': {raw!r}")
    return name.strip(), value.strip()


@app.command("serve")
def serve(
    config_file: str = typer.Option("config/config.yaml", "--config", "-c", help="Configuration file path"),
    host: Optional[str] = typer.Option(None, "--host", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port")
):
    """Start the filtering server"""
    from .main import run_server

    try:
        run_server(config_file=config_file, host=host, port=port)
    except PyHeaderBlockError as e:
        console.print(f"❌ Failed to start server: {e}", style="red")
        raise typer.Exit(1)


@app.command("check")
def check(
    config_file: str = typer.Option("config/config.yaml", "--config", "-c", help="Configuration file path"),
    ip: Optional[str] = typer.Option(None, "--ip", help="Client address, port suffix allowed"),
    headers: Optional[List[str]] = typer.Option(None, "--header", "-H", help="Request header as 'Name: value'"),
    url: str = typer.Option("/", "--url", help="Request target, only used in output")
):
    """Evaluate one request against the configured rules"""
    settings = _load_settings(config_file)

    try:
        pairs = [parse_header_option(raw) for raw in headers or []]
    except ValueError as e:
        console.print(f"❌ {e}", style="red")
        raise typer.Exit(1)

    try:
        engine = HeaderBlockEngine(settings.headerblock)
    except PyHeaderBlockError as e:
        console.print(f"❌ {e.message}", style="red")
        raise typer.Exit(1)

    context = DecisionContext.build(client_address=ip, headers=pairs, url=url)
    verdict = engine.evaluate(context)

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", url)
    table.add_row("Client IP", ip or "-")
    for name, values in context.headers.items():
        table.add_row(f"Header {name}", ", ".join(values))
    table.add_row(
        "Verdict",
        "[green]allow[/green]" if verdict.allowed else "[red]deny[/red]"
    )
    if verdict.reason:
        table.add_row("Reason", verdict.reason.value)
    if verdict.header:
        table.add_row("Blocked header", verdict.header)

    console.print(table)

    if not verdict.allowed:
        raise typer.Exit(EXIT_DENIED)


# Configuration management commands
config_app = typer.Typer(name="config", help="Configuration management")
app.add_typer(config_app)


@config_app.command("validate")
def validate_config(
    config_file: str = typer.Option("config/config.yaml", "--config", "-c", help="Configuration file path")
):
    """Validate configuration file"""
    settings = _load_settings(config_file)
    errors = settings.validate_config()

    for warning in settings.validate_warnings():
        console.print(f"⚠️  {warning}", style="yellow")

    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        raise typer.Exit(1)

    console.print("✅ Configuration is valid", style="green")


@config_app.command("show")
def show_config(
    config_file: str = typer.Option("config/config.yaml", "--config", "-c", help="Configuration file path"),
    format: str = typer.Option("yaml", "--format", "-f", help="Output format (yaml, json, summary)")
):
    """Show configuration"""
    settings = _load_settings(config_file)

    if format == "summary":
        console.print(Panel.fit("📋 Configuration Summary", style="blue"))
        console.print(JSON.from_data(settings.get_summary()))
        return

    data = settings.model_dump(mode="json", by_alias=True, exclude_none=True)
    if format == "json":
        console.print(JSON(json.dumps(data)))
    elif format == "yaml":
        console.print(yaml.safe_dump(data, default_flow_style=False, indent=2, sort_keys=False))
    else:
        console.print(f"❌ Unknown format: {format}", style="red")
        raise typer.Exit(1)


def main():
    app()


if __name__ == "__main__":
    main()
