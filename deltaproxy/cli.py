"""deltaproxy CLI — Typer + Rich terminal interface.

Commands: serve, models, config.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from deltaproxy import __version__
from deltaproxy.env import mask_secret
from deltaproxy.schemas.config import ProxyConfig
from deltaproxy.settings import load_config, resolve_config_path

console = Console()

app = typer.Typer(
    name="deltaproxy",
    help="OpenAI-compatible streaming proxy for bespoke chat upstreams.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c",
    help="Path to proxy.toml (default: $DELTAPROXY_CONFIG or the bundled config).",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"deltaproxy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """deltaproxy — re-serve upstream chat streams as OpenAI chat completions."""


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(config_path: Path | None) -> ProxyConfig:
    """Load the proxy config, exit on error."""
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8787, "--port", "-p", help="Port to listen on."),
    config_path: Path | None = _CONFIG_OPTION,
    log_level: str = typer.Option(
        "info", "--log-level", help="Log level: debug, info, warning, error."
    ),
) -> None:
    """Run the proxy server."""
    _configure_logging(log_level)
    config = _load_config(config_path)

    import uvicorn

    from deltaproxy.server import create_app

    try:
        app_instance = create_app(config)
    except ValueError as e:
        console.print(f"[red]Invalid upstream configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    console.print(Panel(
        f"[bold]URL:[/bold] http://{host}:{port}/v1/chat/completions\n"
        f"[bold]Upstream:[/bold] {config.upstream.url} ({config.upstream.adapter})\n"
        f"[bold]Auth:[/bold] {'bearer token' if config.auth_enabled else '[yellow]disabled[/yellow]'}",
        title=f"[bold blue]{config.project_name}[/bold blue]",
        border_style="blue",
    ))

    uvicorn.run(app_instance, host=host, port=port, log_level=log_level.lower(), log_config=None)


@app.command()
def models(config_path: Path | None = _CONFIG_OPTION) -> None:
    """Show the models served by /v1/models."""
    config = _load_config(config_path)

    table = Table(title="Configured Models", show_lines=False)
    table.add_column("Model", style="bold cyan")
    table.add_column("Owned By", style="dim")
    table.add_column("Default", justify="center")

    for model in config.models:
        table.add_row(model, config.owned_by, "✓" if model == config.default_model else "")

    console.print(table)


@app.command("config")
def show_config(config_path: Path | None = _CONFIG_OPTION) -> None:
    """Show the effective configuration (secrets masked)."""
    config = _load_config(config_path)
    upstream = config.upstream

    table = Table(title="Proxy Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Config File", str(resolve_config_path(config_path)))
    table.add_row("Project", config.project_name)
    table.add_row("Default Model", config.default_model)
    table.add_row("Models", str(len(config.models)))
    table.add_row(f"Inbound Key ({config.api_key_env})", mask_secret(config.api_key))
    table.add_row("Upstream Adapter", upstream.adapter)
    table.add_row("Upstream Decoder", upstream.decoder or "(adapter default)")
    table.add_row("Upstream URL", upstream.url)
    table.add_row("Frame Prefix", repr(upstream.frame_prefix))
    table.add_row(
        "Timeouts", f"connect {upstream.connect_timeout:g}s / read {upstream.read_timeout:g}s"
    )
    if upstream.api_key_env:
        table.add_row(f"Upstream Key ({upstream.api_key_env})", mask_secret(upstream.api_key))

    console.print(table)


# ── Entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    app()
