"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
from collections import deque
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from tmux_pilot import __version__
from tmux_pilot.config import (
    CONFIG_FILE,
    AppConfig,
    ShellConfig,
    ensure_config_dir,
    load_config,
    save_config,
    validate_config,
)
from tmux_pilot.errors import ConfigurationError
from tmux_pilot.services.shell import SUPPORTED_SHELLS, resolve_shell_type
from tmux_pilot.utils.system import check_git_cli, check_tmux_cli, check_tmux_server

app = typer.Typer(
    name="tmux-pilot",
    help="MCP server for driving tmux panes and tracking the commands run in them.",
    add_completion=False,
)
console = Console()


def _detect_shell() -> str:
    name = Path(os.environ.get("SHELL", "bash")).name
    return name if name in SUPPORTED_SHELLS else "bash"


def _load_or_exit() -> AppConfig:
    try:
        return load_config()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _setup_logging(config: AppConfig, verbose: bool) -> None:
    log_path = config.logging.path()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(str(log_path)),
            *([logging.StreamHandler(sys.stderr)] if verbose else []),
        ],
    )


@app.command()
def init() -> None:
    """Write a configuration file."""
    console.print(f"\n[bold]tmux-pilot v{__version__}[/bold]")
    console.print("Interactive Setup\n")

    installed, version_info = check_tmux_cli()
    if installed:
        console.print(f"  tmux: [green]{version_info}[/green]")
    else:
        console.print(f"  [yellow]Warning: {version_info}[/yellow]")

    console.print("\n[bold]Step 1:[/bold] Shell used in your tmux panes")
    shell_type = typer.prompt(f"  Shell ({', '.join(SUPPORTED_SHELLS)})", default=_detect_shell())
    try:
        shell_type = resolve_shell_type(shell_type).value
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    config = AppConfig(shell=ShellConfig(type=shell_type))
    save_config(config)

    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")
    console.print("\nAdd the server to your MCP client with the command:")
    console.print("  [bold]tmux-pilot serve[/bold]\n")


@app.command()
def serve(
    shell_type: str = typer.Option(None, "--shell-type", "-s", help="Shell in the panes: bash, zsh or fish"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
) -> None:
    """Run the MCP server on stdio."""
    try:
        config = load_config()
        if shell_type:
            config.shell.type = shell_type
        validate_config(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    ensure_config_dir()
    _setup_logging(config, verbose)

    from tmux_pilot.server.app import run_server

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        pass


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., shell.type)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = _load_or_exit()

    sections = cfg.sections()

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for section_name, section in sections.items():
            for attr, current in vars(section).items():
                table.add_row(f"{section_name}.{attr}", str(current))
        console.print(table)
        if not CONFIG_FILE.exists():
            console.print("[dim]Defaults shown; no config file yet. Run 'tmux-pilot init'.[/dim]")
        return

    if value is None:
        console.print("[red]Usage: tmux-pilot config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., commands.capture_lines)[/red]")
        raise typer.Exit(1)

    section_name, attr = parts
    if section_name not in sections:
        console.print(f"[red]Unknown section: {section_name}[/red]")
        raise typer.Exit(1)

    obj = sections[section_name]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    # Type coercion
    current = getattr(obj, attr)
    try:
        if isinstance(current, bool):
            typed_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            typed_value = int(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value type for {key}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    try:
        validate_config(cfg)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    save_config(cfg)
    console.print(f"[green]{key} = {getattr(obj, attr)}[/green]")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
    follow: bool = typer.Option(False, "--follow", "-f", help="Follow log output"),
) -> None:
    """Show the configured server log (logging.file)."""
    log_path = _load_or_exit().logging.path()
    if not log_path.exists():
        console.print(f"[dim]No log file at {log_path}[/dim]")
        return

    with log_path.open(encoding="utf-8", errors="replace") as f:
        for line in deque(f, maxlen=lines):
            console.print(line.rstrip("\n"), markup=False, highlight=False)
        if not follow:
            return
        try:
            while True:
                line = f.readline()
                if line:
                    console.print(line.rstrip("\n"), markup=False, highlight=False)
                else:
                    time.sleep(0.5)
        except KeyboardInterrupt:
            pass


@app.command()
def doctor() -> None:
    """Check that tmux and git are usable."""
    table = Table(title="Environment")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    ok = True
    for label, (passed, detail) in (
        ("tmux", check_tmux_cli()),
        ("tmux server", check_tmux_server()),
        ("git", check_git_cli()),
    ):
        table.add_row(label, "[green]ok[/green]" if passed else "[red]fail[/red]", detail)
        ok = ok and (passed or label == "git")
    console.print(table)

    if not ok:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"tmux-pilot v{__version__}")

    installed, version_info = check_tmux_cli()
    if installed:
        console.print(f"tmux: {version_info}")
    else:
        console.print("tmux: [yellow]not installed[/yellow]")

    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
