"""Shared plumbing for CLI commands: options, logging, session access."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from geolayer.core.config import GeolayerConfig, load_config
from geolayer.core.errors import SessionError
from geolayer.core.layers import LayerRegistry
from geolayer.core.session import SessionState, SessionStore
from geolayer.model import ABSENT

console = Console()
err_console = Console(stderr=True)

SessionOption = typer.Option(
    None, "--session", "-s", help="Session file (default: session_path from config)"
)
ConfigOption = typer.Option(
    None, "--config", "-c", help="Config file (default: ./geolayer_config.yaml)"
)


def configure_logging(level: int) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(message: str, hint: Optional[str] = None) -> NoReturn:
    console.print(f"[bold red]❌ Error:[/] {escape(message)}")
    if hint:
        console.print(f"[dim]{hint}[/]")
    raise typer.Exit(1)


@dataclass
class CommandContext:
    config: GeolayerConfig
    store: SessionStore
    state: SessionState

    @property
    def registry(self) -> LayerRegistry:
        return self.state.registry()

    def save(self) -> Path:
        return self.store.save(self.state)


def open_session(session: Optional[Path], config_file: Optional[Path]) -> CommandContext:
    """Load config (and configure logging from it), then the session file."""
    if config_file is not None and not config_file.exists():
        fail(f"Config file not found: {config_file}")
    try:
        cfg = load_config(config_file)
    except ValueError as e:
        fail(f"Invalid configuration: {e}")
    configure_logging(cfg.log_level_value)

    store = SessionStore(session or cfg.session_path)
    try:
        state = store.load()
    except SessionError as e:
        fail(str(e), "Remove or fix the session file, or pass another one with --session")
    return CommandContext(config=cfg, store=store, state=state)


def format_value(value: object) -> str:
    """Display form of a category key."""
    if value is ABSENT:
        return "(absent)"
    return escape(str(value))


def color_swatch(color: str) -> str:
    return f"[{color}]██[/] {color}"
