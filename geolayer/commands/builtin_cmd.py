"""Built-in dataset and session-flag commands for geolayer CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from geolayer.commands.common import ConfigOption, SessionOption, console, fail, open_session
from geolayer.core.builtin import load_builtin_layer
from geolayer.core.errors import FormatError


def builtin(
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Add the configured built-in dataset as a pre-classified layer."""
    ctx = open_session(session, config_file)
    dataset = ctx.config.builtin_dataset
    if dataset is None:
        fail(
            "No built-in dataset configured",
            "Set builtin_dataset.source in geolayer_config.yaml",
        )
    try:
        layer = load_builtin_layer(dataset, style=ctx.config.default_style)
    except FormatError as e:
        fail(e.reason)
    ctx.registry.add(layer)
    ctx.save()
    console.print(
        f"[bold green]✔[/] Added built-in layer [cyan]{layer.name}[/] "
        f"([dim]{layer.id[:8]}[/]) with {len(layer.collection)} feature(s)"
    )
    if layer.classify_field:
        console.print(f"  Classified by [cyan]{layer.classify_field}[/]")


class Toggle(str, Enum):
    on = "on"
    off = "off"


def dark_mode(
    state: Toggle = typer.Argument(..., help="on | off"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Persist the viewer's dark-mode flag in the session."""
    ctx = open_session(session, config_file)
    ctx.state.dark_mode = state == Toggle.on
    ctx.save()
    console.print(f"[bold green]✔[/] Dark mode {state.value}")
