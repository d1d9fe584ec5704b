"""Classify and override commands for geolayer CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from geolayer.commands.common import (
    ConfigOption,
    SessionOption,
    color_swatch,
    console,
    fail,
    format_value,
    open_session,
)
from geolayer.core.classifier import NumericClassification, distinct_values
from geolayer.core.render import legend
from geolayer.model import ABSENT, Layer


def _print_legend(layer: Layer) -> None:
    result = layer.classification
    if isinstance(result, NumericClassification):
        console.print(
            f"  Numeric ramp over [cyan]{layer.classify_field}[/]: "
            f"{result.min:g} → {result.max:g} (null values in gray)"
        )
    for value, color in legend(result):
        console.print(f"  {format_value(value)}: {color_swatch(color)}")


def classify(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    field_name: Optional[str] = typer.Argument(
        None, metavar="FIELD", help="Attribute to classify by; omit to clear"
    ),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Classify a layer by an attribute field."""
    ctx = open_session(session, config_file)
    registry = ctx.registry
    try:
        layer = registry.get(layer_id)
        registry.set_field(layer.id, field_name)
    except KeyError as e:
        fail(e.args[0])
    ctx.save()

    if not field_name:
        console.print(f"[bold green]✔[/] Cleared classification of [cyan]{layer.name}[/]")
        return
    if field_name not in layer.collection.field_names():
        console.print(f"[yellow]⚠[/] Field '{field_name}' not found in [cyan]{layer.name}[/]")
    mode = "numeric" if isinstance(layer.classification, NumericClassification) else "categorical"
    console.print(
        f"[bold green]✔[/] Classified [cyan]{layer.name}[/] by [cyan]{field_name}[/] ({mode})"
    )
    _print_legend(layer)


def _resolve_value(layer: Layer, text: str) -> Any:
    """Match typed text to an existing category value by its string form."""
    for value in distinct_values(layer.collection, layer.classify_field):
        if value is not ABSENT and str(value) == text:
            return value
    return text


def override(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    value: Optional[str] = typer.Argument(None, help="Category value"),
    color: Optional[str] = typer.Argument(None, help="Color (#rrggbb); omit with --clear"),
    absent: bool = typer.Option(
        False, "--absent", help="Target the bucket for null/missing values (VALUE is then the color)"
    ),
    clear: bool = typer.Option(False, "--clear", help="Remove the override instead"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Pin a color for one category value of the classified field."""
    ctx = open_session(session, config_file)
    registry = ctx.registry
    try:
        layer = registry.get(layer_id)
    except KeyError as e:
        fail(e.args[0])
    if not layer.classify_field:
        fail(
            f"Layer '{layer.name}' is not classified",
            "Run 'geolayer classify LAYER FIELD' first",
        )

    if absent:
        # no VALUE argument in this form, the first positional is the color
        color = color or value
        target: Any = ABSENT
    else:
        if value is None:
            fail("Missing category VALUE (or use --absent)")
        target = _resolve_value(layer, value)

    try:
        if clear:
            registry.clear_override(layer.id, target)
        else:
            if not color:
                fail("Missing COLOR")
            registry.set_override(layer.id, target, color)
    except ValueError as e:
        fail(str(e))
    ctx.save()

    if clear:
        console.print(f"[bold green]✔[/] Removed override for {format_value(target)}")
    else:
        console.print(
            f"[bold green]✔[/] {format_value(target)} → {color_swatch(layer.overrides[target])}"
        )
    if isinstance(layer.classification, NumericClassification):
        console.print("[dim]Overrides apply to categorical classifications only[/]")
    _print_legend(layer)
