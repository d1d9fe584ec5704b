"""Layer management commands for geolayer CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from geolayer.commands.common import (
    ConfigOption,
    SessionOption,
    color_swatch,
    console,
    fail,
    format_value,
    open_session,
)
from geolayer.core.classifier import NumericClassification
from geolayer.core.diagnostics import check_data_quality, layer_inventory
from geolayer.core.render import legend

app = typer.Typer()


@app.command("list")
def list_layers(
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """List layers in the session, oldest first."""
    ctx = open_session(session, config_file)
    layers = ctx.registry.list()
    if not layers:
        console.print("[dim]No layers yet. Add one with 'geolayer add FILE'.[/]")
        return

    table = Table(title=f"Layers ({len(layers)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Features", justify="right")
    table.add_column("Color")
    table.add_column("Field")
    for layer in layers:
        table.add_row(
            layer.id[:8],
            layer.name,
            layer.source,
            str(len(layer.collection)),
            color_swatch(layer.style.color),
            layer.classify_field or "-",
        )
    console.print(table)
    if ctx.state.dark_mode:
        console.print("[dim]Dark mode: on[/]")


@app.command("show")
def show(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Show one layer: inventory, style and classification."""
    ctx = open_session(session, config_file)
    try:
        layer = ctx.registry.get(layer_id)
    except KeyError as e:
        fail(e.args[0])

    inv = layer_inventory(layer)
    console.print(f"\n[bold]{layer.name}[/] [dim]{layer.id}[/]")
    console.print(f"  Source: [cyan]{inv['source']}[/]   Created: [dim]{inv['created_at']}[/]")
    console.print(f"  Features: [cyan]{inv['feature_count']}[/]")
    for kind, count in sorted(inv["geometry_counts"].items()):
        console.print(f"    {kind}: {count}")
    if inv["bounds"]:
        min_x, min_y, max_x, max_y = inv["bounds"]
        console.print(f"  Bounds: [cyan]{min_x:.6f}, {min_y:.6f} → {max_x:.6f}, {max_y:.6f}[/]")
    if inv["fields"]:
        rendered = ", ".join(
            f"{f['name']}{' (numeric)' if f['numeric'] else ''}" for f in inv["fields"]
        )
        console.print(f"  Fields: {rendered}")

    style = inv["style"]
    console.print(
        f"  Style: {color_swatch(style['color'])}  weight {style['weight']}  "
        f"opacity {style['opacity']}  {style['dash']}"
    )

    quality = check_data_quality(layer.collection)
    if quality["null_geometries"]:
        console.print(
            f"  [yellow]⚠[/] {len(quality['null_geometries'])} feature(s) without geometry"
        )
    for name, count in quality["missing_fields"].items():
        console.print(f"  [yellow]⚠[/] {count} feature(s) missing field '{name}'")

    if layer.classify_field:
        _print_classification(layer.classify_field, layer.classification)
    if layer.overrides:
        console.print("  Overrides:")
        for value, color in layer.overrides.items():
            console.print(f"    {format_value(value)}: {color_swatch(color)}")
    console.print()


def _print_classification(field_name, classification) -> None:
    if isinstance(classification, NumericClassification):
        console.print(
            f"  Classified by [cyan]{field_name}[/] (numeric): "
            f"{classification.min:g} → {classification.max:g}"
        )
    else:
        console.print(f"  Classified by [cyan]{field_name}[/] (categorical)")
    entries = legend(classification)
    if not entries:
        console.print("    [dim](no values)[/]")
    for value, color in entries:
        console.print(f"    {format_value(value)}: {color_swatch(color)}")


@app.command("remove")
def remove(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Remove a layer."""
    ctx = open_session(session, config_file)
    try:
        layer = ctx.registry.remove(layer_id)
    except KeyError as e:
        fail(e.args[0])
    ctx.save()
    console.print(f"[bold green]✔[/] Removed layer [cyan]{layer.name}[/]")


@app.command("clear")
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Remove all layers."""
    ctx = open_session(session, config_file)
    if not yes and not typer.confirm(f"Remove all {len(ctx.registry)} layer(s)?"):
        raise typer.Exit(0)
    count = ctx.registry.clear()
    ctx.save()
    console.print(f"[bold green]✔[/] Removed {count} layer(s)")


@app.command("style")
def style(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    color: Optional[str] = typer.Option(None, "--color", help="Base color (#rrggbb)"),
    weight: Optional[float] = typer.Option(None, "--weight", help="Stroke weight, 1-10"),
    opacity: Optional[float] = typer.Option(None, "--opacity", help="Fill opacity, 0-1"),
    dash: Optional[str] = typer.Option(None, "--dash", help="solid | dashed | dotted"),
    name: Optional[str] = typer.Option(None, "--name", help="Rename the layer"),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Change a layer's style (and optionally its name)."""
    ctx = open_session(session, config_file)
    registry = ctx.registry
    try:
        layer = registry.update_style(
            layer_id, color=color, weight=weight, opacity=opacity, dash=dash
        )
        if name:
            registry.rename(layer.id, name)
    except KeyError as e:
        fail(e.args[0])
    except ValueError as e:
        fail(str(e))
    ctx.save()
    s = layer.style
    console.print(
        f"[bold green]✔[/] [cyan]{layer.name}[/]: {color_swatch(s.color)}  "
        f"weight {s.weight}  opacity {s.opacity}  {s.dash}"
    )
