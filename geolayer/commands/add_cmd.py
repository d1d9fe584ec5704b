"""Add command for geolayer CLI."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from geolayer.commands.common import ConfigOption, SessionOption, console, fail, open_session
from geolayer.core.color_mapper import normalize_color
from geolayer.core.errors import FormatError
from geolayer.core.ingest import files_from_paths
from geolayer.model import LayerStyle
from geolayer.utils.utils import format_file_size


def add(
    files: List[Path] = typer.Argument(
        ..., help="A .zip shapefile, a .geojson/.json file, or .shp + .dbf (+ .shx/.cpg)"
    ),
    name: str = typer.Option("Data Layer", "--name", "-n", help="Layer name"),
    color: Optional[str] = typer.Option(None, "--color", help="Base color (#rrggbb)"),
    weight: Optional[float] = typer.Option(None, "--weight", help="Stroke weight, 1-10"),
    opacity: Optional[float] = typer.Option(None, "--opacity", help="Fill opacity, 0-1"),
    dash: Optional[str] = typer.Option(None, "--dash", help="solid | dashed | dotted"),
    classify_field: Optional[str] = typer.Option(
        None, "--field", "-f", help="Classify the new layer by this attribute"
    ),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Ingest uploaded files as a new layer."""
    ctx = open_session(session, config_file)

    missing = [str(p) for p in files if not p.exists()]
    if missing:
        fail(f"File not found: {', '.join(missing)}")

    try:
        base = ctx.config.default_style
        style = LayerStyle(
            color=normalize_color(color) if color else base.color,
            weight=weight if weight is not None else base.weight,
            opacity=opacity if opacity is not None else base.opacity,
            dash=dash or base.dash,
        )
    except ValueError as e:
        fail(str(e))

    try:
        uploads = files_from_paths(files)
        layer = ctx.registry.add_from_upload(
            uploads, name=name, style=style, classify_field=classify_field
        )
    except FormatError as e:
        fail(e.reason)
    except OSError as e:
        fail(f"Cannot read upload: {e}")

    ctx.save()

    total = sum(len(f.data) for f in uploads)
    console.print(
        f"[bold green]✔[/] Added layer [cyan]{layer.name}[/] "
        f"([dim]{layer.id[:8]}[/]) with {len(layer.collection)} feature(s) "
        f"from {len(uploads)} file(s), {format_file_size(total)}"
    )
    counts = layer.collection.geometry_counts()
    if counts:
        console.print(
            "  Geometry: " + ", ".join(f"{kind} [cyan]{n}[/]" for kind, n in sorted(counts.items()))
        )
    fields = layer.collection.field_names()
    if fields:
        console.print(f"  Fields: [cyan]{', '.join(fields)}[/]")
