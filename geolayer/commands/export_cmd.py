"""Export command for geolayer CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from geolayer.commands.common import ConfigOption, SessionOption, console, fail, open_session
from geolayer.io.geojson import write_geojson
from geolayer.io.shapefile_bundle import export_shapefile_zip, partition_features
from geolayer.utils.utils import format_file_size, sanitize_filename


class ExportFormat(str, Enum):
    geojson = "geojson"
    shapefile = "shapefile"


_SUFFIXES = {ExportFormat.geojson: ".geojson", ExportFormat.shapefile: ".zip"}


def export(
    layer_id: str = typer.Argument(..., help="Layer id (or unique prefix)"),
    fmt: ExportFormat = typer.Option(
        ExportFormat.geojson, "--format", "-f", help="Output format", case_sensitive=False
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: <layer name>.geojson / .zip)"
    ),
    session: Optional[Path] = SessionOption,
    config_file: Optional[Path] = ConfigOption,
):
    """Export a layer as GeoJSON or as a zipped shapefile bundle."""
    ctx = open_session(session, config_file)
    try:
        layer = ctx.registry.get(layer_id)
    except KeyError as e:
        fail(e.args[0])

    output_path = output or Path(sanitize_filename(layer.name) + _SUFFIXES[fmt])
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == ExportFormat.geojson:
        write_geojson(layer, output_path)
    else:
        partitions = {k: v for k, v in partition_features(layer.collection).items() if v}
        if not partitions:
            fail(f"Layer '{layer.name}' has no exportable geometries")
        output_path.write_bytes(export_shapefile_zip(layer))
        for kind, features in partitions.items():
            console.print(f"  {kind}: [cyan]{len(features)}[/]")

    size = output_path.stat().st_size
    console.print(
        f"[bold green]✔[/] Exported [cyan]{layer.name}[/] to [underline]{output_path}[/] "
        f"({format_file_size(size)})"
    )
