#!/usr/bin/env python3
"""
geolayer - vector layer ingestion and classification
Main CLI entry point
"""

from __future__ import annotations

import typer

from geolayer.commands import (
    add_cmd,
    builtin_cmd,
    classify_cmd,
    config_cmd,
    export_cmd,
    layers_cmd,
)

app = typer.Typer(
    name="geolayer",
    help="Ingest, classify, style and export vector layers for web maps",
    no_args_is_help=True,
    add_completion=True,
)

app.command(name="add", help="Ingest files as a new layer")(add_cmd.add)
app.command(name="classify", help="Classify a layer by an attribute field")(classify_cmd.classify)
app.command(name="override", help="Pin a color for one category value")(classify_cmd.override)
app.command(name="export", help="Export a layer as GeoJSON or zipped shapefile")(export_cmd.export)
app.command(name="builtin", help="Add the configured built-in dataset")(builtin_cmd.builtin)
app.command(name="dark-mode", help="Persist the dark-mode flag")(builtin_cmd.dark_mode)

app.add_typer(layers_cmd.app, name="layers", help="List, inspect, restyle and remove layers")
app.add_typer(config_cmd.app, name="config", help="Manage configuration settings")


@app.callback()
def callback() -> None:
    """
    geolayer - vector layer ingestion and classification

    Workflow:
      add FILES...            - Ingest a zipped shapefile, GeoJSON, or .shp + .dbf
      classify LAYER FIELD    - Color features by an attribute (numeric ramp or palette)
      override LAYER V COLOR  - Pin a category color
      export LAYER            - Write GeoJSON or a zipped shapefile bundle

    Utilities:
      layers                  - List, inspect, restyle and remove layers
      config                  - Manage configuration settings
    """
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
