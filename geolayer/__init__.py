"""geolayer - vector layer ingestion and attribute classification for web maps."""

__version__ = "1.0.0"
__description__ = "Ingest, classify, style and export vector layers for web maps"

from geolayer.cli import app, main

__all__ = ["app", "main", "__version__"]
