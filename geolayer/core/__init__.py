"""Core functionality modules for geolayer."""

__all__ = [
    "ingest",
    "classifier",
    "color_mapper",
    "render",
    "layers",
    "session",
    "config",
    "builtin",
    "diagnostics",
]
