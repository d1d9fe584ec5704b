"""
Small helpers shared by the exporters and the CLI.
"""

from __future__ import annotations

import re
from pathlib import Path


def sanitize_filename(name: str) -> str:
    """
    Make a layer name safe to use as a file or archive folder name.

    Example:
        >>> sanitize_filename("Zona / Fungsi: 2024")
        'Zona_Fungsi_2024'
    """
    if not name:
        return "layer"

    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "_", name)
    name = name.replace(" ", "_")
    name = re.sub(r"_+", "_", name)
    name = name.strip("_.")

    if len(name) > 200:
        name = name[:200]

    return name or "layer"


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count for display (e.g. "2.4 MB", "156.0 KB").
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def has_suffix(name: str, *suffixes: str) -> bool:
    """Case-insensitive filename suffix check."""
    lower = Path(name).name.lower()
    return any(lower.endswith(s.lower()) for s in suffixes)
