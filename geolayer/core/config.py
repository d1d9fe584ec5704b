"""
Configuration for geolayer.

User settings live in a YAML file (``geolayer_config.yaml`` or
``geolayer_config.yml`` in the working directory, or an explicit path):

    default_style:
      color: "#3388ff"
      weight: 3
      opacity: 0.2
      dash: solid
    session_path: .geolayer/session.json
    log_level: WARNING
    builtin_dataset:
      source: data/zonasi.geojson     # path or http(s) URL
      name: Zonasi
      field: FUNGSI
      colors:
        CA: "#e41a1c"
        SM: "#377eb8"

Anything omitted falls back to the defaults below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from geolayer.core.color_mapper import normalize_color
from geolayer.model import DEFAULT_COLOR, LayerStyle

CONFIG_FILENAMES = ("geolayer_config.yaml", "geolayer_config.yml")
DEFAULT_SESSION_PATH = ".geolayer/session.json"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_FETCH_TIMEOUT = 30.0

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class BuiltinDatasetConfig:
    """A GeoJSON resource loaded at startup as a pre-classified layer."""

    source: str
    name: str = "Built-in Layer"
    classify_field: Optional[str] = None
    colors: Dict[Any, str] = field(default_factory=dict)
    timeout: float = DEFAULT_FETCH_TIMEOUT


class GeolayerConfig:
    """Settings with user overrides applied on top of defaults."""

    def __init__(self, config_file: Optional[Path] = None):
        self.default_style = LayerStyle()
        self.session_path = DEFAULT_SESSION_PATH
        self.log_level = DEFAULT_LOG_LEVEL
        self.builtin_dataset: Optional[BuiltinDatasetConfig] = None
        self.config_file = config_file

        if config_file and Path(config_file).exists():
            self.load_user_config(Path(config_file))

    def load_user_config(self, config_file: Path) -> None:
        """
        Apply a YAML config file on top of the current settings.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

        if user_config is None:
            user_config = {}
        if not isinstance(user_config, dict):
            raise ValueError("Config file must contain a mapping at the top level")

        try:
            if "default_style" in user_config:
                style = user_config["default_style"] or {}
                if not isinstance(style, dict):
                    raise ValueError("default_style must be a mapping")
                merged = self.default_style.to_dict()
                merged.update(style)
                merged["color"] = normalize_color(str(merged.get("color") or DEFAULT_COLOR))
                self.default_style = LayerStyle.from_dict(merged)

            if user_config.get("session_path"):
                self.session_path = str(user_config["session_path"])

            if user_config.get("log_level"):
                level = str(user_config["log_level"]).upper()
                if level not in _LOG_LEVELS:
                    raise ValueError(
                        f"log_level must be one of {', '.join(_LOG_LEVELS)}, got '{level}'"
                    )
                self.log_level = level

            if user_config.get("builtin_dataset"):
                self.builtin_dataset = _parse_builtin(user_config["builtin_dataset"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Error loading config file {config_file}: {e}")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)

    def get_config_summary(self) -> Dict[str, Any]:
        return {
            "config_file": str(self.config_file) if self.config_file else None,
            "default_style": self.default_style.to_dict(),
            "session_path": self.session_path,
            "log_level": self.log_level,
            "builtin_dataset": self.builtin_dataset.source if self.builtin_dataset else None,
            "builtin_field": self.builtin_dataset.classify_field if self.builtin_dataset else None,
        }

    def export_template(self, output_path: Path) -> None:
        """Write a commented YAML template reflecting the current settings."""
        style = self.default_style
        yaml_content = f"""# geolayer configuration

# Style applied to newly added layers
default_style:
  color: "{style.color}"
  weight: {style.weight}        # stroke weight, 1-10
  opacity: {style.opacity}      # fill opacity, 0-1
  dash: {style.dash}            # solid | dashed | dotted

# Where the layer list and dark-mode flag are saved
session_path: {self.session_path}

# DEBUG | INFO | WARNING | ERROR
log_level: {self.log_level}

# Optional dataset added by `geolayer builtin`, pre-classified with fixed colors
# builtin_dataset:
#   source: data/zonasi.geojson
#   name: Zonasi
#   field: FUNGSI
#   colors:
#     CA: "#e41a1c"
#     SM: "#377eb8"
"""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(yaml_content)


def _parse_builtin(raw: Any) -> BuiltinDatasetConfig:
    if isinstance(raw, str):
        return BuiltinDatasetConfig(source=raw)
    if not isinstance(raw, dict):
        raise ValueError("builtin_dataset must be a mapping or a source string")
    source = raw.get("source")
    if not source:
        raise ValueError("builtin_dataset.source is required")
    colors_raw = raw.get("colors") or {}
    if not isinstance(colors_raw, dict):
        raise ValueError("builtin_dataset.colors must be a mapping of value -> color")
    colors = {value: normalize_color(str(color)) for value, color in colors_raw.items()}
    return BuiltinDatasetConfig(
        source=str(source),
        name=str(raw.get("name") or "Built-in Layer"),
        classify_field=str(raw["field"]) if raw.get("field") else None,
        colors=colors,
        timeout=float(raw.get("timeout") or DEFAULT_FETCH_TIMEOUT),
    )


def find_config_file() -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = Path(name)
        if candidate.exists():
            return candidate
    return None


def load_config(config_file: Optional[Path] = None) -> GeolayerConfig:
    """
    Load configuration.

    Args:
        config_file: Optional path to a YAML config file. If None, looks for
            geolayer_config.yaml / .yml in the current directory.
    """
    if config_file is None:
        config_file = find_config_file()
    return GeolayerConfig(config_file)
