"""
Session persistence.

The session (layer list + dark-mode flag) is written as one JSON file by an
explicit `SessionStore`, which callers construct and pass around. Nothing in
geolayer reaches for ambient storage.

Layers round-trip without loss: geometry arrays, numbers, strings, nulls,
style, classification (including the ABSENT category) and overrides.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from geolayer.core.classifier import (
    classification_from_dict,
    classification_to_dict,
    decode_entries,
    encode_entries,
)
from geolayer.core.errors import SessionError
from geolayer.core.layers import LayerRegistry
from geolayer.model import FeatureCollection, Layer, LayerStyle, new_layer_id

logger = logging.getLogger(__name__)

SESSION_VERSION = 1
DEFAULT_SESSION_PATH = Path(".geolayer") / "session.json"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def layer_to_dict(layer: Layer) -> Dict[str, Any]:
    return {
        "id": layer.id,
        "name": layer.name,
        "source": layer.source,
        "created_at": layer.created_at,
        "style": layer.style.to_dict(),
        "classify_field": layer.classify_field,
        "overrides": encode_entries(layer.overrides),
        "classification": classification_to_dict(layer.classification),
        "data": layer.collection.to_geojson(),
    }


def layer_from_dict(d: Dict[str, Any]) -> Layer:
    return Layer(
        id=str(d.get("id") or new_layer_id()),
        name=str(d.get("name") or "Data Layer"),
        source=str(d.get("source") or "geojson"),
        created_at=str(d.get("created_at") or _now_iso()),
        style=LayerStyle.from_dict(d.get("style") or {}),
        classify_field=d.get("classify_field") or None,
        overrides=decode_entries(d.get("overrides")),
        classification=classification_from_dict(d.get("classification")),
        collection=FeatureCollection.from_geojson(d.get("data") or {}),
    )


@dataclass
class SessionState:
    layers: List[Layer] = field(default_factory=list)
    dark_mode: bool = False
    version: int = SESSION_VERSION
    updated_at: str = field(default_factory=_now_iso)

    def registry(self) -> LayerRegistry:
        """A registry operating on this state's layer list."""
        return LayerRegistry(self.layers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": int(self.version),
            "updated_at": self.updated_at,
            "dark_mode": bool(self.dark_mode),
            "layers": [layer_to_dict(layer) for layer in self.layers],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SessionState":
        s = SessionState()
        s.version = int(d.get("version") or SESSION_VERSION)
        s.updated_at = str(d.get("updated_at") or _now_iso())
        s.dark_mode = bool(d.get("dark_mode", False))
        s.layers = [layer_from_dict(raw) for raw in d.get("layers") or [] if isinstance(raw, dict)]
        return s


class SessionStore:
    """Load/save a SessionState from one JSON file."""

    def __init__(self, path: str | Path = DEFAULT_SESSION_PATH):
        self.path = Path(path)

    def load(self) -> SessionState:
        """
        Read the session, or an empty one if the file does not exist yet.

        Raises:
            SessionError: If the file exists but is not a readable session
        """
        if not self.path.exists():
            return SessionState()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SessionError(f"Cannot read session file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise SessionError(f"Session file {self.path} does not contain a JSON object")
        try:
            return SessionState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise SessionError(f"Session file {self.path} is invalid: {e}") from e

    def save(self, state: SessionState) -> Path:
        """Write the session atomically (temp file + replace)."""
        state.updated_at = _now_iso()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), ensure_ascii=False, indent=2) + "\n"
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Saved session with %d layer(s) to %s", len(state.layers), self.path)
        return self.path

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
