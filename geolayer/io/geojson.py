"""
GeoJSON adapter.

Reads an uploaded GeoJSON document into a FeatureCollection and writes a
layer's collection back out as pretty-printed UTF-8 JSON.

Reading is a pass-through for FeatureCollection-shaped input: top-level
members other than ``features`` (name, crs, bbox, ...) and per-feature
members are kept so that re-exporting yields the same document.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from geolayer.core.errors import FormatError
from geolayer.model import FeatureCollection, Layer

_GEOMETRY_TYPES = frozenset(
    [
        "Point",
        "MultiPoint",
        "LineString",
        "MultiLineString",
        "Polygon",
        "MultiPolygon",
        "GeometryCollection",
    ]
)


def _decode_text(data: bytes, name: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"{name} is not valid UTF-8 text ({e.reason})") from e


def parse_geojson_document(data: Any, name: str = "GeoJSON") -> FeatureCollection:
    """
    Normalize an already-parsed JSON value into a FeatureCollection.

    Accepts anything exposing a ``features`` list, a bare Feature, or a bare
    geometry object.

    Raises:
        FormatError: If the value is not GeoJSON-shaped
    """
    if not isinstance(data, dict):
        raise FormatError(f"{name} does not contain a GeoJSON object")

    features = data.get("features")
    if isinstance(features, list):
        return FeatureCollection.from_geojson(data)
    if "features" in data:
        raise FormatError(f"{name}: 'features' must be a list")

    kind = data.get("type")
    if kind == "Feature":
        return FeatureCollection.from_geojson({"features": [data]})
    if kind in _GEOMETRY_TYPES:
        return FeatureCollection.from_geojson(
            {"features": [{"type": "Feature", "geometry": data, "properties": {}}]}
        )
    raise FormatError(f"{name} is not a GeoJSON FeatureCollection")


def read_geojson(data: bytes, name: str = "GeoJSON") -> FeatureCollection:
    """
    Parse uploaded GeoJSON bytes.

    Raises:
        FormatError: On bad encoding, malformed JSON, or non-GeoJSON content
    """
    text = _decode_text(data, name)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise FormatError(
            f"{name} is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})"
        ) from e
    return parse_geojson_document(parsed, name)


def export_geojson(layer: Layer) -> str:
    """Serialize a layer's features as a pretty-printed GeoJSON document."""
    return json.dumps(layer.collection.to_geojson(), ensure_ascii=False, indent=2) + "\n"


def write_geojson(layer: Layer, output_path: str | Path) -> Path:
    out = Path(output_path)
    out.write_text(export_geojson(layer), encoding="utf-8")
    return out
