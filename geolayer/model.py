"""
Canonical in-memory data model for geolayer.

Features keep their geometry as a plain GeoJSON geometry dict, so every format
adapter (GeoJSON, shapefile) meets in the same representation and the whole
model round-trips through JSON.

Layers own their collection, their static style, and their classification
state. Nothing else mutates a layer except `LayerRegistry`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional


DashPattern = Literal["solid", "dashed", "dotted"]
DASH_PATTERNS: tuple[str, ...] = ("solid", "dashed", "dotted")

DEFAULT_COLOR = "#3388ff"


class _Absent:
    """Marker for a null or missing attribute value."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


@dataclass
class Feature:
    # `properties` stays None when the source feature had `"properties": null`
    geometry: Optional[Dict[str, Any]]
    properties: Optional[Dict[str, Any]] = field(default_factory=dict)
    id: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def geometry_type(self) -> Optional[str]:
        if isinstance(self.geometry, dict):
            return self.geometry.get("type")
        return None

    @property
    def attributes(self) -> Dict[str, Any]:
        return self.properties or {}

    def get(self, name: str) -> Any:
        """Attribute value, or ABSENT when null or missing."""
        value = self.attributes.get(name)
        return ABSENT if value is None else value

    def to_geojson(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": "Feature"}
        if self.id is not None:
            out["id"] = self.id
        out["geometry"] = self.geometry
        out["properties"] = self.properties
        out.update(self.extra)
        return out

    @classmethod
    def from_geojson(cls, raw: Dict[str, Any]) -> "Feature":
        extra = {
            k: v
            for k, v in raw.items()
            if k not in ("type", "id", "geometry", "properties")
        }
        props = raw.get("properties")
        return cls(
            geometry=raw.get("geometry"),
            properties=props if isinstance(props, dict) or props is None else {},
            id=raw.get("id"),
            extra=extra,
        )


@dataclass
class FeatureCollection:
    """
    Ordered features plus any extra top-level members (name, crs, bbox, ...).
    """

    features: List[Feature] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def field_names(self) -> List[str]:
        """Attribute names, taken from the first feature."""
        if not self.features:
            return []
        return list(self.features[0].attributes.keys())

    def geometry_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for feat in self.features:
            key = feat.geometry_type or "None"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def to_geojson(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": "FeatureCollection"}
        out.update(self.extra)
        out["features"] = [f.to_geojson() for f in self.features]
        return out

    @classmethod
    def from_geojson(cls, data: Dict[str, Any]) -> "FeatureCollection":
        extra = {k: v for k, v in data.items() if k not in ("type", "features")}
        features = [
            Feature.from_geojson(raw)
            for raw in data.get("features") or []
            if isinstance(raw, dict)
        ]
        return cls(features=features, extra=extra)


@dataclass
class LayerStyle:
    color: str = DEFAULT_COLOR
    weight: float = 3
    opacity: float = 0.2
    dash: str = "solid"

    def __post_init__(self) -> None:
        if not 1 <= float(self.weight) <= 10:
            raise ValueError(f"Stroke weight must be between 1 and 10, got {self.weight}")
        if not 0 <= float(self.opacity) <= 1:
            raise ValueError(f"Fill opacity must be between 0 and 1, got {self.opacity}")
        if self.dash not in DASH_PATTERNS:
            raise ValueError(
                f"Dash pattern must be one of {', '.join(DASH_PATTERNS)}, got '{self.dash}'"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color,
            "weight": self.weight,
            "opacity": self.opacity,
            "dash": self.dash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayerStyle":
        return cls(
            color=data.get("color", DEFAULT_COLOR),
            weight=float(data.get("weight", 3)),
            opacity=float(data.get("opacity", 0.2)),
            dash=data.get("dash", "solid"),
        )


def new_layer_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Layer:
    """
    A named, user-visible unit wrapping one FeatureCollection.

    `classification` is either computed from `classify_field` + `overrides` or supplied
    up front (built-in datasets), in which case it is kept as-is until the
    classify field or the overrides change.
    """

    name: str
    collection: FeatureCollection
    style: LayerStyle = field(default_factory=LayerStyle)
    id: str = field(default_factory=new_layer_id)
    source: str = "geojson"
    classify_field: Optional[str] = None
    overrides: Dict[Any, str] = field(default_factory=dict)
    classification: Any = None
    created_at: str = field(default_factory=_utc_now)
