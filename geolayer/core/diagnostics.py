"""
Diagnostics helpers.

Inventories of a layer's collection for `geolayer layers show`: counts,
attribute fields, bounds, and a few data-quality warnings.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from geolayer.core.classifier import is_numeric_field
from geolayer.model import FeatureCollection, Layer


def _positions(coords: Any) -> Iterator[Tuple[float, float]]:
    if isinstance(coords, (list, tuple)):
        if len(coords) >= 2 and all(isinstance(c, (int, float)) for c in coords[:2]):
            yield float(coords[0]), float(coords[1])
        else:
            for part in coords:
                yield from _positions(part)


def _geometry_positions(geometry: Optional[Dict[str, Any]]) -> Iterator[Tuple[float, float]]:
    if not isinstance(geometry, dict):
        return
    if geometry.get("type") == "GeometryCollection":
        for member in geometry.get("geometries") or []:
            yield from _geometry_positions(member)
    else:
        yield from _positions(geometry.get("coordinates"))


def collection_bounds(collection: FeatureCollection) -> Optional[Tuple[float, float, float, float]]:
    """(min_x, min_y, max_x, max_y) over all coordinates, or None when empty."""
    xs: List[float] = []
    ys: List[float] = []
    for feat in collection:
        for x, y in _geometry_positions(feat.geometry):
            xs.append(x)
            ys.append(y)
    if not xs:
        return None
    return min(xs), min(ys), max(xs), max(ys)


def collection_inventory(collection: FeatureCollection) -> Dict[str, Any]:
    fields = collection.field_names()
    return {
        "feature_count": len(collection),
        "geometry_counts": collection.geometry_counts(),
        "fields": [
            {"name": name, "numeric": is_numeric_field(collection, name)} for name in fields
        ],
        "bounds": collection_bounds(collection),
    }


def check_data_quality(collection: FeatureCollection) -> Dict[str, Any]:
    """
    Return data-quality warnings.

    - null_geometries: indexes of features without a geometry
    - missing_fields: field name -> number of features lacking it
      (relative to the first feature's fields)
    """
    warnings: Dict[str, Any] = {"null_geometries": [], "missing_fields": {}}
    fields = collection.field_names()
    for index, feat in enumerate(collection):
        if not feat.geometry:
            warnings["null_geometries"].append(index)
        attrs = feat.attributes
        for name in fields:
            if name not in attrs:
                warnings["missing_fields"][name] = warnings["missing_fields"].get(name, 0) + 1
    return warnings


def layer_inventory(layer: Layer) -> Dict[str, Any]:
    inventory = collection_inventory(layer.collection)
    inventory.update(
        {
            "id": layer.id,
            "name": layer.name,
            "source": layer.source,
            "created_at": layer.created_at,
            "style": layer.style.to_dict(),
            "classify_field": layer.classify_field,
            "override_count": len(layer.overrides),
        }
    )
    return inventory
