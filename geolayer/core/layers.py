"""
LayerRegistry: the ordered list of layers in a session.

All layer mutation goes through here so that classification state never
drifts from the layer's field and overrides:

- changing the classify field or an override recomputes the classification;
- a classification supplied at creation (built-in datasets) is kept as-is
  until one of those changes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from geolayer.core.classifier import ClassificationResult, category_key, classify
from geolayer.core.color_mapper import normalize_color
from geolayer.core.ingest import FileSet, ingest
from geolayer.model import Layer, LayerStyle

logger = logging.getLogger(__name__)

_SOURCE_BY_SUFFIX = {".zip": "shapefile", ".shp": "shapefile", ".dbf": "shapefile"}


def _source_tag(files: FileSet) -> str:
    for f in files:
        if f.suffix in _SOURCE_BY_SUFFIX:
            return _SOURCE_BY_SUFFIX[f.suffix]
    return "geojson"


class LayerRegistry:
    """Ordered registry of layers, oldest first."""

    def __init__(self, layers: Optional[List[Layer]] = None) -> None:
        # shares the given list so a SessionState sees every change
        self._layers: List[Layer] = layers if layers is not None else []

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self):
        return iter(list(self._layers))

    def list(self) -> List[Layer]:
        return list(self._layers)

    def get(self, layer_id: str) -> Layer:
        """
        Look up a layer by id, or by a unique id prefix.

        Raises:
            KeyError: If no layer (or more than one) matches
        """
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        matches = [existing for existing in self._layers if layer_id and existing.id.startswith(layer_id)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise KeyError(f"Layer id prefix is ambiguous: {layer_id}")
        raise KeyError(f"Layer not found: {layer_id}")

    def add(self, layer: Layer) -> Layer:
        if any(existing.id == layer.id for existing in self._layers):
            raise ValueError(f"Duplicate layer id: {layer.id}")
        if layer.classification is None and layer.classify_field:
            layer.classification = classify(layer.collection, layer.classify_field, layer.overrides)
        self._layers.append(layer)
        logger.info("Added layer '%s' (%s, %d features)", layer.name, layer.id, len(layer.collection))
        return layer

    def add_from_upload(
        self,
        files: FileSet,
        name: str = "Data Layer",
        style: Optional[LayerStyle] = None,
        classify_field: Optional[str] = None,
    ) -> Layer:
        """
        Ingest an upload into a new layer.

        On FormatError nothing is added and the error propagates.
        """
        collection = ingest(files)
        layer = Layer(
            name=name,
            collection=collection,
            style=style or LayerStyle(),
            source=_source_tag(files),
            classify_field=classify_field,
        )
        return self.add(layer)

    def remove(self, layer_id: str) -> Layer:
        layer = self.get(layer_id)
        self._layers.remove(layer)
        logger.info("Removed layer '%s' (%s)", layer.name, layer.id)
        return layer

    def clear(self) -> int:
        count = len(self._layers)
        self._layers.clear()
        return count

    def update_style(self, layer_id: str, **changes: Any) -> Layer:
        """
        Update color, weight, opacity and/or dash of a layer.

        Raises:
            ValueError: If a value is out of range or the color is invalid
        """
        layer = self.get(layer_id)
        merged = layer.style.to_dict()
        unknown = set(changes) - set(merged)
        if unknown:
            raise ValueError(f"Unknown style option(s): {', '.join(sorted(unknown))}")
        merged.update({k: v for k, v in changes.items() if v is not None})
        merged["color"] = normalize_color(merged["color"])
        layer.style = LayerStyle.from_dict(merged)
        return layer

    def rename(self, layer_id: str, name: str) -> Layer:
        layer = self.get(layer_id)
        layer.name = name
        return layer

    def refresh(self, layer_id: str) -> Optional[ClassificationResult]:
        """Recompute the classification from the current field and overrides."""
        layer = self.get(layer_id)
        if layer.classify_field:
            layer.classification = classify(layer.collection, layer.classify_field, layer.overrides)
        else:
            layer.classification = None
        return layer.classification

    def set_field(self, layer_id: str, field_name: Optional[str]) -> Optional[ClassificationResult]:
        layer = self.get(layer_id)
        layer.classify_field = field_name or None
        return self.refresh(layer.id)

    def set_override(self, layer_id: str, value: Any, color: str) -> Optional[ClassificationResult]:
        """
        Pin a color for one category value (None/ABSENT for the absent bucket).

        Overrides are kept even when the value disappears, and apply again if
        it comes back.
        """
        layer = self.get(layer_id)
        layer.overrides[category_key(value)] = normalize_color(color)
        return self.refresh(layer.id)

    def clear_override(self, layer_id: str, value: Any) -> Optional[ClassificationResult]:
        layer = self.get(layer_id)
        layer.overrides.pop(category_key(value), None)
        return self.refresh(layer.id)

    def overrides_for(self, layer_id: str) -> Dict[Any, str]:
        return dict(self.get(layer_id).overrides)
