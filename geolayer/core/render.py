"""
Per-feature style resolution for the map renderer.

Everything here is a pure function of explicit arguments: a feature, the
layer's static style, the layer's classification result and the field it
was computed for. The renderer calls `style_function(layer)` once per draw and
applies the returned callable to each feature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from geolayer.core.classifier import (
    CategoricalClassification,
    ClassificationResult,
    NumericClassification,
)
from geolayer.model import Feature, Layer, LayerStyle

DASH_ARRAYS: Dict[str, Optional[str]] = {
    "solid": None,
    "dashed": "10, 10",
    "dotted": "2, 2",
}


@dataclass(frozen=True)
class FeatureStyle:
    stroke_color: str
    fill_color: str
    weight: float
    opacity: float
    fill_opacity: float
    dash_pattern: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        """Leaflet-style path options."""
        return {
            "color": self.stroke_color,
            "fillColor": self.fill_color,
            "weight": self.weight,
            "opacity": self.opacity,
            "fillOpacity": self.fill_opacity,
            "dashArray": self.dash_pattern,
        }


def feature_color(
    feature: Feature,
    base_color: str,
    classification: Optional[ClassificationResult],
    field_name: Optional[str],
) -> str:
    if not field_name or classification is None:
        return base_color
    value = feature.get(field_name)
    if isinstance(classification, NumericClassification):
        return classification.color_for(value)
    return classification.color_for(value, base_color) or base_color


def feature_style(
    feature: Feature,
    style: LayerStyle,
    classification: Optional[ClassificationResult] = None,
    field_name: Optional[str] = None,
) -> FeatureStyle:
    """
    Compose a layer's static style with its classification for one feature.

    Numeric classifications color by the ramp (null values in gray);
    categorical ones by the value's entry, or the base color when the value
    has none.
    """
    color = feature_color(feature, style.color, classification, field_name)
    return FeatureStyle(
        stroke_color=color,
        fill_color=color,
        weight=style.weight,
        opacity=1.0,
        fill_opacity=style.opacity,
        dash_pattern=DASH_ARRAYS.get(style.dash),
    )


def style_function(layer: Layer) -> Callable[[Feature], FeatureStyle]:
    style = layer.style
    classification = layer.classification
    field_name = layer.classify_field

    def _style(feature: Feature) -> FeatureStyle:
        return feature_style(feature, style, classification, field_name)

    return _style


def legend(classification: Optional[ClassificationResult]) -> List[Tuple[Any, str]]:
    """
    Legend entries for display.

    Categorical results list each (value, color); numeric results list the
    (min, color) and (max, color) ends of the ramp.
    """
    if isinstance(classification, CategoricalClassification):
        return classification.items()
    if isinstance(classification, NumericClassification):
        return [
            (classification.min, classification.color_for(classification.min)),
            (classification.max, classification.color_for(classification.max)),
        ]
    return []
