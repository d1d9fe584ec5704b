"""
Attribute classification.

Given a FeatureCollection and an attribute field, derive how each feature is
colored:

- **Numeric** fields (every non-null value parses as a finite decimal) yield a
  ``NumericClassification(min, max)``; colors are resolved per value at render
  time on the blue → red ramp.
- Anything else yields a ``CategoricalClassification``: one color per distinct
  value, in first-occurrence order, from the Set2 palette. Null and missing
  values share the ``ABSENT`` category. User overrides replace palette colors
  for the values they name.

Classification never raises. Zero features, an unknown field, or a field with
only null values all produce an empty categorical result.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from geolayer.core.color_mapper import (
    NEUTRAL_GRAY,
    NUMERIC_RAMP,
    categorical_palette,
)
from geolayer.model import ABSENT, FeatureCollection

logger = logging.getLogger(__name__)

_DECIMAL_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$")


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a value as a finite decimal number.

    Example:
        >>> parse_number(" 12.5 ")
        12.5
        >>> parse_number("12abc") is None
        True
        >>> parse_number(True) is None
        True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str) and _DECIMAL_RE.match(value):
        number = float(value)
        return number if math.isfinite(number) else None
    return None


@dataclass(frozen=True)
class BoolKey:
    """Category key for a boolean, kept apart from the numbers 1 and 0."""

    value: bool

    def __str__(self) -> str:
        return str(self.value)


def category_key(value: Any) -> Any:
    """
    Hashable key for a raw attribute value.

    None becomes ABSENT and booleans become a BoolKey; lists and dicts are
    keyed by their canonical JSON text.
    """
    if value is None or value is ABSENT:
        return ABSENT
    if isinstance(value, bool):
        return BoolKey(value)
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    if isinstance(value, (list, dict)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return value


@dataclass(frozen=True)
class NumericClassification:
    min: float
    max: float

    numeric = True

    def color_for(self, value: Any) -> str:
        return ramp_color(value, self.min, self.max)


@dataclass
class CategoricalClassification:
    """Distinct value -> color, ordered by first occurrence."""

    colors: Dict[Any, str] = field(default_factory=dict)

    numeric = False

    def __len__(self) -> int:
        return len(self.colors)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.colors)

    def __contains__(self, value: Any) -> bool:
        return category_key(value) in self.colors

    def __getitem__(self, value: Any) -> str:
        return self.colors[category_key(value)]

    def get(self, value: Any, default: Optional[str] = None) -> Optional[str]:
        return self.colors.get(category_key(value), default)

    def items(self) -> List[Tuple[Any, str]]:
        return list(self.colors.items())

    def color_for(self, value: Any, default: Optional[str] = None) -> Optional[str]:
        return self.get(value, default)


ClassificationResult = Union[NumericClassification, CategoricalClassification]


def ramp_color(value: Any, lo: float, hi: float) -> str:
    """
    Color for ``value`` on the numeric ramp over ``[lo, hi]``.

    Unparsable values and a degenerate domain resolve to NEUTRAL_GRAY.

    Example:
        >>> ramp_color(10, 10, 30)
        '#0000ff'
        >>> ramp_color(None, 10, 30)
        '#888888'
    """
    v = parse_number(value)
    if v is None or lo == hi:
        return NEUTRAL_GRAY
    return NUMERIC_RAMP.domain(lo, hi)(v)


def is_numeric_field(collection: FeatureCollection, field_name: str) -> bool:
    """
    True when every value of the field is null/missing or a finite number.

    Vacuously true for an all-null field; `classify` checks for that first.
    """
    for feat in collection.features:
        value = feat.get(field_name)
        if value is ABSENT:
            continue
        if parse_number(value) is None:
            return False
    return True


def distinct_values(collection: FeatureCollection, field_name: str) -> List[Any]:
    """Distinct category keys of a field, in first-occurrence order."""
    seen: Dict[Any, None] = {}
    for feat in collection.features:
        key = category_key(feat.get(field_name))
        if key not in seen:
            seen[key] = None
    return list(seen)


def classify(
    collection: FeatureCollection,
    field_name: Optional[str],
    overrides: Optional[Mapping[Any, str]] = None,
) -> ClassificationResult:
    """
    Classify a collection by one attribute field.

    Args:
        collection: Normalized features
        field_name: Attribute to classify on
        overrides: User colors keyed by attribute value (None or ABSENT for
            the absent category); they win over palette colors

    Returns:
        NumericClassification or CategoricalClassification (possibly empty)
    """
    if not field_name:
        return CategoricalClassification()

    has_value = any(feat.get(field_name) is not ABSENT for feat in collection.features)
    if not has_value:
        logger.debug("Field '%s' has no values; empty classification", field_name)
        return CategoricalClassification()

    if is_numeric_field(collection, field_name):
        numbers = [
            n
            for n in (parse_number(feat.get(field_name)) for feat in collection.features)
            if n is not None
        ]
        result = NumericClassification(min=min(numbers), max=max(numbers))
        logger.debug(
            "Field '%s' is numeric (%s..%s)", field_name, result.min, result.max
        )
        return result

    values = distinct_values(collection, field_name)
    palette = categorical_palette(len(values))
    override_map = {category_key(k): v for k, v in (overrides or {}).items()}

    colors: Dict[Any, str] = {}
    for value, color in zip(values, palette):
        colors[value] = override_map.get(value, color)

    logger.debug("Field '%s' is categorical (%d values)", field_name, len(colors))
    return CategoricalClassification(colors=colors)


# -- JSON persistence --------------------------------------------------------


def encode_entries(mapping: Mapping[Any, str]) -> List[Dict[str, Any]]:
    """Encode a value -> color mapping as JSON-safe entries (ABSENT included)."""
    entries: List[Dict[str, Any]] = []
    for value, color in mapping.items():
        key = category_key(value)
        if key is ABSENT:
            entries.append({"absent": True, "color": color})
        elif isinstance(key, BoolKey):
            entries.append({"value": key.value, "color": color})
        else:
            entries.append({"value": key, "color": color})
    return entries


def decode_entries(entries: Any) -> Dict[Any, str]:
    out: Dict[Any, str] = {}
    for entry in entries or []:
        if not isinstance(entry, dict) or "color" not in entry:
            continue
        key = ABSENT if entry.get("absent") else category_key(entry.get("value"))
        out[key] = str(entry["color"])
    return out


def classification_to_dict(result: Optional[ClassificationResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    if isinstance(result, NumericClassification):
        return {"numeric": True, "min": result.min, "max": result.max}
    return {"numeric": False, "categories": encode_entries(result.colors)}


def classification_from_dict(data: Optional[Dict[str, Any]]) -> Optional[ClassificationResult]:
    if not data:
        return None
    if data.get("numeric"):
        return NumericClassification(min=float(data["min"]), max=float(data["max"]))
    return CategoricalClassification(colors=decode_entries(data.get("categories")))
