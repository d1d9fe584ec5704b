"""
Built-in dataset loading.

The configured GeoJSON resource (a local path or an http(s) URL) is fetched,
parsed through the normal GeoJSON path, and returned as a Layer whose
classification comes from configuration instead of being inferred.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from geolayer.core.classifier import CategoricalClassification, category_key, classify
from geolayer.core.config import BuiltinDatasetConfig
from geolayer.core.errors import FormatError
from geolayer.io.geojson import read_geojson
from geolayer.model import Layer, LayerStyle

logger = logging.getLogger(__name__)


def fetch_resource(source: str, timeout: float) -> bytes:
    """
    Read a resource from a local path or an http(s) URL.

    Raises:
        FormatError: If the resource cannot be read
    """
    if source.lower().startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FormatError(f"Could not fetch built-in dataset {source}: {e}") from e
        return response.content

    path = Path(source).expanduser()
    try:
        return path.read_bytes()
    except OSError as e:
        raise FormatError(f"Could not read built-in dataset {path}: {e.strerror or e}") from e


def load_builtin_layer(
    dataset: BuiltinDatasetConfig, style: Optional[LayerStyle] = None
) -> Layer:
    """
    Load the configured dataset as a pre-classified layer.

    When colors are configured the layer carries them as its categorical
    classification verbatim (no palette inference). Without colors but with
    a field, the field is classified normally.
    """
    data = fetch_resource(dataset.source, dataset.timeout)
    collection = read_geojson(data, name=dataset.source)

    classification = None
    if dataset.classify_field and dataset.colors:
        classification = CategoricalClassification(
            colors={category_key(k): v for k, v in dataset.colors.items()}
        )
    elif dataset.classify_field:
        classification = classify(collection, dataset.classify_field)

    logger.info(
        "Loaded built-in dataset %s (%d features)", dataset.source, len(collection)
    )
    return Layer(
        name=dataset.name,
        collection=collection,
        style=style or LayerStyle(),
        source="builtin",
        classify_field=dataset.classify_field,
        classification=classification,
    )
