"""Tests for geolayer.core.layers.LayerRegistry."""

import json

import pytest

from geolayer.core.classifier import CategoricalClassification, NumericClassification
from geolayer.core.color_mapper import categorical_palette
from geolayer.core.errors import FormatError
from geolayer.core.ingest import UploadFile
from geolayer.core.layers import LayerRegistry
from geolayer.model import ABSENT, Feature, FeatureCollection, Layer, LayerStyle

from shapefile_fixtures import parcels, zipped_shapefile


def _upload(values, field="FUNGSI"):
    doc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [i, i]},
             "properties": {field: v}}
            for i, v in enumerate(values)
        ],
    }
    return [UploadFile("zonasi.geojson", json.dumps(doc).encode("utf-8"))]


@pytest.fixture
def registry():
    return LayerRegistry()


def test_add_from_upload(registry):
    layer = registry.add_from_upload(_upload(["CA", "SM"]), name="Zonasi")
    assert len(registry) == 1
    assert layer.name == "Zonasi"
    assert layer.source == "geojson"
    assert layer.classification is None
    assert registry.get(layer.id) is layer


def test_add_from_zip_tags_source(registry):
    parts = parcels(3)
    data = zipped_shapefile("parcels", {"shp": parts["shp"], "dbf": parts["dbf"]})
    layer = registry.add_from_upload([UploadFile("parcels.zip", data)])
    assert layer.source == "shapefile"
    assert layer.name == "Data Layer"


def test_failed_upload_leaves_list_unchanged(registry):
    registry.add_from_upload(_upload(["CA"]))
    with pytest.raises(FormatError):
        registry.add_from_upload([UploadFile("bad.geojson", b"{nope")])
    assert len(registry) == 1


def test_add_with_field_classifies(registry):
    layer = registry.add_from_upload(_upload([10, 20]), classify_field="FUNGSI")
    assert layer.classification == NumericClassification(min=10, max=20)


def test_ids_are_unique_and_duplicates_rejected(registry):
    a = registry.add_from_upload(_upload(["x"]))
    b = registry.add_from_upload(_upload(["x"]))
    assert a.id != b.id
    with pytest.raises(ValueError, match="Duplicate"):
        registry.add(Layer(name="again", collection=FeatureCollection(), id=a.id))


def test_get_by_prefix_and_unknown(registry):
    layer = registry.add(Layer(name="a", collection=FeatureCollection(), id="abc123"))
    registry.add(Layer(name="b", collection=FeatureCollection(), id="abd456"))
    assert registry.get("abc") is layer
    with pytest.raises(KeyError, match="ambiguous"):
        registry.get("ab")
    with pytest.raises(KeyError, match="not found"):
        registry.get("zzz")


def test_remove_and_clear(registry):
    a = registry.add_from_upload(_upload(["x"]))
    registry.add_from_upload(_upload(["y"]))
    assert registry.remove(a.id) is a
    assert a.id not in [layer.id for layer in registry]
    assert registry.clear() == 1
    assert len(registry) == 0
    with pytest.raises(KeyError):
        registry.remove(a.id)


def test_update_style(registry):
    layer = registry.add_from_upload(_upload(["x"]), style=LayerStyle())
    registry.update_style(layer.id, color="#F00", weight=5, dash="dotted")
    assert layer.style == LayerStyle(color="#ff0000", weight=5, opacity=0.2, dash="dotted")

    with pytest.raises(ValueError):
        registry.update_style(layer.id, weight=42)
    with pytest.raises(ValueError, match="Invalid color"):
        registry.update_style(layer.id, color="chartreuse-ish")
    with pytest.raises(ValueError, match="Unknown style"):
        registry.update_style(layer.id, glow=True)
    assert layer.style.weight == 5


def test_set_field_recomputes(registry):
    layer = registry.add_from_upload(_upload(["CA", "SM", "CA"]))
    result = registry.set_field(layer.id, "FUNGSI")
    assert list(result) == ["CA", "SM"]
    assert registry.set_field(layer.id, None) is None
    assert layer.classify_field is None


def test_overrides_recompute_and_persist_on_layer(registry):
    layer = registry.add_from_upload(_upload(["CA", "SM", None]), classify_field="FUNGSI")
    registry.set_override(layer.id, "SM", "#000")
    registry.set_override(layer.id, None, "#ffffff")
    assert layer.classification["SM"] == "#000000"
    assert layer.classification[ABSENT] == "#ffffff"
    assert registry.overrides_for(layer.id) == {"SM": "#000000", ABSENT: "#ffffff"}

    registry.clear_override(layer.id, "SM")
    assert layer.classification["SM"] == categorical_palette(3)[1]


def test_override_survives_value_disappearing(registry):
    layer = registry.add_from_upload(_upload(["A", "B"]), classify_field="FUNGSI")
    registry.set_override(layer.id, "B", "#123456")
    layer.collection.features.pop()
    registry.refresh(layer.id)
    assert "B" not in layer.classification
    assert layer.overrides == {"B": "#123456"}

    layer.collection.features.append(
        Feature(geometry=None, properties={"FUNGSI": "B"})
    )
    registry.refresh(layer.id)
    assert layer.classification["B"] == "#123456"


def test_supplied_classification_is_kept_until_field_changes(registry):
    fc = FeatureCollection(features=[Feature(geometry=None, properties={"K": "a"})])
    supplied = CategoricalClassification(colors={"a": "#abcdef"})
    layer = registry.add(
        Layer(name="builtin", collection=fc, classify_field="K", classification=supplied)
    )
    assert layer.classification is supplied
    registry.set_field(layer.id, "K")
    assert layer.classification["a"] == categorical_palette(1)[0]
