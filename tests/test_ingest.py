"""Tests for geolayer.core.ingest dispatch and decoding."""

import io
import json

import pytest
import shapefile

from geolayer.core.errors import FormatError
from geolayer.core.ingest import (
    UploadFile,
    UploadKind,
    detect_kind,
    files_from_paths,
    ingest,
    ingest_paths,
)
from geolayer.model import ABSENT

from shapefile_fixtures import build_shapefile, parcels, points, zip_members, zipped_shapefile


def _geojson_bytes(doc) -> bytes:
    return json.dumps(doc).encode("utf-8")


SAMPLE_FC = {
    "type": "FeatureCollection",
    "name": "zonasi",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [106.8, -6.2]},
            "properties": {"FUNGSI": "CA"},
        },
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [106.9, -6.3]},
            "properties": {"FUNGSI": "SM"},
        },
    ],
}


class TestDetectKind:
    def test_single_zip(self):
        assert detect_kind([UploadFile("a.ZIP", b"")]) == UploadKind.ZIPPED_SHAPEFILE

    def test_single_geojson_and_json(self):
        assert detect_kind([UploadFile("a.geojson", b"")]) == UploadKind.GEOJSON_FILE
        assert detect_kind([UploadFile("a.json", b"")]) == UploadKind.GEOJSON_FILE

    def test_shp_dbf_pair(self):
        files = [UploadFile("a.shp", b""), UploadFile("a.dbf", b"")]
        assert detect_kind(files) == UploadKind.SHAPEFILE_BUNDLE

    def test_media_type_fallback(self):
        assert detect_kind([UploadFile("upload", b"", "application/zip")]) == UploadKind.ZIPPED_SHAPEFILE

    def test_empty_upload(self):
        with pytest.raises(FormatError, match="No files"):
            detect_kind([])

    def test_missing_dbf_companion(self):
        with pytest.raises(FormatError, match=r"\.dbf"):
            detect_kind([UploadFile("a.shp", b"")])

    def test_unsupported_format(self):
        with pytest.raises(FormatError, match="Unsupported"):
            detect_kind([UploadFile("notes.txt", b"hello")])

    def test_zip_among_several_files_is_not_a_zip_upload(self):
        files = [UploadFile("a.zip", b""), UploadFile("b.geojson", b"")]
        with pytest.raises(FormatError):
            detect_kind(files)


class TestGeoJSONIngest:
    def test_feature_collection(self):
        fc = ingest([UploadFile("zonasi.geojson", _geojson_bytes(SAMPLE_FC))])
        assert len(fc) == 2
        assert fc.extra == {"name": "zonasi"}
        assert [f.properties["FUNGSI"] for f in fc] == ["CA", "SM"]

    def test_identity_round_trip(self):
        fc = ingest([UploadFile("zonasi.json", _geojson_bytes(SAMPLE_FC))])
        assert fc.to_geojson() == SAMPLE_FC

    def test_bom_is_tolerated(self):
        data = b"\xef\xbb\xbf" + _geojson_bytes(SAMPLE_FC)
        assert len(ingest([UploadFile("a.geojson", data)])) == 2

    def test_bare_feature_is_wrapped(self):
        fc = ingest([UploadFile("one.geojson", _geojson_bytes(SAMPLE_FC["features"][0]))])
        assert len(fc) == 1
        assert fc.features[0].properties == {"FUNGSI": "CA"}

    def test_bare_geometry_is_wrapped(self):
        geometry = {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}
        fc = ingest([UploadFile("line.geojson", _geojson_bytes(geometry))])
        assert fc.features[0].geometry == geometry

    def test_null_properties_are_kept(self):
        doc = {"type": "FeatureCollection", "features": [
            {"type": "Feature", "geometry": None, "properties": None}
        ]}
        fc = ingest([UploadFile("a.geojson", _geojson_bytes(doc))])
        assert fc.features[0].properties is None
        assert fc.features[0].get("anything") is ABSENT
        assert fc.to_geojson() == doc

    def test_malformed_json(self):
        with pytest.raises(FormatError, match="not valid JSON"):
            ingest([UploadFile("broken.geojson", b'{"type": "FeatureCollection", ')])

    def test_bad_encoding(self):
        with pytest.raises(FormatError, match="UTF-8"):
            ingest([UploadFile("latin.geojson", '{"name": "caf\xe9"}'.encode("latin-1"))])

    def test_non_geojson_object(self):
        with pytest.raises(FormatError):
            ingest([UploadFile("a.json", b'{"hello": "world"}')])

    def test_json_array_is_rejected(self):
        with pytest.raises(FormatError):
            ingest([UploadFile("a.json", b"[1, 2, 3]")])


class TestShapefileBundleIngest:
    def test_positional_pairing(self):
        parts = points(["alpha", "beta", "gamma"])
        fc = ingest([
            UploadFile("pts.shp", parts["shp"]),
            UploadFile("pts.dbf", parts["dbf"]),
        ])
        assert len(fc) == 3
        assert [f.properties["NAME"] for f in fc] == ["alpha", "beta", "gamma"]
        assert fc.features[1].geometry == {"type": "Point", "coordinates": [1.0, 2.0]}

    def test_with_shx_companion(self):
        parts = points(["alpha", "beta"])
        files = [UploadFile(f"pts.{ext}", data) for ext, data in parts.items()]
        assert len(ingest(files)) == 2

    def test_polygons_normalize_to_geojson(self):
        parts = parcels(2)
        fc = ingest([UploadFile("p.shp", parts["shp"]), UploadFile("p.dbf", parts["dbf"])])
        geometry = fc.features[0].geometry
        assert geometry["type"] == "Polygon"
        assert len(geometry["coordinates"][0]) == 5
        assert isinstance(geometry["coordinates"][0][0], list)

    def test_not_a_shapefile(self):
        parts = points(["a"])
        with pytest.raises(FormatError, match="shapefile|truncated"):
            ingest([UploadFile("x.shp", b"garbage"), UploadFile("x.dbf", parts["dbf"])])

    def test_multipatch_is_rejected(self):
        parts = build_shapefile(
            shapefile.MULTIPATCH,
            [("NAME", "C", 10, 0)],
            [([[[0, 0, 0], [0, 1, 0], [1, 0, 1], [1, 1, 1]]], ["roof"])],
        )
        with pytest.raises(FormatError, match="unsupported shape type MULTIPATCH"):
            ingest([UploadFile("m.shp", parts["shp"]), UploadFile("m.dbf", parts["dbf"])])

    def test_record_count_mismatch(self):
        shp = points(["a", "b", "c"])
        dbf = points(["a", "b"])
        with pytest.raises(FormatError):
            ingest([UploadFile("x.shp", shp["shp"]), UploadFile("x.dbf", dbf["dbf"])])

    def test_cpg_selects_dbf_encoding(self):
        shp, shx, dbf = io.BytesIO(), io.BytesIO(), io.BytesIO()
        writer = shapefile.Writer(shp=shp, shx=shx, dbf=dbf, shapeType=shapefile.POINT, encoding="cp1252")
        writer.field("NAME", "C", size=20)
        writer.point(1, 2)
        writer.record("Café")
        writer.close()

        fc = ingest([
            UploadFile("x.shp", shp.getvalue()),
            UploadFile("x.dbf", dbf.getvalue()),
            UploadFile("x.cpg", b"1252"),
        ])
        assert fc.features[0].properties["NAME"] == "Café"


class TestZippedShapefileIngest:
    def test_parcels_scenario(self):
        """A zip holding parcels.shp and parcels.dbf with 10 records yields 10 features."""
        parts = parcels(10)
        data = zipped_shapefile("parcels", {"shp": parts["shp"], "dbf": parts["dbf"]})
        fc = ingest([UploadFile("parcels.zip", data)])
        assert len(fc) == 10
        assert [f.properties["ID"] for f in fc] == list(range(1, 11))
        assert fc.geometry_counts() == {"Polygon": 10}

    def test_nested_folder_and_mixed_case(self):
        parts = parcels(3)
        data = zip_members({
            "export/Parcels.SHP": parts["shp"],
            "export/Parcels.DBF": parts["dbf"],
            "export/Parcels.shx": parts["shx"],
        })
        assert len(ingest([UploadFile("bundle.zip", data)])) == 3

    def test_macos_resource_forks_are_ignored(self):
        parts = parcels(2)
        data = zip_members({
            "parcels.shp": parts["shp"],
            "parcels.dbf": parts["dbf"],
            "__MACOSX/._parcels.shp": b"\x00\x05\x16\x07",
        })
        assert len(ingest([UploadFile("parcels.zip", data)])) == 2

    def test_zip_with_only_shp(self):
        parts = parcels(2)
        data = zip_members({"parcels.shp": parts["shp"]})
        with pytest.raises(FormatError, match="missing a required component"):
            ingest([UploadFile("parcels.zip", data)])

    def test_zip_with_two_shapefiles(self):
        a, b = parcels(1), parcels(2)
        data = zip_members({
            "a.shp": a["shp"], "a.dbf": a["dbf"],
            "b.shp": b["shp"], "b.dbf": b["dbf"],
        })
        with pytest.raises(FormatError, match="more than one"):
            ingest([UploadFile("two.zip", data)])

    def test_corrupt_zip(self):
        with pytest.raises(FormatError, match="zip"):
            ingest([UploadFile("broken.zip", b"PK\x03\x04 definitely not a zip")])


def test_ingest_paths_reads_from_disk(tmp_path):
    parts = parcels(4)
    for ext, data in parts.items():
        (tmp_path / f"parcels.{ext}").write_bytes(data)
    fc = ingest_paths([tmp_path / "parcels.shp", tmp_path / "parcels.dbf"])
    assert len(fc) == 4


def test_files_from_paths_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        files_from_paths([tmp_path / "nope.geojson"])
