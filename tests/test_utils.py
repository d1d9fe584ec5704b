"""Unit tests for geolayer.utils.utils module."""

from geolayer.utils.utils import format_file_size, has_suffix, sanitize_filename


class TestSanitizeFilename:
    def test_replaces_unsafe_characters(self):
        assert sanitize_filename("Zona / Fungsi: 2024") == "Zona_Fungsi_2024"

    def test_empty_falls_back(self):
        assert sanitize_filename("") == "layer"
        assert sanitize_filename("///") == "layer"

    def test_long_names_are_capped(self):
        assert len(sanitize_filename("a" * 500)) == 200


class TestFormatFileSize:
    def test_units(self):
        assert format_file_size(512) == "512 B"
        assert format_file_size(2048) == "2.0 KB"
        assert format_file_size(5 * 1024 * 1024) == "5.0 MB"


def test_has_suffix_is_case_insensitive():
    assert has_suffix("dir/PARCELS.SHP", ".shp")
    assert has_suffix("a.geojson", ".json", ".geojson")
    assert not has_suffix("a.shp.xml", ".shp")
