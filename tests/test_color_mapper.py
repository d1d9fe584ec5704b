"""Unit tests for geolayer.core.color_mapper."""

import pytest

from geolayer.core.color_mapper import (
    NEUTRAL_GRAY,
    RAMP_STOPS,
    SET2_PALETTE,
    ColorScale,
    categorical_palette,
    is_color,
    normalize_color,
    parse_color,
)


class TestParseColor:
    def test_hex_forms(self):
        assert parse_color("#00f") == (0, 0, 255)
        assert parse_color("#3388FF") == (51, 136, 255)
        assert parse_color("3388ff") == (51, 136, 255)

    def test_rgb_forms(self):
        assert parse_color("rgb(1, 2, 3)") == (1, 2, 3)
        assert parse_color("rgba(255,0,0,0.5)") == (255, 0, 0)

    def test_invalid(self):
        assert parse_color("") is None
        assert parse_color("blue") is None
        assert parse_color("#12345") is None
        assert parse_color("rgb(300, 0, 0)") is None
        assert not is_color("#ggg")

    def test_normalize(self):
        assert normalize_color("#ABC") == "#aabbcc"
        assert normalize_color("rgb(136,136,136)") == NEUTRAL_GRAY
        with pytest.raises(ValueError, match="Invalid color"):
            normalize_color("not-a-color")


class TestColorScale:
    def test_endpoints_and_clamping(self):
        scale = ColorScale(RAMP_STOPS).domain(10, 30)
        assert scale(10) == "#0000ff"
        assert scale(30) == "#ff0000"
        assert scale(-100) == "#0000ff"
        assert scale(1000) == "#ff0000"

    def test_stops_are_hit_exactly(self):
        scale = ColorScale(RAMP_STOPS).domain(0, 4)
        assert [scale(i) for i in range(5)] == list(RAMP_STOPS)

    def test_midpoint_interpolation(self):
        scale = ColorScale(["#000000", "#ffffff"])
        # 127.5 rounds half up
        assert scale(0.5) == "#808080"

    def test_monotonic_along_first_segment(self):
        scale = ColorScale(RAMP_STOPS).domain(0, 4)
        greens = [int(scale(x / 10)[3:5], 16) for x in range(11)]
        assert greens == sorted(greens)

    def test_colors_sampling(self):
        scale = ColorScale(["#000000", "#ffffff"])
        assert scale.colors(0) == []
        assert scale.colors(1) == ["#808080"]
        assert scale.colors(3) == ["#000000", "#808080", "#ffffff"]

    def test_domain_returns_copy(self):
        base = ColorScale(RAMP_STOPS)
        shifted = base.domain(100, 200)
        assert base(1) == "#ff0000"
        assert shifted(1) == "#0000ff"

    def test_degenerate_domain(self):
        assert ColorScale(RAMP_STOPS).domain(5, 5)(5) == "#0000ff"

    def test_invalid_stops(self):
        with pytest.raises(ValueError):
            ColorScale([])
        with pytest.raises(ValueError):
            ColorScale(["#000000", "nope"])


class TestCategoricalPalette:
    def test_full_palette_is_set2(self):
        assert categorical_palette(8) == list(SET2_PALETTE)

    def test_sized_exactly(self):
        for n in range(0, 12):
            assert len(categorical_palette(n)) == n

    def test_two_values_take_palette_ends(self):
        assert categorical_palette(2) == ["#66c2a5", "#b3b3b3"]

    def test_one_value_samples_midpoint(self):
        assert categorical_palette(1) == ["#c7b18c"]

    def test_small_palettes_are_distinct(self):
        for n in range(2, 9):
            colors = categorical_palette(n)
            assert len(set(colors)) == n
