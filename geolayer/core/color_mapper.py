"""
Color scales for attribute classification.

Two scales drive classification:

- **Categorical**: the ColorBrewer *Set2* qualitative palette, sampled to
  exactly as many colors as there are distinct values.
- **Numeric**: a 5-stop hue ramp (blue → cyan → green → yellow → red) spread
  over the field's ``[min, max]`` domain.

Both sample the same way a chroma.js ``scale()`` does: linear interpolation in
RGB between evenly spaced stops, output as lowercase ``#rrggbb``.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional, Sequence, Tuple

RGB = Tuple[int, int, int]

# ColorBrewer Set2 (8 classes)
SET2_PALETTE: tuple[str, ...] = (
    "#66c2a5",
    "#fc8d62",
    "#8da0cb",
    "#e78ac3",
    "#a6d854",
    "#ffd92f",
    "#e5c494",
    "#b3b3b3",
)

RAMP_STOPS: tuple[str, ...] = ("#0000ff", "#00ffff", "#00ff00", "#ffff00", "#ff0000")

# Values outside the ramp (unparsable, or a degenerate min == max domain)
NEUTRAL_GRAY = "#888888"

_RGB_REGEX = re.compile(r"rgba?\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def parse_color(color_str: str) -> Optional[RGB]:
    """
    Parse a CSS-ish color to an RGB tuple.

    Supports ``#rgb``, ``#rrggbb``, bare ``rrggbb`` and ``rgb()``/``rgba()``.

    Returns:
        (r, g, b) with 0-255 components, or None when the string is not a color

    Example:
        >>> parse_color("#00f")
        (0, 0, 255)
        >>> parse_color("rgba(255, 0, 0, 0.5)")
        (255, 0, 0)
    """
    if not color_str:
        return None
    s = color_str.strip()
    if s.lower().startswith(("rgba", "rgb")):
        match = _RGB_REGEX.search(s)
        if not match:
            return None
        r, g, b = (int(x) for x in match.groups())
        if max(r, g, b) > 255:
            return None
        return (r, g, b)

    s = s.lstrip("#")
    if not s or not all(c in _HEX_DIGITS for c in s):
        return None
    if len(s) == 3:
        s = "".join(c * 2 for c in s)
    if len(s) != 6:
        return None
    return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))


def is_color(color_str: str) -> bool:
    return parse_color(color_str) is not None


def normalize_color(color_str: str) -> str:
    """
    Normalize any supported color string to ``#rrggbb``.

    Raises:
        ValueError: If the string is not a recognizable color
    """
    rgb = parse_color(color_str)
    if rgb is None:
        raise ValueError(f"Invalid color: '{color_str}'")
    return to_hex(rgb)


def _round_channel(x: float) -> int:
    # Half-up rounding, matching JavaScript's Math.round for non-negative values.
    return max(0, min(255, int(math.floor(x + 0.5))))


def to_hex(rgb: Sequence[float]) -> str:
    r, g, b = (_round_channel(c) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def interpolate(a: RGB, b: RGB, t: float) -> Tuple[float, float, float]:
    """Linear RGB interpolation, ``t`` in [0, 1]."""
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


class ColorScale:
    """
    Evenly spaced color stops mapped onto a numeric domain.

    Inputs are clamped to the domain, so the scale is total, monotonic along
    the stop sequence, and continuous at every stop.
    """

    def __init__(self, stops: Sequence[str], domain: Tuple[float, float] = (0.0, 1.0)):
        if not stops:
            raise ValueError("A color scale needs at least one stop")
        parsed: List[RGB] = []
        for stop in stops:
            rgb = parse_color(stop)
            if rgb is None:
                raise ValueError(f"Invalid color stop: '{stop}'")
            parsed.append(rgb)
        self._stops = parsed
        self._domain = (float(domain[0]), float(domain[1]))

    def domain(self, lo: float, hi: float) -> "ColorScale":
        """Return a copy of this scale over a new domain."""
        scale = ColorScale.__new__(ColorScale)
        scale._stops = self._stops
        scale._domain = (float(lo), float(hi))
        return scale

    def _position(self, value: float) -> float:
        lo, hi = self._domain
        if hi == lo:
            return 0.0
        t = (value - lo) / (hi - lo)
        return min(1.0, max(0.0, t))

    def rgb(self, value: float) -> Tuple[float, float, float]:
        t = self._position(value)
        if len(self._stops) == 1:
            return tuple(float(c) for c in self._stops[0])  # type: ignore[return-value]
        segments = len(self._stops) - 1
        scaled = t * segments
        idx = min(int(scaled), segments - 1)
        return interpolate(self._stops[idx], self._stops[idx + 1], scaled - idx)

    def __call__(self, value: float) -> str:
        return to_hex(self.rgb(value))

    def colors(self, count: int) -> List[str]:
        """
        Sample ``count`` colors evenly across the domain.

        A single color samples the midpoint; zero or fewer yields an empty list.
        """
        if count <= 0:
            return []
        lo, hi = self._domain
        if count == 1:
            return [self(lo + (hi - lo) / 2)]
        step = (hi - lo) / (count - 1)
        return [self(lo + i * step) for i in range(count)]


CATEGORICAL_SCALE = ColorScale(SET2_PALETTE)
NUMERIC_RAMP = ColorScale(RAMP_STOPS)


def categorical_palette(count: int) -> List[str]:
    """Qualitative palette sized exactly to ``count`` values."""
    return CATEGORICAL_SCALE.colors(count)

