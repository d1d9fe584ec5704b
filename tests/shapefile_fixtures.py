"""
Build shapefile uploads in memory with pyshp, so no binary fixtures are
checked in.
"""

from __future__ import annotations

import io
import zipfile
from typing import Any, Dict, List, Optional, Sequence, Tuple

import shapefile

FieldSpec = Tuple[str, str, int, int]


def build_shapefile(
    shape_type: int,
    fields: Sequence[FieldSpec],
    rows: Sequence[Tuple[Any, Sequence[Any]]],
) -> Dict[str, bytes]:
    """
    Return {"shp", "shx", "dbf"} bytes.

    `rows` pairs a geometry (an (x, y) point, a list of parts for lines,
    polygons and multipatches, or None for a null shape) with its attribute record.
    """
    shp, shx, dbf = io.BytesIO(), io.BytesIO(), io.BytesIO()
    writer = shapefile.Writer(shp=shp, shx=shx, dbf=dbf, shapeType=shape_type)
    for name, ftype, size, decimal in fields:
        writer.field(name, ftype, size=size, decimal=decimal)
    for geometry, record in rows:
        if geometry is None:
            writer.null()
        elif shape_type == shapefile.POINT:
            writer.point(*geometry)
        elif shape_type == shapefile.POLYLINE:
            writer.line(geometry)
        elif shape_type == shapefile.POLYGON:
            writer.poly(geometry)
        elif shape_type == shapefile.MULTIPATCH:
            writer.multipatch(geometry, partTypes=[shapefile.TRIANGLE_STRIP] * len(geometry))
        else:
            raise ValueError(f"unsupported test shape type {shape_type}")
        writer.record(*record)
    writer.close()
    return {"shp": shp.getvalue(), "shx": shx.getvalue(), "dbf": dbf.getvalue()}


def square(x: float, y: float, size: float = 1.0) -> List[List[float]]:
    """A clockwise square ring starting at (x, y)."""
    return [[x, y], [x, y + size], [x + size, y + size], [x + size, y], [x, y]]


def parcels(count: int = 10) -> Dict[str, bytes]:
    """`count` square parcels with ID, ZONE and AREA attributes."""
    zones = ["R1", "C2", "R1", "I1", "C2"]
    rows = [
        ([square(float(i), 0.0)], [i + 1, zones[i % len(zones)], 100.0 + i * 10])
        for i in range(count)
    ]
    return build_shapefile(
        shapefile.POLYGON,
        [("ID", "N", 10, 0), ("ZONE", "C", 10, 0), ("AREA", "N", 12, 2)],
        rows,
    )


def points(names: Sequence[Optional[str]]) -> Dict[str, bytes]:
    rows = [((float(i), float(i) * 2), [name]) for i, name in enumerate(names)]
    return build_shapefile(shapefile.POINT, [("NAME", "C", 20, 0)], rows)


def zip_members(members: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


def zipped_shapefile(stem: str, parts: Dict[str, bytes], folder: str = "") -> bytes:
    prefix = f"{folder}/" if folder else ""
    return zip_members({f"{prefix}{stem}.{ext}": data for ext, data in parts.items()})
