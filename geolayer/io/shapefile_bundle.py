"""
Shapefile adapter (pyshp).

Reading pairs the geometry stream (.shp) with the attribute table (.dbf)
positionally: shape *i* gets record *i* as its properties. Point, multipoint,
polyline and polygon shapes (with or without Z/M) all come out as GeoJSON
geometry dicts, null shapes as ``geometry: None``.

Writing produces a zipped bundle with one shapefile set per geometry family,
laid out as::

    <layer name>/points.shp|shx|dbf|prj|cpg
    <layer name>/lines.shp|...
    <layer name>/polygons.shp|...

Only non-empty partitions are written.
"""

from __future__ import annotations

import codecs
import io
import json
import logging
import struct
import zipfile
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import shapefile

from geolayer.core.errors import FormatError
from geolayer.model import Feature, FeatureCollection, Layer
from geolayer.utils.utils import sanitize_filename

logger = logging.getLogger(__name__)

_SHP_FILE_CODE = 9994
_SHP_HEADER_SIZE = 100

WGS84_PRJ = (
    'GEOGCS["GCS_WGS_1984",DATUM["D_WGS_1984",'
    'SPHEROID["WGS_1984",6378137,298.257223563]],'
    'PRIMEM["Greenwich",0],UNIT["Degree",0.017453292519943295]]'
)

# GeoJSON geometry type -> bundle partition
_PARTITIONS: Dict[str, str] = {
    "Point": "points",
    "MultiPoint": "points",
    "LineString": "lines",
    "MultiLineString": "lines",
    "Polygon": "polygons",
    "MultiPolygon": "polygons",
}

_DBF_NAME_LIMIT = 10
_DBF_CHAR_LIMIT = 254
_DBF_NUMBER_LIMIT = 20
_DBF_MAX_DECIMALS = 8

# Shape types with a GeoJSON counterpart; MULTIPATCH has none
_GEOJSON_SHAPE_TYPES = frozenset(
    {
        shapefile.POINT, shapefile.POINTZ, shapefile.POINTM,
        shapefile.MULTIPOINT, shapefile.MULTIPOINTZ, shapefile.MULTIPOINTM,
        shapefile.POLYLINE, shapefile.POLYLINEZ, shapefile.POLYLINEM,
        shapefile.POLYGON, shapefile.POLYGONZ, shapefile.POLYGONM,
    }
)


# -- reading -----------------------------------------------------------------


def _listify(value: Any) -> Any:
    """Turn the nested tuples of a __geo_interface__ into JSON-style lists."""
    if isinstance(value, (list, tuple)):
        return [_listify(v) for v in value]
    return value


def _geometry_of(shape: Any, name: str) -> Optional[Dict[str, Any]]:
    if shape.shapeType == shapefile.NULL or not shape.points:
        return None
    if shape.shapeType not in _GEOJSON_SHAPE_TYPES:
        raise FormatError(f"{name}: unsupported shape type {shape.shapeTypeName}")
    geo = shape.__geo_interface__
    return {"type": geo["type"], "coordinates": _listify(geo["coordinates"])}


def _plain_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def resolve_encoding(cpg: Optional[bytes]) -> str:
    """
    DBF text encoding from a .cpg companion file, defaulting to UTF-8.

    Example:
        >>> resolve_encoding(b"1252")
        'cp1252'
    """
    if not cpg:
        return "utf-8"
    label = cpg.decode("ascii", errors="ignore").strip()
    if label.isdigit():
        label = f"cp{label}"
    try:
        return codecs.lookup(label).name
    except LookupError:
        logger.warning("Unknown .cpg encoding '%s'; reading attributes as UTF-8", label)
        return "utf-8"


def _check_shp_header(shp: bytes, name: str) -> None:
    if len(shp) < _SHP_HEADER_SIZE:
        raise FormatError(f"{name}: .shp file is truncated (no valid header)")
    (file_code,) = struct.unpack(">i", shp[:4])
    if file_code != _SHP_FILE_CODE:
        raise FormatError(f"{name}: .shp file is not a shapefile (bad file code)")


def read_shapefile(
    shp: bytes,
    dbf: bytes,
    *,
    name: str = "shapefile",
    shx: Optional[bytes] = None,
    cpg: Optional[bytes] = None,
) -> FeatureCollection:
    """
    Decode a .shp/.dbf pair into a FeatureCollection.

    Raises:
        FormatError: If the geometry stream or attribute table cannot be
            decoded, or their record counts differ
    """
    _check_shp_header(shp, name)
    encoding = resolve_encoding(cpg)

    sources: Dict[str, Any] = {"shp": io.BytesIO(shp), "dbf": io.BytesIO(dbf)}
    if shx:
        sources["shx"] = io.BytesIO(shx)

    try:
        reader = shapefile.Reader(encoding=encoding, encodingErrors="replace", **sources)
        try:
            field_names = [f[0] for f in reader.fields if f[0] != "DeletionFlag"]
            geometries = [_geometry_of(s, name) for s in reader.iterShapes()]
            records = [list(r) for r in reader.iterRecords()]
        finally:
            reader.close()
    except FormatError:
        raise
    except (shapefile.ShapefileException, struct.error, ValueError, IndexError, EOFError) as e:
        raise FormatError(f"{name}: could not decode shape records ({e})") from e

    if len(geometries) != len(records):
        raise FormatError(
            f"{name}: .shp has {len(geometries)} shapes but .dbf has {len(records)} records"
        )

    features = [
        Feature(
            geometry=geometry,
            properties={k: _plain_value(v) for k, v in zip(field_names, record)},
        )
        for geometry, record in zip(geometries, records)
    ]
    logger.debug("Decoded %d shape records from %s", len(features), name)
    return FeatureCollection(features=features)


# -- writing -----------------------------------------------------------------


def _signed_area(ring: List[List[float]]) -> float:
    total = 0.0
    for (x1, y1), (x2, y2) in zip(ring, ring[1:] + ring[:1]):
        total += x1 * y2 - x2 * y1
    return total / 2


def _xy(positions: Any) -> List[List[float]]:
    return [list(p[:2]) for p in positions if len(p) >= 2]


def _orient(ring: List[List[float]], clockwise: bool) -> List[List[float]]:
    is_clockwise = _signed_area(ring) < 0
    return ring if is_clockwise == clockwise else ring[::-1]


def _polygon_rings(geometry: Dict[str, Any]) -> List[List[List[float]]]:
    """Shapefile rings: outer rings clockwise, holes counter-clockwise."""
    polygons = geometry["coordinates"]
    if geometry["type"] == "Polygon":
        polygons = [polygons]
    rings: List[List[List[float]]] = []
    for polygon in polygons:
        for i, ring in enumerate(polygon):
            ring = _xy(ring)
            if ring:
                rings.append(_orient(ring, clockwise=(i == 0)))
    return rings


def _line_parts(geometry: Dict[str, Any]) -> List[List[List[float]]]:
    parts = geometry["coordinates"]
    if geometry["type"] == "LineString":
        parts = [parts]
    return [part for part in (_xy(p) for p in parts) if part]


def _point_list(geometry: Dict[str, Any]) -> List[List[float]]:
    coords = geometry["coordinates"]
    if geometry["type"] == "Point":
        coords = [coords]
    return _xy(coords)


_SHAPE_PARTS = {"points": _point_list, "lines": _line_parts, "polygons": _polygon_rings}


def _truncate_utf8(text: str, limit: int) -> str:
    """Cut text to at most `limit` UTF-8 bytes without splitting a character."""
    return text.encode("utf-8")[:limit].decode("utf-8", errors="ignore")


def _dbf_field_names(names: List[str]) -> List[str]:
    """Truncate to the dBASE 10-byte limit, keeping names unique."""
    used: set[str] = set()
    out: List[str] = []
    for name in names:
        base = _truncate_utf8((name or "FIELD").replace(" ", "_"), _DBF_NAME_LIMIT)
        candidate = base
        n = 1
        while candidate.upper() in used:
            suffix = str(n)
            candidate = _truncate_utf8(base, _DBF_NAME_LIMIT - len(suffix)) + suffix
            n += 1
        used.add(candidate.upper())
        out.append(candidate)
    return out


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _number_field(values: List[Any]) -> Optional[Tuple[str, int, int]]:
    """Widest N spec that holds every value, shedding decimals before giving up."""
    for decimals in range(_DBF_MAX_DECIMALS, -1, -1):
        try:
            width = max(len(format(float(v), f".{decimals}f")) for v in values)
        except OverflowError:
            return None
        if width <= _DBF_NUMBER_LIMIT:
            return ("N", _DBF_NUMBER_LIMIT, decimals)
    return None


def _infer_field(values: List[Any]) -> Tuple[str, int, int]:
    """(type, size, decimals) for a column of non-null values."""
    if values and all(isinstance(v, bool) for v in values):
        return ("L", 1, 0)
    if values and all(_is_number(v) for v in values):
        if all(isinstance(v, int) and abs(v) < 10**17 for v in values):
            return ("N", 18, 0)
        spec = _number_field(values)
        if spec is not None:
            return spec
        logger.debug("Numeric column too wide for a dBASE number; writing it as text")
    width = max([len(_text(v).encode("utf-8")) for v in values] or [1])
    return ("C", max(1, min(_DBF_CHAR_LIMIT, width)), 0)


def _write_partition(kind: str, features: List[Feature]) -> Dict[str, bytes]:
    property_names: Dict[str, None] = {}
    for feat in features:
        for key in feat.attributes:
            property_names.setdefault(key, None)
    names = list(property_names)
    specs = [
        _infer_field([f.attributes.get(n) for f in features if f.attributes.get(n) is not None])
        for n in names
    ]

    if kind == "points":
        multi = any(f.geometry_type == "MultiPoint" for f in features)
        shape_type = shapefile.MULTIPOINT if multi else shapefile.POINT
    elif kind == "lines":
        shape_type = shapefile.POLYLINE
    else:
        shape_type = shapefile.POLYGON

    shp, shx, dbf = io.BytesIO(), io.BytesIO(), io.BytesIO()
    writer = shapefile.Writer(shp=shp, shx=shx, dbf=dbf, shapeType=shape_type, encoding="utf-8")
    if names:
        for dbf_name, (ftype, size, decimals) in zip(_dbf_field_names(names), specs):
            writer.field(dbf_name, ftype, size=size, decimal=decimals)
    else:
        writer.field("FID", "N", size=10, decimal=0)

    for idx, feat in enumerate(features):
        geometry = feat.geometry or {}
        if shape_type == shapefile.POINT:
            x, y = _point_list(geometry)[0]
            writer.point(x, y)
        elif shape_type == shapefile.MULTIPOINT:
            writer.multipoint(_point_list(geometry))
        elif shape_type == shapefile.POLYLINE:
            writer.line(_line_parts(geometry))
        else:
            writer.poly(_polygon_rings(geometry))

        if not names:
            writer.record(idx)
            continue
        row: List[Any] = []
        for name, (ftype, _size, _decimals) in zip(names, specs):
            value = feat.attributes.get(name)
            if value is None:
                row.append(None)
            elif ftype == "C":
                row.append(_text(value))
            else:
                row.append(value)
        writer.record(*row)
    writer.close()

    return {
        "shp": shp.getvalue(),
        "shx": shx.getvalue(),
        "dbf": dbf.getvalue(),
        "prj": WGS84_PRJ.encode("ascii"),
        "cpg": b"UTF-8",
    }


def _has_parts(kind: str, geometry: Dict[str, Any]) -> bool:
    if not geometry.get("coordinates"):
        return False
    try:
        return bool(_SHAPE_PARTS[kind](geometry))
    except TypeError:
        return False


def partition_features(collection: FeatureCollection) -> Dict[str, List[Feature]]:
    """Group features into points/lines/polygons, dropping what a shapefile cannot hold."""
    partitions: Dict[str, List[Feature]] = {"points": [], "lines": [], "polygons": []}
    skipped = 0
    for feat in collection.features:
        kind = _PARTITIONS.get(feat.geometry_type or "")
        if kind is None or not _has_parts(kind, feat.geometry):
            skipped += 1
            continue
        partitions[kind].append(feat)
    if skipped:
        logger.warning(
            "Skipped %d feature(s) with null, empty or GeometryCollection geometry", skipped
        )
    return partitions


def export_shapefile_zip(layer: Layer) -> bytes:
    """
    Serialize a layer as a zipped shapefile bundle partitioned by geometry type.
    """
    folder = sanitize_filename(layer.name)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for kind, features in partition_features(layer.collection).items():
            if not features:
                continue
            for ext, data in _write_partition(kind, features).items():
                zf.writestr(f"{folder}/{kind}.{ext}", data)
            logger.info("Wrote %d feature(s) to %s/%s.shp", len(features), folder, kind)
    return buf.getvalue()
