"""
Upload ingestion.

Turns one upload (one or more named byte buffers) into a single normalized
FeatureCollection. The upload kind is decided once, up front, by
`detect_kind`; each kind has exactly one decoder.

Priority:

1. a single ``.zip``         -> zipped shapefile bundle
2. a single ``.geojson``/``.json`` -> GeoJSON document
3. anything else             -> loose ``.shp`` + ``.dbf`` files

Any failure raises `FormatError` for the whole upload; no partial collection
is ever returned.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from geolayer.core.errors import FormatError
from geolayer.io.geojson import read_geojson
from geolayer.io.shapefile_bundle import read_shapefile
from geolayer.model import FeatureCollection
from geolayer.utils.utils import has_suffix

logger = logging.getLogger(__name__)

GEOJSON_SUFFIXES = (".geojson", ".json")

# Used when a file name carries no usable extension.
_MEDIA_TYPE_SUFFIXES: Dict[str, str] = {
    "application/zip": ".zip",
    "application/x-zip-compressed": ".zip",
    "application/geo+json": ".geojson",
    "application/json": ".json",
    "application/vnd.geo+json": ".geojson",
    "application/x-esri-shape": ".shp",
    "application/x-dbf": ".dbf",
    "application/dbase": ".dbf",
}


class UploadKind(str, Enum):
    ZIPPED_SHAPEFILE = "zipped_shapefile"
    GEOJSON_FILE = "geojson"
    SHAPEFILE_BUNDLE = "shapefile"


@dataclass(frozen=True)
class UploadFile:
    """One named byte buffer from an upload."""

    name: str
    data: bytes
    media_type: Optional[str] = None

    @property
    def suffix(self) -> str:
        """Lowercase extension, falling back to the declared media type."""
        ext = PurePosixPath(self.name.replace("\\", "/")).suffix.lower()
        if ext:
            return ext
        if self.media_type:
            return _MEDIA_TYPE_SUFFIXES.get(self.media_type.split(";")[0].strip().lower(), "")
        return ""

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadFile":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), media_type=media_type)


FileSet = Sequence[UploadFile]


def files_from_paths(paths: Iterable[str | Path]) -> List[UploadFile]:
    return [UploadFile.from_path(p) for p in paths]


def detect_kind(files: FileSet) -> UploadKind:
    """
    Decide how an upload is decoded.

    Raises:
        FormatError: If the file combination is not a supported upload
    """
    if not files:
        raise FormatError("No files were uploaded")

    if len(files) == 1:
        suffix = files[0].suffix
        if suffix == ".zip":
            return UploadKind.ZIPPED_SHAPEFILE
        if suffix in GEOJSON_SUFFIXES:
            return UploadKind.GEOJSON_FILE

    suffixes = {f.suffix for f in files}
    missing = [ext for ext in (".shp", ".dbf") if ext not in suffixes]
    if missing:
        if ".shp" in suffixes or ".dbf" in suffixes:
            raise FormatError(
                f"Shapefile upload is missing its {' and '.join(missing)} companion file"
            )
        raise FormatError(
            "Unsupported file format. Upload a .zip shapefile bundle, "
            f".shp + .dbf files, or a .geojson/.json file (missing {' and '.join(missing)})"
        )
    return UploadKind.SHAPEFILE_BUNDLE


def _companion(files: FileSet, suffix: str, stem: str) -> Optional[UploadFile]:
    """The file with `suffix`, preferring one that shares the .shp stem."""
    candidates = [f for f in files if f.suffix == suffix]
    for f in candidates:
        if PurePosixPath(f.name).stem.lower() == stem:
            return f
    return candidates[0] if candidates else None


def _decode_shapefile_files(files: FileSet) -> FeatureCollection:
    shp = next(f for f in files if f.suffix == ".shp")
    stem = PurePosixPath(shp.name).stem.lower()
    dbf = _companion(files, ".dbf", stem)
    shx = _companion(files, ".shx", stem)
    cpg = _companion(files, ".cpg", stem)
    return read_shapefile(
        shp.data,
        dbf.data,  # type: ignore[union-attr]
        name=shp.name,
        shx=shx.data if shx else None,
        cpg=cpg.data if cpg else None,
    )


def _is_resource_fork(info: zipfile.ZipInfo) -> bool:
    # macOS Finder archives carry __MACOSX/._name.shp shadows of every member
    path = PurePosixPath(info.filename)
    return path.parts[0] == "__MACOSX" or path.name.startswith("._")


def _single_member(members: List[zipfile.ZipInfo], suffix: str, archive: str) -> zipfile.ZipInfo:
    found = [m for m in members if has_suffix(m.filename, suffix)]
    if not found:
        raise FormatError(f"{archive}: archive missing a required component ({suffix})")
    if len(found) > 1:
        names = ", ".join(m.filename for m in found)
        raise FormatError(f"{archive}: archive contains more than one {suffix} file ({names})")
    return found[0]


def _decode_zipped_shapefile(files: FileSet) -> FeatureCollection:
    upload = files[0]
    try:
        with zipfile.ZipFile(io.BytesIO(upload.data)) as zf:
            members = [m for m in zf.infolist() if not m.is_dir() and not _is_resource_fork(m)]
            shp_info = _single_member(members, ".shp", upload.name)
            dbf_info = _single_member(members, ".dbf", upload.name)

            stem = shp_info.filename[: -len(".shp")].lower()
            extras: Dict[str, bytes] = {}
            for m in members:
                lower = m.filename.lower()
                for ext in (".shx", ".cpg"):
                    if lower == stem + ext:
                        extras[ext] = zf.read(m)

            shp_bytes = zf.read(shp_info)
            dbf_bytes = zf.read(dbf_info)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError) as e:
        raise FormatError(f"{upload.name}: corrupt or unreadable zip archive ({e})") from e
    except (RuntimeError, NotImplementedError) as e:
        # encrypted members, unsupported compression
        raise FormatError(f"{upload.name}: cannot extract archive ({e})") from e

    return read_shapefile(
        shp_bytes,
        dbf_bytes,
        name=shp_info.filename,
        shx=extras.get(".shx"),
        cpg=extras.get(".cpg"),
    )


def _decode_geojson_file(files: FileSet) -> FeatureCollection:
    upload = files[0]
    return read_geojson(upload.data, name=upload.name)


_DECODERS: Dict[UploadKind, Callable[[FileSet], FeatureCollection]] = {
    UploadKind.ZIPPED_SHAPEFILE: _decode_zipped_shapefile,
    UploadKind.GEOJSON_FILE: _decode_geojson_file,
    UploadKind.SHAPEFILE_BUNDLE: _decode_shapefile_files,
}


def ingest(files: FileSet) -> FeatureCollection:
    """
    Decode an upload into one FeatureCollection.

    Args:
        files: The uploaded files (names + bytes)

    Returns:
        The normalized FeatureCollection

    Raises:
        FormatError: If the upload cannot be decoded in full
    """
    kind = detect_kind(files)
    collection = _DECODERS[kind](files)
    logger.info(
        "Ingested %s upload (%s): %d feature(s)",
        kind.value,
        ", ".join(f.name for f in files),
        len(collection),
    )
    return collection


def ingest_paths(paths: Iterable[str | Path]) -> FeatureCollection:
    """Convenience wrapper: read files from disk, then `ingest`."""
    return ingest(files_from_paths(paths))
