"""
Clipboard File Loading Module

Reads a polygon file from disk as KML text, ready for the clipboard pipeline.
KML is read as-is, KMZ archives are unpacked, and other vector formats are
read through GeoPandas and converted to a KML coordinates block.
"""

import zipfile
from pathlib import Path
from typing import Tuple

import geopandas as gpd
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from core.models import GEODETIC_SRS
from utils.logger import get_logger

logger = get_logger(__name__)

KML_SUFFIXES = {'.kml'}
KMZ_SUFFIXES = {'.kmz'}


def _read_kmz(file_path: Path) -> str:
    try:
        with zipfile.ZipFile(file_path, 'r') as archive:
            kml_members = [name for name in archive.namelist() if name.lower().endswith('.kml')]
            if not kml_members:
                raise ValueError("No KML document found in KMZ archive")
            if len(kml_members) > 1:
                logger.warning(f"  - Multiple KML documents in KMZ, using first: {kml_members[0]}")
            return archive.read(kml_members[0]).decode('utf-8')
    except zipfile.BadZipFile:
        raise ValueError("Invalid KMZ file - file appears to be corrupted")


def _largest_polygon(geometry) -> Polygon:
    if isinstance(geometry, Polygon):
        return geometry
    if isinstance(geometry, MultiPolygon):
        logger.warning(f"  - Input has {len(geometry.geoms)} polygons, using the largest")
        return max(geometry.geoms, key=lambda g: g.area)
    raise ValueError(f"Input geometry is {geometry.geom_type}, expected a polygon")


def polygon_to_kml(polygon: Polygon, name: str = '') -> str:
    """
    Wrap a polygon's exterior ring in a minimal KML document.

    Args:
        polygon: Geodetic (lon, lat) polygon
        name: Placemark name

    Returns:
        KML text with one <coordinates> block of "lon,lat" tuples
    """
    coords = ' '.join(f"{x},{y}" for x, y in polygon.exterior.coords)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Placemark>'
        f'<name>{name}</name>'
        '<Polygon><outerBoundaryIs><LinearRing>'
        f'<coordinates>{coords}</coordinates>'
        '</LinearRing></outerBoundaryIs></Polygon>'
        '</Placemark></kml>'
    )


def _read_vector_file(file_path: Path) -> str:
    try:
        gdf = gpd.read_file(file_path)
    except Exception as e:
        raise ValueError(f"Failed to read geospatial file: {e}")

    if gdf.empty:
        raise ValueError("Input file contains no features")
    if gdf.crs is None:
        raise ValueError(
            "Input file has no Coordinate Reference System (CRS) defined. "
            "Please assign a CRS to your data before using it as input."
        )

    logger.info(f"  - Loaded {len(gdf)} feature(s), CRS: {gdf.crs}")
    gdf = gdf.to_crs(GEODETIC_SRS)
    polygon = _largest_polygon(unary_union(gdf.geometry))
    return polygon_to_kml(polygon, file_path.stem)


def load_clipboard_file(file_path: str) -> Tuple[str, str]:
    """
    Load a polygon file as KML text.

    Supports: KML, KMZ, and anything GeoPandas reads (GeoJSON, GeoPackage,
    Shapefile, zipped Shapefile)

    Args:
        file_path: Path to the polygon file

    Returns:
        Tuple of (kml_text, file_name)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file cannot be read or holds no polygon
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    logger.info(f"Loading clipboard polygon file: {file_path}")

    suffix = path.suffix.lower()
    if suffix in KML_SUFFIXES:
        text = path.read_text(encoding='utf-8')
    elif suffix in KMZ_SUFFIXES:
        logger.info("  - Detected KMZ file, extracting KML document...")
        text = _read_kmz(path)
    else:
        text = _read_vector_file(path)

    return text, path.name
