"""
Geometry conversion utilities for the portal map toolkit.

This module encodes and decodes clipboard polygons between vertex lists and the
three text forms exchanged with the portal:

- GML: a fixed MultiPolygon/Polygon/LinearRing envelope around a
  "lat,lon lat,lon ..." coordinate list (latitude first, the reverse of the
  internal longitude-first convention; kept as-is for wire compatibility)
- KML: the text of <coordinates> blocks, "lon,lat[,elevation]" tokens
- Plain delimited strings: "x y x y ..." as produced by the draw interaction

Functions:
    encode_gml: Wrap coordinate text or vertices in the GML envelope
    decode_gml: Extract the coordinate text from GML markup
    decode_kml: Extract rounded (lon, lat) vertices from KML text
    format_gml_coordinates: Format (lon, lat) vertices as "lat,lon" pairs
    parse_gml_coordinates: Parse GML coordinate text into (x, y) pairs
    format_coordinate_string: Format vertices as "x y x y ..."
    parse_coordinate_string: Parse "x y x y ..." into (x, y) pairs
"""

import math
import re
from typing import List, Optional, Sequence, Tuple, Union

from core.errors import MalformedMarkupError, ReferenceSystemMismatchError, UnsupportedReferenceSystemError
from core.models import GEODETIC_SRS, PROJECTED_SRS, GeoPoint
from utils.logger import get_logger

logger = get_logger(__name__)

Coord = Tuple[float, float]

GML_COORDS_OPEN = (
    '<gml:coordinates xmlns:gml="http://www.opengis.net/gml" '
    'decimal="." cs="," ts=" ">'
)
GML_COORDS_CLOSE = '</gml:coordinates>'

GML_PREFIX = (
    '<gml:MultiPolygon srsName="urn:ogc:def:crs:EPSG::4326">'
    '<gml:polygonMember>'
    '<gml:Polygon srsName="EPSG:4326">'
    '<gml:outerBoundaryIs>'
    '<gml:LinearRing>'
    + GML_COORDS_OPEN
)
GML_SUFFIX = (
    GML_COORDS_CLOSE
    + '</gml:LinearRing>'
    '</gml:outerBoundaryIs>'
    '</gml:Polygon>'
    '</gml:polygonMember>'
    '</gml:MultiPolygon>'
)

# Opening tag may carry different attributes in markup from other sources
_GML_OPEN_MARKER = '<gml:coordinates'
_KML_BLOCK = re.compile(r'<coordinates>(.*?)</coordinates>', re.DOTALL)

KML_DECIMAL_PLACES = 3


def _format_number(value: float) -> str:
    """Shortest round-trip text for a number, without a trailing '.0'."""
    text = repr(float(value))
    return text[:-2] if text.endswith('.0') else text


def _parse_pair(first: str, second: str) -> Optional[Coord]:
    try:
        a = float(first)
        b = float(second)
    except ValueError:
        return None
    if not (math.isfinite(a) and math.isfinite(b)):
        return None
    return a, b


def _as_lon_lat(vertex: Union[Coord, GeoPoint]) -> Coord:
    if isinstance(vertex, GeoPoint):
        if vertex.srs != GEODETIC_SRS:
            raise ReferenceSystemMismatchError(GEODETIC_SRS, vertex.srs)
        return vertex.x, vertex.y
    return vertex[0], vertex[1]


def format_gml_coordinates(vertices: Sequence[Union[Coord, GeoPoint]]) -> str:
    """
    Format geodetic vertices as GML coordinate text.

    Parameters:
    -----------
    vertices : Sequence
        (lon, lat) tuples or geodetic GeoPoints

    Returns:
    --------
    str
        Space-separated "lat,lon" pairs

    Example:
        >>> format_gml_coordinates([(150.5, -33.25), (151, -34)])
        '-33.25,150.5 -34,151'
    """
    pairs = []
    for vertex in vertices:
        lon, lat = _as_lon_lat(vertex)
        pairs.append(f"{_format_number(lat)},{_format_number(lon)}")
    return ' '.join(pairs)


def encode_gml(coords: Union[str, Sequence[Union[Coord, GeoPoint]]]) -> str:
    """
    Wrap a coordinate list in the fixed GML multi-polygon envelope.

    Parameters:
    -----------
    coords : str or Sequence
        Ready-made "lat,lon lat,lon ..." text (embedded verbatim), or
        geodetic (lon, lat) vertices to be formatted first

    Returns:
    --------
    str
        GML markup tagged with the geodetic reference identifier
    """
    if not isinstance(coords, str):
        coords = format_gml_coordinates(coords)
    return GML_PREFIX + coords + GML_SUFFIX


def decode_gml(markup: str) -> str:
    """
    Extract the coordinate text from GML markup, verbatim.

    Parameters:
    -----------
    markup : str
        GML containing a <gml:coordinates ...>...</gml:coordinates> element

    Returns:
    --------
    str
        Text between the opening and closing coordinates markers

    Raises:
    -------
    MalformedMarkupError
        If either marker is absent
    """
    start = markup.find(_GML_OPEN_MARKER)
    if start < 0:
        raise MalformedMarkupError("GML markup has no <gml:coordinates> element")

    tag_end = markup.find('>', start)
    if tag_end < 0:
        raise MalformedMarkupError("GML <gml:coordinates> opening tag is not closed")

    end = markup.find(GML_COORDS_CLOSE, tag_end + 1)
    if end < 0:
        raise MalformedMarkupError("GML markup has no </gml:coordinates> marker")

    return markup[tag_end + 1:end]


def parse_gml_coordinates(text: str, srs: str) -> List[Coord]:
    """
    Parse GML coordinate text into (x, y) pairs.

    Geodetic tokens are "lat,lon" and are swapped to (lon, lat); projected
    tokens are "x,y". Tokens that are not two finite numbers are dropped.

    Raises:
        UnsupportedReferenceSystemError: If srs is not a supported system
    """
    if srs not in (GEODETIC_SRS, PROJECTED_SRS):
        raise UnsupportedReferenceSystemError(srs)

    coords = []
    for token in text.split():
        parts = token.split(',')
        pair = _parse_pair(parts[0], parts[1]) if len(parts) >= 2 else None
        if pair is None:
            logger.debug(f"  - Skipping GML token: {token!r}")
            continue
        if srs == GEODETIC_SRS:
            lat, lon = pair
            coords.append((lon, lat))
        else:
            coords.append(pair)
    return coords


def decode_kml(kml_text: str, decimal_places: int = KML_DECIMAL_PLACES) -> List[Coord]:
    """
    Extract vertices from the <coordinates> blocks of a KML document.

    Each whitespace-separated token is "lon,lat[,elevation]". Longitude and
    latitude are rounded to a fixed number of decimals so files from different
    tools share one precision. Tokens that do not parse as two finite numbers
    are dropped.

    Parameters:
    -----------
    kml_text : str
        KML document text
    decimal_places : int
        Rounding applied to longitude and latitude (default 3)

    Returns:
    --------
    List[Tuple[float, float]]
        (lon, lat) vertices in document order

    Raises:
    -------
    MalformedMarkupError
        If the document has no <coordinates> block
    """
    blocks = _KML_BLOCK.findall(kml_text)
    if not blocks:
        raise MalformedMarkupError("KML text has no <coordinates> block")

    vertices = []
    skipped = 0
    for block in blocks:
        for token in block.split():
            parts = token.split(',')
            pair = _parse_pair(parts[0], parts[1]) if len(parts) >= 2 else None
            if pair is None:
                skipped += 1
                logger.debug(f"  - Skipping KML token: {token!r}")
                continue
            lon, lat = pair
            vertices.append((round(lon, decimal_places), round(lat, decimal_places)))

    if skipped:
        logger.warning(f"Skipped {skipped} invalid KML coordinate token(s)")
    logger.debug(f"Decoded {len(vertices)} vertices from {len(blocks)} KML coordinate block(s)")

    return vertices


def format_coordinate_string(vertices: Sequence[Union[Coord, GeoPoint]]) -> str:
    """
    Format vertices as a plain "x y x y ..." string.

    Example:
        >>> format_coordinate_string([(0, 0), (0, 10), (10, 10), (10, 0)])
        '0 0 0 10 10 10 10 0'
    """
    parts = []
    for vertex in vertices:
        if isinstance(vertex, GeoPoint):
            x, y = vertex.x, vertex.y
        else:
            x, y = vertex[0], vertex[1]
        parts.append(_format_number(x))
        parts.append(_format_number(y))
    return ' '.join(parts)


def parse_coordinate_string(text: str) -> List[Coord]:
    """
    Parse a plain "x y x y ..." string into (x, y) pairs.

    A trailing unpaired value and pairs with non-finite values are dropped.
    """
    values = text.split()
    coords = []
    for i in range(0, len(values) - 1, 2):
        pair = _parse_pair(values[i], values[i + 1])
        if pair is not None:
            coords.append(pair)
    return coords
