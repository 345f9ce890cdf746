"""
Coordinate Projection Module

Converts coordinates between the geodetic system (EPSG:4326, degrees,
longitude-then-latitude) and the projected system used for on-screen geometry
(EPSG:3857, meters). Transformers are built once with pyproj and cached.
"""

import math
from functools import lru_cache
from typing import Iterable, List, Tuple

from pyproj import CRS, Transformer

from core.errors import (
    InvalidCoordinateError,
    ReferenceSystemMismatchError,
    UnsupportedReferenceSystemError
)
from core.models import GEODETIC_SRS, PROJECTED_SRS, SUPPORTED_SRS, GeoPoint
from utils.logger import get_logger

logger = get_logger(__name__)


def is_supported(srs: str) -> bool:
    """Return True if srs is one of the two recognized reference system tokens."""
    return srs in SUPPORTED_SRS


def _check_srs(srs: str) -> None:
    if not is_supported(srs):
        raise UnsupportedReferenceSystemError(srs)


@lru_cache(maxsize=None)
def _get_transformer(from_srs: str, to_srs: str) -> Transformer:
    logger.debug(f"Creating transformer {from_srs} -> {to_srs}")
    return Transformer.from_crs(
        CRS.from_string(from_srs),
        CRS.from_string(to_srs),
        always_xy=True
    )


def transform_coords(x: float, y: float, from_srs: str, to_srs: str) -> Tuple[float, float]:
    """
    Transform a raw coordinate pair between the supported systems.

    Args:
        x: Longitude (geodetic) or easting (projected)
        y: Latitude (geodetic) or northing (projected)
        from_srs: Source reference system token
        to_srs: Target reference system token

    Returns:
        Transformed (x, y) pair

    Raises:
        InvalidCoordinateError: If an input or output value is non-finite
        UnsupportedReferenceSystemError: If either token is not supported
    """
    _check_srs(from_srs)
    _check_srs(to_srs)

    try:
        x = float(x)
        y = float(y)
    except (TypeError, ValueError) as e:
        raise InvalidCoordinateError(f"Coordinate is not numeric: ({x!r}, {y!r})") from e

    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidCoordinateError(f"Coordinate is not finite: ({x}, {y})")

    if from_srs == to_srs:
        return x, y

    tx, ty = _get_transformer(from_srs, to_srs).transform(x, y)

    if not (math.isfinite(tx) and math.isfinite(ty)):
        raise InvalidCoordinateError(
            f"Coordinate ({x}, {y}) has no finite image in {to_srs}"
        )

    return tx, ty


def transform(point: GeoPoint, from_srs: str, to_srs: str) -> GeoPoint:
    """
    Transform a point from one reference system to the other.

    transform(p, X, X) is the identity, and transforming there and back
    returns the original point within floating-point tolerance.

    Args:
        point: Point tagged with from_srs
        from_srs: Source reference system token
        to_srs: Target reference system token

    Returns:
        New GeoPoint tagged with to_srs

    Raises:
        ReferenceSystemMismatchError: If point.srs differs from from_srs
        InvalidCoordinateError: If the point has a non-finite value
        UnsupportedReferenceSystemError: If either token is not supported
    """
    if point.srs != from_srs:
        raise ReferenceSystemMismatchError(from_srs, point.srs)

    x, y = transform_coords(point.x, point.y, from_srs, to_srs)
    return GeoPoint(x, y, to_srs)


def transform_pairs(coords: Iterable[Tuple[float, float]],
                    from_srs: str,
                    to_srs: str,
                    skip_invalid: bool = True) -> List[Tuple[Tuple[float, float], Tuple[float, float]]]:
    """
    Transform a sequence of coordinate pairs, keeping each source beside its image.

    Pairs that cannot be transformed are dropped when skip_invalid is True
    (one garbled vertex must not abort a whole polygon); otherwise the
    InvalidCoordinateError propagates. Callers that need the surviving
    sources and their images to line up read both halves from the result.
    """
    result = []
    dropped = 0
    for x, y in coords:
        try:
            image = transform_coords(x, y, from_srs, to_srs)
            result.append(((float(x), float(y)), image))
        except InvalidCoordinateError as e:
            if not skip_invalid:
                raise
            dropped += 1
            logger.debug(f"  - Dropping vertex: {e}")

    if dropped:
        logger.warning(f"Dropped {dropped} vertex(es) with invalid coordinates")

    return result


def transform_many(coords: Iterable[Tuple[float, float]],
                   from_srs: str,
                   to_srs: str,
                   skip_invalid: bool = True) -> List[Tuple[float, float]]:
    """Transform a sequence of coordinate pairs, dropping those without a finite image."""
    return [image for _, image in transform_pairs(coords, from_srs, to_srs, skip_invalid)]


def transform_extent(extent: Tuple[float, float, float, float],
                     from_srs: str,
                     to_srs: str) -> Tuple[float, float, float, float]:
    """
    Transform a (minx, miny, maxx, maxy) extent by transforming its corners.

    Both projections are monotonic in each axis, so the transformed
    lower-left and upper-right corners bound the result.
    """
    minx, miny, maxx, maxy = extent
    x1, y1 = transform_coords(minx, miny, from_srs, to_srs)
    x2, y2 = transform_coords(maxx, maxy, from_srs, to_srs)
    return (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))


def to_geodetic(point: GeoPoint) -> GeoPoint:
    return transform(point, point.srs, GEODETIC_SRS)


def to_projected(point: GeoPoint) -> GeoPoint:
    return transform(point, point.srs, PROJECTED_SRS)
