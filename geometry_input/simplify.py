"""
Polygon Simplification Module

Reduces dense vertex lists (e.g. KML exports with thousands of vertices) to a
sparser list within a distance tolerance, so the clipboard polygon stays small
enough to embed in a query URL or GML payload.

Two variants:
    high_quality=True:  Douglas-Peucker over the whole path (shapely/GEOS)
    high_quality=False: radial-distance pre-pass, then Douglas-Peucker

Both keep the first and last vertex and never reorder vertices, so a ring keeps
its closing vertex and its winding.
"""

from typing import List, Sequence, Tuple

from shapely.geometry import LineString

from core.errors import ReferenceSystemMismatchError
from core.models import GeoPoint
from utils.logger import get_logger

logger = get_logger(__name__)

Coord = Tuple[float, float]

MIN_RING_VERTICES = 4


def _radial_distance(coords: Sequence[Coord], tolerance: float) -> List[Coord]:
    """Drop vertices closer than tolerance to the previously kept vertex."""
    sq_tolerance = tolerance * tolerance
    prev = coords[0]
    kept = [prev]

    for point in coords[1:]:
        dx = point[0] - prev[0]
        dy = point[1] - prev[1]
        if dx * dx + dy * dy > sq_tolerance:
            kept.append(point)
            prev = point

    if prev != coords[-1]:
        kept.append(coords[-1])

    return kept


def _douglas_peucker(coords: Sequence[Coord], tolerance: float) -> List[Coord]:
    if len(coords) <= 2:
        return list(coords)
    simplified = LineString(coords).simplify(tolerance, preserve_topology=False)
    return [(x, y) for x, y in simplified.coords]


def simplify_coords(coords: Sequence[Coord],
                    tolerance: float,
                    high_quality: bool = True) -> List[Coord]:
    """
    Simplify a path of plain (x, y) pairs.

    Args:
        coords: Ordered vertices, in any single coordinate system
        tolerance: Maximum displacement, in the input's coordinate units
        high_quality: Skip the radial-distance pre-pass

    Returns:
        Simplified vertex list (the input, copied, when it has 2 or fewer
        vertices or is a closed ring that would collapse below 4 vertices)

    Raises:
        ValueError: If tolerance is negative
    """
    if tolerance < 0:
        raise ValueError(f"Simplification tolerance must be non-negative, got {tolerance}")

    coords = [(float(x), float(y)) for x, y in coords]
    if len(coords) <= 2:
        return coords

    reduced = coords if high_quality else _radial_distance(coords, tolerance)
    reduced = _douglas_peucker(reduced, tolerance)

    # A closed ring needs at least 4 vertices; rings smaller than the tolerance
    # would otherwise collapse to a single repeated point
    if coords[0] == coords[-1] and len(reduced) < MIN_RING_VERTICES <= len(coords):
        logger.debug(f"Ring of {len(coords)} vertices is within tolerance {tolerance}, kept as-is")
        return coords

    if len(reduced) < len(coords):
        logger.debug(
            f"Simplified from {len(coords)} to {len(reduced)} vertices "
            f"(tolerance={tolerance}, high_quality={high_quality})"
        )

    return reduced


def simplify(vertices: Sequence[GeoPoint],
             tolerance: float,
             high_quality: bool = True) -> List[GeoPoint]:
    """
    Simplify a path of GeoPoints within a distance tolerance.

    All vertices must share one reference system; the tolerance is read in
    that system's units (degrees for geodetic, meters for projected).

    Args:
        vertices: Ordered vertices of an open path or closed ring
        tolerance: Maximum displacement of the simplified path
        high_quality: Use the slower whole-path Douglas-Peucker variant

    Returns:
        Simplified list of GeoPoints in the input's reference system

    Raises:
        ReferenceSystemMismatchError: If vertices mix reference systems
        ValueError: If tolerance is negative
    """
    vertices = list(vertices)
    if len(vertices) <= 2:
        return vertices

    srs = vertices[0].srs
    for vertex in vertices[1:]:
        if vertex.srs != srs:
            raise ReferenceSystemMismatchError(srs, vertex.srs)

    simplified = simplify_coords([v.as_tuple() for v in vertices], tolerance, high_quality)
    return [GeoPoint(x, y, srs) for x, y in simplified]
