"""Tests for polygon simplification: vertex counts, endpoints, idempotence."""

import math

import pytest

from core.errors import ReferenceSystemMismatchError
from core.models import GEODETIC_SRS, PROJECTED_SRS, GeoPoint
from geometry_input.simplify import simplify, simplify_coords


def _wobbly_ring(n=200):
    """A closed ring around the unit circle with small radial noise."""
    coords = []
    for i in range(n):
        angle = 2 * math.pi * i / n
        r = 1.0 + (0.001 if i % 2 else -0.001)
        coords.append((r * math.cos(angle), r * math.sin(angle)))
    coords.append(coords[0])
    return coords


class TestSimplifyCoords:
    """Plain coordinate simplification."""

    @pytest.mark.parametrize("coords", [[], [(0, 0)], [(0, 0), (5, 5)]])
    def test_two_or_fewer_unchanged(self, coords):
        """Paths with 2 or fewer vertices come back unchanged."""
        assert simplify_coords(coords, 1.0) == [(float(x), float(y)) for x, y in coords]

    def test_collinear_points_removed(self):
        """Interior collinear vertices are dropped."""
        result = simplify_coords([(0, 0), (1, 0), (2, 0), (3, 0)], 0.1)
        assert result == [(0.0, 0.0), (3.0, 0.0)]

    @pytest.mark.parametrize("high_quality", [True, False])
    def test_never_grows(self, high_quality):
        """The output never has more vertices than the input."""
        ring = _wobbly_ring()
        result = simplify_coords(ring, 0.05, high_quality)
        assert len(result) <= len(ring)
        assert len(result) < len(ring)

    @pytest.mark.parametrize("high_quality", [True, False])
    def test_endpoints_kept(self, high_quality):
        """First and last vertices survive, so rings stay closed."""
        ring = _wobbly_ring()
        result = simplify_coords(ring, 0.05, high_quality)
        assert result[0] == ring[0]
        assert result[-1] == ring[-1]

    @pytest.mark.parametrize("high_quality", [True, False])
    def test_idempotent(self, high_quality):
        """Simplifying twice with the same tolerance changes nothing more."""
        once = simplify_coords(_wobbly_ring(), 0.05, high_quality)
        assert simplify_coords(once, 0.05, high_quality) == once

    @pytest.mark.parametrize("high_quality", [True, False])
    def test_ring_smaller_than_tolerance_kept(self, high_quality):
        """A closed ring inside the tolerance is returned whole rather than collapsed to a point."""
        ring = [(0, 0), (0.03, 0), (0.03, 0.03), (0, 0.03), (0, 0)]
        assert simplify_coords(ring, 0.05, high_quality) == [(float(x), float(y)) for x, y in ring]

    def test_open_path_may_collapse(self):
        """Open paths still reduce to their endpoints."""
        assert simplify_coords([(0, 0), (0.01, 0.01), (0.02, 0)], 0.05) == [(0.0, 0.0), (0.02, 0.0)]

    def test_zero_tolerance_keeps_distinct_vertices(self):
        """Tolerance 0 keeps every non-collinear vertex."""
        square = [(0, 0), (0, 10), (10, 10), (10, 0), (0, 0)]
        assert simplify_coords(square, 0) == [(float(x), float(y)) for x, y in square]

    def test_negative_tolerance(self):
        """A negative tolerance is rejected."""
        with pytest.raises(ValueError):
            simplify_coords([(0, 0), (1, 1), (2, 0)], -1)


class TestSimplifyPoints:
    """GeoPoint simplification."""

    def test_preserves_system(self):
        """Results carry the input's reference system."""
        points = [GeoPoint(x, 0, PROJECTED_SRS) for x in range(5)]
        result = simplify(points, 0.5)
        assert [p.srs for p in result] == [PROJECTED_SRS, PROJECTED_SRS]
        assert (result[0].x, result[-1].x) == (0, 4)

    def test_short_input_returned(self):
        """Two points come back untouched."""
        points = [GeoPoint(0, 0), GeoPoint(1, 1)]
        assert simplify(points, 10) == points

    def test_mixed_systems(self):
        """Mixing reference systems is rejected."""
        points = [GeoPoint(0, 0, GEODETIC_SRS), GeoPoint(1, 1, PROJECTED_SRS), GeoPoint(2, 0)]
        with pytest.raises(ReferenceSystemMismatchError):
            simplify(points, 0.1)
