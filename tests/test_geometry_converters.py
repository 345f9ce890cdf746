"""Tests for GML/KML encoding: envelope, lat/lon order, token filtering."""

import pytest

from core.errors import MalformedMarkupError, ReferenceSystemMismatchError, UnsupportedReferenceSystemError
from core.models import GEODETIC_SRS, PROJECTED_SRS, GeoPoint
from utils.geometry_converters import (
    GML_PREFIX,
    GML_SUFFIX,
    decode_gml,
    decode_kml,
    encode_gml,
    format_coordinate_string,
    format_gml_coordinates,
    parse_coordinate_string,
    parse_gml_coordinates
)


def _kml(coords):
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Placemark><Polygon>'
        '<outerBoundaryIs><LinearRing>'
        f'<coordinates>{coords}</coordinates>'
        '</LinearRing></outerBoundaryIs></Polygon></Placemark></kml>'
    )


class TestGml:
    """GML envelope encoding and decoding."""

    def test_envelope(self):
        """Encoded markup is the fixed envelope around the coordinate text."""
        markup = encode_gml("-33.9,151.2 -34,151")
        assert markup.startswith('<gml:MultiPolygon srsName="urn:ogc:def:crs:EPSG::4326">')
        assert '<gml:Polygon srsName="EPSG:4326">' in markup
        assert ('<gml:coordinates xmlns:gml="http://www.opengis.net/gml" '
                'decimal="." cs="," ts=" ">-33.9,151.2 -34,151</gml:coordinates>') in markup
        assert markup.endswith('</gml:MultiPolygon>')
        assert markup == GML_PREFIX + "-33.9,151.2 -34,151" + GML_SUFFIX

    @pytest.mark.parametrize("text", ["", "1,2", "-33.9,151.2 -34,151 -33.9,151.2", "  odd   spacing "])
    def test_decode_returns_embedded_text(self, text):
        """decode_gml(encode_gml(S)) == S for any coordinate text."""
        assert decode_gml(encode_gml(text)) == text

    def test_decode_foreign_attributes(self):
        """Opening tags with other attributes are still recognized."""
        markup = '<gml:LinearRing><gml:coordinates cs="," ts=" ">1,2 3,4</gml:coordinates></gml:LinearRing>'
        assert decode_gml(markup) == "1,2 3,4"

    @pytest.mark.parametrize("markup", [
        "<gml:Polygon>1,2</gml:Polygon>",
        "<gml:coordinates>1,2 3,4",
        "<gml:coordinates",
        ""
    ])
    def test_decode_missing_markers(self, markup):
        """Missing open or close markers raise MalformedMarkupError."""
        with pytest.raises(MalformedMarkupError):
            decode_gml(markup)

    def test_lat_lon_order(self):
        """Geodetic vertices are written latitude first."""
        assert format_gml_coordinates([(150.5, -33.25), (151, -34)]) == "-33.25,150.5 -34,151"

    def test_encode_vertices(self):
        """Vertex lists are formatted before wrapping."""
        assert decode_gml(encode_gml([GeoPoint(151.0, -34.0)])) == "-34,151"

    def test_encode_rejects_projected_points(self):
        """Projected GeoPoints cannot go into geodetic markup."""
        with pytest.raises(ReferenceSystemMismatchError):
            format_gml_coordinates([GeoPoint(1, 2, PROJECTED_SRS)])

    def test_parse_geodetic_swaps_order(self):
        """Geodetic tokens are read as lat,lon and returned as (lon, lat)."""
        assert parse_gml_coordinates("-33.25,150.5 -34,151", GEODETIC_SRS) == [(150.5, -33.25), (151.0, -34.0)]

    def test_parse_projected_keeps_order(self):
        """Projected tokens are read as x,y."""
        assert parse_gml_coordinates("100,200 300,400", PROJECTED_SRS) == [(100.0, 200.0), (300.0, 400.0)]

    def test_parse_drops_bad_tokens(self):
        """Tokens that are not two finite numbers are dropped."""
        assert parse_gml_coordinates("1,2 abc,def 3 nan,4 5,6", PROJECTED_SRS) == [(1.0, 2.0), (5.0, 6.0)]

    def test_parse_unsupported_system(self):
        """Unknown systems are rejected."""
        with pytest.raises(UnsupportedReferenceSystemError):
            parse_gml_coordinates("1,2", "EPSG:28355")


class TestKml:
    """KML coordinate extraction."""

    def test_rounds_and_drops_invalid(self):
        """Valid tokens are rounded to 3 decimals; invalid tokens are dropped."""
        vertices = decode_kml(_kml("150.12345,-33.98765 abc,def 151.0004,-34.0006,0"))
        assert vertices == [(150.123, -33.988), (151.0, -34.001)]

    def test_multiple_blocks(self):
        """Vertices from every coordinates block are returned in order."""
        text = _kml("1,2 3,4") + "<coordinates>\n  5,6\n</coordinates>"
        assert decode_kml(text) == [(1.0, 2.0), (3.0, 4.0), (5.0, 6.0)]

    def test_custom_precision(self):
        """The rounding precision can be changed."""
        assert decode_kml(_kml("1.23456,2.34567"), decimal_places=1) == [(1.2, 2.3)]

    def test_no_block(self):
        """Text without a coordinates block raises MalformedMarkupError."""
        with pytest.raises(MalformedMarkupError):
            decode_kml("<kml><Placemark/></kml>")


class TestCoordinateString:
    """Plain "x y x y" strings."""

    def test_format_integers(self):
        """Whole numbers are written without a decimal part."""
        assert format_coordinate_string([(0, 0), (0, 10), (10, 10), (10, 0)]) == "0 0 0 10 10 10 10 0"

    def test_format_fractions(self):
        """Fractional values keep their digits."""
        assert format_coordinate_string([(1.5, -2.25)]) == "1.5 -2.25"

    def test_parse(self):
        """Pairs are read in order and a trailing odd value is ignored."""
        assert parse_coordinate_string("0 0 0 10 7") == [(0.0, 0.0), (0.0, 10.0)]
