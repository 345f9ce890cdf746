"""Tests for clipboard file loading: KML, KMZ, GeoJSON."""

import json
import zipfile

import pytest

from geometry_input.load_input import load_clipboard_file
from utils.geometry_converters import decode_kml

KML = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<kml xmlns="http://www.opengis.net/kml/2.2"><Placemark><Polygon>'
    '<outerBoundaryIs><LinearRing>'
    '<coordinates>150,-33 152,-33 152,-35 150,-33</coordinates>'
    '</LinearRing></outerBoundaryIs></Polygon></Placemark></kml>'
)


class TestLoadClipboardFile:
    """Reading polygon files as KML text."""

    def test_kml(self, tmp_path):
        """KML files are returned verbatim with their file name."""
        path = tmp_path / "area.kml"
        path.write_text(KML, encoding="utf-8")
        text, name = load_clipboard_file(str(path))
        assert text == KML
        assert name == "area.kml"

    def test_kmz(self, tmp_path):
        """KMZ archives yield their KML document."""
        path = tmp_path / "area.kmz"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("doc.kml", KML)
        text, name = load_clipboard_file(str(path))
        assert text == KML
        assert name == "area.kmz"

    def test_kmz_without_kml(self, tmp_path):
        """KMZ archives without a KML document are rejected."""
        path = tmp_path / "empty.kmz"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("readme.txt", "nothing here")
        with pytest.raises(ValueError):
            load_clipboard_file(str(path))

    def test_geojson(self, tmp_path):
        """Other vector formats are converted to a KML coordinates block."""
        path = tmp_path / "area.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[150, -33], [152, -33], [152, -35], [150, -33]]]
                }
            }]
        }), encoding="utf-8")
        text, name = load_clipboard_file(str(path))
        assert name == "area.geojson"
        vertices = decode_kml(text)
        assert set(vertices) == {(150.0, -33.0), (152.0, -33.0), (152.0, -35.0)}

    def test_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_clipboard_file(str(tmp_path / "nope.kml"))
