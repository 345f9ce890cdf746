"""
Geometry Input Processing Package

This package turns drawn, loaded and layer-derived polygons into the single
clipboard polygon of the portal map toolkit.

Modules:
    projection: Convert points and extents between EPSG:4326 and EPSG:3857
    simplify: Reduce polygon vertex counts (radial distance / Douglas-Peucker)
    load_input: Read KML, KMZ and other vector files as KML text
    pipeline: Build, normalize and publish the clipboard polygon

Usage:
    from geometry_input.pipeline import ClipboardGeometryPipeline

    pipeline = ClipboardGeometryPipeline(renderer)
    pipeline.subscribe(lambda polygon: print(polygon))
    pipeline.set_from_file(kml_text, 'area.kml')
"""

from geometry_input.pipeline import ClipboardGeometryPipeline
from geometry_input.load_input import load_clipboard_file

__all__ = [
    'ClipboardGeometryPipeline',
    'load_clipboard_file'
]
