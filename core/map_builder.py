"""
Map building module for the portal map toolkit.

This module provides FoliumMapRenderer, a rendering collaborator backed by a
Folium (Leaflet) map. It models a static viewport (center, zoom, pixel size)
in web mercator so pixel clicks can be converted to map coordinates, keeps the
clipboard polygon and other vector overlays hit-testable with shapely, mirrors
registry changes as WMS tile layers, and saves the result as an HTML map.

Classes:
    FoliumMapRenderer: MapRenderer implementation over folium.Map
"""

import itertools
import math
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import folium
from shapely.geometry import Point, Polygon

from core.models import (
    GEODETIC_SRS,
    PROJECTED_SRS,
    LayerChange,
    LayerRecord,
    RenderedFeature,
    ResourceType
)
from core.renderer import Coord, DrawResult, Pixel
from geometry_input.projection import transform_coords, transform_many
from utils.logger import get_logger

logger = get_logger(__name__)

TILE_SIZE = 256
EARTH_CIRCUMFERENCE = 2 * math.pi * 6378137.0

# Clipboard polygon styling (white fill, blue outline)
CLIPBOARD_STYLE = {
    'color': '#319FD3',
    'weight': 1,
    'fill': True,
    'fill_color': '#FFFFFF',
    'fill_opacity': 0.6
}


class _Overlay:
    """A vector overlay added to the map, with its projected footprint."""

    def __init__(self, group: folium.FeatureGroup, footprint: Polygon, feature: RenderedFeature):
        self.group = group
        self.footprint = footprint
        self.feature = feature


class FoliumMapRenderer:
    """
    Rendering collaborator over a folium.Map with a fixed viewport.

    Parameters:
    -----------
    center : Tuple[float, float]
        Viewport center as (lon, lat) in degrees
    zoom : int
        Web map zoom level
    size : Tuple[int, int]
        Viewport size in pixels (width, height)
    """

    def __init__(self,
                 center: Tuple[float, float] = (133.3, -26.0),
                 zoom: int = 4,
                 size: Tuple[int, int] = (1024, 768)):
        self.center = center
        self.zoom = zoom
        self.size = size

        self._center_xy = transform_coords(center[0], center[1], GEODETIC_SRS, PROJECTED_SRS)
        self._overlays: Dict[str, _Overlay] = {}
        self._tile_layers: Dict[str, List[folium.WmsTileLayer]] = {}
        self._click_handlers: List[Callable[[Pixel], Any]] = []
        self._draw_session: Optional[Future] = None
        self._ids = itertools.count(1)
        self._layer_control = None

        self.map = folium.Map(
            location=[center[1], center[0]],
            zoom_start=zoom,
            tiles=None,
            width=size[0],
            height=size[1]
        )
        folium.TileLayer('OpenStreetMap', name='Street Map', control=True).add_to(self.map)

        logger.debug(f"Map viewport: center={center}, zoom={zoom}, size={size}")

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    @property
    def resolution(self) -> float:
        """Meters per pixel at the current zoom level."""
        return EARTH_CIRCUMFERENCE / (TILE_SIZE * 2 ** self.zoom)

    def coordinate_from_pixel(self, pixel: Pixel) -> Coord:
        width, height = self.size
        cx, cy = self._center_xy
        x = cx + (pixel[0] - width / 2) * self.resolution
        y = cy - (pixel[1] - height / 2) * self.resolution
        return x, y

    def pixel_from_coordinate(self, coord: Coord) -> Pixel:
        width, height = self.size
        cx, cy = self._center_xy
        px = (coord[0] - cx) / self.resolution + width / 2
        py = (cy - coord[1]) / self.resolution + height / 2
        return px, py

    # ------------------------------------------------------------------
    # Vector overlays
    # ------------------------------------------------------------------

    def _add_overlay(self,
                     vertices: Sequence[Coord],
                     srs: str,
                     feature_id: str,
                     properties: Dict,
                     is_clipboard: bool,
                     style: Dict) -> str:
        if srs == GEODETIC_SRS:
            projected = transform_many(vertices, GEODETIC_SRS, PROJECTED_SRS)
            geodetic = [tuple(v) for v in vertices]
        else:
            projected = [tuple(v) for v in vertices]
            geodetic = transform_many(vertices, PROJECTED_SRS, GEODETIC_SRS)

        group = folium.FeatureGroup(name=feature_id, control=False)
        folium.Polygon(
            locations=[[lat, lon] for lon, lat in geodetic],
            tooltip=properties.get('name'),
            **style
        ).add_to(group)
        group.add_to(self.map)

        footprint = Polygon(projected) if len(projected) >= 3 else Polygon()
        feature = RenderedFeature(feature_id, dict(properties), is_clipboard)
        self._overlays[feature_id] = _Overlay(group, footprint, feature)
        return feature_id

    def render_polygon(self, vertices: Sequence[Coord], srs: str) -> str:
        """
        Show a clipboard polygon and return its handle.

        Parameters:
        -----------
        vertices : Sequence[Tuple[float, float]]
            Ring vertices in srs
        srs : str
            EPSG:4326 or EPSG:3857

        Returns:
        --------
        str
            Handle accepted by remove_rendered()
        """
        handle = f"clipboard-{next(self._ids)}"
        self._add_overlay(vertices, srs, handle, {'name': 'Clipboard'}, True, CLIPBOARD_STYLE)
        logger.info(f"  - Rendered clipboard polygon ({len(vertices)} vertices) as {handle}")
        return handle

    def add_feature(self,
                    feature_id: str,
                    vertices: Sequence[Coord],
                    srs: str = GEODETIC_SRS,
                    properties: Optional[Dict] = None,
                    color: str = '#FF8C00') -> str:
        """Add a non-clipboard vector feature that clicks can hit."""
        style = {'color': color, 'weight': 2, 'fill': True, 'fill_opacity': 0.2}
        return self._add_overlay(vertices, srs, feature_id, properties or {}, False, style)

    def _detach(self, element) -> None:
        # folium has no public call for removing a child from a map, so the
        # element is dropped from the map's child registry it was added to
        self.map._children.pop(element.get_name(), None)

    def remove_rendered(self, handle: str) -> None:
        overlay = self._overlays.pop(handle, None)
        if overlay is None:
            logger.debug(f"Nothing rendered under handle {handle}")
            return
        self._detach(overlay.group)
        logger.debug(f"Removed rendered overlay {handle}")

    def features_at_pixel(self, pixel: Pixel) -> List[RenderedFeature]:
        """Overlays covering the pixel, topmost (most recently added) first."""
        point = Point(self.coordinate_from_pixel(pixel))
        hits = []
        for overlay in reversed(list(self._overlays.values())):
            if not overlay.footprint.is_empty and overlay.footprint.covers(point):
                hits.append(overlay.feature)
        return hits

    @property
    def rendered_handles(self) -> List[str]:
        return list(self._overlays)

    # ------------------------------------------------------------------
    # Draw sessions and clicks
    # ------------------------------------------------------------------

    def draw_polygon(self) -> Future:
        """Start a draw session; map clicks are ignored until it ends."""
        if self._draw_session is not None and not self._draw_session.done():
            self._draw_session.cancel()
        self._draw_session = Future()
        return self._draw_session

    def complete_drawing(self, vertices: Sequence[Coord]) -> str:
        """
        Finish the active draw session with projected vertices.

        The drawing stays on the map as a clipboard overlay; its handle is
        passed along with the vertices.

        Raises:
            RuntimeError: If no draw session is active
        """
        session = self._draw_session
        if session is None or session.done():
            raise RuntimeError("No active draw session")

        handle = self.render_polygon(vertices, PROJECTED_SRS)
        self._draw_session = None
        session.set_result(DrawResult([tuple(v) for v in vertices], handle))
        return handle

    def cancel_drawing(self) -> None:
        if self._draw_session is not None:
            self._draw_session.cancel()
            self._draw_session = None

    @property
    def is_drawing(self) -> bool:
        return self._draw_session is not None and not self._draw_session.done()

    def register_click_handler(self, handler: Callable[[Pixel], Any]) -> None:
        self._click_handlers.append(handler)

    def click(self, pixel: Pixel) -> None:
        """Deliver a pixel click to every registered handler."""
        if self.is_drawing:
            logger.debug(f"Ignoring click at {pixel} during draw session")
            return
        for handler in self._click_handlers:
            handler(pixel)

    # ------------------------------------------------------------------
    # Tile layers
    # ------------------------------------------------------------------

    def show_layer(self, layer: LayerRecord) -> None:
        """Add one WMS tile layer per map-tile-service endpoint of a record."""
        self.hide_layer(layer.layer_id)
        tiles = []
        for resource in layer.online_resources:
            if resource.resource_type != ResourceType.WMS:
                continue
            tile = folium.WmsTileLayer(
                url=resource.url,
                layers=resource.name,
                fmt='image/png',
                transparent=True,
                overlay=True,
                name=layer.name or layer.layer_id,
                show=layer.visible,
                opacity=layer.opacity
            )
            tile.add_to(self.map)
            tiles.append(tile)
        if tiles:
            self._tile_layers[layer.layer_id] = tiles
            logger.debug(f"Added {len(tiles)} tile layer(s) for {layer.layer_id}")

    def hide_layer(self, layer_id: str) -> None:
        for tile in self._tile_layers.pop(layer_id, []):
            self._detach(tile)

    def on_layer_change(self, change: LayerChange) -> None:
        """Registry change subscriber keeping tile layers in step."""
        if change.action == 'removed':
            self.hide_layer(change.layer.layer_id)
        else:
            self.show_layer(change.layer)

    def save(self, path: Path) -> Path:
        """
        Save the map as an HTML file.

        Returns:
        --------
        Path
            The written file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if self._layer_control is None:
            self._layer_control = folium.LayerControl(collapsed=False).add_to(self.map)
        self.map.save(str(path))
        logger.info(f"  ✓ Map saved: {path}")
        return path
