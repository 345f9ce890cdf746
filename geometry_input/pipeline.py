"""
Clipboard Geometry Pipeline

Owns the single current clipboard polygon and republishes it on every change.
A polygon can come from three places:

1. A drawing on the map (projected vertices, kept as a plain coordinate string)
2. A KML file (geodetic vertices, rounded and encoded as GML)
3. A layer (GML markup in either supported system):
   decode -> transform to geodetic -> drop invalid vertices -> simplify ->
   encode as GML -> render projected vertices

Each public mutation runs to completion before anything is published, and
publishes exactly once. Structural errors (missing markup markers, an
unsupported reference system) abort the call with the previous state and
rendering left untouched.
"""

from concurrent.futures import Future
from typing import Any, Dict, Optional, Sequence, Tuple

from core.channel import Channel
from core.errors import MalformedMarkupError, PortalGeometryError, UnsupportedReferenceSystemError
from core.models import (
    GEODETIC_SRS,
    PROJECTED_SRS,
    ClipboardPolygon,
    GeometryType,
    PolygonSource
)
from core.renderer import MapRenderer
from config.config_loader import load_clipboard_settings
from geometry_input.projection import is_supported, transform_many, transform_pairs
from geometry_input.simplify import simplify_coords
from utils.geometry_converters import (
    decode_gml,
    decode_kml,
    encode_gml,
    format_coordinate_string,
    parse_gml_coordinates
)
from utils.logger import get_logger

logger = get_logger(__name__)

Coord = Tuple[float, float]

DRAWN_POLYGON_NAME = 'drawn'


class ClipboardGeometryPipeline:
    """
    Builds, normalizes and publishes the clipboard polygon.

    Parameters:
    -----------
    renderer : MapRenderer
        Collaborator that shows and removes the rendered polygon
    settings : Optional[Dict]
        Clipboard settings (see config.config_loader.load_clipboard_settings);
        defaults are used when omitted

    Channels:
    ---------
    clipboard : current ClipboardPolygon, or None when cleared
    show_clipboard : whether the clipboard panel is open
    filter_layers : whether layer lists are filtered by the clipboard
    errors : structural errors raised while handling renderer events
    """

    def __init__(self, renderer: MapRenderer, settings: Optional[Dict] = None):
        self.renderer = renderer
        self.settings = settings if settings is not None else load_clipboard_settings({})

        self._polygon: Optional[ClipboardPolygon] = None
        self._handle: Any = None

        self.clipboard: Channel[Optional[ClipboardPolygon]] = Channel('clipboard')
        self.show_clipboard: Channel[bool] = Channel('show-clipboard', False)
        self.filter_layers: Channel[bool] = Channel('filter-layers', False)
        self.errors: Channel[PortalGeometryError] = Channel('clipboard-errors')

    @property
    def current(self) -> Optional[ClipboardPolygon]:
        return self._polygon

    @property
    def rendered_handle(self) -> Any:
        return self._handle

    def subscribe(self, callback, replay: bool = False):
        return self.clipboard.subscribe(callback, replay=replay)

    # ------------------------------------------------------------------
    # State commit
    # ------------------------------------------------------------------

    def _commit(self, polygon: Optional[ClipboardPolygon], handle: Any) -> None:
        """Swap in new state, drop the old rendering, then publish once."""
        if self._handle is not None and self._handle != handle:
            self.renderer.remove_rendered(self._handle)
        self._polygon = polygon
        self._handle = handle
        self.clipboard.publish(polygon)

    # ------------------------------------------------------------------
    # Polygon sources
    # ------------------------------------------------------------------

    def set_from_drawing(self, raw_vertices: Sequence[Coord], handle: Any = None) -> ClipboardPolygon:
        """
        Store a polygon drawn on the map.

        The vertices are already projected (the renderer's native frame) and
        the renderer already shows the drawing, so nothing is simplified or
        re-rendered.

        Args:
            raw_vertices: Projected (x, y) ring vertices
            handle: Renderer handle of the drawn overlay, if any

        Returns:
            The published polygon
        """
        vertices = [(float(x), float(y)) for x, y in raw_vertices]

        polygon = ClipboardPolygon(
            name=DRAWN_POLYGON_NAME,
            srs=PROJECTED_SRS,
            coordinates=format_coordinate_string(vertices),
            source=PolygonSource.DRAWN,
            geometry_type=GeometryType.POLYGON,
            rendered_coordinates=tuple(vertices)
        )

        logger.info(f"Clipboard polygon drawn ({len(vertices)} vertices)")
        self._commit(polygon, handle)
        return polygon

    def set_from_file(self, kml_text: str, file_name: str) -> ClipboardPolygon:
        """
        Store a polygon read from KML text.

        Args:
            kml_text: KML document content
            file_name: Name of the loaded file, used as the polygon name

        Returns:
            The published polygon

        Raises:
            MalformedMarkupError: If the KML has no usable coordinates
        """
        logger.info(f"Loading clipboard polygon from {file_name}")

        try:
            # Only vertices with a projected image are kept, so the GML and
            # the rendered outline hold the same points
            pairs = transform_pairs(
                decode_kml(kml_text, self.settings['kml_decimal_places']),
                GEODETIC_SRS,
                PROJECTED_SRS
            )
            if not pairs:
                raise MalformedMarkupError(f"No valid coordinates in {file_name}")
        except PortalGeometryError as e:
            logger.error(f"Cannot load clipboard polygon from {file_name}: {e}")
            raise

        vertices = [vertex for vertex, _ in pairs]
        projected = [image for _, image in pairs]
        markup = encode_gml(vertices)
        handle = self.renderer.render_polygon(projected, PROJECTED_SRS)

        polygon = ClipboardPolygon(
            name=file_name,
            srs=GEODETIC_SRS,
            coordinates=markup,
            source=PolygonSource.FILE,
            geometry_type=GeometryType.POLYGON,
            raw=kml_text,
            rendered_coordinates=tuple(projected)
        )

        logger.info(f"  ✓ Clipboard polygon loaded: {len(vertices)} vertices")
        self._commit(polygon, handle)
        return polygon

    def set_from_layer(self, source: ClipboardPolygon) -> ClipboardPolygon:
        """
        Promote a layer's polygon to the clipboard.

        Re-selecting the polygon already on the clipboard (same name) is a
        no-op and publishes nothing.

        Args:
            source: Polygon whose coordinates are GML markup in source.srs

        Returns:
            The current clipboard polygon

        Raises:
            UnsupportedReferenceSystemError: If source.srs is not supported
            MalformedMarkupError: If the markup is missing its coordinates
                element or holds no valid vertex
        """
        if self._polygon is not None and self._polygon.name == source.name:
            logger.debug(f"Clipboard already holds {source.name}, skipping")
            return self._polygon

        logger.info(f"Copying {source.name} ({source.srs}) to clipboard")

        try:
            if not is_supported(source.srs):
                raise UnsupportedReferenceSystemError(source.srs)

            coords = parse_gml_coordinates(decode_gml(source.coordinates), source.srs)
            if source.srs == PROJECTED_SRS:
                coords = transform_many(coords, PROJECTED_SRS, GEODETIC_SRS)
            coords = [vertex for vertex, _ in transform_pairs(coords, GEODETIC_SRS, PROJECTED_SRS)]

            if not coords:
                raise MalformedMarkupError(f"No valid coordinates in {source.name}")
        except PortalGeometryError as e:
            logger.error(f"Cannot copy {source.name} to clipboard: {e}")
            raise

        simplified = simplify_coords(
            coords,
            self.settings['simplify_tolerance'],
            self.settings['simplify_high_quality']
        )
        logger.info(f"  - Simplified from {len(coords)} to {len(simplified)} vertices")

        markup = encode_gml(simplified)
        projected = transform_many(simplified, GEODETIC_SRS, PROJECTED_SRS)
        handle = self.renderer.render_polygon(projected, PROJECTED_SRS)

        polygon = ClipboardPolygon(
            name=source.name,
            srs=GEODETIC_SRS,
            coordinates=markup,
            source=PolygonSource.LAYER,
            geometry_type=source.geometry_type,
            raw=source.raw if source.raw is not None else source.coordinates,
            rendered_coordinates=tuple(projected)
        )

        self._commit(polygon, handle)
        return polygon

    def clear(self) -> None:
        """Remove the rendered polygon and publish an empty clipboard."""
        logger.info("Clearing clipboard polygon")
        if self._handle is not None:
            self.renderer.remove_rendered(self._handle)
            self._handle = None
        self._commit(None, None)

    # ------------------------------------------------------------------
    # Renderer events
    # ------------------------------------------------------------------

    def _report(self, error: PortalGeometryError) -> None:
        self.errors.publish(error)

    def on_draw_complete(self, vertices: Sequence[Coord], handle: Any = None) -> Optional[ClipboardPolygon]:
        try:
            return self.set_from_drawing(vertices, handle)
        except PortalGeometryError as e:
            self._report(e)
            return None

    def on_file_loaded(self, kml_text: str, file_name: str) -> Optional[ClipboardPolygon]:
        try:
            return self.set_from_file(kml_text, file_name)
        except PortalGeometryError as e:
            self._report(e)
            return None

    def on_layer_polygon(self, source: ClipboardPolygon) -> Optional[ClipboardPolygon]:
        try:
            return self.set_from_layer(source)
        except PortalGeometryError as e:
            self._report(e)
            return None

    def draw_polygon(self) -> Future:
        """
        Start a draw session on the renderer.

        The session completes at most once; its vertices then become the
        clipboard polygon. A cancelled session changes nothing.
        """
        session = self.renderer.draw_polygon()
        session.add_done_callback(self._on_draw_session_done)
        return session

    def _on_draw_session_done(self, session: Future) -> None:
        if session.cancelled():
            logger.debug("Draw session cancelled")
            return
        error = session.exception()
        if error is not None:
            logger.error(f"Draw session failed: {error}")
            return
        result = session.result()
        self.on_draw_complete(result.vertices, result.handle)

    # ------------------------------------------------------------------
    # Clipboard panel state
    # ------------------------------------------------------------------

    def toggle_clipboard(self, open: Optional[bool] = None) -> bool:
        """Open, close or flip the clipboard panel; closing stops layer filtering."""
        shown = (not self.show_clipboard.value) if open is None else bool(open)
        self.show_clipboard.publish(shown)
        if not shown and self.filter_layers.value:
            self.filter_layers.publish(False)
        return shown

    def toggle_filter_layers(self) -> bool:
        filtering = not self.filter_layers.value
        self.filter_layers.publish(filtering)
        return filtering
