"""
Interface of the rendering collaborator.

The toolkit never draws anything itself. It asks a renderer to convert
pixels, report the features under a pixel, show or remove the clipboard
polygon and run a polygon draw session. core.map_builder provides a folium
implementation; tests use an in-memory fake.
"""

from concurrent.futures import Future
from typing import Any, Callable, Iterable, List, NamedTuple, Protocol, Sequence, Tuple

from core.models import RenderedFeature

Pixel = Tuple[float, float]
Coord = Tuple[float, float]


class MapRenderer(Protocol):
    """What the toolkit consumes from the map rendering engine."""

    def coordinate_from_pixel(self, pixel: Pixel) -> Coord:
        """Projected (EPSG:3857) coordinate under a pixel."""
        ...

    def features_at_pixel(self, pixel: Pixel) -> Iterable[RenderedFeature]:
        """Rendered features co-located at a pixel, topmost first."""
        ...

    def render_polygon(self, vertices: Sequence[Coord], srs: str) -> Any:
        """Show a polygon and return an opaque handle for later removal."""
        ...

    def remove_rendered(self, handle: Any) -> None:
        ...

    def draw_polygon(self) -> Future:
        """
        Start a draw session.

        The returned future completes once with a DrawResult holding the
        projected vertices of the finished drawing and the handle of the
        drawn overlay. An abandoned session is cancelled or never completes.
        """
        ...

    def register_click_handler(self, handler: Callable[[Pixel], Any]) -> None:
        ...


class DrawResult(NamedTuple):
    """Outcome of a completed draw session."""

    vertices: List[Coord]
    handle: Any = None
