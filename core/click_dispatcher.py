"""
Spatial click dispatcher for the portal map toolkit.

Turns one pixel click into one ClickResult:
1. Pixel -> projected coordinate (rendering collaborator)
2. Projected coordinate -> geodetic point (projection module)
3. Registered, visible, point-queryable layers whose bounding box contains
   the point, in registry order
4. Rendered features under the pixel, deduplicated, clipboard excluded

Every click produces exactly one published result, including empty ones.
"""

from typing import Iterable, List, Optional, Sequence

from shapely.geometry import Point, box

from core.channel import Channel
from core.errors import InvalidCoordinateError
from core.layer_registry import LayerRegistry
from core.models import GEODETIC_SRS, PROJECTED_SRS, ClickResult, GeoPoint, LayerRecord, RenderedFeature, ResourceType
from core.renderer import MapRenderer, Pixel
from geometry_input.projection import transform
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_POINT_QUERY_TYPES = (ResourceType.WMS,)


def layer_contains_point(layer: LayerRecord, point: GeoPoint) -> bool:
    """
    True if any of the layer's bounding boxes contains a geodetic point.

    The box is tested as a rectangular polygon; boundary points count as inside.
    """
    target = Point(point.x, point.y)
    return any(box(*bbox.bounds).covers(target) for bbox in layer.bounding_boxes)


def dedupe_features(features: Iterable[RenderedFeature]) -> List[RenderedFeature]:
    """Drop clipboard features and repeated feature ids, keeping first occurrence."""
    seen = set()
    result = []
    for feature in features:
        if feature.is_clipboard or feature.feature_id in seen:
            continue
        seen.add(feature.feature_id)
        result.append(feature)
    return result


class SpatialClickDispatcher:
    """
    Resolves pixel clicks against the layer registry and rendered features.

    Parameters:
    -----------
    registry : LayerRegistry
        Registry whose bounding boxes are tested
    renderer : MapRenderer
        Provides pixel conversion and co-located features
    point_query_types : Sequence[ResourceType]
        Resource kinds that support point queries (default: WMS)
    """

    def __init__(self,
                 registry: LayerRegistry,
                 renderer: MapRenderer,
                 point_query_types: Optional[Sequence] = None):
        self.registry = registry
        self.renderer = renderer
        types = point_query_types if point_query_types is not None else DEFAULT_POINT_QUERY_TYPES
        self.point_query_types = tuple(ResourceType.parse(t) for t in types)
        self.results: Channel[ClickResult] = Channel('click-results')

    def attach(self) -> None:
        """Receive clicks from the renderer."""
        self.renderer.register_click_handler(self.handle_click)

    def _supports_point_query(self, layer: LayerRecord) -> bool:
        return any(r.resource_type in self.point_query_types for r in layer.online_resources)

    def layers_at(self, point: GeoPoint) -> List[LayerRecord]:
        """Visible, point-queryable layers whose extent contains a geodetic point."""
        return [
            layer for layer in self.registry
            if layer.visible
            and self._supports_point_query(layer)
            and layer_contains_point(layer, point)
        ]

    def handle_click(self, pixel: Pixel) -> ClickResult:
        """
        Resolve and publish one pixel click.

        Args:
            pixel: (x, y) pixel position in the map viewport

        Returns:
            The published ClickResult
        """
        coordinate = None
        point = None
        layers: List[LayerRecord] = []

        try:
            coordinate = tuple(self.renderer.coordinate_from_pixel(pixel))
            point = transform(GeoPoint(coordinate[0], coordinate[1], PROJECTED_SRS),
                              PROJECTED_SRS, GEODETIC_SRS)
        except InvalidCoordinateError as e:
            logger.warning(f"Click at {pixel} has no geodetic position: {e}")
            point = None

        if point is not None:
            layers = self.layers_at(point)

        features = dedupe_features(self.renderer.features_at_pixel(pixel))

        result = ClickResult(
            pixel=tuple(pixel),
            coordinate=coordinate,
            point=point,
            layers=layers,
            features=features
        )

        if point is not None:
            logger.info(f"Click at ({point.x:.4f}, {point.y:.4f}): "
                        f"{len(layers)} layer(s), {len(features)} feature(s)")

        self.results.publish(result)
        return result
