"""
Data model for the portal map toolkit.

Layer records mirror the CSW catalog entries served by the portal backend:
each record carries one or more geographic bounding boxes and one or more
online resources (service endpoints). Clipboard polygons are immutable and
replaced wholesale on every update.

Constants:
    GEODETIC_SRS: Latitude/longitude in degrees (EPSG:4326)
    PROJECTED_SRS: Web mercator in meters, used for on-screen geometry (EPSG:3857)

Classes:
    GeoPoint, BoundingBox, OnlineResource, LayerRecord, ClipboardPolygon,
    RenderedFeature, ClickResult, LayerChange
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.errors import InvalidCoordinateError, ReferenceSystemMismatchError

GEODETIC_SRS = 'EPSG:4326'
PROJECTED_SRS = 'EPSG:3857'
SUPPORTED_SRS = (GEODETIC_SRS, PROJECTED_SRS)


class ResourceType(str, Enum):
    """Kind of service endpoint attached to a catalog record."""

    WMS = 'WMS'      # map-tile-service
    WFS = 'WFS'      # feature-service
    WCS = 'WCS'
    WWW = 'WWW'
    KML = 'KML'
    UNSUPPORTED = 'Unsupported'

    @classmethod
    def parse(cls, value: Any) -> 'ResourceType':
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        return cls.UNSUPPORTED


class GeometryType(str, Enum):
    POLYGON = 'Polygon'
    MULTIPOLYGON = 'MultiPolygon'


class PolygonSource(str, Enum):
    """Provenance of the clipboard polygon."""

    DRAWN = 'drawn'
    FILE = 'file'
    LAYER = 'layer'


@dataclass(frozen=True)
class GeoPoint:
    """
    A coordinate pair tagged with its reference system.

    x is longitude (geodetic) or easting (projected); y is latitude or northing.
    """

    x: float
    y: float
    srs: str = GEODETIC_SRS

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic extent of a catalog record, in the geodetic system.

    Antimeridian wraparound is not supported: west must not exceed east.
    """

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self):
        values = (self.west, self.south, self.east, self.north)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            raise InvalidCoordinateError(f"Bounding box values must be finite: {values}")
        if self.west > self.east or self.south > self.north:
            raise InvalidCoordinateError(
                f"Bounding box is inverted: west={self.west}, east={self.east}, "
                f"south={self.south}, north={self.north}"
            )

    @classmethod
    def from_dict(cls, data: Dict) -> 'BoundingBox':
        """
        Build a bounding box from a CSW geographic element.

        Args:
            data: Dict with westBoundLongitude, southBoundLatitude,
                  eastBoundLongitude and northBoundLatitude keys

        Raises:
            InvalidCoordinateError: If a value is missing, non-numeric or the box is inverted
        """
        try:
            return cls(
                west=float(data['westBoundLongitude']),
                south=float(data['southBoundLatitude']),
                east=float(data['eastBoundLongitude']),
                north=float(data['northBoundLatitude'])
            )
        except InvalidCoordinateError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidCoordinateError(f"Invalid geographic element {data!r}: {e}") from e

    def to_dict(self) -> Dict[str, float]:
        return {
            'westBoundLongitude': self.west,
            'southBoundLatitude': self.south,
            'eastBoundLongitude': self.east,
            'northBoundLatitude': self.north
        }

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def contains(self, point: GeoPoint) -> bool:
        """Boundary-inclusive containment of a geodetic point."""
        if point.srs != GEODETIC_SRS:
            raise ReferenceSystemMismatchError(GEODETIC_SRS, point.srs)
        return self.west <= point.x <= self.east and self.south <= point.y <= self.north

    def intersects(self, other: 'BoundingBox') -> bool:
        return not (
            other.west > self.east or other.east < self.west or
            other.south > self.north or other.north < self.south
        )


@dataclass
class OnlineResource:
    """A service endpoint described by a catalog record."""

    url: str
    resource_type: ResourceType
    name: str = ''
    description: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'OnlineResource':
        return cls(
            url=data.get('url', ''),
            resource_type=ResourceType.parse(data.get('type', '')),
            name=data.get('name', ''),
            description=data.get('description', '')
        )


@dataclass
class LayerRecord:
    """
    An active layer as tracked by the layer registry.

    Attributes:
        layer_id: Unique identifier
        name: Display name
        bounding_boxes: Geographic extents (zero or more)
        online_resources: Service endpoints (zero or more)
        visible: Whether the layer is currently shown
        opacity: Rendering opacity between 0.0 and 1.0
        description: Free text from the catalog
        group: Catalog group the record belongs to
    """

    layer_id: str
    name: str = ''
    bounding_boxes: List[BoundingBox] = field(default_factory=list)
    online_resources: List[OnlineResource] = field(default_factory=list)
    visible: bool = True
    opacity: float = 1.0
    description: str = ''
    group: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'LayerRecord':
        """
        Build a layer record from a CSW-style catalog entry.

        Expected keys: 'id', optional 'name', 'description', 'group',
        'geographicElements' (list of bounding box dicts) and
        'onlineResources' (list of dicts with 'url', 'type', 'name').
        Raises ValueError when 'opacity' lies outside [0, 1].
        """
        if not data.get('id'):
            raise KeyError("Catalog record missing required 'id' key")

        opacity = float(data.get('opacity', 1.0))
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"Opacity must be between 0.0 and 1.0, got {opacity}")

        return cls(
            layer_id=str(data['id']),
            name=data.get('name', ''),
            bounding_boxes=[BoundingBox.from_dict(b) for b in data.get('geographicElements', [])],
            online_resources=[OnlineResource.from_dict(r) for r in data.get('onlineResources', [])],
            visible=not data.get('hidden', False),
            opacity=opacity,
            description=data.get('description', ''),
            group=data.get('group', '')
        )

    def resource_types(self) -> List[ResourceType]:
        return [r.resource_type for r in self.online_resources]


@dataclass(frozen=True)
class ClipboardPolygon:
    """
    The single user-managed polygon used to filter and query layers.

    Attributes:
        name: Provenance label ('drawn', a file name, or the source layer's name)
        srs: Reference system of `coordinates`
        coordinates: Plain "x y x y" string (drawn) or GML markup (file, layer)
        source: Which way the polygon was created
        geometry_type: Polygon or MultiPolygon
        raw: Source markup, when the polygon came from a markup payload
        rendered_coordinates: Projected vertices handed to the renderer
    """

    name: str
    srs: str
    coordinates: str
    source: PolygonSource
    geometry_type: GeometryType = GeometryType.POLYGON
    raw: Optional[str] = None
    rendered_coordinates: Tuple[Tuple[float, float], ...] = ()


@dataclass(frozen=True)
class RenderedFeature:
    """A feature drawn by the rendering collaborator."""

    feature_id: str
    properties: Dict = field(default_factory=dict, compare=False, hash=False)
    is_clipboard: bool = False


@dataclass
class ClickResult:
    """Everything resolved from one pixel click."""

    pixel: Tuple[float, float]
    coordinate: Optional[Tuple[float, float]]
    point: Optional[GeoPoint]
    layers: List[LayerRecord] = field(default_factory=list)
    features: List[RenderedFeature] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.layers and not self.features


@dataclass(frozen=True)
class LayerChange:
    """A registry mutation: action is 'added', 'removed' or 'updated'."""

    action: str
    layer: LayerRecord
