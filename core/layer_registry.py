"""
Layer registry for the portal map toolkit.

Tracks the layers currently active on the map, keyed by layer id. Each record
carries its geographic bounding boxes and online resources; the click
dispatcher reads those boxes to decide which layers a click hits.

Every mutation is announced on the registry's `changes` channel as a
LayerChange, so UI lists and the renderer can follow along without polling.

Classes:
    LayerRegistry: Owned mapping of layer id -> LayerRecord
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from core.channel import Channel
from core.models import GEODETIC_SRS, BoundingBox, LayerChange, LayerRecord, OnlineResource, ResourceType
from geometry_input.projection import transform_extent
from utils.logger import get_logger

logger = get_logger(__name__)


class LayerRegistry:
    """Registry of active map layers."""

    def __init__(self):
        self._layers: Dict[str, LayerRecord] = {}
        self.changes: Channel[LayerChange] = Channel('layer-changes')

    def register(self, layer: LayerRecord) -> str:
        """
        Register a layer, replacing any record with the same id.

        The prior record is removed first (and announced as 'removed'), so at
        most one record per id is ever active.

        Args:
            layer: The record to register

        Returns:
            The layer id
        """
        if layer.layer_id in self._layers:
            logger.debug(f"Replacing existing layer {layer.layer_id}")
            self.unregister(layer.layer_id)

        self._layers[layer.layer_id] = layer
        logger.info(f"Registered layer {layer.layer_id} ({len(layer.bounding_boxes)} bbox(es), "
                    f"{len(layer.online_resources)} resource(s))")
        self.changes.publish(LayerChange('added', layer))
        return layer.layer_id

    def register_catalog(self, records: Iterable[Union[LayerRecord, Dict]]) -> List[str]:
        """
        Register a batch of catalog records.

        Dict entries are converted with LayerRecord.from_dict; entries that
        fail conversion are logged and skipped.
        """
        registered = []
        for record in records:
            if isinstance(record, dict):
                try:
                    record = LayerRecord.from_dict(record)
                except (KeyError, ValueError) as e:
                    logger.warning(f"Skipping catalog record {record.get('id', '?')}: {e}")
                    continue
            registered.append(self.register(record))
        return registered

    def unregister(self, layer_id: str) -> bool:
        """
        Remove a layer from the registry.

        Returns:
            True if the layer was removed, False if it wasn't registered
        """
        layer = self._layers.pop(layer_id, None)
        if layer is None:
            return False
        logger.info(f"Unregistered layer {layer_id}")
        self.changes.publish(LayerChange('removed', layer))
        return True

    def get(self, layer_id: str) -> Optional[LayerRecord]:
        """Return the record for layer_id, or None if it isn't registered."""
        return self._layers.get(layer_id)

    def exists(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def _require(self, layer_id: str) -> LayerRecord:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise KeyError(f"Layer not found: {layer_id}")
        return layer

    def set_visible(self, layer_id: str, visible: bool) -> None:
        """
        Show or hide a layer.

        Raises:
            KeyError: If the layer_id is not registered
        """
        layer = self._require(layer_id)
        layer.visible = bool(visible)
        self.changes.publish(LayerChange('updated', layer))

    def set_opacity(self, layer_id: str, opacity: float) -> None:
        """
        Set a layer's opacity.

        Raises:
            KeyError: If the layer_id is not registered
            ValueError: If opacity is outside [0, 1]
        """
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"Opacity must be between 0.0 and 1.0, got {opacity}")
        layer = self._require(layer_id)
        layer.opacity = float(opacity)
        self.changes.publish(LayerChange('updated', layer))

    def list(self) -> Dict[str, LayerRecord]:
        """Snapshot of all registered layers, in registration order."""
        return dict(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __contains__(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def __iter__(self) -> Iterator[LayerRecord]:
        return iter(list(self._layers.values()))

    # ------------------------------------------------------------------
    # Online resource queries
    # ------------------------------------------------------------------

    def _resolve(self, layer: Union[str, LayerRecord]) -> Optional[LayerRecord]:
        return self._layers.get(layer) if isinstance(layer, str) else layer

    def contains(self, layer: Union[str, LayerRecord], resource_type: ResourceType) -> bool:
        """True if the layer has at least one resource of the given kind."""
        record = self._resolve(layer)
        if record is None:
            return False
        return any(r.resource_type == resource_type for r in record.online_resources)

    def get_online_resources(self,
                             layer: Union[str, LayerRecord],
                             resource_type: Optional[ResourceType] = None) -> List[OnlineResource]:
        """
        Online resources of a layer, optionally filtered by kind.

        Resources sharing a URL are reported once, first occurrence wins.
        """
        record = self._resolve(layer)
        if record is None:
            return []

        seen = set()
        resources = []
        for resource in record.online_resources:
            if resource_type is not None and resource.resource_type != resource_type:
                continue
            if resource.url in seen:
                continue
            seen.add(resource.url)
            resources.append(resource)
        return resources

    def records_for_extent(self,
                           extent: Tuple[float, float, float, float],
                           srs: str = GEODETIC_SRS) -> List[LayerRecord]:
        """
        Registered layers with a bounding box intersecting an extent.

        Parameters:
        -----------
        extent : Tuple[float, float, float, float]
            (minx, miny, maxx, maxy) in srs
        srs : str
            Reference system of the extent; projected extents are converted
            to geodetic before testing

        Returns:
        --------
        List[LayerRecord]
            Matching layers in registration order
        """
        if srs != GEODETIC_SRS:
            extent = transform_extent(extent, srs, GEODETIC_SRS)
        query = BoundingBox(*extent)

        return [
            layer for layer in self._layers.values()
            if any(bbox.intersects(query) for bbox in layer.bounding_boxes)
        ]
