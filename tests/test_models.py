"""Tests for the data model: bounding boxes, records, channels."""

import math

import pytest

from core.channel import Channel
from core.errors import InvalidCoordinateError, ReferenceSystemMismatchError
from core.models import PROJECTED_SRS, BoundingBox, GeoPoint, LayerRecord, ResourceType


class TestBoundingBox:
    """BoundingBox validation and geometry."""

    @pytest.mark.parametrize("values", [
        (math.nan, 0, 1, 1),
        (0, 0, math.inf, 1),
        (5, 0, 1, 1),
        (0, 5, 1, 1)
    ])
    def test_invalid(self, values):
        """Non-finite or inverted boxes are rejected."""
        with pytest.raises(InvalidCoordinateError):
            BoundingBox(*values)

    def test_dict_round_trip(self):
        """Wire names map onto the box edges."""
        data = {"westBoundLongitude": 1, "southBoundLatitude": 2,
                "eastBoundLongitude": 3, "northBoundLatitude": 4}
        box = BoundingBox.from_dict(data)
        assert box.bounds == (1, 2, 3, 4)
        assert box.to_dict() == data

    def test_from_dict_bad_value(self):
        """Missing or non-numeric entries raise InvalidCoordinateError."""
        with pytest.raises(InvalidCoordinateError):
            BoundingBox.from_dict({"westBoundLongitude": "x"})

    def test_contains(self):
        """Containment is boundary-inclusive."""
        box = BoundingBox(0, 0, 10, 10)
        assert box.contains(GeoPoint(10, 0))
        assert not box.contains(GeoPoint(10.1, 5))

    def test_contains_projected_point(self):
        """Projected points must be transformed first."""
        with pytest.raises(ReferenceSystemMismatchError):
            BoundingBox(0, 0, 10, 10).contains(GeoPoint(5, 5, PROJECTED_SRS))

    def test_intersects(self):
        """Touching boxes intersect; separate boxes do not."""
        box = BoundingBox(0, 0, 10, 10)
        assert box.intersects(BoundingBox(10, 10, 20, 20))
        assert not box.intersects(BoundingBox(11, 0, 20, 10))


class TestLayerRecord:
    """Catalog record parsing."""

    def test_from_dict(self, catalog_entry):
        """Catalog entries become records with typed resources."""
        record = LayerRecord.from_dict(dict(catalog_entry, hidden=True, opacity=0.5))
        assert record.layer_id == "boreholes"
        assert record.visible is False
        assert record.opacity == 0.5
        assert record.online_resources[0].resource_type == ResourceType.WMS

    def test_missing_id(self):
        """Entries without an id are rejected."""
        with pytest.raises(KeyError):
            LayerRecord.from_dict({"name": "x"})

    @pytest.mark.parametrize("opacity", [1.5, -0.2])
    def test_opacity_out_of_range(self, catalog_entry, opacity):
        """Catalog opacity outside [0, 1] is rejected like set_opacity rejects it."""
        with pytest.raises(ValueError):
            LayerRecord.from_dict(dict(catalog_entry, opacity=opacity))

    def test_resource_type_parse(self):
        """Resource kinds parse case-insensitively; unknown kinds are Unsupported."""
        assert ResourceType.parse("wms") == ResourceType.WMS
        assert ResourceType.parse("OGC:WMS-1.1.1") == ResourceType.UNSUPPORTED


class TestChannel:
    """Synchronous pub/sub."""

    def test_publish_in_order(self):
        """Subscribers are called in subscription order."""
        channel = Channel("test")
        calls = []
        channel.subscribe(lambda v: calls.append(("a", v)))
        channel.subscribe(lambda v: calls.append(("b", v)))
        channel.publish(1)
        assert calls == [("a", 1), ("b", 1)]
        assert channel.value == 1

    def test_replay_and_unsubscribe(self):
        """Late subscribers can replay; unsubscribed callbacks stop receiving."""
        channel = Channel("test", initial=5)
        seen = []
        callback = channel.subscribe(seen.append, replay=True)
        channel.unsubscribe(callback)
        channel.publish(6)
        assert seen == [5]
        assert len(channel) == 0

    def test_failing_subscriber_isolated(self):
        """A subscriber that raises does not stop later subscribers or the commit."""
        channel = Channel("test")
        seen = []

        def broken(value):
            raise RuntimeError("listener crashed")

        channel.subscribe(broken)
        channel.subscribe(seen.append)
        channel.publish(7)
        assert seen == [7]
        assert channel.value == 7
