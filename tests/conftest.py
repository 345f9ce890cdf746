"""Shared fixtures: an in-memory renderer and sample catalog records."""

from concurrent.futures import Future

import pytest

from core.layer_registry import LayerRegistry
from core.models import BoundingBox, LayerRecord, OnlineResource, ResourceType


class FakeRenderer:
    """Records every call the toolkit makes on its rendering collaborator."""

    def __init__(self):
        self.rendered = {}
        self.render_calls = []
        self.removed = []
        self.click_handlers = []
        self.sessions = []
        self.coordinate = (0.0, 0.0)
        self.features = []
        self._next = 0

    def coordinate_from_pixel(self, pixel):
        return self.coordinate

    def features_at_pixel(self, pixel):
        return list(self.features)

    def render_polygon(self, vertices, srs):
        self._next += 1
        handle = f"h{self._next}"
        self.rendered[handle] = (list(vertices), srs)
        self.render_calls.append((list(vertices), srs))
        return handle

    def remove_rendered(self, handle):
        self.removed.append(handle)
        self.rendered.pop(handle, None)

    def draw_polygon(self):
        session = Future()
        self.sessions.append(session)
        return session

    def register_click_handler(self, handler):
        self.click_handlers.append(handler)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def registry():
    return LayerRegistry()


def make_layer(layer_id, bbox=(110.0, -45.0, 155.0, -10.0), types=(ResourceType.WMS,), visible=True):
    return LayerRecord(
        layer_id=layer_id,
        name=layer_id.title(),
        bounding_boxes=[BoundingBox(*bbox)],
        online_resources=[
            OnlineResource(f"https://example.org/{layer_id}/{t.value.lower()}", t, name=layer_id)
            for t in types
        ],
        visible=visible
    )


@pytest.fixture
def wms_layer():
    return make_layer("geology")


@pytest.fixture
def catalog_entry():
    return {
        "id": "boreholes",
        "name": "Boreholes",
        "geographicElements": [
            {
                "westBoundLongitude": 141.0,
                "southBoundLatitude": -37.5,
                "eastBoundLongitude": 153.6,
                "northBoundLatitude": -28.2
            }
        ],
        "onlineResources": [
            {"url": "https://example.org/wms", "type": "WMS", "name": "gsml:Borehole"},
            {"url": "https://example.org/wms", "type": "WMS", "name": "gsml:Borehole"},
            {"url": "https://example.org/wfs", "type": "WFS", "name": "gsml:Borehole"}
        ]
    }


@pytest.fixture
def layer_factory():
    return make_layer
