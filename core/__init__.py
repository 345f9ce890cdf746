"""
Core modules for the portal map toolkit.

This package contains the shared data model and the map-side components of
the toolkit.

Modules:
    errors: Toolkit exception hierarchy
    models: Points, bounding boxes, layer records and clipboard polygons
    channel: Synchronous last-value publish/subscribe channels
    layer_registry: Track active layers and their online resources
    click_dispatcher: Resolve pixel clicks to layers and features
    renderer: Rendering collaborator protocol
    map_builder: Folium-backed rendering collaborator
"""

__version__ = '1.0.0'
