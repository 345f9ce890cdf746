"""
Utility modules for the portal map toolkit.

This package contains utility functions and helpers used throughout the application.

Modules:
    logger: Logging configuration and setup
    geometry_converters: GML and KML coordinate encoding and decoding
"""

__version__ = '1.0.0'
