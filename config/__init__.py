"""
Configuration package for the portal map toolkit.

This package contains configuration loading and validation.

Modules:
    config_loader: Load the layer catalog and clipboard settings from JSON
"""

__version__ = '1.0.0'
