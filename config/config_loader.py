"""
Configuration loading for the portal map toolkit.

This module handles loading and validation of the portal configuration JSON file,
which holds the layer catalog (CSW-style records) and toolkit settings.

Constants:
    PROJECT_ROOT: Root directory of the project
    CONFIG_DIR: Configuration files directory
    OUTPUT_DIR: Output files directory

Functions:
    load_config: Load and validate portal configuration from JSON
    load_clipboard_settings: Clipboard, click and viewport settings with defaults
"""

import json
from pathlib import Path
from typing import Dict, Optional

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / 'config'
OUTPUT_DIR = PROJECT_ROOT / 'outputs'

CONFIG_FILENAME = 'portal_config.json'


def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load portal configuration from JSON file.

    Reads config/portal_config.json (or config_path) and validates basic structure.

    Parameters:
    -----------
    config_path : Optional[Path]
        Alternative configuration file

    Returns:
    --------
    Dict
        Configuration dictionary with 'layers' and 'settings' keys

    Raises:
    -------
    FileNotFoundError
        If configuration file doesn't exist
    json.JSONDecodeError
        If configuration file contains invalid JSON
    KeyError
        If required configuration keys are missing
    """
    if config_path is None:
        config_path = CONFIG_DIR / CONFIG_FILENAME
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    # Validate required keys
    if 'layers' not in config:
        raise KeyError("Configuration missing required 'layers' key")
    if 'settings' not in config:
        raise KeyError("Configuration missing required 'settings' key")

    return config


def load_clipboard_settings(config: Dict = None) -> Dict:
    """
    Load clipboard pipeline, click dispatch and viewport settings.

    Args:
        config: Configuration dictionary (optional, will load if not provided)

    Returns:
        Dictionary with clipboard settings

    Defaults:
        - simplify_tolerance: 0.05 (degrees, applied to layer-derived polygons)
        - simplify_high_quality: True
        - kml_decimal_places: 3
        - point_query_resource_types: ['WMS']
        - default_zoom: 4
        - map_center: [133.3, -26.0] (lon, lat)
        - map_size: [1024, 768] (pixels)

    Note:
        Values come from the 'settings' section; keys missing there fall back
        to the defaults above, so older config files keep working.
    """
    if config is None:
        config = load_config()

    defaults = {
        'simplify_tolerance': 0.05,
        'simplify_high_quality': True,
        'kml_decimal_places': 3,
        'point_query_resource_types': ['WMS'],
        'default_zoom': 4,
        'map_center': [133.3, -26.0],
        'map_size': [1024, 768]
    }

    settings = config.get('settings', {})

    # Merge with defaults (config values override defaults)
    return {**defaults, **settings}
