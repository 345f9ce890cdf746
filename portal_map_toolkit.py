#!/usr/bin/env python
"""
Portal Map Toolkit
==================
Loads a polygon file onto the map clipboard, optionally resolves a map click
against the configured layer catalog, and writes an interactive Leaflet map
plus the clipboard polygon's GML markup.
"""

import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

# Import logging first
from utils.logger import setup_logging, get_logger

# Import configuration
from config.config_loader import OUTPUT_DIR, load_config, load_clipboard_settings

# Import core modules
from core.click_dispatcher import SpatialClickDispatcher
from core.layer_registry import LayerRegistry
from core.models import PROJECTED_SRS
from core.map_builder import FoliumMapRenderer
from geometry_input.load_input import load_clipboard_file
from geometry_input.pipeline import ClipboardGeometryPipeline


def main(input_file: str,
         click_pixel: Optional[Tuple[float, float]] = None,
         output_name: Optional[str] = None) -> Optional[Path]:
    """
    Main execution workflow for the portal map toolkit.

    Workflow Steps:
    1. Setup logging to console and file
    2. Load configuration and register the layer catalog
    3. Build the renderer, clipboard pipeline and click dispatcher
    4. Load the input polygon onto the clipboard
    5. Dispatch a click, if one was given
    6. Save the map and clipboard markup

    Parameters:
    -----------
    input_file : str
        Path to the polygon file (.kml, .kmz, .geojson, .gpkg, .shp, .zip)
    click_pixel : Optional[Tuple[float, float]]
        Viewport pixel to resolve against the catalog
    output_name : Optional[str]
        Custom name for output directory (defaults to timestamped name)

    Returns:
    --------
    Optional[Path]
        Path to output directory if successful, None if failed
    """
    workflow_start_time = time.time()

    log_file = setup_logging()
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info("PORTAL MAP TOOLKIT")
    logger.info("=" * 80)
    logger.info(f"Log file: {log_file}")
    logger.info("")

    try:
        config = load_config()
        settings = load_clipboard_settings(config)
        logger.info(f"Configuration loaded: {len(config['layers'])} layers defined")

        renderer = FoliumMapRenderer(
            center=tuple(settings['map_center']),
            zoom=settings['default_zoom'],
            size=tuple(settings['map_size'])
        )

        registry = LayerRegistry()
        registry.changes.subscribe(renderer.on_layer_change)
        registry.register_catalog(config['layers'])

        pipeline = ClipboardGeometryPipeline(renderer, settings)
        dispatcher = SpatialClickDispatcher(
            registry, renderer, settings['point_query_resource_types']
        )
        dispatcher.attach()
        logger.info("")

        # Step 1: Clipboard polygon
        kml_text, file_name = load_clipboard_file(input_file)
        polygon = pipeline.set_from_file(kml_text, file_name)

        overlapping = registry.records_for_extent(_extent_of(polygon.rendered_coordinates),
                                                  PROJECTED_SRS)
        logger.info(f"Layers overlapping clipboard: {[layer.layer_id for layer in overlapping]}")

        # Step 2: Click
        if click_pixel is not None:
            renderer.click(click_pixel)
            result = dispatcher.results.value
            if result is not None and not result.is_empty:
                for layer in result.layers:
                    logger.info(f"  - Hit layer: {layer.layer_id}")
                for feature in result.features:
                    logger.info(f"  - Hit feature: {feature.feature_id}")

        # Step 3: Outputs
        if output_name is None:
            output_name = f"portal_map_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        output_path = OUTPUT_DIR / output_name
        output_path.mkdir(parents=True, exist_ok=True)

        renderer.save(output_path / 'index.html')
        gml_file = output_path / 'clipboard.gml'
        gml_file.write_text(polygon.coordinates, encoding='utf-8')
        logger.info(f"  ✓ Clipboard markup saved: {gml_file}")

        total_execution_time = time.time() - workflow_start_time
        logger.info("")
        logger.info("✓ WORKFLOW COMPLETE")
        logger.info(f"✓ Total execution time: {total_execution_time:.2f} seconds")
        logger.info(f"✓ Output directory: {output_path}")
        logger.info("")

        return output_path

    except Exception as e:
        elapsed_time = time.time() - workflow_start_time

        logger.error("")
        logger.error("=" * 80)
        logger.error("✗ WORKFLOW FAILED")
        logger.error("=" * 80)
        logger.error(f"Error: {str(e)}", exc_info=True)
        logger.error(f"Workflow failed after {elapsed_time:.2f} seconds")
        logger.error(f"See log file for details: {log_file}")
        logger.error("=" * 80)
        return None


def _extent_of(vertices) -> Tuple[float, float, float, float]:
    xs = [x for x, _ in vertices]
    ys = [y for _, y in vertices]
    return min(xs), min(ys), max(xs), max(ys)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: portal_map_toolkit.py <polygon file> [pixel_x pixel_y]")
        sys.exit(1)

    pixel = None
    if len(sys.argv) >= 4:
        pixel = (float(sys.argv[2]), float(sys.argv[3]))

    output_dir = main(sys.argv[1], click_pixel=pixel)

    if output_dir:
        print(f"\n✓ Success! Open {output_dir / 'index.html'} in your browser.")
    else:
        print("\n✗ Failed to generate map. Check log file for details.")
