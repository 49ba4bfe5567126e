"""
Heat map tiles: geolocated measurements rendered as globe raster tiles

This package provides:
- GeoBinIndex: integer-degree spatial index with antimeridian-aware range queries
- Gradient derivation from a color scale (continuous or quantile intervals)
- Sector expansion so point blobs bleed correctly across tile edges
- HeatMapLayer: per-tile production with in-flight deduplication and
  absent-tile suppression, cropped to exact tile size

Entry points:
    python -m heatmap_server.server --config config/params.yaml
    python scripts/render_tiles.py --level 1 --out out/tiles
"""
from .gradient import IntervalType, build_gradient
from .index import GeoBinIndex
from .layer import HeatMapLayer

__all__ = ["GeoBinIndex", "HeatMapLayer", "IntervalType", "build_gradient"]
