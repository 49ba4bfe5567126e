from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from common.types import Sector


# --- Tile pyramid constants (equirectangular, WorldWind-style) ---
LEVEL_ZERO_DELTA_DEG = 45.0       # level-0 tile edge in degrees
NUM_LEVELS = 18


# -------------------------
# Tile pyramid addressing
# -------------------------
def tile_delta(level: int, level_zero_delta: float = LEVEL_ZERO_DELTA_DEG) -> float:
    """Tile edge length in degrees at `level` (halves with every level)."""
    if level < 0:
        raise ValueError("level must be >= 0")
    return float(level_zero_delta) / float(2 ** int(level))


def tile_count(level: int, level_zero_delta: float = LEVEL_ZERO_DELTA_DEG) -> Tuple[int, int]:
    """(rows, cols) covering the full sphere at `level`."""
    d = tile_delta(level, level_zero_delta)
    return int(math.ceil(180.0 / d)), int(math.ceil(360.0 / d))


def tile_sector(
    level: int,
    row: int,
    col: int,
    level_zero_delta: float = LEVEL_ZERO_DELTA_DEG,
) -> Sector:
    """
    Sector of tile (level,row,col). Row 0 starts at -90 latitude, column 0 at
    -180 longitude; the last row/column is clipped to the sphere.
    """
    rows, cols = tile_count(level, level_zero_delta)
    if not (0 <= row < rows) or not (0 <= col < cols):
        raise ValueError(f"tile ({level},{row},{col}) outside pyramid ({rows}x{cols})")
    d = tile_delta(level, level_zero_delta)
    min_lat = -90.0 + row * d
    min_lon = -180.0 + col * d
    return Sector(min_lat, min(90.0, min_lat + d), min_lon, min(180.0, min_lon + d))


# -------------------------
# Sector <-> pixel helpers
# -------------------------
def geo2pix(lat: float, lon: float, sector: Sector, width: int, height: int) -> Tuple[float, float]:
    """
    Map lat/lon (deg) to pixel (x,y) in a width x height raster spanning `sector`.
    Origin is the top-left (max latitude, min longitude) corner.
    """
    x = (lon - sector.min_longitude) / sector.delta_longitude * width
    y = (sector.max_latitude - lat) / sector.delta_latitude * height
    return x, y


def geo2pix_many(
    lats: np.ndarray,
    lons: np.ndarray,
    sector: Sector,
    width: int,
    height: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorized geo2pix for arrays of coordinates."""
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)
    x = (lons - sector.min_longitude) / sector.delta_longitude * width
    y = (sector.max_latitude - lats) / sector.delta_latitude * height
    return x, y


def pix2geo(x: float, y: float, sector: Sector, width: int, height: int) -> Tuple[float, float]:
    """Inverse of geo2pix(); returns (lat, lon)."""
    lon = sector.min_longitude + x / float(width) * sector.delta_longitude
    lat = sector.max_latitude - y / float(height) * sector.delta_latitude
    return lat, lon
