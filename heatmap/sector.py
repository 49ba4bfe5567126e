from __future__ import annotations

import math
from dataclasses import dataclass

from common.types import Sector


@dataclass(frozen=True)
class ExtendedSector:
    """Query region for a tile plus the factors it was grown by."""
    sector: Sector
    width_factor: float
    height_factor: float

    def padding_px(self, tile_width: int, tile_height: int) -> tuple[int, int]:
        """Pixel padding on each side of the tile: (pad_w, pad_h)."""
        return (
            int(math.ceil(self.width_factor * tile_width)),
            int(math.ceil(self.height_factor * tile_height)),
        )


def radius_factors(radius_px: float, tile_width: int, tile_height: int) -> tuple[float, float]:
    """Extension factors for a point radius: 2 * radius / tile dimension."""
    return 2.0 * (radius_px / tile_width), 2.0 * (radius_px / tile_height)


def expand_sector(sector: Sector, width_factor: float, height_factor: float) -> ExtendedSector:
    """
    Grow `sector` symmetrically by `height_factor` of its latitude span and
    `width_factor` of its longitude span on every side. No clamping: the
    result may run past the poles or the antimeridian.
    """
    lat_pad = sector.delta_latitude * height_factor
    lon_pad = sector.delta_longitude * width_factor
    return ExtendedSector(
        sector=Sector(
            sector.min_latitude - lat_pad,
            sector.max_latitude + lat_pad,
            sector.min_longitude - lon_pad,
            sector.max_longitude + lon_pad,
        ),
        width_factor=width_factor,
        height_factor=height_factor,
    )
