from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np

from common.geo import LEVEL_ZERO_DELTA_DEG, tile_sector
from common.types import Sector


@dataclass(frozen=True)
class TileDescriptor:
    """
    One tile of the pyramid as handed to the layer.

    Attributes:
        sector: geographic bounds of the tile.
        image_path: synthetic key identifying the tile image (cache + dedup key).
        width, height: tile size in pixels.
        level, row, col: pyramid address (informational).
    """
    sector: Sector
    image_path: str
    width: int = 256
    height: int = 256
    level: int = 0
    row: int = 0
    col: int = 0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("tile width/height must be > 0")

    @classmethod
    def for_address(
        cls,
        cache_key: str,
        level: int,
        row: int,
        col: int,
        *,
        width: int = 256,
        height: int = 256,
        level_zero_delta: float = LEVEL_ZERO_DELTA_DEG,
    ) -> "TileDescriptor":
        """Descriptor for (level,row,col); path is `{cache_key}/{level}/{row}/{row}_{col}.png`."""
        return cls(
            sector=tile_sector(level, row, col, level_zero_delta),
            image_path=f"{cache_key}/{level}/{row}/{row}_{col}.png",
            width=width,
            height=height,
            level=level,
            row=row,
            col=col,
        )

    @property
    def zrc(self) -> Tuple[int, int, int]:
        return (self.level, self.row, self.col)


@dataclass
class Texture:
    """Produced tile image: RGBA uint8 array of shape (height, width, 4)."""
    image: np.ndarray = field(repr=False)
    image_path: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.image, np.ndarray):
            raise TypeError("image must be a numpy ndarray")
        if self.image.ndim != 3 or self.image.shape[2] != 4:
            raise ValueError("image must be HxWx4 (RGBA)")
        if self.image.dtype != np.uint8:
            self.image = self.image.astype(np.uint8, copy=False)

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def size(self) -> int:
        """Size in bytes, as charged to the resource cache."""
        return int(self.image.nbytes)

    def to_meta(self) -> Dict[str, Any]:
        """Metadata without pixel bytes (safe to log/serialize)."""
        return {"image_path": self.image_path, "width": self.width, "height": self.height, "bytes": self.size}
