from __future__ import annotations

"""
HeatMapLayer: turns a set of measured locations into heat map tile textures.

The layer owns the spatial index and the gradient, and produces one tile at a
time on request from whatever schedules tiles (the HTTP server, the render
CLI). Production of a given tile path is deduplicated through a
RetrievalRegistry; paths that failed once stay absent until a later
production of the same path succeeds.
"""

import threading
import uuid
from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from common.geo import LEVEL_ZERO_DELTA_DEG, NUM_LEVELS, tile_count
from common.logging_setup import get_logger
from common.types import MeasuredLocation, Sector
from heatmap.cache import MemoryResourceCache
from heatmap.config import HeatMapConfig
from heatmap.gradient import DEFAULT_SCALE, Gradient, IntervalType, build_gradient
from heatmap.index import GeoBinIndex
from heatmap.rasterizer import ColoredRasterizer, Rasterizer
from heatmap.registry import RetrievalRegistry
from heatmap.sector import ExtendedSector, expand_sector, radius_factors
from heatmap.tiles import Texture, TileDescriptor


class HeatMapLayer:
    """
    Heat map over the full sphere.

    Params:
        display_name: human readable layer name.
        measured_locations: every measurement to visualise; must be non-empty
            with a positive maximum measure.
        rasterizer: paints points into an RGBA raster (default ColoredRasterizer).
        cache: receives produced textures via put(path, texture, size).
        registry: in-flight / absent bookkeeping (one per layer by default).
        redraw_notifier: called with no arguments after a successful,
            non-suppressed production.

    Raises:
        ValueError: no measurements, or a maximum measure <= 0.
    """

    def __init__(
        self,
        display_name: str,
        measured_locations: Iterable[MeasuredLocation],
        *,
        interval_type: IntervalType | str = IntervalType.CONTINUOUS,
        scale: Sequence[str] = DEFAULT_SCALE,
        radius: float = 12.5,
        blur: float = 5.0,
        tile_width: int = 256,
        tile_height: int = 256,
        num_levels: int = NUM_LEVELS,
        level_zero_delta: float = LEVEL_ZERO_DELTA_DEG,
        rasterizer: Optional[Rasterizer] = None,
        cache: Optional[MemoryResourceCache] = None,
        registry: Optional[RetrievalRegistry] = None,
        redraw_notifier: Optional[Callable[[], None]] = None,
    ):
        if tile_width <= 0 or tile_height <= 0:
            raise ValueError("tile_width/tile_height must be > 0")
        self.display_name = display_name
        self.tile_width = int(tile_width)
        self.tile_height = int(tile_height)
        self.num_levels = int(num_levels)
        self.level_zero_delta = float(level_zero_delta)
        self.sector = Sector.full_sphere()
        self.cache_key = "HeatMap" + uuid.uuid4().hex

        self._measured: Tuple[MeasuredLocation, ...] = tuple(measured_locations)
        self._index = GeoBinIndex(self._measured)
        max_measure = self._index.max_measure
        if max_measure is None:
            raise ValueError("HeatMapLayer needs at least one measured location")
        if max_measure <= 0:
            raise ValueError(f"maximum measure must be > 0 (got {max_measure})")
        self._increment_per_intensity = 1.0 / max_measure

        self._check_radius_blur(radius, blur)
        self._radius = float(radius)
        self._blur = float(blur)
        self._interval_type = IntervalType.parse(interval_type)
        self._scale: Tuple[str, ...] = tuple(scale)
        self._gradient: Gradient = build_gradient(self._scale, self._interval_type, self._measured)

        self.rasterizer: Rasterizer = rasterizer or ColoredRasterizer()
        self.cache = cache if cache is not None else MemoryResourceCache()
        self.registry = registry or RetrievalRegistry()
        self.redraw_notifier = redraw_notifier
        self.current_tiles_invalid = True

        # bumped by every settings change; a production drawn under an older
        # generation is returned but never cached
        self._generation = 0
        # serializes configuration mutators and the snapshot/cache-put of producers
        self._config_lock = threading.Lock()
        self.log = get_logger("heatmap.layer", layer=display_name, cache_key=self.cache_key)

    @classmethod
    def from_config(
        cls,
        config: HeatMapConfig,
        measured_locations: Iterable[MeasuredLocation],
        **kwargs,
    ) -> "HeatMapLayer":
        kwargs.setdefault("cache", MemoryResourceCache(config.cache_capacity_bytes))
        return cls(
            config.display_name,
            measured_locations,
            interval_type=config.interval_type,
            scale=config.scale,
            radius=config.radius,
            blur=config.blur,
            tile_width=config.tile_width,
            tile_height=config.tile_height,
            num_levels=config.num_levels,
            level_zero_delta=config.level_zero_delta,
            **kwargs,
        )

    # ----------------------------
    # Configuration
    # ----------------------------
    @property
    def measured_locations(self) -> Tuple[MeasuredLocation, ...]:
        return self._measured

    @property
    def index(self) -> GeoBinIndex:
        return self._index

    @property
    def increment_per_intensity(self) -> float:
        """1 / global maximum measure; the same for every tile."""
        return self._increment_per_intensity

    @property
    def interval_type(self) -> IntervalType:
        return self._interval_type

    @interval_type.setter
    def interval_type(self, interval_type: IntervalType | str) -> None:
        interval_type = IntervalType.parse(interval_type)
        with self._config_lock:
            gradient = build_gradient(self._scale, interval_type, self._measured)
            self._interval_type = interval_type
            self._gradient = gradient
            self._tiles_changed()

    @property
    def scale(self) -> Tuple[str, ...]:
        return self._scale

    @scale.setter
    def scale(self, scale: Sequence[str]) -> None:
        scale = tuple(scale)
        with self._config_lock:
            gradient = build_gradient(scale, self._interval_type, self._measured)
            self._scale = scale
            self._gradient = gradient
            self._tiles_changed()

    @property
    def gradient(self) -> Gradient:
        """Current position -> color mapping (a copy)."""
        return dict(self._gradient)

    @gradient.setter
    def gradient(self, gradient: Mapping[float, str]) -> None:
        """
        Override the derived gradient; kept until scale or interval type change.
        Must contain a stop at position 0.
        """
        new = {float(pos): str(color) for pos, color in gradient.items()}
        if 0.0 not in new:
            raise ValueError("gradient must have a stop at position 0")
        with self._config_lock:
            self._gradient = new
            self._tiles_changed()

    @property
    def radius(self) -> float:
        return self._radius

    @radius.setter
    def radius(self, radius: float) -> None:
        self._check_radius_blur(radius, self._blur)
        with self._config_lock:
            self._radius = float(radius)
            self._tiles_changed()

    @property
    def blur(self) -> float:
        return self._blur

    @blur.setter
    def blur(self, blur: float) -> None:
        self._check_radius_blur(self._radius, blur)
        with self._config_lock:
            self._blur = float(blur)
            self._tiles_changed()

    def configure(
        self,
        interval_type: IntervalType | str | None = None,
        scale: Optional[Sequence[str]] = None,
        radius: Optional[float] = None,
        blur: Optional[float] = None,
    ) -> bool:
        """
        Apply several drawing settings at once. Every given value is
        validated (and the gradient rebuilt) before anything is assigned, so a
        ValueError leaves the layer untouched. Returns True if anything changed.
        """
        if all(v is None for v in (interval_type, scale, radius, blur)):
            return False

        with self._config_lock:
            new_interval = self._interval_type if interval_type is None else IntervalType.parse(interval_type)
            new_scale = self._scale if scale is None else tuple(scale)
            new_radius = self._radius if radius is None else float(radius)
            new_blur = self._blur if blur is None else float(blur)
            self._check_radius_blur(new_radius, new_blur)
            gradient = self._gradient
            if interval_type is not None or scale is not None:
                gradient = build_gradient(new_scale, new_interval, self._measured)

            self._interval_type = new_interval
            self._scale = new_scale
            self._gradient = gradient
            self._radius = new_radius
            self._blur = new_blur
            self._tiles_changed()
        self.log.info(
            "Drawing settings changed",
            extra={"extra": {"interval_type": new_interval.value, "radius": new_radius, "blur": new_blur}},
        )
        return True

    # ----------------------------
    # Tile pyramid
    # ----------------------------
    def tile(self, level: int, row: int, col: int) -> TileDescriptor:
        """Descriptor for the pyramid address; ValueError outside the pyramid."""
        if not (0 <= level < self.num_levels):
            raise ValueError(f"level {level} outside 0..{self.num_levels - 1}")
        return TileDescriptor.for_address(
            self.cache_key,
            level,
            row,
            col,
            width=self.tile_width,
            height=self.tile_height,
            level_zero_delta=self.level_zero_delta,
        )

    def tile_count(self, level: int) -> Tuple[int, int]:
        return tile_count(level, self.level_zero_delta)

    # ----------------------------
    # Tile production
    # ----------------------------
    def produce_tile(self, tile: TileDescriptor, suppress_redraw: bool = False) -> Optional[Texture]:
        """
        Produce, cache and return the texture for `tile`.

        Returns None without doing any work when the path is already being
        produced or is marked absent. A failed production marks the path
        absent and returns None. If the drawing settings change while the
        tile renders, the texture is returned but not cached. Neither
        production nor redraw notifier errors propagate.
        """
        path = tile.image_path
        if not self.registry.try_begin(path):
            return None

        self.log.debug("Producing tile", extra={"extra": {"path": path, "zrc": tile.zrc}})
        texture: Optional[Texture] = None
        try:
            with self._config_lock:
                generation = self._generation
                settings = (self._radius, self._blur, self._gradient)
            texture = self._render_texture(tile, *settings)
            if texture is not None:
                with self._config_lock:
                    stale = generation != self._generation
                    if not stale:
                        self.cache.put(path, texture, texture.size)
                if stale:
                    self.log.info("Settings changed during production; not cached", extra={"extra": {"path": path}})
        except Exception:
            self.log.exception("Tile production failed", extra={"extra": {"path": path}})
            texture = None
        finally:
            self.registry.finish(path, absent=texture is None)

        if texture is None:
            self.log.warning("Tile marked absent", extra={"extra": {"path": path}})
            return None

        self.current_tiles_invalid = True
        if not suppress_redraw and self.redraw_notifier is not None:
            try:
                self.redraw_notifier()
            except Exception:
                self.log.exception("Redraw notifier failed", extra={"extra": {"path": path}})
        return texture

    def calculate_extended_sector(
        self, sector: Sector, width_factor: float, height_factor: float
    ) -> ExtendedSector:
        """Query region for a tile; override to change how far points bleed in."""
        return expand_sector(sector, width_factor, height_factor)

    def create_heat_map_tile(
        self,
        points: Sequence[MeasuredLocation],
        sector: Sector,
        width: int,
        height: int,
        radius: float,
        blur: float,
        gradient: Gradient,
    ) -> Optional[np.ndarray]:
        """Rasterize `points` over `sector`; override to swap the drawing."""
        return self.rasterizer.render(
            points, sector, width, height, radius, blur, gradient, self._increment_per_intensity
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _render_texture(
        self, tile: TileDescriptor, radius: float, blur: float, gradient: Gradient
    ) -> Optional[Texture]:
        wf, hf = radius_factors(radius, tile.width, tile.height)
        extended = self.calculate_extended_sector(tile.sector, wf, hf)
        pad_w, pad_h = extended.padding_px(tile.width, tile.height)

        points = self._index.query(extended.sector)
        width = tile.width + 2 * pad_w
        height = tile.height + 2 * pad_h
        raster = self.create_heat_map_tile(points, extended.sector, width, height, radius, blur, gradient)
        if raster is None:
            return None
        if raster.shape[:2] != (height, width):
            raise ValueError(f"rasterizer returned {raster.shape[:2]}, expected {(height, width)}")

        cropped = np.ascontiguousarray(raster[pad_h : pad_h + tile.height, pad_w : pad_w + tile.width])
        return Texture(image=cropped, image_path=tile.image_path)

    def _tiles_changed(self) -> None:
        # caller holds _config_lock
        self._generation += 1
        self.current_tiles_invalid = True

    @staticmethod
    def _check_radius_blur(radius: float, blur: float) -> None:
        if radius < 0 or blur < 0:
            raise ValueError("radius/blur must be >= 0")
