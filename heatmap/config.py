from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from common.geo import LEVEL_ZERO_DELTA_DEG, NUM_LEVELS
from heatmap.cache import DEFAULT_CAPACITY_BYTES
from heatmap.gradient import DEFAULT_SCALE, IntervalType


DEFAULT_CONFIG_PATH = "config/params.yaml"


@dataclass
class HeatMapConfig:
    """
    Layer, data, cache and server settings.

    YAML layout (every key optional):
        layer: {display_name, tile_width, tile_height, num_levels,
                level_zero_delta, interval_type, scale, radius, blur}
        measurements: {csv_path}
        cache: {capacity_bytes}
        server: {host, port}
        logging: {level}
    """
    display_name: str = "HeatMap"
    tile_width: int = 256
    tile_height: int = 256
    num_levels: int = NUM_LEVELS
    level_zero_delta: float = LEVEL_ZERO_DELTA_DEG
    interval_type: IntervalType = IntervalType.CONTINUOUS
    scale: List[str] = field(default_factory=lambda: list(DEFAULT_SCALE))
    radius: float = 12.5
    blur: float = 5.0
    csv_path: str = "data/measurements.csv"
    cache_capacity_bytes: int = DEFAULT_CAPACITY_BYTES
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.interval_type = IntervalType.parse(self.interval_type)
        self.scale = [str(c) for c in self.scale]
        if self.tile_width <= 0 or self.tile_height <= 0:
            raise ValueError("tile_width/tile_height must be > 0")
        if self.num_levels <= 0:
            raise ValueError("num_levels must be > 0")
        if self.level_zero_delta <= 0 or self.level_zero_delta > 180.0:
            raise ValueError("level_zero_delta must be in (0, 180]")
        if not self.scale:
            raise ValueError("scale must not be empty")
        if self.radius < 0 or self.blur < 0:
            raise ValueError("radius/blur must be >= 0")
        if self.cache_capacity_bytes <= 0:
            raise ValueError("cache capacity must be > 0")

    @classmethod
    def from_dict(cls, D: Optional[Dict[str, Any]]) -> "HeatMapConfig":
        D = D or {}
        layer = D.get("layer", {}) or {}
        kwargs: Dict[str, Any] = {}
        for key, cast in (
            ("display_name", str),
            ("tile_width", int),
            ("tile_height", int),
            ("num_levels", int),
            ("level_zero_delta", float),
            ("interval_type", str),
            ("radius", float),
            ("blur", float),
        ):
            if key in layer:
                kwargs[key] = cast(layer[key])
        if "scale" in layer:
            kwargs["scale"] = list(layer["scale"] or [])

        meas = D.get("measurements", {}) or {}
        if "csv_path" in meas:
            kwargs["csv_path"] = str(meas["csv_path"])
        cache = D.get("cache", {}) or {}
        if "capacity_bytes" in cache:
            kwargs["cache_capacity_bytes"] = int(cache["capacity_bytes"])
        server = D.get("server", {}) or {}
        if "host" in server:
            kwargs["host"] = str(server["host"])
        if "port" in server:
            kwargs["port"] = int(server["port"])
        logging_cfg = D.get("logging", {}) or {}
        if "level" in logging_cfg:
            kwargs["log_level"] = str(logging_cfg["level"])
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str = DEFAULT_CONFIG_PATH) -> "HeatMapConfig":
        """Load from YAML; a missing file yields the defaults."""
        if not Path(path).exists():
            return cls()
        with open(path, "r") as f:
            return cls.from_dict(yaml.safe_load(f))
