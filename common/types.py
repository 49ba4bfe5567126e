from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Tuple


@dataclass(frozen=True, slots=True)
class MeasuredLocation:
    """
    A geolocated measurement.

    Attributes:
        latitude: WGS84 degrees, -90..90.
        longitude: WGS84 degrees, -180..180 (wrapped copies produced by the
            index may sit up to one full turn outside this range).
        measure: scalar intensity in arbitrary units.
    """
    latitude: float
    longitude: float
    measure: float

    @property
    def in_range(self) -> bool:
        return (-90.0 <= self.latitude <= 90.0) and (-180.0 <= self.longitude <= 180.0)

    def shifted(self, dlon: float) -> "MeasuredLocation":
        """Copy displaced by `dlon` degrees of longitude."""
        return replace(self, longitude=self.longitude + dlon)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Sector:
    """
    Closed latitude/longitude rectangle in degrees.

    Bounds may extend past +-90 / +-180 (extended tile sectors do); only the
    ordering of each axis is enforced here.
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def __post_init__(self) -> None:
        if self.min_latitude > self.max_latitude:
            raise ValueError("min_latitude must be <= max_latitude")
        if self.min_longitude > self.max_longitude:
            raise ValueError("min_longitude must be <= max_longitude")

    @classmethod
    def full_sphere(cls) -> "Sector":
        return cls(-90.0, 90.0, -180.0, 180.0)

    @property
    def delta_latitude(self) -> float:
        return self.max_latitude - self.min_latitude

    @property
    def delta_longitude(self) -> float:
        return self.max_longitude - self.min_longitude

    @property
    def centroid(self) -> Tuple[float, float]:
        return (
            0.5 * (self.min_latitude + self.max_latitude),
            0.5 * (self.min_longitude + self.max_longitude),
        )

    def contains(self, lat: float, lon: float) -> bool:
        return (self.min_latitude <= lat <= self.max_latitude) and (
            self.min_longitude <= lon <= self.max_longitude
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)
