from __future__ import annotations

"""
GeoBinIndex: measurements bucketed by integer-degree (lat, lon) cells.

The grid is a fixed 181 x 361 array of lists (lat -90..90, lon -180..180), so
every cell exists and lookups never miss. Range queries accept sectors that
cross the antimeridian; measurements found on the far side of the seam are
returned as copies shifted by a full turn so they sit contiguous with the
query in extended tile space.
"""

import math
from typing import Iterable, List, Sequence, Tuple

from common.logging_setup import get_logger
from common.types import MeasuredLocation, Sector


log = get_logger("heatmap.index")

MIN_LAT_CELL, MAX_LAT_CELL = -90, 90
MIN_LON_CELL, MAX_LON_CELL = -180, 180
FULL_TURN_DEG = 360.0


class GeoBinIndex:
    """
    Read-only spatial index, built once from the full measurement set.

    Concurrent queries need no locking; nothing mutates the cells after
    construction.
    """

    def __init__(self, measured_locations: Iterable[MeasuredLocation]):
        self._cells: List[List[List[MeasuredLocation]]] = [
            [[] for _ in range(MAX_LON_CELL - MIN_LON_CELL + 1)]
            for _ in range(MAX_LAT_CELL - MIN_LAT_CELL + 1)
        ]
        self._count = 0
        self._max_measure: float | None = None

        for m in measured_locations:
            if not m.in_range:
                raise ValueError(f"measured location out of range: ({m.latitude}, {m.longitude})")
            self._cell(math.floor(m.latitude), math.floor(m.longitude)).append(m)
            self._count += 1
            if self._max_measure is None or m.measure > self._max_measure:
                self._max_measure = float(m.measure)

        log.info(
            "GeoBinIndex built",
            extra={"extra": {"count": self._count, "max_measure": self._max_measure}},
        )

    # -------- public API --------

    def __len__(self) -> int:
        return self._count

    @property
    def max_measure(self) -> float | None:
        """Largest measure in the index; None when empty."""
        return self._max_measure

    def query(self, sector: Sector) -> List[MeasuredLocation]:
        """
        Every measurement whose exact coordinates lie inside `sector`, plus
        shifted copies of measurements reached across the antimeridian.
        No duplicates, no ordering guarantee.
        """
        min_lat, max_lat, min_lon, max_lon, extra_before, extra_after = self._cell_bounds(sector)

        result: List[MeasuredLocation] = []
        self._gather(result, sector, min_lat, max_lat, min_lon, max_lon)

        if extra_before > 0:
            before = Sector(min_lat, max_lat, MAX_LON_CELL - extra_before, MAX_LON_CELL)
            self._gather(
                result, before, min_lat, max_lat, MAX_LON_CELL - extra_before, MAX_LON_CELL,
                shift=-FULL_TURN_DEG,
            )
        if extra_after > 0:
            after = Sector(min_lat, max_lat, MIN_LON_CELL, MIN_LON_CELL + extra_after)
            self._gather(
                result, after, min_lat, max_lat, MIN_LON_CELL, MIN_LON_CELL + extra_after,
                shift=FULL_TURN_DEG,
            )
        return result

    def cell(self, lat_cell: int, lon_cell: int) -> Sequence[MeasuredLocation]:
        """Measurements binned into one integer-degree cell (read-only view)."""
        if not (MIN_LAT_CELL <= lat_cell <= MAX_LAT_CELL) or not (MIN_LON_CELL <= lon_cell <= MAX_LON_CELL):
            raise ValueError(f"cell ({lat_cell},{lon_cell}) outside grid")
        return tuple(self._cell(lat_cell, lon_cell))

    # -------- internals --------

    def _cell(self, lat_cell: int, lon_cell: int) -> List[MeasuredLocation]:
        return self._cells[lat_cell - MIN_LAT_CELL][lon_cell - MIN_LON_CELL]

    @staticmethod
    def _cell_bounds(sector: Sector) -> Tuple[int, int, int, int, int, int]:
        """
        Floored, clamped cell bounds plus the whole degrees that spill past
        -180 (extra_before) and +180 (extra_after).
        """
        if sector.delta_longitude > FULL_TURN_DEG:
            raise ValueError("query sector spans more than 360 degrees of longitude")
        if sector.min_latitude > MAX_LAT_CELL or sector.max_latitude < MIN_LAT_CELL:
            raise ValueError("query sector lies outside [-90, 90] latitude")
        if sector.min_longitude > MAX_LON_CELL or sector.max_longitude < MIN_LON_CELL:
            raise ValueError("query sector lies outside [-180, 180] longitude")

        min_lat = max(MIN_LAT_CELL, math.floor(sector.min_latitude))
        max_lat = min(MAX_LAT_CELL, math.floor(sector.max_latitude))
        min_lon = math.floor(sector.min_longitude)
        max_lon = math.floor(sector.max_longitude)

        extra_before = extra_after = 0
        if min_lon <= MIN_LON_CELL:
            extra_before = abs(min_lon - MIN_LON_CELL)
            min_lon = MIN_LON_CELL
        if max_lon >= MAX_LON_CELL:
            extra_after = abs(max_lon - MAX_LON_CELL)
            max_lon = MAX_LON_CELL
        return min_lat, max_lat, min_lon, max_lon, extra_before, extra_after

    def _gather(
        self,
        result: List[MeasuredLocation],
        sector: Sector,
        min_lat: int,
        max_lat: int,
        min_lon: int,
        max_lon: int,
        *,
        shift: float = 0.0,
    ) -> None:
        # cells only bound the scan; a cell may overlap the sector partially
        for lat in range(min_lat, max_lat + 1):
            row = self._cells[lat - MIN_LAT_CELL]
            for lon in range(min_lon, max_lon + 1):
                for m in row[lon - MIN_LON_CELL]:
                    if sector.contains(m.latitude, m.longitude):
                        result.append(m.shifted(shift) if shift else m)
