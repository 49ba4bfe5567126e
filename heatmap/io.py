from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Iterator, List

import numpy as np

from common.types import MeasuredLocation


CSV_HEADER = ["latitude", "longitude", "measure"]


def iter_measurements_csv(path: str) -> Iterator[MeasuredLocation]:
    """
    Stream MeasuredLocations from a CSV with columns latitude, longitude, measure.
    Rows outside lat -90..90 / lon -180..180 raise ValueError (with the line number).
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Measurements CSV not found: {path}")
    with open(path, newline="") as f:
        r = csv.DictReader(f)
        missing = [c for c in CSV_HEADER if c not in (r.fieldnames or [])]
        if missing:
            raise ValueError(f"{path}: missing columns {missing}")
        for line, row in enumerate(r, start=2):
            m = MeasuredLocation(
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                measure=float(row["measure"]),
            )
            if not m.in_range:
                raise ValueError(f"{path}:{line}: lat/lon out of range")
            yield m


def load_measurements_csv(path: str) -> List[MeasuredLocation]:
    return list(iter_measurements_csv(path))


def write_measurements_csv(path: str, measured_locations: Iterable[MeasuredLocation]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="") as f:
        w = csv.writer(f)
        w.writerow(CSV_HEADER)
        for m in measured_locations:
            w.writerow([f"{m.latitude:.6f}", f"{m.longitude:.6f}", f"{m.measure:.6f}"])


def synthetic_measurements(
    n: int,
    *,
    clusters: int = 8,
    spread_deg: float = 6.0,
    seed: int = 0,
) -> List[MeasuredLocation]:
    """
    Clustered random measurements for demos: `clusters` Gaussian blobs with
    measures in (0, 1]. Deterministic for a given seed.
    """
    rng = np.random.default_rng(seed)
    centers = np.column_stack([rng.uniform(-60, 60, clusters), rng.uniform(-180, 180, clusters)])
    pick = rng.integers(0, clusters, n)
    lats = np.clip(centers[pick, 0] + rng.normal(0, spread_deg, n), -90.0, 90.0)
    lons = centers[pick, 1] + rng.normal(0, spread_deg, n)
    lons = (lons + 180.0) % 360.0 - 180.0
    measures = rng.uniform(0.05, 1.0, n)
    return [MeasuredLocation(float(a), float(o), float(m)) for a, o, m in zip(lats, lons, measures)]
