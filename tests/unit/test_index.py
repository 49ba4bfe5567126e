"""
Unit tests for GeoBinIndex range queries
"""

import os
import sys
from collections import Counter

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import MeasuredLocation, Sector
from heatmap.index import GeoBinIndex


def _random_locations(n=2000, seed=7):
    rng = np.random.default_rng(seed)
    lats = rng.uniform(-90, 90, n)
    lons = rng.uniform(-180, 180, n)
    measures = rng.uniform(0, 10, n)
    return [MeasuredLocation(float(a), float(o), float(m)) for a, o, m in zip(lats, lons, measures)]


class TestBinning:
    """A point is returned iff the query sector contains it (no wraparound)"""

    @pytest.mark.parametrize(
        "sector",
        [
            Sector(-20.5, 33.2, -50.7, 80.1),
            Sector(0.0, 0.5, 0.0, 0.5),
            Sector(-90.0, 90.0, -179.5, 179.5),
            Sector(-89.3, -60.0, 100.25, 100.75),
        ],
    )
    def test_query_matches_containment(self, sector):
        locations = _random_locations()
        index = GeoBinIndex(locations)

        expected = Counter(m for m in locations if sector.contains(m.latitude, m.longitude))
        got = Counter(index.query(sector))

        assert got == expected

    def test_query_returns_unshifted_objects_unchanged(self):
        """Unshifted results are the stored measurements themselves"""
        m = MeasuredLocation(10.0, 10.0, 5.0)
        index = GeoBinIndex([m])
        result = index.query(Sector(0, 20, 0, 20))
        assert len(result) == 1
        assert result[0] is m

    def test_end_to_end_example(self):
        """Two co-located points found, the far one excluded"""
        locations = [
            MeasuredLocation(10, 10, 5),
            MeasuredLocation(10, 10, 10),
            MeasuredLocation(80, 170, 1),
        ]
        index = GeoBinIndex(locations)
        result = index.query(Sector(0, 20, 0, 20))
        assert sorted(m.measure for m in result) == [5, 10]

    def test_poles_and_seam_cells_exist(self):
        """Coordinates at +90 / +180 land in the last cells and are queryable"""
        m = MeasuredLocation(90.0, 180.0, 1.0)
        index = GeoBinIndex([m])
        assert index.cell(90, 180) == (m,)
        assert index.query(Sector(89.0, 90.0, 179.0, 180.0)) == [m]

    def test_cell_outside_grid(self):
        index = GeoBinIndex([])
        with pytest.raises(ValueError):
            index.cell(91, 0)

    def test_max_measure_and_len(self):
        index = GeoBinIndex([MeasuredLocation(0, 0, 2.0), MeasuredLocation(1, 1, 7.5)])
        assert len(index) == 2
        assert index.max_measure == 7.5
        assert GeoBinIndex([]).max_measure is None

    def test_out_of_range_measurement_rejected(self):
        with pytest.raises(ValueError):
            GeoBinIndex([MeasuredLocation(0.0, 181.0, 1.0)])


class TestAntimeridian:
    """Queries crossing +-180 return shifted copies of far-side points"""

    def test_wrap_after_east_of_180(self):
        m = MeasuredLocation(0.0, -179.9, 3.0)
        index = GeoBinIndex([m])

        result = index.query(Sector(-10, 10, 170, 190))

        assert len(result) == 1
        assert result[0].latitude == 0.0
        assert result[0].longitude == pytest.approx(180.1)
        assert result[0].measure == 3.0
        # the stored measurement is untouched
        assert m.longitude == -179.9

    def test_wrap_before_west_of_minus_180(self):
        index = GeoBinIndex([MeasuredLocation(0.0, 179.9, 2.0)])

        result = index.query(Sector(-10, 10, -190, -170))

        assert len(result) == 1
        assert result[0].longitude == pytest.approx(-180.1)
        assert result[0].measure == 2.0

    def test_primary_and_wrapped_points_together(self):
        near = MeasuredLocation(5.0, 175.0, 1.0)
        far = MeasuredLocation(5.0, -175.0, 1.0)
        index = GeoBinIndex([near, far])

        result = index.query(Sector(0, 10, 170, 190))

        lons = sorted(m.longitude for m in result)
        assert lons == pytest.approx([175.0, 185.0])

    def test_no_wrap_inside_range(self):
        """A sector within [-180, 180] never scans the far side"""
        index = GeoBinIndex([MeasuredLocation(0.0, 179.95, 1.0), MeasuredLocation(0.0, -179.95, 1.0)])
        assert index.query(Sector(-10, 10, -179, 179)) == []

    def test_sector_starting_exactly_at_minus_180(self):
        index = GeoBinIndex([MeasuredLocation(5.0, 179.5, 1.0)])
        assert index.query(Sector(0, 10, -180, -170)) == []


class TestQueryValidation:
    """Caller misuse fails fast"""

    def test_more_than_full_turn(self):
        index = GeoBinIndex([])
        with pytest.raises(ValueError, match="360"):
            index.query(Sector(0, 1, -200, 200))

    def test_latitude_outside_sphere(self):
        index = GeoBinIndex([])
        with pytest.raises(ValueError, match="latitude"):
            index.query(Sector(95, 100, 0, 1))

    def test_longitude_outside_sphere(self):
        index = GeoBinIndex([])
        with pytest.raises(ValueError, match="longitude"):
            index.query(Sector(0, 1, 185, 190))

    def test_latitude_past_poles_is_clamped(self):
        m = MeasuredLocation(-89.5, 0.5, 1.0)
        index = GeoBinIndex([m])
        assert index.query(Sector(-95, -80, 0, 1)) == [m]
