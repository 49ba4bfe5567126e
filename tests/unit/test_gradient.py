"""
Unit tests for gradient derivation
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import MeasuredLocation
from heatmap.gradient import DEFAULT_SCALE, IntervalType, build_gradient


def _measures(values):
    return [MeasuredLocation(0.0, 0.0, float(v)) for v in values]


class TestContinuous:
    """Evenly spaced stops"""

    @pytest.mark.parametrize("n", [1, 2, 5, 7])
    def test_keys_are_index_over_length(self, n):
        scale = [f"#0000{i:02x}" for i in range(n)]
        gradient = build_gradient(scale, IntervalType.CONTINUOUS)
        assert set(gradient) == {i / n for i in range(n)}
        assert [gradient[i / n] for i in range(n)] == scale

    def test_end_to_end_example(self):
        locations = [
            MeasuredLocation(10, 10, 5),
            MeasuredLocation(10, 10, 10),
            MeasuredLocation(80, 170, 1),
        ]
        gradient = build_gradient(["blue", "red"], IntervalType.CONTINUOUS, locations)
        assert gradient == {0: "blue", 0.5: "red"}

    def test_default_scale(self):
        gradient = build_gradient(DEFAULT_SCALE, "continuous")
        assert gradient[0.0] == "blue"
        assert gradient[0.8] == "red"


class TestQuantiles:
    """Stops at measurement quantiles"""

    def test_fallback_when_fewer_measurements_than_colors(self):
        locations = _measures([1, 2, 3])
        q = build_gradient(DEFAULT_SCALE, IntervalType.QUANTILES, locations)
        c = build_gradient(DEFAULT_SCALE, IntervalType.CONTINUOUS, locations)
        assert q == c

    def test_positions_follow_sorted_measures(self):
        # deliberately unsorted input: 1..10
        locations = _measures([7, 3, 10, 1, 5, 9, 2, 8, 4, 6])
        scale = ["c0", "c1", "c2", "c3", "c4"]

        gradient = build_gradient(scale, IntervalType.QUANTILES, locations)

        positions = sorted(gradient)
        assert positions == pytest.approx([0.0, 0.3, 0.5, 0.7, 0.9])
        assert [gradient[p] for p in positions] == scale

    def test_origin_is_pinned(self):
        """Index 0 would land at 0.1 here; it is forced to 0"""
        locations = _measures(range(1, 11))
        gradient = build_gradient(["a", "b", "c", "d", "e"], "quantiles", locations)
        assert gradient[0.0] == "a"
        assert 0.1 not in gradient

    def test_input_order_is_not_modified(self):
        locations = _measures([3, 1, 2, 5, 4])
        before = list(locations)
        build_gradient(["a", "b"], IntervalType.QUANTILES, locations)
        assert locations == before

    def test_colliding_positions_keep_later_color(self):
        locations = _measures([1, 1, 1, 1, 2])
        gradient = build_gradient(["a", "b", "c"], IntervalType.QUANTILES, locations)
        # indices 1 and 2 both resolve to measure 1 -> position 0.5
        assert gradient == {0.0: "a", 0.5: "c"}

    def test_non_positive_maximum_raises(self):
        locations = _measures([0, 0, 0, 0, 0])
        with pytest.raises(ValueError, match="positive maximum"):
            build_gradient(DEFAULT_SCALE, IntervalType.QUANTILES, locations)


class TestValidation:
    def test_empty_scale(self):
        with pytest.raises(ValueError):
            build_gradient([], IntervalType.CONTINUOUS)

    def test_unknown_interval_type(self):
        with pytest.raises(ValueError, match="unknown interval type"):
            build_gradient(["red"], "logarithmic")

    def test_interval_type_parse_is_case_insensitive(self):
        assert IntervalType.parse("QUANTILES") is IntervalType.QUANTILES
        assert IntervalType.parse(IntervalType.CONTINUOUS) is IntervalType.CONTINUOUS
