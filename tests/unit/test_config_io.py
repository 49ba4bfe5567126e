"""
Unit tests for YAML configuration and measurement CSV loading
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import MeasuredLocation
from heatmap.config import HeatMapConfig
from heatmap.gradient import IntervalType
from heatmap.io import load_measurements_csv, synthetic_measurements, write_measurements_csv


class TestHeatMapConfig:
    def test_defaults(self):
        config = HeatMapConfig()
        assert config.interval_type is IntervalType.CONTINUOUS
        assert config.scale == ["blue", "cyan", "lime", "yellow", "red"]
        assert config.radius == 12.5
        assert config.blur == 5.0
        assert (config.tile_width, config.tile_height) == (256, 256)
        assert config.num_levels == 18

    def test_missing_file_gives_defaults(self, tmp_path):
        assert HeatMapConfig.from_yaml(str(tmp_path / "nope.yaml")) == HeatMapConfig()

    def test_from_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text(
            "layer:\n"
            "  interval_type: QUANTILES\n"
            "  scale: [black, white]\n"
            "  radius: 8\n"
            "measurements:\n"
            "  csv_path: data/x.csv\n"
            "server:\n"
            "  port: 9001\n"
            "logging:\n"
            "  level: DEBUG\n"
        )
        config = HeatMapConfig.from_yaml(str(p))
        assert config.interval_type is IntervalType.QUANTILES
        assert config.scale == ["black", "white"]
        assert config.radius == 8.0
        assert config.csv_path == "data/x.csv"
        assert config.port == 9001
        assert config.log_level == "DEBUG"

    def test_repository_params_file_loads(self):
        config = HeatMapConfig.from_yaml(os.path.join(project_root, "config", "params.yaml"))
        assert config.display_name == "HeatMap"
        assert config.cache_capacity_bytes == 256 * 1024 * 1024

    @pytest.mark.parametrize(
        "layer",
        [
            {"tile_width": 0},
            {"interval_type": "bogus"},
            {"scale": []},
            {"radius": -1},
            {"level_zero_delta": 0},
        ],
    )
    def test_invalid_values(self, layer):
        with pytest.raises(ValueError):
            HeatMapConfig.from_dict({"layer": layer})


class TestMeasurementsCsv:
    def test_write_then_load(self, tmp_path):
        p = tmp_path / "m.csv"
        rows = [MeasuredLocation(10.5, -20.25, 3.0), MeasuredLocation(-89.0, 179.5, 0.5)]
        write_measurements_csv(str(p), rows)
        assert load_measurements_csv(str(p)) == rows

    def test_out_of_range_row(self, tmp_path):
        p = tmp_path / "bad.csv"
        p.write_text("latitude,longitude,measure\n0,0,1\n95,0,1\n")
        with pytest.raises(ValueError, match=":3:"):
            load_measurements_csv(str(p))

    def test_missing_columns(self, tmp_path):
        p = tmp_path / "cols.csv"
        p.write_text("lat,lon,measure\n0,0,1\n")
        with pytest.raises(ValueError, match="missing columns"):
            load_measurements_csv(str(p))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_measurements_csv(str(tmp_path / "none.csv"))

    def test_synthetic_is_deterministic_and_in_range(self):
        a = synthetic_measurements(500, seed=3)
        b = synthetic_measurements(500, seed=3)
        assert a == b
        assert len(a) == 500
        assert all(m.in_range and m.measure > 0 for m in a)
