"""
Tests for configuration, color parsing and parameter import/export.
"""
import json
import logging
from pathlib import Path

import pytest

from curve import BezierCurve
from galaxy import GalaxyParameters
from utils import (
    color_to_hex, export_parameters, import_parameters, load_config,
    parse_color, setup_logging
)


class TestColors:

    def test_hex_string(self):
        assert parse_color("#ffaa44") == pytest.approx((1.0, 170 / 255, 68 / 255))

    def test_byte_triple(self):
        assert parse_color([255, 0, 51]) == pytest.approx((1.0, 0.0, 0.2))

    def test_unit_triple(self):
        assert parse_color([0.2, 0.4, 0.6]) == pytest.approx((0.2, 0.4, 0.6))

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_color("definitely-not-a-color")
        with pytest.raises(ValueError):
            parse_color([1, 2])

    def test_to_hex(self):
        assert color_to_hex((1.0, 170 / 255, 68 / 255)) == "#ffaa44"


class TestConfig:

    def test_load_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"galaxy": {"count": 10}}))
        assert load_config(str(path)) == {"galaxy": {"count": 10}}

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.json"))

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_config(str(path))

    def test_shipped_config_is_valid(self):
        config = load_config(str(Path(__file__).resolve().parent.parent / "config.json"))
        params = GalaxyParameters.from_config(config["galaxy"])
        assert params.count > 0
        BezierCurve(config["curves"]["rotation_curve_points"])
        BezierCurve(config["curves"]["density_curve_points"])

    def test_setup_logging_creates_log_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        log_file = tmp_path / "logs" / "galaxy.log"
        try:
            setup_logging({"logging": {"level": "debug", "log_file": str(log_file)}})
            assert root.level == logging.DEBUG
            assert log_file.exists()
            assert logging.getLogger("numba").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestParameterFiles:

    def test_export_then_import(self, tmp_path):
        params = GalaxyParameters(count=1234, radius=7.5, arm_count=4, viscosity=0.3,
                                  rotation_direction=-1, brightness_range=(0.5, 1.5))
        rotation_points = [(0.0, 0.9), (0.4, 0.6), (1.0, 0.2)]
        density_points = BezierCurve().get_control_points()
        path = tmp_path / "galaxy-params.json"

        export_parameters(params, rotation_points, density_points, str(path), 0.25)
        data = json.loads(path.read_text())
        assert data["inside_color"] == "#ffaa44"
        assert data["rotation_curve_points"] == [[0.0, 0.9], [0.4, 0.6], [1.0, 0.2]]

        loaded, loaded_rotation, loaded_density, multiplier = import_parameters(str(path))
        assert loaded.count == 1234
        assert loaded.arm_count == 4
        assert loaded.rotation_direction == -1
        assert loaded.brightness_range == (0.5, 1.5)
        assert loaded.inside_color == pytest.approx(params.inside_color, abs=1 / 255)
        assert loaded_rotation == rotation_points
        assert loaded_density == density_points
        assert multiplier == 0.25

    def test_import_object_points_and_defaults(self, tmp_path):
        path = tmp_path / "minimal.json"
        path.write_text(json.dumps({
            "count": 99,
            "density_curve_points": [{"x": 0, "y": 1}, {"x": 1, "y": 0}],
        }))
        params, rotation_points, density_points, multiplier = import_parameters(str(path))
        assert params.count == 99
        assert params.radius == GalaxyParameters().radius
        assert rotation_points is None
        assert density_points == [(0.0, 1.0), (1.0, 0.0)]
        assert multiplier == 0.1
