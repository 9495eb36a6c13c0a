"""
Tests for the parameter panel contents. Nothing here opens a window.
"""
from simulation import AnimationDriver
from visualization import parameter_rows


class TestParameterRows:

    def test_direction_shown_as_sign(self, small_params):
        driver = AnimationDriver(rotation_direction=1)
        assert parameter_rows(small_params, driver)["Direction"] == "+1"
        driver.set_rotation_direction(-1)
        assert parameter_rows(small_params, driver)["Direction"] == "-1"

    def test_rows_follow_params_and_driver(self, small_params):
        driver = AnimationDriver(rotation_speed_multiplier=0.3)
        driver.advance(2.0)
        rows = parameter_rows(small_params, driver)
        assert rows["Particles"] == small_params.count
        assert rows["Arms"] == small_params.arm_count
        assert rows["Speed Multiplier"] == 0.3
        assert abs(rows["Time"] - 0.6) < 1e-9
