"""
Tests for the animation clock and per-frame orbit evaluation.
"""
import math

import numpy as np
import pytest

from galaxy import generate
from particle import ParticleSet
from simulation import AnimationDriver


@pytest.fixture
def particles(small_params, rng):
    return generate(small_params, rng=rng)


class TestClock:

    def test_advance_scales_by_multiplier(self):
        driver = AnimationDriver(rotation_direction=1, rotation_speed_multiplier=0.5)
        driver.advance(0.1)
        driver.advance(0.3)
        assert driver.elapsed_time == pytest.approx(0.2)

    def test_reset(self):
        driver = AnimationDriver(rotation_speed_multiplier=2.0)
        driver.advance(1.0)
        driver.set_rotation_direction(-1)
        driver.reset()
        assert driver.elapsed_time == 0.0
        assert driver.time_offset == 0.0

    def test_invalid_direction(self):
        with pytest.raises(ValueError):
            AnimationDriver(rotation_direction=0)
        with pytest.raises(ValueError):
            AnimationDriver().set_rotation_direction(2)


class TestOrbits:

    def test_angle_formula(self, particles):
        driver = AnimationDriver(rotation_direction=-1, rotation_speed_multiplier=1.0)
        driver.advance(12.5)
        expected = (
            particles.angles.astype(np.float64)
            + 12.5 * particles.rotation_speeds.astype(np.float64) * 0.01 * -1
        )
        np.testing.assert_allclose(driver.rotation_angles(particles), expected)

    def test_positions_follow_orbit(self, particles):
        driver = AnimationDriver(rotation_direction=1, rotation_speed_multiplier=1.0)
        driver.advance(30.0)
        positions = driver.positions_at(particles)
        angles = driver.rotation_angles(particles)
        assert positions.shape == particles.positions.shape
        np.testing.assert_allclose(positions[:, 0], np.cos(angles) * particles.distances, atol=1e-4)
        np.testing.assert_allclose(positions[:, 2], np.sin(angles) * particles.distances, atol=1e-4)
        np.testing.assert_array_equal(positions[:, 1], particles.positions[:, 1])

    def test_time_zero_reproduces_generated_positions(self, particles):
        positions = AnimationDriver().positions_at(particles)
        np.testing.assert_allclose(positions, particles.positions, atol=1e-4)

    def test_does_not_mutate_particles(self, particles):
        before = particles.positions.copy()
        driver = AnimationDriver(rotation_speed_multiplier=1.0)
        driver.advance(100.0)
        driver.positions_at(particles)
        np.testing.assert_array_equal(particles.positions, before)

    def test_direction_switch_is_continuous(self):
        particles = ParticleSet(1)
        particles.distances[0] = 2.0
        particles.angles[0] = 0.25
        particles.rotation_speeds[0] = 200.0
        driver = AnimationDriver(rotation_direction=1, rotation_speed_multiplier=1.0)
        driver.advance(5.0)
        before = driver.rotation_angles(particles)[0]

        driver.set_rotation_direction(-1)
        assert driver.rotation_angles(particles)[0] == pytest.approx(before)

        driver.advance(1.0)
        assert driver.rotation_angles(particles)[0] == pytest.approx(before - 1.0 * 200.0 * 0.01)

        driver.set_rotation_direction(1)
        after_second_switch = driver.rotation_angles(particles)[0]
        assert after_second_switch == pytest.approx(before - 2.0)
        assert math.isfinite(after_second_switch)
