"""
Tests for the struct-of-arrays particle container.
"""
import numpy as np
import pytest

from particle import ParticleRecord, ParticleSet


class TestParticleSet:

    def test_allocation(self):
        particles = ParticleSet(5)
        assert particles.particle_count == 5
        assert particles.positions.shape == (5, 3)
        assert particles.colors.dtype == np.float32
        assert particles.sizes.shape == (5,)

    def test_buffers_are_flat(self):
        buffers = ParticleSet(4).as_buffers()
        assert buffers["position"].shape == (12,)
        assert buffers["color"].shape == (12,)
        assert buffers["rotationSpeed"].shape == (4,)

    def test_records_and_soa_agree(self):
        particles = ParticleSet(2)
        particles.positions[1] = (1.0, 2.0, 3.0)
        particles.rotation_speeds[1] = 180.0
        particles.brightnesses[1] = 1.25
        rec = particles.record(1)
        assert rec.position == (1.0, 2.0, 3.0)
        assert rec.rotation_speed == pytest.approx(180.0)

        rebuilt = ParticleSet.from_records(particles.to_records())
        for name, arr in particles.as_buffers().items():
            assert np.array_equal(arr, rebuilt.as_buffers()[name])


class TestSanitize:
    """NaN repair before publishing."""

    def test_nan_repair_values(self):
        particles = ParticleSet(3)
        particles.positions[0, 1] = np.nan
        particles.positions[0, 0] = 4.0
        particles.colors[1, 2] = np.nan
        particles.colors[1, 0] = 0.9
        particles.sizes[2] = np.nan
        particles.halo_sizes[2] = np.nan
        particles.distances[2] = np.nan
        particles.angles[2] = np.nan
        particles.rotation_speeds[2] = np.nan
        particles.brightnesses[2] = np.nan
        assert particles.has_nan()

        repaired = particles.sanitize(size_fill=4.0, halo_fill=0.5)

        assert repaired == 8
        assert not particles.has_nan()
        assert tuple(particles.positions[0]) == (0.0, 0.0, 0.0)
        np.testing.assert_allclose(particles.colors[1], [0.5, 0.5, 0.5])
        assert particles.sizes[2] == 4.0
        assert particles.halo_sizes[2] == 0.5
        assert particles.distances[2] == 0.0
        assert particles.angles[2] == 0.0
        assert particles.rotation_speeds[2] == 0.0
        # Brightness falls back to 1.0, not 0.
        assert particles.brightnesses[2] == 1.0

    def test_clean_set_untouched(self):
        particles = ParticleSet(3)
        particles.brightnesses[:] = 0.7
        assert particles.sanitize(size_fill=4.0, halo_fill=0.5) == 0
        np.testing.assert_allclose(particles.brightnesses, 0.7)


def test_record_is_value_type():
    rec = ParticleRecord((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), 4.0, 1.0, 0.5, 100.0, 0.5, 1.0)
    assert rec.size == 4.0
    assert rec._replace(brightness=2.0).brightness == 2.0
