# particle.py
"""
Holds the output of one galaxy generation.

This module defines the ParticleSet class, which stores every per-particle
attribute in its own NumPy array (struct-of-arrays, float32) ready for
upload to a renderer, and the ParticleRecord value type for code that
prefers to work on one particle at a time.
"""
import logging
import numpy as np
from typing import Dict, Iterable, List, NamedTuple, Tuple

from constants import NAN_COLOR_FILL, NAN_BRIGHTNESS_FILL

# --- Data Contracts ---
#
# class ParticleSet:
#   - __init__(self, count: int):
#     - Inputs:
#       - count: int, number of particles (> 0).
#     - Side Effects: Allocates fresh, zeroed float32 arrays. A set never
#       shares a buffer with another set.
#     - Invariants:
#       - positions, colors have shape (N, 3); every other array shape (N,).
#       - After sanitize(), no array contains NaN.
#
#   - sanitize(self, size_fill: float, halo_fill: float) -> int:
#     - Side Effects: Repairs NaN entries in place.
#     - Outputs: Number of repaired entries.


class ParticleRecord(NamedTuple):
    position: Tuple[float, float, float]
    color: Tuple[float, float, float]
    size: float
    distance: float
    angle: float
    rotation_speed: float
    halo_size: float
    brightness: float


# Order of the scalar attributes in ParticleRecord after position and color.
_SCALAR_FIELDS = (
    'sizes', 'distances', 'angles', 'rotation_speeds', 'halo_sizes', 'brightnesses'
)


class ParticleSet:
    """
    A container for all particles of one generation, stored as NumPy arrays.
    """
    def __init__(self, count: int):
        """
        Allocates the particle arrays.

        Args:
            count (int): The number of particles.
        """
        self.positions = np.zeros((count, 3), dtype=np.float32)
        self.colors = np.zeros((count, 3), dtype=np.float32)
        self.sizes = np.zeros(count, dtype=np.float32)
        self.distances = np.zeros(count, dtype=np.float32)
        self.angles = np.zeros(count, dtype=np.float32)
        self.rotation_speeds = np.zeros(count, dtype=np.float32)
        self.halo_sizes = np.zeros(count, dtype=np.float32)
        self.brightnesses = np.zeros(count, dtype=np.float32)

        logging.debug(
            f"ParticleSet allocated for {count} particles. "
            f"Positions shape: {self.positions.shape}, "
            f"Colors shape: {self.colors.shape}"
        )

    @property
    def particle_count(self) -> int:
        return self.positions.shape[0]

    def __len__(self) -> int:
        return self.particle_count

    def has_nan(self) -> bool:
        return any(np.isnan(arr).any() for arr in self.as_buffers().values())

    def sanitize(self, size_fill: float, halo_fill: float) -> int:
        """
        Replaces NaN values so that nothing invalid reaches the renderer.

        A position or color with any NaN component is reset as a whole
        (positions to the centre, colors to mid grey). Sizes and halos fall
        back to the configured base values, brightness to 1.0, everything
        else to 0.
        """
        repaired = 0

        bad_rows = np.isnan(self.positions).any(axis=1)
        self.positions[bad_rows] = 0.0
        repaired += int(bad_rows.sum())

        bad_rows = np.isnan(self.colors).any(axis=1)
        self.colors[bad_rows] = NAN_COLOR_FILL
        repaired += int(bad_rows.sum())

        fills = {
            'sizes': size_fill,
            'distances': 0.0,
            'angles': 0.0,
            'rotation_speeds': 0.0,
            'halo_sizes': halo_fill,
            'brightnesses': NAN_BRIGHTNESS_FILL,
        }
        for name, fill in fills.items():
            arr = getattr(self, name)
            mask = np.isnan(arr)
            arr[mask] = fill
            repaired += int(mask.sum())

        if repaired:
            logging.warning(f"Repaired {repaired} NaN entries in generated particle data.")
        return repaired

    def as_buffers(self) -> Dict[str, np.ndarray]:
        """
        Flat float32 buffers keyed by attribute name, as a GPU upload expects.
        3-vectors are flattened to length 3N.
        """
        return {
            'position': self.positions.reshape(-1),
            'color': self.colors.reshape(-1),
            'size': self.sizes,
            'distance': self.distances,
            'angle': self.angles,
            'rotationSpeed': self.rotation_speeds,
            'haloSize': self.halo_sizes,
            'brightness': self.brightnesses,
        }

    def record(self, index: int) -> ParticleRecord:
        return ParticleRecord(
            tuple(float(v) for v in self.positions[index]),
            tuple(float(v) for v in self.colors[index]),
            *(float(getattr(self, name)[index]) for name in _SCALAR_FIELDS)
        )

    def to_records(self) -> List[ParticleRecord]:
        return [self.record(i) for i in range(self.particle_count)]

    @classmethod
    def from_records(cls, records: Iterable[ParticleRecord]) -> "ParticleSet":
        """Packs a sequence of ParticleRecord values into a new ParticleSet."""
        records = list(records)
        particles = cls(len(records))
        for i, rec in enumerate(records):
            particles.positions[i] = rec.position
            particles.colors[i] = rec.color
            particles.sizes[i] = rec.size
            particles.distances[i] = rec.distance
            particles.angles[i] = rec.angle
            particles.rotation_speeds[i] = rec.rotation_speed
            particles.halo_sizes[i] = rec.halo_size
            particles.brightnesses[i] = rec.brightness
        return particles
