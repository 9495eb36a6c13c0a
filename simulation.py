# simulation.py
"""
Advances the galaxy animation in time.

This module defines the AnimationDriver class, which owns the animation
clock and evaluates where every particle sits on its orbit at the current
time. Particles never interact: each one rotates rigidly around the centre
at its own precomputed angular speed, so the per-frame evaluation is a
pure function of a particle's attributes and the elapsed time.
"""
import logging
import numpy as np
from numba import jit, prange

from constants import ANGULAR_SPEED_SCALE
from particle import ParticleSet

# --- Data Contracts ---
#
# class AnimationDriver:
#   - __init__(self, rotation_direction: int = 1, rotation_speed_multiplier: float = 0.1):
#     - Inputs:
#       - rotation_direction: 1 or -1.
#       - rotation_speed_multiplier: Scales wall-clock seconds into
#         animation time.
#
#   - advance(self, delta_time: float) -> float:
#     - Side Effects: elapsed_time += delta_time * rotation_speed_multiplier.
#     - Outputs: The new elapsed time.
#     - Invariants: elapsed_time never decreases for delta_time >= 0.
#
#   - positions_at(self, particles: ParticleSet) -> np.ndarray:
#     - Outputs: (N, 3) float32 array. x, z are re-derived from the
#       particle's distance and current angle, y is unchanged.
#     - Side Effects: None. Never mutates the particle set.


@jit(nopython=True, parallel=True)
def _orbital_positions_numba(positions, distances, angles, rotation_speeds, time, direction):
    """
    Numba-jitted per-frame orbit evaluation, parallel across particles:
    angle(t) = angle0 + t * speed * 0.01 * direction.
    """
    particle_count = positions.shape[0]
    out = np.empty_like(positions)
    for i in prange(particle_count):
        current_angle = angles[i] + time * rotation_speeds[i] * ANGULAR_SPEED_SCALE * direction
        out[i, 0] = np.cos(current_angle) * distances[i]
        out[i, 1] = positions[i, 1]
        out[i, 2] = np.sin(current_angle) * distances[i]
    return out


class AnimationDriver:
    """
    Owns the animation clock and turns it into particle positions.
    """
    def __init__(self, rotation_direction: int = 1, rotation_speed_multiplier: float = 0.1):
        """
        Initializes the animation clock at time zero.

        Args:
            rotation_direction (int): 1 or -1.
            rotation_speed_multiplier (float): Animation seconds per wall-clock second.
        """
        if rotation_direction not in (1, -1):
            msg = f"Configuration error: rotation_direction must be 1 or -1, got {rotation_direction}."
            logging.critical(msg)
            raise ValueError(msg)

        self.rotation_direction = rotation_direction
        self.rotation_speed_multiplier = float(rotation_speed_multiplier)
        self.elapsed_time = 0.0
        # Shifts the clock so that reversing direction does not make particles jump.
        self.time_offset = 0.0

        logging.info(
            f"AnimationDriver initialized: direction {rotation_direction:+d}, "
            f"speed multiplier {self.rotation_speed_multiplier:.2f}."
        )

    @property
    def effective_time(self) -> float:
        return self.elapsed_time + self.time_offset

    def advance(self, delta_time: float) -> float:
        """
        Accumulates wall-clock time scaled by the speed multiplier.
        """
        self.elapsed_time += delta_time * self.rotation_speed_multiplier
        return self.elapsed_time

    def set_rotation_speed_multiplier(self, multiplier: float) -> None:
        self.rotation_speed_multiplier = float(multiplier)
        logging.info(f"Rotation speed multiplier set to {self.rotation_speed_multiplier:.2f}.")

    def set_rotation_direction(self, direction: int) -> None:
        """
        Reverses the rotation without moving any particle.

        The offset is chosen so that (t + new_offset) * new_dir equals
        (t + old_offset) * old_dir at the current time t.
        """
        if direction not in (1, -1):
            raise ValueError(f"rotation direction must be 1 or -1, got {direction}")
        old_direction = self.rotation_direction
        if direction != old_direction:
            t = self.elapsed_time
            self.time_offset = (t * old_direction + self.time_offset * old_direction) / direction - t
            logging.info(
                f"Rotation direction changed to {direction:+d} "
                f"(time offset {self.time_offset:.3f})."
            )
        self.rotation_direction = direction

    def reset(self) -> None:
        """Restarts the clock, as after a regeneration."""
        self.elapsed_time = 0.0
        self.time_offset = 0.0
        logging.debug("Animation clock reset.")

    def rotation_angles(self, particles: ParticleSet) -> np.ndarray:
        """Current orbital angle of every particle (float64)."""
        return (
            particles.angles.astype(np.float64)
            + self.effective_time
            * particles.rotation_speeds.astype(np.float64)
            * ANGULAR_SPEED_SCALE
            * self.rotation_direction
        )

    def positions_at(self, particles: ParticleSet) -> np.ndarray:
        """
        Evaluates every particle's position at the current animation time.
        """
        return _orbital_positions_numba(
            particles.positions, particles.distances, particles.angles,
            particles.rotation_speeds, float(self.effective_time),
            float(self.rotation_direction)
        )
