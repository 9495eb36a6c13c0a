# rotation.py
"""
Computes the per-particle orbital speed of the galaxy.

This module defines the RotationModel class, which maps a radius and an
angle to an angular speed in km/s-equivalent units. The base speed comes
either from a user-drawn rotation curve or from a closed-form profile with
a rising core, a flat plateau and a Keplerian-like falloff. A "viscosity"
correction then slows particles that sit on a spiral arm.
"""
import logging
import math
from typing import Callable, Optional, Tuple

import numpy as np
from numba import jit

from constants import (
    KPC_SCALE, DEFAULT_V_MAX, SPIRAL_LOG_OFFSET, ARM_WIDTH_FACTOR
)
from curve import bernstein_form, _bezier_value_numba

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from galaxy import GalaxyParameters


# --- Data Contracts ---
#
# class RotationModel:
#   - __init__(self, params: GalaxyParameters,
#              rotation_curve_fn: Optional[Callable[[float], float]] = None):
#     - Inputs:
#       - params: The immutable galaxy parameters (radius, arms, viscosity,
#         rotation_speed_max, r_peak, r_flat).
#       - rotation_curve_fn: Maps normalized radius [0,1] to a speed already
#         remapped into [rotation_speed_min, rotation_speed_max].
#
#   - speed(self, r: float, angle: float) -> float:
#     - Inputs: r in scene units (>= 0), angle in radians.
#     - Outputs: angular speed (km/s), always >= 0, never NaN.
#     - Invariants: viscosity == 0 or arm_count == 0 leaves the base speed
#       untouched.
#
#   - speeds(self, radii: np.ndarray, angles: np.ndarray) -> np.ndarray:
#     - Outputs: float64 array of speed() values, same shape as radii.

# Placeholder control points handed to the kernels for the closed form.
_NO_CURVE = np.zeros(2, dtype=np.float64)
_NO_CURVE.flags.writeable = False


@jit(nopython=True, error_model='numpy')
def _nearest_arm_distance_numba(r, angle, arm_count, arm_tightness):
    """
    Angular distance from `angle` to the nearest logarithmic spiral arm
    centreline theta_k = ln(r + 0.1) * tightness + k * 2pi / arm_count.
    """
    spiral_angle = np.log(r + SPIRAL_LOG_OFFSET) * arm_tightness
    branch_angle = 2.0 * np.pi / arm_count

    min_angle_dist = np.inf
    for arm in range(arm_count):
        arm_angle = spiral_angle + branch_angle * arm
        # Periodic difference, folded once around the circle.
        angle_diff = abs(angle - arm_angle)
        angle_diff = min(angle_diff, 2.0 * np.pi - angle_diff)
        min_angle_dist = min(min_angle_dist, angle_diff)
    return min_angle_dist


@jit(nopython=True, error_model='numpy')
def _arm_influence_numba(r, angle, arm_count, arm_tightness, arm_width):
    """
    Gaussian arm influence in [0, 1]: 1 on an arm centreline, falling off
    with the angular distance normalized by half the arm spacing.
    """
    min_angle_dist = _nearest_arm_distance_numba(r, angle, arm_count, arm_tightness)
    normalized_dist = min_angle_dist / (np.pi / arm_count)
    return np.exp(-(normalized_dist / (arm_width * ARM_WIDTH_FACTOR)) ** 2)


@jit(nopython=True)
def _closed_form_speed_numba(physical_r, v_max, r_peak, r_flat):
    """
    Rising core, flat plateau and sqrt falloff. Continuous at both r_peak
    (v_max from either side) and r_flat.
    """
    if physical_r < r_peak:
        return v_max * (physical_r / r_peak)
    elif physical_r < r_flat:
        return v_max
    return v_max * np.sqrt(r_flat / physical_r)


@jit(nopython=True, error_model='numpy')
def _rotation_speed_numba(r, angle, use_curve, curve_ys, curve_low, curve_high,
                          max_radius_kpc, v_max, r_peak, r_flat,
                          viscosity, arm_count, arm_tightness, arm_width):
    """
    Numba-jitted speed of one particle. The curve, when used, is given by
    its control point y values and the range its output is remapped into.
    """
    if np.isnan(r) or r < 0.0:
        return 0.0

    r_kpc = r / KPC_SCALE
    if use_curve:
        normalized_r = min(1.0, r_kpc / max_radius_kpc)
        speed = curve_low + _bezier_value_numba(curve_ys, normalized_r) * (curve_high - curve_low)
    else:
        speed = _closed_form_speed_numba(r_kpc, v_max, r_peak, r_flat)

    if viscosity > 0.0 and arm_count > 0:
        speed *= 1.0 - viscosity * _arm_influence_numba(
            r, angle, arm_count, arm_tightness, arm_width
        )

    if np.isnan(speed) or speed < 0.0:
        return 0.0
    return speed


@jit(nopython=True, error_model='numpy')
def _rotation_speeds_numba(radii, angles, use_curve, curve_ys, curve_low, curve_high,
                           max_radius_kpc, v_max, r_peak, r_flat,
                           viscosity, arm_count, arm_tightness, arm_width):
    """Numba-jitted loop of _rotation_speed_numba over flat arrays."""
    out = np.empty(radii.shape[0], dtype=np.float64)
    for i in range(radii.shape[0]):
        out[i] = _rotation_speed_numba(
            radii[i], angles[i], use_curve, curve_ys, curve_low, curve_high,
            max_radius_kpc, v_max, r_peak, r_flat,
            viscosity, arm_count, arm_tightness, arm_width
        )
    return out


def arm_influence(
    r: float, angle: float, arm_count: int, arm_tightness: float, arm_width: float
) -> float:
    """Strength (0..1) with which a point at (r, angle) lies on a spiral arm."""
    return float(_arm_influence_numba(
        float(r), float(angle), int(arm_count), float(arm_tightness), float(arm_width)
    ))


def closed_form_speed(
    physical_r: float, v_max: float, r_peak: float, r_flat: float
) -> float:
    """Closed-form rotation curve evaluated at a radius in kpc."""
    return float(_closed_form_speed_numba(
        float(physical_r), float(v_max), float(r_peak), float(r_flat)
    ))


class RotationModel:
    """
    Rotation-curve velocity field of a single galaxy generation.
    """
    def __init__(
        self,
        params: "GalaxyParameters",
        rotation_curve_fn: Optional[Callable[[float], float]] = None
    ):
        """
        Initializes the rotation model.

        Args:
            params (GalaxyParameters): The galaxy configuration.
            rotation_curve_fn (Optional[Callable]): Curve-driven speed profile.
                If None, the closed-form profile is used.
        """
        self.params = params
        self.rotation_curve_fn = rotation_curve_fn
        self.r_peak = params.r_peak
        self.r_flat = params.r_flat
        # A zero maximum falls back to the Milky Way plateau speed.
        self.v_max = params.rotation_speed_max or DEFAULT_V_MAX
        self.max_radius_kpc = params.radius / KPC_SCALE

        # Snapshots and the closed form run in the jitted kernels; any other
        # callable is evaluated from Python.
        form = bernstein_form(rotation_curve_fn)
        self.jitted = rotation_curve_fn is None or form is not None
        curve_ys, curve_low, curve_high = form if form is not None else (_NO_CURVE, 0.0, 0.0)
        self._kernel_args = (
            rotation_curve_fn is not None, curve_ys, float(curve_low), float(curve_high),
            float(self.max_radius_kpc), float(self.v_max),
            float(self.r_peak), float(self.r_flat),
            float(params.viscosity), int(params.arm_count),
            float(params.arm_tightness), float(params.arm_width)
        )

        logging.debug(
            f"RotationModel ready: "
            f"{'curve-driven' if rotation_curve_fn else 'closed-form'} profile, "
            f"v_max={self.v_max:.1f}, r_peak={self.r_peak:.2f}, "
            f"r_flat={self.r_flat:.2f}, viscosity={params.viscosity:.2f}"
        )

    def base_speed(self, r: float) -> float:
        """
        Speed from the curve or the closed-form profile, before viscosity.
        """
        r_kpc = r / KPC_SCALE
        if self.rotation_curve_fn is not None:
            normalized_r = min(1.0, r_kpc / self.max_radius_kpc)
            return float(self.rotation_curve_fn(normalized_r))
        return closed_form_speed(r_kpc, self.v_max, self.r_peak, self.r_flat)

    def viscosity_factor(self, r: float, angle: float) -> float:
        """
        Multiplier (1 - viscosity * arm_influence) applied to the base speed.

        Particles on an arm orbit slower than those between arms, which keeps
        the spiral pattern from winding up as the animation runs. This is a
        visual stabilizer, not a physical effect.
        """
        p = self.params
        if p.viscosity <= 0 or p.arm_count <= 0:
            return 1.0
        influence = arm_influence(r, angle, p.arm_count, p.arm_tightness, p.arm_width)
        return 1.0 - p.viscosity * influence

    def speed(self, r: float, angle: float) -> float:
        """
        Returns the angular speed (km/s) of a particle at radius r and angle.
        """
        if self.jitted:
            return float(_rotation_speed_numba(float(r), float(angle), *self._kernel_args))

        if math.isnan(r) or r < 0:
            return 0.0

        speed = self.base_speed(r) * self.viscosity_factor(r, angle)

        if math.isnan(speed) or speed < 0:
            return 0.0
        return speed

    def speeds(self, radii: np.ndarray, angles: np.ndarray) -> np.ndarray:
        """
        Evaluates speed() over two equally shaped arrays.

        Runs as one jitted loop for snapshot curves and the closed form, and
        falls back to calling speed() per element for other callables.
        """
        radii = np.asarray(radii, dtype=np.float64)
        angles = np.asarray(angles, dtype=np.float64)
        if self.jitted:
            flat = _rotation_speeds_numba(
                np.ascontiguousarray(radii).ravel(),
                np.ascontiguousarray(angles).ravel(),
                *self._kernel_args
            )
            return flat.reshape(radii.shape)

        out = np.empty(radii.shape, dtype=np.float64)
        for idx, (r, a) in enumerate(zip(radii.ravel(), angles.ravel())):
            out.flat[idx] = self.speed(float(r), float(a))
        return out

    def profile(self, samples: int = 100) -> Tuple[np.ndarray, np.ndarray]:
        """
        Samples the base rotation curve from the centre to the galaxy edge.

        Returns:
            Tuple[np.ndarray, np.ndarray]: Radii (scene units) and speeds (km/s).
        """
        radii = np.linspace(0.0, self.params.radius, samples)
        speeds = np.array([self.base_speed(float(r)) for r in radii])
        speeds = np.where(np.isnan(speeds) | (speeds < 0), 0.0, speeds)
        return radii, speeds
