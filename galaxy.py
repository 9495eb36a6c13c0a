# galaxy.py
"""
Generates the particles of a spiral galaxy.

This module defines the immutable GalaxyParameters value and the pure
generate() function. generate() samples each particle's radius from a
radial density (a user-drawn curve or a power law), filters candidates by
their distance to the logarithmic spiral arms, places them in a thin disk
and assigns color, size, halo, brightness and orbital speed.
"""
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
from numba import jit

from constants import (
    DEFAULT_R_PEAK, DEFAULT_R_FLAT, DISK_THICKNESS, JITTER_PLANAR,
    JITTER_VERTICAL, SIZE_VARIATION, CLOUD_BRIGHTNESS_MULTIPLIER,
    DENSITY_SCAN_STEPS, MAX_REJECTION_ATTEMPTS, MIN_MAX_PROBABILITY,
    MIN_AREA_ELEMENT
)
from curve import BezierCurve, bernstein_form, _bezier_value_numba
from particle import ParticleSet
from rotation import RotationModel, _arm_influence_numba
from utils import parse_color

Color = Tuple[float, float, float]
CurveFn = Callable[[float], float]


# --- Data Contracts ---
#
# GalaxyParameters (frozen dataclass):
#   - Invariants (checked at construction, ValueError otherwise):
#     - count > 0, radius > 0, size > 0, arm_count >= 0, density_power > 0
#     - 0 <= viscosity <= 1, 0 <= cloud_ratio <= 1
#     - brightness_range[0] <= brightness_range[1], same for size_range
#     - rotation_direction in {1, -1}
#     - 0 < r_peak <= r_flat
#
# generate(params, rotation_curve_fn=None, density_curve_fn=None, rng=None) -> ParticleSet:
#   - Inputs:
#     - params: GalaxyParameters for this generation.
#     - rotation_curve_fn: normalized radius -> speed in
#       [rotation_speed_min, rotation_speed_max], or None for the closed form.
#     - density_curve_fn: normalized radius -> density in
#       [density_min, density_max], or None for the power law.
#     - rng: numpy Generator. Defaults to one seeded with params.seed.
#   - Outputs: A freshly allocated ParticleSet of exactly params.count
#     particles with no NaN entries.
#   - Invariants: Always terminates; radius rejection sampling is bounded
#     to MAX_REJECTION_ATTEMPTS tries per candidate.
#     The result is a deterministic function of the rng state.


# Radius sources understood by _fill_particles_numba.
RADIUS_POWER_LAW = 0
RADIUS_CURVE = 1
RADIUS_POOL = 2

# Upper bound on the uniforms one candidate can consume: two per rejection
# attempt plus the fallback, then angle, arm filter, Box-Muller (2),
# jitter (3), size, cloud, halo and brightness.
MAX_DRAWS_PER_CANDIDATE = 2 * MAX_REJECTION_ATTEMPTS + 12
UNIFORM_BATCH_SIZE = 1 << 18

# Placeholder control points handed to the kernel for the power law.
_NO_CURVE = np.zeros(2, dtype=np.float64)
_NO_CURVE.flags.writeable = False


@dataclass(frozen=True)
class GalaxyParameters:
    """
    The complete, immutable configuration of one galaxy generation.
    """
    count: int = 50000
    size: float = 4.0
    radius: float = 6.5
    arm_count: int = 3
    arm_tightness: float = 1.0
    arm_density: float = 2.0
    arm_width: float = 0.3
    randomness: float = 0.3
    inside_color: Color = (1.0, 170 / 255, 68 / 255)
    outside_color: Color = (68 / 255, 136 / 255, 1.0)
    glow_intensity: float = 8.0
    halo_size: float = 0.5
    viscosity: float = 0.0
    density_power: float = 0.25
    rotation_speed_min: float = 0.0
    rotation_speed_max: float = 150.0
    density_min: float = 0.0
    density_max: float = 2.0
    cloud_ratio: float = 0.08
    cloud_halo_multiplier: float = 3.0
    random_brightness: bool = True
    brightness_range: Tuple[float, float] = (0.6, 1.4)
    random_size: bool = True
    size_range: Tuple[float, float] = (4.0, 40.0)
    rotation_direction: int = 1
    r_peak: float = DEFAULT_R_PEAK
    r_flat: float = DEFAULT_R_FLAT
    seed: Optional[int] = None

    def __post_init__(self):
        problems = []
        if self.count <= 0:
            problems.append(f"count must be positive, got {self.count}")
        if not self.radius > 0:
            problems.append(f"radius must be positive, got {self.radius}")
        if not self.size > 0:
            problems.append(f"size must be positive, got {self.size}")
        if self.arm_count < 0:
            problems.append(f"arm_count must not be negative, got {self.arm_count}")
        if not self.density_power > 0:
            problems.append(f"density_power must be positive, got {self.density_power}")
        if not 0.0 <= self.viscosity <= 1.0:
            problems.append(f"viscosity must lie in [0, 1], got {self.viscosity}")
        if not 0.0 <= self.cloud_ratio <= 1.0:
            problems.append(f"cloud_ratio must lie in [0, 1], got {self.cloud_ratio}")
        if self.brightness_range[0] > self.brightness_range[1]:
            problems.append(f"brightness_range is inverted: {self.brightness_range}")
        if self.size_range[0] > self.size_range[1]:
            problems.append(f"size_range is inverted: {self.size_range}")
        if self.rotation_direction not in (1, -1):
            problems.append(
                f"rotation_direction must be 1 or -1, got {self.rotation_direction}"
            )
        if not 0 < self.r_peak <= self.r_flat:
            problems.append(
                f"rotation curve radii must satisfy 0 < r_peak <= r_flat, "
                f"got r_peak={self.r_peak}, r_flat={self.r_flat}"
            )

        if problems:
            msg = "Configuration error: " + "; ".join(problems) + "."
            logging.critical(msg)
            raise ValueError(msg)

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> "GalaxyParameters":
        """
        Builds parameters from the "galaxy" section of the configuration.
        Missing keys keep their defaults; unknown keys are ignored.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            logging.warning(f"Ignoring unknown galaxy parameters: {unknown}")

        values = {k: v for k, v in section.items() if k in known}
        for key in ('inside_color', 'outside_color'):
            if key in values:
                values[key] = parse_color(values[key])
        for key in ('brightness_range', 'size_range'):
            if key in values:
                low, high = values[key]
                values[key] = (float(low), float(high))
        for key in ('count', 'arm_count', 'rotation_direction'):
            if key in values:
                values[key] = int(values[key])
        for key in ('random_brightness', 'random_size'):
            if key in values:
                values[key] = bool(values[key])
        return cls(**values)

    def replace(self, **changes) -> "GalaxyParameters":
        """Returns a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        for key in ('inside_color', 'outside_color', 'brightness_range', 'size_range'):
            data[key] = list(data[key])
        return data


def curve_functions(
    params: GalaxyParameters,
    rotation_curve: Optional[BezierCurve] = None,
    density_curve: Optional[BezierCurve] = None
) -> Tuple[Optional[CurveFn], Optional[CurveFn]]:
    """
    Snapshots the editable curves and remaps them into the configured
    speed and density ranges.

    Returns:
        Tuple: (rotation_curve_fn, density_curve_fn), either may be None.
    """
    rotation_fn = None
    density_fn = None
    if rotation_curve is not None:
        rotation_fn = rotation_curve.get_curve().remap(
            params.rotation_speed_min, params.rotation_speed_max
        )
    if density_curve is not None:
        density_fn = density_curve.get_curve().remap(
            params.density_min, params.density_max
        )
    return rotation_fn, density_fn


@jit(nopython=True, error_model='numpy')
def _fill_particles_numba(
    uniforms, cursor, radius_pool, pool_cursor, start, count,
    positions, colors, sizes, distances, angles, halo_sizes, brightnesses,
    radius_mode, density_ys, density_low, density_high, max_probability,
    max_radius, density_power, arm_count, arm_tightness, arm_density, arm_width,
    randomness, size, halo_size, inside_color, color_delta,
    cloud_ratio, cloud_halo_multiplier, random_brightness,
    brightness_low, brightness_high
):
    """
    Numba-jitted generation loop. Consumes pre-drawn uniforms in [0, 1)
    from `cursor` on and fills particles from index `start` on.

    Stops early when fewer than MAX_DRAWS_PER_CANDIDATE uniforms remain or,
    in RADIUS_POOL mode, when the pool of pre-sampled normalized radii runs
    out, so the caller can refill and resume.

    Returns:
        (next index, cursor, pool_cursor, arm rejections, radius fallbacks)
    """
    n_uniforms = uniforms.shape[0]
    use_arm_filter = arm_count > 0 and arm_density > 1.0
    rejected = 0
    fallbacks = 0
    i = start
    while i < count and cursor + MAX_DRAWS_PER_CANDIDATE <= n_uniforms:
        # 1. Radius
        if radius_mode == RADIUS_POOL:
            if pool_cursor >= radius_pool.shape[0]:
                break
            radius = radius_pool[pool_cursor] * max_radius
            pool_cursor += 1
        elif radius_mode == RADIUS_CURVE:
            u = -1.0
            for _ in range(MAX_REJECTION_ATTEMPTS):
                candidate = uniforms[cursor]
                accept = uniforms[cursor + 1]
                cursor += 2
                density = density_low + _bezier_value_numba(density_ys, candidate) * (density_high - density_low)
                probability = density * max(candidate, MIN_AREA_ELEMENT)
                if accept < min(1.0, probability / max_probability):
                    u = candidate
                    break
            if u < 0.0:
                u = uniforms[cursor]
                cursor += 1
                fallbacks += 1
            radius = u * max_radius
        else:
            radius = (1.0 - (1.0 - uniforms[cursor]) ** density_power) * max_radius
            cursor += 1

        # 2. Angle
        angle = uniforms[cursor] * 2.0 * np.pi
        cursor += 1

        # 3. Density wave: keep candidates near an arm more often
        if use_arm_filter:
            influence = _arm_influence_numba(radius, angle, arm_count, arm_tightness, arm_width)
            density_boost = 1.0 + (arm_density - 1.0) * influence
            keep_probability = min(1.0, 0.15 + (density_boost - 1.0) * 0.8 + 0.2)
            keep = uniforms[cursor]
            cursor += 1
            if keep > keep_probability:
                rejected += 1
                continue

        # 4. Disk placement. Box-Muller with u1 in (0, 1] so log(u1) is finite.
        x = radius * np.cos(angle)
        z = radius * np.sin(angle)
        u1 = 1.0 - uniforms[cursor]
        u2 = uniforms[cursor + 1]
        gaussian = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        y = gaussian * DISK_THICKNESS * (1.0 - radius / max_radius * 0.5)

        x += (uniforms[cursor + 2] - 0.5) * randomness * JITTER_PLANAR
        y += (uniforms[cursor + 3] - 0.5) * randomness * JITTER_VERTICAL
        z += (uniforms[cursor + 4] - 0.5) * randomness * JITTER_PLANAR
        cursor += 5
        positions[i, 0] = x
        positions[i, 1] = y
        positions[i, 2] = z

        # 5. Attributes derived from the jittered position
        distance = np.sqrt(x * x + z * z)
        distances[i] = distance
        angles[i] = np.arctan2(z, x)

        mix = min(1.0, max(0.0, distance / max_radius))
        for c in range(3):
            colors[i, c] = inside_color[c] + color_delta[c] * mix

        sizes[i] = size + (uniforms[cursor] - 0.5) * size * SIZE_VARIATION
        cursor += 1

        # 6. Cloud particles get a large halo and extra brightness
        is_cloud = uniforms[cursor] < cloud_ratio
        cursor += 1
        if is_cloud:
            halo_sizes[i] = halo_size * cloud_halo_multiplier
            base_brightness = 1.0
            if random_brightness:
                base_brightness = brightness_low + uniforms[cursor] * (brightness_high - brightness_low)
                cursor += 1
            brightnesses[i] = base_brightness * CLOUD_BRIGHTNESS_MULTIPLIER
        else:
            halo_sizes[i] = halo_size * (0.8 + uniforms[cursor] * 0.4)
            cursor += 1
            if random_brightness:
                brightnesses[i] = brightness_low + uniforms[cursor] * (brightness_high - brightness_low)
                cursor += 1
            else:
                brightnesses[i] = 1.0

        i += 1

    return i, cursor, pool_cursor, rejected, fallbacks


def _max_probability(density_curve_fn: CurveFn) -> float:
    """
    Envelope for rejection sampling: the largest density(u) * u on a
    uniform grid, floored so that it is never zero.
    """
    max_probability = 0.0
    for step in range(1, DENSITY_SCAN_STEPS + 1):
        u = step / DENSITY_SCAN_STEPS
        max_probability = max(max_probability, float(density_curve_fn(u)) * u)
    return max(max_probability, MIN_MAX_PROBABILITY)


def _sample_normalized_radius(
    density_curve_fn: CurveFn, max_probability: float, rng: np.random.Generator
) -> Tuple[float, bool]:
    """
    Draws u in [0, 1] with probability proportional to density(u) * u,
    the u accounting for the ring area growing with radius.

    Returns:
        Tuple[float, bool]: The sample and whether the uniform fallback was used.
    """
    for _ in range(MAX_REJECTION_ATTEMPTS):
        candidate = rng.random()
        probability = float(density_curve_fn(candidate)) * max(candidate, MIN_AREA_ELEMENT)
        if rng.random() < min(1.0, probability / max_probability):
            return candidate, False
    return rng.random(), True


def _sample_radius_pool(
    density_curve_fn: CurveFn, max_probability: float, rng: np.random.Generator, size: int
) -> Tuple[np.ndarray, int]:
    """
    Pre-samples normalized radii for a density callable the kernel cannot
    evaluate.

    Returns:
        Tuple[np.ndarray, int]: The samples and how many used the fallback.
    """
    pool = np.empty(size, dtype=np.float64)
    fallbacks = 0
    for k in range(size):
        pool[k], used_fallback = _sample_normalized_radius(density_curve_fn, max_probability, rng)
        fallbacks += used_fallback
    return pool, fallbacks


def generate(
    params: GalaxyParameters,
    rotation_curve_fn: Optional[CurveFn] = None,
    density_curve_fn: Optional[CurveFn] = None,
    rng: Optional[np.random.Generator] = None
) -> ParticleSet:
    """
    Generates a complete particle set for one galaxy.

    Snapshot curves and the power law are sampled entirely inside the
    jitted kernel. Any other density callable is sampled from Python into
    a pool of radii that the kernel then consumes.

    Args:
        params (GalaxyParameters): The galaxy configuration.
        rotation_curve_fn (Optional[Callable]): Remapped rotation curve.
        density_curve_fn (Optional[Callable]): Remapped radial density curve.
        rng (Optional[np.random.Generator]): Source of randomness.

    Returns:
        ParticleSet: Freshly allocated, NaN-free particle data.
    """
    if rng is None:
        rng = np.random.default_rng(params.seed)

    count = params.count
    max_radius = params.radius
    logging.info(
        f"Generating galaxy: {count} particles, radius {max_radius:.2f}, "
        f"{params.arm_count} arms, "
        f"{'curve' if density_curve_fn else 'power-law'} density, "
        f"{'curve' if rotation_curve_fn else 'closed-form'} rotation."
    )
    start = time.perf_counter()

    particles = ParticleSet(count)
    rotation = RotationModel(params, rotation_curve_fn)

    inside_color = np.array(params.inside_color, dtype=np.float64)
    color_delta = np.array(params.outside_color, dtype=np.float64) - inside_color

    radius_mode = RADIUS_POWER_LAW
    density_ys, density_low, density_high = _NO_CURVE, 0.0, 0.0
    max_probability = 1.0
    if density_curve_fn is not None:
        max_probability = _max_probability(density_curve_fn)
        logging.debug(f"Density envelope (max probability): {max_probability:.4f}")
        form = bernstein_form(density_curve_fn)
        if form is not None:
            radius_mode = RADIUS_CURVE
            density_ys, density_low, density_high = form
        else:
            radius_mode = RADIUS_POOL

    # Distance and angle stay in float64 until the speeds are computed.
    distances = np.zeros(count, dtype=np.float64)
    angles = np.zeros(count, dtype=np.float64)
    brightness_low, brightness_high = params.brightness_range

    uniforms = np.empty(0, dtype=np.float64)
    radius_pool = np.empty(0, dtype=np.float64)
    cursor = 0
    pool_cursor = 0
    rejected = 0
    fallbacks = 0
    i = 0
    while i < count:
        if uniforms.shape[0] - cursor < MAX_DRAWS_PER_CANDIDATE:
            uniforms = rng.random(UNIFORM_BATCH_SIZE)
            cursor = 0
        if radius_mode == RADIUS_POOL and pool_cursor >= radius_pool.shape[0]:
            # A margin over the particles still missing covers arm-filter rejections.
            radius_pool, pool_fallbacks = _sample_radius_pool(
                density_curve_fn, max_probability, rng, (count - i) * 5 // 4 + 16
            )
            pool_cursor = 0
            fallbacks += pool_fallbacks

        i, cursor, pool_cursor, batch_rejected, batch_fallbacks = _fill_particles_numba(
            uniforms, cursor, radius_pool, pool_cursor, i, count,
            particles.positions, particles.colors, particles.sizes,
            distances, angles, particles.halo_sizes, particles.brightnesses,
            radius_mode, density_ys, float(density_low), float(density_high),
            float(max_probability), float(max_radius), float(params.density_power),
            int(params.arm_count), float(params.arm_tightness),
            float(params.arm_density), float(params.arm_width),
            float(params.randomness), float(params.size), float(params.halo_size),
            inside_color, color_delta, float(params.cloud_ratio),
            float(params.cloud_halo_multiplier), bool(params.random_brightness),
            float(brightness_low), float(brightness_high)
        )
        rejected += batch_rejected
        fallbacks += batch_fallbacks

    particles.distances[:] = distances
    particles.angles[:] = angles
    particles.rotation_speeds[:] = rotation.speeds(distances, angles)

    # 7. Nothing NaN may reach the renderer
    particles.sanitize(params.size, params.halo_size)

    elapsed = time.perf_counter() - start
    logging.info(
        f"Galaxy generated in {elapsed:.2f}s "
        f"({rejected} candidates rejected by the arm filter)."
    )
    logging.debug(
        f"Mean rotation speed: {float(np.mean(particles.rotation_speeds)):.2f} km/s | "
        f"Uniform radius fallbacks: {fallbacks}"
    )
    return particles
