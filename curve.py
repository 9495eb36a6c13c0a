# curve.py
"""
User-editable response curves.

This module defines the BezierCurve class, which holds the ordered control
points of a single Bezier curve in normalized [0,1]x[0,1] space, and the
immutable CurveSnapshot value that the galaxy generator evaluates. A
snapshot is taken at the moment a generation is requested, so later edits
to the curve never reach particles that were already generated.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
from numba import jit

from constants import DEFAULT_CURVE_POINTS

Point = Tuple[float, float]
Number = Union[float, np.ndarray]

# --- Data Contracts ---
#
# class BezierCurve:
#   - __init__(self, control_points: Optional[Sequence] = None):
#     - Inputs:
#       - control_points: ordered points as (x, y) pairs or {"x": .., "y": ..}
#         dicts. Defaults to DEFAULT_CURVE_POINTS.
#     - Invariants: at least two points. Interior points are not validated;
#       keeping first.x == 0 and last.x == 1 is the editor's job.
#
#   - evaluate(self, t) -> float | np.ndarray:
#     - Inputs: t in [0, 1] (scalar or array). NaN and values outside
#       [0, 1] evaluate to 0.
#     - Outputs: curve y value clamped into [0, 1], never NaN.
#
#   - get_curve(self) -> CurveSnapshot:
#     - Outputs: an immutable callable over a copy of the current points.
#
# bernstein_form(fn) -> Optional[Tuple[np.ndarray, float, float]]:
#   - Outputs: (ys, low, high) when fn is a snapshot or a remapped snapshot,
#     so that jitted kernels can evaluate it as low + y(u) * (high - low).
#     None for any other callable.


def _as_point(point: Any) -> Point:
    """Accepts an (x, y) pair or an {"x": .., "y": ..} mapping."""
    if isinstance(point, dict):
        return (float(point['x']), float(point['y']))
    x, y = point
    return (float(x), float(y))


@jit(nopython=True)
def _bezier_value_numba(ys, t):
    """
    Numba-jitted scalar curve value: the Bernstein sum of the control
    point y values at t, clamped into [0, 1]. 0 for NaN or t outside [0, 1].
    """
    if np.isnan(t) or t < 0.0 or t > 1.0:
        return 0.0
    n = ys.shape[0] - 1
    result = 0.0
    coefficient = 1.0
    for i in range(n + 1):
        result += coefficient * (1.0 - t) ** (n - i) * t ** i * ys[i]
        coefficient = coefficient * (n - i) / (i + 1)
    if np.isnan(result):
        return 0.0
    return min(1.0, max(0.0, result))


def _bernstein_sum(values: np.ndarray, t: np.ndarray) -> np.ndarray:
    """
    Evaluates sum_i C(n, i) (1-t)^(n-i) t^i v_i for one coordinate.

    Binomial coefficients are built iteratively from C(n, 0) = 1 so that
    high-degree curves never touch a factorial.
    """
    n = len(values) - 1
    result = np.zeros_like(t, dtype=np.float64)
    coefficient = 1.0
    for i, value in enumerate(values):
        result += coefficient * (1.0 - t) ** (n - i) * t ** i * value
        coefficient = coefficient * (n - i) / (i + 1)
    return result


def _evaluate(ys: np.ndarray, t: Number) -> Number:
    if np.ndim(t) == 0:
        return float(_bezier_value_numba(ys, float(t)))

    t_arr = np.asarray(t, dtype=np.float64)
    invalid = np.isnan(t_arr) | (t_arr < 0.0) | (t_arr > 1.0)
    y = _bernstein_sum(ys, np.where(invalid, 0.0, t_arr))
    return np.where(invalid | np.isnan(y), 0.0, np.clip(y, 0.0, 1.0))


@dataclass(frozen=True)
class CurveSnapshot:
    """
    An immutable copy of a curve's control points, callable as u -> y.
    """
    points: Tuple[Point, ...]
    ys: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        ys = np.array([p[1] for p in self.points], dtype=np.float64)
        ys.flags.writeable = False
        object.__setattr__(self, 'ys', ys)

    def __call__(self, u: Number) -> Number:
        return _evaluate(self.ys, u)

    def remap(self, low: float, high: float) -> "RangeMappedCurve":
        """Maps the curve's [0, 1] output linearly onto [low, high]."""
        return RangeMappedCurve(self, float(low), float(high))


@dataclass(frozen=True)
class RangeMappedCurve:
    """A snapshot whose output is remapped as low + y * (high - low)."""
    curve: CurveSnapshot
    low: float
    high: float

    def __call__(self, u: Number) -> Number:
        return self.low + self.curve(u) * (self.high - self.low)


def bernstein_form(fn: Any) -> Optional[Tuple[np.ndarray, float, float]]:
    """Control point y values and output range of a snapshot, if fn is one."""
    if isinstance(fn, RangeMappedCurve):
        return fn.curve.ys, fn.low, fn.high
    if isinstance(fn, CurveSnapshot):
        return fn.ys, 0.0, 1.0
    return None


class BezierCurve:
    """
    A single n-th degree Bezier curve defined by its control points.
    """
    def __init__(self, control_points: Optional[Sequence] = None):
        """
        Initializes the curve.

        Args:
            control_points (Sequence): Ordered control points. Defaults to
                the concave preset used for both rotation and density curves.
        """
        self._points: List[Point] = []
        self.set_control_points(
            control_points if control_points is not None else DEFAULT_CURVE_POINTS
        )

    @property
    def degree(self) -> int:
        return len(self._points) - 1

    def set_control_points(self, points: Sequence) -> None:
        """Replaces the full ordered list of control points."""
        new_points = [_as_point(p) for p in points]
        if len(new_points) < 2:
            msg = (
                f"Configuration error: a Bezier curve needs at least two "
                f"control points, got {len(new_points)}."
            )
            logging.error(msg)
            raise ValueError(msg)
        self._points = new_points
        logging.debug(f"Curve control points set: {self._points}")

    def get_control_points(self) -> List[Point]:
        """Returns a copy of the ordered control points."""
        return list(self._points)

    def move_point(self, index: int, x: float, y: float) -> None:
        """
        Moves one control point, as a drag in the curve editor does.

        Coordinates are clamped to [0, 1]. The first point stays on x = 0 and
        the last point on x = 1.
        """
        x = min(1.0, max(0.0, float(x)))
        y = min(1.0, max(0.0, float(y)))
        if index == 0:
            x = 0.0
        elif index == len(self._points) - 1:
            x = 1.0
        self._points[index] = (x, y)

    def evaluate(self, t: Number) -> Number:
        """Evaluates the curve's y value at parameter t."""
        return _evaluate(np.array([p[1] for p in self._points], dtype=np.float64), t)

    def get_curve(self) -> CurveSnapshot:
        """Snapshots the current control points into an immutable curve."""
        return CurveSnapshot(tuple(self._points))
