"""
Tests for the editable Bezier curves and their immutable snapshots.
"""
import math

import numpy as np
import pytest

from curve import BezierCurve, CurveSnapshot, RangeMappedCurve, bernstein_form


class TestBezierEvaluation:
    """Direct Bernstein-sum evaluation."""

    def test_endpoints_match_first_and_last_y(self):
        for points in (
            [(0.0, 1.0), (0.2, 0.2), (0.2, 0.1), (1.0, 0.0)],
            [(0.0, 0.3), (0.5, 0.9), (1.0, 0.7)],
            [(0.0, 0.0), (1.0, 0.25)],
        ):
            curve = BezierCurve(points)
            assert curve.evaluate(0.0) == pytest.approx(points[0][1])
            assert curve.evaluate(1.0) == pytest.approx(points[-1][1])

    def test_linear_curve(self):
        curve = BezierCurve([(0, 0), (1, 1)])
        assert curve.evaluate(0.25) == pytest.approx(0.25)

    def test_cubic_midpoint(self):
        curve = BezierCurve([(0, 0.0), (0.3, 0.5), (0.7, 0.8), (1, 1.0)])
        # 3/8 * 0.5 + 3/8 * 0.8 + 1/8 * 1.0
        assert curve.evaluate(0.5) == pytest.approx(0.6125)

    def test_high_degree_stays_finite(self):
        """Binomial coefficients are built iteratively, no factorial overflow."""
        points = [(i / 79, 0.5) for i in range(80)]
        curve = BezierCurve(points)
        assert curve.degree == 79
        assert curve.evaluate(0.37) == pytest.approx(0.5)

    def test_nan_input_returns_zero(self):
        curve = BezierCurve([(0, 0.4), (1, 0.6)])
        assert curve.evaluate(float("nan")) == 0.0

    def test_out_of_range_input_returns_zero(self):
        curve = BezierCurve([(0, 0.4), (0.5, 0.9), (1, 0.6)])
        assert curve.evaluate(-0.5) == 0.0
        assert curve.evaluate(3.0) == 0.0
        assert curve.get_curve()(1.0001) == 0.0
        assert curve.get_curve().remap(10.0, 20.0)(-1.0) == pytest.approx(10.0)

    def test_output_clamped_to_unit_interval(self):
        curve = BezierCurve([(0, 0.0), (0.5, 3.0), (1, 0.0)])
        assert curve.evaluate(0.5) == 1.0

    def test_array_input(self):
        curve = BezierCurve([(0, 0), (1, 1)])
        values = curve.evaluate(np.array([0.0, 0.5, 1.0, float("nan"), -0.2, 1.5]))
        assert isinstance(values, np.ndarray)
        np.testing.assert_allclose(values, [0.0, 0.5, 1.0, 0.0, 0.0, 0.0])

    def test_scalar_and_array_evaluation_agree(self):
        curve = BezierCurve([(0, 1.0), (0.2, 0.2), (0.2, 0.1), (0.6, 0.8), (1, 0.0)])
        ts = np.linspace(-0.25, 1.25, 61)
        np.testing.assert_allclose(curve.evaluate(ts), [curve.evaluate(float(t)) for t in ts])


class TestControlPoints:
    """Point replacement and editor-style drags."""

    def test_default_points(self):
        curve = BezierCurve()
        assert curve.get_control_points() == [(0.0, 1.0), (0.2, 0.2), (0.2, 0.1), (1.0, 0.0)]

    def test_dict_points_accepted(self):
        curve = BezierCurve([{"x": 0, "y": 0.2}, {"x": 1, "y": 0.8}])
        assert curve.get_control_points() == [(0.0, 0.2), (1.0, 0.8)]

    def test_too_few_points_rejected(self):
        with pytest.raises(ValueError):
            BezierCurve([(0.0, 1.0)])

    def test_get_returns_copy(self):
        curve = BezierCurve()
        points = curve.get_control_points()
        points.append((5.0, 5.0))
        assert len(curve.get_control_points()) == 4

    def test_move_point_pins_endpoints(self):
        curve = BezierCurve()
        curve.move_point(0, 0.4, 0.5)
        curve.move_point(3, 0.2, 1.7)
        points = curve.get_control_points()
        assert points[0] == (0.0, 0.5)
        assert points[3] == (1.0, 1.0)

    def test_interior_points_not_validated(self):
        curve = BezierCurve([(0.3, 0.0), (0.1, 0.5), (0.6, 1.0)])
        assert math.isfinite(curve.evaluate(0.5))


class TestSnapshots:
    """Snapshots are detached from later edits."""

    def test_snapshot_ignores_later_edits(self):
        curve = BezierCurve([(0, 0.2), (1, 0.2)])
        snapshot = curve.get_curve()
        curve.move_point(1, 1.0, 0.9)
        assert snapshot(1.0) == pytest.approx(0.2)
        assert curve.evaluate(1.0) == pytest.approx(0.9)

    def test_snapshot_is_immutable(self):
        snapshot = BezierCurve().get_curve()
        assert isinstance(snapshot, CurveSnapshot)
        with pytest.raises(Exception):
            snapshot.points = ()

    def test_remap(self):
        snapshot = BezierCurve([(0, 0), (1, 1)]).get_curve()
        mapped = snapshot.remap(100.0, 300.0)
        assert isinstance(mapped, RangeMappedCurve)
        assert mapped(0.0) == pytest.approx(100.0)
        assert mapped(0.5) == pytest.approx(200.0)
        assert mapped(1.0) == pytest.approx(300.0)

    def test_snapshot_control_values_read_only(self):
        snapshot = BezierCurve([(0, 0.2), (0.5, 0.7), (1, 0.4)]).get_curve()
        np.testing.assert_array_equal(snapshot.ys, [0.2, 0.7, 0.4])
        with pytest.raises(ValueError):
            snapshot.ys[0] = 1.0

    def test_bernstein_form(self):
        snapshot = BezierCurve([(0, 0.2), (1, 0.4)]).get_curve()
        ys, low, high = bernstein_form(snapshot.remap(5.0, 9.0))
        assert ys is snapshot.ys
        assert (low, high) == (5.0, 9.0)
        assert bernstein_form(snapshot)[1:] == (0.0, 1.0)
        assert bernstein_form(lambda u: u) is None
        assert bernstein_form(None) is None
