import numpy as np
import pytest

from jugglelayout.curves import LineCurve, SplineCurve, coord_max, coord_min
from jugglelayout.errors import LayoutInternalError


def spline(times, positions, velocities):
    c = SplineCurve()
    c.set_curve(times, positions, velocities)
    c.calc_curve()
    return c


class TestSplineCurve:
    def test_straight_line_with_matching_edges(self):
        c = spline([0.0, 1.0], [(0, 0, 0), (1, 0, 0)], [(1, 0, 0), (1, 0, 0)])
        np.testing.assert_allclose(c.coordinate(0.5), [0.5, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(c.velocity(0.25), [1.0, 0.0, 0.0], atol=1e-12)

    def test_passes_through_knots(self):
        pts = [(0, 0, 0), (10, 5, 2), (20, 0, 8), (25, -5, 0)]
        c = spline([0.0, 0.3, 0.7, 1.0], pts, [(0, 0, 50), None, None, (0, 0, -50)])
        for t, p in zip([0.0, 0.3, 0.7, 1.0], pts):
            np.testing.assert_allclose(c.coordinate(t), p, atol=1e-9)

    def test_edge_velocities_and_c1_continuity(self):
        c = spline([0.0, 0.5, 1.0], [(0, 0, 0), (10, 0, 10), (20, 0, 0)], [(30, 0, 40), None, (30, 0, -40)])
        np.testing.assert_allclose(c.velocity(0.0), [30, 0, 40], atol=1e-9)
        np.testing.assert_allclose(c.velocity(1.0), [30, 0, -40], atol=1e-9)

        # both cubic pieces agree on the velocity at the interior knot
        i = 0
        dt = c.times[1] - c.times[0]
        left = c.b[i] + dt * (2.0 * c.c[i] + 3.0 * dt * c.d[i])
        np.testing.assert_allclose(left, c.b[1], atol=1e-9)

    def test_catch_velocity_sets_direction(self):
        direction = np.array([1.0, 0.0, -1.0])
        c = spline(
            [0.0, 1.0, 2.0],
            [(0, 0, 0), (10, 0, 5), (20, 0, 0)],
            [(10, 0, 10), direction, (10, 0, -10)],
        )
        v = c.velocities[1]
        np.testing.assert_allclose(np.cross(v, direction), [0.0, 0.0, 0.0], atol=1e-8)

    def test_closed_curve(self):
        a, b = (0, 0, 100), (20, 0, 110)
        c = spline([0.0, 0.6, 1.0], [a, b, a], [None, None, None])
        np.testing.assert_allclose(c.velocities[0], c.velocities[-1])
        np.testing.assert_allclose(c.coordinate(0.0), a, atol=1e-9)
        np.testing.assert_allclose(c.coordinate(1.0), a, atol=1e-9)
        assert c.duration == pytest.approx(1.0)

    def test_extrema(self):
        c = spline([0.0, 0.5, 1.0], [(0, 0, 0), (10, 0, 10), (0, 0, 0)], [None, None, None])
        assert c.max[0] >= 10.0
        assert c.min[0] <= 0.0
        assert c.get_max(2.0, 3.0) is None
        assert c.get_min(-3.0, -2.0) is None

    def test_coordinate_clamps(self):
        c = spline([0.0, 1.0], [(0, 0, 0), (1, 0, 0)], [(1, 0, 0), (1, 0, 0)])
        np.testing.assert_allclose(c.coordinate(-5.0), [0, 0, 0], atol=1e-12)
        np.testing.assert_allclose(c.coordinate(5.0), [1, 0, 0], atol=1e-12)

    def test_knot_count_mismatch(self):
        c = SplineCurve()
        with pytest.raises(LayoutInternalError, match="mismatch"):
            c.set_curve([0.0, 1.0], [(0, 0, 0)], [None, None])

    def test_non_increasing_times(self):
        c = SplineCurve()
        c.set_curve([0.0, 0.0], [(0, 0, 0), (1, 0, 0)], [None, None])
        with pytest.raises(LayoutInternalError, match="not increasing"):
            c.calc_curve()


class TestLineCurve:
    def test_interpolates(self):
        c = LineCurve()
        c.set_curve([0.0, 1.0, 3.0], [(0, 0, 0), (10, 0, 0), (10, 20, 0)], [None, None, None])
        c.calc_curve()
        np.testing.assert_allclose(c.coordinate(0.5), [5, 0, 0])
        np.testing.assert_allclose(c.coordinate(2.0), [10, 10, 0])
        np.testing.assert_allclose(c.max, [10, 20, 0])
        np.testing.assert_allclose(c.min, [0, 0, 0])


class TestCoordHelpers:
    def test_none_is_absent(self):
        a = np.array([1.0, -2.0, 3.0])
        b = np.array([0.0, 5.0, 3.5])
        assert coord_max(None, None) is None
        np.testing.assert_allclose(coord_max(None, a), a)
        np.testing.assert_allclose(coord_min(a, None), a)
        np.testing.assert_allclose(coord_max(a, b), [1.0, 5.0, 3.5])
        np.testing.assert_allclose(coord_min(a, b), [0.0, -2.0, 3.0])
