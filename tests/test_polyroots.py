import pytest

from jugglelayout.polyroots import bracket_open_interval, eval_monic, find_root, real_roots


class TestRealRoots:
    def test_linear(self):
        assert real_roots([-3.0], 1) == pytest.approx([3.0])

    def test_quadratic(self):
        assert sorted(real_roots([2.0, -3.0], 2)) == pytest.approx([1.0, 2.0])
        assert real_roots([1.0, 0.0], 2) == []

    def test_cubic_three_roots(self):
        # (x-1)(x-2)(x-3)
        assert sorted(real_roots([-6.0, 11.0, -6.0], 3)) == pytest.approx([1.0, 2.0, 3.0])

    def test_cubic_one_root(self):
        # (x-2)(x^2+1)
        assert real_roots([-2.0, 1.0, -2.0], 3) == pytest.approx([2.0])

    def test_quartic(self):
        # (x-1)(x-2)(x-3)(x-4)
        roots = sorted(real_roots([24.0, -50.0, 35.0, -10.0], 4))
        assert roots == pytest.approx([1.0, 2.0, 3.0, 4.0], abs=1e-5)

    def test_quartic_without_real_roots(self):
        # x^4 + 1
        assert real_roots([1.0, 0.0, 0.0, 0.0], 4) == []

    def test_quartic_two_roots(self):
        # (x^2-4)(x^2+1) = x^4 - 3x^2 - 4
        roots = sorted(real_roots([-4.0, 0.0, -3.0, 0.0], 4))
        assert roots == pytest.approx([-2.0, 2.0], abs=1e-5)


class TestHelpers:
    def test_eval_monic(self):
        # x^2 + 2x + 3 at x = 2
        assert eval_monic([3.0, 2.0], 2, 2.0) == pytest.approx(11.0)

    def test_bracket_and_bisect(self):
        coef = [-10.0]   # x - 10
        hi = bracket_open_interval(coef, 1, 0.0, True)
        assert eval_monic(coef, 1, hi) > 0.0
        assert find_root(coef, 1, 0.0, hi) == pytest.approx(10.0, abs=1e-5)
