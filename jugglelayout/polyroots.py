# polyroots.py
# ------------------------------------------------------------
# Real roots of monic polynomials
#
#   c0 + c1*x + ... + c(n-1)*x^(n-1) + x^n = 0
#
# coef holds c0..c(n-1); the leading coefficient is implicit.
#
# - degree 1, 2: direct
# - degree 3: trigonometric / Cardano (Numerical Recipes)
# - degree >= 4: real roots of the derivative bracket the monotonic
#   intervals, then bisection on each sign change
# ------------------------------------------------------------

from __future__ import annotations

import math
from typing import List, Sequence

ROOT_TOLERANCE = 1e-6


def eval_monic(coef: Sequence[float], degree: int, x: float) -> float:
    result = coef[0]
    term = x
    for i in range(1, degree):
        result += coef[i] * term
        term *= x
    return result + term


def bracket_open_interval(coef: Sequence[float], degree: int, endpoint: float, toward_pinf: bool) -> float:
    """
    Step away from `endpoint` with doubling steps until the sign changes.
    [endpoint, returned value] then brackets a zero.
    """
    endpoint_positive = eval_monic(coef, degree, endpoint) > 0.0
    result = endpoint
    adder = 1.0 if toward_pinf else -1.0

    while True:
        result += adder
        adder *= 2.0
        if (eval_monic(coef, degree, result) > 0.0) != endpoint_positive:
            return result


def find_root(coef: Sequence[float], degree: int, xlow: float, xhigh: float) -> float:
    """Bisection on [xlow, xhigh] to ROOT_TOLERANCE."""
    val1 = eval_monic(coef, degree, xlow)
    val2 = eval_monic(coef, degree, xhigh)

    if val1 * val2 > 0.0:
        # not a bracket
        return 0.5 * (xlow + xhigh)

    while abs(xlow - xhigh) > ROOT_TOLERANCE:
        t = 0.5 * (xlow + xhigh)
        valtemp = eval_monic(coef, degree, t)
        if valtemp * val1 > 0.0:
            xlow = t
            val1 = valtemp
        else:
            xhigh = t
    return xlow


def _cubic_roots(c0: float, c1: float, c2: float) -> List[float]:
    q = c2 * c2 / 9.0 - c1 / 3.0
    r = c2 * c2 * c2 / 27.0 - c1 * c2 / 6.0 + c0 / 2.0
    disc = r * r - q * q * q

    if disc > 0.0:
        k = (math.sqrt(disc) + abs(r)) ** (1.0 / 3.0)
        root = -(k + q / k) if r > 0.0 else (k + q / k)
        return [root - c2 / 3.0]

    if q <= 0.0:
        # triple root
        return [-c2 / 3.0]

    ratio = max(-1.0, min(1.0, r / math.sqrt(q * q * q)))
    theta = math.acos(ratio) / 3.0
    k = -2.0 * math.sqrt(q)
    p = 2.0 * math.pi / 3.0
    return [
        k * math.cos(theta) - c2 / 3.0,
        k * math.cos(theta + p) - c2 / 3.0,
        k * math.cos(theta + 2.0 * p) - c2 / 3.0,
    ]


def real_roots(coef: Sequence[float], degree: int) -> List[float]:
    """Real roots of the monic polynomial; repeated roots may appear once."""
    coef = [float(c) for c in coef[:degree]]

    if degree <= 0:
        return []
    if degree == 1:
        return [-coef[0]]
    if degree == 2:
        disc = coef[1] * coef[1] - 4.0 * coef[0]
        if disc < 0.0:
            return []
        if disc == 0.0:
            return [-0.5 * coef[1]]
        t = math.sqrt(disc)
        return [-0.5 * (coef[1] + t), -0.5 * (coef[1] - t)]
    if degree == 3:
        return _cubic_roots(coef[0], coef[1], coef[2])

    # derivative, scaled to be monic again
    dcoef = [(i + 1) * coef[i + 1] / degree for i in range(degree - 1)]
    extrema = sorted(real_roots(dcoef, degree - 1))

    pinf_positive = True
    minf_positive = degree % 2 == 0
    roots: List[float] = []

    if not extrema:
        zero_positive = coef[0] > 0.0
        if zero_positive != pinf_positive:
            end2 = bracket_open_interval(coef, degree, 0.0, True)
            roots.append(find_root(coef, degree, 0.0, end2))
        if zero_positive != minf_positive:
            end2 = bracket_open_interval(coef, degree, 0.0, False)
            roots.append(find_root(coef, degree, end2, 0.0))
        return roots

    positive = [eval_monic(coef, degree, x) > 0.0 for x in extrema]

    if minf_positive != positive[0]:
        end2 = bracket_open_interval(coef, degree, extrema[0], False)
        roots.append(find_root(coef, degree, end2, extrema[0]))

    for i in range(len(extrema) - 1):
        if positive[i] != positive[i + 1]:
            roots.append(find_root(coef, degree, extrema[i], extrema[i + 1]))

    if pinf_positive != positive[-1]:
        end2 = bracket_open_interval(coef, degree, extrema[-1], True)
        roots.append(find_root(coef, degree, extrema[-1], end2))

    return roots
