# curves.py
# ------------------------------------------------------------
# Knot-based 3D curves used for hand motion and juggler bodies.
#
# - Curve: common knot storage, extrema clipping, coordinate helpers
# - SplineCurve: piecewise cubic matched to positions and (optional)
#   velocities at the knots
# - LineCurve: piecewise linear through the knots
# ------------------------------------------------------------

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .errors import LayoutInternalError


# ----------------------------
# Coordinate helpers
# ----------------------------

def coord_max(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> Optional[np.ndarray]:
    """Elementwise max; None counts as absent."""
    if a is None:
        return None if b is None else np.array(b, dtype=float)
    if b is None:
        return np.array(a, dtype=float)
    return np.maximum(a, b)


def coord_min(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if a is None:
        return None if b is None else np.array(b, dtype=float)
    if b is None:
        return np.array(a, dtype=float)
    return np.minimum(a, b)


# ----------------------------
# Base
# ----------------------------

class Curve:
    def __init__(self):
        self.numpoints = 0
        self.times = np.zeros(0)
        self.positions = np.zeros((0, 3))
        self.velocities: List[Optional[np.ndarray]] = []

    def set_curve(self, times: Sequence[float], positions: Sequence, velocities: Sequence):
        if len(times) != len(positions) or len(times) != len(velocities):
            raise LayoutInternalError(
                f"Curve knots mismatch: {len(times)} times, {len(positions)} positions, "
                f"{len(velocities)} velocities"
            )
        self.numpoints = len(times)
        self.times = np.asarray(times, dtype=float)
        self.positions = np.asarray(positions, dtype=float).reshape(self.numpoints, 3)
        self.velocities = [None if v is None else np.asarray(v, dtype=float).reshape(3) for v in velocities]

    def calc_curve(self):
        raise NotImplementedError

    def _durations(self) -> np.ndarray:
        n = self.numpoints - 1
        if n < 1:
            raise LayoutInternalError(f"{type(self).__name__} needs at least 2 knots, got {self.numpoints}")
        durations = np.diff(self.times)
        if np.any(durations <= 0.0):
            raise LayoutInternalError(f"{type(self).__name__} knot times not increasing: {self.times.tolist()}")
        return durations

    @property
    def start_time(self) -> float:
        return float(self.times[0])

    @property
    def end_time(self) -> float:
        return float(self.times[-1])

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def _segment(self, t: float) -> int:
        n = self.numpoints - 1
        i = 0
        while i < n and t > self.times[i + 1]:
            i += 1
        return min(i, n - 1)

    def coordinate(self, t: float) -> np.ndarray:
        """Position at time t, clamped to [start_time, end_time]."""
        t = min(max(t, self.start_time), self.end_time)
        return self._coordinate(t)

    def _coordinate(self, t: float) -> np.ndarray:
        raise NotImplementedError

    # ----------------------------
    # Extrema
    # ----------------------------

    def _check(self, result: Optional[np.ndarray], t: float, findmax: bool) -> np.ndarray:
        loc = self._coordinate(t)
        if result is None:
            return loc
        return np.maximum(result, loc) if findmax else np.minimum(result, loc)

    def _extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        raise NotImplementedError

    def get_max(self, t1: float, t2: float) -> Optional[np.ndarray]:
        if t2 < self.start_time or t1 > self.end_time:
            return None
        return self._extremum(t1, t2, True)

    def get_min(self, t1: float, t2: float) -> Optional[np.ndarray]:
        if t2 < self.start_time or t1 > self.end_time:
            return None
        return self._extremum(t1, t2, False)

    @property
    def max(self) -> Optional[np.ndarray]:
        return self.get_max(self.start_time, self.end_time)

    @property
    def min(self) -> Optional[np.ndarray]:
        return self.get_min(self.start_time, self.end_time)

    def _knot_extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        tlow = max(self.start_time, t1)
        thigh = min(self.end_time, t2)
        result = self._check(None, tlow, findmax)
        result = self._check(result, thigh, findmax)
        for t in self.times:
            if tlow <= t <= thigh:
                result = self._check(result, float(t), findmax)
        return result


# ----------------------------
# Spline
# ----------------------------

class SplineCurve(Curve):
    """
    Piecewise cubic through the knots, C1 at every knot.

    Edge velocities that are given are matched exactly. Interior velocities
    that are given are treated as catch directions: the hand velocity there
    is parallel to them. Remaining velocities minimise the RMS acceleration.
    If either edge velocity is missing, the curve is closed (v[n] = v[0]) and
    every velocity is solved for.
    """

    def __init__(self):
        super().__init__()
        self.n = 0
        self.a = np.zeros((0, 3))
        self.b = np.zeros((0, 3))
        self.c = np.zeros((0, 3))
        self.d = np.zeros((0, 3))

    def calc_curve(self):
        durations = self._durations()
        n = self.n = self.numpoints - 1
        x = self.positions
        vel = [None if v is None else v.copy() for v in self.velocities]

        if vel[0] is not None and vel[n] is not None:
            vel = find_vels_edges_known(durations, x, vel)
        else:
            vel = find_vels_edges_unknown(durations, x)

        v = np.array(vel, dtype=float)
        T = durations[:, None]
        dx = x[1:] - x[:-1]
        self.a = x[:-1].copy()
        self.b = v[:-1].copy()
        self.c = (3.0 * dx - (v[1:] + 2.0 * v[:-1]) * T) / T**2
        self.d = (-2.0 * dx + (v[1:] + v[:-1]) * T) / T**3
        self.velocities = [row.copy() for row in v]

    def _coordinate(self, t: float) -> np.ndarray:
        i = self._segment(t)
        dt = t - self.times[i]
        return self.a[i] + dt * (self.b[i] + dt * (self.c[i] + dt * self.d[i]))

    def velocity(self, t: float) -> np.ndarray:
        t = min(max(t, self.start_time), self.end_time)
        i = self._segment(t)
        dt = t - self.times[i]
        return self.b[i] + dt * (2.0 * self.c[i] + 3.0 * dt * self.d[i])

    def _extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        tlow = max(self.start_time, t1)
        thigh = min(self.end_time, t2)
        result = self._knot_extremum(t1, t2, findmax)

        for i in range(self.n):
            lo = max(tlow, self.times[i])
            hi = min(thigh, self.times[i + 1])
            if not lo < hi:
                continue
            result = self._check(result, lo, findmax)
            result = self._check(result, hi, findmax)

            for axis in range(3):
                b, c, d = self.b[i, axis], self.c[i, axis], self.d[i, axis]
                if abs(d) > 1e-6:
                    k = c * c - 3.0 * b * d
                    if k > 0.0:
                        root = -np.sqrt(k) if findmax else np.sqrt(k)
                        te = self.times[i] + (-c + root) / (3.0 * d)
                        if lo <= te <= hi:
                            result = self._check(result, float(te), findmax)
                elif (c < 0.0) if findmax else (c > 0.0):
                    te = self.times[i] - b / (2.0 * c)
                    if lo <= te <= hi:
                        result = self._check(result, float(te), findmax)
        return result


def find_vels_edges_known(t: np.ndarray, x: np.ndarray, v: List[Optional[np.ndarray]]) -> List[np.ndarray]:
    """
    Interior velocities v[1]..v[n-1] from known v[0] and v[n].

    Minimises RMS acceleration. Interior entries of `v` that are not None
    are catch velocities; the hand velocity there must be parallel to them,
    imposed as two cross-product constraints per catch with Lagrange
    multipliers. All three axes go into one linear system.
    """
    n = len(t)
    v = list(v)
    if n < 2:
        return v

    catches = [i for i in range(n - 1) if v[i + 1] is not None]
    m1 = n - 1
    dim = 3 * m1 + 2 * len(catches)
    M = np.zeros((dim, dim))
    rhs = np.zeros(dim)

    for axis in range(3):
        v0 = v[0][axis]
        vn = v[n][axis]
        for i in range(n - 1):
            idx = i + axis * m1
            M[idx, idx] = 2.0 / t[i] + 2.0 / t[i + 1]
            offdiag = 0.0 if i == n - 2 else 1.0 / t[i + 1]
            if idx < 3 * m1 - 1:
                M[idx, idx + 1] = offdiag
                M[idx + 1, idx] = offdiag

            rhs[idx] = (3.0 * (x[i + 2, axis] - x[i + 1, axis]) / t[i + 1]**2
                        + 3.0 * (x[i + 1, axis] - x[i, axis]) / t[i]**2)
            if i == 0:
                rhs[idx] -= v0 / t[0]
            if i == n - 2:
                rhs[idx] -= vn / t[n - 1]

    def put(row, col, value):
        M[row, col] = value
        M[col, row] = value

    for catchnum, i in enumerate(catches):
        index = 3 * m1 + 2 * catchnum
        c0, c1, c2 = v[i + 1]

        if abs(c1) >= max(abs(c0), abs(c2)):
            largeaxis = 1
        elif abs(c2) >= max(abs(c0), abs(c1)):
            largeaxis = 2
        else:
            largeaxis = 0

        if largeaxis == 0:
            put(index, i, c2)
            put(index + 1, i, c1)
            put(index + 1, i + m1, -c0)
            put(index, i + 2 * m1, -c0)
        elif largeaxis == 1:
            put(index + 1, i, c1)
            put(index, i + m1, c2)
            put(index + 1, i + m1, -c0)
            put(index, i + 2 * m1, -c1)
        else:
            put(index + 1, i, c2)
            put(index, i + m1, c2)
            put(index, i + 2 * m1, -c1)
            put(index + 1, i + 2 * m1, -c0)

    try:
        sol = np.linalg.solve(M, rhs)
    except np.linalg.LinAlgError as err:
        raise LayoutInternalError(f"Spline velocity system is singular (n={n}, catches={len(catches)})") from err

    for i in range(n - 1):
        v[i + 1] = np.array([sol[i], sol[i + m1], sol[i + 2 * m1]])
    return v


def find_vels_edges_unknown(t: np.ndarray, x: np.ndarray) -> List[np.ndarray]:
    """
    Velocities v[0]..v[n] for a closed curve, v[n] = v[0].

    Cyclic system (nonzero corners), one axis at a time.
    """
    n = len(t)
    A = np.zeros((n, n))
    for i in range(n):
        tp = t[i - 1]   # t[-1] wraps to the last segment
        A[i, i] += 2.0 / tp + 2.0 / t[i]
        A[i, (i - 1) % n] += 1.0 / tp
        A[i, (i + 1) % n] += 1.0 / t[i]

    vel = np.zeros((n + 1, 3))
    for axis in range(3):
        rhs = np.zeros(n)
        for i in range(n):
            if i == 0:
                prev = x[n, axis] - x[n - 1, axis]
            else:
                prev = x[i, axis] - x[i - 1, axis]
            rhs[i] = 3.0 * (x[i + 1, axis] - x[i, axis]) / t[i]**2 + 3.0 * prev / t[i - 1]**2
        try:
            vel[:n, axis] = np.linalg.solve(A, rhs)
        except np.linalg.LinAlgError as err:
            raise LayoutInternalError(f"Closed spline velocity system is singular (n={n})") from err

    vel[n] = vel[0]
    return list(vel)


# ----------------------------
# Line
# ----------------------------

class LineCurve(Curve):
    def __init__(self):
        super().__init__()
        self.n = 0
        self.a = np.zeros((0, 3))
        self.b = np.zeros((0, 3))

    def calc_curve(self):
        durations = self._durations()
        self.n = self.numpoints - 1
        self.a = self.positions[:-1].copy()
        self.b = (self.positions[1:] - self.positions[:-1]) / durations[:, None]

    def _coordinate(self, t: float) -> np.ndarray:
        i = self._segment(t)
        return self.a[i] + (t - self.times[i]) * self.b[i]

    def _extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        # linear segments: extremes sit on knots or the interval ends
        return self._knot_extremum(t1, t2, findmax)
