# paths.py
# ------------------------------------------------------------
# Prop flight paths between a throw and the following catch.
#
# - Path: start/end coordinate + time, velocity and extrema interface
# - TossPath: single parabola (modifier: g)
# - BouncePath: one or more bounces off a horizontal plane
#   (modifiers: bounces, forced, hyper, bounceplane, bouncefrac, g)
#
# Usage:
#   p = new_path("bounce")
#   p.init_path("bounces=2;forced=true")
#   p.set_start(start_xyz, t0); p.set_end(end_xyz, t1)
#   p.calc_path()
# ------------------------------------------------------------

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from .config import (
    BOUNCEFRAC_DEFAULT, BOUNCEPLANE_DEFAULT, BOUNCES_DEFAULT, FORCED_DEFAULT,
    G_DEFAULT, HYPER_DEFAULT, LOGGER_NAME,
)
from .errors import LayoutInternalError, PatternError
from .polyroots import real_roots

logger = logging.getLogger(LOGGER_NAME)

MIN_DURATION_TOLERANCE = 1e-4


# ----------------------------
# Modifier strings
# ----------------------------

def parse_mod(mod: Optional[str]) -> Dict[str, str]:
    """
    "name=value;name=value" -> {name.lower(): value}, later names win.

    Tokens without '=' that are not blank raise PatternError.
    """
    params: Dict[str, str] = {}
    if mod is None:
        return params

    for token in mod.replace("\n", "").replace("\r", "").split(";"):
        index = token.find("=")
        if index > 0:
            name = token[:index].strip()
            value = token[index + 1:].strip()
            if name:
                params[name.lower()] = value
        elif token.strip():
            raise PatternError(f"Parameter '{token.strip()}' has no value")
    return params


def _parse_float(name: str, value: str) -> float:
    try:
        x = float(value)
    except ValueError:
        raise PatternError(f"Number format error in '{name}' modifier: '{value}'") from None
    if not math.isfinite(x):
        raise PatternError(f"Number format error in '{name}' modifier: '{value}'")
    return x


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise PatternError(f"Number format error in '{name}' modifier: '{value}'") from None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


# ----------------------------
# Base
# ----------------------------

class Path:
    type_name = "Path"

    def __init__(self):
        self.start_coord: Optional[np.ndarray] = None
        self.end_coord: Optional[np.ndarray] = None
        self.start_time = 0.0
        self.end_time = 0.0
        self.mod: Optional[str] = None

    def set_start(self, position, t: float):
        self.start_coord = np.asarray(position, dtype=float).reshape(3)
        self.start_time = float(t)

    def set_end(self, position, t: float):
        self.end_coord = np.asarray(position, dtype=float).reshape(3)
        self.end_time = float(t)

    def init_path(self, mod: Optional[str] = None):
        raise NotImplementedError

    def calc_path(self):
        raise NotImplementedError

    def _require_endpoints(self):
        if self.start_coord is None or self.end_coord is None:
            raise LayoutInternalError(f"{self.type_name} path: endpoints not set")
        if not self.duration > 0.0:
            raise LayoutInternalError(f"{self.type_name} path: duration must be > 0, got {self.duration}")

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def min_duration(self) -> float:
        raise NotImplementedError

    @property
    def start_velocity(self) -> np.ndarray:
        raise NotImplementedError

    @property
    def end_velocity(self) -> np.ndarray:
        raise NotImplementedError

    def coordinate(self, t: float) -> np.ndarray:
        """Position at time t (clamped to the flight interval)."""
        t = min(max(t, self.start_time), self.end_time)
        return self._coordinate(t - self.start_time)

    def _coordinate(self, t: float) -> np.ndarray:
        raise NotImplementedError

    # ----------------------------
    # Extrema
    # ----------------------------

    def _check(self, result: Optional[np.ndarray], t: float, findmax: bool) -> np.ndarray:
        loc = self.coordinate(t)
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
    def max(self) -> np.ndarray:
        return self._extremum(self.start_time, self.end_time, True)

    @property
    def min(self) -> np.ndarray:
        return self._extremum(self.start_time, self.end_time, False)

    def __str__(self) -> str:
        mod = f" [{self.mod}]" if self.mod else ""
        return f"{self.type_name}{mod} t=[{self.start_time:.4f}, {self.end_time:.4f}]"


# ----------------------------
# Toss
# ----------------------------

class TossPath(Path):
    type_name = "Toss"

    def __init__(self):
        super().__init__()
        self.g = G_DEFAULT
        self.az = -0.5 * G_DEFAULT
        self.bx = self.cx = 0.0
        self.by = self.cy = 0.0
        self.bz = self.cz = 0.0

    def init_path(self, mod: Optional[str] = None):
        g = G_DEFAULT
        for name, value in parse_mod(mod).items():
            if name == "g":
                g = _parse_float("g", value)
            else:
                raise PatternError(f"Bad modifier for toss path: '{name}'")
        self.mod = mod
        self.g = g
        self.az = -0.5 * g

    def calc_path(self):
        self._require_endpoints()
        start, end = self.start_coord, self.end_coord
        T = self.duration
        self.cx = start[0]
        self.bx = (end[0] - start[0]) / T
        self.cy = start[1]
        self.by = (end[1] - start[1]) / T
        self.cz = start[2]
        self.bz = (end[2] - start[2]) / T - self.az * T

    @property
    def min_duration(self) -> float:
        return 0.0

    @property
    def start_velocity(self) -> np.ndarray:
        return np.array([self.bx, self.by, self.bz])

    @property
    def end_velocity(self) -> np.ndarray:
        return np.array([self.bx, self.by, self.bz + 2.0 * self.az * self.duration])

    def _coordinate(self, t: float) -> np.ndarray:
        return np.array([self.cx + self.bx * t, self.cy + self.by * t, self.cz + t * (self.bz + self.az * t)])

    def _extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        tlow = max(self.start_time, t1)
        thigh = min(self.end_time, t2)
        result = self._check(None, tlow, findmax)
        result = self._check(result, thigh, findmax)

        # vertex of the parabola
        if (self.az < 0.0) if findmax else (self.az > 0.0):
            te = -self.bz / (2.0 * self.az) + self.start_time
            if tlow < te < thigh:
                result = self._check(result, te, findmax)
        return result


# ----------------------------
# Bounce
# ----------------------------

class BouncePath(Path):
    """
    Path bouncing `bounces` times off the plane z = bounceplane.

    Each bounce keeps `bouncefrac` of the kinetic energy, so the rebound
    speed scales by sqrt(bouncefrac). A forced throw starts downward; a
    hyper bounce is caught with the same (lift/forced) sense as the throw.
    If the duration is too short for all the bounces, fewer are used.
    """
    type_name = "Bounce"

    def __init__(self):
        super().__init__()
        self.bounces = BOUNCES_DEFAULT
        self.forced = FORCED_DEFAULT
        self.hyper = HYPER_DEFAULT
        self.bounceplane = BOUNCEPLANE_DEFAULT
        self.bouncefrac = BOUNCEFRAC_DEFAULT
        self.g = G_DEFAULT
        self.bouncefracsqrt = math.sqrt(BOUNCEFRAC_DEFAULT)
        self.numbounces = 0
        self._alloc()

    def _alloc(self):
        n = self.bounces + 1
        self.az = np.full(n, -0.5 * self.g)
        self.bz = np.zeros(n)
        self.cz = np.zeros(n)
        self.endtime = np.zeros(n)
        self.bx = self.cx = 0.0
        self.by = self.cy = 0.0

    def init_path(self, mod: Optional[str] = None):
        bounces = BOUNCES_DEFAULT
        forced = FORCED_DEFAULT
        hyper = HYPER_DEFAULT
        bounceplane = BOUNCEPLANE_DEFAULT
        bouncefrac = BOUNCEFRAC_DEFAULT
        g = G_DEFAULT

        for name, value in parse_mod(mod).items():
            if name == "bounces":
                bounces = _parse_int("bounces", value)
            elif name == "forced":
                forced = _parse_bool(value)
            elif name == "hyper":
                hyper = _parse_bool(value)
            elif name == "bounceplane":
                bounceplane = _parse_float("bounceplane", value)
            elif name == "bouncefrac":
                bouncefrac = _parse_float("bouncefrac", value)
            elif name == "g":
                g = _parse_float("g", value)
            else:
                raise PatternError(f"Bad modifier for bounce path: '{name}'")

        if bounces < 1:
            raise PatternError(f"Bounce path needs bounces >= 1, got {bounces}")
        if not bouncefrac > 0.0:
            raise PatternError(f"Bounce path needs bouncefrac > 0, got {bouncefrac}")

        self.mod = mod
        self.bounces = bounces
        self.forced = forced
        self.hyper = hyper
        self.bounceplane = bounceplane
        self.bouncefrac = bouncefrac
        self.bouncefracsqrt = math.sqrt(bouncefrac)
        self.g = g
        self._alloc()

    # ----------------------------
    # Solver
    # ----------------------------

    def _solve_bounce_equation(self, n: int, duration: float) -> List[Tuple[float, bool]]:
        """
        Throw velocities v0 giving `n` bounces in `duration`.

        Solves  g*T = v0 + k*sqrt(v0^2 + u) +/- f1*sqrt(v0^2 + c)  for v0,
        where the + sign is a lift catch. Squaring twice gives a quartic
        (a cubic for n = 1). Returns (v0, liftcatch) pairs; spurious roots
        with v0^2 + c < 0 are dropped.
        """
        g = self.g
        fs = self.bouncefracsqrt
        f1 = fs ** n
        if fs == 1.0:
            k = 2.0 * n
        else:
            k = 1.0 + f1 + 2.0 * fs * (1.0 - f1 / fs) / (1.0 - fs)
        u = 2.0 * g * (self.start_coord[2] - self.bounceplane)
        l = 2.0 * g * (self.end_coord[2] - self.bounceplane)
        f2 = f1 * f1
        c = u - l / f2
        kk = k * k
        gt = g * duration

        coef = [0.0] * 5
        coef[4] = 1 + kk * kk + f2 * f2 - 2 * kk - 2 * f2 - 2 * kk * f2
        coef[3] = -4 * gt + 4 * f2 * gt + 4 * kk * gt
        coef[2] = ((6 * gt * gt + 2 * kk * kk * u + 2 * f2 * f2 * c) - 2 * f2 * c
                   - 2 * f2 * gt * gt - 2 * kk * gt * gt - 2 * kk * u - 2 * kk * f2 * c - 2 * kk * f2 * u)
        coef[1] = -4 * gt * gt * gt + 4 * f2 * gt * c + 4 * kk * gt * u
        coef[0] = ((gt ** 4 + kk * kk * u * u + f2 * f2 * c * c) - 2 * gt * gt * f2 * c
                   - 2 * kk * gt * gt * u - 2 * kk * f2 * u * c)

        if n > 1:
            roots = real_roots([coef[i] / coef[4] for i in range(4)], 4)
        else:
            # coef[4] vanishes for a single bounce
            roots = real_roots([coef[i] / coef[3] for i in range(3)], 3)

        result = []
        for v0 in roots:
            if v0 * v0 + c >= 0.0:
                liftcatch = (gt - v0 - k * math.sqrt(max(v0 * v0 + u, 0.0))) > 0.0
                result.append((v0, liftcatch))
        return result

    def _select_root(self, roots: List[Tuple[float, bool]]) -> float:
        forced, hyper = self.forced, self.hyper

        # 1: both preferences
        for v0, lift in roots:
            if forced == (v0 < 0.0) and hyper == (lift != forced):
                return v0
        # 2: forced only
        for v0, lift in roots:
            if forced == (v0 < 0.0):
                return v0
        # 3: hyper only
        for v0, lift in roots:
            if hyper == (lift != (v0 < 0.0)):
                return v0
        return roots[0][0]

    def calc_path(self):
        self._require_endpoints()
        start, end = self.start_coord, self.end_coord
        duration = self.duration

        for n in range(self.bounces, 0, -1):
            roots = self._solve_bounce_equation(n, duration)
            if not roots:
                continue

            v0 = self._select_root(roots)
            self.numbounces = n
            az, bz, cz, et = self.az, self.bz, self.cz, self.endtime

            bz[0] = v0
            cz[0] = start[2]
            disc = max(v0 * v0 - 4.0 * az[0] * (cz[0] - self.bounceplane), 0.0)
            if az[0] < 0.0:
                et[0] = (-v0 - math.sqrt(disc)) / (2.0 * az[0])
            else:
                et[0] = (-v0 + math.sqrt(disc)) / (2.0 * az[0])
            vrebound = (-v0 - 2.0 * az[0] * et[0]) * self.bouncefracsqrt

            for i in range(1, n + 1):
                bz[i] = vrebound - 2.0 * az[i] * et[i - 1]
                cz[i] = self.bounceplane - az[i] * et[i - 1] ** 2 - bz[i] * et[i - 1]
                et[i] = et[i - 1] - vrebound / az[i]
                vrebound *= self.bouncefracsqrt
            et[n] = duration

            self.cx = start[0]
            self.bx = (end[0] - start[0]) / duration
            self.cy = start[1]
            self.by = (end[1] - start[1]) / duration

            if n < self.bounces:
                logger.debug(f"[BOUNCE] {self.bounces} bounce(s) not feasible in {duration:.4f}s, using {n}")
            return

        raise LayoutInternalError(
            f"No root found in bounce path (bounces={self.bounces}, duration={duration:.4f}, "
            f"start z={start[2]:.2f}, end z={end[2]:.2f})"
        )

    def _is_feasible_duration(self, duration: float) -> bool:
        for v0, lift in self._solve_bounce_equation(self.bounces, duration):
            if self.forced == (v0 < 0.0) and self.hyper == (lift != self.forced):
                return True
        return False

    @property
    def min_duration(self) -> float:
        if self.bounces == 1 and self.hyper and self.forced:
            # single hyperforce bounce
            return 0.0

        dlower, dupper = 0.0, 1.0
        while not self._is_feasible_duration(dupper):
            dlower = dupper
            dupper *= 2.0
            if dupper > 1e6:
                raise LayoutInternalError(f"No feasible duration for bounce path [{self.mod}]")
        while dupper - dlower > MIN_DURATION_TOLERANCE:
            davg = 0.5 * (dlower + dupper)
            if self._is_feasible_duration(davg):
                dupper = davg
            else:
                dlower = davg
        return dupper

    # ----------------------------
    # Queries
    # ----------------------------

    @property
    def start_velocity(self) -> np.ndarray:
        return np.array([self.bx, self.by, self.bz[0]])

    @property
    def end_velocity(self) -> np.ndarray:
        nb = self.numbounces
        return np.array([self.bx, self.by, self.bz[nb] + 2.0 * self.az[nb] * self.duration])

    def _segment(self, t: float) -> int:
        for i in range(self.numbounces + 1):
            if t < self.endtime[i] or i == self.numbounces:
                return i
        return self.numbounces

    def _coordinate(self, t: float) -> np.ndarray:
        i = self._segment(t)
        z = self.cz[i] + t * (self.bz[i] + self.az[i] * t)
        return np.array([self.cx + self.bx * t, self.cy + self.by * t, z])

    def _extremum(self, t1: float, t2: float, findmax: bool) -> np.ndarray:
        st = self.start_time
        nb = self.numbounces
        tlow = max(st, t1)
        thigh = min(self.end_time, t2)
        result = self._check(None, tlow, findmax)
        result = self._check(result, thigh, findmax)

        def vertex_sign_ok(i):
            return self.az[i] < 0.0 if findmax else self.az[i] > 0.0

        # vertex of each parabolic piece, inside its own interval
        for i in range(nb + 1):
            if not vertex_sign_ok(i):
                continue
            te = -self.bz[i] / (2.0 * self.az[i]) + st
            lo = tlow if i == 0 else max(tlow, st + self.endtime[i - 1])
            hi = thigh if i == nb else min(thigh, st + self.endtime[i])
            if lo < te < hi:
                result = self._check(result, te, findmax)

        # bounce instants
        for i in range(nb):
            tb = st + self.endtime[i]
            if tlow < tb < thigh:
                result = self._check(result, tb, findmax)
        return result

    def bounce_volume(self, t1: float, t2: float) -> float:
        """1.0 if a bounce happens in [t1, t2], else 0.0."""
        if t2 < self.start_time or t1 > self.end_time:
            return 0.0
        t1 -= self.start_time
        t2 -= self.start_time
        for i in range(self.numbounces):
            if t1 < self.endtime[i]:
                return 1.0 if t2 > self.endtime[i] else 0.0
        return 0.0

    def bounce_times(self) -> np.ndarray:
        """Absolute times of the bounces."""
        return self.start_time + self.endtime[:self.numbounces]


# ----------------------------
# Factory
# ----------------------------

PATH_TYPES = {
    "toss": TossPath,
    "bounce": BouncePath,
}


def new_path(type_name: Optional[str]) -> Path:
    cls = PATH_TYPES.get((type_name or "toss").strip().lower())
    if cls is None:
        raise PatternError(f"Path type '{type_name}' not recognized")
    return cls()
