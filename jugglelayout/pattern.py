# pattern.py
# ------------------------------------------------------------
# Pattern record consumed by the layout engine.
#
# - Transition / Event: what a hand does to which path, and when
# - Symmetry: delay, switch and switchdelay symmetries
# - Position: juggler body waypoints
# - Pattern: the whole record, validated on construction
#
# Jugglers, hands and paths are 1-based throughout.
# ------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .config import PROP_DIAMETER_DEFAULT, TIME_DECIMALS
from .errors import PatternError
from .permutation import Permutation, lcm

LEFT_HAND = 1
RIGHT_HAND = 2

THROW = "THROW"
CATCH = "CATCH"
SOFTCATCH = "SOFTCATCH"
GRABCATCH = "GRABCATCH"
HOLDING = "HOLDING"
TRANSITION_KINDS = (THROW, CATCH, SOFTCATCH, GRABCATCH, HOLDING)
CATCH_KINDS = (CATCH, SOFTCATCH, GRABCATCH)

DELAY = "DELAY"
SWITCH = "SWITCH"
SWITCHDELAY = "SWITCHDELAY"
SYMMETRY_KINDS = (DELAY, SWITCH, SWITCHDELAY)


def hand_index(hand: int) -> int:
    """LEFT_HAND -> 0, RIGHT_HAND -> 1."""
    return 0 if hand == LEFT_HAND else 1


def hand_from_index(index: int) -> int:
    return LEFT_HAND if index == 0 else RIGHT_HAND


def hand_name(hand: int) -> str:
    return "left" if hand == LEFT_HAND else "right"


# ----------------------------
# Events
# ----------------------------

@dataclass(frozen=True)
class Transition:
    kind: str                          # one of TRANSITION_KINDS
    path: int
    throw_type: Optional[str] = None   # THROW only: "toss" (default) or "bounce"
    throw_mod: Optional[str] = None    # THROW only: "name=value;name=value"

    def __post_init__(self):
        kind = str(self.kind).upper()
        if kind not in TRANSITION_KINDS:
            raise PatternError(f"Unrecognized transition type '{self.kind}'")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "path", int(self.path))
        if kind == THROW and self.throw_type is None:
            object.__setattr__(self, "throw_type", "toss")

    @property
    def is_throw_or_catch(self) -> bool:
        return self.kind != HOLDING

    @property
    def is_velocity_defining(self) -> bool:
        return self.kind in (THROW, SOFTCATCH)

    def with_path(self, path: int) -> "Transition":
        return Transition(self.kind, path, self.throw_type, self.throw_mod)


@dataclass(frozen=True)
class Event:
    t: float
    juggler: int
    hand: int
    transitions: Tuple[Transition, ...] = ()
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __post_init__(self):
        if self.hand not in (LEFT_HAND, RIGHT_HAND):
            raise PatternError(f"Event hand must be LEFT_HAND or RIGHT_HAND, got {self.hand!r}")
        object.__setattr__(self, "t", float(self.t))
        object.__setattr__(self, "juggler", int(self.juggler))
        object.__setattr__(self, "transitions", tuple(self.transitions))
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "z", float(self.z))

    @property
    def local(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def truncated_time(self) -> float:
        return round(self.t, TIME_DECIMALS)

    def sort_key(self) -> Tuple[float, int, int, float]:
        # right hand sorts before left at equal times
        return (self.truncated_time, self.juggler, -self.hand, self.x)

    def path_transition(self, path: int, kind: Optional[str] = None) -> Optional[Transition]:
        for tr in self.transitions:
            if tr.path == path and (kind is None or tr.kind == kind):
                return tr
        return None

    @property
    def has_throw(self) -> bool:
        return any(tr.kind == THROW for tr in self.transitions)

    @property
    def has_throw_or_catch(self) -> bool:
        return any(tr.is_throw_or_catch for tr in self.transitions)

    def __str__(self) -> str:
        trs = ", ".join(f"{tr.kind.lower()} {tr.path}" for tr in self.transitions)
        return (f"Event(t={self.t:.4f}, {self.juggler}:{hand_name(self.hand)}, "
                f"x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f}, [{trs}])")


# ----------------------------
# Symmetries, positions, props
# ----------------------------

@dataclass(frozen=True)
class Symmetry:
    kind: str
    juggler_perm: Permutation
    path_perm: Permutation
    delay: Optional[float] = None

    def __post_init__(self):
        kind = str(self.kind).upper()
        if kind not in SYMMETRY_KINDS:
            raise PatternError(f"Unrecognized symmetry type '{self.kind}'")
        object.__setattr__(self, "kind", kind)
        if kind == DELAY:
            if self.delay is None or not float(self.delay) > 0.0:
                raise PatternError("Delay symmetry needs a positive delay")
            object.__setattr__(self, "delay", float(self.delay))

    @classmethod
    def from_strings(
            cls,
            kind: str,
            num_jugglers: int,
            num_paths: int,
            jperm: Optional[str] = None,
            pperm: Optional[str] = None,
            delay: Optional[float] = None,
    ) -> "Symmetry":
        jp = Permutation(num_jugglers, reverses=True) if jperm is None else Permutation.parse(num_jugglers, jperm, True)
        pp = Permutation(num_paths) if pperm is None else Permutation.parse(num_paths, pperm, False)
        return cls(kind=kind, juggler_perm=jp, path_perm=pp, delay=delay)


@dataclass(frozen=True)
class Position:
    t: float
    juggler: int
    x: float = 0.0
    y: float = 0.0
    z: float = 100.0
    angle: float = 0.0   # degrees, rotation about the vertical axis

    @property
    def coordinate(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)


@dataclass(frozen=True)
class BallProp:
    diameter: float = PROP_DIAMETER_DEFAULT

    def __post_init__(self):
        if not self.diameter > 0.0:
            raise PatternError("Ball diameter must be > 0")

    @property
    def max(self) -> np.ndarray:
        r = 0.5 * self.diameter
        return np.array([r, 0.0, r])

    @property
    def min(self) -> np.ndarray:
        r = 0.5 * self.diameter
        return np.array([-r, 0.0, -r])


# ----------------------------
# Pattern
# ----------------------------

@dataclass
class Pattern:
    """
    A symmetry-based pattern description: primary events plus symmetries.

    Exactly one DELAY symmetry defines the loop [0, delay) and the path
    permutation relating one loop to the next.
    """
    num_jugglers: int
    num_paths: int
    events: List[Event]
    symmetries: List[Symmetry]
    positions: List[Position] = field(default_factory=list)
    props: List[BallProp] = field(default_factory=lambda: [BallProp()])
    prop_assignment: Optional[List[int]] = None
    title: Optional[str] = None

    def __post_init__(self):
        self.events = list(self.events)
        self.symmetries = list(self.symmetries)
        self.positions = list(self.positions)
        self.props = list(self.props)
        if self.prop_assignment is None:
            self.prop_assignment = [1] * self.num_paths
        else:
            self.prop_assignment = list(self.prop_assignment)
        self._validate()

    def _validate(self):
        if self.num_jugglers < 1:
            raise PatternError("Pattern needs at least one juggler")
        if self.num_paths < 0:
            raise PatternError("Number of paths must be >= 0")

        delays = [s for s in self.symmetries if s.kind == DELAY]
        if len(delays) != 1:
            raise PatternError(f"Pattern must have exactly one delay symmetry, found {len(delays)}")

        for sym in self.symmetries:
            if sym.juggler_perm.size != self.num_jugglers or not sym.juggler_perm.reverses:
                raise PatternError(f"{sym.kind.lower()} symmetry: juggler permutation must be a "
                                   f"reversing permutation of {self.num_jugglers} jugglers")
            if sym.path_perm.size != self.num_paths or sym.path_perm.reverses:
                raise PatternError(f"{sym.kind.lower()} symmetry: path permutation must cover "
                                   f"{self.num_paths} paths")

        if not self.events:
            raise PatternError("Pattern has no events")
        for ev in self.events:
            if not 1 <= ev.juggler <= self.num_jugglers:
                raise PatternError(f"Juggler number {ev.juggler} out of range at t={ev.t}")
            for tr in ev.transitions:
                if not 1 <= tr.path <= self.num_paths:
                    raise PatternError(f"Path number {tr.path} out of range at t={ev.t}")

        for pos in self.positions:
            if not 1 <= pos.juggler <= self.num_jugglers:
                raise PatternError(f"Position juggler number {pos.juggler} out of range")

        if self.num_paths > 0 and not self.props:
            raise PatternError("No props defined")
        if len(self.prop_assignment) != self.num_paths:
            raise PatternError("Prop assignment must list one prop per path")
        for i, p in enumerate(self.prop_assignment):
            if not 1 <= p <= len(self.props):
                raise PatternError(f"Prop number {p} for path {i + 1} out of range")

    # ----------------------------
    # Loop properties
    # ----------------------------

    @property
    def delay_symmetry(self) -> Symmetry:
        return next(s for s in self.symmetries if s.kind == DELAY)

    @property
    def loop_start_time(self) -> float:
        return 0.0

    @property
    def loop_end_time(self) -> float:
        return self.delay_symmetry.delay

    @property
    def loop_duration(self) -> float:
        return self.loop_end_time - self.loop_start_time

    @property
    def path_permutation(self) -> Permutation:
        return self.delay_symmetry.path_perm

    @property
    def num_props(self) -> int:
        return len(self.props)

    def prop_for_path(self, path: int) -> BallProp:
        return self.props[self.prop_assignment[path - 1] - 1]

    @property
    def period_with_props(self) -> int:
        """Loops needed before every path carries its starting prop again."""
        perm = self.path_permutation
        period = 1
        done = [False] * perm.size

        for i in range(perm.size):
            if done[i]:
                continue
            cycle = perm.cycle_of(i + 1)
            for p in cycle:
                done[p - 1] = True
            props = [self.prop_assignment[p - 1] for p in cycle]
            n = len(props)
            for cperiod in range(1, n + 1):
                if n % cperiod != 0:
                    continue
                if all(props[k] == props[(k + cperiod) % n] for k in range(n)):
                    period = lcm(period, cperiod)
                    break
        return period

    @property
    def is_bounce_pattern(self) -> bool:
        return any(
            tr.kind == THROW and (tr.throw_type or "").lower() == "bounce"
            for ev in self.events for tr in ev.transitions
        )

    def summary(self) -> str:
        name = f"'{self.title}', " if self.title else ""
        syms = ", ".join(
            f"{s.kind.lower()} j{s.juggler_perm} p{s.path_perm}" + (f" d={s.delay:g}" if s.kind == DELAY else "")
            for s in self.symmetries
        )
        return (f"{name}{self.num_jugglers} juggler(s), {self.num_paths} path(s), "
                f"{len(self.events)} primary event(s), symmetries [{syms}]")

    # ----------------------------
    # Event traversal (see sequence.py)
    # ----------------------------

    def event_sequence(self, start_time: Optional[float] = None, reverse: bool = False):
        from .sequence import event_sequence
        return event_sequence(self, start_time=start_time, reverse=reverse)
