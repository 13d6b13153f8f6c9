# links.py
#
# Segments of a laid-out pattern:
#   PathLink : one path between two consecutive events touching it
#              (in flight with a solved Path, or held in a hand)
#   HandLink : one hand between two consecutive events of that hand
#   VelocityRef : which path fixes a hand's velocity at an event

from __future__ import annotations

from typing import Optional

import numpy as np

from .curves import Curve
from .errors import LayoutInternalError
from .events import LayoutEvent
from .paths import Path, new_path
from .pattern import hand_name

VR_THROW = "THROW"
VR_CATCH = "CATCH"
VR_SOFTCATCH = "SOFTCATCH"


class VelocityRef:
    def __init__(self, path: Path, source: str):
        self.path = path
        self.source = source

    @property
    def velocity(self) -> np.ndarray:
        if self.source == VR_THROW:
            return self.path.start_velocity
        # catches take the landing velocity
        return self.path.end_velocity

    @property
    def is_velocity_defining(self) -> bool:
        return self.source in (VR_THROW, VR_SOFTCATCH)

    def __repr__(self) -> str:
        return f"VelocityRef({self.source.lower()}, {self.path})"


class PathLink:
    def __init__(self, path_num: int, start_event: LayoutEvent, end_event: LayoutEvent):
        self.path_num = path_num
        self.start_event = start_event
        self.end_event = end_event
        self.in_hand = False
        self.juggler = 0
        self.hand = 0
        self.path: Optional[Path] = None

    @property
    def start_time(self) -> float:
        return self.start_event.t

    @property
    def end_time(self) -> float:
        return self.end_event.t

    def contains(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time

    def set_in_hand(self, juggler: int, hand: int):
        self.in_hand = True
        self.juggler = juggler
        self.hand = hand
        self.path = None

    def set_throw(self, throw_type: Optional[str], throw_mod: Optional[str]):
        self.in_hand = False
        self.path = new_path(throw_type)
        self.path.init_path(throw_mod)

    def solve(self, start_coord: np.ndarray, end_coord: np.ndarray):
        if self.path is None:
            raise LayoutInternalError(f"Path {self.path_num}: solve() on a link with no throw")
        self.path.set_start(start_coord, self.start_time)
        self.path.set_end(end_coord, self.end_time)
        self.path.calc_path()

    def __str__(self) -> str:
        span = f"t=[{self.start_time:.4f}, {self.end_time:.4f}]"
        if self.in_hand:
            return f"PathLink(path {self.path_num}, {span}, in juggler {self.juggler} {hand_name(self.hand)} hand)"
        return f"PathLink(path {self.path_num}, {span}, {self.path})"


class HandLink:
    def __init__(self, juggler: int, hand: int, start_event: LayoutEvent, end_event: LayoutEvent):
        self.juggler = juggler
        self.hand = hand
        self.start_event = start_event
        self.end_event = end_event
        self.start_ref: Optional[VelocityRef] = None
        self.end_ref: Optional[VelocityRef] = None
        self.curve: Optional[Curve] = None

    @property
    def start_time(self) -> float:
        return self.start_event.t

    @property
    def end_time(self) -> float:
        return self.end_event.t

    def __str__(self) -> str:
        def ref(vr):
            return "-" if vr is None else vr.source.lower()
        return (f"HandLink(juggler {self.juggler} {hand_name(self.hand)}, "
                f"t=[{self.start_time:.4f}, {self.end_time:.4f}], "
                f"refs {ref(self.start_ref)}->{ref(self.end_ref)}, "
                f"{'curve' if self.curve is not None else 'no curve'})")
