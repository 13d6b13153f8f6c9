# layout.py
# ------------------------------------------------------------
# Layout pass: Pattern -> LaidoutPattern
#
#   1. build_event_list   : primaries + enough images on both sides of the loop
#   2. find_positions     : juggler body position / angle curves
#   3. build_link_lists   : PathLinks per path, HandLinks per juggler-hand
#   4. layout_hand_paths  : spline curves through each hand's events
#
# The LaidoutPattern then answers coordinate / extent queries at any time.
# ------------------------------------------------------------

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from .config import (
    HAND_IN, HAND_OUT, HEAD_H, JUGGLER_CIRCLE_RADIUS, JUGGLER_MIN_SPACING,
    JUGGLER_Z_DEFAULT, LOGGER_NAME, NECK_H, PATTERN_Y, SHOULDER_H, SHOULDER_HW,
    LayoutOptions,
)
from .curves import Curve, LineCurve, SplineCurve, coord_max, coord_min
from .errors import LayoutInternalError, PatternError, attach_pattern
from .events import LayoutEvent, build_event_list
from .links import VR_CATCH, VR_SOFTCATCH, VR_THROW, HandLink, PathLink, VelocityRef
from .paths import BouncePath
from .pattern import (
    CATCH, CATCH_KINDS, HOLDING, LEFT_HAND, RIGHT_HAND, SOFTCATCH, THROW,
    Event, Pattern, hand_index, hand_name,
)

logger = logging.getLogger(LOGGER_NAME)

HANDS = (LEFT_HAND, RIGHT_HAND)


def layout(pattern: Pattern, options: Optional[LayoutOptions] = None) -> "LaidoutPattern":
    """
    Lay out `pattern`. All-or-nothing: either a complete LaidoutPattern is
    returned or the error propagates.

    PatternError     -> pattern is invalid, passes through unchanged
    LayoutInternalError -> carries the pattern, logged at ERROR
    """
    lp = LaidoutPattern(pattern, options)
    try:
        lp.build()
    except LayoutInternalError as err:
        attach_pattern(err, pattern)
        logger.error(f"[LAYOUT] internal error: {err}")
        raise
    return lp


class LaidoutPattern:
    def __init__(self, pattern: Pattern, options: Optional[LayoutOptions] = None):
        self.pattern = pattern
        self.options = options if options is not None else LayoutOptions()

        self.events: List[LayoutEvent] = []
        self.has_vd_hand: List[List[bool]] = []
        self.has_vd_path: List[bool] = []
        self.path_links: List[List[PathLink]] = [[] for _ in range(pattern.num_paths)]
        self.hand_links: List[List[List[HandLink]]] = [[[], []] for _ in range(pattern.num_jugglers)]
        self.juggler_curves: List[Curve] = []
        self.juggler_angles: List[Curve] = []
        self._bbox: Optional[Tuple[np.ndarray, np.ndarray]] = None

    # ----------------------------
    # Build
    # ----------------------------

    def build(self):
        pat = self.pattern
        logger.info(f"[LAYOUT] start: {pat.summary()}")

        ev_list = build_event_list(pat, self.options.max_extension_events)
        self.events = ev_list.events
        self.has_vd_hand = ev_list.has_vd_hand
        self.has_vd_path = ev_list.has_vd_path

        self.find_positions()
        self.build_link_lists()
        self.layout_hand_paths()

        if self.options.debug:
            for ev in self.events:
                logger.debug(f"[LAYOUT] {ev!r}")
            for links in self.path_links:
                for pl in links:
                    logger.debug(f"[LAYOUT] {pl}")
            for per_juggler in self.hand_links:
                for links in per_juggler:
                    for hl in links:
                        logger.debug(f"[LAYOUT] {hl}")

        n_pl = sum(len(links) for links in self.path_links)
        n_hl = sum(len(links) for per_j in self.hand_links for links in per_j)
        logger.info(f"[LAYOUT] done: {len(self.events)} events, {n_pl} path links, {n_hl} hand links")
        return self

    @property
    def loop_start_time(self) -> float:
        return self.pattern.loop_start_time

    @property
    def loop_end_time(self) -> float:
        return self.pattern.loop_end_time

    @property
    def loop_duration(self) -> float:
        return self.pattern.loop_duration

    # ----------------------------
    # Step 2: juggler positions
    # ----------------------------

    def _new_angle_curve(self) -> Curve:
        return SplineCurve() if self.options.angle_method == "spline" else LineCurve()

    def find_positions(self):
        pat = self.pattern
        loop = pat.loop_duration
        self.juggler_curves = []
        self.juggler_angles = []

        for j in range(1, pat.num_jugglers + 1):
            positions = sorted((p for p in pat.positions if p.juggler == j), key=lambda p: p.t)
            jcurve = SplineCurve()
            jangle = self._new_angle_curve()

            if not positions:
                times = [pat.loop_start_time, pat.loop_end_time]
                if pat.num_jugglers == 1:
                    coord = np.array([0.0, 0.0, JUGGLER_Z_DEFAULT])
                    angle = 0.0
                else:
                    theta = 360.0 / pat.num_jugglers
                    r = JUGGLER_CIRCLE_RADIUS
                    half = math.sin(math.radians(0.5 * theta))
                    if r * half < JUGGLER_MIN_SPACING:
                        r = JUGGLER_MIN_SPACING / half
                    phi = math.radians(theta * (j - 1))
                    coord = np.array([r * math.cos(phi), r * math.sin(phi), JUGGLER_Z_DEFAULT])
                    angle = 90.0 + theta * (j - 1)
                coords = [coord, coord]
                angles = [np.array([angle, 0.0, 0.0]), np.array([angle, 0.0, 0.0])]
            else:
                times = [p.t for p in positions] + [positions[0].t + loop]
                if any(t2 <= t1 for t1, t2 in zip(times, times[1:])):
                    raise PatternError(f"Positions for juggler {j} must have distinct times within one loop")
                coords = [p.coordinate for p in positions] + [positions[0].coordinate]
                angles = [np.array([p.angle, 0.0, 0.0]) for p in positions]
                angles.append(angles[0].copy())

                # consecutive angles at most 180 degrees apart
                for k in range(1, len(angles)):
                    while angles[k][0] - angles[k - 1][0] > 180.0:
                        angles[k][0] -= 360.0
                    while angles[k][0] - angles[k - 1][0] < -180.0:
                        angles[k][0] += 360.0

            jcurve.set_curve(times, coords, [None] * len(times))
            jangle.set_curve(times, angles, [None] * len(times))
            jcurve.calc_curve()
            jangle.calc_curve()
            self.juggler_curves.append(jcurve)
            self.juggler_angles.append(jangle)

    def _wrap_to_curve(self, curve: Curve, t: float) -> float:
        loop = self.loop_duration
        while t < curve.start_time:
            t += loop
        while t > curve.end_time:
            t -= loop
        return t

    def juggler_position(self, juggler: int, t: float) -> np.ndarray:
        curve = self.juggler_curves[juggler - 1]
        return curve.coordinate(self._wrap_to_curve(curve, t))

    def juggler_angle(self, juggler: int, t: float) -> float:
        """Degrees between the juggler's local x axis and the global x axis."""
        curve = self.juggler_angles[juggler - 1]
        return float(curve.coordinate(self._wrap_to_curve(curve, t))[0])

    # ----------------------------
    # Frames
    # ----------------------------

    def local_to_global(self, local, juggler: int, t: float) -> np.ndarray:
        origin = self.juggler_position(juggler, t)
        angle = math.radians(self.juggler_angle(juggler, t))
        x, y, z = (float(c) for c in local)
        y += PATTERN_Y
        ca, sa = math.cos(angle), math.sin(angle)
        return np.array([
            origin[0] + x * ca - y * sa,
            origin[1] + x * sa + y * ca,
            origin[2] + z,
        ])

    def global_to_local(self, glob, juggler: int, t: float) -> np.ndarray:
        origin = self.juggler_position(juggler, t)
        angle = math.radians(self.juggler_angle(juggler, t))
        c = np.asarray(glob, dtype=float) - origin
        ca, sa = math.cos(angle), math.sin(angle)
        return np.array([
            c[0] * ca + c[1] * sa,
            -c[0] * sa + c[1] * ca - PATTERN_Y,
            c[2],
        ])

    def global_coordinate(self, ev: Union[Event, LayoutEvent]) -> np.ndarray:
        event = ev.event if isinstance(ev, LayoutEvent) else ev
        return self.local_to_global(event.local, event.juggler, event.t)

    # ----------------------------
    # Step 3: links
    # ----------------------------

    def build_link_lists(self):
        pat = self.pattern
        outgoing: Dict[Tuple[int, int], PathLink] = {}
        incoming: Dict[Tuple[int, int], PathLink] = {}

        for path in range(1, pat.num_paths + 1):
            links: List[PathLink] = []
            lastev: Optional[LayoutEvent] = None
            lasttr = None

            for ev in self.events:
                tr = ev.event.path_transition(path)
                if tr is None:
                    continue

                if lastev is not None:
                    pl = PathLink(path, lastev, ev)

                    if tr.kind in (THROW, HOLDING):
                        if lasttr.kind == THROW:
                            raise PatternError(f"Path {path}: successive throws with no catch between them")
                        if lastev.juggler != ev.juggler:
                            raise PatternError(f"Path {path}: juggler changed while the prop is held")
                        if lastev.hand != ev.hand:
                            raise PatternError(f"Path {path}: hand changed while the prop is held")
                        pl.set_in_hand(ev.juggler, ev.hand)
                    elif tr.kind in CATCH_KINDS:
                        if lasttr.kind != THROW:
                            raise PatternError(f"Path {path}: successive catches with no throw between them")
                        pl.set_throw(lasttr.throw_type, lasttr.throw_mod)
                        pl.solve(self.global_coordinate(lastev), self.global_coordinate(ev))
                    else:
                        raise LayoutInternalError(f"Unrecognized transition type '{tr.kind}' in link builder")

                    links.append(pl)
                    outgoing[(id(lastev), path)] = pl
                    incoming[(id(ev), path)] = pl

                lastev = ev
                lasttr = tr

            if not links:
                raise LayoutInternalError(f"No path links built for path {path}")
            self.path_links[path - 1] = links

        for j in range(1, pat.num_jugglers + 1):
            for hand in HANDS:
                links: List[HandLink] = []
                lastev = None
                lastvr: Optional[VelocityRef] = None

                for ev in self.events:
                    if ev.juggler != j or ev.hand != hand:
                        continue

                    vr = None
                    for tr in ev.transitions:
                        if tr.kind == THROW:
                            pl = outgoing.get((id(ev), tr.path))
                            if pl is not None:
                                vr = VelocityRef(pl.path, VR_THROW)
                        elif tr.kind == SOFTCATCH:
                            pl = incoming.get((id(ev), tr.path))
                            if pl is not None:
                                vr = VelocityRef(pl.path, VR_SOFTCATCH)
                        elif tr.kind == CATCH:
                            pl = incoming.get((id(ev), tr.path))
                            if pl is not None:
                                vr = VelocityRef(pl.path, VR_CATCH)
                        # grab catches never constrain the hand

                    if lastev is not None:
                        hl = HandLink(j, hand, lastev, ev)
                        hl.start_ref = lastvr
                        hl.end_ref = vr
                        links.append(hl)
                    lastev = ev
                    lastvr = vr

                self.hand_links[j - 1][hand_index(hand)] = links

    # ----------------------------
    # Step 4: hand curves
    # ----------------------------

    def layout_hand_paths(self):
        for j in range(1, self.pattern.num_jugglers + 1):
            for hand in HANDS:
                h = hand_index(hand)
                links = self.hand_links[j - 1][h]
                if self.has_vd_hand[j - 1][h]:
                    self._layout_vd_hand(links)
                else:
                    self._layout_closed_hand(j, hand, links)

    def _layout_vd_hand(self, links: List[HandLink]):
        """One spline per run of links between velocity-defining events."""
        startlink: Optional[HandLink] = None
        num = 0

        for k, hl in enumerate(links):
            if hl.start_ref is not None and hl.start_ref.is_velocity_defining:
                startlink = hl
                num = 1

            if startlink is not None and hl.end_ref is not None and hl.end_ref.is_velocity_defining:
                curve = SplineCurve()
                times, coords, vels = [], [], []
                for l in range(num):
                    hl2 = links[k - num + 1 + l]
                    times.append(hl2.start_time)
                    coords.append(self.global_coordinate(hl2.start_event))
                    vr2 = hl2.start_ref
                    if l > 0 and vr2 is not None and vr2.source == VR_CATCH:
                        vels.append(vr2.velocity)
                    else:
                        vels.append(None)
                    hl2.curve = curve
                times.append(hl.end_time)
                coords.append(self.global_coordinate(hl.end_event))
                vels.append(hl.end_ref.velocity)
                vels[0] = startlink.start_ref.velocity

                curve.set_curve(times, coords, vels)
                curve.calc_curve()
                logger.debug(f"[CURVE] juggler {hl.juggler} {hand_name(hl.hand)} hand: "
                             f"spline over t=[{times[0]:.4f}, {times[-1]:.4f}], {len(times)} knots")
                startlink = None
            num += 1

    def _layout_closed_hand(self, juggler: int, hand: int, links: List[HandLink]):
        """
        Hand with no throws: two consecutive closed chains, each running from
        an event to its image one loop later, with all velocities solved for.
        """
        tag = f"juggler {juggler} {hand_name(hand)} hand"
        k = 0
        while k < len(links) and links[k].end_time <= self.loop_start_time:
            k += 1
        if k >= len(links):
            raise LayoutInternalError(f"No hand link crosses the loop start for {tag}")

        for chain in range(2):
            start_k = k
            startevent = links[k].start_event
            while not links[k].end_event.is_delay_of(startevent):
                k += 1
                if k >= len(links):
                    raise LayoutInternalError(f"Closed hand chain {chain} for {tag} never returns to its start")

            curve = SplineCurve()
            chain_links = links[start_k:k + 1]
            times = [hl.start_time for hl in chain_links] + [links[k].end_time]
            coords = [self.global_coordinate(hl.start_event) for hl in chain_links]
            coords.append(self.global_coordinate(links[k].end_event))
            for hl in chain_links:
                hl.curve = curve
            curve.set_curve(times, coords, [None] * len(times))
            curve.calc_curve()
            logger.debug(f"[CURVE] {tag}: closed chain {chain} over t=[{times[0]:.4f}, {times[-1]:.4f}], "
                         f"{len(times)} knots")

            if chain == 0:
                k += 1
                if k >= len(links):
                    raise LayoutInternalError(f"No hand links after the first closed chain for {tag}")

    # ----------------------------
    # Coordinate queries
    # ----------------------------

    def path_coordinate(self, path: int, t: float) -> np.ndarray:
        for pl in self.path_links[path - 1]:
            if pl.start_time <= t <= pl.end_time:
                if pl.in_hand:
                    return self.hand_coordinate(pl.juggler, pl.hand, t)
                return pl.path.coordinate(t)
        raise LayoutInternalError(f"Time t={t} is out of range for path {path}")

    def hand_coordinate(self, juggler: int, hand: int, t: float) -> np.ndarray:
        start, end = self.loop_start_time, self.loop_end_time
        loop = self.loop_duration
        while t < start:
            t += loop
        while t >= end:
            t -= loop

        for hl in self.hand_links[juggler - 1][hand_index(hand)]:
            if hl.start_time <= t < hl.end_time:
                if hl.curve is None:
                    raise LayoutInternalError(f"No curve for juggler {juggler} {hand_name(hand)} hand at t={t}")
                return hl.curve.coordinate(t)
        raise LayoutInternalError(f"Time t={t} is out of range for juggler {juggler} {hand_name(hand)} hand")

    def is_hand_holding_path(self, juggler: int, hand: int, t: float, path: int) -> bool:
        return any(
            pl.in_hand and pl.juggler == juggler and pl.hand == hand and pl.start_time <= t <= pl.end_time
            for pl in self.path_links[path - 1]
        )

    def is_hand_holding(self, juggler: int, hand: int, t: float) -> bool:
        return any(
            self.is_hand_holding_path(juggler, hand, t, path)
            for path in range(1, self.pattern.num_paths + 1)
        )

    def _link_index(self, path: int, t: float) -> Optional[int]:
        for i, pl in enumerate(self.path_links[path - 1]):
            if pl.start_time <= t <= pl.end_time:
                return i
        return None

    def path_catch_volume(self, path: int, t1: float, t2: float) -> float:
        """1.0 if the path is caught during [t1, t2], else 0.0."""
        links = self.path_links[path - 1]
        i = self._link_index(path, t1)
        if i is None:
            return 0.0

        wasinair = False
        for _ in range(len(links) + 1):
            pl = links[i]
            if not pl.in_hand:
                wasinair = True
            elif wasinair:
                return 1.0
            if pl.start_time <= t2 <= pl.end_time:
                break
            i = (i + 1) % len(links)
        return 0.0

    def path_bounce_volume(self, path: int, t1: float, t2: float) -> float:
        """1.0 if the path bounces during [t1, t2], else 0.0."""
        links = self.path_links[path - 1]
        i = self._link_index(path, t1)
        if i is None:
            return 0.0

        for _ in range(len(links) + 1):
            pl = links[i]
            if isinstance(pl.path, BouncePath):
                vol = pl.path.bounce_volume(t1, t2)
                if vol > 0.0:
                    return vol
            if pl.start_time <= t2 <= pl.end_time:
                break
            i = (i + 1) % len(links)
        return 0.0

    # ----------------------------
    # Extents
    # ----------------------------

    def path_max(self, path: int) -> Optional[np.ndarray]:
        t1, t2 = self.loop_start_time, self.loop_end_time
        result = None
        for pl in self.path_links[path - 1]:
            if pl.in_hand:
                result = coord_max(result, self.hand_max(pl.juggler, pl.hand))
            else:
                result = coord_max(result, pl.path.get_max(t1, t2))
        return result

    def path_min(self, path: int) -> Optional[np.ndarray]:
        t1, t2 = self.loop_start_time, self.loop_end_time
        result = None
        for pl in self.path_links[path - 1]:
            if pl.in_hand:
                result = coord_min(result, self.hand_min(pl.juggler, pl.hand))
            else:
                result = coord_min(result, pl.path.get_min(t1, t2))
        return result

    def hand_max(self, juggler: int, hand: int) -> Optional[np.ndarray]:
        t1, t2 = self.loop_start_time, self.loop_end_time
        result = None
        for hl in self.hand_links[juggler - 1][hand_index(hand)]:
            if hl.curve is not None:
                result = coord_max(result, hl.curve.get_max(t1, t2))
        return result

    def hand_min(self, juggler: int, hand: int) -> Optional[np.ndarray]:
        t1, t2 = self.loop_start_time, self.loop_end_time
        result = None
        for hl in self.hand_links[juggler - 1][hand_index(hand)]:
            if hl.curve is not None:
                result = coord_min(result, hl.curve.get_min(t1, t2))
        return result

    def juggler_max(self, juggler: int) -> Optional[np.ndarray]:
        return self.juggler_curves[juggler - 1].max

    def juggler_min(self, juggler: int) -> Optional[np.ndarray]:
        return self.juggler_curves[juggler - 1].min

    @property
    def hand_window_max(self) -> np.ndarray:
        return np.array([HAND_OUT, 0.0, 1.0])

    @property
    def hand_window_min(self) -> np.ndarray:
        return np.array([-HAND_IN, 0.0, -1.0])

    @property
    def juggler_window_max(self) -> np.ndarray:
        result = None
        for j in range(1, self.pattern.num_jugglers + 1):
            result = coord_max(result, self.juggler_max(j))
        return result + np.array([SHOULDER_HW, SHOULDER_HW, SHOULDER_H + NECK_H + HEAD_H])

    @property
    def juggler_window_min(self) -> np.ndarray:
        result = None
        for j in range(1, self.pattern.num_jugglers + 1):
            result = coord_min(result, self.juggler_min(j))
        return result + np.array([-SHOULDER_HW, -SHOULDER_HW, 0.0])

    def overall_bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        """(min, max) corners enclosing props, hands and juggler bodies."""
        if self._bbox is not None:
            return self._bbox
        pat = self.pattern

        pattern_max = pattern_min = None
        for p in range(1, pat.num_paths + 1):
            pattern_max = coord_max(pattern_max, self.path_max(p))
            pattern_min = coord_min(pattern_min, self.path_min(p))

        prop_max = prop_min = None
        for prop in pat.props:
            prop_max = coord_max(prop_max, prop.max)
            prop_min = coord_min(prop_min, prop.min)

        # props must be fully visible along every path
        if pattern_max is not None and pattern_min is not None and prop_max is not None:
            pattern_max = pattern_max + prop_max
            pattern_min = pattern_min + prop_min

        hand_max = hand_min = None
        for j in range(1, pat.num_jugglers + 1):
            for hand in HANDS:
                hand_max = coord_max(hand_max, self.hand_max(j, hand))
                hand_min = coord_min(hand_min, self.hand_min(j, hand))

        # hand window in any rotation
        hwmax, hwmin = self.hand_window_max, self.hand_window_min
        hw = max(abs(hwmax[0]), abs(hwmin[0]), abs(hwmax[1]), abs(hwmin[1]))
        if hand_max is not None:
            hand_max = hand_max + np.array([hw, hw, hwmax[2]])
            hand_min = hand_min + np.array([-hw, -hw, hwmin[2]])

        overall_max = coord_max(pattern_max, coord_max(hand_max, self.juggler_window_max))
        overall_min = coord_min(pattern_min, coord_min(hand_min, self.juggler_window_min))

        if self.options.debug:
            logger.debug(f"[LAYOUT] bbox pattern {pattern_min} .. {pattern_max}, "
                         f"hands {hand_min} .. {hand_max}")
        self._bbox = (overall_min, overall_max)
        return self._bbox
