# events.py
# ------------------------------------------------------------
# Event list builder.
#
# Extends the primary events, backward from loop start and forward from
# loop end, until every hand and path has enough boundary events for the
# link and curve layout steps:
#   - each hand: an event outside the loop on both sides, and a velocity-
#     defining one if the hand ever has one
#   - each path: a throw/catch outside the loop on both sides (or a holding
#     if the path is never thrown)
# ------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from .config import LOGGER_NAME, MAX_EXTENSION_EVENTS
from .errors import LayoutInternalError, PatternError
from .images import EventImage, EventImages
from .pattern import (
    CATCH, GRABCATCH, HOLDING, LEFT_HAND, RIGHT_HAND, SOFTCATCH, THROW,
    Event, Pattern, hand_index,
)
from .permutation import Permutation

logger = logging.getLogger(LOGGER_NAME)


@dataclass(eq=False)
class LayoutEvent:
    """One event in the extended list; identity matters, not value."""
    event: Event
    primary: Event
    path_perm: Permutation
    entry: int = 0
    loop: int = 0

    @classmethod
    def from_image(cls, image: EventImage) -> "LayoutEvent":
        return cls(image.event, image.primary, image.path_perm, image.entry, image.loop)

    @property
    def t(self) -> float:
        return self.event.t

    @property
    def juggler(self) -> int:
        return self.event.juggler

    @property
    def hand(self) -> int:
        return self.event.hand

    @property
    def transitions(self):
        return self.event.transitions

    @property
    def is_primary(self) -> bool:
        return self.event is self.primary

    def is_delay_of(self, other: "LayoutEvent") -> bool:
        """Same primary, same slot, displaced by a whole number of loops."""
        return (self.primary is other.primary
                and self.juggler == other.juggler
                and self.hand == other.hand
                and self.entry == other.entry)

    def __repr__(self) -> str:
        tag = "primary" if self.is_primary else f"image of t={self.primary.t:.4f}"
        return f"LayoutEvent({self.event}, {tag})"


@dataclass
class Needs:
    hand: List[List[bool]]
    vd_hand: List[List[bool]]
    path: List[bool]
    special_path: List[bool]

    @classmethod
    def initial(cls, has_vd_hand: List[List[bool]], num_paths: int) -> "Needs":
        return cls(
            hand=[[True, True] for _ in has_vd_hand],
            vd_hand=[list(row) for row in has_vd_hand],
            path=[True] * num_paths,
            special_path=[False] * num_paths,
        )

    def any(self) -> bool:
        return (any(any(row) for row in self.hand)
                or any(any(row) for row in self.vd_hand)
                or any(self.path)
                or any(self.special_path))


@dataclass
class EventList:
    events: List[LayoutEvent]
    has_vd_hand: List[List[bool]]   # [juggler][hand index]
    has_vd_path: List[bool]
    generators: List[EventImages] = field(default_factory=list, repr=False)


# ----------------------------
# Needs rules
# ----------------------------

def _update_needs_backward(needs: Needs, ev: Event, has_vd_hand, has_vd_path) -> Needs:
    jug = ev.juggler - 1
    han = hand_index(ev.hand)

    if not has_vd_hand[jug][han]:
        needs.hand[jug][han] = False

    for tr in ev.transitions:
        path = tr.path - 1
        if tr.kind == THROW:
            needs.path[path] = False
            needs.hand[jug][han] = False
            needs.vd_hand[jug][han] = False
            needs.special_path[path] = False
        elif tr.kind in (CATCH, GRABCATCH):
            pass
        elif tr.kind == SOFTCATCH:
            if needs.vd_hand[jug][han]:
                # need the matching throw to get the velocity
                needs.special_path[path] = True
            needs.hand[jug][han] = False
            needs.vd_hand[jug][han] = False
        elif tr.kind == HOLDING:
            if not has_vd_path[path]:
                needs.path[path] = False
        else:
            raise LayoutInternalError(f"Unrecognized transition type '{tr.kind}' in event list builder")
    return needs


def _update_needs_forward(needs: Needs, ev: Event, has_vd_hand, has_vd_path, hand_cutoff: float) -> Needs:
    jug = ev.juggler - 1
    han = hand_index(ev.hand)

    # hands without throws are laid out over two loops; see layout.py
    if not has_vd_hand[jug][han] and ev.t > hand_cutoff:
        needs.hand[jug][han] = False

    for tr in ev.transitions:
        path = tr.path - 1
        if tr.kind == THROW:
            needs.path[path] = False
            if needs.vd_hand[jug][han]:
                # need the matching catch to get the velocity
                needs.special_path[path] = True
            needs.hand[jug][han] = False
            needs.vd_hand[jug][han] = False
        elif tr.kind in (CATCH, GRABCATCH):
            needs.path[path] = False
            needs.special_path[path] = False
        elif tr.kind == SOFTCATCH:
            needs.path[path] = False
            needs.hand[jug][han] = False
            needs.vd_hand[jug][han] = False
            needs.special_path[path] = False
        elif tr.kind == HOLDING:
            if not has_vd_path[path]:
                needs.path[path] = False
        else:
            raise LayoutInternalError(f"Unrecognized transition type '{tr.kind}' in event list builder")
    return needs


# ----------------------------
# Builder
# ----------------------------

def _touch_tables(pattern: Pattern, generators: List[EventImages]) -> Tuple[List[List[bool]], List[bool]]:
    has_vd_hand = []
    for j in range(1, pattern.num_jugglers + 1):
        row = []
        for hand in (LEFT_HAND, RIGHT_HAND):
            if not any(g.has_transition_for_hand(j, hand) for g in generators):
                side = "left" if hand == LEFT_HAND else "right"
                raise PatternError(f"No {side} hand events for juggler {j}")
            row.append(any(g.has_vd_transition_for_hand(j, hand) for g in generators))
        has_vd_hand.append(row)

    has_vd_path = []
    for p in range(1, pattern.num_paths + 1):
        if not any(g.has_transition_for_path(p) for g in generators):
            raise PatternError(f"No events for path {p}")
        if (any(g.has_throw_for_path(p) for g in generators)
                and not any(g.has_catch_for_path(p) for g in generators)):
            raise PatternError(f"Path {p}: successive throws with no catch between them")
        has_vd_path.append(any(g.has_vd_transition_for_path(p) for g in generators))

    return has_vd_hand, has_vd_path


def _stalled(needs: Needs, backward: bool, max_events: int) -> Exception:
    """Error for an extension that hit its cap with `needs` still open."""
    direction = "backward" if backward else "forward"
    hands_done = not any(any(row) for row in needs.hand) and not any(any(row) for row in needs.vd_hand)
    open_paths = [p + 1 for p, (a, b) in enumerate(zip(needs.path, needs.special_path)) if a or b]

    if hands_done and open_paths:
        p = open_paths[0]
        if needs.special_path[p - 1]:
            if backward:
                return PatternError(f"Path {p}: soft catch with no throw before it")
            return PatternError(f"Path {p}: successive throws with no catch between them")
        return PatternError(f"Path {p}: no throw or catch found {direction} of the loop")

    return LayoutInternalError(
        f"Event list extension ({direction}) did not terminate after {max_events} events"
    )


def _extend(
        generators: List[EventImages],
        needs: Needs,
        backward: bool,
        pattern: Pattern,
        has_vd_hand,
        has_vd_path,
        max_events: int,
) -> Tuple[List[LayoutEvent], Needs]:
    added: List[LayoutEvent] = []
    queue = [g.previous() if backward else g.next() for g in generators]
    start, end = pattern.loop_start_time, pattern.loop_end_time
    hand_cutoff = 2 * end - start

    while needs.any():
        if len(added) >= max_events:
            raise _stalled(needs, backward, max_events)

        if backward:
            index = max(range(len(queue)), key=lambda i: queue[i].event.t)
        else:
            index = min(range(len(queue)), key=lambda i: queue[i].event.t)
        image = queue[index]
        added.append(LayoutEvent.from_image(image))
        queue[index] = generators[index].previous() if backward else generators[index].next()

        t = image.event.t
        if backward and t < start:
            needs = _update_needs_backward(needs, image.event, has_vd_hand, has_vd_path)
        elif not backward and t > end:
            needs = _update_needs_forward(needs, image.event, has_vd_hand, has_vd_path, hand_cutoff)

    return added, needs


def build_event_list(pattern: Pattern, max_extension_events: int = MAX_EXTENSION_EVENTS) -> EventList:
    for ev in pattern.events:
        if not 1 <= ev.juggler <= pattern.num_jugglers:
            raise PatternError(f"Juggler number {ev.juggler} out of range")

    generators = [EventImages(pattern, ev) for ev in pattern.events]
    has_vd_hand, has_vd_path = _touch_tables(pattern, generators)

    primaries = [LayoutEvent.from_image(g.current()) for g in generators]

    earlier, _ = _extend(generators, Needs.initial(has_vd_hand, pattern.num_paths), True,
                         pattern, has_vd_hand, has_vd_path, max_extension_events)

    for g in generators:
        g.reset_position()
    later, _ = _extend(generators, Needs.initial(has_vd_hand, pattern.num_paths), False,
                       pattern, has_vd_hand, has_vd_path, max_extension_events)

    # stable sort keeps equal-time events in insertion order
    events = sorted(primaries + earlier + later, key=lambda le: le.t)

    logger.info(f"[EVENTS] {len(pattern.events)} primary events extended to {len(events)} "
                f"({len(earlier)} earlier, {len(later)} later)")
    return EventList(events, has_vd_hand, has_vd_path, generators)
