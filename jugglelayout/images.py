# images.py
# ------------------------------------------------------------
# Event image generator.
#
# Applies a pattern's symmetry group to one primary event. The group action
# is precomputed as a grid of path permutations indexed by
# [juggler][hand][entry]; images at other loop offsets are produced lazily
# by composing with powers of the delay permutation.
# ------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import LOGGER_NAME, MAX_CLOSURE_PASSES
from .errors import LayoutInternalError, PatternError
from .pattern import (
    CATCH_KINDS, DELAY, SOFTCATCH, SWITCH, SWITCHDELAY, THROW,
    Event, Pattern, hand_from_index, hand_index,
)
from .permutation import Permutation, lcm

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class EventImage:
    event: Event
    primary: Event
    path_perm: Permutation   # primary path number -> image path number
    entry: int = 0
    loop: int = 0

    @property
    def is_primary(self) -> bool:
        return self.event is self.primary


# ----------------------------
# Cursor state machine
# ----------------------------

@dataclass(frozen=True)
class Cursor:
    loop: int
    juggler: int   # 0-based
    hand: int      # hand index 0/1
    entry: int


def advance(c: Cursor, num_jugglers: int, num_entries: int) -> Cursor:
    """One step forward: hand fastest, then juggler, then entry, then loop."""
    loop, juggler, hand, entry = c.loop, c.juggler, c.hand + 1, c.entry
    if hand == 2:
        hand = 0
        juggler += 1
        if juggler == num_jugglers:
            juggler = 0
            entry += 1
            if entry == num_entries:
                entry = 0
                loop += 1
    return Cursor(loop, juggler, hand, entry)


def retreat(c: Cursor, num_jugglers: int, num_entries: int) -> Cursor:
    loop, juggler, hand, entry = c.loop, c.juggler, c.hand - 1, c.entry
    if hand < 0:
        hand = 1
        juggler -= 1
        if juggler < 0:
            juggler = num_jugglers - 1
            entry -= 1
            if entry < 0:
                entry = num_entries - 1
                loop -= 1
    return Cursor(loop, juggler, hand, entry)


# ----------------------------
# Generator
# ----------------------------

class EventImages:
    def __init__(self, pattern: Pattern, primary: Event):
        self.pattern = pattern
        self.primary = primary

        self.num_jugglers = pattern.num_jugglers
        self.num_paths = pattern.num_paths
        self.loop_time = pattern.loop_duration
        self.loop_perm = pattern.path_permutation

        self.ev_juggler = primary.juggler - 1
        self.ev_hand = hand_index(primary.hand)

        self.num_entries = 1
        self.grid: List[List[List[Optional[Permutation]]]] = []
        self._calc_grid()

        self.cursor = self.home
        self._loop_powers = {0: Permutation(self.num_paths)}

    @property
    def home(self) -> Cursor:
        return Cursor(0, self.ev_juggler, self.ev_hand, 0)

    def reset_position(self):
        self.cursor = self.home

    def cell(self, juggler: int, hand: int, entry: int) -> Optional[Permutation]:
        return self.grid[juggler][hand][entry]

    def _calc_grid(self):
        syms = []  # (symmetry, delta_entries)
        inv_delay_perm = None

        for sym in self.pattern.symmetries:
            if sym.kind == DELAY:
                inv_delay_perm = sym.path_perm.inverse
            elif sym.kind == SWITCH:
                syms.append((sym, 0))
            elif sym.kind == SWITCHDELAY:
                self.num_entries = lcm(self.num_entries, sym.juggler_perm.order)
                syms.append((sym, None))

        syms = [
            (sym, self.num_entries // sym.juggler_perm.order if delta is None else delta)
            for sym, delta in syms
        ]

        self.grid = [
            [[None] * self.num_entries for _ in range(2)]
            for _ in range(self.num_jugglers)
        ]
        self.grid[self.ev_juggler][self.ev_hand][0] = Permutation(self.num_paths)

        passes = 0
        changed = True
        while changed:
            changed = False
            passes += 1
            if passes > MAX_CLOSURE_PASSES:
                raise LayoutInternalError(
                    f"Symmetry closure did not converge after {MAX_CLOSURE_PASSES} passes "
                    f"(primary event at t={self.primary.t})"
                )

            for sym, delta in syms:
                for j in range(self.num_jugglers):
                    for k in range(2):
                        for entry in range(self.num_entries):
                            p = self.grid[j][k][entry]
                            if p is None:
                                continue
                            newj = sym.juggler_perm.map(j + 1)
                            if newj == 0:
                                continue
                            newk = 1 - k if newj < 0 else k
                            newj = abs(newj) - 1

                            p = p.compose(sym.path_perm)
                            newentry = entry + delta
                            if newentry >= self.num_entries:
                                p = p.compose(inv_delay_perm)
                                newentry -= self.num_entries

                            existing = self.grid[newj][newk][newentry]
                            if existing is not None:
                                if existing != p:
                                    raise PatternError(
                                        f"Symmetries inconsistent: juggler {newj + 1} "
                                        f"{'left' if newk == 0 else 'right'} hand, entry {newentry} "
                                        f"gets path permutation {p} and {existing}"
                                    )
                            else:
                                self.grid[newj][newk][newentry] = p
                                changed = True

        logger.debug(f"[IMAGES] primary t={self.primary.t}: {self.num_entries} entries, "
                     f"closure converged in {passes} passes")

    # ----------------------------
    # Traversal
    # ----------------------------

    def next(self) -> EventImage:
        c = advance(self.cursor, self.num_jugglers, self.num_entries)
        while self.grid[c.juggler][c.hand][c.entry] is None:
            c = advance(c, self.num_jugglers, self.num_entries)
        self.cursor = c
        return self.make_image(c)

    def previous(self) -> EventImage:
        c = retreat(self.cursor, self.num_jugglers, self.num_entries)
        while self.grid[c.juggler][c.hand][c.entry] is None:
            c = retreat(c, self.num_jugglers, self.num_entries)
        self.cursor = c
        return self.make_image(c)

    def current(self) -> EventImage:
        return self.make_image(self.cursor)

    def _loop_power(self, loop: int) -> Permutation:
        lp = self._loop_powers.get(loop)
        if lp is not None:
            return lp

        # walk out from the nearest cached power; traversal moves one loop at a time
        step = 1 if loop > 0 else -1
        base = self.loop_perm if step > 0 else self.loop_perm.inverse
        k = loop - step
        while k not in self._loop_powers:
            k -= step
        lp = self._loop_powers[k]
        while k != loop:
            k += step
            lp = lp.compose(base)
            self._loop_powers[k] = lp
        return lp

    def make_image(self, c: Cursor) -> EventImage:
        if c == self.home:
            return EventImage(self.primary, self.primary, Permutation(self.num_paths), 0, 0)

        perm = self.grid[c.juggler][c.hand][c.entry].compose(self._loop_power(c.loop))
        ev = self.primary
        new_event = Event(
            t=ev.t + c.loop * self.loop_time + c.entry * (self.loop_time / self.num_entries),
            juggler=c.juggler + 1,
            hand=hand_from_index(c.hand),
            transitions=tuple(tr.with_path(perm.map(tr.path)) for tr in ev.transitions),
            x=-ev.x if c.hand != self.ev_hand else ev.x,
            y=ev.y,
            z=ev.z,
        )
        return EventImage(new_event, ev, perm, c.entry, c.loop)

    # ----------------------------
    # Existence queries
    # ----------------------------

    def has_transition_for_hand(self, juggler: int, hand: int) -> bool:
        h = hand_index(hand)
        return any(p is not None for p in self.grid[juggler - 1][h])

    def has_vd_transition_for_hand(self, juggler: int, hand: int) -> bool:
        if not self.has_transition_for_hand(juggler, hand):
            return False
        return any(tr.kind in (THROW, SOFTCATCH) for tr in self.primary.transitions)

    def _reaches_path(self, path: int, kinds=None) -> bool:
        cycle = self.loop_perm.cycle_of(path)
        for tr in self.primary.transitions:
            if kinds is not None and tr.kind not in kinds:
                continue
            for per_juggler in self.grid:
                for per_hand in per_juggler:
                    for p in per_hand:
                        if p is not None and p.map(tr.path) in cycle:
                            return True
        return False

    def has_transition_for_path(self, path: int) -> bool:
        return self._reaches_path(path)

    def has_vd_transition_for_path(self, path: int) -> bool:
        return self._reaches_path(path, (THROW, SOFTCATCH))

    def has_throw_for_path(self, path: int) -> bool:
        return self._reaches_path(path, (THROW,))

    def has_catch_for_path(self, path: int) -> bool:
        return self._reaches_path(path, CATCH_KINDS)
