import pytest

from jugglelayout import (
    DELAY, LEFT_HAND, RIGHT_HAND, SWITCH, THROW, CATCH,
    Event, Pattern, Symmetry, Transition,
)
from jugglelayout.errors import PatternError
from jugglelayout.images import Cursor, EventImages, advance, retreat
from jugglelayout.pattern import hand_index
from jugglelayout.permutation import Permutation


class TestCursor:
    def test_advance_order(self):
        c = Cursor(loop=0, juggler=0, hand=0, entry=0)
        c = advance(c, num_jugglers=2, num_entries=2)
        assert c == Cursor(0, 0, 1, 0)
        c = advance(c, 2, 2)
        assert c == Cursor(0, 1, 0, 0)
        c = advance(advance(c, 2, 2), 2, 2)
        assert c == Cursor(0, 0, 0, 1)

    def test_retreat_wraps_to_previous_loop(self):
        c = retreat(Cursor(0, 0, 0, 0), num_jugglers=2, num_entries=3)
        assert c == Cursor(-1, 1, 1, 2)

    def test_retreat_undoes_advance(self):
        c = Cursor(3, 1, 0, 1)
        assert retreat(advance(c, 2, 2), 2, 2) == c


class TestImages:
    def test_current_is_primary(self, cascade):
        primary = cascade.events[0]
        gen = EventImages(cascade, primary)
        image = gen.current()
        assert image.event is primary
        assert image.is_primary

    def test_next_and_previous_follow_delay_permutation(self, cascade):
        gen = EventImages(cascade, cascade.events[0])

        later = gen.next()
        assert later.event.t == pytest.approx(0.8)
        assert later.event.hand == RIGHT_HAND
        # (1,3,2): path 1 becomes path 3 one loop later
        assert later.event.transitions[0].path == 3

        gen.reset_position()
        earlier = gen.previous()
        assert earlier.event.t == pytest.approx(-0.8)
        assert earlier.event.transitions[0].path == 2

    def test_loop_images_use_powers_of_delay_permutation(self, cascade):
        gen = EventImages(cascade, cascade.events[0])
        perm = cascade.path_permutation
        for k in range(1, 5):
            image = gen.next()
            assert image.loop == k
            assert image.path_perm == perm.power(k)

        # after order-many loops the paths repeat
        gen.reset_position()
        for _ in range(perm.order):
            image = gen.next()
        assert image.event.transitions[0].path == 1

    def test_switch_symmetry_fills_other_juggler(self, passing):
        primary = passing.events[0]
        gen = EventImages(passing, primary)

        assert gen.has_transition_for_hand(2, RIGHT_HAND)
        assert not gen.has_transition_for_hand(2, LEFT_HAND)
        assert gen.cell(1, hand_index(RIGHT_HAND), 0) == Permutation.parse(4, "(1,2)(3,4)")

        image = gen.next()
        assert image.event.juggler == 2
        assert image.event.t == pytest.approx(0.0)
        assert image.event.transitions[0].path == 2

    def test_velocity_defining_queries(self, passing):
        throw_gen = EventImages(passing, passing.events[0])
        hold_gen = EventImages(passing, passing.events[2])

        assert throw_gen.has_vd_transition_for_hand(1, RIGHT_HAND)
        assert not hold_gen.has_vd_transition_for_hand(1, LEFT_HAND)
        assert hold_gen.has_transition_for_path(3)
        assert hold_gen.has_transition_for_path(4)
        assert not hold_gen.has_vd_transition_for_path(3)
        assert throw_gen.has_vd_transition_for_path(2)

    def test_hand_flip_negates_x(self):
        events = [
            Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1)], x=10),
            Event(0.5, 1, LEFT_HAND, [Transition(CATCH, 1)], x=-20),
        ]
        syms = [
            Symmetry.from_strings(DELAY, 1, 1, delay=1.0),
            Symmetry.from_strings(SWITCH, 1, 1, jperm="(1,1*)"),
        ]
        pat = Pattern(1, 1, events, syms)
        gen = EventImages(pat, pat.events[0])
        image = gen.previous()
        assert image.event.hand == LEFT_HAND
        assert image.event.x == pytest.approx(-10.0)
        assert image.event.t == pytest.approx(0.0)

    def test_inconsistent_symmetries(self):
        events = [
            Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1)]),
            Event(0.5, 1, LEFT_HAND, [Transition(CATCH, 1)]),
        ]
        syms = [
            Symmetry.from_strings(DELAY, 1, 2, delay=1.0),
            Symmetry.from_strings(SWITCH, 1, 2, pperm="(1,2)"),
        ]
        pat = Pattern(1, 2, events, syms)
        with pytest.raises(PatternError, match="inconsistent"):
            EventImages(pat, pat.events[0])

    def test_loop_powers_match_direct_powers(self, cascade):
        gen = EventImages(cascade, cascade.events[0])
        perm = cascade.path_permutation
        for k in (3, 7, -2, -5, 1):
            assert gen._loop_power(k) == perm.power(k)
        # every intermediate power is cached on the way out
        assert set(range(-5, 8)) <= set(gen._loop_powers)

    def test_throw_and_catch_queries(self):
        events = [
            Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1)]),
            Event(0.5, 1, LEFT_HAND, [Transition(THROW, 1)]),
        ]
        pat = Pattern(1, 1, events, [Symmetry.from_strings(DELAY, 1, 1, delay=1.0)])
        gen = EventImages(pat, pat.events[0])
        assert gen.has_throw_for_path(1)
        assert not gen.has_catch_for_path(1)


class TestSwitchDelay:
    def test_entries_split_the_loop(self, switchdelay):
        gen = EventImages(switchdelay, switchdelay.events[0])
        assert gen.num_entries == 2
        assert gen.cell(1, hand_index(RIGHT_HAND), 1) == Permutation.parse(2, "(1,2)")
        assert gen.cell(1, hand_index(RIGHT_HAND), 0) is None

    def test_partner_image_half_a_loop_later(self, switchdelay):
        gen = EventImages(switchdelay, switchdelay.events[0])
        image = gen.next()
        assert image.event.t == pytest.approx(0.5)
        assert image.event.juggler == 2
        assert image.event.hand == RIGHT_HAND
        assert image.event.transitions[0].path == 2

        image = gen.next()
        assert image.event.t == pytest.approx(1.0)
        assert image.event.juggler == 1
        assert image.event.transitions[0].path == 1
