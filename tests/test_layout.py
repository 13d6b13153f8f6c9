import logging

import numpy as np
import pytest

from jugglelayout import (
    CATCH, GRABCATCH, LEFT_HAND, RIGHT_HAND, SOFTCATCH, THROW,
    LayoutOptions, Position, layout,
)
from jugglelayout.links import VR_CATCH, VR_SOFTCATCH, VR_THROW
from jugglelayout.paths import BouncePath, TossPath
from jugglelayout.pattern import hand_index


def links_at(links, t):
    return next(link for link in links if link.start_time <= t < link.end_time)


class TestCascade:
    def test_builds_links_for_every_path(self, cascade_layout):
        assert len(cascade_layout.path_links) == 3
        for links in cascade_layout.path_links:
            assert links
            assert any(not pl.in_hand for pl in links)
            assert all(isinstance(pl.path, TossPath) for pl in links if not pl.in_hand)

    def test_throw_position(self, cascade_layout):
        throw = np.array([10.0, 30.0, 100.0])
        np.testing.assert_allclose(cascade_layout.path_coordinate(1, 0.0), throw, atol=1e-9)
        np.testing.assert_allclose(cascade_layout.hand_coordinate(1, RIGHT_HAND, 0.0), throw, atol=1e-9)

    def test_catch_position(self, cascade_layout):
        np.testing.assert_allclose(cascade_layout.path_coordinate(1, 0.95), [-25.0, 30.0, 100.0], atol=1e-9)

    def test_flight_height(self, cascade_layout):
        # 0.95 s flight between equal heights peaks g*T^2/8 above them
        top = 100.0 + 980.0 * 0.95 ** 2 / 8.0
        flight = links_at(cascade_layout.path_links[0], 0.5)
        assert flight.path.max[2] == pytest.approx(top, rel=1e-6)
        assert cascade_layout.path_max(1)[2] >= top - 1e-9

    def test_hand_matches_throw_velocity(self, cascade_layout):
        hl = links_at(cascade_layout.hand_links[0][hand_index(RIGHT_HAND)], 0.0)
        pl = links_at(cascade_layout.path_links[0], 0.0)
        assert hl.start_ref.source == VR_THROW
        assert hl.end_ref.source == VR_CATCH
        assert not pl.in_hand
        np.testing.assert_allclose(hl.curve.velocity(0.0), pl.path.start_velocity, atol=1e-6)

    def test_hand_wraps_around_loop(self, cascade_layout):
        for hand in (LEFT_HAND, RIGHT_HAND):
            a = cascade_layout.hand_coordinate(1, hand, 0.1)
            b = cascade_layout.hand_coordinate(1, hand, 0.9)
            c = cascade_layout.hand_coordinate(1, hand, -0.7)
            np.testing.assert_allclose(a, b, atol=1e-9)
            np.testing.assert_allclose(a, c, atol=1e-9)

        end = cascade_layout.hand_coordinate(1, RIGHT_HAND, 0.8 - 1e-7)
        start = cascade_layout.hand_coordinate(1, RIGHT_HAND, 0.0)
        np.testing.assert_allclose(end, start, atol=1e-3)

    def test_holding(self, cascade_layout):
        assert cascade_layout.is_hand_holding_path(1, LEFT_HAND, 0.3, 2)
        assert not cascade_layout.is_hand_holding_path(1, LEFT_HAND, 0.3, 1)
        assert not cascade_layout.is_hand_holding(1, LEFT_HAND, 0.6)
        assert cascade_layout.is_hand_holding(1, RIGHT_HAND, 0.6)

    def test_catch_volume(self, cascade_layout):
        assert cascade_layout.path_catch_volume(2, 0.1, 0.2) == 1.0
        assert cascade_layout.path_catch_volume(2, 0.2, 0.3) == 0.0
        assert cascade_layout.path_bounce_volume(2, 0.1, 0.2) == 0.0

    def test_bounding_box(self, cascade_layout):
        lo, hi = cascade_layout.overall_bounding_box()
        assert np.all(lo < hi)
        top = cascade_layout.path_max(1)[2]
        assert hi[2] >= top + 5.0
        assert cascade_layout.overall_bounding_box() is cascade_layout.overall_bounding_box()

    def test_throws_and_catches_evenly_spaced(self, cascade_layout):
        loop = cascade_layout.loop_duration
        window = [le for le in cascade_layout.events if 0.0 <= le.t < 2 * loop - 1e-9]
        for kind in (THROW, CATCH):
            times = [le.t for le in window if any(tr.kind == kind for tr in le.transitions)]
            assert len(times) == 4
            np.testing.assert_allclose(np.diff(times), loop / 2, atol=1e-9)

    def test_link_descriptions(self, cascade_layout):
        text = [str(pl) for pl in cascade_layout.path_links[0]]
        assert any("in juggler 1" in s for s in text)
        assert any("Toss" in s for s in text)
        assert str(cascade_layout.hand_links[0][0][0]).startswith("HandLink(juggler 1 left")


class TestPassing:
    def test_default_positions(self, passing_layout):
        np.testing.assert_allclose(passing_layout.juggler_position(1, 0.3), [70, 0, 100], atol=1e-9)
        np.testing.assert_allclose(passing_layout.juggler_position(2, 0.3), [-70, 0, 100], atol=1e-9)
        assert passing_layout.juggler_angle(1, 0.5) == pytest.approx(90.0)
        assert passing_layout.juggler_angle(2, 0.5) == pytest.approx(270.0)

    def test_pass_crosses_between_jugglers(self, passing_layout):
        np.testing.assert_allclose(passing_layout.path_coordinate(1, 0.0), [40, 15, 100], atol=1e-9)
        np.testing.assert_allclose(passing_layout.path_coordinate(1, 0.8), [-40, -25, 100], atol=1e-9)

    def test_frame_round_trip(self, passing_layout):
        local = np.array([12.0, -3.0, 7.0])
        for j in (1, 2):
            glob = passing_layout.local_to_global(local, j, 0.25)
            np.testing.assert_allclose(passing_layout.global_to_local(glob, j, 0.25), local, atol=1e-9)

    def test_holding_hand_is_closed_curve(self, passing_layout):
        hl = links_at(passing_layout.hand_links[0][hand_index(LEFT_HAND)], 0.5)
        curve = hl.curve
        assert curve.duration == pytest.approx(1.0)
        np.testing.assert_allclose(curve.coordinate(curve.start_time), curve.coordinate(curve.end_time), atol=1e-9)
        np.testing.assert_allclose(curve.velocities[0], curve.velocities[-1], atol=1e-9)

    def test_holding_hand_continuous_at_loop_boundary(self, passing_layout):
        for j in (1, 2):
            a = passing_layout.hand_coordinate(j, LEFT_HAND, 1.0 - 1e-7)
            b = passing_layout.hand_coordinate(j, LEFT_HAND, 0.0)
            np.testing.assert_allclose(a, b, atol=1e-3)

    def test_held_prop_follows_hand(self, passing_layout):
        for t in (0.1, 0.5, 0.9):
            np.testing.assert_allclose(
                passing_layout.path_coordinate(3, t),
                passing_layout.hand_coordinate(1, LEFT_HAND, t),
            )
            assert passing_layout.is_hand_holding_path(2, LEFT_HAND, t, 4)

    def test_juggler_window(self, passing_layout):
        lo = passing_layout.juggler_window_min
        hi = passing_layout.juggler_window_max
        np.testing.assert_allclose(hi, [70 + 23, 23, 100 + 71], atol=1e-9)
        np.testing.assert_allclose(lo, [-70 - 23, -23, 100], atol=1e-9)


class TestSwitchDelay:
    def test_partner_throws_half_a_loop_later(self, switchdelay_layout):
        throws = {1: [], 2: []}
        for le in switchdelay_layout.events:
            if 0.0 <= le.t < 1.0 - 1e-9 and any(tr.kind == THROW for tr in le.transitions):
                throws[le.juggler].append(le.t)

        assert throws[1] == pytest.approx([0.0, 0.1])
        assert throws[2] == pytest.approx([0.5, 0.6])
        # velocity-defining events sit on opposite sides of the loop midpoint
        assert max(throws[1]) < 0.5 <= min(throws[2])

    def test_passes_land_in_partner_hands(self, switchdelay_layout):
        lp = switchdelay_layout
        assert lp.path_coordinate(1, 0.0)[0] == pytest.approx(40.0)
        assert lp.path_coordinate(1, 0.4)[0] == pytest.approx(-40.0)
        np.testing.assert_allclose(lp.path_coordinate(1, 0.4), lp.hand_coordinate(2, LEFT_HAND, 0.4), atol=1e-6)
        np.testing.assert_allclose(lp.path_coordinate(2, 0.3), lp.hand_coordinate(2, RIGHT_HAND, 0.3), atol=1e-6)

    def test_hands_continuous_at_loop_boundary(self, switchdelay_layout):
        for j in (1, 2):
            for hand in (LEFT_HAND, RIGHT_HAND):
                a = switchdelay_layout.hand_coordinate(j, hand, 1.0 - 1e-7)
                b = switchdelay_layout.hand_coordinate(j, hand, 0.0)
                np.testing.assert_allclose(a, b, atol=1e-3)


class TestSoftCatch:
    @pytest.fixture
    def soft_layout(self, make_cascade):
        return layout(make_cascade(catch_kind=SOFTCATCH))

    def test_catch_defines_hand_velocity(self, soft_layout):
        hl = links_at(soft_layout.hand_links[0][hand_index(RIGHT_HAND)], 0.6)
        assert hl.start_ref.source == VR_SOFTCATCH
        assert hl.start_ref.is_velocity_defining

    def test_hand_matches_landing_velocity(self, soft_layout):
        hl = links_at(soft_layout.hand_links[0][hand_index(RIGHT_HAND)], 0.6)
        flight = next(pl for links in soft_layout.path_links for pl in links
                      if not pl.in_hand and pl.end_time == pytest.approx(0.55))
        np.testing.assert_allclose(hl.curve.velocity(0.55), flight.path.end_velocity, atol=1e-9)


class TestGrabCatch:
    def test_grab_leaves_hand_unconstrained(self, make_cascade):
        lp = layout(make_cascade(catch_kind=GRABCATCH))
        links = lp.hand_links[0][hand_index(RIGHT_HAND)]
        before, after = links_at(links, 0.5), links_at(links, 0.6)
        assert before.end_ref is None
        assert after.start_ref is None
        # one spline from throw to throw through the grab
        assert before.curve is after.curve

        catch = [25.0, 30.0, 100.0]
        np.testing.assert_allclose(lp.path_coordinate(3, 0.55), catch, atol=1e-9)
        np.testing.assert_allclose(lp.hand_coordinate(1, RIGHT_HAND, 0.55), catch, atol=1e-9)


class TestBounce:
    def test_bounce_links(self, bounce_layout):
        flights = [pl for pl in bounce_layout.path_links[0] if not pl.in_hand]
        assert flights
        assert all(isinstance(pl.path, BouncePath) for pl in flights)

    def test_bounce_volume(self, bounce_layout):
        assert bounce_layout.path_bounce_volume(1, 0.9, 1.0) == 1.0
        assert bounce_layout.path_bounce_volume(1, 0.1, 0.2) == 0.0

    def test_path_reaches_floor(self, bounce_layout):
        flights = [pl for pl in bounce_layout.path_links[0] if not pl.in_hand]
        for pl in flights:
            assert pl.path.min[2] == pytest.approx(0.0, abs=1e-6)
        assert bounce_layout.path_min(1)[2] <= 1e-6


class TestPositions:
    def test_angles_unwrapped(self, make_cascade):
        pat = make_cascade()
        pat.positions = [
            Position(t=0.0, juggler=1, x=0, y=0, z=100, angle=350),
            Position(t=0.4, juggler=1, x=10, y=0, z=100, angle=10),
        ]
        lp = layout(pat)
        assert lp.juggler_angle(1, 0.2) == pytest.approx(360.0)
        assert lp.juggler_angle(1, 0.6) == pytest.approx(360.0)

    def test_spline_angles(self, make_cascade):
        pat = make_cascade()
        pat.positions = [
            Position(t=0.0, juggler=1, angle=0),
            Position(t=0.4, juggler=1, angle=90),
        ]
        lp = layout(pat, LayoutOptions(angle_method="spline"))
        assert lp.juggler_angle(1, 0.0) == pytest.approx(0.0, abs=1e-9)
        assert lp.juggler_angle(1, 0.4) == pytest.approx(90.0)
        assert lp.juggler_angle(1, 0.8) == pytest.approx(0.0, abs=1e-9)

    def test_bad_angle_method(self):
        with pytest.raises(ValueError):
            LayoutOptions(angle_method="bezier")


class TestLogging:
    def test_summary_logged(self, cascade, caplog):
        caplog.set_level(logging.INFO, logger="jugglelayout")
        layout(cascade)
        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("[EVENTS]") for m in messages)
        assert any(m.startswith("[LAYOUT] done") for m in messages)

    def test_debug_dumps_links(self, cascade, caplog):
        caplog.set_level(logging.DEBUG, logger="jugglelayout")
        layout(cascade, LayoutOptions(debug=True))
        messages = [r.getMessage() for r in caplog.records]
        assert any("PathLink(path 1" in m for m in messages)
        assert any(m.startswith("[CURVE]") for m in messages)
