# conftest.py
#
# Shared pattern builders.
#
#   cascade : 1 juggler, 3 balls, delay 0.8 s with path permutation (1,3,2)
#   passing : 2 jugglers facing each other, 1-count passes in the right
#             hands, one ball held in each left hand (switch symmetry)
#   bounce  : 1 juggler, 1 ball, every throw a single bounce
#   switchdelay passing : 2 jugglers, juggler 2 runs juggler 1's pattern
#             half a loop later with the paths swapped; every throw is a pass

import pytest

from jugglelayout import (
    CATCH, DELAY, HOLDING, LEFT_HAND, RIGHT_HAND, SWITCH, SWITCHDELAY, THROW,
    Event, Pattern, Symmetry, Transition, layout,
)


def build_cascade(throw_type=None, throw_mod=None, title="3 ball cascade", catch_kind=CATCH):
    events = [
        Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1, throw_type, throw_mod)], x=10),
        Event(0.15, 1, LEFT_HAND, [Transition(catch_kind, 2)], x=-25),
        Event(0.4, 1, LEFT_HAND, [Transition(THROW, 2, throw_type, throw_mod)], x=-10),
        Event(0.55, 1, RIGHT_HAND, [Transition(catch_kind, 3)], x=25),
    ]
    syms = [Symmetry.from_strings(DELAY, 1, 3, pperm="(1,3,2)", delay=0.8)]
    return Pattern(num_jugglers=1, num_paths=3, events=events, symmetries=syms, title=title)


def build_passing():
    events = [
        Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1)], x=15),
        Event(0.8, 1, RIGHT_HAND, [Transition(CATCH, 2)], x=25),
        Event(0.3, 1, LEFT_HAND, [Transition(HOLDING, 3)], x=-20),
        Event(0.7, 1, LEFT_HAND, [Transition(HOLDING, 3)], x=-30, z=10),
    ]
    syms = [
        Symmetry.from_strings(DELAY, 2, 4, pperm="(1,2)", delay=1.0),
        Symmetry.from_strings(SWITCH, 2, 4, jperm="(1,2)", pperm="(1,2)(3,4)"),
    ]
    return Pattern(num_jugglers=2, num_paths=4, events=events, symmetries=syms, title="1-count passing")


def build_switchdelay_passing():
    events = [
        Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1)], x=15),
        Event(0.8, 1, RIGHT_HAND, [Transition(CATCH, 1)], x=25),
        Event(0.1, 1, LEFT_HAND, [Transition(THROW, 2)], x=-15),
        Event(0.9, 1, LEFT_HAND, [Transition(CATCH, 2)], x=-25),
    ]
    syms = [
        Symmetry.from_strings(DELAY, 2, 2, delay=1.0),
        Symmetry.from_strings(SWITCHDELAY, 2, 2, jperm="(1,2)", pperm="(1,2)"),
    ]
    return Pattern(num_jugglers=2, num_paths=2, events=events, symmetries=syms, title="switchdelay passing")


def build_bounce(throw_mod=None):
    events = [
        Event(0.0, 1, RIGHT_HAND, [Transition(THROW, 1, "bounce", throw_mod)], x=10),
        Event(1.2, 1, LEFT_HAND, [Transition(CATCH, 1)], x=-25),
        Event(1.4, 1, LEFT_HAND, [Transition(THROW, 1, "bounce", throw_mod)], x=-10),
        Event(2.6, 1, RIGHT_HAND, [Transition(CATCH, 1)], x=25),
    ]
    syms = [Symmetry.from_strings(DELAY, 1, 1, delay=2.8)]
    return Pattern(num_jugglers=1, num_paths=1, events=events, symmetries=syms, title="1 ball bounce")


@pytest.fixture
def cascade():
    return build_cascade()


@pytest.fixture
def make_cascade():
    return build_cascade


@pytest.fixture
def cascade_layout(cascade):
    return layout(cascade)


@pytest.fixture
def passing():
    return build_passing()


@pytest.fixture
def passing_layout(passing):
    return layout(passing)


@pytest.fixture
def bounce():
    return build_bounce()


@pytest.fixture
def bounce_layout(bounce):
    return layout(bounce)


@pytest.fixture
def switchdelay():
    return build_switchdelay_passing()


@pytest.fixture
def switchdelay_layout(switchdelay):
    return layout(switchdelay)
