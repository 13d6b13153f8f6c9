"""
jugglelayout

Layout engine for symmetry-described juggling patterns: expands primary
events and symmetries into the full event sequence, then solves prop flight
paths and hand curves so positions can be evaluated at any time.

    from jugglelayout import Pattern, Event, Transition, Symmetry, layout

The matplotlib preview lives in `jugglelayout.preview` (optional extra).
"""

from .config import LayoutOptions, init_logging
from .errors import JuggleError, LayoutInternalError, PatternError
from .layout import LaidoutPattern, layout
from .pattern import (
    CATCH, DELAY, GRABCATCH, HOLDING, LEFT_HAND, RIGHT_HAND, SOFTCATCH, SWITCH,
    SWITCHDELAY, THROW, BallProp, Event, Pattern, Position, Symmetry, Transition,
)
from .permutation import Permutation
from .sequence import event_sequence

__version__ = "0.1.0"

__all__ = [
    "LayoutOptions", "init_logging",
    "JuggleError", "LayoutInternalError", "PatternError",
    "LaidoutPattern", "layout",
    "CATCH", "DELAY", "GRABCATCH", "HOLDING", "LEFT_HAND", "RIGHT_HAND",
    "SOFTCATCH", "SWITCH", "SWITCHDELAY", "THROW",
    "BallProp", "Event", "Pattern", "Position", "Symmetry", "Transition",
    "Permutation", "event_sequence",
]
