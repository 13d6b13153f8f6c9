# config.py
#
# Layout constants (CGS units: cm, s) and logging setup.

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

LOGGER_NAME = "jugglelayout"

# -------- Physics --------
G_DEFAULT = 980.0  # cm/s^2

# -------- Bounce path defaults --------
BOUNCES_DEFAULT = 1
FORCED_DEFAULT = False
HYPER_DEFAULT = False
BOUNCEPLANE_DEFAULT = 0.0  # floor level
BOUNCEFRAC_DEFAULT = 0.9

# -------- Props --------
PROP_DIAMETER_DEFAULT = 10.0

# -------- Juggler body geometry --------
SHOULDER_HW = 23.0  # shoulder half-width
SHOULDER_H = 40.0   # throw pos. to shoulder
NECK_H = 5.0
HEAD_H = 26.0
HAND_OUT = 5.0      # outside width of hand
HAND_IN = 5.0
PATTERN_Y = 30.0    # pattern plane offset in front of the juggler

# default standing arrangement when a pattern has no positions
JUGGLER_Z_DEFAULT = 100.0
JUGGLER_CIRCLE_RADIUS = 70.0
JUGGLER_MIN_SPACING = 65.0

# -------- Layout --------
TIME_DECIMALS = 4           # event times compare after rounding to this many places
MAX_CLOSURE_PASSES = 1000   # symmetry closure passes per primary event
MAX_EXTENSION_EVENTS = 20000  # events added per direction when extending the event list

ANGLE_METHODS = ("line", "spline")


@dataclass
class LayoutOptions:
    angle_method: str = "line"
    max_extension_events: int = MAX_EXTENSION_EVENTS
    debug: bool = False

    def __post_init__(self):
        if self.angle_method not in ANGLE_METHODS:
            raise ValueError(f"angle_method must be one of {ANGLE_METHODS}, got {self.angle_method!r}")
        if self.max_extension_events <= 0:
            raise ValueError("max_extension_events must be > 0")


# -------- Logging setup --------
def init_logging(level: int = logging.INFO, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the package logger.

    The library itself never calls this; applications and scripts do.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)

    logger.handlers.clear()
    logger.addHandler(ch)

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = os.path.join(log_dir, f"layout_{ts}.log")
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
