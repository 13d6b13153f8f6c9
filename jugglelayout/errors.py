# errors.py
#
# Two kinds of failure come out of a layout pass:
#   PatternError        -> the supplied pattern is structurally invalid
#   LayoutInternalError -> an invariant the engine should guarantee failed

from __future__ import annotations


class JuggleError(Exception):
    pass


class PatternError(JuggleError, ValueError):
    """Invalid pattern data. The message names the path/hand/juggler involved."""


class LayoutInternalError(JuggleError, RuntimeError):
    """
    Program-logic failure during layout.

    `pattern` holds the Pattern being laid out when the error escaped the
    layout pass, so the failure can be reproduced.
    """

    def __init__(self, message: str, pattern=None):
        super().__init__(message)
        self.pattern = pattern

    def __str__(self) -> str:
        msg = super().__str__()
        if self.pattern is not None:
            msg += f" (pattern: {self.pattern.summary()})"
        return msg


def attach_pattern(err: LayoutInternalError, pattern) -> LayoutInternalError:
    if err.pattern is None:
        err.pattern = pattern
    return err
