# sequence.py
#
# Event sequence merger: k-way merge of every primary event's image generator
# into one time-ordered stream, plus navigation helpers built on it.

from __future__ import annotations

from typing import Iterator, List, Optional

from .errors import LayoutInternalError
from .images import EventImage, EventImages
from .pattern import Event, Pattern


def _key(image: EventImage):
    return image.event.sort_key()


def event_sequence(pattern: Pattern, start_time: Optional[float] = None, reverse: bool = False) -> Iterator[EventImage]:
    """
    Unbounded generator of event images starting at `start_time`.

    Forward mode yields events with t >= start_time in increasing order;
    reverse mode yields events with t < start_time in decreasing order, so
    the two scans from the same time together cover every event once.
    """
    if start_time is None:
        start_time = pattern.loop_start_time

    generators = [EventImages(pattern, ev) for ev in pattern.events]
    queue: List[EventImage] = [gen.current() for gen in generators]

    # scan in the opposite direction first, until we are past start_time
    starting = True

    while True:
        if reverse != starting:
            index = max(range(len(queue)), key=lambda i: _key(queue[i]))
        else:
            index = min(range(len(queue)), key=lambda i: _key(queue[i]))
        image = queue[index]

        if starting:
            if reverse != (image.event.t < start_time):
                starting = False
        elif reverse != (image.event.t >= start_time):
            yield image

        if reverse != starting:
            queue[index] = generators[index].previous()
        else:
            queue[index] = generators[index].next()


def _first(images: Iterator[EventImage], pred) -> EventImage:
    for image in images:
        if pred(image):
            return image
    raise LayoutInternalError("Event sequence ended; image generators are unbounded")


def prev_for_hand(pattern: Pattern, ev: Event) -> EventImage:
    """Latest event on the same juggler/hand strictly before `ev`."""
    return _first(
        event_sequence(pattern, ev.t, reverse=True),
        lambda im: im.event.hand == ev.hand and im.event.juggler == ev.juggler,
    )


def next_for_hand(pattern: Pattern, ev: Event) -> EventImage:
    return _first(
        event_sequence(pattern, ev.t),
        lambda im: im.event.t > ev.t and im.event.hand == ev.hand and im.event.juggler == ev.juggler,
    )


def prev_for_path(pattern: Pattern, ev: Event, path: int) -> EventImage:
    return _first(
        event_sequence(pattern, ev.t, reverse=True),
        lambda im: any(tr.path == path for tr in im.event.transitions),
    )


def next_for_path(pattern: Pattern, ev: Event, path: int) -> EventImage:
    return _first(
        event_sequence(pattern, ev.t),
        lambda im: im.event.t > ev.t and any(tr.path == path for tr in im.event.transitions),
    )


def has_passing_transition(pattern: Pattern, ev: Event) -> bool:
    """True if a throw/catch in `ev` connects to a different juggler."""
    paths = [tr.path for tr in ev.transitions if tr.is_throw_or_catch]
    return any(
        prev_for_path(pattern, ev, p).event.juggler != ev.juggler
        or next_for_path(pattern, ev, p).event.juggler != ev.juggler
        for p in paths
    )


def all_events(pattern: Pattern) -> List[EventImage]:
    """
    Sorted images covering the loop, one loop on either side of it, and at
    least one throw/catch outside the loop on each side for every path.
    """
    start = pattern.loop_start_time
    end = pattern.loop_end_time
    window = pattern.path_permutation.order * pattern.loop_duration
    result: List[EventImage] = []

    path_done = [False] * pattern.num_paths
    for image in event_sequence(pattern, reverse=True):
        ev = image.event
        if ev.t < start - window:
            break
        if (ev.t >= 2 * start - end or not ev.transitions
                or not all(path_done[tr.path - 1] for tr in ev.transitions)):
            result.append(image)
            for tr in ev.transitions:
                if tr.is_throw_or_catch:
                    path_done[tr.path - 1] = True

    path_done = [False] * pattern.num_paths
    for image in event_sequence(pattern):
        ev = image.event
        if ev.t > end + window:
            break
        if (ev.t < 2 * end - start or not ev.transitions
                or not all(path_done[tr.path - 1] for tr in ev.transitions)):
            result.append(image)
            if ev.t < end:
                continue
            for tr in ev.transitions:
                if tr.is_throw_or_catch:
                    path_done[tr.path - 1] = True

    return sorted(result, key=_key)


def loop_events(pattern: Pattern) -> List[EventImage]:
    start, end = pattern.loop_start_time, pattern.loop_end_time
    return [im for im in all_events(pattern) if start <= im.event.t < end]
