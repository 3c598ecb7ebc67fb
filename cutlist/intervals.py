"""Interval algebra over segments — apparent bounds, inversion, merging, splitting.

Every function here is pure: inputs are never mutated, and results are new
Segment objects (or the untouched input objects where nothing changed).
"""

from __future__ import annotations

import math
import random
from typing import Iterable, Optional, Sequence

from cutlist.errors import CutListError, INVALID_SPLIT_POINT, INVALID_DURATION, recovery_hints
from cutlist.models import Segment, new_segment_id


# ---------------------------------------------------------------------------
# Apparent bounds
# ---------------------------------------------------------------------------

def is_duration_valid(duration: Optional[float]) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


def apparent_start(segment: Segment) -> float:
    return segment.start if segment.start is not None else 0.0


def apparent_end(segment: Segment, duration: Optional[float]) -> float:
    if segment.end is not None:
        return segment.end
    if duration is not None:
        return duration
    return 0.0


def to_apparent(segment: Segment, duration: Optional[float]) -> Segment:
    """Copy of a segment with both bounds resolved. The id is kept."""
    resolved = segment.copy()
    resolved.start = apparent_start(segment)
    resolved.end = apparent_end(segment, duration)
    return resolved


def is_valid(segment: Segment, duration: Optional[float]) -> bool:
    return apparent_start(segment) < apparent_end(segment, duration)


def has_invalid_segments(segments: Iterable[Segment], duration: Optional[float]) -> bool:
    return any(not is_valid(seg, duration) for seg in segments)


def clamp(value: float, duration: float) -> float:
    return min(max(value, 0.0), duration)


# ---------------------------------------------------------------------------
# Ordering helpers
# ---------------------------------------------------------------------------

def sort_segments(segments: Iterable[Segment]) -> list[Segment]:
    """Stable sort by apparent start."""
    return sorted(segments, key=apparent_start)


def has_overlap(sorted_segments: Sequence[Segment], duration: Optional[float] = None) -> bool:
    """True if any segment starts before an earlier one has ended."""
    running_end: Optional[float] = None
    for seg in sorted_segments:
        start = apparent_start(seg)
        if running_end is not None and start < running_end:
            return True
        end = apparent_end(seg, duration)
        running_end = end if running_end is None else max(running_end, end)
    return False


def find_segments_at_cursor(apparent_segments: Sequence[Segment], time: float) -> list[int]:
    """Indexes of the segments strictly containing a time."""
    return [
        i for i, seg in enumerate(apparent_segments)
        if seg.start < time < seg.end
    ]


# ---------------------------------------------------------------------------
# Inversion and merging
# ---------------------------------------------------------------------------

def invert(segments: Sequence[Segment], duration: Optional[float]) -> list[Segment]:
    """Return the gaps between segments over [0, duration].

    Includes the leading gap before the first segment and the trailing gap
    after the last one when they are non-empty; zero-length gaps are dropped.
    An empty list means the segments cannot be inverted: nothing to invert,
    an invalid duration, an invalid segment, or overlapping segments.
    """
    if not segments or not is_duration_valid(duration):
        return []
    if has_invalid_segments(segments, duration):
        return []

    ordered = sort_segments(to_apparent(seg, duration) for seg in segments)
    if has_overlap(ordered):
        return []

    ranges: list[tuple[float, float]] = []
    first = ordered[0]
    if first.start > 0:
        ranges.append((0.0, first.start))
    for prev, cur in zip(ordered, ordered[1:]):
        ranges.append((prev.end, cur.start))
    last = ordered[-1]
    if last.end < duration:
        ranges.append((last.end, duration))

    return [Segment(start=start, end=end) for start, end in ranges if start < end]


def merge_overlapping(segments: Sequence[Segment], duration: Optional[float] = None) -> list[Segment]:
    """Fold overlapping or touching segments together.

    Segments are scanned in apparent-start order. A segment starting at or
    before the running end is absorbed: the earlier segment keeps its id,
    name, tags and start, and its end grows to the larger apparent end.
    """
    merged: list[Segment] = []
    for seg in sort_segments(segments):
        if merged and apparent_start(seg) <= apparent_end(merged[-1], duration):
            last = merged[-1]
            highest = max(apparent_end(last, duration), apparent_end(seg, duration))
            if highest != apparent_end(last, duration):
                grown = last.copy()
                grown.end = highest
                merged[-1] = grown
            continue
        merged.append(seg)
    return merged


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------

def split_at(segment: Segment, cursor_time: float, duration: Optional[float] = None) -> tuple[Segment, Segment]:
    """Split a segment in two at a time strictly inside it.

    Both halves get fresh ids and inherit tags and color index; a name gets a
    " 1" / " 2" suffix.
    """
    start = apparent_start(segment)
    end = apparent_end(segment, duration)
    if not start < cursor_time < end:
        raise CutListError(
            code=INVALID_SPLIT_POINT,
            message=f"Split point {cursor_time:.3f}s is not inside segment [{start:.3f}, {end:.3f}]",
            recovery=recovery_hints(INVALID_SPLIT_POINT),
            context={"time": cursor_time, "start": start, "end": end},
        )

    def _name(suffix: str) -> str:
        return f"{segment.name} {suffix}" if segment.name else ""

    first = Segment(
        id=new_segment_id(),
        color_index=segment.color_index,
        start=segment.start,
        end=cursor_time,
        name=_name("1"),
        tags=dict(segment.tags),
    )
    second = Segment(
        id=new_segment_id(),
        color_index=segment.color_index,
        start=cursor_time,
        end=segment.end,
        name=_name("2"),
        tags=dict(segment.tags),
    )
    return first, second


# ---------------------------------------------------------------------------
# Segment generators
# ---------------------------------------------------------------------------

def map_times_to_segments(times: Sequence[float]) -> list[dict]:
    """Turn consecutive time points into ranges; the last one is open-ended."""
    rows: list[dict] = []
    for i, start in enumerate(times):
        if start is None:
            continue
        end = times[i + 1] if i + 1 < len(times) else None
        rows.append({"start": start, "end": end})
    return rows


def _require_duration(duration: Optional[float]) -> float:
    if not is_duration_valid(duration):
        raise CutListError(
            code=INVALID_DURATION,
            message=f"Invalid media duration: {duration!r}",
            recovery=recovery_hints(INVALID_DURATION),
            context={"duration": duration},
        )
    return float(duration)


def create_num_segments(duration: float, count: int) -> list[dict]:
    """Cover the timeline with `count` equal segments."""
    duration = _require_duration(duration)
    if count < 1:
        raise ValueError("count must be >= 1")
    step = duration / count
    rows = [{"start": i * step, "end": (i + 1) * step} for i in range(count)]
    rows[-1]["end"] = duration
    return rows


def create_fixed_duration_segments(duration: float, segment_duration: float) -> list[dict]:
    """Cover the timeline with back-to-back segments of a fixed length."""
    duration = _require_duration(duration)
    if segment_duration <= 0:
        raise ValueError("segment_duration must be > 0")
    rows: list[dict] = []
    start = 0.0
    while start < duration:
        end = min(start + segment_duration, duration)
        rows.append({"start": start, "end": end})
        start = end
    return rows


def create_random_segments(
    duration: float,
    min_duration: float = 2.0,
    max_duration: float = 10.0,
    min_gap: float = 0.0,
    max_gap: float = 5.0,
    rng: Optional[random.Random] = None,
) -> list[dict]:
    """Scatter segments of random length separated by random gaps."""
    duration = _require_duration(duration)
    if min_duration <= 0 or max_duration < min_duration:
        raise ValueError("need 0 < min_duration <= max_duration")
    if min_gap < 0 or max_gap < min_gap:
        raise ValueError("need 0 <= min_gap <= max_gap")
    rng = rng or random.Random()

    rows: list[dict] = []
    position = 0.0
    while True:
        start = position + rng.uniform(min_gap, max_gap)
        if start >= duration:
            break
        end = min(start + rng.uniform(min_duration, max_duration), duration)
        rows.append({"start": start, "end": end})
        position = end
    return rows
