"""Bounded-concurrency batch transforms over the selected segments."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Sequence, Union

from cutlist.config import KEYFRAME_SEARCH_WINDOW, TRANSFORM_CONCURRENCY
from cutlist.errors import (
    CutListError,
    INVALID_DURATION,
    KEYFRAME_NOT_FOUND,
    recovery_hints,
)
from cutlist.intervals import clamp, is_duration_valid
from cutlist.models import Segment

logger = logging.getLogger(__name__)

SegmentTransform = Callable[[Segment], Union[Segment, Awaitable[Segment]]]
KeyframeLookup = Callable[..., Awaitable[Optional[float]]]

ALIGN_MODES = ("nearest", "before", "after")


def _selection_predicate(selection) -> Callable[[str], bool]:
    if selection is None:
        return lambda _segment_id: True
    if hasattr(selection, "is_selected"):
        return selection.is_selected
    return selection


async def transform_selected(
    segments: Sequence[Segment],
    selection,
    transform: SegmentTransform,
    duration: float,
    concurrency: int = TRANSFORM_CONCURRENCY,
) -> list[Segment]:
    """Apply a transform to the selected segments, at most `concurrency` at a time.

    Unselected segments pass through untouched (the same objects). Each
    selected segment is handed to the transform as an independent copy, and
    the result is written back to its original position, so the output order
    never depends on completion order. Transformed bounds are clamped to
    [0, duration] and every segment left with end <= start is dropped.

    A transform failure cancels the rest of the batch and propagates.

    Args:
        segments: Segments with resolved (apparent) bounds.
        selection: A SelectionSet, a predicate on segment ids, or None for all.
        transform: Sync or async callable returning the new segment.
        duration: Timeline length used for clamping.
        concurrency: Maximum number of transforms in flight.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if not is_duration_valid(duration):
        raise CutListError(
            code=INVALID_DURATION,
            message=f"Invalid media duration: {duration!r}",
            recovery=recovery_hints(INVALID_DURATION),
            context={"duration": duration},
        )

    is_selected = _selection_predicate(selection)
    results: list[Optional[Segment]] = [None] * len(segments)
    pending = iter(enumerate(segments))

    async def worker() -> None:
        for index, segment in pending:
            if not is_selected(segment.id):
                results[index] = segment
                continue
            new = transform(segment.copy())
            if inspect.isawaitable(new):
                new = await new
            if not isinstance(new, Segment):
                raise TypeError(f"transform must return a Segment, got {type(new).__name__}")
            new.start = clamp(new.start, duration)
            new.end = clamp(new.end, duration)
            results[index] = new

    workers = [asyncio.ensure_future(worker()) for _ in range(min(concurrency, len(segments)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    kept = [seg for seg in results if seg is not None and seg.end > seg.start]
    logger.debug(
        "Transformed %d segment(s) with %d worker(s); %d dropped",
        len(segments), len(workers), len(segments) - len(kept),
    )
    return kept


def shift_transform(amount: float, keys: Sequence[str] = ("start", "end")) -> SegmentTransform:
    """Transform that moves the given bounds by `amount` seconds."""
    keys = tuple(keys)
    if not keys or any(key not in ("start", "end") for key in keys):
        raise ValueError("keys must be 'start' and/or 'end'")

    def _shift(segment: Segment) -> Segment:
        for key in keys:
            setattr(segment, key, getattr(segment, key) + amount)
        return segment

    return _shift


def keyframe_align_transform(
    lookup: KeyframeLookup,
    mode: str = "nearest",
    start_or_end: Union[str, Sequence[str]] = ("start", "end"),
    window: float = KEYFRAME_SEARCH_WINDOW,
) -> SegmentTransform:
    """Transform that snaps segment bounds to nearby keyframes.

    `lookup(time=..., mode=...)` returns a keyframe time or None; None means
    no keyframe was found within the search window and fails the batch.
    """
    if mode not in ALIGN_MODES:
        raise ValueError(f"mode must be one of {ALIGN_MODES}")

    async def _align(segment: Segment) -> Segment:
        for key in ("start", "end"):
            if key not in start_or_end:
                continue
            time = getattr(segment, key)
            keyframe = await lookup(time=time, mode=mode)
            if keyframe is None:
                raise CutListError(
                    code=KEYFRAME_NOT_FOUND,
                    message=f"Cannot find any keyframe within {window:g} seconds of frame {time}",
                    recovery=recovery_hints(KEYFRAME_NOT_FOUND),
                    context={"time": time, "mode": mode, "window": window},
                )
            setattr(segment, key, keyframe)
        return segment

    return _align
