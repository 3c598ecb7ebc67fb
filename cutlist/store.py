"""SegmentStore — the single invariant-checked write path for segment lists."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from cutlist.config import SegmentConfig
from cutlist.edl import valid_rows
from cutlist.errors import (
    CutListError,
    CANNOT_INVERT,
    DUPLICATE_SEGMENT_ID,
    EMPTY_SEGMENTS,
    INVALID_PLACEHOLDER,
    INVALID_SEGMENT_INDEX,
    INVALID_TAGS,
    INVALID_TIME_ORDERING,
    LABEL_TOO_LONG,
    NO_SEGMENT_AT_CURSOR,
    NO_VALID_SEGMENTS,
    TOO_MANY_SEGMENTS,
    recovery_hints,
)
from cutlist.history import History
from cutlist.intervals import (
    apparent_end,
    apparent_start,
    clamp,
    find_segments_at_cursor,
    has_invalid_segments,
    invert,
    is_duration_valid,
    merge_overlapping,
    split_at,
    to_apparent,
)
from cutlist.models import Segment

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = ("start", "end", "name", "tags")


def _partial_fields(partial: Segment | Mapping[str, Any] | None) -> dict:
    if partial is None:
        return {}
    if isinstance(partial, Segment):
        return {
            "start": partial.start,
            "end": partial.end,
            "name": partial.name,
            "tags": dict(partial.tags),
        }
    return {k: partial[k] for k in _PATCHABLE_FIELDS if k in partial}


class SegmentStore:
    """Owns the ordered segment list, the color counter and the undo history.

    The store is never empty: when nothing else is left it holds a single
    placeholder segment with both bounds open. Every mutation goes through
    ``_commit``, which validates the new list before recording it, so a
    rejected write leaves the store exactly as it was.

    Segments handed out by the store are copies; changing one does not touch
    the store or its history.
    """

    def __init__(self, config: Optional[SegmentConfig] = None, duration: Optional[float] = None):
        self.config = config or SegmentConfig()
        self.duration = duration
        self.current_index = 0
        self._counter = 0
        self._history: History[tuple[Segment, ...]] = History(
            (self.create(),), capacity=self.config.history_size,
        )

    # -- reading -----------------------------------------------------------

    @property
    def segments(self) -> list[Segment]:
        return [seg.copy() for seg in self._history.present]

    @property
    def counter(self) -> int:
        return self._counter

    def __len__(self) -> int:
        return len(self._history.present)

    def __iter__(self) -> Iterator[Segment]:
        return (seg.copy() for seg in self._history.present)

    def __getitem__(self, index: int) -> Segment:
        return self._history.present[index].copy()

    @property
    def is_placeholder_only(self) -> bool:
        present = self._history.present
        return len(present) == 1 and present[0].is_placeholder

    def apparent_segments(self) -> list[Segment]:
        """Segments with open bounds resolved to 0 / duration."""
        return [to_apparent(seg, self.duration) for seg in self._history.present]

    @property
    def has_invalid_segments(self) -> bool:
        return has_invalid_segments(self._history.present, self.duration)

    @property
    def current_index_safe(self) -> int:
        return max(0, min(self.current_index, len(self) - 1))

    @property
    def current_segment(self) -> Segment:
        return self._history.present[self.current_index_safe].copy()

    @property
    def current_apparent_segment(self) -> Segment:
        return to_apparent(self.current_segment, self.duration)

    def index_of(self, segment_id: str) -> int:
        for i, seg in enumerate(self._history.present):
            if seg.id == segment_id:
                return i
        return -1

    # -- construction ------------------------------------------------------

    def create(self, partial: Segment | Mapping[str, Any] | None = None, increment_counter: bool = False) -> Segment:
        """Build (but do not add) a segment with a fresh id and the current color index."""
        if increment_counter:
            self._counter += 1
        return self._build(partial, self._counter)

    @staticmethod
    def _build(partial: Segment | Mapping[str, Any] | None, color_index: int) -> Segment:
        return Segment(color_index=color_index, **_partial_fields(partial))

    # -- validation and commit ---------------------------------------------

    def _check_capacity(self, count: int) -> None:
        if count > self.config.max_segments:
            max_segments = self.config.max_segments
            raise CutListError(
                code=TOO_MANY_SEGMENTS,
                message=f"Tried to create too many segments (max {max_segments})",
                recovery=recovery_hints(TOO_MANY_SEGMENTS, {"max_segments": max_segments}),
                context={"count": count, "max_segments": max_segments},
            )

    def _validate(self, segments: Sequence[Segment]) -> None:
        if len(segments) == 0:
            raise CutListError(
                code=EMPTY_SEGMENTS,
                message="Segment list cannot be empty",
                recovery=recovery_hints(EMPTY_SEGMENTS),
            )
        self._check_capacity(len(segments))

        seen: set[str] = set()
        for seg in segments:
            if seg.id in seen:
                raise CutListError(
                    code=DUPLICATE_SEGMENT_ID,
                    message=f"Duplicate segment id: {seg.id}",
                    context={"id": seg.id},
                )
            seen.add(seg.id)

        if len(segments) > 1 and any(seg.is_placeholder for seg in segments):
            raise CutListError(
                code=INVALID_PLACEHOLDER,
                message="A segment with no start and no end is only allowed as the sole segment",
                recovery=["Give the segment a start or an end time"],
            )

    def _commit(self, segments: Iterable[Segment], action: str, counter: Optional[int] = None) -> None:
        """Validate and record a new list; the counter only moves once it is accepted."""
        snapshot = tuple(segments)
        self._validate(snapshot)
        self._history.commit(snapshot)
        if counter is not None:
            self._counter = counter
        logger.debug("%s: %d segment(s), counter=%d", action, len(snapshot), self._counter)

    def replace_all(self, segments: Iterable[Segment]) -> None:
        """Replace the whole collection in one recorded step."""
        self._commit(segments, "replace_all")

    # -- history -----------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def undo(self) -> bool:
        moved = self._history.undo()
        if moved:
            logger.debug("undo: %d segment(s)", len(self))
        return moved

    def redo(self) -> bool:
        moved = self._history.redo()
        if moved:
            logger.debug("redo: %d segment(s)", len(self))
        return moved

    # -- single-segment edits ----------------------------------------------

    def _check_index(self, index: int) -> None:
        if index >= len(self):
            raise CutListError(
                code=INVALID_SEGMENT_INDEX,
                message=f"Segment index {index} is out of range (0–{len(self) - 1})",
                recovery=recovery_hints(INVALID_SEGMENT_INDEX),
                context={"index": index, "count": len(self)},
            )

    def update_at(self, index: int, patch: Mapping[str, Any]) -> None:
        """Merge start/end/name/tags into one segment; id and color index are kept."""
        if index < 0:
            return
        self._check_index(index)
        unknown = set(patch) - set(_PATCHABLE_FIELDS) - {"id", "color_index"}
        if unknown:
            raise ValueError(f"Cannot patch segment fields: {sorted(unknown)}")

        current = self._history.present[index]
        fields = _partial_fields(current)
        fields.update(_partial_fields(patch))
        updated = Segment(id=current.id, color_index=current.color_index, **fields)

        segments = self.segments
        segments[index] = updated
        self._commit(segments, "update_at")

    def set_cut_time(self, kind: str, time: float, index: Optional[int] = None) -> None:
        """Set the start or end of a segment (the current one by default).

        The time is clamped to the timeline. Nothing happens while the
        duration is unknown.
        """
        if kind not in ("start", "end"):
            raise ValueError("kind must be 'start' or 'end'")
        if not is_duration_valid(self.duration):
            return
        index = self.current_index_safe if index is None else index
        self._check_index(index)
        seg = self._history.present[index]

        if kind == "start" and time >= apparent_end(seg, self.duration):
            raise CutListError(
                code=INVALID_TIME_ORDERING,
                message="Start time must precede end time",
                recovery=recovery_hints(INVALID_TIME_ORDERING),
                context={"time": time, "end": apparent_end(seg, self.duration)},
            )
        if kind == "end" and time <= apparent_start(seg):
            raise CutListError(
                code=INVALID_TIME_ORDERING,
                message="Start time must precede end time",
                recovery=recovery_hints(INVALID_TIME_ORDERING),
                context={"time": time, "start": apparent_start(seg)},
            )
        self.update_at(index, {kind: clamp(time, self.duration)})

    def label_segments(self, ids: Iterable[str], name: str) -> None:
        if len(name) > self.config.max_label_length:
            raise CutListError(
                code=LABEL_TOO_LONG,
                message=f"Label is longer than {self.config.max_label_length} characters",
                context={"length": len(name), "max_label_length": self.config.max_label_length},
            )
        wanted = set(ids)
        segments = []
        for seg in self._history.present:
            if seg.id in wanted:
                seg = seg.copy()
                seg.name = name
            segments.append(seg)
        self._commit(segments, "label_segments")

    def set_tags(self, index: int, tags: Mapping[str, Any]) -> None:
        if not isinstance(tags, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in tags.items()
        ):
            raise CutListError(
                code=INVALID_TAGS,
                message="Tags must map strings to strings",
                recovery=recovery_hints(INVALID_TAGS),
            )
        self.update_at(index, {"tags": dict(tags)})

    # -- adding and removing -----------------------------------------------

    def add_segment(self, time: float) -> Optional[Segment]:
        """Append an open segment starting at a time and make it current.

        Returns None (and changes nothing) while the current segment is the
        placeholder or when the time is past the end of the timeline.
        """
        if self.current_segment.is_placeholder:
            return None
        if self.duration is not None and time >= self.duration:
            return None
        self._check_capacity(len(self) + 1)

        counter = self._counter + 1
        new = self._build({"start": time}, counter)
        self._commit(self.segments + [new], "add_segment", counter)
        self.current_index = len(self) - 1
        return new.copy()

    def load_segments(self, rows: Iterable[Any], append: bool = False) -> list[Segment]:
        """Import rows as segments, replacing or appending to the collection.

        Appending onto a store that only holds the placeholder replaces it.

        Raises:
            CutListError: NO_VALID_SEGMENTS if no row survives validation,
                TOO_MANY_SEGMENTS if the result would exceed the limit.
        """
        valid = valid_rows(rows)
        if not valid:
            raise CutListError(
                code=NO_VALID_SEGMENTS,
                message="No valid segments found",
                recovery=recovery_hints(NO_VALID_SEGMENTS),
            )

        need_append = append and not self.is_placeholder_only
        existing = self.segments if need_append else []
        self._check_capacity(len(existing) + len(valid))

        counter = self._counter if append else 0
        new = []
        for i, row in enumerate(valid):
            if need_append or i > 0:
                counter += 1
            new.append(self._build(Segment.from_dict(row), counter))
        self._commit(existing + new, "load_segments", counter)
        logger.info("Loaded %d segment(s) (%s)", len(new), "append" if need_append else "replace")
        return [seg.copy() for seg in new]

    def remove_by_ids(self, ids: Iterable[str]) -> None:
        """Remove segments by id. Removing everything starts over from a placeholder."""
        if self.is_placeholder_only:
            return
        doomed = set(ids)
        remaining = [seg for seg in self._history.present if seg.id not in doomed]
        if len(remaining) == len(self):
            return
        if not remaining:
            self.clear()
            return
        self._commit(remaining, "remove_by_ids")

    def remove_at(self, index: int) -> None:
        if index < 0:
            return
        self._check_index(index)
        self.remove_by_ids([self._history.present[index].id])

    def clear(self) -> None:
        """Reset to a single placeholder and restart the color counter (undoable)."""
        self._commit((self._build(None, 0),), "clear", 0)

    # -- interval algebra on the whole collection ---------------------------

    def split_at_cursor(self, time: float) -> tuple[Segment, Segment]:
        """Split the first segment under the cursor in two."""
        hits = find_segments_at_cursor(self.apparent_segments(), time)
        if not hits:
            raise CutListError(
                code=NO_SEGMENT_AT_CURSOR,
                message="No segment to split. Move the cursor over the segment you want to split",
                recovery=recovery_hints(NO_SEGMENT_AT_CURSOR),
                context={"time": time},
            )
        index = hits[0]
        self._check_capacity(len(self) + 1)
        halves = split_at(self._history.present[index], time, self.duration)

        counter = self._counter + 1
        first = self._build(halves[0], self._counter)
        second = self._build(halves[1], counter)
        segments = self.segments
        segments[index:index + 1] = [first, second]
        self._commit(segments, "split_at_cursor", counter)
        return first.copy(), second.copy()

    def inverse_segments(self) -> list[Segment]:
        """The gaps between segments, or [] when they cannot be inverted."""
        return invert(self._history.present, self.duration)

    def _require_inverse(self) -> list[Segment]:
        inverse = self.inverse_segments()
        if not inverse:
            raise CutListError(
                code=CANNOT_INVERT,
                message="Make sure you have no overlapping segments.",
                recovery=recovery_hints(CANNOT_INVERT),
                context={"duration": self.duration, "count": len(self)},
            )
        return inverse

    def invert_all(self) -> list[Segment]:
        """Replace the segments with the gaps between them.

        Color indexes restart from the position in the new list; the counter
        itself is left alone.
        """
        inverse = self._require_inverse()
        new = [
            Segment(color_index=i, start=gap.start, end=gap.end)
            for i, gap in enumerate(inverse)
        ]
        self._commit(new, "invert_all")
        return [seg.copy() for seg in new]

    def fill_gaps(self) -> list[Segment]:
        """Append a new segment for every gap between existing segments."""
        inverse = self._require_inverse()
        self._check_capacity(len(self) + len(inverse))
        counter = self._counter
        new = []
        for gap in inverse:
            counter += 1
            new.append(self._build(gap, counter))
        self._commit(self.segments + new, "fill_gaps", counter)
        return [seg.copy() for seg in new]

    def combine_overlapping(self) -> None:
        self._commit(merge_overlapping(self.segments, self.duration), "combine_overlapping")
