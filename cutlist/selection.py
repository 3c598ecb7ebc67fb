"""Segment selection kept as a sparse map of exceptions.

Only deselected ids are stored, so new segments start out selected and
"select all" is just clearing the map.
"""

from __future__ import annotations

from typing import Iterable

from cutlist.models import Segment
from cutlist.store import SegmentStore


class SelectionSet:
    def __init__(self, store: SegmentStore):
        self._store = store
        self._deselected: dict[str, bool] = {}

    @property
    def deselected(self) -> dict[str, bool]:
        return dict(self._deselected)

    def is_selected(self, segment_id: str) -> bool:
        return not self._deselected.get(segment_id, False)

    def selected_segments(self, segments: Iterable[Segment] | None = None) -> list[Segment]:
        source = self._store.segments if segments is None else segments
        return [seg for seg in source if self.is_selected(seg.id)]

    def selected_ids(self) -> list[str]:
        return [seg.id for seg in self.selected_segments()]

    def select_only(self, segment_id: str) -> None:
        self._deselected = {
            seg.id: True for seg in self._store.segments if seg.id != segment_id
        }

    def toggle(self, segment_id: str) -> None:
        self._deselected = {**self._deselected, segment_id: not self._deselected.get(segment_id, False)}

    def select_all(self) -> None:
        self._deselected = {}

    def deselect_all(self) -> None:
        self._deselected = {seg.id: True for seg in self._store.segments}

    def select_by_label(self, name: str) -> int:
        """Select every segment carrying a label, leaving the rest as they are.

        Nothing changes when no segment, or every segment, has the label.
        Returns the number of segments marked selected.
        """
        segments = self._store.segments
        matching = [seg for seg in segments if (seg.name or "") == name]
        if not matching or len(matching) == len(segments):
            return 0
        updated = dict(self._deselected)
        for seg in matching:
            updated[seg.id] = False
        self._deselected = updated
        return len(matching)
