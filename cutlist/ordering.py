"""Explicit reordering of the segment list."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from cutlist.intervals import apparent_start
from cutlist.store import SegmentStore


class OrderingManager:
    def __init__(self, store: SegmentStore):
        self._store = store

    def move_to(self, index: int, new_index: int) -> bool:
        """Move one segment to a new position; the current segment pointer follows it.

        Returns False (no change) when either position is out of range.
        """
        count = len(self._store)
        if not 0 <= new_index < count or not 0 <= index < count:
            return False
        segments = self._store.segments
        moved = segments.pop(index)
        segments.insert(new_index, moved)
        self._store.replace_all(segments)
        self._store.current_index = new_index
        return True

    def apply_order(self, ids_in_order: Sequence[str]) -> None:
        """Reorder by an explicit list of ids.

        Segments missing from the list keep their relative order and go first.
        The current segment pointer follows the id it pointed at.
        """
        position = {seg_id: i for i, seg_id in enumerate(ids_in_order)}
        current_id = self._store.current_segment.id
        segments = sorted(self._store.segments, key=lambda seg: position.get(seg.id, -1))
        self._store.replace_all(segments)

        new_index = self._store.index_of(current_id)
        if new_index >= 0:
            self._store.current_index = new_index

    def sort_by_apparent_start(self) -> None:
        self._store.replace_all(sorted(self._store.segments, key=apparent_start))

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        segments = self._store.segments
        (rng or random).shuffle(segments)
        self._store.replace_all(segments)
