"""Bounded undo/redo history of segment-list snapshots."""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class History(Generic[T]):
    """Linear history: past snapshots, the present one, and a redo branch.

    Committing pushes the present onto ``past`` (evicting the oldest entry
    beyond ``capacity``) and discards ``future``.
    """

    def __init__(self, initial: T, capacity: int = 100):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.past: deque[T] = deque(maxlen=capacity)
        self.present: T = initial
        self.future: deque[T] = deque()

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def commit(self, snapshot: T) -> None:
        self.past.append(self.present)
        self.present = snapshot
        self.future.clear()

    def undo(self) -> bool:
        """Step back one snapshot. Returns False when there is nothing to undo."""
        if not self.can_undo:
            return False
        self.future.appendleft(self.present)
        self.present = self.past.pop()
        return True

    def redo(self) -> bool:
        """Step forward one snapshot. Returns False when there is nothing to redo."""
        if not self.can_redo:
            return False
        self.past.append(self.present)
        self.present = self.future.popleft()
        return True

    def __len__(self) -> int:
        return len(self.past) + 1 + len(self.future)
