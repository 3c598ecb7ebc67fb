"""Merge external detector output into the store, one run at a time."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Optional

from cutlist.models import Segment
from cutlist.store import SegmentStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
Detector = Callable[..., Awaitable[list]]


class WorkIndicator:
    """What the engine is busy with, plus a progress fraction.

    ``on_change(working, progress)`` is called on every change, so a UI can
    mirror it.
    """

    def __init__(self, on_change: Optional[Callable[[Optional[str], Optional[float]], None]] = None):
        self.working: Optional[str] = None
        self.progress: Optional[float] = None
        self._on_change = on_change

    @property
    def busy(self) -> bool:
        return self.working is not None

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.working, self.progress)

    def begin(self, text: str, progress: Optional[float] = None) -> None:
        self.working = text
        self.progress = progress
        self._notify()

    def set_progress(self, fraction: float) -> None:
        self.progress = max(0.0, min(1.0, fraction))
        self._notify()

    def end(self) -> None:
        self.working = None
        self.progress = None
        self._notify()


class DetectionIntegrator:
    """Runs detectors over a time range and appends what they find to the store.

    Only one detection runs at a time: a call made while the indicator is
    busy returns None without doing anything, as does a call made before a
    file is loaded.
    """

    def __init__(
        self,
        store: SegmentStore,
        indicator: Optional[WorkIndicator] = None,
        is_file_loaded: Optional[Callable[[], bool]] = None,
    ):
        self.store = store
        self.indicator = indicator or WorkIndicator()
        self._is_file_loaded = is_file_loaded or (lambda: True)

    async def run_detector(
        self,
        detector: Detector,
        current_range: Segment,
        name: str = "detector",
        working_text: str = "Detecting",
    ) -> Optional[list[Segment]]:
        """Run one detector and merge its ranges into the store.

        Args:
            detector: ``async (start=, end=, on_progress=) -> [{start?, end?}]``.
            current_range: Segment whose apparent bounds form the search window.
            name: Detector name, for logging.
            working_text: Indicator text while the detector runs.

        Returns:
            The newly added segments, or None when the run was skipped.

        Raises:
            CutListError: NO_VALID_SEGMENTS / TOO_MANY_SEGMENTS; detector errors
                propagate unchanged. The store is untouched on any failure.
        """
        if not self._is_file_loaded():
            logger.debug("Skipping %s: no file loaded", name)
            return None
        if self.indicator.busy:
            logger.debug("Skipping %s: %s already in progress", name, self.indicator.working)
            return None

        start = current_range.start if current_range.start is not None else 0.0
        end = current_range.end
        started = time.monotonic()
        self.indicator.begin(working_text, 0.0)
        try:
            rows: list[Any] = await detector(start=start, end=end, on_progress=self.indicator.set_progress)
            logger.info(
                "%s found %d range(s) in [%s, %s] (%.2fs)",
                name, len(rows), start, end, time.monotonic() - started,
            )
            return self.store.load_segments(rows, append=True)
        finally:
            self.indicator.end()
