"""Async detector and keyframe-lookup adapters over the FFmpeg probe functions.

Each factory returns a coroutine function with the detector signature
``(start=, end=, on_progress=) -> rows`` that the DetectionIntegrator expects.
The blocking ffmpeg/ffprobe calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from cutlist import probe
from cutlist.config import KEYFRAME_SEARCH_WINDOW
from cutlist.intervals import map_times_to_segments

logger = logging.getLogger(__name__)


class FfmpegDetectors:
    def __init__(
        self,
        path: str | Path,
        stream_index: Optional[int] = None,
        keyframe_window: float = KEYFRAME_SEARCH_WINDOW,
    ):
        self.path = Path(path)
        self.stream_index = stream_index
        self.keyframe_window = keyframe_window

    def _detector(self, name: str, fn: Callable[..., list], **params):
        async def detect(start=None, end=None, on_progress=None) -> list[dict]:
            logger.debug("%s on %s [%s, %s] %s", name, self.path.name, start, end, params)
            rows = await asyncio.to_thread(fn, self.path, start=start, end=end, **params)
            if on_progress:
                on_progress(1.0)
            return rows

        detect.__name__ = name
        return detect

    def blackdetect(
        self,
        black_min_duration: float = 2.0,
        picture_black_ratio_th: float = 0.98,
        pixel_black_th: float = 0.10,
    ):
        return self._detector(
            "blackdetect", probe.detect_black,
            black_min_duration=black_min_duration,
            picture_black_ratio_th=picture_black_ratio_th,
            pixel_black_th=pixel_black_th,
        )

    def silencedetect(self, noise: str = "-60dB", duration: float = 2.0):
        return self._detector("silencedetect", probe.detect_silence, noise=noise, min_duration=duration)

    def scene_change(self, min_change: float = 0.3):
        return self._detector("scene_change", probe.detect_scene_changes, min_change=min_change)

    def keyframe_segments(self):
        """Detector turning every keyframe in the range into a segment boundary."""

        def _rows(path, start=None, end=None):
            times = probe.keyframes(path, start=start, end=end, stream_index=self.stream_index)
            return map_times_to_segments(times)

        return self._detector("keyframes", _rows)

    async def keyframe_lookup(self, time: float, mode: str = "nearest") -> Optional[float]:
        return await asyncio.to_thread(
            probe.find_keyframe_near_time,
            self.path,
            time,
            mode=mode,
            window=self.keyframe_window,
            stream_index=self.stream_index,
        )
