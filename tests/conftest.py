"""Shared test fixtures — stores and a small generated video."""

import shutil
import subprocess

import pytest

from cutlist.config import SegmentConfig
from cutlist.store import SegmentStore


@pytest.fixture
def store() -> SegmentStore:
    """An empty store over a 40-second timeline."""
    return SegmentStore(SegmentConfig(), duration=40.0)


@pytest.fixture
def make_store():
    """Factory: store over a timeline, pre-loaded with (start, end) rows."""
    def _make(rows=(), duration=40.0, **config):
        s = SegmentStore(SegmentConfig(**config), duration=duration)
        if rows:
            s.load_segments([{"start": a, "end": b} for a, b in rows])
        return s
    return _make


@pytest.fixture(scope="session")
def test_video(tmp_path_factory) -> str:
    """Generate a 5-second test video with one keyframe per second."""
    if shutil.which("ffmpeg") is None:
        pytest.skip("ffmpeg not on PATH")
    out = str(tmp_path_factory.mktemp("media") / "test.mp4")
    subprocess.run([
        "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
        "-f", "lavfi", "-i", "testsrc=duration=5:size=320x240:rate=25",
        "-f", "lavfi", "-i", "sine=frequency=440:duration=5",
        "-c:v", "libx264", "-preset", "ultrafast",
        "-g", "25", "-keyint_min", "25", "-sc_threshold", "0",
        "-c:a", "aac", "-b:a", "64k",
        "-pix_fmt", "yuv420p",
        out,
    ], check=True, capture_output=True)
    return out
