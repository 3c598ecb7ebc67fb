"""FFmpeg-backed media probing: duration, keyframes, and raw range detection.

The detection functions return plain ``{"start": ..., "end": ...}`` rows in
timeline seconds; turning them into segments is the store's job.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from cutlist.config import KEYFRAME_SEARCH_WINDOW
from cutlist.errors import (
    CutListError,
    INPUT_NOT_FOUND,
    INPUT_INVALID_FORMAT,
    recovery_hints,
)
from cutlist.ffmpeg import run_ffmpeg, run_ffprobe, run_ffprobe_json
from cutlist.models import ProbeResult


def _check_input(path: str | Path) -> Path:
    """Validate that the input file exists."""
    p = Path(path)
    if not p.exists():
        raise CutListError(
            code=INPUT_NOT_FOUND,
            message=f"Input file not found: {p}",
            recovery=recovery_hints(INPUT_NOT_FOUND, {"path": str(p)}),
            context={"path": str(p)},
        )
    return p


def _window_args(start: Optional[float], end: Optional[float]) -> list[str]:
    """Input options limiting decoding to [start, end]."""
    args: list[str] = []
    if start:
        args += ["-ss", f"{start:.6f}"]
    if end is not None:
        args += ["-t", f"{end - (start or 0.0):.6f}"]
    return args


def _parse_fps(rate: str) -> Optional[float]:
    if "/" not in rate:
        return None
    num, den = rate.split("/", 1)
    try:
        if int(den) > 0:
            return round(int(num) / int(den), 3)
    except ValueError:
        return None
    return None


# ---------------------------------------------------------------------------
# Probing
# ---------------------------------------------------------------------------

def probe(path: str | Path) -> ProbeResult:
    """Probe a media file for its duration and main video stream."""
    p = _check_input(path)
    data = run_ffprobe_json(p)

    fmt = data.get("format", {})
    duration = float(fmt.get("duration", 0) or 0)
    if duration <= 0:
        raise CutListError(
            code=INPUT_INVALID_FORMAT,
            message=f"Could not determine duration for: {p}",
            recovery=["Ensure the file is a valid media file with at least one stream"],
            context={"path": str(p)},
        )

    video = next((s for s in data.get("streams", []) if s.get("codec_type") == "video"), None)
    return ProbeResult(
        path=str(p),
        duration=duration,
        format_name=fmt.get("format_name", "unknown"),
        video_stream_index=video.get("index") if video else None,
        fps=_parse_fps(video.get("r_frame_rate", "")) if video else None,
    )


def keyframes(
    path: str | Path,
    start: Optional[float] = None,
    end: Optional[float] = None,
    stream_index: Optional[int] = None,
) -> list[float]:
    """Return sorted keyframe timestamps, optionally only those in [start, end]."""
    p = _check_input(path)

    args = ["-v", "quiet"]
    args += ["-select_streams", f"{stream_index}" if stream_index is not None else "v:0"]
    if start is not None or end is not None:
        lo = f"{max(start, 0.0):.6f}" if start is not None else ""
        hi = f"{end:.6f}" if end is not None else ""
        args += ["-read_intervals", f"{lo}%{hi}"]
    args += [
        "-show_entries", "packet=pts_time,flags",
        "-of", "csv=print_section=0",
        str(p),
    ]
    result = run_ffprobe(args)

    timestamps: list[float] = []
    for line in result.stdout.strip().splitlines():
        parts = line.split(",")
        if len(parts) < 2 or "K" not in parts[1]:
            continue
        try:
            ts = float(parts[0])
        except ValueError:
            continue
        if start is not None and ts < start:
            continue
        if end is not None and ts > end:
            continue
        timestamps.append(ts)
    return sorted(timestamps)


def find_keyframe_near_time(
    path: str | Path,
    time: float,
    mode: str = "nearest",
    window: float = KEYFRAME_SEARCH_WINDOW,
    stream_index: Optional[int] = None,
) -> Optional[float]:
    """Find a keyframe near a time, or None if none lies within the window.

    Modes: ``nearest`` (either side), ``before`` (at or before the time),
    ``after`` (at or after the time).
    """
    kfs = keyframes(path, start=max(0.0, time - window), end=time + window, stream_index=stream_index)
    if mode == "before":
        candidates = [kf for kf in kfs if kf <= time]
        return max(candidates) if candidates else None
    if mode == "after":
        candidates = [kf for kf in kfs if kf >= time]
        return min(candidates) if candidates else None
    if mode != "nearest":
        raise ValueError("mode must be one of: nearest, before, after")
    return min(kfs, key=lambda kf: abs(kf - time)) if kfs else None


# ---------------------------------------------------------------------------
# Range detection
# ---------------------------------------------------------------------------

_SILENCE_START_RE = re.compile(r"silence_start:\s*(-?[0-9]+(?:\.[0-9]+)?)")
_SILENCE_END_RE = re.compile(r"silence_end:\s*(-?[0-9]+(?:\.[0-9]+)?)")
_BLACK_RE = re.compile(r"black_start:\s*([0-9.]+)\s+black_end:\s*([0-9.]+)")


def detect_silence(
    path: str | Path,
    noise: str = "-60dB",
    min_duration: float = 2.0,
    start: Optional[float] = None,
    end: Optional[float] = None,
) -> list[dict]:
    """Detect silent ranges with FFmpeg's silencedetect filter."""
    p = _check_input(path)
    offset = start or 0.0
    result = run_ffmpeg(
        _window_args(start, end) + [
            "-i", str(p),
            "-vn",
            "-af", f"silencedetect=noise={noise}:d={float(min_duration)}",
            "-f", "null",
            "-",
        ],
        check=False,
    )

    rows: list[dict] = []
    current_start: float | None = None
    for line in result.stderr.splitlines():
        start_match = _SILENCE_START_RE.search(line)
        if start_match:
            current_start = max(0.0, float(start_match.group(1))) + offset
            continue
        end_match = _SILENCE_END_RE.search(line)
        if end_match and current_start is not None:
            rows.append({"start": current_start, "end": float(end_match.group(1)) + offset})
            current_start = None

    # Silence running to the end of the window
    if current_start is not None:
        rows.append({"start": current_start, "end": end})
    return rows


def detect_black(
    path: str | Path,
    black_min_duration: float = 2.0,
    picture_black_ratio_th: float = 0.98,
    pixel_black_th: float = 0.10,
    start: Optional[float] = None,
    end: Optional[float] = None,
) -> list[dict]:
    """Detect black ranges with FFmpeg's blackdetect filter."""
    p = _check_input(path)
    offset = start or 0.0
    vf = (
        f"blackdetect=d={float(black_min_duration)}"
        f":pic_th={float(picture_black_ratio_th)}"
        f":pix_th={float(pixel_black_th)}"
    )
    result = run_ffmpeg(
        _window_args(start, end) + ["-i", str(p), "-an", "-vf", vf, "-f", "null", "-"],
        check=False,
    )
    return [
        {"start": float(m.group(1)) + offset, "end": float(m.group(2)) + offset}
        for m in _BLACK_RE.finditer(result.stderr)
    ]


def detect_scene_changes(
    path: str | Path,
    min_change: float = 0.3,
    start: Optional[float] = None,
    end: Optional[float] = None,
) -> list[dict]:
    """Split [start, end] into ranges at each detected scene change."""
    p = _check_input(path)
    offset = start or 0.0
    result = run_ffmpeg(
        _window_args(start, end) + [
            "-i", str(p),
            "-an",
            "-vf", f"select='gt(scene,{float(min_change)})',showinfo",
            "-f", "null",
            "-",
        ],
        check=False,
    )

    # Scene timestamps appear in stderr from the showinfo filter
    changes: list[float] = []
    for line in result.stderr.splitlines():
        if "pts_time:" not in line:
            continue
        for token in line.split():
            if token.startswith("pts_time:"):
                try:
                    changes.append(float(token.split(":", 1)[1]) + offset)
                except ValueError:
                    continue

    lo = offset
    hi = end if end is not None else probe(p).duration
    boundaries = [lo] + sorted(t for t in set(changes) if lo < t < hi) + [hi]
    return [
        {"start": a, "end": b}
        for a, b in zip(boundaries, boundaries[1:])
        if b > a
    ]
