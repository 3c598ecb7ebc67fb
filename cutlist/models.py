"""Data models for cutlist — all JSON-serializable via to_dict."""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass, field, asdict
from typing import Optional


# ---------------------------------------------------------------------------
# Time parsing helper
# ---------------------------------------------------------------------------

_TIME_RE = re.compile(
    r"^(?:(\d+):)?(\d{1,2}):(\d{2})(?:\.(\d+))?$"
)


def parse_time(value: str | float | int) -> float:
    """Parse HH:MM:SS.ms, MM:SS, plain seconds or a number into float seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"Invalid time format: {value!r} — time must be finite")
        return float(value)
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"Invalid time format: {value!r} — time must be finite")
        return seconds
    m = _TIME_RE.match(value.strip())
    if not m:
        raise ValueError(f"Invalid time format: {value!r} — use HH:MM:SS, MM:SS, or seconds")
    hours = int(m.group(1) or 0)
    minutes = int(m.group(2))
    seconds = int(m.group(3))
    frac = float(f"0.{m.group(4)}") if m.group(4) else 0.0
    return hours * 3600 + minutes * 60 + seconds + frac


def format_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS.mmm."""
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:06.3f}"


def new_segment_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Segment
# ---------------------------------------------------------------------------

@dataclass
class Segment:
    """A labeled time range. A bound of None is open on that side."""
    id: str = field(default_factory=new_segment_id)
    color_index: int = 0
    start: Optional[float] = None
    end: Optional[float] = None
    name: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Tag values are always strings
        self.tags = {str(k): str(v) for k, v in (self.tags or {}).items()}
        self.name = self.name or ""

    @property
    def is_placeholder(self) -> bool:
        return self.start is None and self.end is None

    def copy(self) -> Segment:
        """Independent copy with the same id (tags are not shared)."""
        return Segment(
            id=self.id,
            color_index=self.color_index,
            start=self.start,
            end=self.end,
            name=self.name,
            tags=dict(self.tags),
        )

    def to_dict(self) -> dict:
        d: dict = {"id": self.id, "color_index": self.color_index}
        if self.start is not None:
            d["start"] = self.start
        if self.end is not None:
            d["end"] = self.end
        if self.name:
            d["name"] = self.name
        if self.tags:
            d["tags"] = dict(self.tags)
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Segment:
        start = data.get("start")
        end = data.get("end")
        kwargs: dict = {
            "color_index": int(data.get("color_index", 0)),
            "start": parse_time(start) if start is not None else None,
            "end": parse_time(end) if end is not None else None,
            "name": data.get("name") or "",
            "tags": data.get("tags") or {},
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Probe result
# ---------------------------------------------------------------------------

@dataclass
class ProbeResult:
    """The media facts the segment engine needs: timeline length and main video stream."""
    path: str
    duration: float
    format_name: str
    video_stream_index: Optional[int] = None
    fps: Optional[float] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["duration_formatted"] = format_time(self.duration)
        return {k: v for k, v in d.items() if v is not None}
