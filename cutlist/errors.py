"""Structured error handling with error codes and recovery suggestions."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

# Segment editing
INVALID_TIME_ORDERING = "INVALID_TIME_ORDERING"
NO_VALID_SEGMENTS = "NO_VALID_SEGMENTS"
TOO_MANY_SEGMENTS = "TOO_MANY_SEGMENTS"
EMPTY_SEGMENTS = "EMPTY_SEGMENTS"
CANNOT_INVERT = "CANNOT_INVERT"
KEYFRAME_NOT_FOUND = "KEYFRAME_NOT_FOUND"
INVALID_SPLIT_POINT = "INVALID_SPLIT_POINT"
NO_SEGMENT_AT_CURSOR = "NO_SEGMENT_AT_CURSOR"
INVALID_SEGMENT_INDEX = "INVALID_SEGMENT_INDEX"
DUPLICATE_SEGMENT_ID = "DUPLICATE_SEGMENT_ID"
INVALID_PLACEHOLDER = "INVALID_PLACEHOLDER"
INVALID_TAGS = "INVALID_TAGS"
LABEL_TOO_LONG = "LABEL_TOO_LONG"

# Import
INVALID_EDL = "INVALID_EDL"
INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
INVALID_DURATION = "INVALID_DURATION"

# System
FFMPEG_NOT_FOUND = "FFMPEG_NOT_FOUND"
FFPROBE_NOT_FOUND = "FFPROBE_NOT_FOUND"
FFMPEG_TIMEOUT = "FFMPEG_TIMEOUT"
FFMPEG_FAILED = "FFMPEG_FAILED"

# Input
INPUT_NOT_FOUND = "INPUT_NOT_FOUND"
INPUT_INVALID_FORMAT = "INPUT_INVALID_FORMAT"

# Exit codes for CLI
EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_EXECUTION = 2
EXIT_SYSTEM = 3


# ---------------------------------------------------------------------------
# CutListError exception
# ---------------------------------------------------------------------------

@dataclass
class CutListError(Exception):
    """Structured error with code, message, recovery hints, and context."""
    code: str
    message: str
    recovery: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "recovery": self.recovery,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Recovery hint factory
# ---------------------------------------------------------------------------

def _ffmpeg_install_hints() -> list[str]:
    """Return platform-specific FFmpeg install instructions."""
    hints = ["pip install 'cutlist[ffmpeg]'  # bundles ffmpeg+ffprobe automatically"]
    if sys.platform == "darwin":
        hints.append("brew install ffmpeg")
    elif sys.platform == "win32":
        hints.append("winget install ffmpeg  OR  choco install ffmpeg")
    else:
        hints.append("sudo apt install ffmpeg  (Debian/Ubuntu)")
    hints.append("Set CUTLIST_FFMPEG / CUTLIST_FFPROBE to override discovery")
    return hints


_RECOVERY_MAP: dict[str, list[str]] = {
    INVALID_TIME_ORDERING: [
        "Start time must precede end time",
        "Move the cursor past the segment start before setting its end",
    ],
    NO_VALID_SEGMENTS: [
        "Each row needs start < end when both are given, and start >= 0",
        "Check the detector parameters if this came from a detection run",
    ],
    TOO_MANY_SEGMENTS: [
        "Remove some segments first, or import fewer rows",
        "Raise the limit with CUTLIST_MAX_SEGMENTS",
    ],
    EMPTY_SEGMENTS: [
        "A segment list must contain at least one segment",
    ],
    CANNOT_INVERT: [
        "Make sure you have no overlapping segments",
        "Run 'cutlist merge' to combine overlapping segments first",
        "Every segment needs start < end and the media duration must be known",
    ],
    KEYFRAME_NOT_FOUND: [
        "Try another alignment mode (nearest, before, after)",
        "Raise the search window with CUTLIST_KEYFRAME_WINDOW",
    ],
    INVALID_SPLIT_POINT: [
        "The split point must lie strictly inside the segment",
    ],
    NO_SEGMENT_AT_CURSOR: [
        "Move the cursor over the segment you want to split",
    ],
    INVALID_SEGMENT_INDEX: [
        "Use an index between 0 and the number of segments minus one",
    ],
    INVALID_TAGS: [
        "Tags must be a JSON object whose values are all strings",
    ],
    INVALID_EDL: [
        "Provide a JSON list of {start, end, name} objects",
        "Or an object with a 'segments' list",
    ],
    INVALID_TIME_FORMAT: [
        "Use HH:MM:SS, HH:MM:SS.mmm, MM:SS, or plain seconds",
    ],
    INVALID_DURATION: [
        "Pass --duration, or a media file so the duration can be probed",
    ],
    INPUT_NOT_FOUND: [
        "Check the file path for typos",
        "Use an absolute path to avoid working-directory issues",
    ],
}


def recovery_hints(code: str, context: dict[str, Any] | None = None) -> list[str]:
    """Return recovery suggestions for a given error code."""
    if code in (FFMPEG_NOT_FOUND, FFPROBE_NOT_FOUND):
        return _ffmpeg_install_hints()

    hints = list(_RECOVERY_MAP.get(code, []))
    context = context or {}

    if code == TOO_MANY_SEGMENTS and "max_segments" in context:
        hints.insert(0, f"The limit is {context['max_segments']} segments")

    if code == INPUT_NOT_FOUND and "path" in context:
        hints.insert(0, f"File not found: {context['path']}")

    return hints
