"""Engine limits, with environment variable overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

MAX_SEGMENTS_ALLOWED = 2000
HISTORY_SIZE = 100
TRANSFORM_CONCURRENCY = 5
KEYFRAME_SEARCH_WINDOW = 60.0  # seconds either side of the target
MAX_LABEL_LENGTH = 100


@dataclass
class SegmentConfig:
    """Limits shared by the store, the transformer and the session."""

    max_segments: int = MAX_SEGMENTS_ALLOWED
    history_size: int = HISTORY_SIZE
    concurrency: int = TRANSFORM_CONCURRENCY
    keyframe_search_window: float = KEYFRAME_SEARCH_WINDOW
    max_label_length: int = MAX_LABEL_LENGTH

    def __post_init__(self) -> None:
        if self.max_segments < 1:
            raise ValueError("max_segments must be >= 1")
        if self.history_size < 1:
            raise ValueError("history_size must be >= 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.keyframe_search_window <= 0:
            raise ValueError("keyframe_search_window must be > 0")


_ENV_OVERRIDES = {
    "CUTLIST_MAX_SEGMENTS": ("max_segments", int),
    "CUTLIST_HISTORY_SIZE": ("history_size", int),
    "CUTLIST_CONCURRENCY": ("concurrency", int),
    "CUTLIST_KEYFRAME_WINDOW": ("keyframe_search_window", float),
    "CUTLIST_MAX_LABEL_LENGTH": ("max_label_length", int),
}


def load_config(**overrides) -> SegmentConfig:
    """Build a SegmentConfig from defaults, CUTLIST_* env vars, then keyword overrides."""
    values: dict = {}
    for env_var, (attr, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[attr] = convert(raw)
        except ValueError as exc:
            raise ValueError(f"{env_var} must be a number, got {raw!r}") from exc
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SegmentConfig(**values)
