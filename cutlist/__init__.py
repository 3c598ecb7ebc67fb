"""cutlist — segment list engine for media trimming.

Public API:
    Segment, parse_time, format_time                        — data model
    SegmentStore, SelectionSet, OrderingManager             — undoable editing
    invert, merge_overlapping, split_at, sort_segments      — interval algebra
    transform_selected, shift_transform,
    keyframe_align_transform                                — batch transforms
    DetectionIntegrator, WorkIndicator                      — detector runs
    parse_edl, valid_rows                                   — segment list import
    CutSession, PromptSpec                                  — command layer
    SegmentConfig, load_config                              — limits
    CutListError                                            — structured errors
"""

from cutlist.config import SegmentConfig, load_config
from cutlist.detection import DetectionIntegrator, WorkIndicator
from cutlist.edl import parse_edl, valid_rows, segments_to_dicts
from cutlist.errors import CutListError
from cutlist.history import History
from cutlist.intervals import (
    invert,
    merge_overlapping,
    split_at,
    sort_segments,
    find_segments_at_cursor,
    map_times_to_segments,
    create_num_segments,
    create_fixed_duration_segments,
    create_random_segments,
)
from cutlist.models import Segment, ProbeResult, parse_time, format_time
from cutlist.ordering import OrderingManager
from cutlist.selection import SelectionSet
from cutlist.session import CutSession, PromptSpec
from cutlist.store import SegmentStore
from cutlist.transform import transform_selected, shift_transform, keyframe_align_transform

__version__ = "0.1.0"

__all__ = [
    # Data model
    "Segment",
    "ProbeResult",
    "parse_time",
    "format_time",
    # Editing
    "SegmentStore",
    "SelectionSet",
    "OrderingManager",
    "History",
    # Interval algebra
    "invert",
    "merge_overlapping",
    "split_at",
    "sort_segments",
    "find_segments_at_cursor",
    "map_times_to_segments",
    "create_num_segments",
    "create_fixed_duration_segments",
    "create_random_segments",
    # Transforms and detection
    "transform_selected",
    "shift_transform",
    "keyframe_align_transform",
    "DetectionIntegrator",
    "WorkIndicator",
    # Import
    "parse_edl",
    "valid_rows",
    "segments_to_dicts",
    # Session
    "CutSession",
    "PromptSpec",
    # Config and errors
    "SegmentConfig",
    "load_config",
    "CutListError",
]
