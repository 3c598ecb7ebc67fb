"""CutSession: the command layer a trimming UI drives.

It wires the store, the selection, the ordering manager and the detection
integrator together, asks a dialog collaborator for parameters, and turns
failures of user-level commands into error notifications instead of
exceptions.

The dialog collaborator is ``ask(PromptSpec) -> dict | None`` (sync or
async). ``None`` means the user cancelled and the command does nothing.
Without a collaborator every prompt resolves to its defaults.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from cutlist.config import SegmentConfig, load_config
from cutlist.detection import DetectionIntegrator, WorkIndicator
from cutlist.edl import parse_edl
from cutlist.errors import CutListError, INVALID_TAGS, recovery_hints
from cutlist.intervals import (
    create_fixed_duration_segments,
    create_num_segments,
    create_random_segments,
    is_duration_valid,
)
from cutlist.models import Segment
from cutlist.ordering import OrderingManager
from cutlist.selection import SelectionSet
from cutlist.store import SegmentStore
from cutlist.transform import (
    KeyframeLookup,
    SegmentTransform,
    keyframe_align_transform,
    shift_transform,
    transform_selected,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

@dataclass
class PromptSpec:
    """What a command needs to ask the user, with prefilled answers."""
    kind: str
    title: str
    defaults: dict[str, Any] = field(default_factory=dict)


PROMPT_DEFAULTS: dict[str, dict[str, Any]] = {
    "blackdetect": {"black_min_duration": 2.0, "picture_black_ratio_th": 0.98, "pixel_black_th": 0.10},
    "silencedetect": {"noise": "-60dB", "duration": 2.0},
    "scene_change": {"min_change": 0.3},
    "shift": {"amount": 0.0, "keys": ["start", "end"]},
    "align": {"mode": "nearest", "start_or_end": ["start", "end"]},
    "num_segments": {"count": 2},
    "fixed_duration_segments": {"segment_duration": 10.0},
    "random_segments": {"min_duration": 2.0, "max_duration": 10.0, "min_gap": 0.0, "max_gap": 5.0},
}

Ask = Callable[[PromptSpec], Any]
NotifyError = Callable[[str, BaseException], None]


class CutSession:
    def __init__(
        self,
        duration: Optional[float] = None,
        file_path: Optional[str] = None,
        config: Optional[SegmentConfig] = None,
        ask: Optional[Ask] = None,
        detectors: Any = None,
        keyframe_lookup: Optional[KeyframeLookup] = None,
        notify_error: Optional[NotifyError] = None,
        on_working_change: Optional[Callable[[Optional[str], Optional[float]], None]] = None,
    ):
        self.config = config or load_config()
        self.file_path = file_path
        self.store = SegmentStore(self.config, duration)
        self.selection = SelectionSet(self.store)
        self.ordering = OrderingManager(self.store)
        self.indicator = WorkIndicator(on_working_change)
        self.detection = DetectionIntegrator(
            self.store, self.indicator, is_file_loaded=lambda: self.is_file_loaded,
        )
        self.detectors = detectors
        if keyframe_lookup is None and detectors is not None:
            keyframe_lookup = getattr(detectors, "keyframe_lookup", None)
        self.keyframe_lookup = keyframe_lookup
        self._ask = ask
        self._notify_error = notify_error

    # -- state -------------------------------------------------------------

    @property
    def duration(self) -> Optional[float]:
        return self.store.duration

    @duration.setter
    def duration(self, value: Optional[float]) -> None:
        self.store.duration = value

    @property
    def is_file_loaded(self) -> bool:
        return is_duration_valid(self.store.duration)

    @property
    def segments(self) -> list[Segment]:
        return self.store.segments

    @property
    def current_index(self) -> int:
        return self.store.current_index_safe

    @current_index.setter
    def current_index(self, index: int) -> None:
        self.store.current_index = index

    @property
    def current_segment(self) -> Segment:
        return self.store.current_segment

    def selected_segments(self) -> list[Segment]:
        """Selected segments with their open bounds resolved."""
        return self.selection.selected_segments(self.store.apparent_segments())

    # -- plumbing ----------------------------------------------------------

    async def _prompt(self, kind: str, title: str, **defaults) -> Optional[dict]:
        values = {**PROMPT_DEFAULTS.get(kind, {}), **defaults}
        if self._ask is None:
            return values
        answer = self._ask(PromptSpec(kind=kind, title=title, defaults=dict(values)))
        if inspect.isawaitable(answer):
            answer = await answer
        if answer is None:
            logger.debug("%s prompt cancelled", kind)
            return None
        return {**values, **answer}

    def _surface(self, text: str, exc: BaseException) -> None:
        logger.warning("%s: %s", text, exc, exc_info=True)
        if self._notify_error:
            self._notify_error(text, exc)

    def _attempt(self, text: str, fn: Callable, *args) -> bool:
        try:
            fn(*args)
        except (CutListError, ValueError) as exc:
            self._surface(text, exc)
            return False
        return True

    # -- history -----------------------------------------------------------

    def undo(self) -> bool:
        return self.store.undo()

    def redo(self) -> bool:
        return self.store.redo()

    # -- import ------------------------------------------------------------

    def load_cut_segments(self, rows: Sequence[Any], append: bool = False) -> list[Segment]:
        return self.store.load_segments(rows, append=append)

    def import_edl(self, raw: str | list | dict, append: bool = False) -> list[Segment]:
        """Load segments from EDL text or rows. Errors propagate."""
        return self.store.load_segments(parse_edl(raw), append=append)

    # -- detection ---------------------------------------------------------

    async def _detect(self, kind: str, working_text: str, error_text: str) -> Optional[list[Segment]]:
        if self.detectors is None:
            logger.debug("Skipping %s: no detectors configured", kind)
            return None
        options = await self._prompt(kind, "Enter parameters")
        if options is None:
            return None
        try:
            detector = getattr(self.detectors, kind)(**options)
            return await self.detection.run_detector(
                detector, self.store.current_apparent_segment, name=kind, working_text=working_text,
            )
        except Exception as exc:
            self._surface(error_text, exc)
            return None

    async def detect_black_scenes(self) -> Optional[list[Segment]]:
        return await self._detect("blackdetect", "Detecting black scenes", "Failed to detect black scenes")

    async def detect_silent_scenes(self) -> Optional[list[Segment]]:
        return await self._detect("silencedetect", "Detecting silent scenes", "Failed to detect silent scenes")

    async def detect_scene_changes(self) -> Optional[list[Segment]]:
        return await self._detect("scene_change", "Detecting scene changes", "Failed to detect scene changes")

    async def create_segments_from_keyframes(self) -> Optional[list[Segment]]:
        """Append one segment per keyframe interval inside the current segment."""
        if self.detectors is None:
            return None
        try:
            return await self.detection.run_detector(
                self.detectors.keyframe_segments(),
                self.store.current_apparent_segment,
                name="keyframes",
                working_text="Reading keyframes",
            )
        except Exception as exc:
            self._surface("Failed to read keyframes", exc)
            return None

    # -- batch transforms --------------------------------------------------

    async def modify_selected_segment_times(
        self,
        transform: SegmentTransform,
        concurrency: Optional[int] = None,
        working_text: str = "Modifying segments",
    ) -> Optional[list[Segment]]:
        """Transform the selected segments and commit the result as one step.

        Holds the work indicator while the transforms run, so no detection
        can commit in between. Returns None without doing anything while
        another job holds it. When nothing survives, the store falls back to
        a single placeholder. Errors propagate and leave the store untouched.
        """
        if self.indicator.busy:
            logger.debug("Skipping transform: %s already in progress", self.indicator.working)
            return None
        self.indicator.begin(working_text)
        try:
            new = await transform_selected(
                self.store.apparent_segments(),
                self.selection,
                transform,
                self.store.duration,
                concurrency or self.config.concurrency,
            )
            if not new:
                new = [self.store.create()]
            self.store.replace_all(new)
            return self.store.segments
        finally:
            self.indicator.end()

    async def _run_transform(
        self,
        make_transform: Callable[[], SegmentTransform],
        working_text: str,
        error_text: str,
    ) -> Optional[list[Segment]]:
        try:
            return await self.modify_selected_segment_times(make_transform(), working_text=working_text)
        except Exception as exc:
            self._surface(error_text, exc)
            return None

    async def shift_all_segment_times(self) -> Optional[list[Segment]]:
        if self.indicator.busy:
            return None
        answer = await self._prompt("shift", "Shift all segments")
        if answer is None:
            return None
        return await self._run_transform(
            lambda: shift_transform(float(answer["amount"]), answer["keys"]),
            "Shifting segments",
            "Failed to shift segments",
        )

    async def align_segment_times_to_keyframes(self) -> Optional[list[Segment]]:
        if self.keyframe_lookup is None or self.indicator.busy:
            return None
        answer = await self._prompt("align", "Align segment times to keyframes")
        if answer is None:
            return None
        return await self._run_transform(
            lambda: keyframe_align_transform(
                self.keyframe_lookup,
                mode=answer["mode"],
                start_or_end=answer["start_or_end"],
                window=self.config.keyframe_search_window,
            ),
            "Aligning segments to keyframes",
            "Failed to align segments to keyframes",
        )

    # -- cut points --------------------------------------------------------

    def set_cut_start(self, time: float) -> bool:
        """Set the current segment's start, or begin a new segment past its end."""
        if not self.is_file_loaded:
            return False
        current = self.store.current_segment
        if current.end is not None and time >= current.end:
            return self.add_segment(time) is not None
        return self._attempt("Failed to set cut start", self.store.set_cut_time, "start", time)

    def set_cut_end(self, time: float) -> bool:
        if not self.is_file_loaded:
            return False
        return self._attempt("Failed to set cut end", self.store.set_cut_time, "end", time)

    def add_segment(self, time: float) -> Optional[Segment]:
        try:
            return self.store.add_segment(time)
        except CutListError as exc:
            self._surface("Failed to add segment", exc)
            return None

    def split_current_segment(self, time: float) -> Optional[tuple[Segment, Segment]]:
        try:
            return self.store.split_at_cursor(time)
        except CutListError as exc:
            self._surface("Failed to split segment", exc)
            return None

    # -- labels and tags ---------------------------------------------------

    async def label_segment(self, index: int) -> bool:
        segment = self.store[index]
        answer = await self._prompt(
            "label", "Label segment",
            name=segment.name, max_length=self.config.max_label_length,
        )
        if answer is None:
            return False
        self.store.label_segments([segment.id], answer["name"] or "")
        return True

    async def label_selected_segments(self) -> bool:
        selected = self.selected_segments()
        if not selected:
            return False
        answer = await self._prompt(
            "label", "Label selected segments",
            name=selected[0].name, max_length=self.config.max_label_length,
        )
        if answer is None:
            return False
        self.store.label_segments([seg.id for seg in selected], answer["name"] or "")
        return True

    async def select_segments_by_label(self) -> int:
        answer = await self._prompt("select_by_label", "Select segments by label", name=self.current_segment.name)
        if answer is None:
            return 0
        return self.selection.select_by_label(answer["name"] or "")

    async def edit_segment_tags(self, index: int) -> bool:
        """Ask for a segment's tags as a JSON object of strings and store them."""
        segment = self.store[index]
        text = json.dumps(segment.tags, indent=2) if segment.tags else ""
        answer = await self._prompt("tags", "Segment tags", tags=text)
        if answer is None:
            return False
        tags = answer["tags"]
        if isinstance(tags, str):
            try:
                tags = json.loads(tags) if tags.strip() else {}
            except json.JSONDecodeError as exc:
                raise CutListError(
                    code=INVALID_TAGS,
                    message=f"Invalid JSON: {exc}",
                    recovery=recovery_hints(INVALID_TAGS),
                ) from exc
        self.store.set_tags(index, tags)
        return True

    # -- generated segments ------------------------------------------------

    async def _create(self, kind: str, title: str, build: Callable[..., list]) -> Optional[list[Segment]]:
        if not self.is_file_loaded:
            return None
        answer = await self._prompt(kind, title)
        if answer is None:
            return None
        try:
            return self.store.load_segments(build(self.store.duration, **answer))
        except (CutListError, ValueError, TypeError) as exc:
            self._surface(f"Failed to create segments ({kind})", exc)
            return None

    async def create_num_segments(self) -> Optional[list[Segment]]:
        return await self._create(
            "num_segments", "Divide timeline into a number of segments",
            lambda duration, count: create_num_segments(duration, int(count)),
        )

    async def create_fixed_duration_segments(self) -> Optional[list[Segment]]:
        return await self._create(
            "fixed_duration_segments", "Divide timeline into segments of a fixed length",
            lambda duration, segment_duration: create_fixed_duration_segments(duration, float(segment_duration)),
        )

    async def create_random_segments(self) -> Optional[list[Segment]]:
        return await self._create(
            "random_segments", "Create random segments", create_random_segments,
        )

    # -- removal and interval algebra --------------------------------------

    def remove_selected_segments(self) -> None:
        self.store.remove_by_ids(self.selection.selected_ids())

    def remove_segment(self, index: int) -> None:
        self.store.remove_at(index)

    def invert_all_segments(self) -> bool:
        return self._attempt("Failed to invert segments", self.store.invert_all)

    def fill_segment_gaps(self) -> bool:
        return self._attempt("Failed to fill segment gaps", self.store.fill_gaps)

    def combine_overlapping_segments(self) -> bool:
        return self._attempt("Failed to combine overlapping segments", self.store.combine_overlapping)

    # -- ordering ----------------------------------------------------------

    def update_segment_order(self, index: int, new_index: int) -> bool:
        return self.ordering.move_to(index, new_index)

    def update_segment_orders(self, ids_in_order: Sequence[str]) -> None:
        self.ordering.apply_order(ids_in_order)

    def reorder_segments_by_start_time(self) -> None:
        self.ordering.sort_by_apparent_start()

    def shuffle_segments(self) -> None:
        self.ordering.shuffle()

    # -- selection ---------------------------------------------------------

    def is_segment_selected(self, segment: Segment) -> bool:
        return self.selection.is_selected(segment.id)

    def select_only_current_segment(self) -> None:
        self.selection.select_only(self.current_segment.id)

    def toggle_current_segment_selected(self) -> None:
        self.selection.toggle(self.current_segment.id)

    def select_all_segments(self) -> None:
        self.selection.select_all()

    def deselect_all_segments(self) -> None:
        self.selection.deselect_all()
