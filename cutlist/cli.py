"""Segment-list CLI — every command outputs JSON to stdout."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from cutlist.errors import (
    CutListError,
    INPUT_NOT_FOUND,
    NO_VALID_SEGMENTS,
    EXIT_SUCCESS,
    EXIT_VALIDATION,
    EXIT_EXECUTION,
    EXIT_SYSTEM,
)


def _json_out(data: dict, exit_code: int = EXIT_SUCCESS) -> int:
    """Print JSON to stdout and return exit code."""
    print(json.dumps(data, indent=2))
    return exit_code


def _json_error(exc: CutListError, exit_code: int = EXIT_EXECUTION) -> int:
    """Print a CutListError as JSON and return the appropriate exit code."""
    return _json_out(exc.to_dict(), exit_code)


def _segments_out(store) -> int:
    from cutlist.edl import segments_to_dicts
    segments = segments_to_dicts(store.segments)
    return _json_out({"segments": segments, "count": len(segments)})


def _read_edl_input(edl_arg: str | None) -> str:
    """Read a segment list from stdin (if '-') or from a file path."""
    if edl_arg is None or edl_arg == "-":
        return sys.stdin.read()
    try:
        return Path(edl_arg).read_text()
    except FileNotFoundError:
        raise CutListError(
            code=INPUT_NOT_FOUND,
            message=f"Segment list not found: {edl_arg}",
            recovery=["Check the file path, or use '-' to read from stdin"],
            context={"path": edl_arg},
        ) from None


def _parse_duration(value: str | None) -> float | None:
    from cutlist.models import parse_time
    return parse_time(value) if value is not None else None


def _load_store(args, duration: float | None = None):
    """Build a store holding the segments named by ``args.edl``."""
    from cutlist.config import load_config
    from cutlist.edl import parse_edl
    from cutlist.store import SegmentStore

    if duration is None:
        duration = _parse_duration(getattr(args, "duration", None))
    store = SegmentStore(load_config(max_segments=getattr(args, "max_segments", None)), duration)
    store.load_segments(parse_edl(_read_edl_input(args.edl)))
    return store


def _invalid_argument(exc: ValueError, hint: str) -> int:
    return _json_out({
        "error": True,
        "code": "INVALID_ARGUMENT",
        "message": str(exc),
        "recovery": [hint],
    }, EXIT_VALIDATION)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def cmd_capabilities(_args) -> int:
    """Output machine-readable schema of all commands."""
    from cutlist import __version__
    from cutlist.config import load_config

    caps = {
        "version": __version__,
        "segment": {
            "id": "str (generated when missing)",
            "start": "time | null (null = from the beginning)",
            "end": "time | null (null = until the end)",
            "name": "str",
            "tags": "dict[str, str]",
        },
        "commands": {
            "import": "Validate and normalize a segment list",
            "invert": "Replace segments with the gaps between them",
            "fill-gaps": "Add a segment for every gap",
            "merge": "Combine overlapping segments",
            "split": "Split the segment under a time in two",
            "sort": "Order segments by start time",
            "shift": "Move segment bounds by an amount",
            "align": "Snap segment bounds to keyframes",
            "detect": "Find silent, black or scene-change ranges",
            "probe": "Probe a media file for its duration",
            "keyframes": "List keyframe timestamps",
        },
        "detectors": ["silence", "black", "scenes"],
        "align_modes": ["nearest", "before", "after"],
        "limits": asdict(load_config()),
    }
    return _json_out(caps)


def cmd_probe(args) -> int:
    """Probe a media file for metadata."""
    from cutlist.probe import probe
    try:
        result = probe(args.file)
        return _json_out(result.to_dict())
    except CutListError as exc:
        return _json_error(exc, EXIT_VALIDATION)


def cmd_keyframes(args) -> int:
    """List keyframe timestamps."""
    from cutlist.probe import keyframes
    try:
        kfs = keyframes(args.file, start=_parse_duration(args.start), end=_parse_duration(args.end))
        return _json_out({"path": args.file, "keyframes": kfs, "count": len(kfs)})
    except CutListError as exc:
        return _json_error(exc, EXIT_VALIDATION)
    except ValueError as exc:
        return _invalid_argument(exc, "Use valid times in --start and --end")


def cmd_detect(args) -> int:
    """Run a detector over a file and output the ranges it found."""
    from cutlist.config import load_config
    from cutlist.detection import DetectionIntegrator
    from cutlist.detectors import FfmpegDetectors
    from cutlist.models import Segment
    from cutlist.probe import probe
    from cutlist.store import SegmentStore

    try:
        info = probe(args.file)
        detectors = FfmpegDetectors(args.file, stream_index=info.video_stream_index)
        if args.detector == "silence":
            detector = detectors.silencedetect(noise=args.noise, duration=args.min_duration)
        elif args.detector == "black":
            detector = detectors.blackdetect(
                black_min_duration=args.min_duration,
                picture_black_ratio_th=args.picture_threshold,
                pixel_black_th=args.pixel_threshold,
            )
        else:
            detector = detectors.scene_change(min_change=args.min_change)

        store = SegmentStore(load_config(), info.duration)
        window = Segment(start=_parse_duration(args.start), end=_parse_duration(args.end))
        try:
            found = asyncio.run(DetectionIntegrator(store).run_detector(detector, window, name=args.detector))
        except CutListError as exc:
            if exc.code != NO_VALID_SEGMENTS:
                raise
            found = []
        return _json_out({
            "path": args.file,
            "detector": args.detector,
            "segments": [seg.to_dict() for seg in found or []],
            "count": len(found or []),
        })
    except CutListError as exc:
        return _json_error(exc, EXIT_EXECUTION)
    except ValueError as exc:
        return _invalid_argument(exc, "Use valid times in --start and --end")


def cmd_import(args) -> int:
    """Validate a segment list and print it normalized."""
    try:
        return _segments_out(_load_store(args))
    except CutListError as exc:
        return _json_error(exc, EXIT_VALIDATION)
    except ValueError as exc:
        return _invalid_argument(exc, "Use a valid --duration")


def _edit(args, action) -> int:
    try:
        store = _load_store(args)
        action(store)
        return _segments_out(store)
    except CutListError as exc:
        return _json_error(exc, EXIT_VALIDATION)
    except ValueError as exc:
        return _invalid_argument(exc, "Check the command arguments")


def cmd_invert(args) -> int:
    """Replace segments with the gaps between them."""
    return _edit(args, lambda store: store.invert_all())


def cmd_fill_gaps(args) -> int:
    """Add a segment for every gap."""
    return _edit(args, lambda store: store.fill_gaps())


def cmd_merge(args) -> int:
    """Combine overlapping segments."""
    return _edit(args, lambda store: store.combine_overlapping())


def cmd_split(args) -> int:
    """Split the segment under a time."""
    from cutlist.models import parse_time
    return _edit(args, lambda store: store.split_at_cursor(parse_time(args.at)))


def cmd_sort(args) -> int:
    """Order segments by apparent start time."""
    from cutlist.ordering import OrderingManager
    return _edit(args, lambda store: OrderingManager(store).sort_by_apparent_start())


def _transform(store, transform, concurrency: int) -> None:
    from cutlist.transform import transform_selected
    new = asyncio.run(transform_selected(
        store.apparent_segments(), None, transform, store.duration, concurrency,
    ))
    store.replace_all(new or [store.create()])


def cmd_shift(args) -> int:
    """Shift segment bounds by an amount of seconds."""
    from cutlist.transform import shift_transform

    def _shift(store) -> None:
        keys = [k.strip() for k in args.keys.split(",") if k.strip()]
        _transform(store, shift_transform(args.amount, keys), store.config.concurrency)

    return _edit(args, _shift)


def cmd_align(args) -> int:
    """Snap segment bounds to keyframes of a media file."""
    from cutlist.detectors import FfmpegDetectors
    from cutlist.probe import probe
    from cutlist.transform import keyframe_align_transform

    try:
        info = probe(args.file)
        store = _load_store(args, duration=info.duration)
        detectors = FfmpegDetectors(
            args.file,
            stream_index=info.video_stream_index,
            keyframe_window=store.config.keyframe_search_window,
        )
        transform = keyframe_align_transform(
            detectors.keyframe_lookup,
            mode=args.mode,
            start_or_end=[k.strip() for k in args.start_or_end.split(",") if k.strip()],
            window=store.config.keyframe_search_window,
        )
        _transform(store, transform, store.config.concurrency)
        return _segments_out(store)
    except CutListError as exc:
        return _json_error(exc, EXIT_EXECUTION)
    except ValueError as exc:
        return _invalid_argument(exc, "Check --mode and --start-or-end")


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _add_edl_argument(p: argparse.ArgumentParser, duration: bool = True) -> None:
    p.add_argument("edl", nargs="?", default="-",
                   help="Path to a segment list JSON file, or '-' for stdin")
    if duration:
        p.add_argument("--duration", default=None, help="Media duration (seconds or HH:MM:SS)")
    p.add_argument("--max-segments", type=int, default=None, help="Override the segment limit")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="cutlist",
        description="Segment list editing for media trimming — all output is JSON",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Log to stderr")
    sub = parser.add_subparsers(dest="command")

    # capabilities
    sub.add_parser("capabilities", help="List all commands and limits")

    # probe
    p = sub.add_parser("probe", help="Probe a media file for its duration")
    p.add_argument("file", help="Path to the media file")

    # keyframes
    p = sub.add_parser("keyframes", help="List keyframe timestamps")
    p.add_argument("file", help="Path to the media file")
    p.add_argument("--start", default=None, help="Only keyframes at or after this time")
    p.add_argument("--end", default=None, help="Only keyframes at or before this time")

    # detect
    p = sub.add_parser("detect", help="Detect silent, black or scene-change ranges")
    p.add_argument("detector", choices=["silence", "black", "scenes"])
    p.add_argument("file", help="Path to the media file")
    p.add_argument("--start", default=None, help="Search from this time")
    p.add_argument("--end", default=None, help="Search until this time")
    p.add_argument("--noise", default="-60dB", help="silence: noise tolerance (default: -60dB)")
    p.add_argument("--min-duration", type=float, default=2.0,
                   help="silence/black: minimum range length in seconds (default: 2.0)")
    p.add_argument("--picture-threshold", type=float, default=0.98,
                   help="black: ratio of black pixels for a black picture (default: 0.98)")
    p.add_argument("--pixel-threshold", type=float, default=0.10,
                   help="black: luminance threshold for a black pixel (default: 0.10)")
    p.add_argument("--min-change", type=float, default=0.3,
                   help="scenes: minimum scene change score 0.0-1.0 (default: 0.3)")

    # import
    p = sub.add_parser("import", help="Validate and normalize a segment list")
    _add_edl_argument(p)

    # invert / fill-gaps / merge / sort
    for name, help_text in (
        ("invert", "Replace segments with the gaps between them"),
        ("fill-gaps", "Add a segment for every gap"),
        ("merge", "Combine overlapping segments"),
        ("sort", "Order segments by start time"),
    ):
        p = sub.add_parser(name, help=help_text)
        _add_edl_argument(p)

    # split
    p = sub.add_parser("split", help="Split the segment under a time in two")
    _add_edl_argument(p)
    p.add_argument("--at", required=True, help="Split time")

    # shift
    p = sub.add_parser("shift", help="Shift segment bounds")
    _add_edl_argument(p)
    p.add_argument("--amount", type=float, required=True, help="Seconds to add (negative moves back)")
    p.add_argument("--keys", default="start,end", help="Bounds to shift (default: start,end)")

    # align
    p = sub.add_parser("align", help="Snap segment bounds to keyframes")
    p.add_argument("file", help="Path to the media file")
    _add_edl_argument(p, duration=False)
    p.add_argument("--mode", choices=["nearest", "before", "after"], default="nearest")
    p.add_argument("--start-or-end", default="start,end", help="Bounds to align (default: start,end)")

    return parser


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_VALIDATION)

    _configure_logging(args.verbose)

    handlers = {
        "capabilities": cmd_capabilities,
        "probe": cmd_probe,
        "keyframes": cmd_keyframes,
        "detect": cmd_detect,
        "import": cmd_import,
        "invert": cmd_invert,
        "fill-gaps": cmd_fill_gaps,
        "merge": cmd_merge,
        "split": cmd_split,
        "sort": cmd_sort,
        "shift": cmd_shift,
        "align": cmd_align,
    }

    try:
        exit_code = handlers[args.command](args)
    except CutListError as exc:
        exit_code = _json_error(exc, EXIT_SYSTEM)
    except Exception as exc:
        logging.getLogger(__name__).debug("Unexpected error", exc_info=True)
        exit_code = _json_out({
            "error": True,
            "code": "UNEXPECTED_ERROR",
            "message": str(exc),
            "recovery": ["This is an unexpected error, please report it"],
        }, EXIT_SYSTEM)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
