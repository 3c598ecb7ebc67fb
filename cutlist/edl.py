"""EDL-style segment list import — parsing and row validation."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from cutlist.errors import (
    CutListError,
    INVALID_EDL,
    INVALID_TIME_FORMAT,
    recovery_hints,
)
from cutlist.models import Segment, parse_time


def parse_edl(raw: str | list | dict) -> list[dict]:
    """Parse an EDL into its raw rows.

    Accepts JSON text, a list of row objects, or an object with a
    ``segments`` list. Rows are not validated here; see ``valid_rows``.

    Raises:
        CutListError: If the input is not JSON or has the wrong shape.
    """
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CutListError(
                code=INVALID_EDL,
                message=f"Invalid JSON: {exc}",
                recovery=["Check JSON syntax: missing commas, brackets or quotes"],
                context={"parse_error": str(exc)},
            ) from exc
    else:
        data = raw

    if isinstance(data, dict):
        data = data.get("segments")

    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise CutListError(
            code=INVALID_EDL,
            message="EDL must be a list of segment objects",
            recovery=recovery_hints(INVALID_EDL),
        )
    return data


def _row_time(row: dict, key: str, index: int) -> float | None:
    value = row.get(key)
    if value is None:
        return None
    try:
        return parse_time(value)
    except (ValueError, TypeError, AttributeError) as exc:
        raise CutListError(
            code=INVALID_TIME_FORMAT,
            message=f"Row {index}: invalid {key} time {value!r}",
            recovery=recovery_hints(INVALID_TIME_FORMAT),
            context={"row": index, "field": key, "value": value},
        ) from exc


def _is_tag_map(tags: Any) -> bool:
    return isinstance(tags, Mapping) and all(
        isinstance(k, str) and isinstance(v, (str, int, float)) for k, v in tags.items()
    )


def valid_rows(rows: Iterable[Any]) -> list[dict]:
    """Normalize rows and drop the ones that cannot become segments.

    A row is kept when its start is not negative and, with both bounds set,
    start precedes end. Rows with neither bound carry no time range and are
    dropped too, as are rows that are not objects or whose name is not a
    string or whose tags are not a flat string-keyed map.
    """
    kept: list[dict] = []
    for index, row in enumerate(rows):
        if isinstance(row, Segment):
            row = row.to_dict()
        if not isinstance(row, Mapping):
            continue
        name = row.get("name") or ""
        tags = row.get("tags") or {}
        if not isinstance(name, str) or not _is_tag_map(tags):
            continue
        start = _row_time(row, "start", index)
        end = _row_time(row, "end", index)
        if start is None and end is None:
            continue
        if start is not None and start < 0:
            continue
        if start is not None and end is not None and start >= end:
            continue
        kept.append({
            "start": start,
            "end": end,
            "name": name,
            "tags": dict(tags),
        })
    return kept


def segments_to_dicts(segments: Iterable[Segment]) -> list[dict]:
    return [seg.to_dict() for seg in segments]
