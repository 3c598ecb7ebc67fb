"""Tests for cutlist.edl — segment list parsing and row validation."""

import json

import pytest

from cutlist.edl import parse_edl, segments_to_dicts, valid_rows
from cutlist.errors import CutListError
from cutlist.models import Segment


def _seg(start=None, end=None, name=""):
    return Segment(start=start, end=end, name=name)


class TestParseEdl:
    def test_json_list(self):
        assert parse_edl('[{"start": 1, "end": 2}]') == [{"start": 1, "end": 2}]

    def test_object_with_segments(self):
        assert parse_edl({"segments": [{"start": 1}]}) == [{"start": 1}]

    def test_plain_list(self):
        rows = [{"end": 3}]
        assert parse_edl(rows) == rows

    def test_bad_json(self):
        with pytest.raises(CutListError) as exc_info:
            parse_edl("{not json")
        assert exc_info.value.code == "INVALID_EDL"
        assert "parse_error" in exc_info.value.context

    @pytest.mark.parametrize("raw", ['{"segments": 3}', '"text"', '[1, 2]', '{"other": []}'])
    def test_wrong_shape(self, raw):
        with pytest.raises(CutListError) as exc_info:
            parse_edl(raw)
        assert exc_info.value.code == "INVALID_EDL"


class TestValidRows:
    def test_reversed_row_dropped(self):
        rows = valid_rows([{"start": 5, "end": 2}, {"start": 1, "end": 3}])
        assert [(r["start"], r["end"]) for r in rows] == [(1.0, 3.0)]

    def test_negative_start_dropped(self):
        assert valid_rows([{"start": -1, "end": 3}]) == []

    def test_equal_bounds_dropped(self):
        assert valid_rows([{"start": 3, "end": 3}]) == []

    def test_no_bounds_dropped(self):
        assert valid_rows([{"name": "empty"}]) == []

    def test_half_open_kept(self):
        rows = valid_rows([{"start": 4}, {"end": 6}])
        assert [(r["start"], r["end"]) for r in rows] == [(4.0, None), (None, 6.0)]

    def test_string_times(self):
        rows = valid_rows([{"start": "00:01:00", "end": "1:30.5"}])
        assert (rows[0]["start"], rows[0]["end"]) == (60.0, 90.5)

    def test_malformed_time(self):
        with pytest.raises(CutListError) as exc_info:
            valid_rows([{"start": "soon", "end": 3}])
        assert exc_info.value.code == "INVALID_TIME_FORMAT"
        assert exc_info.value.context["field"] == "start"

    def test_name_and_tags_carried(self):
        rows = valid_rows([{"start": 0, "end": 1, "name": "a", "tags": {"k": "v"}}])
        assert rows[0]["name"] == "a"
        assert rows[0]["tags"] == {"k": "v"}

    def test_accepts_segments(self):
        rows = valid_rows([_seg(1, 2, "x")])
        assert rows == [{"start": 1.0, "end": 2.0, "name": "x", "tags": {}}]

    @pytest.mark.parametrize("row", [
        {"start": 1, "end": 2, "tags": ["bad"]},
        {"start": 1, "end": 2, "tags": "bad"},
        {"start": 1, "end": 2, "tags": {"k": {"nested": "v"}}},
        {"start": 1, "end": 2, "name": 7},
        [1, 2],
    ])
    def test_malformed_rows_dropped(self, row):
        assert valid_rows([row, {"start": 3, "end": 4}]) == [
            {"start": 3.0, "end": 4.0, "name": "", "tags": {}},
        ]


class TestSegmentsToDicts:
    def test_serializable(self):
        out = segments_to_dicts([_seg(1, 2, "a"), _seg(start=3)])
        assert json.loads(json.dumps(out))[1]["start"] == 3
        assert "end" not in out[1]
