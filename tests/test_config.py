"""Tests for cutlist.config and cutlist.errors."""

import pytest
from cutlist.config import SegmentConfig, load_config, MAX_SEGMENTS_ALLOWED
from cutlist.errors import CutListError, recovery_hints, TOO_MANY_SEGMENTS, FFMPEG_NOT_FOUND


class TestSegmentConfig:
    def test_defaults(self):
        cfg = SegmentConfig()
        assert cfg.max_segments == MAX_SEGMENTS_ALLOWED
        assert cfg.history_size == 100
        assert cfg.concurrency == 5
        assert cfg.keyframe_search_window == 60.0

    @pytest.mark.parametrize("field", ["max_segments", "history_size", "concurrency", "keyframe_search_window"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValueError, match=field):
            SegmentConfig(**{field: 0})


class TestLoadConfig:
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CUTLIST_MAX_SEGMENTS", "12")
        monkeypatch.setenv("CUTLIST_KEYFRAME_WINDOW", "2.5")
        cfg = load_config()
        assert cfg.max_segments == 12
        assert cfg.keyframe_search_window == 2.5

    def test_blank_env_ignored(self, monkeypatch):
        monkeypatch.setenv("CUTLIST_CONCURRENCY", " ")
        assert load_config().concurrency == 5

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("CUTLIST_HISTORY_SIZE", "lots")
        with pytest.raises(ValueError, match="CUTLIST_HISTORY_SIZE"):
            load_config()

    def test_keyword_beats_env(self, monkeypatch):
        monkeypatch.setenv("CUTLIST_MAX_SEGMENTS", "12")
        assert load_config(max_segments=3).max_segments == 3
        assert load_config(max_segments=None).max_segments == 12


class TestErrors:
    def test_to_dict(self):
        exc = CutListError(code="X", message="boom", recovery=["fix"], context={"a": 1})
        assert exc.to_dict() == {
            "error": True, "code": "X", "message": "boom", "recovery": ["fix"], "context": {"a": 1},
        }
        assert str(exc) == "[X] boom"

    def test_limit_hint(self):
        hints = recovery_hints(TOO_MANY_SEGMENTS, {"max_segments": 7})
        assert hints[0] == "The limit is 7 segments"

    def test_ffmpeg_hints(self):
        hints = recovery_hints(FFMPEG_NOT_FOUND)
        assert any("static-ffmpeg" in h or "cutlist[ffmpeg]" in h for h in hints)

    def test_unknown_code(self):
        assert recovery_hints("NOPE") == []
