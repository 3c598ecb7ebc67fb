"""Tests for cutlist.ffmpeg — binary discovery chain and subprocess runners."""

import subprocess
from unittest.mock import patch

import pytest
from cutlist import ffmpeg
from cutlist.ffmpeg import (
    find_ffmpeg,
    find_ffprobe,
    reset_cache,
    run_ffmpeg,
    _try_env_exact,
    _try_env_dir,
)
from cutlist.errors import CutListError


@pytest.fixture(autouse=True)
def _fresh_cache():
    reset_cache()
    yield
    reset_cache()


class TestEnvVarDiscovery:
    def test_env_exact_returns_none_when_unset(self, monkeypatch):
        monkeypatch.delenv("CUTLIST_FFMPEG", raising=False)
        assert _try_env_exact("CUTLIST_FFMPEG") is None

    def test_env_exact_returns_path_when_valid(self, tmp_path, monkeypatch):
        fake_bin = tmp_path / "ffmpeg"
        fake_bin.write_text("#!/bin/sh\n")
        monkeypatch.setenv("CUTLIST_FFMPEG", str(fake_bin))
        assert _try_env_exact("CUTLIST_FFMPEG") == str(fake_bin)

    def test_env_exact_ignores_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CUTLIST_FFMPEG", str(tmp_path / "nope"))
        assert _try_env_exact("CUTLIST_FFMPEG") is None

    def test_env_dir_returns_none_when_unset(self, monkeypatch):
        monkeypatch.delenv("CUTLIST_FFMPEG_DIR", raising=False)
        assert _try_env_dir("ffmpeg") is None

    def test_env_dir_finds_binary(self, tmp_path, monkeypatch):
        fake_bin = tmp_path / "ffprobe"
        fake_bin.write_text("#!/bin/sh\n")
        monkeypatch.setenv("CUTLIST_FFMPEG_DIR", str(tmp_path))
        assert _try_env_dir("ffprobe") == str(fake_bin)


class TestFindBinaries:
    def test_env_wins_and_is_cached(self, tmp_path, monkeypatch):
        fake_bin = tmp_path / "ffmpeg"
        fake_bin.write_text("#!/bin/sh\n")
        monkeypatch.setenv("CUTLIST_FFMPEG", str(fake_bin))
        assert find_ffmpeg() == str(fake_bin)
        monkeypatch.delenv("CUTLIST_FFMPEG")
        assert find_ffmpeg() == str(fake_bin)

    def test_not_found(self, monkeypatch):
        monkeypatch.delenv("CUTLIST_FFPROBE", raising=False)
        monkeypatch.delenv("CUTLIST_FFMPEG_DIR", raising=False)
        with patch("cutlist.ffmpeg.shutil.which", return_value=None), \
                patch("cutlist.ffmpeg._try_static_ffmpeg", return_value=None):
            with pytest.raises(CutListError) as exc_info:
                find_ffprobe()
        assert exc_info.value.code == "FFPROBE_NOT_FOUND"
        assert exc_info.value.recovery

    def test_path_lookup(self, monkeypatch):
        monkeypatch.delenv("CUTLIST_FFMPEG", raising=False)
        monkeypatch.delenv("CUTLIST_FFMPEG_DIR", raising=False)
        with patch("cutlist.ffmpeg.shutil.which", return_value="/usr/bin/ffmpeg"):
            assert find_ffmpeg() == "/usr/bin/ffmpeg"


class TestRunners:
    def _completed(self, returncode=0, stderr=""):
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)

    def test_run_ffmpeg_adds_flags(self):
        with patch.object(ffmpeg, "find_ffmpeg", return_value="ffmpeg"), \
                patch("cutlist.ffmpeg.subprocess.run", return_value=self._completed()) as run:
            run_ffmpeg(["-i", "in.mp4"])
        cmd = run.call_args[0][0]
        assert cmd[:3] == ["ffmpeg", "-hide_banner", "-nostdin"]
        assert cmd[-2:] == ["-i", "in.mp4"]

    def test_failure_raises_with_stderr_tail(self):
        with patch.object(ffmpeg, "find_ffmpeg", return_value="ffmpeg"), \
                patch("cutlist.ffmpeg.subprocess.run", return_value=self._completed(1, "bad input")):
            with pytest.raises(CutListError) as exc_info:
                run_ffmpeg(["-i", "in.mp4"])
        assert exc_info.value.code == "FFMPEG_FAILED"
        assert exc_info.value.context["stderr"] == "bad input"

    def test_unchecked_failure_returns(self):
        with patch.object(ffmpeg, "find_ffmpeg", return_value="ffmpeg"), \
                patch("cutlist.ffmpeg.subprocess.run", return_value=self._completed(1, "x")):
            assert run_ffmpeg([], check=False).returncode == 1

    def test_timeout(self):
        with patch.object(ffmpeg, "find_ffmpeg", return_value="ffmpeg"), \
                patch("cutlist.ffmpeg.subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 1)):
            with pytest.raises(CutListError) as exc_info:
                run_ffmpeg([], timeout=1)
        assert exc_info.value.code == "FFMPEG_TIMEOUT"
