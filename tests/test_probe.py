"""Tests for cutlist.probe — output parsing with mocked FFmpeg runners."""

import shutil
import subprocess
from unittest.mock import patch

import pytest

from cutlist.errors import CutListError
from cutlist.probe import (
    detect_black,
    detect_scene_changes,
    detect_silence,
    find_keyframe_near_time,
    keyframes,
    probe,
)


requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg/ffprobe not on PATH",
)


def _completed(stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=stderr)


@pytest.fixture
def media(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00")
    return str(path)


class TestProbe:
    def test_missing_file(self, tmp_path):
        with pytest.raises(CutListError) as exc_info:
            probe(tmp_path / "missing.mp4")
        assert exc_info.value.code == "INPUT_NOT_FOUND"

    def test_parses_duration_and_video_stream(self, media):
        data = {
            "format": {"duration": "12.5", "format_name": "mov,mp4"},
            "streams": [
                {"index": 0, "codec_type": "audio"},
                {"index": 1, "codec_type": "video", "r_frame_rate": "30000/1001"},
            ],
        }
        with patch("cutlist.probe.run_ffprobe_json", return_value=data):
            result = probe(media)
        assert result.duration == 12.5
        assert result.format_name == "mov,mp4"
        assert result.video_stream_index == 1
        assert result.fps == 29.97

    def test_zero_duration(self, media):
        with patch("cutlist.probe.run_ffprobe_json", return_value={"format": {}, "streams": []}):
            with pytest.raises(CutListError) as exc_info:
                probe(media)
        assert exc_info.value.code == "INPUT_INVALID_FORMAT"


class TestKeyframes:
    CSV = "0.000000,K_\n0.040000,__\n2.000000,K_\nN/A,K_\n4.000000,K_\n"

    def test_only_flagged_packets(self, media):
        with patch("cutlist.probe.run_ffprobe", return_value=_completed(self.CSV)) as run:
            assert keyframes(media) == [0.0, 2.0, 4.0]
        assert "-read_intervals" not in run.call_args[0][0]

    def test_window(self, media):
        with patch("cutlist.probe.run_ffprobe", return_value=_completed(self.CSV)) as run:
            assert keyframes(media, start=1, end=3) == [2.0]
        args = run.call_args[0][0]
        assert args[args.index("-read_intervals") + 1] == "1.000000%3.000000"

    @pytest.mark.parametrize("mode,expected", [("nearest", 2.0), ("before", 2.0), ("after", 4.0)])
    def test_near_time(self, media, mode, expected):
        with patch("cutlist.probe.run_ffprobe", return_value=_completed(self.CSV)):
            assert find_keyframe_near_time(media, 2.5, mode=mode) == expected

    def test_near_time_none(self, media):
        with patch("cutlist.probe.run_ffprobe", return_value=_completed("")):
            assert find_keyframe_near_time(media, 2.5) is None

    def test_near_time_bad_mode(self, media):
        with patch("cutlist.probe.run_ffprobe", return_value=_completed(self.CSV)):
            with pytest.raises(ValueError):
                find_keyframe_near_time(media, 2.5, mode="sideways")


class TestDetectors:
    def test_silence_offsets_window_start(self, media):
        stderr = (
            "[silencedetect @ 0x1] silence_start: 1.5\n"
            "[silencedetect @ 0x1] silence_end: 3.5 | silence_duration: 2\n"
            "[silencedetect @ 0x1] silence_start: 8\n"
        )
        with patch("cutlist.probe.run_ffmpeg", return_value=_completed(stderr=stderr)) as run:
            rows = detect_silence(media, start=10, end=20)
        assert rows == [{"start": 11.5, "end": 13.5}, {"start": 18.0, "end": 20}]
        args = run.call_args[0][0]
        assert args[:4] == ["-ss", "10.000000", "-t", "10.000000"]

    def test_black(self, media):
        stderr = "[blackdetect @ 0x1] black_start:0 black_end:2.5 black_duration:2.5\n"
        with patch("cutlist.probe.run_ffmpeg", return_value=_completed(stderr=stderr)) as run:
            rows = detect_black(media)
        assert rows == [{"start": 0.0, "end": 2.5}]
        assert "blackdetect=d=2.0:pic_th=0.98:pix_th=0.1" in run.call_args[0][0]

    def test_scene_changes_split_window(self, media):
        stderr = (
            "[Parsed_showinfo_1 @ 0x1] n:0 pts:1 pts_time:2.5 duration:1\n"
            "[Parsed_showinfo_1 @ 0x1] n:1 pts:2 pts_time:6 duration:1\n"
        )
        with patch("cutlist.probe.run_ffmpeg", return_value=_completed(stderr=stderr)):
            rows = detect_scene_changes(media, start=0, end=10)
        assert rows == [
            {"start": 0.0, "end": 2.5},
            {"start": 2.5, "end": 6.0},
            {"start": 6.0, "end": 10},
        ]


@requires_ffmpeg
class TestRealMedia:
    def test_probe(self, test_video):
        result = probe(test_video)
        assert result.duration == pytest.approx(5.0, abs=0.2)
        assert result.video_stream_index is not None

    def test_keyframes(self, test_video):
        kfs = keyframes(test_video)
        assert kfs
        assert kfs[0] == pytest.approx(0.0, abs=0.1)
