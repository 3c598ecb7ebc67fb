"""Tests for cutlist.detection — single-flight detector runs."""

import asyncio

import pytest

from cutlist.detection import DetectionIntegrator, WorkIndicator
from cutlist.errors import CutListError
from cutlist.models import Segment


def _seg(start=None, end=None):
    return Segment(start=start, end=end)


def _bounds(segments):
    return [(s.start, s.end) for s in segments]


def _detector(rows, calls=None, delay=0.0):
    async def detect(start=None, end=None, on_progress=None):
        if calls is not None:
            calls.append((start, end))
        if delay:
            await asyncio.sleep(delay)
        if on_progress:
            on_progress(0.5)
        return rows
    return detect


class TestWorkIndicator:
    def test_lifecycle_notifies(self):
        seen = []
        ind = WorkIndicator(on_change=lambda working, progress: seen.append((working, progress)))
        ind.begin("Working", 0.0)
        ind.set_progress(1.5)
        ind.end()
        assert seen == [("Working", 0.0), ("Working", 1.0), (None, None)]
        assert not ind.busy


class TestRunDetector:
    def test_replaces_placeholder(self, store):
        integrator = DetectionIntegrator(store)
        new = asyncio.run(integrator.run_detector(_detector([{"start": 1, "end": 2}, {"start": 5, "end": 8}]), _seg()))
        assert _bounds(store) == [(1, 2), (5, 8)]
        assert new == store.segments

    def test_appends_to_existing(self, make_store):
        s = make_store([(0, 1)])
        asyncio.run(DetectionIntegrator(s).run_detector(_detector([{"start": 5, "end": 8}]), _seg()))
        assert _bounds(s) == [(0, 1), (5, 8)]
        assert s[1].color_index == 1

    def test_range_passed_to_detector(self, store):
        calls = []
        asyncio.run(DetectionIntegrator(store).run_detector(_detector([{"start": 5, "end": 8}], calls), _seg(end=30)))
        assert calls == [(0.0, 30)]

    def test_progress_reported(self, store):
        seen = []
        ind = WorkIndicator(on_change=lambda working, progress: seen.append((working, progress)))
        asyncio.run(DetectionIntegrator(store, ind).run_detector(
            _detector([{"start": 5, "end": 8}]), _seg(), working_text="Detecting silence",
        ))
        assert ("Detecting silence", 0.5) in seen
        assert seen[-1] == (None, None)

    def test_no_file_loaded_skips(self, store):
        calls = []
        integrator = DetectionIntegrator(store, is_file_loaded=lambda: False)
        assert asyncio.run(integrator.run_detector(_detector([], calls), _seg())) is None
        assert calls == []

    def test_single_flight(self, store):
        calls = []
        integrator = DetectionIntegrator(store)

        async def both():
            first = integrator.run_detector(_detector([{"start": 1, "end": 2}], calls, delay=0.05), _seg())
            second = integrator.run_detector(_detector([{"start": 3, "end": 4}], calls), _seg())
            return await asyncio.gather(first, second)

        first, second = asyncio.run(both())
        assert second is None
        assert len(calls) == 1
        assert _bounds(store) == [(1, 2)]
        assert not integrator.indicator.busy

    def test_failure_clears_indicator_and_keeps_store(self, make_store):
        s = make_store([(0, 1)])
        before = s.segments

        async def broken(start=None, end=None, on_progress=None):
            raise RuntimeError("decoder crashed")

        integrator = DetectionIntegrator(s)
        with pytest.raises(RuntimeError):
            asyncio.run(integrator.run_detector(broken, _seg()))
        assert not integrator.indicator.busy
        assert s.segments == before

    def test_no_valid_rows(self, store):
        integrator = DetectionIntegrator(store)
        with pytest.raises(CutListError) as exc_info:
            asyncio.run(integrator.run_detector(_detector([{"start": 5, "end": 1}]), _seg()))
        assert exc_info.value.code == "NO_VALID_SEGMENTS"
        assert not integrator.indicator.busy
        assert store.is_placeholder_only
