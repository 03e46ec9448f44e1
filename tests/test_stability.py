"""
Tests for boundary stability tracking.
"""

from unittest.mock import MagicMock

import pytest

from models.config import StabilityConfig
from models.detection import DetectionResult
from models.geometry import Point2D, Quadrilateral, midpoint_curvature
from tracking.stability import (
    StabilityPhase,
    StabilityState,
    StabilityTracker,
    observe,
    vertices_within,
)


BASE = [(100.0, 100.0), (500.0, 100.0), (500.0, 400.0), (100.0, 400.0)]


def _quad(offsets=None, points=BASE):
    offsets = offsets or {}
    moved = []
    for i, (x, y) in enumerate(points):
        dx, dy = offsets.get(i, (0.0, 0.0))
        moved.append(Point2D(x + dx, y + dy))
    return Quadrilateral(tuple(moved))


def _detected(quad=None):
    quad = quad or _quad()
    return DetectionResult.detected(quad, midpoint_curvature(quad))


def _not_detected():
    return DetectionResult.not_detected("no_contours")


class TestObserve:
    """Tests for the pure transition function."""

    def test_first_sighting_sets_baseline_only(self):
        state, fired = observe(StabilityState(), _detected(), now_ms=0)

        assert not fired
        assert state.last_vertices == _quad()
        assert state.detection_start_ms is None
        assert state.phase == StabilityPhase.TRACKING

    def test_second_still_frame_starts_timer(self):
        state, _ = observe(StabilityState(), _detected(), now_ms=0)
        state, fired = observe(state, _detected(), now_ms=66)

        assert not fired
        assert state.detection_start_ms == 66

    def test_not_detected_resets_to_idle(self):
        state = StabilityState(last_vertices=_quad(), detection_start_ms=10, is_stable=True)

        state, fired = observe(state, _not_detected(), now_ms=5000)

        assert not fired
        assert state == StabilityState()
        assert state.phase == StabilityPhase.IDLE

    def test_fires_once_at_duration(self):
        state = StabilityState(last_vertices=_quad(), detection_start_ms=1000)

        state, fired = observe(state, _detected(), now_ms=2999)
        assert not fired

        state, fired = observe(state, _detected(), now_ms=3000)
        assert fired
        assert state.is_stable
        assert state.phase == StabilityPhase.STABLE

        state, fired = observe(state, _detected(), now_ms=9000)
        assert not fired
        assert state.is_stable

    def test_movement_clears_timer_and_stable(self):
        state = StabilityState(last_vertices=_quad(), detection_start_ms=0, is_stable=True)
        moved = _quad({2: (30.0, 0.0)})

        state, fired = observe(state, _detected(moved), now_ms=100)

        assert not fired
        assert state.detection_start_ms is None
        assert state.is_stable is False
        assert state.last_vertices == moved

    def test_baseline_follows_latest_vertices(self):
        state, _ = observe(StabilityState(), _detected(), now_ms=0)
        slightly_moved = _quad({0: (3.0, 0.0)})

        state, _ = observe(state, _detected(slightly_moved), now_ms=66)

        assert state.last_vertices == slightly_moved
        assert state.detection_start_ms == 66

    def test_custom_config(self):
        config = StabilityConfig(threshold_px=1.0, duration_ms=100)
        state = StabilityState(last_vertices=_quad(), detection_start_ms=0)

        state, fired = observe(state, _detected(_quad({1: (2.0, 0.0)})), now_ms=200, config=config)

        assert not fired
        assert state.detection_start_ms is None


class TestThresholdBoundary:
    def test_exactly_threshold_is_still(self):
        assert vertices_within(_quad(), _quad({0: (3.0, 4.0)}), 5.0)

    def test_just_beyond_threshold_moves(self):
        assert not vertices_within(_quad(), _quad({0: (5.01, 0.0)}), 5.0)

    def test_boundary_through_observe(self):
        state = StabilityState(last_vertices=_quad(), detection_start_ms=0)

        still, _ = observe(state, _detected(_quad({3: (0.0, 5.0)})), now_ms=50)
        moved, _ = observe(state, _detected(_quad({3: (0.0, 5.01)})), now_ms=50)

        assert still.detection_start_ms == 0
        assert moved.detection_start_ms is None


class TestStabilityTracker:
    def test_thirty_frames_at_66ms(self):
        """Timer starts on the second frame, so 2000ms elapse only after frame 31."""
        on_stable = MagicMock()
        tracker = StabilityTracker(on_stable=on_stable)

        fired_at = [i for i in range(30) if tracker.update(_detected(), now_ms=i * 66)]

        assert fired_at == []
        on_stable.assert_not_called()

        fired_at = [i for i in range(30, 60) if tracker.update(_detected(), now_ms=i * 66)]

        # Timer started at 66ms; frame 32 (2112ms) is the first with >= 2000ms elapsed
        assert fired_at == [32]
        on_stable.assert_called_once()

    def test_fires_exactly_once_per_episode(self):
        on_stable = MagicMock()
        tracker = StabilityTracker(StabilityConfig(duration_ms=2000), on_stable=on_stable)

        for i in range(100):
            tracker.update(_detected(), now_ms=i * 66)

        assert on_stable.call_count == 1
        assert tracker.stable_events == 1
        assert tracker.phase == StabilityPhase.STABLE

    def test_not_detected_allows_refire(self):
        on_stable = MagicMock()
        tracker = StabilityTracker(on_stable=on_stable)

        t = 0
        for _ in range(40):
            tracker.update(_detected(), now_ms=t)
            t += 66
        assert on_stable.call_count == 1

        tracker.update(_not_detected(), now_ms=t)
        assert tracker.state.is_stable is False
        assert tracker.state.detection_start_ms is None

        for _ in range(40):
            t += 66
            tracker.update(_detected(), now_ms=t)
        assert on_stable.call_count == 2

    def test_reset_allows_refire(self):
        tracker = StabilityTracker(StabilityConfig(duration_ms=100))

        fired = [tracker.update(_detected(), now_ms=t) for t in range(0, 500, 50)]
        assert fired.count(True) == 1

        tracker.reset()
        assert tracker.phase == StabilityPhase.IDLE

        fired = [tracker.update(_detected(), now_ms=t) for t in range(1000, 1500, 50)]
        assert fired.count(True) == 1

    def test_callback_receives_triggering_result(self):
        received = []
        tracker = StabilityTracker(StabilityConfig(duration_ms=0), on_stable=received.append)
        result = _detected()

        tracker.update(result, now_ms=0)
        tracker.update(result, now_ms=10)
        tracker.update(result, now_ms=20)

        assert received == [result]

    def test_uses_injected_clock(self):
        clock = MagicMock(side_effect=[0.0, 1.0, 3.5])
        tracker = StabilityTracker(clock=clock)

        assert tracker.update(_detected()) is False   # baseline
        assert tracker.update(_detected()) is False   # timer starts at 1000ms
        assert tracker.update(_detected()) is True    # 2500ms elapsed
        assert clock.call_count == 3

    @pytest.mark.parametrize("offset,expected_start", [((5.0, 0.0), 66), ((5.01, 0.0), None)])
    def test_threshold_boundary(self, offset, expected_start):
        tracker = StabilityTracker()

        tracker.update(_detected(), now_ms=0)
        tracker.update(_detected(_quad({1: offset})), now_ms=66)

        assert tracker.state.detection_start_ms == expected_start
