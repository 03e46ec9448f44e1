"""
Boundary stability tracking for auto-capture.

Consumes successive DetectionResults and decides when the document has held
still long enough to capture. The transition logic is a pure function over an
immutable StabilityState; StabilityTracker owns one state for a capture session
and fires its callback once per stable episode.

Note: callers must feed results one at a time, in frame arrival order.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from models.config import StabilityConfig
from models.detection import DetectionResult
from models.geometry import Quadrilateral


class StabilityPhase(str, Enum):
    """Derived tracker phase."""
    IDLE = "idle"
    TRACKING = "tracking"
    STABLE = "stable"


@dataclass(frozen=True)
class StabilityState:
    """
    Tracker state between two observations.

    Attributes:
        last_vertices: Baseline quadrilateral from the previous detection.
        detection_start_ms: When the current still run began (None = no timer).
        is_stable: Whether the stable event already fired for this episode.
    """
    last_vertices: Optional[Quadrilateral] = None
    detection_start_ms: Optional[int] = None
    is_stable: bool = False

    @property
    def phase(self) -> StabilityPhase:
        if self.last_vertices is None:
            return StabilityPhase.IDLE
        if self.is_stable:
            return StabilityPhase.STABLE
        return StabilityPhase.TRACKING


IDLE = StabilityState()


def vertices_within(previous: Quadrilateral, current: Quadrilateral, threshold_px: float) -> bool:
    """True when every vertex moved at most threshold_px (inclusive)."""
    limit = threshold_px * threshold_px
    return all(
        a.squared_distance_to(b) <= limit
        for a, b in zip(previous.points, current.points)
    )


def observe(
    state: StabilityState,
    result: DetectionResult,
    now_ms: int,
    config: Optional[StabilityConfig] = None,
) -> Tuple[StabilityState, bool]:
    """
    Apply one detection result.

    Args:
        state: State before this frame.
        result: Detection result for this frame.
        now_ms: Frame time in milliseconds.
        config: Threshold and duration; defaults to 5px / 2000ms.

    Returns:
        (new_state, fired) where fired is True only on the single transition
        into the stable phase.
    """
    cfg = config or StabilityConfig()

    if not result.found:
        return IDLE, False

    vertices = result.vertices
    if state.last_vertices is None:
        # First sighting only establishes the baseline
        return StabilityState(last_vertices=vertices), False

    if not vertices_within(state.last_vertices, vertices, cfg.threshold_px):
        return StabilityState(last_vertices=vertices), False

    if state.detection_start_ms is None:
        return StabilityState(
            last_vertices=vertices,
            detection_start_ms=now_ms,
            is_stable=state.is_stable,
        ), False

    fired = False
    is_stable = state.is_stable
    if not is_stable and now_ms - state.detection_start_ms >= cfg.duration_ms:
        is_stable = True
        fired = True

    return StabilityState(
        last_vertices=vertices,
        detection_start_ms=state.detection_start_ms,
        is_stable=is_stable,
    ), fired


class StabilityTracker:
    """
    Stateful wrapper around observe() for one capture session.

    This tracker is responsible for:
    - Holding the session's StabilityState
    - Timestamping results with an injectable clock
    - Invoking on_stable exactly once per stable episode
    """

    def __init__(
        self,
        config: Optional[StabilityConfig] = None,
        on_stable: Optional[Callable[[DetectionResult], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the stability tracker.

        Args:
            config: Threshold and duration settings
            on_stable: Called with the triggering result when the document settles
            clock: Returns the current time in seconds (used when no time is given)
        """
        self.config = config or StabilityConfig()
        self.on_stable = on_stable
        self.clock = clock
        self._state = IDLE
        self.stable_events = 0

        logging.info(
            f"Stability tracker initialized "
            f"(threshold={self.config.threshold_px}px, duration={self.config.duration_ms}ms)"
        )

    @property
    def state(self) -> StabilityState:
        return self._state

    @property
    def phase(self) -> StabilityPhase:
        return self._state.phase

    def reset(self) -> None:
        """Start a new session; the stable event can fire again."""
        if self._state.phase != StabilityPhase.IDLE:
            logging.debug("Stability tracker reset")
        self._state = IDLE

    def update(self, result: DetectionResult, now_ms: Optional[int] = None) -> bool:
        """
        Observe one detection result.

        Args:
            result: Detection result for the next frame.
            now_ms: Frame time in milliseconds; read from the clock if omitted.

        Returns:
            True if this result made the document stable.
        """
        if now_ms is None:
            now_ms = int(round(self.clock() * 1000))

        previous = self._state.phase
        self._state, fired = observe(self._state, result, now_ms, self.config)

        if previous == StabilityPhase.STABLE and self._state.phase != StabilityPhase.STABLE:
            logging.debug("Document moved or lost, stability cleared")

        if fired:
            self.stable_events += 1
            logging.info(f"Document stable (event #{self.stable_events})")
            if self.on_stable is not None:
                self.on_stable(result)
        return fired
