"""
Pipeline engine for the document scanner.

This module runs the live scanning loop: frames come from the observation
layer, are detected inline or on the detection worker, feed the stability
tracker in arrival order, and trigger the capture stage once the document has
held still.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import cv2
import numpy as np

from detection.base import Detector
from detection.detector import DocumentDetector
from models.capture_event import CaptureEvent
from models.config import Config
from models.detection import DetectionResult
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from pipeline.stages.capture import CaptureStage, create_capture_stage
from pipeline.worker import DetectionWorker
from tracking.stability import StabilityPhase, StabilityTracker


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        async_detection: Run detection on the background worker.
        display: Show a preview window with the detected boundary.
        stop_after_capture: Stop the loop after the first capture.
        retry_delay: Seconds to wait after a failed frame read.
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    async_detection: bool = False
    display: bool = False
    stop_after_capture: bool = False
    retry_delay: float = 0.5


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detected_count: int = 0
    capture_count: int = 0
    start_time: float = 0.0
    last_stats_log_time: float = 0.0
    consecutive_failures: int = 0

    def __post_init__(self) -> None:
        now = time.time()
        self.start_time = self.start_time or now
        self.last_stats_log_time = self.last_stats_log_time or now


FrameCallback = Callable[[FrameData, DetectionResult, Optional[CaptureEvent]], None]


class PipelineEngine:
    """
    Main scanning loop over an ObservationSource.

    This engine:
    - Reads frames from any ObservationSource
    - Runs document detection inline or on a DetectionWorker
    - Feeds results to the StabilityTracker, from this thread only
    - Uses CaptureStage to rectify the frame that made the document stable

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        engine = PipelineEngine(source, DocumentDetector(), StabilityTracker(), capture_stage)
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: Detector,
        tracker: StabilityTracker,
        capture_stage: CaptureStage,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.tracker = tracker
        self._capture_stage = capture_stage
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._running = False
        self._worker: Optional[DetectionWorker] = None
        self._last_result: Optional[DetectionResult] = None
        self._callbacks: List[FrameCallback] = []
        self._capture_callbacks: List[Callable[[CaptureEvent], None]] = []

    @property
    def last_result(self) -> Optional[DetectionResult]:
        return self._last_result

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback to be called after each detection result is processed.

        Args:
            callback: Function taking (frame_data, result, capture_event).
        """
        self._callbacks.append(callback)

    def add_capture_callback(self, callback: Callable[[CaptureEvent], None]) -> None:
        """Add a callback called once per capture (e.g. a shutter sound)."""
        self._capture_callbacks.append(callback)

    def run(self) -> None:
        """
        Run the main processing loop.

        Opens the observation source, processes frames until stopped or
        exhausted, then closes resources.
        """
        self._running = True
        self.stats = PipelineStats()
        self.tracker.reset()

        try:
            self.source.open()
            if self.config.async_detection:
                self._worker = DetectionWorker(self.detector)
                self._worker.start()
            logging.info(
                f"Pipeline started: source={self.source.source_id}, "
                f"async_detection={self.config.async_detection}"
            )

            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    if not self.source.is_live:
                        break
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(self.config.retry_delay)
                    continue

                self.stats.consecutive_failures = 0
                self.stats.frame_count += 1

                if self._worker is not None:
                    self._worker.submit(frame_data)
                    for done_frame, result in self._worker.poll():
                        self._handle_result(done_frame, result)
                else:
                    self._handle_result(frame_data, self.detector.detect(frame_data))

                if self.config.display:
                    if not self._handle_display(frame_data):
                        break  # User pressed 'q'

                self._handle_periodic_tasks()

            # Let an in-flight detection finish so the last frames are not lost
            if self._worker is not None and self._running:
                self._worker.wait_idle(timeout=5.0)
                for done_frame, result in self._worker.poll():
                    self._handle_result(done_frame, result)

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _handle_result(self, frame_data: FrameData, result: DetectionResult) -> Optional[CaptureEvent]:
        """
        Feed one detection result to the tracker and capture when it settles.

        Returns the CaptureEvent produced by this result, if any.
        """
        self._last_result = result
        if result.found:
            self.stats.detected_count += 1

        event = None
        if self.tracker.update(result, now_ms=frame_data.timestamp_ms):
            event = self._capture(frame_data, result)

        for callback in self._callbacks:
            try:
                callback(frame_data, result, event)
            except Exception as e:
                logging.warning(f"Callback error: {e}")
        return event

    def _capture(self, frame_data: FrameData, result: DetectionResult) -> Optional[CaptureEvent]:
        try:
            event = self._capture_stage.process(frame_data, result)
        except Exception as e:
            logging.error(f"Capture failed on frame {frame_data.frame_index}: {e}")
            return None
        if event is None:
            return None

        self.stats.capture_count += 1
        for callback in self._capture_callbacks:
            try:
                callback(event)
            except Exception as e:
                logging.warning(f"Capture callback error: {e}")

        if self.config.stop_after_capture:
            self._running = False
        return event

    def _draw_overlays(self, frame: np.ndarray) -> np.ndarray:
        """Draw the detected quadrilateral and its curvature points."""
        # Colors (BGR)
        COLOR_TRACKING = (0, 255, 255)  # Yellow
        COLOR_STABLE = (0, 255, 0)  # Green
        COLOR_CURVE = (255, 0, 255)  # Magenta

        result = self._last_result
        if result is None or not result.found:
            return frame

        stable = self.tracker.phase == StabilityPhase.STABLE
        color = COLOR_STABLE if stable else COLOR_TRACKING

        corners = np.array([p.as_int_tuple() for p in result.vertices], dtype=np.int32)
        cv2.polylines(frame, [corners], True, color, 2)
        for p in result.vertices:
            cv2.circle(frame, p.as_int_tuple(), 6, color, -1)
        for cp in result.curvature_points:
            cv2.circle(frame, cp.point.as_int_tuple(), 4, COLOR_CURVE, -1)

        label = self.tracker.phase.value
        cv2.putText(frame, label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)
        return frame

    def _handle_display(self, frame_data: FrameData) -> bool:
        """
        Handle cv2 display window.

        Returns False if user pressed 'q' to quit.
        """
        annotated = self._draw_overlays(frame_data.frame.copy())
        cv2.imshow("Document Scanner", annotated)
        key = cv2.waitKey(1) & 0xFF
        return key != ord('q')

    def _handle_periodic_tasks(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            elapsed = max(now - self.stats.start_time, 1e-6)
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"detected={self.stats.detected_count}, "
                f"captures={self.stats.capture_count}, "
                f"fps={self.stats.frame_count / elapsed:.1f}"
            )
            if self._worker is not None:
                logging.info(f"Detection worker stats: {self._worker.stats}")
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        """Clean up resources."""
        self._running = False

        if self._worker is not None:
            self._worker.close()
            self._worker = None

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info(
            f"Pipeline stopped: frames={self.stats.frame_count}, captures={self.stats.capture_count}"
        )


def create_engine_from_config(
    config: Config,
    display: bool = False,
    stop_after_capture: bool = False,
    source: Optional[ObservationSource] = None,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from the typed Config.

    Args:
        config: Full application config.
        display: Enable display window.
        stop_after_capture: Stop after the first capture.
        source: Use this source instead of the configured one.
    """
    if source is None:
        source = create_source_from_config(config.source, source_id="main-camera")

    detector = DocumentDetector.from_config(config)
    tracker = StabilityTracker(config.stability)
    capture_stage = create_capture_stage(config.output, config.transform)

    pipeline_config = PipelineConfig(
        max_consecutive_failures=config.pipeline.max_consecutive_failures,
        stats_log_interval=config.pipeline.stats_log_interval,
        async_detection=config.pipeline.async_detection,
        display=display,
        stop_after_capture=stop_after_capture,
    )
    return PipelineEngine(source, detector, tracker, capture_stage, pipeline_config)
