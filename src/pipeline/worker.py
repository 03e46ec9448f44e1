"""
Background detection worker.

Runs detection on a single dedicated thread with "keep only latest"
backpressure: a frame submitted while another is still waiting replaces it,
so at most one detection runs and at most one frame waits. Results are queued
and drained with poll() on the caller's thread; the caller therefore stays the
only writer of tracker and display state.

Every submission is tagged with the current generation. cancel() and close()
start a new generation, and anything produced for an older one is discarded
without being published.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from detection.base import Detector
from models.detection import DetectionResult
from models.frame import FrameData


@dataclass
class WorkerStats:
    """Counters for the detection worker."""
    submitted: int = 0
    processed: int = 0
    superseded: int = 0
    discarded: int = 0
    errors: int = 0


class DetectionWorker:
    """
    Single-thread detection executor with a one-slot mailbox.

    Example:
        with DetectionWorker(detector) as worker:
            for frame_data in source:
                worker.submit(frame_data)
                for frame_data, result in worker.poll():
                    tracker.update(result)
    """

    def __init__(self, detector: Detector, name: str = "detection-worker"):
        self.detector = detector
        self.name = name
        self.stats = WorkerStats()

        self._cond = threading.Condition()
        self._pending: Optional[Tuple[int, FrameData]] = None
        self._busy = False
        self._generation = 0
        self._closed = False
        self._results: "queue.Queue[Tuple[int, FrameData, DetectionResult]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread (idempotent)."""
        with self._cond:
            if self._closed:
                raise RuntimeError("DetectionWorker is closed")
            if self._thread is not None:
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logging.info(f"Detection worker started: {self.name}")

    def submit(self, frame_data: FrameData) -> bool:
        """
        Offer a frame for detection.

        Returns:
            True if the frame replaced one that had not started yet.
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("DetectionWorker is closed")
            replaced = self._pending is not None
            if replaced:
                self.stats.superseded += 1
            self._pending = (self._generation, frame_data)
            self.stats.submitted += 1
            self._cond.notify_all()
        return replaced

    def poll(self) -> List[Tuple[FrameData, DetectionResult]]:
        """Drain finished results of the current generation, oldest first."""
        results = []
        while True:
            try:
                generation, frame_data, result = self._results.get_nowait()
            except queue.Empty:
                break
            if generation != self._generation:
                self.stats.discarded += 1
                continue
            results.append((frame_data, result))
        return results

    def cancel(self) -> None:
        """Abandon the pending frame and every result not yet polled."""
        with self._cond:
            self._generation += 1
            if self._pending is not None:
                self.stats.discarded += 1
                self._pending = None
            self._cond.notify_all()
        # Drop anything already queued for the old generation
        self.poll()
        logging.debug(f"Detection worker cancelled, generation={self._generation}")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is pending or running. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._busy, timeout=timeout
            )

    def close(self, timeout: Optional[float] = 2.0) -> None:
        """Cancel outstanding work and stop the thread."""
        self.cancel()
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logging.warning(f"Detection worker {self.name} did not stop within {timeout}s")
        logging.info(
            f"Detection worker stopped: processed={self.stats.processed}, "
            f"superseded={self.stats.superseded}, discarded={self.stats.discarded}"
        )

    def __enter__(self) -> "DetectionWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._closed:
                    return
                generation, frame_data = self._pending
                self._pending = None
                self._busy = True

            result: Optional[DetectionResult] = None
            try:
                result = self.detector.detect(frame_data)
            except Exception as e:
                logging.error(f"Detection failed on frame {frame_data.frame_index}: {e}")

            with self._cond:
                self._busy = False
                if result is None:
                    self.stats.errors += 1
                elif generation != self._generation:
                    self.stats.discarded += 1
                else:
                    self.stats.processed += 1
                    self._results.put((generation, frame_data, result))
                self._cond.notify_all()
