"""
OpenCV capture source for live scanning.

A camera index, a stream URL or a video file becomes a stream of FrameData for
the scanning pipeline. Cameras and streams are live: a failed read reopens the
device. Video files are finite and end the stream at their last frame.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from models.config import SourceConfig
from models.frame import FrameData
from .base import ObservationConfig, ObservationSource
from .rtsp_utils import is_stream_url, sanitize_url


# Stability tracking compares consecutive frames, so queued frames only add lag
LIVE_BUFFER_FRAMES = 1

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# cv2.flip codes keyed by (horizontal, vertical)
_FLIP_CODES = {
    (True, False): 1,
    (False, True): 0,
    (True, True): -1,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for a cv2.VideoCapture source.

    Attributes:
        device_id: Camera index, stream URL or video file path.
        open_attempts: Attempts to open the device before giving up.
        max_read_failures: Reconnects in a row before read() reports no frame.
        swap_rb: Swap R/B for drivers that deliver RGB.
        rotate: Clockwise rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Mirror left-right (e.g. a desk camera facing the user).
        flip_vertical: Mirror top-bottom (e.g. an overhead camera mounted upside down).
    """
    device_id: Union[int, str] = 0
    open_attempts: int = 3
    max_read_failures: int = 3
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_source_config(cls, source_cfg: SourceConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Build from the `source` section of Config."""
        return cls(
            source_id=source_id,
            resolution=tuple(source_cfg.resolution) if source_cfg.resolution else None,
            fps=source_cfg.fps,
            device_id=source_cfg.device_id,
            swap_rb=source_cfg.swap_rb,
            rotate=source_cfg.rotate,
            flip_horizontal=source_cfg.flip_horizontal,
            flip_vertical=source_cfg.flip_vertical,
        )


class OpenCVSource(ObservationSource):
    """
    Frames from a camera, network stream or video file.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(1280, 720))
        with OpenCVSource(config) as source:
            for frame_data in source:
                result = detector.detect(frame_data)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_stream(self) -> bool:
        return is_stream_url(self.device_id)

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and not self.is_stream and os.path.exists(self.device_id)

    @property
    def is_live(self) -> bool:
        """Video files end; cameras and streams only fail."""
        return not self.is_file

    def open(self) -> None:
        if self._is_open:
            return

        self._cap = self._open_capture()
        self._is_open = True
        self._frame_index = 0
        self._read_failures = 0
        logging.info(
            f"Capture opened: source_id={self.source_id}, device={sanitize_url(self.device_id)}, "
            f"live={self.is_live}"
        )

    def _open_capture(self) -> cv2.VideoCapture:
        """Open the device, backing off between attempts."""
        attempts = max(1, self._opencv_config.open_attempts)
        for attempt in range(attempts):
            if attempt > 0:
                delay = min(2 ** attempt, 10)
                logging.warning(
                    f"Could not open {sanitize_url(self.device_id)}, "
                    f"retrying in {delay}s ({attempt + 1}/{attempts})"
                )
                time.sleep(delay)
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                if isinstance(self.device_id, int):
                    self._configure_camera(cap)
                return cap
            cap.release()
        raise RuntimeError(f"Failed to open device {sanitize_url(self.device_id)} after {attempts} attempts")

    def _configure_camera(self, cap: cv2.VideoCapture) -> None:
        """Apply resolution/fps hints to a local camera; drivers may ignore them."""
        cfg = self._opencv_config
        cap.set(cv2.CAP_PROP_BUFFERSIZE, LIVE_BUFFER_FRAMES)
        if cfg.resolution:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.resolution[0])
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.resolution[1])
        if cfg.fps:
            cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        logging.info(
            f"Camera reports {int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))} at {cap.get(cv2.CAP_PROP_FPS):.1f} fps"
        )

    def read(self) -> Optional[FrameData]:
        """Next frame, or None at the end of a file or when a live device is gone."""
        if not self._is_open or self._cap is None:
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            if not self.is_live:
                logging.info(f"End of video {self.device_id}")
                return None
            frame = self._reconnect()
            if frame is None:
                return None

        self._read_failures = 0
        return self._make_frame(self._apply_transforms(frame))

    def _reconnect(self) -> Optional[np.ndarray]:
        self._read_failures += 1
        if self._read_failures > self._opencv_config.max_read_failures:
            logging.error(f"Giving up on {sanitize_url(self.device_id)} after {self._read_failures - 1} reconnects")
            return None

        logging.warning(f"Frame read failed ({self._read_failures}), reopening {sanitize_url(self.device_id)}")
        self._cap.release()
        try:
            self._cap = self._open_capture()
        except RuntimeError as e:
            logging.error(str(e))
            return None
        ok, frame = self._cap.read()
        return frame if ok else None

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Rotate, then mirror, then swap R/B, as configured."""
        cfg = self._opencv_config
        rotation = _ROTATIONS.get(cfg.rotate)
        if rotation is not None:
            frame = cv2.rotate(frame, rotation)
        flip_code = _FLIP_CODES.get((cfg.flip_horizontal, cfg.flip_vertical))
        if flip_code is not None:
            frame = cv2.flip(frame, flip_code)
        if cfg.swap_rb:
            frame = np.ascontiguousarray(frame[..., ::-1])
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"Capture closed: source_id={self.source_id}")
