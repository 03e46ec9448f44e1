"""
ObservationSource interface for pluggable frame sources.

This defines the contract that every frame source implements, so the scanning
pipeline can run against:
- USB cameras and network streams (live, auto-capture)
- Video files (replayed as if live)
- Still images and image directories (one detection per image)

Sources hand out FrameData and never mutate a frame after returning it.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "camera", "inbox").
        resolution: Requested (width, height). None = source default.
        fps: Requested frames per second. None = source default.
        channel_order: Channel layout of produced frames.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None
    channel_order: str = "BGR"
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources

    Can also be used as a context manager:
        with ImageFileSource(config) as source:
            for frame_data in source:
                detector.detect(frame_data)
    """

    #: Live sources feed the stability tracker; still sources are scanned one by one
    is_live: bool = True

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source. Must be called before read().

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame.

        Returns:
            FrameData, or None when no frame is available (end of input,
            camera error).
        """

    @abstractmethod
    def close(self) -> None:
        """Release resources held by the source. Safe to call multiple times."""

    def _make_frame(self, frame: np.ndarray, source: Optional[str] = None) -> FrameData:
        """Wrap pixels in FrameData with the next frame index and current time."""
        self._frame_index += 1
        return FrameData(
            frame=frame,
            width=frame.shape[1],
            height=frame.shape[0],
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=source or self.source_id,
            channel_order="GRAY" if frame.ndim == 2 else self._config.channel_order,
        )

    def __enter__(self) -> "ObservationSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Yield frames until the source is exhausted.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
