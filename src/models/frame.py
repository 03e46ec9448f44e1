"""
FrameData model for captured frames and still images.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


# Supported channel layouts of the pixel buffer
CHANNEL_ORDERS = ("BGR", "RGB", "BGRA", "RGBA", "GRAY")


@dataclass
class FrameData:
    """
    Pixel buffer plus the metadata the pipeline needs.

    Attributes:
        frame: The raw pixels as a numpy array (H x W or H x W x C).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was captured.
        frame_index: Sequential frame number since the source opened.
        source: Identifier for the camera/file source.
        channel_order: Layout of the channels in frame.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    channel_order: str = "BGR"

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
        channel_order: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array, inferring gray layout from 2-D input."""
        h, w = frame.shape[:2]
        if channel_order is None:
            channel_order = "GRAY" if frame.ndim == 2 else "BGR"
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
            channel_order=channel_order,
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.frame.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    @property
    def timestamp_ms(self) -> int:
        return int(round(self.timestamp * 1000))

    def snapshot(self) -> "FrameData":
        """Copy of this frame whose pixels can outlive the source's buffer."""
        return FrameData(
            frame=self.frame.copy(),
            width=self.width,
            height=self.height,
            timestamp=self.timestamp,
            frame_index=self.frame_index,
            source=self.source,
            channel_order=self.channel_order,
        )
