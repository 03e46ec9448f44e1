"""
CaptureEvent model for auto-capture events.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .geometry import Quadrilateral


@dataclass(frozen=True)
class CaptureEvent:
    """
    A capture event emitted when the document boundary has held still.

    Attributes:
        frame_index: Index of the frame that triggered the capture.
        timestamp: Unix timestamp of that frame.
        vertices: Document corners used for rectification (source pixels).
        image: The rectified document image.
        output_path: Where the image was written, if it was saved.
        is_flat: Whether the document was judged flat.
        source: Identifier of the frame source.
    """
    frame_index: int
    timestamp: float
    vertices: Quadrilateral
    image: np.ndarray
    output_path: Optional[str] = None
    is_flat: bool = True
    source: Optional[str] = None

    @property
    def size(self):
        """Return (width, height) of the rectified image."""
        h, w = self.image.shape[:2]
        return (w, h)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/JSON (pixels excluded)."""
        return {
            "frame_index": self.frame_index,
            "timestamp": self.timestamp,
            "vertices": [p.as_tuple() for p in self.vertices],
            "width": self.size[0],
            "height": self.size[1],
            "output_path": self.output_path,
            "is_flat": self.is_flat,
            "source": self.source,
        }
