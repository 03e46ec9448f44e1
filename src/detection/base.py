"""
Detection interfaces.

We keep this lightweight so the pipeline can run against any boundary
detector:
- classical CV (threshold + contours), the default
- a fixed or manually supplied quadrilateral (tests, manual crop)
"""

from __future__ import annotations

from typing import Union

import numpy as np

from models.detection import DetectionResult
from models.frame import FrameData


FrameLike = Union[np.ndarray, FrameData]


class Detector:
    """Detector interface returning one DetectionResult per frame, in source pixels."""

    def detect(self, frame: FrameLike) -> DetectionResult:
        raise NotImplementedError
