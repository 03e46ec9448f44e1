"""
Edge extraction: Canny followed by dilation to close boundary gaps.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from models.config import EdgeConfig


class EdgeExtractor:
    """
    Turn the binarized image into a closed edge map.

    Real photographs rarely yield a fully closed boundary, so the Canny output
    is dilated a few times with a small square kernel; contour finding needs
    the closure more than it needs pixel-exact edges.
    """

    def __init__(self, config: Optional[EdgeConfig] = None):
        self.config = config or EdgeConfig()
        size = self.config.dilate_kernel
        self.kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (size, size))

    def extract(self, binary: np.ndarray) -> np.ndarray:
        cfg = self.config
        edges = cv2.Canny(binary, cfg.canny_low, cfg.canny_high, apertureSize=cfg.aperture_size)
        if cfg.dilate_iterations > 0:
            edges = cv2.dilate(edges, self.kernel, iterations=cfg.dilate_iterations)
        return edges
