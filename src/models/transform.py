"""
Transform request model consumed once by the perspective transformer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .geometry import CurvaturePoint, Quadrilateral


@dataclass(frozen=True)
class TransformRequest:
    """
    Everything needed to rectify one document.

    Attributes:
        source_image: Snapshot of the source pixels (never mutated).
        vertices: Document corners in source pixels.
        curvature_points: One bulge point per edge of vertices.
        output_width: Target width in pixels.
        output_height: Target height in pixels.
    """
    source_image: np.ndarray
    vertices: Quadrilateral
    curvature_points: Tuple[CurvaturePoint, ...]
    output_width: int
    output_height: int

    @property
    def output_size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.output_width, self.output_height)
