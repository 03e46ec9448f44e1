"""
Detection models for per-frame document boundary results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import InvalidVertexCount
from .geometry import CurvaturePoint, Point2D, Quadrilateral


# Reason codes for NotDetected results
REASON_INVALID_INPUT = "invalid_input"
REASON_NO_CONTOURS = "no_contours"
REASON_NO_QUADRILATERAL = "no_quadrilateral"
REASON_IMPLAUSIBLE_SHAPE = "implausible_shape"


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of document detection on one frame.

    Either Detected (vertices and curvature_points set, reason None) or
    NotDetected (both None, reason set). Use the detected()/not_detected()
    constructors rather than building instances directly.

    Attributes:
        vertices: Ordered quadrilateral in source-image pixels.
        curvature_points: One point per edge, aligned with vertices.edges.
        reason: Why nothing was detected.
        timestamp: Capture time of the frame the result came from.
        frame_index: Index of that frame in its stream.
    """
    vertices: Optional[Quadrilateral] = None
    curvature_points: Optional[Tuple[CurvaturePoint, ...]] = None
    reason: Optional[str] = None
    timestamp: Optional[float] = None
    frame_index: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.vertices is not None

    @property
    def is_flat(self) -> bool:
        """Document-level flatness; False when nothing was detected."""
        if not self.curvature_points:
            return False
        return all(cp.is_flat_edge for cp in self.curvature_points)

    @classmethod
    def detected(
        cls,
        vertices: Quadrilateral,
        curvature_points: Sequence[CurvaturePoint],
        timestamp: Optional[float] = None,
        frame_index: Optional[int] = None,
    ) -> "DetectionResult":
        points = tuple(sorted(curvature_points, key=lambda cp: cp.edge_index))
        if len(points) != 4 or [cp.edge_index for cp in points] != [0, 1, 2, 3]:
            raise InvalidVertexCount(
                f"Expected one curvature point per edge, got {len(points)}"
            )
        return cls(
            vertices=vertices,
            curvature_points=points,
            timestamp=timestamp,
            frame_index=frame_index,
        )

    @classmethod
    def not_detected(
        cls,
        reason: str,
        timestamp: Optional[float] = None,
        frame_index: Optional[int] = None,
    ) -> "DetectionResult":
        return cls(reason=reason, timestamp=timestamp, frame_index=frame_index)

    def as_points(self) -> List[Point2D]:
        """
        Flatten to [4 vertices + 4 curvature points], the layout consumed by
        overlay renderers. Empty when nothing was detected.
        """
        if not self.found:
            return []
        return list(self.vertices) + [cp.point for cp in self.curvature_points]
