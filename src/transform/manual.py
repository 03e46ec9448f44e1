"""
Manual boundary adjustment.

Holds a user-editable quadrilateral with one curvature point per edge and turns
it into a TransformRequest, bypassing detection. Detected curvature points are
kept as given; they are clamped into the bounding box of their edge whenever a
corner or curve point is edited.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from algorithms.geometry import order_vertices, to_points
from models.detection import DetectionResult
from models.errors import InvalidVertexCount
from models.geometry import CurvaturePoint, Point2D, Quadrilateral, midpoint_curvature
from models.transform import TransformRequest
from .perspective import VerticesLike


# Inset of the fallback quadrilateral from the image border, in pixels
DEFAULT_MARGIN = 50


def clamp_to_edge(point: Point2D, start: Point2D, end: Point2D) -> Point2D:
    """Clamp point into the axis-aligned bounding box of the edge start-end."""
    x = min(max(point.x, min(start.x, end.x)), max(start.x, end.x))
    y = min(max(point.y, min(start.y, end.y)), max(start.y, end.y))
    return Point2D(x, y)


def _to_curvature_points(points: Sequence) -> Tuple[CurvaturePoint, ...]:
    if len(points) != 4:
        raise InvalidVertexCount(f"Expected 4 curvature points, got {len(points)}")
    flat = all(getattr(p, "is_flat_edge", True) for p in points)
    coords = [p.point if isinstance(p, CurvaturePoint) else to_points([p])[0] for p in points]
    return tuple(CurvaturePoint(point=c, edge_index=i, is_flat_edge=flat) for i, c in enumerate(coords))


class ManualAdjustment:
    """
    Editable document boundary for a single image.

    Attributes:
        width: Source image width in pixels.
        height: Source image height in pixels.
        vertices: Current ordered quadrilateral.
        curvature_points: Current curvature points, aligned with vertices.edges.
    """

    def __init__(
        self,
        width: int,
        height: int,
        vertices: VerticesLike,
        curvature_points: Optional[Sequence[CurvaturePoint]] = None,
    ):
        self.width = width
        self.height = height
        self.vertices: Quadrilateral = order_vertices(vertices)
        if curvature_points is None:
            self.curvature_points = midpoint_curvature(self.vertices)
        else:
            # detected bulges sit off the straight edge; only edits clamp
            self.curvature_points = _to_curvature_points(curvature_points)

    @classmethod
    def default_for(cls, width: int, height: int, margin: int = DEFAULT_MARGIN) -> "ManualAdjustment":
        """
        Fallback boundary inset by margin pixels from every image border, with
        curvature points at the edge midpoints.
        """
        # Small images would otherwise get an inverted quadrilateral
        margin = max(0, min(margin, (width - 1) // 2, (height - 1) // 2))
        right = width - margin
        bottom = height - margin
        quad = Quadrilateral((
            Point2D(margin, margin),
            Point2D(right, margin),
            Point2D(right, bottom),
            Point2D(margin, bottom),
        ))
        return cls(width, height, quad)

    @classmethod
    def from_detection(
        cls,
        result: DetectionResult,
        width: int,
        height: int,
        margin: int = DEFAULT_MARGIN,
    ) -> "ManualAdjustment":
        """Start from a detection, or from the default boundary when nothing was found."""
        if not result.found:
            logging.info(f"No document detected ({result.reason}), using default boundary")
            return cls.default_for(width, height, margin)
        return cls(width, height, result.vertices, result.curvature_points)

    def set_vertices(self, vertices: VerticesLike) -> None:
        """Replace all four corners; curvature points are re-clamped to the new edges."""
        self.vertices = order_vertices(vertices)
        self._clamp_all()

    def move_vertex(self, index: int, point: Point2D) -> None:
        """Move one corner in place (no re-ordering) and re-clamp its two edges."""
        if not 0 <= index <= 3:
            raise IndexError(f"Vertex index must be in [0, 3], got {index}")
        points = list(self.vertices)
        points[index] = point
        self.vertices = Quadrilateral(tuple(points))  # type: ignore[arg-type]
        self._clamp_edge((index - 1) % 4)
        self._clamp_edge(index)

    def set_curvature_points(self, points: Sequence) -> None:
        """Replace all curvature points, clamping each into its edge's box."""
        self.curvature_points = _to_curvature_points(points)
        self._clamp_all()

    def move_curvature_point(self, edge_index: int, point: Point2D) -> None:
        """Move one curvature point, clamped to the bounding box of its edge."""
        start, end = self.vertices.edges[edge_index]
        current = self.curvature_points[edge_index]
        updated = list(self.curvature_points)
        updated[edge_index] = CurvaturePoint(
            point=clamp_to_edge(point, start, end),
            edge_index=edge_index,
            is_flat_edge=current.is_flat_edge,
        )
        self.curvature_points = tuple(updated)

    def _clamp_edge(self, edge_index: int) -> None:
        self.move_curvature_point(edge_index, self.curvature_points[edge_index].point)

    def _clamp_all(self) -> None:
        for i in range(4):
            self._clamp_edge(i)

    def points(self) -> List[Point2D]:
        """[4 vertices + 4 curvature points], as consumed by overlay renderers."""
        return list(self.vertices) + [cp.point for cp in self.curvature_points]

    def to_request(
        self,
        image: np.ndarray,
        output_width: Optional[int] = None,
        output_height: Optional[int] = None,
    ) -> TransformRequest:
        """
        Build a TransformRequest for image; the output defaults to the image size.
        """
        if output_width is None or output_height is None:
            output_height, output_width = image.shape[:2]
        return TransformRequest(
            source_image=image,
            vertices=self.vertices,
            curvature_points=self.curvature_points,
            output_width=output_width,
            output_height=output_height,
        )
