"""
Perspective correction.

Maps the document quadrilateral onto an upright width x height rectangle with a
single homography. Curvature points refine the corners before the mapping:
each corner is blended toward the bulge point of the edge it starts.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from algorithms.geometry import order_vertices, projected_size, to_points
from models.config import TransformConfig
from models.errors import InvalidInput, InvalidVertexCount
from models.geometry import CurvaturePoint, Point2D, Quadrilateral
from models.transform import TransformRequest


VerticesLike = Union[Quadrilateral, Sequence[Point2D], np.ndarray]


def _check_size(width: int, height: int) -> None:
    if width is None or height is None or width <= 0 or height <= 0:
        raise InvalidInput(f"Target size must be positive, got {width}x{height}")


def _check_image(image: Optional[np.ndarray]) -> None:
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise InvalidInput("Source image is empty")


def _as_curvature_points(points: Sequence) -> Tuple[Point2D, ...]:
    if len(points) != 4:
        raise InvalidVertexCount(f"Expected 4 curvature points, got {len(points)}")
    return tuple(p.point if isinstance(p, CurvaturePoint) else to_points([p])[0] for p in points)


def _as_vertices(vertices: VerticesLike) -> Tuple[Point2D, ...]:
    pts = tuple(vertices) if isinstance(vertices, Quadrilateral) else tuple(to_points(vertices))
    if len(pts) != 4:
        raise InvalidVertexCount(f"Expected 4 vertices, got {len(pts)}")
    return pts


def resolve_output_size(
    output_size: Union[str, Sequence[int]],
    image: np.ndarray,
    quad: Quadrilateral,
) -> Tuple[int, int]:
    """
    Turn the configured output size into (width, height).

    "source" uses the source image size, "projected" the natural size of the
    quadrilateral, and a [width, height] pair is used as given.
    """
    if output_size == "source":
        h, w = image.shape[:2]
        return w, h
    if output_size == "projected":
        return projected_size(quad)
    if isinstance(output_size, (list, tuple)) and len(output_size) == 2:
        return int(output_size[0]), int(output_size[1])
    raise ValueError(f"Unsupported output_size: {output_size!r}")


class PerspectiveTransformer:
    """Rectify a document region using its corners and curvature points."""

    def __init__(self, config: Optional[TransformConfig] = None):
        self.config = config or TransformConfig()

    def refine(self, vertices: VerticesLike, curvature_points: Sequence) -> Quadrilateral:
        """
        Blend each corner toward its edge's curvature point and re-order.

        Raises:
            InvalidVertexCount: If vertices or curvature points are not exactly 4.
        """
        corners = _as_vertices(vertices)
        curves = _as_curvature_points(curvature_points)

        flat = all(getattr(p, "is_flat_edge", False) for p in curvature_points)
        if flat and self.config.skip_blend_when_flat:
            return order_vertices(corners)

        weight = 1.0 - self.config.vertex_weight
        refined = [v.blend(c, weight) for v, c in zip(corners, curves)]
        return order_vertices(refined)

    def transform(self, request: TransformRequest) -> np.ndarray:
        """
        Produce the rectified image described by request.

        Returns:
            Image of shape (output_height, output_width[, channels]) with the
            source's channel count; pixels mapping outside the source are 0.

        Raises:
            InvalidVertexCount: If the request does not carry 4 vertices and
                4 curvature points.
            InvalidInput: If the target size is not positive or the source is empty.
        """
        # Preconditions first, no pixel work on bad input
        _as_vertices(request.vertices)
        _as_curvature_points(request.curvature_points)
        _check_size(request.output_width, request.output_height)
        _check_image(request.source_image)

        quad = self.refine(request.vertices, request.curvature_points)
        w, h = request.output_width, request.output_height

        src = quad.to_numpy()
        dst = np.array([[0, 0], [w, 0], [w, h], [0, h]], dtype=np.float32)
        matrix = cv2.getPerspectiveTransform(src, dst)

        output = cv2.warpPerspective(
            request.source_image,
            matrix,
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )
        logging.debug(f"Rectified document to {w}x{h}")
        return output

    def output_size_for(self, image: np.ndarray, vertices: VerticesLike) -> Tuple[int, int]:
        """Output (width, height) per the configured output_size policy."""
        quad = order_vertices(_as_vertices(vertices))
        return resolve_output_size(self.config.output_size, image, quad)

    def rectify(
        self,
        image: np.ndarray,
        vertices: VerticesLike,
        curvature_points: Sequence,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> np.ndarray:
        """
        Convenience wrapper building a TransformRequest.

        When width and height are omitted the configured output_size policy
        decides them.
        """
        _check_image(image)
        if width is None and height is None:
            width, height = self.output_size_for(image, vertices)
        return self.transform(TransformRequest(
            source_image=image,
            vertices=vertices,
            curvature_points=tuple(curvature_points),
            output_width=width,
            output_height=height,
        ))


def rectify(
    image: np.ndarray,
    vertices: VerticesLike,
    curvature_points: Sequence,
    width: Optional[int] = None,
    height: Optional[int] = None,
    config: Optional[TransformConfig] = None,
) -> np.ndarray:
    """Rectify image with a default (or given) PerspectiveTransformer."""
    return PerspectiveTransformer(config).rectify(image, vertices, curvature_points, width, height)
