"""
Per-edge curvature ("bulge") estimation.

A document lying flat yields a near-rectangle under perspective, so each edge
is represented by its midpoint. A curled page gets, per edge, the edge pixel
farthest from the straight line between that edge's corners.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from algorithms.geometry import distances_to_line
from models.config import CurvatureConfig
from models.geometry import CurvaturePoint, Point2D, Quadrilateral
from .preprocess import to_grayscale, to_uint8


def _side_ratio(a: float, b: float) -> float:
    shorter = min(a, b)
    if shorter <= 0:
        return float("inf")
    return max(a, b) / shorter


class CurvatureEstimator:
    """Judge flatness and locate one curvature point per quadrilateral edge."""

    def __init__(self, config: Optional[CurvatureConfig] = None):
        self.config = config or CurvatureConfig()

    def is_document_flat(self, quad: Quadrilateral) -> bool:
        """Both pairs of opposite sides agree in length within flat_ratio."""
        top, right, bottom, left = quad.edge_lengths
        flat = (
            _side_ratio(top, bottom) < self.config.flat_ratio
            and _side_ratio(left, right) < self.config.flat_ratio
        )
        logging.debug(f"Document flatness: {flat}")
        return flat

    def edge_roi(self, start: Point2D, end: Point2D, shape: Tuple[int, ...]) -> Tuple[int, int, int, int]:
        """
        Bounding box of the edge padded by roi_padding, clipped to the image.

        Returns:
            (x, y, width, height); width or height may be 0 when the edge lies
            outside the image.
        """
        pad = self.config.roi_padding
        img_h, img_w = shape[:2]
        x = max(0, int(min(start.x, end.x)) - pad)
        y = max(0, int(min(start.y, end.y)) - pad)
        w = int(abs(end.x - start.x)) + 2 * pad
        h = int(abs(end.y - start.y)) + 2 * pad
        w = max(0, min(img_w - x, w))
        h = max(0, min(img_h - y, h))
        return x, y, w, h

    def find_curve_point(
        self,
        image: np.ndarray,
        start: Point2D,
        end: Point2D,
        channel_order: str = "BGR",
    ) -> Point2D:
        """
        Edge pixel inside the edge's ROI farthest from the line start-end.

        Falls back to the midpoint when the ROI is empty, has no edge pixels,
        or the farthest pixel deviates less than min_deviation_px.
        """
        midpoint = start.midpoint(end)
        x, y, w, h = self.edge_roi(start, end, image.shape)
        if w == 0 or h == 0:
            return midpoint

        roi = to_grayscale(to_uint8(image[y:y + h, x:x + w]), channel_order)
        edges = cv2.Canny(roi, self.config.canny_low, self.config.canny_high)

        # np.nonzero walks row-major, so argmax returns the first maximum
        rows, cols = np.nonzero(edges)
        if len(rows) == 0:
            return midpoint
        xs = cols.astype(np.float64) + x
        ys = rows.astype(np.float64) + y
        dists = distances_to_line(xs, ys, start, end)
        best = int(np.argmax(dists))

        if dists[best] < self.config.min_deviation_px:
            return midpoint
        return Point2D(float(xs[best]), float(ys[best]))

    def estimate(
        self,
        image: np.ndarray,
        quad: Quadrilateral,
        channel_order: str = "BGR",
    ) -> Tuple[CurvaturePoint, ...]:
        """
        One curvature point per edge of quad, in the same pixel space as image.

        Args:
            image: The image quad was located in.
            quad: Ordered quadrilateral.
            channel_order: Channel layout of image.
        """
        flat = self.is_document_flat(quad)
        points = []
        for index, (start, end) in enumerate(quad.edges):
            if flat:
                point = start.midpoint(end)
            else:
                point = self.find_curve_point(image, start, end, channel_order)
            points.append(CurvaturePoint(point=point, edge_index=index, is_flat_edge=flat))
        return tuple(points)
