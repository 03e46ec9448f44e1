"""
Geometry utilities.

Shared helpers for vertex ordering, curvature estimation and rectification.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple, Union

import numpy as np

from models.geometry import Point2D, Quadrilateral


PointLike = Union[Point2D, Sequence[float], np.ndarray]


def to_point(p: PointLike) -> Point2D:
    """Coerce an (x, y) pair, numpy row or Point2D into a Point2D."""
    if isinstance(p, Point2D):
        return p
    return Point2D.from_sequence(np.asarray(p, dtype=np.float64).reshape(-1)[:2])


def to_points(points: Union[Sequence[PointLike], np.ndarray]) -> List[Point2D]:
    """Coerce a list of points or an (N, 2) / (N, 1, 2) contour array."""
    if isinstance(points, np.ndarray):
        return [Point2D.from_sequence(row) for row in points.reshape(-1, 2)]
    return [to_point(p) for p in points]


def distance(p1: Point2D, p2: Point2D) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def distance_to_line(point: Point2D, line_start: Point2D, line_end: Point2D) -> float:
    """
    Perpendicular distance from point to the infinite line through
    line_start and line_end. Zero when the line is degenerate.
    """
    denominator = distance(line_start, line_end)
    if denominator == 0:
        return 0.0
    numerator = abs(
        (line_end.y - line_start.y) * point.x
        - (line_end.x - line_start.x) * point.y
        + line_end.x * line_start.y
        - line_end.y * line_start.x
    )
    return numerator / denominator


def distances_to_line(xs: np.ndarray, ys: np.ndarray, line_start: Point2D, line_end: Point2D) -> np.ndarray:
    """Vectorized distance_to_line over coordinate arrays."""
    denominator = distance(line_start, line_end)
    if denominator == 0:
        return np.zeros(np.shape(xs), dtype=np.float64)
    numerator = np.abs(
        (line_end.y - line_start.y) * xs
        - (line_end.x - line_start.x) * ys
        + line_end.x * line_start.y
        - line_end.y * line_start.x
    )
    return numerator / denominator


def centroid(points: Sequence[Point2D]) -> Point2D:
    n = len(points)
    return Point2D(sum(p.x for p in points) / n, sum(p.y for p in points) / n)


def projected_size(quad: Quadrilateral) -> Tuple[int, int]:
    """
    Natural (width, height) of the rectified document: the longer of each
    pair of opposite edges, at least 1 pixel.
    """
    return max(1, int(round(quad.width))), max(1, int(round(quad.height)))
