"""
Canonical vertex ordering.

Four points are first sorted by polar angle around their centroid, which gives
a consistent clockwise (in image coordinates) winding regardless of input
order. Corners are then re-selected from that winding by extremes:

- top-left:     min(x + y)
- top-right:    max(x - y)
- bottom-right: max(x + y)
- bottom-left:  min(x - y)

Angular sorting alone mis-assigns corners for near-square or rotated shapes;
the extremal pass corrects that. When the extremes collide (a shape rotated by
exactly 45 degrees picks the same point twice) the angular winding is used,
started at the top-left pick.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Union

import numpy as np

from models.errors import InvalidVertexCount
from models.geometry import Point2D, Quadrilateral
from .utils import PointLike, centroid, to_points


def _polar_angle(point: Point2D, center: Point2D) -> float:
    angle = math.degrees(math.atan2(point.y - center.y, point.x - center.x))
    return angle + 360 if angle < 0 else angle


def sort_by_angle(points: Union[Sequence[PointLike], np.ndarray]) -> List[Point2D]:
    """Sort points by polar angle (0-360 degrees) around their centroid."""
    pts = to_points(points)
    if not pts:
        return []
    center = centroid(pts)
    return sorted(pts, key=lambda p: _polar_angle(p, center))


def order_vertices(points: Union[Sequence[PointLike], np.ndarray, Quadrilateral]) -> Quadrilateral:
    """
    Order four points as [top-left, top-right, bottom-right, bottom-left].

    Args:
        points: Four points as Point2D, (x, y) pairs, a (4, 2) array or an
                existing Quadrilateral.

    Returns:
        The canonically ordered Quadrilateral.

    Raises:
        InvalidVertexCount: If not given exactly four points.
    """
    if isinstance(points, Quadrilateral):
        points = list(points)
    pts = to_points(points)
    if len(pts) != 4:
        raise InvalidVertexCount(f"Expected 4 points to order, got {len(pts)}")

    wound = sort_by_angle(pts)

    # min()/max() keep the first of equal keys, so ties follow the winding
    top_left = min(wound, key=lambda p: p.x + p.y)
    bottom_right = max(wound, key=lambda p: p.x + p.y)
    top_right = max(wound, key=lambda p: p.x - p.y)
    bottom_left = min(wound, key=lambda p: p.x - p.y)

    picks = [top_left, top_right, bottom_right, bottom_left]
    if len({id(p) for p in picks}) == 4:
        return Quadrilateral(tuple(picks))  # type: ignore[arg-type]

    start = next(i for i, p in enumerate(wound) if p is top_left)
    return Quadrilateral(tuple(wound[start:] + wound[:start]))  # type: ignore[arg-type]
