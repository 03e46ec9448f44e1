"""
Geometry algorithms for document boundaries.

Pure functions over Point2D / Quadrilateral values; no image types involved.
"""

from .ordering import order_vertices, sort_by_angle
from .utils import distance, distance_to_line, distances_to_line, projected_size, to_points

__all__ = [
    "order_vertices",
    "sort_by_angle",
    "distance",
    "distance_to_line",
    "distances_to_line",
    "projected_size",
    "to_points",
]
