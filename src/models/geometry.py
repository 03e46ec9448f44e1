"""
Geometry value types shared by detection, tracking and transform stages.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

from .errors import InvalidVertexCount


@dataclass(frozen=True)
class Point2D:
    """
    An image-space coordinate in pixels.

    Attributes:
        x: Horizontal coordinate (grows to the right).
        y: Vertical coordinate (grows downward).
    """
    x: float
    y: float

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def squared_distance_to(self, other: "Point2D") -> float:
        dx = other.x - self.x
        dy = other.y - self.y
        return dx * dx + dy * dy

    def midpoint(self, other: "Point2D") -> "Point2D":
        return Point2D((self.x + other.x) / 2, (self.y + other.y) / 2)

    def blend(self, other: "Point2D", weight: float) -> "Point2D":
        """Return (1 - weight) * self + weight * other."""
        keep = 1.0 - weight
        return Point2D(self.x * keep + other.x * weight, self.y * keep + other.y * weight)

    def scaled(self, factor: float) -> "Point2D":
        return Point2D(self.x * factor, self.y * factor)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def as_int_tuple(self) -> Tuple[int, int]:
        return (int(round(self.x)), int(round(self.y)))

    @classmethod
    def from_sequence(cls, seq: Sequence[float]) -> "Point2D":
        """Create from an (x, y) pair, list, or numpy row."""
        return cls(x=float(seq[0]), y=float(seq[1]))


@dataclass(frozen=True)
class Quadrilateral:
    """
    Exactly four points. Once ordered, traversal is
    [top_left, top_right, bottom_right, bottom_left].

    Attributes:
        points: The four vertices in traversal order.
    """
    points: Tuple[Point2D, Point2D, Point2D, Point2D]

    def __post_init__(self) -> None:
        pts = tuple(self.points)
        if len(pts) != 4:
            raise InvalidVertexCount(f"Quadrilateral needs exactly 4 points, got {len(pts)}")
        object.__setattr__(self, "points", pts)

    def __iter__(self):
        return iter(self.points)

    def __len__(self) -> int:
        return 4

    def __getitem__(self, index: int) -> Point2D:
        return self.points[index]

    @property
    def top_left(self) -> Point2D:
        return self.points[0]

    @property
    def top_right(self) -> Point2D:
        return self.points[1]

    @property
    def bottom_right(self) -> Point2D:
        return self.points[2]

    @property
    def bottom_left(self) -> Point2D:
        return self.points[3]

    @property
    def edges(self) -> Tuple[Tuple[Point2D, Point2D], ...]:
        """The four edges (v0->v1, v1->v2, v2->v3, v3->v0)."""
        return tuple((self.points[i], self.points[(i + 1) % 4]) for i in range(4))

    @property
    def edge_lengths(self) -> Tuple[float, float, float, float]:
        """Lengths of (top, right, bottom, left) for an ordered quadrilateral."""
        return tuple(a.distance_to(b) for a, b in self.edges)  # type: ignore[return-value]

    @property
    def width(self) -> float:
        return max(self.top_left.distance_to(self.top_right),
                   self.bottom_left.distance_to(self.bottom_right))

    @property
    def height(self) -> float:
        return max(self.top_left.distance_to(self.bottom_left),
                   self.top_right.distance_to(self.bottom_right))

    @property
    def aspect_ratio(self) -> float:
        """max(width/height, height/width); infinite for degenerate shapes."""
        w, h = self.width, self.height
        if w <= 0 or h <= 0:
            return math.inf
        return max(w / h, h / w)

    def is_convex(self) -> bool:
        """True when all turns along the traversal share the same sign."""
        signs = []
        for i in range(4):
            a = self.points[i]
            b = self.points[(i + 1) % 4]
            c = self.points[(i + 2) % 4]
            cross = (b.x - a.x) * (c.y - b.y) - (b.y - a.y) * (c.x - b.x)
            if cross != 0:
                signs.append(cross > 0)
        return len(signs) > 0 and (all(signs) or not any(signs))

    def scaled(self, factor: float) -> "Quadrilateral":
        return Quadrilateral(tuple(p.scaled(factor) for p in self.points))  # type: ignore[arg-type]

    def to_numpy(self) -> np.ndarray:
        """Return a float32 array of shape (4, 2)."""
        return np.array([p.as_tuple() for p in self.points], dtype=np.float32)

    @classmethod
    def from_points(cls, points: Iterable[Point2D]) -> "Quadrilateral":
        return cls(tuple(points))  # type: ignore[arg-type]

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Quadrilateral":
        """Create from any array reshapeable to (4, 2), e.g. an OpenCV contour."""
        pts = np.asarray(arr, dtype=np.float64).reshape(-1, 2)
        if len(pts) != 4:
            raise InvalidVertexCount(f"Quadrilateral needs exactly 4 points, got {len(pts)}")
        return cls(tuple(Point2D.from_sequence(row) for row in pts))  # type: ignore[arg-type]


@dataclass(frozen=True)
class CurvaturePoint:
    """
    Representative bulge point of one quadrilateral edge.

    Attributes:
        point: Image-space location of the bulge (edge midpoint when flat).
        edge_index: Edge the point belongs to, 0..3 for (v0->v1 .. v3->v0).
        is_flat_edge: Document-level flatness judgment for this edge.
    """
    point: Point2D
    edge_index: int
    is_flat_edge: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.edge_index <= 3:
            raise ValueError(f"edge_index must be in [0, 3], got {self.edge_index}")


def midpoint_curvature(quad: Quadrilateral, is_flat: bool = True) -> Tuple[CurvaturePoint, ...]:
    """Curvature points at the midpoint of every edge."""
    return tuple(
        CurvaturePoint(point=a.midpoint(b), edge_index=i, is_flat_edge=is_flat)
        for i, (a, b) in enumerate(quad.edges)
    )
