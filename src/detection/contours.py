"""
Quadrilateral fitting over an edge map.

Candidate selection is kept explicit: the bounded set of largest contours is
ranked and approximated in full before one is chosen, so the choice can be
inspected (and tested) independently of the image work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import cv2
import numpy as np

from algorithms.geometry import order_vertices, sort_by_angle
from models.config import ContourConfig
from models.errors import ImplausibleShape, NoContours, NoQuadrilateral
from models.geometry import Quadrilateral


@dataclass(frozen=True)
class ContourCandidate:
    """
    One contour considered as the document boundary.

    Attributes:
        rank: Position in the area ranking (0 = largest).
        area: Contour area in working-image pixels.
        contour: The raw contour as returned by cv2.findContours.
        approximation: Polygon approximation, shape (N, 2).
    """
    rank: int
    area: float
    contour: np.ndarray
    approximation: Optional[np.ndarray] = None

    @property
    def vertex_count(self) -> int:
        return 0 if self.approximation is None else len(self.approximation)

    @property
    def usable(self) -> bool:
        return self.vertex_count >= 4


def approximate(contour: np.ndarray, epsilon_ratio: float) -> np.ndarray:
    """approxPolyDP with epsilon proportional to the closed perimeter."""
    curve = contour.astype(np.float32)
    perimeter = cv2.arcLength(curve, True)
    approx = cv2.approxPolyDP(curve, epsilon_ratio * perimeter, True)
    return approx.reshape(-1, 2)


def force_fit(points: np.ndarray) -> np.ndarray:
    """Replace an N-gon by its minimum-area bounding rectangle (4 corners)."""
    rect = cv2.minAreaRect(np.asarray(points, dtype=np.float32).reshape(-1, 1, 2))
    box = cv2.boxPoints(rect)
    return np.array([p.as_tuple() for p in sort_by_angle(box)], dtype=np.float32)


class ContourFitter:
    """
    Find the document quadrilateral in a dilated edge map.

    Raises NoContours, NoQuadrilateral or ImplausibleShape when the frame does
    not contain a usable document boundary.
    """

    def __init__(self, config: Optional[ContourConfig] = None):
        self.config = config or ContourConfig()

    def rank_candidates(self, contours: Sequence[np.ndarray], image_area: float) -> List[ContourCandidate]:
        """
        Keep contours with area strictly inside (min_area_ratio, max_area_ratio)
        of the image, largest first, at most max_candidates of them.
        """
        cfg = self.config
        low = image_area * cfg.min_area_ratio
        high = image_area * cfg.max_area_ratio

        scored = []
        for contour in contours:
            area = float(cv2.contourArea(contour))
            if low < area < high:
                scored.append((area, contour))
        # Stable sort: equal areas keep findContours order
        scored.sort(key=lambda item: item[0], reverse=True)

        return [
            ContourCandidate(
                rank=rank,
                area=area,
                contour=contour,
                approximation=approximate(contour, cfg.approx_epsilon),
            )
            for rank, (area, contour) in enumerate(scored[:cfg.max_candidates])
        ]

    def select_candidate(self, candidates: Sequence[ContourCandidate]) -> ContourCandidate:
        """
        Pick the highest-ranked candidate whose approximation has at least
        four vertices.

        Raises:
            NoQuadrilateral: If no candidate qualifies.
        """
        usable = [c for c in candidates if c.usable]
        if not usable:
            raise NoQuadrilateral(
                f"No usable polygon among {len(candidates)} candidate contours"
            )
        return min(usable, key=lambda c: c.rank)

    def fit_polygon(self, points: np.ndarray) -> Quadrilateral:
        """
        Turn an approximated polygon into an ordered, plausible quadrilateral.

        Polygons with more (or fewer) than four vertices are force-fit with
        their minimum-area rectangle.

        Raises:
            NoQuadrilateral: If there are too few points to fit.
            ImplausibleShape: If the aspect ratio exceeds max_aspect_ratio.
        """
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        if len(pts) < 3:
            raise NoQuadrilateral(f"Cannot fit a quadrilateral to {len(pts)} points")
        if len(pts) != 4:
            logging.debug(f"Polygon has {len(pts)} vertices, force-fitting rectangle")
            pts = force_fit(pts)

        quad = order_vertices(pts)
        ratio = quad.aspect_ratio
        if ratio > self.config.max_aspect_ratio:
            raise ImplausibleShape(f"Aspect ratio {ratio:.2f} exceeds {self.config.max_aspect_ratio}")
        return quad

    def fit(self, edge_map: np.ndarray) -> Quadrilateral:
        """Run the full contour pipeline on a single-channel edge map."""
        contours, _ = cv2.findContours(edge_map, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        if len(contours) == 0:
            raise NoContours("Edge map contains no contours")

        h, w = edge_map.shape[:2]
        candidates = self.rank_candidates(contours, float(w * h))
        best = self.select_candidate(candidates)
        logging.debug(
            f"Selected contour rank {best.rank} area {best.area:.0f} "
            f"({best.vertex_count} vertices) from {len(candidates)} candidates"
        )
        return self.fit_polygon(best.approximation)
