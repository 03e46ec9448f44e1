"""
Document boundary detector.

Composes preprocessing, edge extraction, quadrilateral fitting, vertex ordering
and curvature estimation into a single per-frame DetectionResult.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from models.config import Config, ContourConfig, CurvatureConfig, EdgeConfig, PreprocessConfig
from models.detection import REASON_INVALID_INPUT, DetectionResult
from models.errors import DetectionError, InvalidInput
from models.frame import FrameData
from models.geometry import Quadrilateral
from .base import Detector, FrameLike
from .contours import ContourFitter
from .curvature import CurvatureEstimator
from .edges import EdgeExtractor
from .preprocess import Preprocessor, to_uint8, validate_image


class DocumentDetector(Detector):
    """
    Locate a single document quadrilateral in a frame.

    Quadrilateral fitting runs on a downscaled working image; the result is
    mapped back to source pixels before curvature estimation, so vertices and
    curvature points always share the coordinate space of the input frame.

    detect() never raises for frames that simply contain no document: those
    produce DetectionResult.not_detected(reason).
    """

    def __init__(
        self,
        preprocess: Optional[PreprocessConfig] = None,
        edges: Optional[EdgeConfig] = None,
        contours: Optional[ContourConfig] = None,
        curvature: Optional[CurvatureConfig] = None,
    ) -> None:
        self.preprocessor = Preprocessor(preprocess)
        self.edge_extractor = EdgeExtractor(edges)
        self.fitter = ContourFitter(contours)
        self.curvature = CurvatureEstimator(curvature)

        # Counter for frame processing
        self.frame_count = 0
        self.detected_count = 0

        logging.info("Document detector initialized")

    @classmethod
    def from_config(cls, config: Config) -> "DocumentDetector":
        return cls(
            preprocess=config.preprocess,
            edges=config.edges,
            contours=config.contours,
            curvature=config.curvature,
        )

    def locate(self, image: np.ndarray, channel_order: str = "BGR") -> Quadrilateral:
        """
        Find the document quadrilateral in source-image pixels.

        Raises:
            InvalidInput: If the image is empty or malformed.
            DetectionError: If no plausible document boundary was found.
        """
        prep = self.preprocessor.process(image, channel_order)
        edge_map = self.edge_extractor.extract(prep.binary)
        quad = self.fitter.fit(edge_map)
        if prep.scale != 1.0:
            quad = quad.scaled(1.0 / prep.scale)
        return quad

    def detect(self, frame: FrameLike, channel_order: str = "BGR") -> DetectionResult:
        """
        Detect the document in a frame.

        Args:
            frame: FrameData or a raw numpy image.
            channel_order: Channel layout when frame is a raw array.

        Returns:
            Detected result with ordered vertices and four curvature points, or
            a NotDetected result carrying the reason.
        """
        timestamp = None
        frame_index = None
        if isinstance(frame, FrameData):
            image = frame.frame
            channel_order = frame.channel_order
            timestamp = frame.timestamp
            frame_index = frame.frame_index
        else:
            image = frame

        self.frame_count += 1

        try:
            # curvature search runs on the source pixels, so it needs 8-bit too
            image = to_uint8(validate_image(image))
            quad = self.locate(image, channel_order)
        except InvalidInput as e:
            logging.debug(f"Detection skipped: {e}")
            return DetectionResult.not_detected(REASON_INVALID_INPUT, timestamp, frame_index)
        except DetectionError as e:
            logging.debug(f"No document in frame: {e}")
            return DetectionResult.not_detected(e.reason, timestamp, frame_index)

        curve_points = self.curvature.estimate(image, quad, channel_order)
        self.detected_count += 1
        return DetectionResult.detected(quad, curve_points, timestamp, frame_index)
