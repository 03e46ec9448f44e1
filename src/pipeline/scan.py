"""
Still-image scanning.

One detection per image, no stability tracking. When no document is found
the default inset boundary is used instead, the same starting point a user
would get for manual adjustment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from detection.base import Detector
from models.detection import DetectionResult
from models.frame import FrameData
from transform.manual import ManualAdjustment
from transform.perspective import PerspectiveTransformer


@dataclass
class ScanResult:
    """
    Outcome of scanning one still image.

    Attributes:
        frame: The scanned frame.
        detection: What the detector reported.
        adjustment: Boundary actually used for rectification.
        image: Rectified image, None when skipped.
        used_fallback: Whether the default boundary replaced a failed detection.
    """
    frame: FrameData
    detection: DetectionResult
    adjustment: Optional[ManualAdjustment]
    image: Optional[np.ndarray]
    used_fallback: bool = False


def scan_frame(
    frame_data: FrameData,
    detector: Detector,
    transformer: PerspectiveTransformer,
    use_fallback: bool = True,
) -> ScanResult:
    """
    Detect and rectify the document in a single still frame.

    Args:
        frame_data: The still image.
        detector: Boundary detector.
        transformer: Rectifier (its output_size policy sets the result size).
        use_fallback: Rectify the default inset boundary when detection fails.
    """
    result = detector.detect(frame_data)
    if not result.found and not use_fallback:
        logging.warning(f"No document found in {frame_data.source} ({result.reason}), skipping")
        return ScanResult(frame=frame_data, detection=result, adjustment=None, image=None)

    adjustment = ManualAdjustment.from_detection(result, frame_data.width, frame_data.height)
    width, height = transformer.output_size_for(frame_data.frame, adjustment.vertices)
    request = adjustment.to_request(frame_data.frame, width, height)
    image = transformer.transform(request)

    return ScanResult(
        frame=frame_data,
        detection=result,
        adjustment=adjustment,
        image=image,
        used_fallback=not result.found,
    )


def output_path_for(source_path: Optional[str], output_dir: str, image_format: str, index: int) -> str:
    """scan_<name>.<format> inside output_dir."""
    if source_path:
        stem = os.path.splitext(os.path.basename(source_path))[0]
    else:
        stem = f"{index:06d}"
    return os.path.join(output_dir, f"scan_{stem}.{image_format}")


def write_image(path: str, image: np.ndarray, channel_order: str = "BGR") -> bool:
    """
    Write image, creating the parent directory as needed.

    RGB(A) images are converted to the BGR(A) order imwrite expects. Failures
    are logged and reported as False.
    """
    if channel_order == "RGB":
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    elif channel_order == "RGBA":
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        ok = cv2.imwrite(path, image)
    except (OSError, cv2.error) as e:
        logging.error(f"Failed to write {path}: {e}")
        return False
    if not ok:
        logging.error(f"Failed to write {path}")
    return ok
