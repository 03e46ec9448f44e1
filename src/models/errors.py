"""
Error taxonomy for the scanner core.

Detection-inconclusive errors (DetectionError subclasses) are raised inside the
detection stages and normalized into a NotDetected result by DocumentDetector.
InvalidVertexCount is a precondition failure and propagates to the caller.
"""

from __future__ import annotations


class ScannerError(Exception):
    """Base class for all scanner errors."""


class InvalidInput(ScannerError, ValueError):
    """Empty or malformed image, or a non-positive target size."""


class InvalidVertexCount(ScannerError, ValueError):
    """A quadrilateral or curvature set was built from the wrong number of points."""


class DetectionError(ScannerError):
    """Detection was inconclusive for this frame; the next frame may succeed."""

    reason = "detection_failed"


class NoContours(DetectionError):
    """The edge map contained no contours at all."""

    reason = "no_contours"


class NoQuadrilateral(DetectionError):
    """No candidate contour could be approximated to a usable polygon."""

    reason = "no_quadrilateral"


class ImplausibleShape(DetectionError):
    """The fitted quadrilateral is too thin to be a document."""

    reason = "implausible_shape"
