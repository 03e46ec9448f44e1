"""
Typed models for the document scanner.

Geometry value types, per-frame detection results, transform requests,
frame buffers, configuration and the error taxonomy.
"""

from .errors import (
    ScannerError,
    InvalidInput,
    InvalidVertexCount,
    DetectionError,
    NoContours,
    NoQuadrilateral,
    ImplausibleShape,
)
from .geometry import Point2D, Quadrilateral, CurvaturePoint, midpoint_curvature
from .detection import DetectionResult
from .frame import FrameData
from .transform import TransformRequest
from .capture_event import CaptureEvent
from .config import (
    Config,
    SourceConfig,
    PreprocessConfig,
    EdgeConfig,
    ContourConfig,
    CurvatureConfig,
    StabilityConfig,
    TransformConfig,
    PipelineSettings,
    OutputConfig,
)

__all__ = [
    # Errors
    "ScannerError",
    "InvalidInput",
    "InvalidVertexCount",
    "DetectionError",
    "NoContours",
    "NoQuadrilateral",
    "ImplausibleShape",
    # Geometry
    "Point2D",
    "Quadrilateral",
    "CurvaturePoint",
    "midpoint_curvature",
    # Detection
    "DetectionResult",
    # Frame
    "FrameData",
    # Transform
    "TransformRequest",
    # Events
    "CaptureEvent",
    # Config
    "Config",
    "SourceConfig",
    "PreprocessConfig",
    "EdgeConfig",
    "ContourConfig",
    "CurvatureConfig",
    "StabilityConfig",
    "TransformConfig",
    "PipelineSettings",
    "OutputConfig",
]
