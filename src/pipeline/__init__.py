"""
Pipeline module for the document scanner.

The pipeline orchestrates the live scanning flow:
- Frame acquisition from observation sources
- Document detection (inline or on the detection worker)
- Stability tracking
- Rectification and saving of captures (via CaptureStage)
"""

from .engine import PipelineEngine, PipelineConfig, create_engine_from_config
from .stages.capture import CaptureStage, CaptureStageConfig, create_capture_stage
from .worker import DetectionWorker

__all__ = [
    "PipelineEngine",
    "PipelineConfig",
    "create_engine_from_config",
    "CaptureStage",
    "CaptureStageConfig",
    "create_capture_stage",
    "DetectionWorker",
]
