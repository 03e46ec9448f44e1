"""
Pipeline stages for the document scanner.

Each stage handles a specific part of the processing pipeline:
- capture: Rectify and save the document once it is stable
"""

from .capture import CaptureStage, CaptureStageConfig

__all__ = ["CaptureStage", "CaptureStageConfig"]
