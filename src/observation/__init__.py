"""
Observation layer for pluggable frame sources.

This layer abstracts the source of frames (camera, video file, stream, still
images) from the scanning pipeline. Each source implements the
ObservationSource interface and returns FrameData objects.
"""

from __future__ import annotations

import os

from models.config import SourceConfig
from .base import ObservationSource, ObservationConfig
from .image_source import IMAGE_EXTENSIONS, ImageFileSource, ImageFileSourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(source_cfg: SourceConfig, source_id: str = "camera") -> ObservationSource:
    """
    Factory: pick a source for the configured device_id.

    Image files and directories get an ImageFileSource; camera indices,
    stream URLs and video files get an OpenCVSource.
    """
    device = source_cfg.device_id
    if isinstance(device, str) and (
        os.path.isdir(device) or device.lower().endswith(IMAGE_EXTENSIONS)
    ):
        return ImageFileSource(ImageFileSourceConfig(source_id=source_id, path=device))
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "ImageFileSource",
    "ImageFileSourceConfig",
    "create_source_from_config",
]
