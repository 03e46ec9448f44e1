"""
Still-image observation source.

Reads a single image file, or every image in a directory (sorted by name),
one FrameData per image. Used for scanning photos rather than live capture.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import cv2

from models.frame import FrameData
from .base import ObservationConfig, ObservationSource


IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp")


@dataclass
class ImageFileSourceConfig(ObservationConfig):
    """
    Configuration for still-image sources.

    Attributes:
        path: Image file or directory of images.
        keep_alpha: Keep a fourth (alpha) channel instead of dropping it.
    """
    path: str = ""
    keep_alpha: bool = False


class ImageFileSource(ObservationSource):
    """
    Observation source over image files.

    Unreadable files are skipped with a warning; read() returns None once
    every file has been visited.
    """

    is_live = False

    def __init__(self, config: ImageFileSourceConfig):
        super().__init__(config)
        self._image_config = config
        self._paths: List[str] = []
        self._pos = 0

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def open(self) -> None:
        if self._is_open:
            return

        path = self._image_config.path
        if os.path.isdir(path):
            self._paths = sorted(
                os.path.join(path, name)
                for name in os.listdir(path)
                if name.lower().endswith(IMAGE_EXTENSIONS)
            )
        elif os.path.isfile(path):
            self._paths = [path]
        else:
            raise RuntimeError(f"Image path not found: {path}")

        self._pos = 0
        self._frame_index = 0
        self._is_open = True
        logging.info(f"ImageFileSource opened: source_id={self.source_id}, images={len(self._paths)}")

    def read(self) -> Optional[FrameData]:
        if not self._is_open:
            return None

        flags = cv2.IMREAD_UNCHANGED if self._image_config.keep_alpha else cv2.IMREAD_COLOR
        while self._pos < len(self._paths):
            path = self._paths[self._pos]
            self._pos += 1
            image = cv2.imread(path, flags)
            if image is None:
                logging.warning(f"Skipping unreadable image: {path}")
                continue
            frame_data = self._make_frame(image, source=path)
            if image.ndim == 3 and image.shape[2] == 4:
                frame_data.channel_order = "BGRA"
            return frame_data
        return None

    def close(self) -> None:
        self._paths = []
        self._is_open = False
        logging.info(f"ImageFileSource closed: source_id={self.source_id}")
