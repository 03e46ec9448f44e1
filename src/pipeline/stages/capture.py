"""
Capture stage for rectifying the document once it is stable.

This stage turns the triggering frame and its detection into a CaptureEvent:
it rectifies an immutable snapshot of the frame and optionally writes the
result to the output directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from models.capture_event import CaptureEvent
from models.config import OutputConfig, TransformConfig
from models.detection import DetectionResult
from models.frame import FrameData
from pipeline.scan import write_image
from transform.perspective import PerspectiveTransformer


@dataclass
class CaptureStageConfig:
    """
    Configuration for the capture stage.

    Attributes:
        output_dir: Directory for rectified images.
        save_captures: Whether to write captures to disk.
        image_format: File extension understood by cv2.imwrite.
    """
    output_dir: str = "output/scans"
    save_captures: bool = True
    image_format: str = "png"

    @classmethod
    def from_output_config(cls, output: OutputConfig) -> "CaptureStageConfig":
        return cls(
            output_dir=output.directory,
            save_captures=output.save_captures,
            image_format=output.image_format,
        )


class CaptureStage:
    """
    Pipeline stage that rectifies stable detections.

    This stage:
    - Rectifies a copy of the frame, never the source buffer
    - Writes the rectified image when save_captures is enabled
    - Notifies on_capture listeners

    Example:
        stage = CaptureStage(CaptureStageConfig(), PerspectiveTransformer())
        event = stage.process(frame_data, result)
    """

    def __init__(
        self,
        config: CaptureStageConfig,
        transformer: Optional[PerspectiveTransformer] = None,
        on_capture: Optional[Callable[[CaptureEvent], None]] = None,
    ):
        self._config = config
        self._transformer = transformer or PerspectiveTransformer()
        self._on_capture = on_capture
        self.events: List[CaptureEvent] = []

    @property
    def capture_count(self) -> int:
        return len(self.events)

    def process(self, frame_data: FrameData, result: DetectionResult) -> Optional[CaptureEvent]:
        """
        Rectify the document found in frame_data.

        Returns:
            The CaptureEvent, or None when result holds no document.
        """
        if not result.found:
            return None

        snapshot = frame_data.snapshot()
        image = self._transformer.rectify(snapshot.frame, result.vertices, result.curvature_points)

        output_path = None
        if self._config.save_captures:
            output_path = self._save(image, snapshot)

        event = CaptureEvent(
            frame_index=snapshot.frame_index,
            timestamp=snapshot.timestamp,
            vertices=result.vertices,
            image=image,
            output_path=output_path,
            is_flat=result.is_flat,
            source=snapshot.source,
        )
        self.events.append(event)
        logging.info(
            f"Document captured: frame={event.frame_index} size={event.size[0]}x{event.size[1]}"
            + (f" -> {output_path}" if output_path else "")
        )

        if self._on_capture:
            try:
                self._on_capture(event)
            except Exception as e:
                logging.warning(f"Capture callback error: {e}")
        return event

    def _save(self, image, snapshot: FrameData) -> Optional[str]:
        """Write the rectified image; failures are logged, not raised."""
        timestamp = datetime.fromtimestamp(snapshot.timestamp).strftime("%Y%m%d_%H%M%S")
        filename = f"scan_{timestamp}_{snapshot.frame_index:06d}.{self._config.image_format}"
        path = os.path.join(self._config.output_dir, filename)
        if not write_image(path, image, snapshot.channel_order):
            return None
        return path


def create_capture_stage(
    output: OutputConfig,
    transform: Optional[TransformConfig] = None,
    on_capture: Optional[Callable[[CaptureEvent], None]] = None,
) -> CaptureStage:
    """Factory: build a CaptureStage from the output and transform config sections."""
    return CaptureStage(
        CaptureStageConfig.from_output_config(output),
        PerspectiveTransformer(transform),
        on_capture=on_capture,
    )
