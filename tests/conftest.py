"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import FrameData  # noqa: E402


DOC_CORNERS = [(150, 100), (650, 100), (650, 500), (150, 500)]
SKEWED_CORNERS = [(120, 80), (680, 140), (640, 520), (160, 470)]


def make_document_image(corners, width=800, height=600, background=30, paper=230, channels=3):
    """Light quadrilateral 'page' on a dark background."""
    shape = (height, width) if channels == 1 else (height, width, channels)
    image = np.full(shape, background, dtype=np.uint8)
    pts = np.array(corners, dtype=np.int32).reshape(-1, 1, 2)
    color = paper if channels == 1 else (paper,) * channels
    cv2.fillPoly(image, [pts], color)
    return image


def make_frame(image, frame_index=1, timestamp=1000.0, source="test", channel_order=None):
    return FrameData.from_numpy(
        image,
        timestamp=timestamp,
        frame_index=frame_index,
        source=source,
        channel_order=channel_order,
    )


@pytest.fixture
def document_image():
    """800x600 BGR image with an axis-aligned document."""
    return make_document_image(DOC_CORNERS)


@pytest.fixture
def skewed_document_image():
    """800x600 BGR image with a perspective-skewed document."""
    return make_document_image(SKEWED_CORNERS)


@pytest.fixture
def black_image():
    """Featureless all-black frame."""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text(f"""
source:
  device_id: 0
  resolution: [640, 480]
  fps: 30

stability:
  threshold_px: 5.0
  duration_ms: 2000

transform:
  vertex_weight: 0.7
  output_size: source

output:
  directory: "{(tmp_path / 'scans').as_posix()}"
  save_captures: false

log_path: "{(tmp_path / 'logs' / 'test.log').as_posix()}"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "preprocess": {
            "max_dimension": 500,
            "blur_kernel": 3,
            "blur_sigma": 1.0,
        },
        "edges": {
            "canny_low": 60,
            "canny_high": 240,
            "aperture_size": 3,
            "dilate_iterations": 3,
        },
        "contours": {
            "min_area_ratio": 0.01,
            "max_area_ratio": 0.99,
            "max_candidates": 5,
            "approx_epsilon": 0.05,
            "max_aspect_ratio": 5.0,
        },
        "stability": {
            "threshold_px": 5.0,
            "duration_ms": 2000,
        },
        "transform": {
            "vertex_weight": 0.7,
            "output_size": "source",
        },
        "output": {
            "directory": "output/scans",
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
