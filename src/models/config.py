"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class SourceConfig:
    """Frame source configuration (camera index, stream URL, video or image path)."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class PreprocessConfig:
    """Downscale/blur settings applied before binarization."""
    max_dimension: int = 500
    blur_kernel: int = 3
    blur_sigma: float = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PreprocessConfig":
        return cls(
            max_dimension=d.get("max_dimension", 500),
            blur_kernel=d.get("blur_kernel", 3),
            blur_sigma=d.get("blur_sigma", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_dimension": self.max_dimension,
            "blur_kernel": self.blur_kernel,
            "blur_sigma": self.blur_sigma,
        }


@dataclass
class EdgeConfig:
    """Canny thresholds and dilation used to close the document boundary."""
    canny_low: float = 60.0
    canny_high: float = 240.0
    aperture_size: int = 3
    dilate_kernel: int = 3
    dilate_iterations: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EdgeConfig":
        return cls(
            canny_low=d.get("canny_low", 60.0),
            canny_high=d.get("canny_high", 240.0),
            aperture_size=d.get("aperture_size", 3),
            dilate_kernel=d.get("dilate_kernel", 3),
            dilate_iterations=d.get("dilate_iterations", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canny_low": self.canny_low,
            "canny_high": self.canny_high,
            "aperture_size": self.aperture_size,
            "dilate_kernel": self.dilate_kernel,
            "dilate_iterations": self.dilate_iterations,
        }


@dataclass
class ContourConfig:
    """Candidate filtering and quadrilateral fitting parameters."""
    min_area_ratio: float = 0.01
    max_area_ratio: float = 0.99
    max_candidates: int = 5
    approx_epsilon: float = 0.05
    max_aspect_ratio: float = 5.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ContourConfig":
        return cls(
            min_area_ratio=d.get("min_area_ratio", 0.01),
            max_area_ratio=d.get("max_area_ratio", 0.99),
            max_candidates=d.get("max_candidates", 5),
            approx_epsilon=d.get("approx_epsilon", 0.05),
            max_aspect_ratio=d.get("max_aspect_ratio", 5.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_area_ratio": self.min_area_ratio,
            "max_area_ratio": self.max_area_ratio,
            "max_candidates": self.max_candidates,
            "approx_epsilon": self.approx_epsilon,
            "max_aspect_ratio": self.max_aspect_ratio,
        }


@dataclass
class CurvatureConfig:
    """Flatness judgment and bulge-point search parameters."""
    flat_ratio: float = 1.2
    roi_padding: int = 10
    canny_low: float = 50.0
    canny_high: float = 150.0
    min_deviation_px: float = 5.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CurvatureConfig":
        return cls(
            flat_ratio=d.get("flat_ratio", 1.2),
            roi_padding=d.get("roi_padding", 10),
            canny_low=d.get("canny_low", 50.0),
            canny_high=d.get("canny_high", 150.0),
            min_deviation_px=d.get("min_deviation_px", 5.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flat_ratio": self.flat_ratio,
            "roi_padding": self.roi_padding,
            "canny_low": self.canny_low,
            "canny_high": self.canny_high,
            "min_deviation_px": self.min_deviation_px,
        }


@dataclass
class StabilityConfig:
    """Auto-capture stability window."""
    threshold_px: float = 5.0
    duration_ms: int = 2000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StabilityConfig":
        return cls(
            threshold_px=d.get("threshold_px", 5.0),
            duration_ms=d.get("duration_ms", 2000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold_px": self.threshold_px,
            "duration_ms": self.duration_ms,
        }


# Output size: "source", "projected", or an explicit [width, height]
OutputSize = Union[str, List[int]]


@dataclass
class TransformConfig:
    """Perspective correction settings."""
    vertex_weight: float = 0.7
    skip_blend_when_flat: bool = True
    output_size: OutputSize = "source"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TransformConfig":
        return cls(
            vertex_weight=d.get("vertex_weight", 0.7),
            skip_blend_when_flat=d.get("skip_blend_when_flat", True),
            output_size=d.get("output_size", "source"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vertex_weight": self.vertex_weight,
            "skip_blend_when_flat": self.skip_blend_when_flat,
            "output_size": self.output_size,
        }


@dataclass
class PipelineSettings:
    """Frame loop behaviour."""
    async_detection: bool = False
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineSettings":
        return cls(
            async_detection=d.get("async_detection", False),
            max_consecutive_failures=d.get("max_consecutive_failures", 10),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "async_detection": self.async_detection,
            "max_consecutive_failures": self.max_consecutive_failures,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class OutputConfig:
    """Where rectified captures are written."""
    directory: str = "output/scans"
    save_captures: bool = True
    image_format: str = "png"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OutputConfig":
        return cls(
            directory=d.get("directory", "output/scans"),
            save_captures=d.get("save_captures", True),
            image_format=d.get("image_format", "png"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directory": self.directory,
            "save_captures": self.save_captures,
            "image_format": self.image_format,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    edges: EdgeConfig = field(default_factory=EdgeConfig)
    contours: ContourConfig = field(default_factory=ContourConfig)
    curvature: CurvatureConfig = field(default_factory=CurvatureConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_path: str = "logs/docscan.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            preprocess=PreprocessConfig.from_dict(d.get("preprocess", {}) or {}),
            edges=EdgeConfig.from_dict(d.get("edges", {}) or {}),
            contours=ContourConfig.from_dict(d.get("contours", {}) or {}),
            curvature=CurvatureConfig.from_dict(d.get("curvature", {}) or {}),
            stability=StabilityConfig.from_dict(d.get("stability", {}) or {}),
            transform=TransformConfig.from_dict(d.get("transform", {}) or {}),
            pipeline=PipelineSettings.from_dict(d.get("pipeline", {}) or {}),
            output=OutputConfig.from_dict(d.get("output", {}) or {}),
            log_path=d.get("log_path", "logs/docscan.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or layering)."""
        return {
            "source": self.source.to_dict(),
            "preprocess": self.preprocess.to_dict(),
            "edges": self.edges.to_dict(),
            "contours": self.contours.to_dict(),
            "curvature": self.curvature.to_dict(),
            "stability": self.stability.to_dict(),
            "transform": self.transform.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "output": self.output.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
