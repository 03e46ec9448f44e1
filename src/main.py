"""
Document scanner command line.

Scans still photos into rectified document images, or watches a camera and
captures automatically once the document holds still.

Usage:
    python src/main.py scan photo.jpg --output output/scans
    python src/main.py live --config config/config.yaml --display

Commands:
    scan: Detect and rectify documents in an image file or directory
    live: Auto-capture from a camera, stream or video file
"""

import os
import sys
import argparse
import logging
import yaml
from typing import Dict, Any, List, Tuple, Optional

# Import local modules
from detection.detector import DocumentDetector
from models.config import Config
from observation import ImageFileSource, ImageFileSourceConfig
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from pipeline.scan import output_path_for, scan_frame, write_image
from transform.perspective import PerspectiveTransformer

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_OUTPUT_SIZES = ('source', 'projected')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_positive_int(section: Dict[str, Any], name: str, key: str) -> Optional[str]:
    if key in section:
        value = section[key]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            return f"{name}.{key} must be a positive integer"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['source', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate source settings
    source = config.get('source') or {}
    if 'device_id' not in source:
        return False, "Missing source.device_id"
    if isinstance(source['device_id'], bool) or not isinstance(source['device_id'], (int, str)):
        return False, "source.device_id must be an integer (index) or string (URL or path)"
    if isinstance(source['device_id'], int) and source['device_id'] < 0:
        return False, "source.device_id integer must be non-negative"

    if 'resolution' in source:
        if not isinstance(source['resolution'], list) or len(source['resolution']) != 2:
            return False, "source.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in source['resolution']):
            return False, "source.resolution values must be positive integers"
    error = _validate_positive_int(source, 'source', 'fps')
    if error:
        return False, error
    if source.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "source.rotate must be one of: 0, 90, 180, 270"

    # Preprocessing
    preprocess = config.get('preprocess') or {}
    error = _validate_positive_int(preprocess, 'preprocess', 'max_dimension')
    if error:
        return False, error
    if 'blur_kernel' in preprocess:
        k = preprocess['blur_kernel']
        if not isinstance(k, int) or k <= 0 or k % 2 == 0:
            return False, "preprocess.blur_kernel must be a positive odd integer"

    # Edge extraction
    edges = config.get('edges') or {}
    if 'canny_low' in edges or 'canny_high' in edges:
        low = edges.get('canny_low', 60)
        high = edges.get('canny_high', 240)
        if not (_is_number(low) and _is_number(high)) or low < 0 or low >= high:
            return False, "edges.canny_low must be >= 0 and below edges.canny_high"
    if edges.get('aperture_size', 3) not in (3, 5, 7):
        return False, "edges.aperture_size must be one of: 3, 5, 7"
    if 'dilate_iterations' in edges:
        it = edges['dilate_iterations']
        if not isinstance(it, int) or it < 0:
            return False, "edges.dilate_iterations must be a non-negative integer"

    # Contour fitting
    contours = config.get('contours') or {}
    low = contours.get('min_area_ratio', 0.01)
    high = contours.get('max_area_ratio', 0.99)
    if not (_is_number(low) and _is_number(high)) or not (0 <= low < high <= 1):
        return False, "contours area ratios must satisfy 0 <= min_area_ratio < max_area_ratio <= 1"
    error = _validate_positive_int(contours, 'contours', 'max_candidates')
    if error:
        return False, error
    eps = contours.get('approx_epsilon', 0.05)
    if not _is_number(eps) or eps <= 0:
        return False, "contours.approx_epsilon must be a positive number"
    aspect = contours.get('max_aspect_ratio', 5.0)
    if not _is_number(aspect) or aspect < 1:
        return False, "contours.max_aspect_ratio must be >= 1"

    # Curvature
    curvature = config.get('curvature') or {}
    flat_ratio = curvature.get('flat_ratio', 1.2)
    if not _is_number(flat_ratio) or flat_ratio < 1:
        return False, "curvature.flat_ratio must be >= 1"
    if 'roi_padding' in curvature:
        pad = curvature['roi_padding']
        if not isinstance(pad, int) or pad < 0:
            return False, "curvature.roi_padding must be a non-negative integer"

    # Stability
    stability = config.get('stability') or {}
    threshold = stability.get('threshold_px', 5.0)
    if not _is_number(threshold) or threshold < 0:
        return False, "stability.threshold_px must be a non-negative number"
    duration = stability.get('duration_ms', 2000)
    if not isinstance(duration, int) or duration < 0:
        return False, "stability.duration_ms must be a non-negative integer"

    # Transform
    transform = config.get('transform') or {}
    weight = transform.get('vertex_weight', 0.7)
    if not _is_number(weight) or not (0 <= weight <= 1):
        return False, "transform.vertex_weight must be between 0 and 1"
    output_size = transform.get('output_size', 'source')
    if isinstance(output_size, list):
        if len(output_size) != 2 or not all(isinstance(x, int) and x > 0 for x in output_size):
            return False, "transform.output_size list must be [width, height] of positive integers"
    elif output_size not in VALID_OUTPUT_SIZES:
        return False, "transform.output_size must be 'source', 'projected' or [width, height]"

    # Pipeline
    pipeline = config.get('pipeline') or {}
    error = _validate_positive_int(pipeline, 'pipeline', 'max_consecutive_failures')
    if error:
        return False, error

    # Output
    output = config.get('output') or {}
    if 'directory' in output and not isinstance(output['directory'], str):
        return False, "output.directory must be a string"

    # Validate log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def parse_output_size(value: str):
    """'source', 'projected' or WIDTHxHEIGHT."""
    if value in VALID_OUTPUT_SIZES:
        return value
    try:
        w, h = (int(part) for part in value.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid output size: {value!r}")
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"output size must be positive: {value!r}")
    return [w, h]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Document Scanner')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--log-level', type=str, choices=VALID_LOG_LEVELS,
                        help='Override log_level from the config')
    subparsers = parser.add_subparsers(dest='command', required=True)

    scan = subparsers.add_parser('scan', help='Rectify documents in still images')
    scan.add_argument('input', type=str, help='Image file or directory of images')
    scan.add_argument('--output', type=str, default=None,
                      help='Output directory (defaults to output.directory)')
    scan.add_argument('--output-size', type=parse_output_size, default=None,
                      help="'source', 'projected' or WIDTHxHEIGHT")
    scan.add_argument('--no-fallback', action='store_true',
                      help='Skip images where no document is detected')

    live = subparsers.add_parser('live', help='Auto-capture from a camera, stream or video')
    live.add_argument('--source', type=str, default=None,
                      help='Camera index, stream URL or video file (overrides source.device_id)')
    live.add_argument('--display', action='store_true',
                      help='Enable visual display')
    live.add_argument('--once', action='store_true',
                      help='Stop after the first capture')
    live.add_argument('--async-detection', action='store_true',
                      help='Run detection on a background worker')
    return parser


def run_scan(args: argparse.Namespace, config: Config) -> int:
    """Scan still images; returns the process exit code."""
    if args.output_size is not None:
        config.transform.output_size = args.output_size
    output_dir = args.output or config.output.directory

    detector = DocumentDetector.from_config(config)
    transformer = PerspectiveTransformer(config.transform)

    written: List[str] = []
    fallbacks = 0
    try:
        source = ImageFileSource(ImageFileSourceConfig(source_id="scan", path=args.input))
        with source:
            for frame_data in source:
                result = scan_frame(frame_data, detector, transformer, use_fallback=not args.no_fallback)
                if result.image is None:
                    continue
                if result.used_fallback:
                    fallbacks += 1
                path = output_path_for(frame_data.source, output_dir,
                                       config.output.image_format, frame_data.frame_index)
                if write_image(path, result.image, frame_data.channel_order):
                    written.append(path)
                    logging.info(f"Scanned {frame_data.source} -> {path}")
    except RuntimeError as e:
        logging.error(str(e))
        return 1

    logging.info(f"Scan complete: {len(written)} image(s) written, {fallbacks} used the default boundary")
    return 0 if written else 1


def run_live(args: argparse.Namespace, config: Config) -> int:
    """Run the auto-capture loop; returns the process exit code."""
    if args.source is not None:
        config.source.device_id = int(args.source) if args.source.isdigit() else args.source
    if args.async_detection:
        config.pipeline.async_detection = True

    engine = create_engine_from_config(
        config,
        display=args.display,
        stop_after_capture=args.once,
    )
    engine.add_capture_callback(lambda event: logging.info(f"Capture: {event.to_dict()}"))
    engine.run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    args = build_parser().parse_args(argv)

    # Load configuration
    raw_config = load_config(args.config)
    if args.log_level:
        raw_config['log_level'] = args.log_level
    raw_config.setdefault('source', {'device_id': 0})
    raw_config.setdefault('log_path', Config().log_path)
    raw_config.setdefault('log_level', Config().log_level)

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    # Setup logging
    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    logging.info(f"Starting Document Scanner ({args.command})")
    if args.command == 'scan':
        return run_scan(args, config)
    return run_live(args, config)


if __name__ == "__main__":
    sys.exit(main())
