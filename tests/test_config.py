"""
Smoke tests for configuration loading and validation.
"""

import pytest

from main import load_config, validate_config, parse_output_size
from models.config import Config, StabilityConfig, TransformConfig


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    def test_missing_source_section(self, valid_config):
        """Missing source section fails validation."""
        del valid_config["source"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "source" in error.lower()

    def test_optional_sections_may_be_omitted(self, valid_config):
        """Stage sections fall back to defaults."""
        for section in ("preprocess", "edges", "contours", "stability", "transform", "output"):
            del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_missing_log_level(self, valid_config):
        """Missing log_level fails validation."""
        del valid_config["log_level"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error.lower()

    def test_missing_log_path(self, valid_config):
        """Missing log_path fails validation."""
        del valid_config["log_path"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_path" in error.lower()

    def test_invalid_device_id_type(self, valid_config):
        """device_id with invalid type fails."""
        valid_config["source"]["device_id"] = [1, 2, 3]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_negative_device_id(self, valid_config):
        """Negative integer device_id fails."""
        valid_config["source"]["device_id"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    @pytest.mark.parametrize("device_id", ["rtsp://192.168.1.1/stream", "scans/inbox", "clip.mp4"])
    def test_string_device_id_valid(self, valid_config, device_id):
        """String device_id (URL or path) is valid."""
        valid_config["source"]["device_id"] = device_id

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_resolution_format(self, valid_config):
        """Invalid resolution format fails."""
        valid_config["source"]["resolution"] = 1920  # Should be list

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_resolution_length(self, valid_config):
        """Resolution with wrong length fails."""
        valid_config["source"]["resolution"] = [1920]  # Should be [width, height]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_fps(self, valid_config):
        """Non-positive fps fails."""
        valid_config["source"]["fps"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "fps" in error.lower()

    def test_invalid_rotate(self, valid_config):
        valid_config["source"]["rotate"] = 45

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "rotate" in error.lower()

    @pytest.mark.parametrize("kernel", [0, 4, -3, 2.5])
    def test_invalid_blur_kernel(self, valid_config, kernel):
        valid_config["preprocess"]["blur_kernel"] = kernel

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "blur_kernel" in error.lower()

    def test_canny_thresholds_out_of_order(self, valid_config):
        valid_config["edges"]["canny_low"] = 240
        valid_config["edges"]["canny_high"] = 60

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "canny_low" in error.lower()

    def test_invalid_aperture(self, valid_config):
        valid_config["edges"]["aperture_size"] = 4

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "aperture_size" in error.lower()

    @pytest.mark.parametrize("low,high", [(0.5, 0.2), (-0.1, 0.9), (0.1, 1.5)])
    def test_invalid_area_ratios(self, valid_config, low, high):
        valid_config["contours"]["min_area_ratio"] = low
        valid_config["contours"]["max_area_ratio"] = high

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "area_ratio" in error.lower()

    def test_invalid_aspect_ratio(self, valid_config):
        valid_config["contours"]["max_aspect_ratio"] = 0.5

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "max_aspect_ratio" in error.lower()

    def test_invalid_flat_ratio(self, valid_config):
        valid_config["curvature"] = {"flat_ratio": 0.9}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "flat_ratio" in error.lower()

    def test_negative_threshold(self, valid_config):
        valid_config["stability"]["threshold_px"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "threshold_px" in error.lower()

    def test_fractional_duration(self, valid_config):
        valid_config["stability"]["duration_ms"] = 1500.5

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "duration_ms" in error.lower()

    @pytest.mark.parametrize("weight", [-0.1, 1.1, "high"])
    def test_invalid_vertex_weight(self, valid_config, weight):
        valid_config["transform"]["vertex_weight"] = weight

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "vertex_weight" in error.lower()

    @pytest.mark.parametrize("size", ["projected", [2480, 3508]])
    def test_valid_output_sizes(self, valid_config, size):
        valid_config["transform"]["output_size"] = size

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    @pytest.mark.parametrize("size", ["huge", [100], [0, 100]])
    def test_invalid_output_sizes(self, valid_config, size):
        valid_config["transform"]["output_size"] = size

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "output_size" in error.lower()

    def test_invalid_log_level(self, valid_config):
        """Invalid log level fails."""
        valid_config["log_level"] = "VERBOSE"  # Not a valid level

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error.lower()


class TestParseOutputSize:
    def test_keywords(self):
        assert parse_output_size("source") == "source"
        assert parse_output_size("projected") == "projected"

    def test_dimensions(self):
        assert parse_output_size("1240x1754") == [1240, 1754]
        assert parse_output_size("640X480") == [640, 480]


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        # Don't create config.yaml, only default.yaml exists
        config = load_config(config_path)

        assert config["source"]["device_id"] == 0
        assert config["source"]["resolution"] == [640, 480]
        assert config["stability"]["duration_ms"] == 2000

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
source:
  resolution: [1920, 1080]
  fps: 60
""")

        config = load_config(str(config_yaml))

        # Overridden values
        assert config["source"]["resolution"] == [1920, 1080]
        assert config["source"]["fps"] == 60

        # Original values preserved
        assert config["source"]["device_id"] == 0

    def test_deep_merge_preserves_nested(self, temp_config_dir):
        """Deep merge preserves nested keys not overridden."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
stability:
  duration_ms: 1500
""")

        config = load_config(str(config_yaml))

        assert config["stability"]["duration_ms"] == 1500
        assert config["stability"]["threshold_px"] == 5.0

    def test_explicit_config_applied_last(self, temp_config_dir, tmp_path):
        (temp_config_dir / "config.yaml").write_text("transform:\n  vertex_weight: 0.5\n")
        explicit = temp_config_dir / "desk.yaml"
        explicit.write_text("transform:\n  vertex_weight: 0.9\n")

        config = load_config(str(explicit))

        assert config["transform"]["vertex_weight"] == 0.9
        assert config["transform"]["output_size"] == "source"


class TestTypedConfig:
    def test_from_dict(self, valid_config):
        config = Config.from_dict(valid_config)

        assert config.source.resolution == [1280, 720]
        assert config.contours.max_candidates == 5
        assert config.stability == StabilityConfig(threshold_px=5.0, duration_ms=2000)
        assert config.transform.vertex_weight == 0.7
        assert config.output.directory == "output/scans"

    def test_defaults_for_missing_sections(self):
        config = Config.from_dict({})

        assert config.edges.canny_low == 60
        assert config.edges.canny_high == 240
        assert config.contours.approx_epsilon == 0.05
        assert config.curvature.flat_ratio == 1.2
        assert config.transform == TransformConfig()
        assert config.pipeline.async_detection is False

    def test_round_trip(self, valid_config):
        config = Config.from_dict(valid_config)

        assert Config.from_dict(config.to_dict()) == config
