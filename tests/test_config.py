"""
Unit tests for configuration loading and validation.
"""

import pytest

from automashup.config import Config, ConfigError


@pytest.fixture
def valid_config_dict():
    """Minimal valid config."""
    return {
        "config_version": "1.0",
        "analysis": {"lowpass_cutoff_hz": 150.0, "peak_threshold": 0.7},
        "schedule": {"segment_duration_seconds": 30.0, "transition_duration_seconds": 8.0},
        "render": {"makeup_gain": 1.8},
        "fetch": {"max_workers": 4},
    }


class TestConfig:
    """Test Config validation."""

    def test_defaults(self):
        config = Config.default()
        assert config.get("analysis", "lowpass_cutoff_hz") == 150.0
        assert config.get("schedule", "transition_duration_seconds") == 8.0
        assert config["render"]["makeup_gain"] == 1.8
        assert config["render"]["master_compressor_knee_db"] == 30.0

    def test_default_is_a_copy(self):
        config = Config.default()
        config["render"]["makeup_gain"] = 1.0
        assert Config.DEFAULT_CONFIG["render"]["makeup_gain"] == 1.8

    def test_missing_params_filled(self, valid_config_dict):
        config = Config(valid_config_dict)
        assert config.get("analysis", "min_peak_distance_seconds") == 0.3
        assert config.get("render", "limiter_threshold_db") == -1.0

    def test_missing_section_filled(self):
        config = Config({"config_version": "1.0"})
        assert config["schedule"]["edge_fade_seconds"] == 2.0

    def test_out_of_bounds(self, valid_config_dict):
        valid_config_dict["analysis"]["peak_threshold"] = 1.5
        with pytest.raises(ConfigError):
            Config(valid_config_dict)

    def test_non_numeric(self, valid_config_dict):
        valid_config_dict["render"]["makeup_gain"] = "loud"
        with pytest.raises(ConfigError):
            Config(valid_config_dict)

    def test_bool_rejected(self, valid_config_dict):
        valid_config_dict["fetch"]["max_workers"] = True
        with pytest.raises(ConfigError):
            Config(valid_config_dict)

    def test_integer_param(self, valid_config_dict):
        valid_config_dict["fetch"]["max_workers"] = 2.5
        with pytest.raises(ConfigError):
            Config(valid_config_dict)

    def test_section_must_be_table(self, valid_config_dict):
        valid_config_dict["render"] = 1.8
        with pytest.raises(ConfigError):
            Config(valid_config_dict)

    def test_get_default(self):
        assert Config.default().get("render", "missing", 42) == 42

    def test_repr(self):
        assert repr(Config.default()) == "Config(version=1.0)"


class TestConfigLoad:
    """Test loading from TOML."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config.load(str(tmp_path / "missing.toml"))
        assert config.get("render", "makeup_gain") == 1.8

    def test_load_file(self, tmp_path):
        path = tmp_path / "automashup.toml"
        path.write_text(
            'config_version = "1.0"\n'
            "[schedule]\n"
            "segment_duration_seconds = 20.0\n"
            "transition_duration_seconds = 4.0\n"
        )
        config = Config.load(str(path))
        assert config.get("schedule", "segment_duration_seconds") == 20.0
        assert config.get("schedule", "edge_fade_seconds") == 2.0

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "env.toml"
        path.write_text("[render]\nmakeup_gain = 1.0\n")
        monkeypatch.setenv("AUTOMASHUP_CONFIG_PATH", str(path))
        assert Config.load().get("render", "makeup_gain") == 1.0

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[render\nmakeup_gain = ")
        with pytest.raises(ConfigError):
            Config.load(str(path))

    def test_out_of_bounds_file(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[schedule]\nsegment_duration_seconds = 500.0\n")
        with pytest.raises(ConfigError):
            Config.load(str(path))
