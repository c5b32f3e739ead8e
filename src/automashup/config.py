"""
Configuration management for AutoMashup.

Loads and validates TOML config against strict bounds.
All tunable parameters are bounded and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import toml
import logging

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    PARAM_BOUNDS = {
        "analysis": {
            "lowpass_cutoff_hz": (20.0, 500.0),
            "peak_threshold": (0.1, 1.0),
            "min_peak_distance_seconds": (0.1, 1.0),
            "centroid_window": (256, 8192),
        },
        "schedule": {
            "segment_duration_seconds": (10.0, 120.0),
            "transition_duration_seconds": (1.0, 16.0),
            "edge_fade_seconds": (0.0, 8.0),
        },
        "render": {
            "low_shelf_hz": (20.0, 1000.0),
            "low_shelf_gain_db": (-12.0, 12.0),
            "high_shelf_hz": (1000.0, 16000.0),
            "high_shelf_gain_db": (-12.0, 12.0),
            "track_compressor_threshold_db": (-60.0, 0.0),
            "track_compressor_ratio": (1.0, 20.0),
            "track_compressor_attack_seconds": (0.0, 1.0),
            "track_compressor_release_seconds": (0.0, 1.0),
            "track_compressor_knee_db": (0.0, 40.0),
            "master_compressor_threshold_db": (-60.0, 0.0),
            "master_compressor_ratio": (1.0, 20.0),
            "master_compressor_attack_seconds": (0.0, 1.0),
            "master_compressor_release_seconds": (0.0, 1.0),
            "master_compressor_knee_db": (0.0, 40.0),
            "limiter_threshold_db": (-20.0, 0.0),
            "limiter_ratio": (1.0, 20.0),
            "limiter_attack_seconds": (0.0, 1.0),
            "limiter_release_seconds": (0.0, 1.0),
            "makeup_gain": (0.0, 4.0),
        },
        "fetch": {
            "max_workers": (1, 16),
            "timeout_seconds": (1, 600),
        },
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "analysis": {
            "lowpass_cutoff_hz": 150.0,
            "peak_threshold": 0.7,
            "min_peak_distance_seconds": 0.3,
            "centroid_window": 2048,
        },
        "schedule": {
            "segment_duration_seconds": 30.0,
            "transition_duration_seconds": 8.0,
            "edge_fade_seconds": 2.0,
        },
        "render": {
            "low_shelf_hz": 200.0,
            "low_shelf_gain_db": 3.0,
            "high_shelf_hz": 3000.0,
            "high_shelf_gain_db": 2.0,
            "track_compressor_threshold_db": -30.0,
            "track_compressor_ratio": 3.0,
            "track_compressor_attack_seconds": 0.01,
            "track_compressor_release_seconds": 0.25,
            "track_compressor_knee_db": 12.0,
            "master_compressor_threshold_db": -24.0,
            "master_compressor_ratio": 4.0,
            "master_compressor_attack_seconds": 0.003,
            "master_compressor_release_seconds": 0.25,
            "master_compressor_knee_db": 30.0,
            "limiter_threshold_db": -1.0,
            "limiter_ratio": 20.0,
            "limiter_attack_seconds": 0.001,
            "limiter_release_seconds": 0.1,
            "makeup_gain": 1.8,
        },
        "fetch": {
            "max_workers": 4,
            "timeout_seconds": 30,
        },
    }

    # Counts and sizes; everything else accepts floats
    INTEGER_PARAMS = {
        ("analysis", "centroid_window"),
        ("fetch", "max_workers"),
    }

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = config_dict
        self._validate()

    @classmethod
    def default(cls) -> "Config":
        """Build a config holding only the defaults."""
        return cls(copy.deepcopy(cls.DEFAULT_CONFIG))

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to automashup.toml. If None, uses AUTOMASHUP_CONFIG_PATH
                        env var or defaults to configs/automashup.toml.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or unreadable.
        """
        if config_path is None:
            config_path = os.getenv("AUTOMASHUP_CONFIG_PATH", "configs/automashup.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
            return cls.default()

        try:
            config_dict = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Validate all config parameters against their bounds.

        Raises:
            ConfigError: If any parameter is out of bounds or not numeric.
        """
        for section, params in self.PARAM_BOUNDS.items():
            section_data = self.data.get(section)
            if section_data is None:
                logger.warning(f"Missing config section: {section}. Using defaults.")
                self.data[section] = copy.deepcopy(self.DEFAULT_CONFIG[section])
                continue
            if not isinstance(section_data, dict):
                raise ConfigError(f"Config section [{section}] must be a table")

            defaults = self.DEFAULT_CONFIG[section]
            for param, bounds in params.items():
                if param in section_data:
                    self._check_param(section, param, section_data[param], bounds)
                else:
                    logger.warning(f"Missing param {section}.{param}. Using default: {defaults[param]}")
                    section_data[param] = defaults[param]

            unknown = set(section_data) - set(params)
            if unknown:
                logger.warning(f"Ignoring unknown {section} params: {', '.join(sorted(unknown))}")

        logger.debug("✅ Config validation passed")

    def _check_param(self, section: str, param: str, value: Any, bounds: Tuple[float, float]) -> None:
        name = f"{section}.{param}"
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"Parameter {name}={value!r} is not numeric")
        if (section, param) in self.INTEGER_PARAMS and not isinstance(value, int):
            raise ConfigError(f"Parameter {name}={value!r} must be an integer")

        min_val, max_val = bounds
        if not (min_val <= value <= max_val):
            raise ConfigError(f"Parameter {name}={value} out of bounds [{min_val}, {max_val}]")

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["render"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        return f"Config(version={version})"
