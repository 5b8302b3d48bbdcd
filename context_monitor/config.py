"""
Configuration Management Module

Handles loading and managing configuration settings from YAML files.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError
from .rules import build_threshold_table


DEFAULT_CONFIG: Dict[str, Any] = {
    'classifier': {
        'window_size': 100,
        'min_samples': 50,
        'sample_rate_hz': 10,
        'confidence_threshold': 0.7,
        'classify_every': 1,
        'reject_stale_locations': False,
        'thresholds': {},
    },
    'session': {
        'poll_interval_seconds': 1.0,
    },
    'logging': {
        'level': 'INFO',
        'log_file': None,
        'max_log_size_mb': 10,
        'backup_count': 3,
    },
}

REQUIRED_SECTIONS = ('classifier', 'session', 'logging')


class ConfigManager:
    """Manages application configuration settings."""

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file, or None to use
                the built-in defaults only
        """
        self.config_path = Path(config_path) if config_path else None
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path is not None:
            self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'ConfigManager':
        """Build a manager from an in-memory mapping merged over the defaults."""
        manager = cls(None)
        manager.config = _merge(manager.config, values)
        manager._validate_sections()
        return manager

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as file:
                loaded = yaml.safe_load(file) or {}

            if not isinstance(loaded, dict):
                raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")

            self.config = _merge(self.config, loaded)
            self._validate_sections(loaded)

        except (ConfigurationError, yaml.YAMLError) as e:
            logging.getLogger(__name__).error(f"Failed to load configuration: {e}")
            if isinstance(e, yaml.YAMLError):
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            raise

    def _validate_sections(self, values: Optional[Dict[str, Any]] = None) -> None:
        values = self.config if values is None else values
        for section in REQUIRED_SECTIONS:
            if section not in values:
                raise ConfigurationError(f"Missing required configuration section: {section}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'classifier.window_size')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'session.poll_interval_seconds')
            value: Value to set
        """
        keys = key.split('.')
        config_ref = self.config

        # Navigate to the parent dictionary
        for k in keys[:-1]:
            if not isinstance(config_ref.get(k), dict):
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value

    def save_config(self) -> None:
        """Save current configuration to file."""
        if self.config_path is None:
            raise ConfigurationError("No configuration file to save to")
        try:
            with open(self.config_path, 'w', encoding='utf-8') as file:
                yaml.safe_dump(self.config, file, default_flow_style=False, indent=2)
        except OSError as e:
            logging.getLogger(__name__).error(f"Failed to save configuration: {e}")
            raise

    def validate_classifier_config(self) -> bool:
        """Validate window sizing, confidence threshold and the threshold table."""
        logger = logging.getLogger(__name__)

        try:
            window_size = int(self.get('classifier.window_size'))
            min_samples = int(self.get('classifier.min_samples'))
            sample_rate = float(self.get('classifier.sample_rate_hz'))
            confidence_threshold = float(self.get('classifier.confidence_threshold'))
            classify_every = int(self.get('classifier.classify_every', 1))
        except (TypeError, ValueError) as e:
            logger.error(f"Invalid classifier configuration: {e}")
            return False

        if not 0 < min_samples <= window_size:
            logger.error(f"min_samples ({min_samples}) must be within (0, {window_size}]")
            return False

        if sample_rate <= 0:
            logger.error(f"Invalid sample rate: {sample_rate}")
            return False

        if not 0.0 <= confidence_threshold <= 1.0:
            logger.error(f"Invalid confidence threshold: {confidence_threshold}")
            return False

        if classify_every < 1:
            logger.error(f"Invalid classify_every: {classify_every}")
            return False

        try:
            build_threshold_table(self.get('classifier.thresholds'))
        except ConfigurationError as e:
            logger.error(str(e))
            return False

        return True

    def get_log_file_path(self) -> Optional[Path]:
        """Get the path to the log file, if file logging is enabled."""
        log_file = self.get('logging.log_file')
        return Path(log_file) if log_file else None

    def ensure_directories(self) -> None:
        """Ensure the log directory exists."""
        log_path = self.get_log_file_path()
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
