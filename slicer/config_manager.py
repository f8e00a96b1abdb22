"""Configuration management for the showcase slicer."""

import json
import logging
from pathlib import Path
from typing import Optional

from slicer.data_models import (
    MAX_SAMPLING_RATE,
    MIN_SAMPLING_RATE,
    QUALITY_MODES,
    TaskParameters,
)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""
    pass


class ConfigManager:
    """Manages loading and validation of configuration from config.json."""

    REQUIRED_FIELDS = [
        "source_path",
        "output_directory_path"
    ]

    DEFAULTS = {
        "sampling_rate": MAX_SAMPLING_RATE,
        "quality_mode": 1,
        "ffmpeg_path": None,
        "log_file": "log/debug.log",
        "open_output_directory": False
    }

    def __init__(self, config_path: str = "config.json"):
        """
        Initialize ConfigManager with path to configuration file.

        Args:
            config_path: Path to the JSON configuration file (default: "config.json")
        """
        self.config_path = Path(config_path)
        self._config = None
        self._load_and_validate()

    def _load_and_validate(self):
        """Load and validate configuration on initialization."""
        try:
            logging.info(f"Loading configuration from {self.config_path}")
            config = dict(self.DEFAULTS)
            config.update(self.load_config())
            if not self.validate_config(config):
                raise ConfigurationError("Configuration validation failed")
            self._config = config
            logging.info("Configuration loaded and validated successfully")
        except ConfigurationError:
            logging.error(f"Configuration error: Failed to load or validate {self.config_path}")
            raise
        except Exception as e:
            logging.error(f"Unexpected error loading configuration: {e}")
            raise ConfigurationError(f"Unexpected error loading configuration: {e}")

    def load_config(self) -> dict:
        """
        Read and parse JSON configuration from file.

        Returns:
            Dictionary containing configuration data

        Raises:
            ConfigurationError: If file is missing or contains invalid JSON
        """
        if not self.config_path.exists():
            error_msg = f"Configuration file not found: {self.config_path}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        try:
            logging.debug(f"Reading configuration file: {self.config_path}")
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in configuration file: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)
        except OSError as e:
            error_msg = f"Error reading configuration file: {e}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        if not isinstance(config, dict):
            error_msg = f"Configuration root must be an object, got {type(config).__name__}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        logging.debug(f"Configuration contents: {config}")
        return config

    def _require_type(self, config: dict, field: str, expected: type):
        value = config[field]
        # bool is an int subclass; keep the two apart
        if isinstance(value, bool) and expected is not bool:
            value_ok = False
        else:
            value_ok = isinstance(value, expected)
        if not value_ok:
            error_msg = f"'{field}' must be a {expected.__name__}, got {type(value).__name__}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

    def validate_config(self, config: dict) -> bool:
        """
        Verify that all required fields exist and are valid.

        Args:
            config: Configuration dictionary to validate (defaults already merged)

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If validation fails
        """
        logging.debug("Starting configuration validation")

        missing_fields = [
            field for field in self.REQUIRED_FIELDS
            if field not in config
        ]
        if missing_fields:
            error_msg = f"Missing required configuration fields: {', '.join(missing_fields)}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        self._require_type(config, "source_path", str)
        self._require_type(config, "output_directory_path", str)
        self._require_type(config, "sampling_rate", int)
        self._require_type(config, "quality_mode", int)
        self._require_type(config, "log_file", str)
        self._require_type(config, "open_output_directory", bool)
        if config["ffmpeg_path"] is not None:
            self._require_type(config, "ffmpeg_path", str)

        logging.debug("Field types validated")

        if not MIN_SAMPLING_RATE <= config["sampling_rate"] <= MAX_SAMPLING_RATE:
            error_msg = (
                f"'sampling_rate' must be between {MIN_SAMPLING_RATE} and {MAX_SAMPLING_RATE}, "
                f"got {config['sampling_rate']}"
            )
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        if config["quality_mode"] not in QUALITY_MODES:
            error_msg = f"'quality_mode' must be one of {list(QUALITY_MODES)}, got {config['quality_mode']}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        # Validate that the source file exists
        source_path = Path(config["source_path"])
        if not source_path.is_file():
            error_msg = f"Source file does not exist: {source_path}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        logging.debug(f"Source file validated: {source_path}")

        output_path = Path(config["output_directory_path"])
        if output_path.exists() and not output_path.is_dir():
            error_msg = f"Output path exists but is not a directory: {output_path}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        logging.debug(f"Output directory path validated: {output_path}")

        if config["ffmpeg_path"] and not Path(config["ffmpeg_path"]).is_file():
            error_msg = f"Configured ffmpeg binary does not exist: {config['ffmpeg_path']}"
            logging.error(error_msg)
            raise ConfigurationError(error_msg)

        logging.info("Configuration validation successful")
        return True

    @property
    def source_path(self) -> Path:
        """Get the resolved source image or video path."""
        return Path(self._config["source_path"])

    @property
    def output_directory(self) -> Path:
        """Get the output directory path as a Path object."""
        return Path(self._config["output_directory_path"])

    @property
    def sampling_rate(self) -> int:
        """Get the frame sampling rate (1-10)."""
        return self._config["sampling_rate"]

    @property
    def quality_mode(self) -> int:
        """Get the scaling quality mode (0-3)."""
        return self._config["quality_mode"]

    @property
    def ffmpeg_path(self) -> Optional[str]:
        """Get the configured ffmpeg binary, if any."""
        return self._config["ffmpeg_path"]

    @property
    def log_file(self) -> Path:
        """Get the debug log file path."""
        return Path(self._config["log_file"])

    @property
    def open_output_directory(self) -> bool:
        """Get whether to open the output directory after a successful run."""
        return self._config["open_output_directory"]

    def to_task_parameters(self) -> TaskParameters:
        """Build the immutable parameters for one run."""
        return TaskParameters(
            source_path=self.source_path,
            output_dir=self.output_directory,
            sampling_rate=self.sampling_rate,
            quality_mode=self.quality_mode
        )
