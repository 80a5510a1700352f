"""
Gazeframe configuration handling.

Provides YAML configuration loading and validation. The Replicate API
token is never part of the config; it comes from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .grid import (
    DEFAULT_PITCH_VALUES,
    DEFAULT_PUPIL_X_VALUES,
    DEFAULT_PUPIL_Y_VALUES,
    MANIFEST_FILENAME,
    ParameterGrid,
)
from .types import TrackingMode

API_TOKEN_ENV = "REPLICATE_API_TOKEN"

DEFAULT_MODEL_VERSION = "bf913bc90e1c44ba288ba3942a538693b72e8cc7df576f3beebe56adc0a92b86"
DEFAULT_SOURCE_IMAGE = (
    "https://res.cloudinary.com/suv4o/image/upload/v1764988409/images/IMG_3766_qxd02c.jpg"
)
DEFAULT_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    # An empty "viewer:" line parses as None
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return section


@dataclass
class GazeConfig:
    """
    Gazeframe configuration.

    Can be loaded from a YAML file or created programmatically.
    """
    # Generation
    api_base_url: str = "https://api.replicate.com/v1"
    model_version: str = DEFAULT_MODEL_VERSION
    source_image: str = DEFAULT_SOURCE_IMAGE
    output_dir: str = "./generated-images"
    output_format: str = "webp"
    output_quality: int = 95
    crop_factor: float = 2.5
    request_timeout: float = 120.0  # seconds per HTTP call
    poll_interval: float = 1.0  # seconds between prediction polls
    prediction_timeout: float = 300.0  # give up on a prediction still running after this

    # Grid
    pitch_values: List[int] = field(default_factory=lambda: list(DEFAULT_PITCH_VALUES))
    pupil_x_values: List[int] = field(default_factory=lambda: list(DEFAULT_PUPIL_X_VALUES))
    pupil_y_values: List[int] = field(default_factory=lambda: list(DEFAULT_PUPIL_Y_VALUES))

    # Retry
    retry_max_attempts: int = 3
    retry_backoff_seconds: float = 10.0

    # Rate limiting
    rate_limit_enabled: bool = True
    request_delay: float = 3.0  # seconds between requests

    # Viewer
    asset_dir: str = "./generated-images"
    manifest_filename: str = MANIFEST_FILENAME
    tracking_mode: TrackingMode = TrackingMode.MOUSE
    fixed_pitch: int = 0
    max_tilt: float = 30.0  # degrees of device tilt mapped to the full range
    preload_timeout: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    certfile: str = "cert.pem"
    keyfile: str = "key.pem"

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_format: str = DEFAULT_LOG_FORMAT
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 3

    def __post_init__(self) -> None:
        if self.retry_max_attempts < 1:
            raise ConfigurationError("retry.max_attempts must be at least 1")
        if self.retry_backoff_seconds < 0 or self.request_delay < 0:
            raise ConfigurationError("retry and rate limit delays must not be negative")
        if not 1 <= self.output_quality <= 100:
            raise ConfigurationError("generation.output_quality must be between 1 and 100")
        if self.prediction_timeout <= 0:
            raise ConfigurationError("generation.prediction_timeout must be greater than 0")
        if self.max_tilt <= 0:
            raise ConfigurationError("viewer.max_tilt must be greater than 0")
        try:
            self.grid()
        except ValueError as exc:
            raise ConfigurationError(f"Invalid grid: {exc}") from exc

    @classmethod
    def load(cls, path: str) -> "GazeConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            GazeConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
            ConfigurationError: If the document or a section is not a mapping
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GazeConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            GazeConfig instance

        Raises:
            ConfigurationError: If data or one of its sections is not a
                mapping, or a value is out of range
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Config must be a mapping of sections")
        generation_cfg = _section(data, "generation")
        grid_cfg = _section(data, "grid")
        retry_cfg = _section(data, "retry")
        rate_limit_cfg = _section(data, "rate_limit")
        viewer_cfg = _section(data, "viewer")
        server_cfg = _section(data, "server")
        logging_cfg = _section(data, "logging")

        mode_str = str(viewer_cfg.get("tracking_mode", "mouse")).lower()
        try:
            mode = TrackingMode(mode_str)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown tracking mode: {mode_str}") from exc

        output_dir = generation_cfg.get("output_dir", "./generated-images")

        return cls(
            api_base_url=generation_cfg.get("api_base_url", "https://api.replicate.com/v1"),
            model_version=generation_cfg.get("model_version", DEFAULT_MODEL_VERSION),
            source_image=generation_cfg.get("source_image", DEFAULT_SOURCE_IMAGE),
            output_dir=output_dir,
            output_format=generation_cfg.get("output_format", "webp"),
            output_quality=generation_cfg.get("output_quality", 95),
            crop_factor=generation_cfg.get("crop_factor", 2.5),
            request_timeout=generation_cfg.get("request_timeout", 120.0),
            poll_interval=generation_cfg.get("poll_interval", 1.0),
            prediction_timeout=generation_cfg.get("prediction_timeout", 300.0),
            pitch_values=list(grid_cfg.get("pitch", DEFAULT_PITCH_VALUES)),
            pupil_x_values=list(grid_cfg.get("pupil_x", DEFAULT_PUPIL_X_VALUES)),
            pupil_y_values=list(grid_cfg.get("pupil_y", DEFAULT_PUPIL_Y_VALUES)),
            retry_max_attempts=retry_cfg.get("max_attempts", 3),
            retry_backoff_seconds=retry_cfg.get("backoff_seconds", 10.0),
            rate_limit_enabled=rate_limit_cfg.get("enabled", True),
            request_delay=rate_limit_cfg.get("request_delay", 3.0),
            # The viewer reads what the generator wrote unless told otherwise
            asset_dir=viewer_cfg.get("asset_dir", output_dir),
            manifest_filename=viewer_cfg.get("manifest_filename", MANIFEST_FILENAME),
            tracking_mode=mode,
            fixed_pitch=viewer_cfg.get("fixed_pitch", 0),
            max_tilt=viewer_cfg.get("max_tilt", 30.0),
            preload_timeout=viewer_cfg.get("preload_timeout", 10.0),
            host=server_cfg.get("host", "0.0.0.0"),
            port=server_cfg.get("port", 8080),
            certfile=server_cfg.get("certfile", "cert.pem"),
            keyfile=server_cfg.get("keyfile", "key.pem"),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file", ""),
            log_format=logging_cfg.get("format", DEFAULT_LOG_FORMAT),
            log_max_bytes=logging_cfg.get("max_bytes", 10485760),
            log_backup_count=logging_cfg.get("backup_count", 3),
        )

    def grid(self) -> ParameterGrid:
        """The parameter grid described by this config."""
        return ParameterGrid(self.pitch_values, self.pupil_x_values, self.pupil_y_values)

    def output_path(self) -> Path:
        return Path(self.output_dir).expanduser()

    def manifest_path(self) -> Path:
        """Manifest location as written by the generator."""
        return self.output_path() / self.manifest_filename

    def asset_path(self) -> Path:
        return Path(self.asset_dir).expanduser()

    def viewer_manifest_path(self) -> Path:
        """Manifest location as read by the viewer."""
        return self.asset_path() / self.manifest_filename

    @staticmethod
    def api_token(environ: Optional[Dict[str, str]] = None) -> str:
        """
        Read the Replicate API token from the environment.

        Raises:
            ConfigurationError: If the variable is unset or blank
        """
        env = os.environ if environ is None else environ
        token = env.get(API_TOKEN_ENV, "").strip()
        if not token:
            raise ConfigurationError(f"{API_TOKEN_ENV} is not set")
        return token

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary
        """
        return {
            "generation": {
                "api_base_url": self.api_base_url,
                "model_version": self.model_version,
                "source_image": self.source_image,
                "output_dir": self.output_dir,
                "output_format": self.output_format,
                "output_quality": self.output_quality,
                "crop_factor": self.crop_factor,
                "request_timeout": self.request_timeout,
                "poll_interval": self.poll_interval,
                "prediction_timeout": self.prediction_timeout,
            },
            "grid": {
                "pitch": list(self.pitch_values),
                "pupil_x": list(self.pupil_x_values),
                "pupil_y": list(self.pupil_y_values),
            },
            "retry": {
                "max_attempts": self.retry_max_attempts,
                "backoff_seconds": self.retry_backoff_seconds,
            },
            "rate_limit": {
                "enabled": self.rate_limit_enabled,
                "request_delay": self.request_delay,
            },
            "viewer": {
                "asset_dir": self.asset_dir,
                "manifest_filename": self.manifest_filename,
                "tracking_mode": self.tracking_mode.value,
                "fixed_pitch": self.fixed_pitch,
                "max_tilt": self.max_tilt,
                "preload_timeout": self.preload_timeout,
            },
            "server": {
                "host": self.host,
                "port": self.port,
                "certfile": self.certfile,
                "keyfile": self.keyfile,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
                "format": self.log_format,
                "max_bytes": self.log_max_bytes,
                "backup_count": self.log_backup_count,
            },
        }

    def save(self, path: str) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Path to save the configuration file
        """
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True)
