"""
dotbeam Configuration
=====================

This module handles configuration loading for the scanner.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    DOTBEAM_RINGS             -> protocol.rings
    DOTBEAM_BITS_PER_DOT      -> protocol.bits_per_dot
    DOTBEAM_FPS               -> protocol.fps
    DOTBEAM_VOTE_CAP          -> consensus.vote_cap
    DOTBEAM_LOCK_MIN_CAPTURES -> consensus.lock_min_captures
    DOTBEAM_TICK_INTERVAL_MS  -> scanner.tick_interval_ms
    DOTBEAM_CAMERA_INDEX      -> scanner.camera_index
    DOTBEAM_LOG_LEVEL         -> logging.level
    DOTBEAM_LOG_FORMAT        -> logging.format

Sender and receiver must agree on the protocol section; it is never
negotiated over the air.

Example:
    from dotbeam.config import settings

    print(settings.protocol.rings)
    print(settings.consensus.vote_cap)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from dotbeam.models.protocol import ProtocolConfig


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class DetectionConfig(BaseModel):
    """Anchor blob detection configuration."""

    cell_size: int = Field(default=8, ge=1, description="Grid cell edge in pixels")
    brightness_threshold: int = Field(
        default=180,
        ge=0,
        le=255,
        description="Per-channel value a sample must exceed to be bright",
    )
    sample_step: int = Field(default=2, ge=1, description="Pixel stride of the sample grid")
    min_blob_cells: int = Field(default=2, ge=1, description="Smallest accepted blob (cells)")
    max_blob_cells: int = Field(default=60, ge=1, description="Largest accepted blob (cells)")
    max_saturation: float = Field(
        default=0.25,
        ge=0,
        le=1.0,
        description="Largest accepted saturation at a blob centroid",
    )


class TransformConfig(BaseModel):
    """Anchor triangle and temporal stabilization configuration."""

    candidate_limit: int = Field(default=10, ge=3, description="Blobs considered for triples")
    side_tolerance: float = Field(
        default=0.3,
        gt=0,
        description="Allowed relative deviation of each side from the mean side",
    )
    max_size_ratio: float = Field(default=3.0, ge=1.0, description="Largest/smallest blob size")
    min_side: float = Field(default=20.0, ge=0, description="Minimum mean side in pixels")
    validate_center: bool = Field(
        default=True,
        description="Skip triples whose centroid is not background",
    )
    center_brightness_max: float = Field(
        default=80.0,
        ge=0,
        le=255,
        description="Centroid brightness above which a triple is skipped",
    )
    center_drift: float = Field(
        default=0.15,
        gt=0,
        description="Max center shift between ticks, fraction of scale",
    )
    scale_drift: float = Field(
        default=0.20,
        gt=0,
        description="Max scale change between ticks, fraction of scale",
    )
    rotation_drift_deg: float = Field(
        default=15.0,
        gt=0,
        description="Max rotation change between ticks (degrees)",
    )


class SamplingConfig(BaseModel):
    """Color sampling configuration."""

    radius_factor: float = Field(
        default=0.025,
        gt=0,
        description="Sample radius as a fraction of the transform scale",
    )
    min_radius: int = Field(default=2, ge=0, description="Minimum sample radius in pixels")
    wb_min_brightness: float = Field(
        default=150.0,
        ge=0,
        le=255,
        description="Anchor brightness needed to apply white balance",
    )
    wb_max_gain: float = Field(default=1.5, ge=1.0, description="Upper bound on channel gain")


class ConsensusConfig(BaseModel):
    """Frame-total locking and voting configuration."""

    lock_min_captures: int = Field(
        default=10,
        ge=1,
        description="Valid captures tallied before the frame total can lock",
    )
    lock_min_share: float = Field(
        default=0.30,
        gt=0,
        le=1.0,
        description="Plurality share needed to lock the frame total",
    )
    vote_cap: int = Field(default=5, ge=1, description="Captures per frame before voting")


class ScannerConfig(BaseModel):
    """Capture loop configuration."""

    tick_interval_ms: int = Field(default=100, ge=1, description="Delay between ticks")
    camera_index: int = Field(default=0, ge=0, description="OpenCV camera device index")
    frame_width: int = Field(default=1280, ge=1, description="Requested capture width")
    frame_height: int = Field(default=720, ge=1, description="Requested capture height")
    log_every_n_ticks: int = Field(
        default=50,
        ge=1,
        description="Interval of the periodic progress log line",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for dotbeam.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Protocol settings
    if env_rings := os.environ.get("DOTBEAM_RINGS"):
        config_data.setdefault("protocol", {})["rings"] = int(env_rings)
    if env_bits := os.environ.get("DOTBEAM_BITS_PER_DOT"):
        config_data.setdefault("protocol", {})["bits_per_dot"] = int(env_bits)
    if env_fps := os.environ.get("DOTBEAM_FPS"):
        config_data.setdefault("protocol", {})["fps"] = int(env_fps)

    # Consensus settings
    if env_cap := os.environ.get("DOTBEAM_VOTE_CAP"):
        config_data.setdefault("consensus", {})["vote_cap"] = int(env_cap)
    if env_lock := os.environ.get("DOTBEAM_LOCK_MIN_CAPTURES"):
        config_data.setdefault("consensus", {})["lock_min_captures"] = int(env_lock)

    # Scanner settings
    if env_tick := os.environ.get("DOTBEAM_TICK_INTERVAL_MS"):
        config_data.setdefault("scanner", {})["tick_interval_ms"] = int(env_tick)
    if env_camera := os.environ.get("DOTBEAM_CAMERA_INDEX"):
        config_data.setdefault("scanner", {})["camera_index"] = int(env_camera)

    # Logging settings
    if env_log := os.environ.get("DOTBEAM_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("DOTBEAM_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
