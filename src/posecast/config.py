"""
posecast Configuration
======================

This module handles configuration loading for the frame streamer.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    POSECAST_HOSTS            -> connection.hosts (comma separated)
    POSECAST_RETRY_INTERVAL   -> connection.retry_interval_seconds
    POSECAST_PING_INTERVAL    -> connection.ping_interval_seconds
    POSECAST_SEND_FRAME_RATE  -> producer.send_frame_rate
    POSECAST_ONLY_SEND_LATEST -> queue.only_send_latest
    POSECAST_ASYNC_ENCODE     -> queue.async_encode
    POSECAST_LOG_LEVEL        -> logging.level

Example:
    from posecast.config import load_config, setup_logging

    settings = load_config()
    setup_logging(settings)

    print(settings.connection.hosts)
    print(settings.producer.send_frame_rate)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ConnectionConfig(BaseModel):
    """WebSocket connection configuration."""

    hosts: List[str] = Field(
        default_factory=lambda: ["localhost:8181"],
        description="Ordered host list (host:port[/path]), rotated on each attempt",
    )
    scheme: str = Field(default="ws", description="URL scheme: 'ws' or 'wss'")
    retry_interval_seconds: float = Field(
        default=5.0,
        ge=0,
        le=10,
        description="Fixed delay between connection attempts",
    )
    initial_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the first connection attempt",
    )
    ping_interval_seconds: float = Field(
        default=10.0,
        ge=1,
        le=10,
        description="WebSocket protocol ping interval",
    )
    open_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Opening handshake timeout",
    )


class QueueConfig(BaseModel):
    """Staged frame queue configuration."""

    max_encode_concurrent: int = Field(
        default=3,
        ge=1,
        description="Maximum simultaneous encode operations",
    )
    max_send_concurrent: int = Field(
        default=3,
        ge=1,
        description="Maximum simultaneous send operations",
    )
    only_send_latest: bool = Field(
        default=False,
        description="Discard all but the newest pending item in each stage",
    )
    async_encode: bool = Field(
        default=False,
        description="Run the encoder on worker threads instead of the tick thread",
    )


class ProducerConfig(BaseModel):
    """Frame producer configuration."""

    send_frame_rate: float = Field(
        default=60.0,
        ge=1,
        le=90,
        description="Maximum non-keyframe send rate (Hz)",
    )


class EncodingConfig(BaseModel):
    """JSON encoder configuration."""

    indent: Optional[int] = Field(
        default=2,
        ge=0,
        description="JSON indentation (null for compact output)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for posecast.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    producer: ProducerConfig = Field(default_factory=ProducerConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
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
    # Find config file
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

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Connection settings
    if env_hosts := os.environ.get("POSECAST_HOSTS"):
        hosts = [h.strip() for h in env_hosts.split(",") if h.strip()]
        config_data.setdefault("connection", {})["hosts"] = hosts
    if env_retry := os.environ.get("POSECAST_RETRY_INTERVAL"):
        config_data.setdefault("connection", {})["retry_interval_seconds"] = float(env_retry)
    if env_ping := os.environ.get("POSECAST_PING_INTERVAL"):
        config_data.setdefault("connection", {})["ping_interval_seconds"] = float(env_ping)

    # Producer settings
    if env_rate := os.environ.get("POSECAST_SEND_FRAME_RATE"):
        config_data.setdefault("producer", {})["send_frame_rate"] = float(env_rate)

    # Queue settings
    if env_latest := os.environ.get("POSECAST_ONLY_SEND_LATEST"):
        config_data.setdefault("queue", {})["only_send_latest"] = _parse_bool(env_latest)
    if env_async := os.environ.get("POSECAST_ASYNC_ENCODE"):
        config_data.setdefault("queue", {})["async_encode"] = _parse_bool(env_async)

    # Logging settings
    if env_log := os.environ.get("POSECAST_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "thread": "%(threadName)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
