"""
Lightning Realtime Configuration
================================

This module handles configuration loading for the realtime client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    LIGHTNING_BASE_URL             -> connection.base_url
    LIGHTNING_APP_ROUTE            -> connection.app_route
    LIGHTNING_CONNECTION_KEY       -> connection.connection_key
    LIGHTNING_THROTTLE_MS          -> connection.throttle_interval_ms
    LIGHTNING_RECONNECT_BACKOFF_MS -> connection.reconnect_backoff_ms
    LIGHTNING_ROTATOR_PERIOD_MS    -> rotator.period_ms
    LIGHTNING_ROTATOR_ENABLED      -> rotator.enabled
    LIGHTNING_MARKER_PATH          -> session.marker_path
    LIGHTNING_LOG_LEVEL            -> logging.level
    LIGHTNING_PORT / PORT          -> server.port

Example:
    from lightning_realtime.config import settings

    print(settings.connection.endpoint_url)
    print(settings.generation.quality_steps)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from lightning_realtime.models.request import ImageSize


logger = logging.getLogger(__name__)


DEFAULT_PROMPT = (
    "neuronal hyper-object white 3D  alive floating rotating tendrils blood "
    "biolumiscense transparent white background "
)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Client identification configuration."""

    name: str = Field(default="lightning-realtime", description="Client name")
    version: str = Field(default="v0.1.0", description="Client version")


class ConnectionConfig(BaseModel):
    """Realtime channel configuration."""

    base_url: str = Field(
        default="ws://localhost:3000/api/realtime",
        description="Proxied WebSocket routing path",
    )
    app_route: str = Field(
        default="fal-ai/fast-lightning-sdxl",
        description="Remote application route appended to base_url",
    )
    connection_key: str = Field(
        default="lightning-sdxl",
        min_length=1,
        description="Stable key; at most one live connection per key",
    )
    throttle_interval_ms: int = Field(
        default=64,
        ge=0,
        description="Minimum spacing between transmitted frames (0 = off)",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=10,
        description="Initial reconnect backoff in milliseconds",
    )
    max_backoff_ms: int = Field(
        default=8000,
        ge=10,
        description="Upper bound for exponential reconnect backoff",
    )
    max_reconnect_attempts: int = Field(
        default=0,
        ge=0,
        description="Consecutive reconnect attempts before giving up (0 = unlimited)",
    )
    ping_interval_seconds: float = Field(default=20.0, gt=0)
    ping_timeout_seconds: float = Field(default=10.0, gt=0)
    close_timeout_seconds: float = Field(default=5.0, gt=0)

    @property
    def endpoint_url(self) -> str:
        """Full WebSocket URL for the configured route."""
        return build_endpoint_url(self.base_url, self.app_route)

    @property
    def throttle_interval(self) -> float:
        """Throttle interval in seconds."""
        return self.throttle_interval_ms / 1000.0


class GenerationConfig(BaseModel):
    """Fixed generation parameters merged into every outbound frame."""

    default_prompt: str = Field(default=DEFAULT_PROMPT)
    image_size: ImageSize = Field(default=ImageSize.SQUARE_HD)
    enable_safety_checker: bool = Field(default=True)
    sync_mode: bool = Field(default=True)
    num_images: int = Field(default=1, ge=1)
    interactive_steps: int = Field(
        default=2,
        ge=1,
        description="Step count for throttled interactive edits",
    )
    quality_steps: int = Field(
        default=4,
        ge=1,
        description="Step count for the first frame of a session",
    )

    @model_validator(mode="after")
    def _check_steps(self) -> "GenerationConfig":
        if self.quality_steps < self.interactive_steps:
            raise ValueError("quality_steps must be >= interactive_steps")
        return self


class RotatorConfig(BaseModel):
    """Seed rotation configuration."""

    enabled: bool = Field(default=True, description="Run the seed rotator")
    period_ms: int = Field(
        default=500,
        gt=0,
        description="Milliseconds between seed rotations",
    )


class SessionConfig(BaseModel):
    """Session marker configuration."""

    marker_path: str = Field(
        default="~/.cache/lightning-realtime/session.marker",
        description="File written once per session on first activation",
    )
    marker_value: str = Field(default="fal-app=true")


class ServerConfig(BaseModel):
    """Session host configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the realtime client.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    rotator: RotatorConfig = Field(default_factory=RotatorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def build_endpoint_url(base_url: str, app_route: str) -> str:
    """Join the routing path and app route into the realtime endpoint URL."""
    return f"{base_url.rstrip('/')}/{app_route.strip('/')}/realtime"


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
            Path("/app/config.yaml"),
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

    # Connection settings
    if env_url := os.environ.get("LIGHTNING_BASE_URL"):
        config_data.setdefault("connection", {})["base_url"] = env_url
    if env_route := os.environ.get("LIGHTNING_APP_ROUTE"):
        config_data.setdefault("connection", {})["app_route"] = env_route
    if env_key := os.environ.get("LIGHTNING_CONNECTION_KEY"):
        config_data.setdefault("connection", {})["connection_key"] = env_key
    if env_throttle := os.environ.get("LIGHTNING_THROTTLE_MS"):
        config_data.setdefault("connection", {})["throttle_interval_ms"] = int(env_throttle)
    if env_backoff := os.environ.get("LIGHTNING_RECONNECT_BACKOFF_MS"):
        config_data.setdefault("connection", {})["reconnect_backoff_ms"] = int(env_backoff)

    # Rotator settings
    if env_period := os.environ.get("LIGHTNING_ROTATOR_PERIOD_MS"):
        config_data.setdefault("rotator", {})["period_ms"] = int(env_period)
    if env_enabled := os.environ.get("LIGHTNING_ROTATOR_ENABLED"):
        config_data.setdefault("rotator", {})["enabled"] = env_enabled.lower() in ("1", "true", "yes", "on")

    # Session settings
    if env_marker := os.environ.get("LIGHTNING_MARKER_PATH"):
        config_data.setdefault("session", {})["marker_path"] = env_marker

    # Server settings (container platforms use PORT)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("LIGHTNING_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("LIGHTNING_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


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
