"""
Configuration management for CleanRead using Pydantic.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from cleanread.navigation.engine import ScoringWeights


# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class WorkerConfig(BaseModel):
    """Supervised extraction worker configuration."""

    binary_path: Optional[Path] = Field(default=None, description="Path to the worker executable.")
    work_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory holding the worker's Unix socket.",
    )
    socket_prefix: str = Field(default="readability-client", description="File name prefix for worker sockets.")
    request_timeout: float = Field(default=2.0, description="Default per-request timeout in seconds.")
    startup_timeout: float = Field(default=10.0, description="Deadline for the startup health check.")
    health_retry_interval: float = Field(default=0.2, description="Delay between health probes.")
    health_attempt_timeout: float = Field(default=0.1, description="Timeout for a single health probe.")
    shutdown_timeout: float = Field(default=1.0, description="Grace period after SIGTERM before SIGKILL.")
    kill_wait: float = Field(default=0.5, description="How long to wait for exit after SIGKILL.")
    startup_close_timeout: float = Field(default=3.0, description="Close deadline when startup fails.")
    forward_output: bool = Field(default=True, description="Forward worker stdout/stderr into the log.")

    @field_validator(
        "request_timeout",
        "startup_timeout",
        "health_retry_interval",
        "health_attempt_timeout",
        "shutdown_timeout",
        "kill_wait",
        "startup_close_timeout",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts and intervals must be positive")
        return v


class NavigationConfig(BaseModel):
    """Weights for navigation link scoring. Tier order matters, exact values do not."""

    parser: Literal["html.parser", "lxml", "html5lib"] = "html.parser"
    rel_bonus: int = 1000
    landmark_bonus: int = 500
    class_bonus: int = 300
    text_scale: int = 100
    attribute_scale: int = 50
    sidebar_penalty: int = 200
    large_list_penalty: int = 100
    large_list_threshold: int = Field(default=10, ge=0)

    def to_weights(self) -> ScoringWeights:
        from cleanread.navigation.engine import ScoringWeights

        return ScoringWeights(
            rel_bonus=self.rel_bonus,
            landmark_bonus=self.landmark_bonus,
            class_bonus=self.class_bonus,
            text_scale=self.text_scale,
            attribute_scale=self.attribute_scale,
            sidebar_penalty=self.sidebar_penalty,
            large_list_penalty=self.large_list_penalty,
            large_list_threshold=self.large_list_threshold,
        )


class CacheConfig(BaseModel):
    """In-memory cache of cleaned documents."""

    enabled: bool = True
    ttl_seconds: float = Field(default=600.0, gt=0)
    max_entries: int = Field(default=256, gt=0)


class FetchConfig(BaseModel):
    """HTTP fetching of source documents."""

    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds.")
    user_agent: str = Field(default="CleanRead/0.1 (+reader)", description="User-Agent for document fetches.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: int | None = Field(default=None, description="Port for Prometheus metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "CleanRead"
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="CLEANREAD_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data: Any = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("cleanread.yaml", "cleanread.yml", "config.yaml"):
        path = current_dir / name
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from an explicit file, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    return Config()
