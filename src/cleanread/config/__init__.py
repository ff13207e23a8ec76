"""Configuration models and loaders."""

from .config import (
    CacheConfig,
    Config,
    FetchConfig,
    MonitoringConfig,
    NavigationConfig,
    WorkerConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "CacheConfig",
    "Config",
    "FetchConfig",
    "MonitoringConfig",
    "NavigationConfig",
    "WorkerConfig",
    "find_config_file",
    "load_config",
]
