"""Configuration module for the notification engine."""

from notification_core.config.engine_config import (
    EngineConfig,
    get_engine_config,
    load_engine_config,
    reload_engine_config,
)

__all__ = [
    "EngineConfig",
    "get_engine_config",
    "load_engine_config",
    "reload_engine_config",
]
