"""
Configuration for the notification engine.

Provides:
- EngineConfig: runtime settings for classification, bridging and routing
- load_engine_config: load configuration from file, environment or defaults

Configuration can be supplied via:
1. An explicit config file path
2. NOTIFICATION_ENGINE_CONFIG_PATH environment variable
3. config/notification_engine.json relative to the project root
4. Default values in this module

Individual settings can then be overridden by environment variables
(see ENV_OVERRIDES).
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from notification_core.services.priority_scoring import PriorityScoringTable

logger = logging.getLogger(__name__)

# Reference dirty-check interval between the chat store and the repository
DEFAULT_POLL_INTERVAL_SECONDS = 2.0

# Sender domain treated as the firm's own staff
DEFAULT_INTERNAL_EMAIL_DOMAIN = "constructbms.com"


@dataclass
class EngineConfig:
    """
    Full configuration for the notification engine.

    Controls:
    - Priority scoring weights and thresholds
    - Internal sender detection
    - Change-propagation polling interval
    - Identity of the current user (whose own messages never notify)
    - Default expiry for bridged notifications
    """

    scoring: PriorityScoringTable = field(default_factory=PriorityScoringTable)

    internal_email_domain: str = DEFAULT_INTERNAL_EMAIL_DOMAIN

    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    current_user_id: str = "user-1"

    default_timezone: str = "UTC"

    # None keeps bridged notifications until deleted
    bridged_notification_ttl_days: Optional[int] = None

    # Seed admin/user permission rows and the system project template
    seed_reference_data: bool = True

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "scoring": self.scoring.to_dict(),
            "internal_email_domain": self.internal_email_domain,
            "poll_interval_seconds": self.poll_interval_seconds,
            "current_user_id": self.current_user_id,
            "default_timezone": self.default_timezone,
            "bridged_notification_ttl_days": self.bridged_notification_ttl_days,
            "seed_reference_data": self.seed_reference_data,
        }


# env var -> (field name, parser)
ENV_OVERRIDES = {
    "NOTIFICATION_POLL_INTERVAL_SECONDS": ("poll_interval_seconds", float),
    "NOTIFICATION_INTERNAL_DOMAIN": ("internal_email_domain", str),
    "NOTIFICATION_CURRENT_USER_ID": ("current_user_id", str),
    "NOTIFICATION_DEFAULT_TIMEZONE": ("default_timezone", str),
}


def load_engine_config(config_path: Optional[Path] = None) -> EngineConfig:
    """
    Load engine configuration from file or environment.

    Priority:
    1. Explicit config file path argument
    2. NOTIFICATION_ENGINE_CONFIG_PATH environment variable
    3. config/notification_engine.json relative to project root
    4. Default values

    Args:
        config_path: Optional explicit path to configuration file

    Returns:
        EngineConfig instance with environment overrides applied
    """
    config = None

    if config_path and config_path.exists():
        config = _load_from_file(config_path)

    if config is None:
        env_path = os.environ.get("NOTIFICATION_ENGINE_CONFIG_PATH")
        if env_path and Path(env_path).exists():
            config = _load_from_file(Path(env_path))

    if config is None:
        # Go up from backend/notification_core/config to project root
        default_paths = [
            Path(__file__).parent.parent.parent.parent / "config" / "notification_engine.json",
            Path("config/notification_engine.json"),
        ]
        for default_path in default_paths:
            if default_path.exists():
                config = _load_from_file(default_path)
                break

    if config is None:
        config = EngineConfig()

    _apply_env_overrides(config)
    return config


def _load_from_file(path: Path) -> EngineConfig:
    """
    Load configuration from a JSON file.

    Raises:
        json.JSONDecodeError: If file is not valid JSON
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    scoring_data = data.get("scoring", {})
    scoring = PriorityScoringTable(
        urgent_keyword_weight=scoring_data.get("urgent_keyword_weight", 4),
        project_related_weight=scoring_data.get("project_related_weight", 2),
        client_communication_weight=scoring_data.get("client_communication_weight", 2),
        urgent_actionable_weight=scoring_data.get("urgent_actionable_weight", 3),
        critical_threshold=scoring_data.get("critical_threshold", 6),
        high_threshold=scoring_data.get("high_threshold", 4),
        medium_threshold=scoring_data.get("medium_threshold", 2),
    )

    logger.info("Loaded notification engine config", extra={"path": str(path)})

    return EngineConfig(
        scoring=scoring,
        internal_email_domain=data.get("internal_email_domain", DEFAULT_INTERNAL_EMAIL_DOMAIN),
        poll_interval_seconds=float(data.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)),
        current_user_id=data.get("current_user_id", "user-1"),
        default_timezone=data.get("default_timezone", "UTC"),
        bridged_notification_ttl_days=data.get("bridged_notification_ttl_days"),
        seed_reference_data=data.get("seed_reference_data", True),
    )


def _apply_env_overrides(config: EngineConfig) -> None:
    for env_name, (attr, parser) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            setattr(config, attr, parser(raw))
        except ValueError:
            logger.warning(
                "Ignoring invalid config override",
                extra={"env_var": env_name, "value": raw},
            )


# Singleton config instance (loaded once)
_config_instance: Optional[EngineConfig] = None


def get_engine_config() -> EngineConfig:
    """
    Get the singleton engine configuration.

    Loads configuration once and caches it.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = load_engine_config()
    return _config_instance


def reload_engine_config(config_path: Optional[Path] = None) -> EngineConfig:
    """
    Reload the engine configuration.

    Useful for testing or when configuration changes.
    """
    global _config_instance
    _config_instance = load_engine_config(config_path)
    return _config_instance
