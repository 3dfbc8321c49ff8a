"""Config – 12-factor settings and loaders."""

from mp_transactions.config.settings import (
    EnvSettingsLoader,
    KafkaSettings,
    OrchestratorSettings,
    OutboxSettings,
    Settings,
    SettingsLoader,
)
from mp_transactions.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "KafkaSettings",
    "MissingRequiredSettingError",
    "OrchestratorSettings",
    "OutboxSettings",
    "Settings",
    "SettingsLoader",
]
