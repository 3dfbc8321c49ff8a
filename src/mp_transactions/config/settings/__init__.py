"""Config settings – 12-factor env-based configuration."""
from mp_transactions.config.settings.base import Settings
from mp_transactions.config.settings.loaders import EnvSettingsLoader, SettingsLoader
from mp_transactions.config.settings.transactions import (
    KafkaSettings,
    OrchestratorSettings,
    OutboxSettings,
)

__all__ = [
    "EnvSettingsLoader",
    "KafkaSettings",
    "OrchestratorSettings",
    "OutboxSettings",
    "Settings",
    "SettingsLoader",
]
