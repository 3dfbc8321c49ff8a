"""Config settings – orchestrator, outbox and Kafka settings."""
from __future__ import annotations

import dataclasses

from mp_transactions.config.settings.base import Settings
from mp_transactions.config.validation import InvalidSettingValueError


@dataclasses.dataclass
class OrchestratorSettings(Settings):
    """``SAGA_*`` variables."""

    _prefix = "SAGA"

    service_name: str = "saga-orchestrator"
    retention_hours: float = 24.0
    default_step_timeout: float | None = None

    def _validate(self) -> None:
        if self.retention_hours <= 0:
            raise InvalidSettingValueError("retention_hours", self.retention_hours, "must be > 0")
        if self.default_step_timeout is not None and self.default_step_timeout <= 0:
            raise InvalidSettingValueError(
                "default_step_timeout", self.default_step_timeout, "must be > 0"
            )


@dataclasses.dataclass
class OutboxSettings(Settings):
    """``OUTBOX_*`` variables."""

    _prefix = "OUTBOX"

    batch_size: int = 100
    poll_interval: float = 1.0
    max_attempts: int = 10

    def _validate(self) -> None:
        if self.batch_size < 1:
            raise InvalidSettingValueError("batch_size", self.batch_size, "must be >= 1")
        if self.poll_interval <= 0:
            raise InvalidSettingValueError("poll_interval", self.poll_interval, "must be > 0")
        if self.max_attempts < 1:
            raise InvalidSettingValueError("max_attempts", self.max_attempts, "must be >= 1")


@dataclasses.dataclass
class KafkaSettings(Settings):
    """``KAFKA_*`` variables."""

    _prefix = "KAFKA"

    bootstrap_servers: str = "localhost:9092"
    topic_namespace: str = ""
    service_name: str = "mp-transactions"
    consumer_group: str = ""

    @property
    def group_id(self) -> str:
        return self.consumer_group or f"{self.service_name}.consumers"


__all__ = ["KafkaSettings", "OrchestratorSettings", "OutboxSettings"]
