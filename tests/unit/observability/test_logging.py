"""Unit tests for structlog processors, filters and logger configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from mp_transactions.observability.correlation import CorrelationContext, RequestContext
from mp_transactions.observability.logging import (
    CorrelationProcessor,
    JsonLoggerFactory,
    SensitiveFieldsFilter,
    get_logger,
)


class TestCorrelationProcessor:
    def test_injects_ambient_context(self) -> None:
        ctx = RequestContext(correlation_id="c-1", causation_id="e-1", tenant_id="acme")
        with CorrelationContext.scope(ctx):
            event = CorrelationProcessor()(None, "info", {"event": "x"})
        assert event["correlation_id"] == "c-1"
        assert event["causation_id"] == "e-1"
        assert event["tenant_id"] == "acme"
        assert "user_id" not in event

    def test_bound_values_win(self) -> None:
        with CorrelationContext.scope(RequestContext(correlation_id="ambient")):
            event = CorrelationProcessor()(None, "info", {"correlation_id": "explicit"})
        assert event["correlation_id"] == "explicit"

    def test_noop_without_context(self) -> None:
        CorrelationContext.clear()
        assert CorrelationProcessor()(None, "info", {"event": "x"}) == {"event": "x"}


class TestSensitiveFieldsFilter:
    def test_redacts_nested(self) -> None:
        data = {"user": "bob", "payment": {"card_number": "4111", "amount": 5}, "Password": "x"}
        redacted = SensitiveFieldsFilter().redact_deep(data)
        assert redacted == {
            "user": "bob",
            "payment": {"card_number": "[REDACTED]", "amount": 5},
            "Password": "[REDACTED]",
        }

    def test_custom_fields(self) -> None:
        redacted = SensitiveFieldsFilter(frozenset({"ssn"})).redact_deep({"ssn": "1", "password": "p"})
        assert redacted == {"ssn": "[REDACTED]", "password": "p"}


class TestJsonLoggerFactory:
    @pytest.fixture(autouse=True)
    def _reset_structlog(self):
        yield
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_emits_json_with_correlation(self, capsys: pytest.CaptureFixture[str]) -> None:
        JsonLoggerFactory.configure(level=logging.INFO, sensitive_fields=frozenset({"token"}))
        with CorrelationContext.scope(RequestContext(correlation_id="c-42")):
            get_logger("tests").info("saga.started", token="secret", step="create-order")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "saga.started"
        assert record["correlation_id"] == "c-42"
        assert record["token"] == "[REDACTED]"
        assert record["step"] == "create-order"
        assert record["level"] == "info"

    def test_get_logger_binds_initial_values(self) -> None:
        logger = get_logger("tests", component="relay")
        assert logger is not None
