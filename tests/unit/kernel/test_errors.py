"""Unit tests for the kernel error hierarchy."""

from __future__ import annotations

import json

import pytest

from mp_transactions.kernel.errors import (
    ApplicationError,
    BaseError,
    BrokerUnavailableError,
    ConcurrencyError,
    ConflictError,
    DomainError,
    InfrastructureError,
    InvariantViolationError,
    NotFoundError,
    SerializationError,
    TimeoutError as AppTimeoutError,
)


class TestBaseError:
    def test_default_code(self) -> None:
        assert BaseError("boom").code == "base_error"

    def test_explicit_code_wins(self) -> None:
        assert DomainError("x", code="custom").code == "custom"

    def test_str_is_json(self) -> None:
        err = DomainError("bad thing", detail={"k": 1})
        data = json.loads(str(err))
        assert data == {"code": "domain_error", "message": "bad thing", "detail": {"k": 1}}

    def test_cause_chained(self) -> None:
        cause = ValueError("root")
        err = InfrastructureError("wrapped", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == repr(cause)

    def test_repr(self) -> None:
        assert repr(ApplicationError("m")) == "ApplicationError(code='application_error', message='m')"


class TestHierarchy:
    @pytest.mark.parametrize(
        ("cls", "parent"),
        [
            (InvariantViolationError, DomainError),
            (NotFoundError, DomainError),
            (ConflictError, DomainError),
            (ConcurrencyError, ConflictError),
            (AppTimeoutError, ApplicationError),
            (BrokerUnavailableError, InfrastructureError),
            (SerializationError, InfrastructureError),
        ],
    )
    def test_subclassing(self, cls: type, parent: type) -> None:
        assert issubclass(cls, parent)
        assert issubclass(cls, BaseError)


class TestSpecificErrors:
    def test_not_found_message(self) -> None:
        err = NotFoundError("Order", "o-1")
        assert err.message == "Order 'o-1' not found"
        assert err.resource == "Order"
        assert err.identifier == "o-1"

    def test_not_found_without_identifier(self) -> None:
        assert NotFoundError("Order").message == "Order not found"

    def test_concurrency_error_fields(self) -> None:
        err = ConcurrencyError("o-1", expected=4, actual=6)
        assert (err.aggregate_id, err.expected, err.actual) == ("o-1", 4, 6)
        assert err.code == "concurrency_conflict"
        assert err.detail == {"aggregate_id": "o-1", "expected": 4, "actual": 6}

    def test_broker_unavailable_default_message(self) -> None:
        err = BrokerUnavailableError("kafka")
        assert err.broker == "kafka"
        assert "kafka" in err.message

    def test_serialization_error_payload_type(self) -> None:
        err = SerializationError("bad", payload_type="DomainEvent")
        assert err.payload_type == "DomainEvent"
