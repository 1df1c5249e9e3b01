"""
Tests for structured payroll logging.

Covers:
- JSON envelope, extras and serialization of kwanza amounts, ids, dates, enums
- Context fields and their precedence over extras
- Exception fields from payroll kernel errors
- LogContext set/bind/clear, unknown fields refused
- configure_logging idempotency and the logger hierarchy
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payroll_kernel.exceptions import InvalidInputError, PeriodLockedError
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from payroll_modules.payroll import PeriodStatus


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def json_logs():
    """Configure logging into a buffer; returns a reader for the parsed lines."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler, level=logging.DEBUG)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


# =============================================================================
# Formatter
# =============================================================================


class TestStructuredFormatter:
    def test_envelope(self, json_logs):
        get_logger("engines.earnings").info("payroll_calculated")

        record = json_logs()[0]
        assert record["level"] == "INFO"
        assert record["message"] == "payroll_calculated"
        assert record["logger"] == "payroll_kernel.engines.earnings"
        assert record["ts"].endswith("+00:00")

    def test_payroll_values_serialized(self, json_logs):
        entry_id = uuid4()
        get_logger("test").info(
            "entry_rebuilt",
            extra={
                "entry_id": entry_id,
                "net_salary": Decimal("198019"),
                "pay_date": date(2024, 3, 31),
                "status": PeriodStatus.CALCULATED,
                "employee_count": 2,
            },
        )

        record = json_logs()[0]
        assert record["entry_id"] == str(entry_id)
        assert record["net_salary"] == "198019"
        assert record["pay_date"] == "2024-03-31"
        assert record["status"] == "calculated"
        assert record["employee_count"] == 2

    def test_context_fields_included(self, json_logs):
        LogContext.set(correlation_id="req-9", period_id="p-2024-03")
        get_logger("test").info("payroll_period_calculated")

        record = json_logs()[0]
        assert record["correlation_id"] == "req-9"
        assert record["period_id"] == "p-2024-03"
        assert "employee_id" not in record

    def test_bound_context_wins_over_extra(self, json_logs):
        with LogContext.bind(period_id="bound"):
            get_logger("test").info("payroll_period_locked", extra={"period_id": "extra"})
        assert json_logs()[0]["period_id"] == "bound"

    def test_plain_exception(self, json_logs):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").exception("unexpected_failure")

        record = json_logs()[0]
        assert record["level"] == "ERROR"
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_payroll_error_fields(self, json_logs):
        try:
            raise PeriodLockedError("period-7", "approved", "update entries")
        except PeriodLockedError:
            get_logger("test").error("period_error", exc_info=True)

        record = json_logs()[0]
        assert record["exc_code"] == "PERIOD_LOCKED"
        assert record["exc_period_id"] == "period-7"
        assert record["exc_status"] == "approved"
        assert record["exc_operation"] == "update entries"

    def test_invalid_input_fields(self, json_logs):
        try:
            raise InvalidInputError("month", 13)
        except InvalidInputError:
            get_logger("test").warning("rejected", exc_info=True)

        record = json_logs()[0]
        assert record["exc_code"] == "INVALID_INPUT"
        assert record["exc_field_name"] == "month"
        assert record["exc_value"] == "13"


# =============================================================================
# Context
# =============================================================================


class TestLogContext:
    def test_set_get_clear(self):
        LogContext.set(actor_id="rh.chefe", employee_id="E001")
        assert LogContext.get_all() == {"actor_id": "rh.chefe", "employee_id": "E001"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_none_leaves_field_unchanged(self):
        LogContext.set(period_id="p1")
        LogContext.set(period_id=None, actor_id="a")
        assert LogContext.get_all() == {"period_id": "p1", "actor_id": "a"}

    def test_values_stored_as_strings(self):
        period_id = uuid4()
        LogContext.set(period_id=period_id)
        assert LogContext.get_all()["period_id"] == str(period_id)

    def test_bind_restores_previous_values(self):
        LogContext.set(period_id="outer")
        with LogContext.bind(period_id="inner", employee_id="E002"):
            assert LogContext.get_all() == {"period_id": "inner", "employee_id": "E002"}
        assert LogContext.get_all() == {"period_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="temp"):
                raise RuntimeError("fail")
        assert LogContext.get_all() == {}

    def test_unknown_field_refused(self):
        with pytest.raises(TypeError, match="department"):
            LogContext.set(department="Operations")

    def test_bind_unknown_field_sets_nothing(self):
        with pytest.raises(TypeError, match="department"):
            with LogContext.bind(period_id="p", department="Operations"):
                pass
        assert LogContext.get_all() == {}


# =============================================================================
# Configuration
# =============================================================================


class TestConfigureLogging:
    def test_idempotent(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        root = logging.getLogger("payroll_kernel")
        assert len(root.handlers) == 1
        assert root.propagate is False

    def test_reset_allows_reconfiguration(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        root = logging.getLogger("payroll_kernel")
        assert root.handlers == []
        assert root.propagate is True

    def test_level_filters(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        configure_logging(handler=handler)

        logger = get_logger("test")
        logger.debug("hidden")
        logger.info("shown")

        messages = [json.loads(line)["message"] for line in stream.getvalue().splitlines()]
        assert messages == ["shown"]

    def test_nested_loggers_share_the_handler(self, json_logs):
        get_logger("modules.payroll.service").debug("nested_event")
        assert json_logs()[0]["logger"] == "payroll_kernel.modules.payroll.service"
