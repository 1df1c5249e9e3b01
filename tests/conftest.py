"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured logging configured once per session, plus a log capture fixture
- Deterministic clock, default rate table and payroll policy
- In-memory repositories and wired services
- An in-memory SQLite session with every ORM table created
- Factory helpers for employees and compensation
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from payroll_config import PayrollConfig, load_default_rate_table
from payroll_engines.earnings import CompensationConfig
from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_modules.hr import HRService, InMemoryEmployeeDirectory, InMemoryHRRepository
from payroll_modules.payroll import (
    Employee,
    EmploymentStatus,
    InMemoryPayrollRepository,
    PayrollService,
)

TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payroll_service):
            payroll_service.create_period(2024, 3)
            logs = captured_logs()
            assert any(r["message"] == "payroll_period_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="session")
def rate_table():
    return load_default_rate_table()


@pytest.fixture
def payroll_config() -> PayrollConfig:
    return PayrollConfig()


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Factories
# =============================================================================


def make_compensation(
    base_salary: str = "150000",
    meal_allowance: str = "30000",
    transport_allowance: str = "30000",
    **overrides,
) -> CompensationConfig:
    values = {
        "base_salary": Decimal(base_salary),
        "meal_allowance": Decimal(meal_allowance),
        "transport_allowance": Decimal(transport_allowance),
    }
    for key, value in overrides.items():
        values[key] = Decimal(value) if isinstance(value, str) else value
    return CompensationConfig(**values)


def make_employee(
    number: str = "E001",
    *,
    hire_date: date = date(2020, 1, 6),
    department: str | None = "Operations",
    status: EmploymentStatus = EmploymentStatus.ACTIVE,
    position: str = "Técnico",
    compensation: CompensationConfig | None = None,
    **compensation_overrides,
) -> Employee:
    return Employee(
        id=uuid4(),
        employee_number=number,
        full_name=f"Funcionário {number}",
        hire_date=hire_date,
        compensation=compensation or make_compensation(**compensation_overrides),
        position=position,
        department=department,
        status=status,
    )


@pytest.fixture
def employee_factory():
    return make_employee


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def payroll_repository() -> InMemoryPayrollRepository:
    return InMemoryPayrollRepository()


@pytest.fixture
def payroll_service(payroll_repository, rate_table, payroll_config, deterministic_clock) -> PayrollService:
    return PayrollService(
        payroll_repository,
        table=rate_table,
        config=payroll_config,
        clock=deterministic_clock,
    )


@pytest.fixture
def employee_directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory()


@pytest.fixture
def hr_repository() -> InMemoryHRRepository:
    return InMemoryHRRepository()


@pytest.fixture
def hr_service(employee_directory, hr_repository, rate_table, deterministic_clock) -> HRService:
    return HRService(
        employee_directory,
        hr_repository,
        table=rate_table,
        clock=deterministic_clock,
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory SQLite database with every payroll table."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.close()
        drop_tables()
        reset_engine()
