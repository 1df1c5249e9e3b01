"""
Payroll Domain Models (``payroll_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of monthly payroll:
employees (as the engine sees them), holiday schedule records, payroll
periods, payroll entries, and the aggregates derived from them.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
the generator and ``PayrollService``; persisted by the repositories.

Invariants enforced
-------------------
* All models are ``frozen=True``; changes go through
  ``dataclasses.replace``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A ``PayrollEntry`` always carries the compensation snapshot and the
  variable inputs it was computed from, so it can be recomputed in full.
* Period totals are derived from entries, never hand-edited.

Failure modes
-------------
* Construction with an invalid month raises ``InvalidInputError``.

Audit relevance
---------------
Each entry records exactly which compensation, inputs and subsidy flags
produced its figures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from payroll_engines.earnings import (
    CompensationConfig,
    PayrollBreakdown,
    VariableInputs,
)
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import InvalidInputError
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.models")

__all__ = [
    "CompensationConfig",
    "DepartmentTotals",
    "Employee",
    "EmploymentStatus",
    "HolidayRecord",
    "PayrollBreakdown",
    "PayrollEntry",
    "PayrollPeriod",
    "PayrollSummary",
    "PeriodStatus",
    "PeriodTotals",
    "VariableInputs",
]


class PeriodStatus(str, Enum):
    """Payroll period lifecycle states (forward only)."""
    DRAFT = "draft"
    CALCULATED = "calculated"
    APPROVED = "approved"
    PAID = "paid"

    @property
    def is_locked(self) -> bool:
        """Approved and paid periods refuse entry changes."""
        return self in (PeriodStatus.APPROVED, PeriodStatus.PAID)


class EmploymentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Employee:
    """An employee record as read by payroll and HR."""
    id: UUID
    employee_number: str
    full_name: str
    hire_date: date
    compensation: CompensationConfig
    position: str = ""
    department: str | None = None
    dependents: int = 0
    status: EmploymentStatus = EmploymentStatus.ACTIVE
    termination_date: date | None = None

    def __post_init__(self):
        if self.dependents < 0:
            raise InvalidInputError("dependents", self.dependents)

    @property
    def is_active(self) -> bool:
        return self.status == EmploymentStatus.ACTIVE


@dataclass(frozen=True)
class HolidayRecord:
    """
    A scheduled vacation.

    ``subsidy_paid_in_month`` and ``subsidy_paid_in_year`` are set once the
    holiday subsidy for this vacation has been paid.
    """
    employee_id: UUID
    year: int
    holiday_month: int
    subsidy_paid_in_month: int | None = None
    subsidy_paid_in_year: int | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not 1 <= self.holiday_month <= 12:
            raise InvalidInputError("holiday_month", self.holiday_month)


@dataclass(frozen=True)
class PeriodTotals:
    """Sums over a period's entries."""
    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    employee_count: int = 0


@dataclass(frozen=True)
class PayrollPeriod:
    """One calendar month of payroll."""
    id: UUID
    year: int
    month: int
    status: PeriodStatus = PeriodStatus.DRAFT
    totals: PeriodTotals = field(default_factory=PeriodTotals)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    calculated_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    paid_at: datetime | None = None

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise InvalidInputError("month", self.month)
        if self.year < 1:
            raise InvalidInputError("year", self.year)

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True)
class PayrollEntry:
    """
    One employee's payroll for one period.

    The figures live in ``breakdown``; ``compensation``, ``inputs`` and the
    subsidy flags are the exact inputs that produced them.
    """
    id: UUID
    period_id: UUID
    employee_id: UUID
    compensation: CompensationConfig
    inputs: VariableInputs
    breakdown: PayrollBreakdown
    holiday_subsidy_due: bool = False
    include_thirteenth_month: bool = False
    months_worked: int = 12
    department: str | None = None
    status: PeriodStatus = PeriodStatus.DRAFT
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def gross_salary(self) -> Decimal:
        return self.breakdown.gross_salary

    @property
    def net_salary(self) -> Decimal:
        return self.breakdown.net_salary

    @property
    def total_deductions(self) -> Decimal:
        return self.breakdown.total_deductions

    @property
    def total_employer_cost(self) -> Decimal:
        return self.breakdown.total_employer_cost


@dataclass(frozen=True)
class DepartmentTotals:
    department: str
    employee_count: int
    total_gross: Decimal
    total_net: Decimal
    total_employer_cost: Decimal


@dataclass(frozen=True)
class PayrollSummary:
    """Period totals broken down by earnings/deduction category and department."""
    period_id: UUID
    year: int
    month: int
    status: PeriodStatus
    totals: PeriodTotals
    earnings: dict[str, Decimal]
    deductions: dict[str, Decimal]
    inss_employer: Decimal
    by_department: tuple[DepartmentTotals, ...]
