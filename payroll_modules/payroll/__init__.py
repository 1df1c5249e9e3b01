"""
Payroll Module (``payroll_modules.payroll``).

Monthly payroll periods and their entries: generation from the employee
roster, per-entry edits, aggregate recomputation and the
draft -> calculated -> approved -> paid lifecycle.
"""

from payroll_modules.payroll.models import (
    DepartmentTotals,
    Employee,
    EmploymentStatus,
    HolidayRecord,
    PayrollEntry,
    PayrollPeriod,
    PayrollSummary,
    PeriodStatus,
    PeriodTotals,
)
from payroll_modules.payroll.repository import InMemoryPayrollRepository, PayrollRepository
from payroll_modules.payroll.service import PayrollService
from payroll_modules.payroll.workflows import PAYROLL_PERIOD_WORKFLOW

__all__ = [
    "DepartmentTotals",
    "Employee",
    "EmploymentStatus",
    "HolidayRecord",
    "InMemoryPayrollRepository",
    "PAYROLL_PERIOD_WORKFLOW",
    "PayrollEntry",
    "PayrollPeriod",
    "PayrollRepository",
    "PayrollService",
    "PayrollSummary",
    "PeriodStatus",
    "PeriodTotals",
]
