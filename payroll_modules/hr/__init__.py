"""
HR Module (``payroll_modules.hr``).

Salary adjustment approval workflow and termination processing.  Approval
is the only path that changes an employee's base salary.
"""

from payroll_modules.hr.models import (
    AdjustmentType,
    ApprovalStatus,
    AuditDelta,
    SalaryAdjustment,
    TerminationRecord,
)
from payroll_modules.hr.repository import (
    EmployeeDirectory,
    HRRepository,
    InMemoryEmployeeDirectory,
    InMemoryHRRepository,
)
from payroll_modules.hr.service import HRService
from payroll_modules.hr.workflows import SALARY_ADJUSTMENT_WORKFLOW

__all__ = [
    "AdjustmentType",
    "ApprovalStatus",
    "AuditDelta",
    "EmployeeDirectory",
    "HRRepository",
    "HRService",
    "InMemoryEmployeeDirectory",
    "InMemoryHRRepository",
    "SALARY_ADJUSTMENT_WORKFLOW",
    "SalaryAdjustment",
    "TerminationRecord",
]
