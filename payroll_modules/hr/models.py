"""
HR Domain Models (``payroll_modules.hr.models``).

Salary adjustments, termination records and the audit deltas written when
either changes an employee.  Frozen dataclasses; amounts are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from payroll_engines.termination import TerminationPackage, TerminationReason
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.hr.models")

__all__ = [
    "AdjustmentType",
    "ApprovalStatus",
    "AuditDelta",
    "SalaryAdjustment",
    "TerminationPackage",
    "TerminationReason",
    "TerminationRecord",
]


class AdjustmentType(str, Enum):
    RAISE = "raise"
    PROMOTION = "promotion"
    DEMOTION = "demotion"
    CORRECTION = "correction"
    ANNUAL_REVIEW = "annual_review"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_resolved(self) -> bool:
        return self is not ApprovalStatus.PENDING


@dataclass(frozen=True)
class SalaryAdjustment:
    """
    A requested change to an employee's base salary (and maybe position).

    ``change_amount`` and ``change_percent`` are fixed at request time
    against the salary current then.
    """
    id: UUID
    employee_id: UUID
    employee_name: str
    adjustment_type: AdjustmentType
    effective_date: date
    previous_salary: Decimal
    new_salary: Decimal
    change_amount: Decimal
    change_percent: Decimal
    reason: str
    requested_by: str
    requested_at: datetime
    previous_position: str | None = None
    new_position: str | None = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class AuditDelta:
    """Before/after snapshot of an employee change."""
    action: str
    entity_id: UUID
    actor: str
    occurred_at: datetime
    previous_value: dict[str, str]
    new_value: dict[str, str]
    description: str = ""
    entity_type: str = "employee"
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class TerminationRecord:
    """A processed termination and the package it produced."""
    id: UUID
    employee_id: UUID
    employee_name: str
    termination_date: date
    reason: TerminationReason
    final_base_salary: Decimal
    unused_leave_days: Decimal
    notice_honored: bool
    package: TerminationPackage
    processed_by: str
    processed_at: datetime
    reason_details: str | None = None

    @property
    def total_package(self) -> Decimal:
        return self.package.total_package
