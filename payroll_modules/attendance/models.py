"""
Attendance and Loan Models (``payroll_modules.attendance.models``).

Loans/advances repaid by monthly payroll deduction, one-off deductions
(warehouse losses, disciplinary discounts) applied to a payroll period, and
absence records whose unjustified days feed the absence deduction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from payroll_kernel.domain.values import ZERO, to_kwanza
from payroll_kernel.exceptions import InvalidInputError
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.attendance.models")


class LoanType(str, Enum):
    LOAN = "loan"
    ADVANCE = "advance"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Loan:
    """A loan or salary advance repaid by a fixed monthly deduction."""
    employee_id: UUID
    loan_type: LoanType
    amount: Decimal
    monthly_deduction: Decimal
    installments: int
    start_date: date
    remaining_amount: Decimal | None = None
    paid_installments: int = 0
    reason: str = ""
    approved_by: str | None = None
    status: LoanStatus = LoanStatus.ACTIVE
    end_date: date | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.amount < ZERO:
            raise InvalidInputError("amount", self.amount)
        if self.monthly_deduction < ZERO:
            raise InvalidInputError("monthly_deduction", self.monthly_deduction)
        if self.installments < 1:
            raise InvalidInputError("installments", self.installments)
        if self.remaining_amount is None:
            object.__setattr__(self, "remaining_amount", self.amount)
        elif self.remaining_amount < ZERO:
            raise InvalidInputError("remaining_amount", self.remaining_amount)

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE


@dataclass(frozen=True)
class LoanPayment:
    loan_id: UUID
    amount: Decimal
    paid_at: datetime
    payroll_period_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)


class DeductionType(str, Enum):
    SALARY_ADVANCE = "salary_advance"
    WAREHOUSE_LOSS = "warehouse_loss"
    LOAN = "loan"
    DISCIPLINARY = "disciplinary"
    OTHER = "other"


@dataclass(frozen=True)
class Deduction:
    """
    A one-off deduction taken from salary over ``installments`` months.

    Each payroll period applies one installment; ``payroll_period_id`` is
    the period that applied the latest one.
    """
    employee_id: UUID
    deduction_type: DeductionType
    amount: Decimal
    deduction_date: date
    description: str = ""
    installments: int = 1
    applied_installments: int = 0
    payroll_period_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.amount < ZERO:
            raise InvalidInputError("amount", self.amount)
        if self.installments < 1:
            raise InvalidInputError("installments", self.installments)
        if not 0 <= self.applied_installments <= self.installments:
            raise InvalidInputError("applied_installments", self.applied_installments)

    @property
    def is_applied(self) -> bool:
        return self.applied_installments >= self.installments

    @property
    def installment_amount(self) -> Decimal:
        """Amount due in the next period; the last installment takes the remainder."""
        if self.is_applied:
            return ZERO
        regular = to_kwanza(self.amount / self.installments)
        if self.applied_installments == self.installments - 1:
            return self.amount - regular * (self.installments - 1)
        return regular


class AbsenceType(str, Enum):
    UNJUSTIFIED = "unjustified"
    SICK_LEAVE = "sick_leave"
    WORK_ACCIDENT = "work_accident"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    MARRIAGE = "marriage"
    BEREAVEMENT = "bereavement"
    STUDY_LEAVE = "study_leave"
    UNION_ACTIVITY = "union_activity"
    COURT_SUMMONS = "court_summons"
    BLOOD_DONATION = "blood_donation"
    OTHER_JUSTIFIED = "other_justified"


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    JUSTIFIED = "justified"
    UNJUSTIFIED = "unjustified"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_deductible(self) -> bool:
        """Unjustified and rejected absences are deducted from salary."""
        return self in (AbsenceStatus.UNJUSTIFIED, AbsenceStatus.REJECTED)


@dataclass(frozen=True)
class Absence:
    """An absence spanning ``start_date`` to ``end_date`` inclusive."""
    employee_id: UUID
    absence_type: AbsenceType
    start_date: date
    end_date: date
    status: AbsenceStatus = AbsenceStatus.PENDING
    reason: str = ""
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise InvalidInputError(
                "end_date",
                self.end_date,
                f"Absence ends {self.end_date} before it starts {self.start_date}",
            )
