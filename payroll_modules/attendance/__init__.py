"""
Attendance Module (``payroll_modules.attendance``).

Loans, salary advances, one-off deductions and absence records, reduced to
the monthly ``VariableInputs`` the payroll engine consumes.
"""

from payroll_modules.attendance.helpers import (
    apply_deduction,
    build_variable_inputs,
    monthly_loan_deductions,
    pending_deduction_total,
    pending_deductions,
    record_loan_payment,
    unjustified_absence_days,
    working_days_between,
)
from payroll_modules.attendance.models import (
    Absence,
    AbsenceStatus,
    AbsenceType,
    Deduction,
    DeductionType,
    Loan,
    LoanPayment,
    LoanStatus,
    LoanType,
)

__all__ = [
    "Absence",
    "AbsenceStatus",
    "AbsenceType",
    "Deduction",
    "DeductionType",
    "Loan",
    "LoanPayment",
    "LoanStatus",
    "LoanType",
    "apply_deduction",
    "build_variable_inputs",
    "monthly_loan_deductions",
    "pending_deduction_total",
    "pending_deductions",
    "record_loan_payment",
    "unjustified_absence_days",
    "working_days_between",
]
