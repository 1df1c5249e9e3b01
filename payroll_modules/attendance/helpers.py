"""
Attendance and loan helpers -- pure functions feeding ``VariableInputs``.

Working days exclude Sundays only (six-day week).  Absence days are
clipped to the payroll month before they are counted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from payroll_engines.earnings import VariableInputs
from payroll_kernel.domain.periods import month_bounds
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import InvalidInputError, InvalidTransitionError
from payroll_kernel.logging_config import get_logger
from payroll_modules.attendance.models import (
    Absence,
    Deduction,
    Loan,
    LoanPayment,
    LoanStatus,
    LoanType,
)

logger = get_logger("modules.attendance.helpers")

_SUNDAY = 6


def record_loan_payment(
    loan: Loan,
    amount: Decimal,
    paid_at: datetime,
    payroll_period_id: UUID | None = None,
) -> tuple[Loan, LoanPayment]:
    """
    Apply one repayment.

    The remaining balance never drops below zero; the loan is marked paid
    when it reaches zero.
    """
    if not loan.is_active:
        raise InvalidTransitionError(
            workflow="loan",
            entity_id=str(loan.id),
            current_state=loan.status.value,
            action="record_payment",
        )
    if amount < ZERO:
        raise InvalidInputError("amount", amount)

    remaining = max(ZERO, loan.remaining_amount - amount)
    paid_off = remaining == ZERO
    updated = replace(
        loan,
        remaining_amount=remaining,
        paid_installments=loan.paid_installments + 1,
        status=LoanStatus.PAID if paid_off else LoanStatus.ACTIVE,
        end_date=paid_at.date() if paid_off else None,
    )
    payment = LoanPayment(
        loan_id=loan.id,
        amount=amount,
        paid_at=paid_at,
        payroll_period_id=payroll_period_id,
    )
    logger.info(
        "loan_payment_recorded",
        extra={
            "loan_id": str(loan.id),
            "employee_id": str(loan.employee_id),
            "amount": str(amount),
            "remaining_amount": str(remaining),
            "paid_off": paid_off,
        },
    )
    return updated, payment


def monthly_loan_deductions(loans: Iterable[Loan], employee_id: UUID) -> tuple[Decimal, Decimal]:
    """
    ``(loan_total, advance_total)`` due this month from the employee's
    active loans.  A final installment never exceeds the remaining balance.
    """
    loan_total = advance_total = ZERO
    for loan in loans:
        if loan.employee_id != employee_id or not loan.is_active:
            continue
        due = min(loan.monthly_deduction, loan.remaining_amount)
        if loan.loan_type is LoanType.ADVANCE:
            advance_total += due
        else:
            loan_total += due
    return loan_total, advance_total


def pending_deductions(deductions: Iterable[Deduction], employee_id: UUID) -> list[Deduction]:
    return [d for d in deductions if d.employee_id == employee_id and not d.is_applied]


def pending_deduction_total(deductions: Iterable[Deduction], employee_id: UUID) -> Decimal:
    """Installments due next period across the employee's pending deductions."""
    return sum(
        (d.installment_amount for d in pending_deductions(deductions, employee_id)),
        ZERO,
    )


def apply_deduction(deduction: Deduction, payroll_period_id: UUID) -> Deduction:
    """Take one installment of ``deduction`` in the given payroll period."""
    if deduction.is_applied:
        raise InvalidTransitionError(
            workflow="deduction",
            entity_id=str(deduction.id),
            current_state="applied",
            action="apply",
        )
    amount = deduction.installment_amount
    updated = replace(
        deduction,
        applied_installments=deduction.applied_installments + 1,
        payroll_period_id=payroll_period_id,
    )
    logger.info(
        "deduction_applied",
        extra={
            "deduction_id": str(deduction.id),
            "employee_id": str(deduction.employee_id),
            "payroll_period_id": str(payroll_period_id),
            "amount": str(amount),
            "fully_applied": updated.is_applied,
        },
    )
    return updated


def working_days_between(start: date, end: date) -> int:
    """Days from ``start`` to ``end`` inclusive, Sundays excluded."""
    if end < start:
        return 0
    days = 0
    current = start
    while current <= end:
        if current.weekday() != _SUNDAY:
            days += 1
        current += timedelta(days=1)
    return days


def unjustified_absence_days(
    absences: Iterable[Absence],
    employee_id: UUID,
    year: int,
    month: int,
) -> Decimal:
    """Deductible absence days of the employee falling inside the month."""
    month_start, month_end = month_bounds(year, month)
    total = 0
    for absence in absences:
        if absence.employee_id != employee_id or not absence.status.is_deductible:
            continue
        start = max(absence.start_date, month_start)
        end = min(absence.end_date, month_end)
        total += working_days_between(start, end)
    return Decimal(total)


def build_variable_inputs(
    employee_id: UUID,
    year: int,
    month: int,
    loans: Iterable[Loan] = (),
    absences: Iterable[Absence] = (),
    deductions: Iterable[Deduction] = (),
    *,
    overtime_hours_normal: Decimal = ZERO,
    overtime_hours_night: Decimal = ZERO,
    overtime_hours_holiday: Decimal = ZERO,
    delay_hours: Decimal = ZERO,
    other_deductions: Decimal = ZERO,
) -> VariableInputs:
    """
    Assemble one employee's month of variable inputs from HR records.

    ``other_deductions`` is added to the installments of the employee's
    pending deductions.
    """
    loan_total, advance_total = monthly_loan_deductions(loans, employee_id)
    return VariableInputs(
        overtime_hours_normal=overtime_hours_normal,
        overtime_hours_night=overtime_hours_night,
        overtime_hours_holiday=overtime_hours_holiday,
        days_absent=unjustified_absence_days(absences, employee_id, year, month),
        delay_hours=delay_hours,
        other_deductions=other_deductions + pending_deduction_total(deductions, employee_id),
        loan_deduction=loan_total,
        advance_deduction=advance_total,
    )
