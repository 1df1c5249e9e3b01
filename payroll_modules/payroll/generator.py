"""
Payroll Entry Generator (``payroll_modules.payroll.generator``).

Responsibility
--------------
Builds one ``PayrollEntry`` per active employee for a period and sums
entries into ``PeriodTotals``.  Decides, per employee, whether the
holiday subsidy is due this month and how many months of the year count
towards the 13th month.

Architecture position
---------------------
**Modules layer** -- pure functions.  Delegates every figure to
``payroll_engines.earnings.calculate_payroll``; takes ``now`` as a
parameter instead of reading a clock.

Invariants enforced
-------------------
* Only employees with status ``active`` get an entry.
* Holiday subsidy is paid in month P only when a holiday record schedules
  the vacation for month P+1 (rolling over the year end) and the subsidy
  for that vacation has not been paid yet.  Otherwise it contributes 0,
  whatever the configured amount.
* A vacation's subsidy is marked paid at most once
  (``mark_subsidy_paid``); ``settle_holiday_subsidies`` marks the records
  whose subsidy a period paid out.
* Variable inputs are clamped once, here, and the clamped values are what
  the entry stores.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime
from uuid import UUID, uuid4

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import resolve_rate_table
from payroll_config.schema import RateTable
from payroll_engines.earnings import (
    CompensationConfig,
    VariableInputs,
    calculate_payroll,
    clamp_variable_inputs,
)
from payroll_kernel.domain.periods import completed_months, next_month, validate_month
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import InvalidTransitionError
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import (
    Employee,
    HolidayRecord,
    PayrollEntry,
    PayrollPeriod,
    PeriodTotals,
)

logger = get_logger("modules.payroll.generator")


def employees_due_holiday_subsidy(
    holiday_records: Iterable[HolidayRecord],
    year: int,
    month: int,
) -> set[UUID]:
    """Employees whose vacation falls next month and whose subsidy is unpaid."""
    return {
        record.employee_id
        for record in holiday_records
        if _subsidy_due(record, year, month)
    }


def _subsidy_due(record: HolidayRecord, year: int, month: int) -> bool:
    due_year, due_month = next_month(year, month)
    return (
        record.year == due_year
        and record.holiday_month == due_month
        and record.subsidy_paid_in_month is None
    )


def mark_subsidy_paid(record: HolidayRecord, year: int, month: int) -> HolidayRecord:
    """Record that the subsidy for this vacation was paid in ``year``/``month``."""
    validate_month(month)
    if record.subsidy_paid_in_month is not None:
        raise InvalidTransitionError(
            workflow="holiday_subsidy",
            entity_id=str(record.id),
            current_state="paid",
            action="mark_paid",
        )
    logger.info(
        "holiday_subsidy_marked_paid",
        extra={
            "employee_id": str(record.employee_id),
            "holiday_year": record.year,
            "holiday_month": record.holiday_month,
            "paid_in_year": year,
            "paid_in_month": month,
        },
    )
    return replace(record, subsidy_paid_in_month=month, subsidy_paid_in_year=year)


def settle_holiday_subsidies(
    holiday_records: Iterable[HolidayRecord],
    entries: Iterable[PayrollEntry],
    year: int,
    month: int,
) -> list[HolidayRecord]:
    """
    Mark paid every record whose subsidy the period's entries paid out.

    Records not due this period, or whose employee has no entry with
    ``holiday_subsidy_due``, come back unchanged.
    """
    paid_to = {e.employee_id for e in entries if e.holiday_subsidy_due}
    settled = []
    for record in holiday_records:
        if record.employee_id in paid_to and _subsidy_due(record, year, month):
            record = mark_subsidy_paid(record, year, month)
        settled.append(record)
    return settled


def months_worked_in_year(hire_date: date, year: int, month: int) -> int:
    """Months worked from ``max(hire_date, 1 Jan)`` through the end of ``month``."""
    period_end_exclusive = date(*next_month(year, month), 1)
    start = max(hire_date, date(year, 1, 1))
    return min(12, completed_months(start, period_end_exclusive))


def build_entry(
    period: PayrollPeriod,
    employee: Employee,
    inputs: VariableInputs,
    *,
    holiday_subsidy_due: bool = False,
    include_thirteenth_month: bool = False,
    months_worked: int = 12,
    now: datetime | None = None,
    table: RateTable | None = None,
    config: PayrollConfig | None = None,
) -> PayrollEntry:
    """Compute a new entry for ``employee`` from their current compensation."""
    return _compute_entry(
        period,
        employee.id,
        employee.compensation,
        inputs,
        holiday_subsidy_due=holiday_subsidy_due,
        include_thirteenth_month=include_thirteenth_month,
        months_worked=months_worked,
        department=employee.department,
        now=now,
        table=table,
        config=config,
    )


def _compute_entry(
    period: PayrollPeriod,
    employee_id: UUID,
    compensation: CompensationConfig,
    inputs: VariableInputs,
    *,
    holiday_subsidy_due: bool,
    include_thirteenth_month: bool,
    months_worked: int,
    department: str | None,
    now: datetime | None,
    table: RateTable | None,
    config: PayrollConfig | None,
    entry_id: UUID | None = None,
    created_at: datetime | None = None,
) -> PayrollEntry:
    policy = resolve_policy(config)
    clamped = clamp_variable_inputs(inputs, policy)
    breakdown = calculate_payroll(
        compensation,
        clamped,
        holiday_subsidy_due=holiday_subsidy_due,
        include_thirteenth_month=include_thirteenth_month,
        months_worked=months_worked,
        table=resolve_rate_table(table),
        config=policy,
    )
    return PayrollEntry(
        id=entry_id or uuid4(),
        period_id=period.id,
        employee_id=employee_id,
        compensation=compensation,
        inputs=clamped,
        breakdown=breakdown,
        holiday_subsidy_due=holiday_subsidy_due,
        include_thirteenth_month=include_thirteenth_month,
        months_worked=months_worked,
        department=department,
        status=period.status,
        created_at=created_at or now,
        updated_at=now,
    )


def rebuild_entry(
    entry: PayrollEntry,
    period: PayrollPeriod,
    *,
    inputs: VariableInputs | None = None,
    include_thirteenth_month: bool | None = None,
    months_worked: int | None = None,
    now: datetime | None = None,
    table: RateTable | None = None,
    config: PayrollConfig | None = None,
) -> PayrollEntry:
    """Fully recompute ``entry`` from its stored snapshot with the given changes.

    The entry keeps its id and creation time.
    """
    return _compute_entry(
        period,
        entry.employee_id,
        entry.compensation,
        inputs if inputs is not None else entry.inputs,
        holiday_subsidy_due=entry.holiday_subsidy_due,
        include_thirteenth_month=(
            entry.include_thirteenth_month
            if include_thirteenth_month is None
            else include_thirteenth_month
        ),
        months_worked=entry.months_worked if months_worked is None else months_worked,
        department=entry.department,
        now=now,
        entry_id=entry.id,
        created_at=entry.created_at,
        table=table,
        config=config,
    )


def generate_entries(
    period: PayrollPeriod,
    employees: Sequence[Employee],
    inputs_by_employee: Mapping[UUID, VariableInputs] | None = None,
    holiday_records: Iterable[HolidayRecord] = (),
    include_thirteenth_month: bool = False,
    *,
    now: datetime | None = None,
    table: RateTable | None = None,
    config: PayrollConfig | None = None,
) -> list[PayrollEntry]:
    """
    Build entries for every active employee in ``employees``.

    Employees without supplied inputs get zero variable inputs.
    """
    rate_table = resolve_rate_table(table)
    policy = resolve_policy(config)
    supplied = inputs_by_employee or {}
    due = employees_due_holiday_subsidy(holiday_records, period.year, period.month)

    entries: list[PayrollEntry] = []
    skipped = 0
    for employee in employees:
        if not employee.is_active:
            skipped += 1
            continue
        months = (
            months_worked_in_year(employee.hire_date, period.year, period.month)
            if include_thirteenth_month
            else 12
        )
        entries.append(
            build_entry(
                period,
                employee,
                supplied.get(employee.id, VariableInputs()),
                holiday_subsidy_due=employee.id in due,
                include_thirteenth_month=include_thirteenth_month,
                months_worked=months,
                now=now,
                table=rate_table,
                config=policy,
            )
        )

    logger.info(
        "payroll_entries_generated",
        extra={
            "period_id": str(period.id),
            "period": period.label,
            "entry_count": len(entries),
            "skipped_inactive": skipped,
            "holiday_subsidy_count": sum(1 for e in entries if e.holiday_subsidy_due),
            "include_thirteenth_month": include_thirteenth_month,
        },
    )
    return entries


def aggregate_entries(entries: Iterable[PayrollEntry]) -> PeriodTotals:
    """Sum gross, net, deductions and employer cost over ``entries``."""
    gross = net = deductions = employer_cost = ZERO
    count = 0
    for entry in entries:
        gross += entry.gross_salary
        net += entry.net_salary
        deductions += entry.total_deductions
        employer_cost += entry.total_employer_cost
        count += 1
    return PeriodTotals(
        total_gross=gross,
        total_net=net,
        total_deductions=deductions,
        total_employer_cost=employer_cost,
        employee_count=count,
    )


def with_status(entries: Iterable[PayrollEntry], period: PayrollPeriod, now: datetime | None) -> list[PayrollEntry]:
    """Copies of ``entries`` mirroring ``period.status``."""
    return [replace(e, status=period.status, updated_at=now) for e in entries]
