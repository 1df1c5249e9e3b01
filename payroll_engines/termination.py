"""
Termination Package Engine - final settlement on leaving the company.

Computes severance, proportional leave, proportional 13th month,
proportional holiday subsidy, notice compensation and unused-leave
compensation for a single termination event.  Pure; the caller supplies
dates, reason and the final base salary.

Rules:
    - Service for severance counts completed years, plus one more year
      when the remaining fraction is at least 3 months.
    - Dismissal and retirement: 100% of base per year for the first
      5 years, 50% per year after.  Contract end: half of that.
      Voluntary resignation and mutual agreement: no severance.
    - Proportional amounts use the months completed in the termination
      year, from ``max(hire_date, 1 January)`` through the termination
      date inclusive.
    - Proportional 13th month and holiday subsidy pay the full base
      salary per year, pro rata to those months.
    - Notice compensation is owed only when notice was not honoured.
    - Daily rate is base / 26.

Usage:
    from datetime import date
    from decimal import Decimal
    from payroll_engines.termination import (
        TerminationReason, calculate_termination_package,
    )

    package = calculate_termination_package(
        hire_date=date(2019, 3, 1),
        termination_date=date(2024, 6, 30),
        reason=TerminationReason.DISMISSAL,
        final_base_salary=Decimal("200000"),
    )
    print(package.total_package)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import resolve_rate_table
from payroll_config.schema import RateTable
from payroll_engines.earnings import annual_leave_days, daily_rate
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.periods import completed_months
from payroll_kernel.domain.values import ZERO, to_cents, to_kwanza
from payroll_kernel.exceptions import (
    InvalidInputError,
    NegativeSalaryError,
    NegativeServiceError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.termination")

_DAYS_PER_YEAR = Decimal("365.25")
_TWELVE = Decimal("12")


class TerminationReason(str, Enum):
    """Why the employment ended."""

    VOLUNTARY = "voluntary"
    DISMISSAL = "dismissal"
    CONTRACT_END = "contract_end"
    RETIREMENT = "retirement"
    MUTUAL_AGREEMENT = "mutual_agreement"


_FULL_SEVERANCE = frozenset({TerminationReason.DISMISSAL, TerminationReason.RETIREMENT})


@dataclass(frozen=True)
class TerminationPackage:
    """
    Final settlement for one termination.

    ``total_package`` is the exact sum of the six monetary components.
    """

    years_of_service: Decimal
    severance_years: int
    months_in_final_year: int
    daily_rate: Decimal
    severance_pay: Decimal
    proportional_leave: Decimal
    proportional_13th: Decimal
    proportional_holiday_subsidy: Decimal
    notice_period_days: int
    notice_compensation: Decimal
    unused_leave_compensation: Decimal
    total_package: Decimal

    def __post_init__(self) -> None:
        components = self.components()
        for name, amount in components.items():
            if amount < ZERO:
                raise ValueError(f"{name} cannot be negative (got {amount})")
        total = sum(components.values(), ZERO)
        if total != self.total_package:
            raise ValueError(
                f"total_package {self.total_package} != sum of components {total}"
            )

    def components(self) -> dict[str, Decimal]:
        return {
            "severance_pay": self.severance_pay,
            "proportional_leave": self.proportional_leave,
            "proportional_13th": self.proportional_13th,
            "proportional_holiday_subsidy": self.proportional_holiday_subsidy,
            "notice_compensation": self.notice_compensation,
            "unused_leave_compensation": self.unused_leave_compensation,
        }


def years_of_service(hire_date: date, termination_date: date) -> Decimal:
    """Fractional years between the dates (days / 365.25, 2 decimal places)."""
    if termination_date < hire_date:
        raise NegativeServiceError(hire_date.isoformat(), termination_date.isoformat())
    days = (termination_date - hire_date).days
    return to_cents(Decimal(days) / _DAYS_PER_YEAR)


def severance_years(
    hire_date: date,
    termination_date: date,
    table: RateTable | None = None,
) -> int:
    """Completed years, rounding a remainder of >= 3 months up to a full year."""
    if termination_date < hire_date:
        raise NegativeServiceError(hire_date.isoformat(), termination_date.isoformat())
    months = completed_months(hire_date, termination_date + timedelta(days=1))
    years, remainder = divmod(months, 12)
    if remainder >= resolve_rate_table(table).severance.partial_year_threshold_months:
        years += 1
    return years


def severance_pay(
    base_salary: Decimal,
    years: int,
    reason: TerminationReason,
    table: RateTable | None = None,
) -> Decimal:
    schedule = resolve_rate_table(table).severance
    reason = TerminationReason(reason)
    if reason in _FULL_SEVERANCE:
        factor = Decimal("1")
    elif reason is TerminationReason.CONTRACT_END:
        factor = schedule.contract_end_factor
    else:
        return ZERO
    full_years = min(years, schedule.full_rate_years)
    reduced_years = max(0, years - schedule.full_rate_years)
    amount = base_salary * (
        full_years * schedule.full_rate + reduced_years * schedule.reduced_rate
    )
    return to_kwanza(amount * factor)


def months_in_termination_year(hire_date: date, termination_date: date) -> int:
    """Months completed in the termination year, 0..12."""
    year_start = date(termination_date.year, 1, 1)
    start = max(hire_date, year_start)
    months = completed_months(start, termination_date + timedelta(days=1))
    return min(12, months)


@traced_engine(
    "termination",
    "1.0",
    fingerprint_fields=(
        "hire_date",
        "termination_date",
        "reason",
        "final_base_salary",
        "unused_leave_days",
        "notice_honored",
    ),
)
def calculate_termination_package(
    hire_date: date,
    termination_date: date,
    reason: TerminationReason,
    final_base_salary: Decimal,
    unused_leave_days: Decimal | int = 0,
    notice_honored: bool = True,
    table: RateTable | None = None,
    config: PayrollConfig | None = None,
) -> TerminationPackage:
    """
    Compute the full termination package.

    Raises:
        NegativeServiceError: termination_date precedes hire_date.
        NegativeSalaryError: final_base_salary is negative.
        InvalidInputError: unused_leave_days is negative.
    """
    rate_table = resolve_rate_table(table)
    policy = resolve_policy(config)
    reason = TerminationReason(reason)

    if final_base_salary < ZERO:
        raise NegativeSalaryError("final_base_salary", final_base_salary)
    unused = Decimal(unused_leave_days)
    if unused < ZERO:
        raise InvalidInputError("unused_leave_days", unused_leave_days)

    service = years_of_service(hire_date, termination_date)
    sev_years = severance_years(hire_date, termination_date, rate_table)
    months = months_in_termination_year(hire_date, termination_date)
    fraction = Decimal(months) / _TWELVE
    rate = daily_rate(final_base_salary, policy)

    leave_days = annual_leave_days(int(service), rate_table)
    subsidies = rate_table.subsidies

    severance = severance_pay(final_base_salary, sev_years, reason, rate_table)
    proportional_leave = to_kwanza(leave_days * rate * fraction)
    proportional_13th = to_kwanza(
        final_base_salary * subsidies.termination_thirteenth_month * fraction
    )
    proportional_holiday = to_kwanza(
        final_base_salary * subsidies.termination_holiday * fraction
    )
    notice_days = rate_table.notice.days_for(service)
    notice_compensation = ZERO if notice_honored else to_kwanza(notice_days * rate)
    unused_compensation = to_kwanza(unused * rate)

    total = (
        severance
        + proportional_leave
        + proportional_13th
        + proportional_holiday
        + notice_compensation
        + unused_compensation
    )

    logger.info(
        "termination_package_calculated",
        extra={
            "reason": reason.value,
            "years_of_service": str(service),
            "severance_years": sev_years,
            "months_in_final_year": months,
            "total_package": str(total),
        },
    )

    return TerminationPackage(
        years_of_service=service,
        severance_years=sev_years,
        months_in_final_year=months,
        daily_rate=rate,
        severance_pay=severance,
        proportional_leave=proportional_leave,
        proportional_13th=proportional_13th,
        proportional_holiday_subsidy=proportional_holiday,
        notice_period_days=notice_days,
        notice_compensation=notice_compensation,
        unused_leave_compensation=unused_compensation,
        total_package=total,
    )
