"""
Rate Table Validator (``payroll_config.validator``).

Responsibility
--------------
Checks a parsed ``RateTable`` for structural integrity before any payroll
is computed with it.

Invariants enforced
-------------------
* IRT brackets start at 0, are ordered, contiguous in whole kwanza
  (``next.min == prev.max + 1``), and end with exactly one open-ended
  bracket.
* Every rate (IRT, INSS, subsidies, severance) lies in [0, 1].
* The exemption ceiling equals the top of the zero-rate first bracket.
* Overtime multipliers are at least 1.

Failure modes
-------------
* Errors  -> ``RateTableError`` listing every problem found.
* Warnings (fixed amounts that do not accumulate the previous brackets)
  -> logged, table still usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import RateTable
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import RateTableError
from payroll_kernel.logging_config import get_logger

logger = get_logger("config.validator")

_ONE = Decimal("1")


@dataclass
class RateTableValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def check_rate_table(table: RateTable) -> RateTableValidationResult:
    """Collect every problem in ``table`` without raising."""
    result = RateTableValidationResult()
    _check_brackets(table, result)
    _check_rates(table, result)

    if table.overtime.normal_tier_threshold_hours < ZERO:
        result.add_error("overtime tier threshold must be non-negative")
    for label, multiplier in (
        ("normal_first_tier", table.overtime.normal_first_tier),
        ("normal_second_tier", table.overtime.normal_second_tier),
        ("night", table.overtime.night),
        ("holiday", table.overtime.holiday),
    ):
        if multiplier < _ONE:
            result.add_error(f"overtime {label} multiplier {multiplier} is below 1")

    caps = table.allowances
    if caps.meal_exempt_cap < ZERO or caps.transport_exempt_cap < ZERO:
        result.add_error("allowance exempt caps must be non-negative")
    if caps.family_allowance_per_dependent < ZERO:
        result.add_error("family allowance per dependent must be non-negative")
    if caps.family_allowance_max_dependents < 0:
        result.add_error("family allowance max dependents must be non-negative")

    notice = table.notice
    if not (
        0 <= notice.under_one_year_days
        <= notice.up_to_three_years_days
        <= notice.over_three_years_days
    ):
        result.add_error("notice days must be non-negative and non-decreasing")

    if table.annual_leave.extra_day_every_years <= 0:
        result.add_error("annual leave extra_day_every_years must be positive")
    if table.severance.full_rate_years < 0:
        result.add_error("severance full_rate_years must be non-negative")
    return result


def _check_brackets(table: RateTable, result: RateTableValidationResult) -> None:
    brackets = table.irt_brackets
    if not brackets:
        result.add_error("IRT table has no brackets")
        return

    if brackets[0].min_amount != ZERO:
        result.add_error(f"first IRT bracket starts at {brackets[0].min_amount}, not 0")

    for i, bracket in enumerate(brackets):
        if not (ZERO <= bracket.rate <= _ONE):
            result.add_error(f"IRT bracket {i} rate {bracket.rate} outside [0, 1]")
        if bracket.fixed_amount < ZERO:
            result.add_error(f"IRT bracket {i} fixed amount is negative")
        is_last = i == len(brackets) - 1
        if bracket.max_amount is None:
            if not is_last:
                result.add_error(f"IRT bracket {i} is open-ended but not the last")
            continue
        if is_last:
            result.add_error("last IRT bracket must be open-ended")
        if bracket.max_amount < bracket.min_amount:
            result.add_error(f"IRT bracket {i} max is below min")
            continue
        following = brackets[i + 1] if not is_last else None
        if following is None:
            continue
        if following.min_amount != bracket.max_amount + 1:
            result.add_error(
                f"IRT brackets {i} and {i + 1} are not contiguous "
                f"({bracket.max_amount} -> {following.min_amount})"
            )
            continue
        expected_fixed = bracket.tax_for(bracket.max_amount)
        if following.rate != ZERO and following.fixed_amount != expected_fixed:
            result.add_warning(
                f"IRT bracket {i + 1} fixed amount {following.fixed_amount} "
                f"differs from accumulated tax {expected_fixed}"
            )

    first = brackets[0]
    if first.rate != ZERO:
        result.add_error("first IRT bracket must be zero-rated")
    elif first.max_amount != table.irt_exemption_ceiling:
        result.add_error(
            f"exemption ceiling {table.irt_exemption_ceiling} does not match "
            f"zero-rate bracket top {first.max_amount}"
        )


def _check_rates(table: RateTable, result: RateTableValidationResult) -> None:
    for label, rate in (
        ("inss.employee_rate", table.inss.employee_rate),
        ("inss.employer_rate", table.inss.employer_rate),
        ("inss.retired_employee_rate", table.inss.retired_employee_rate),
        ("subsidies.thirteenth_month", table.subsidies.thirteenth_month),
        ("subsidies.holiday", table.subsidies.holiday),
        (
            "subsidies.termination.thirteenth_month",
            table.subsidies.termination_thirteenth_month,
        ),
        ("subsidies.termination.holiday", table.subsidies.termination_holiday),
        ("severance.full_rate", table.severance.full_rate),
        ("severance.reduced_rate", table.severance.reduced_rate),
        ("severance.contract_end_factor", table.severance.contract_end_factor),
    ):
        if not (ZERO <= rate <= _ONE):
            result.add_error(f"{label} {rate} outside [0, 1]")


def validate_rate_table(table: RateTable) -> RateTable:
    """Validate ``table`` and return it unchanged.

    Raises:
        RateTableError: One or more structural errors were found.
    """
    result = check_rate_table(table)
    for warning in result.warnings:
        logger.warning(
            "rate_table_warning",
            extra={"table_name": table.name, "warning": warning},
        )
    if not result.is_valid:
        logger.error(
            "rate_table_invalid",
            extra={"table_name": table.name, "problems": result.errors},
        )
        raise RateTableError(table.name, result.errors)
    return table
