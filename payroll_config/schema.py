"""
Statutory rate table schema.

Defines the frozen data model for one jurisdiction's payroll tables: IRT
(employment income tax) brackets, INSS (social security) rates, overtime
premiums, allowance caps, subsidy rates, severance and notice schedules,
and the annual leave rule.  YAML documents are parsed into these types by
``payroll_config.loader`` and checked by ``payroll_config.validator``.

Tables are immutable once loaded; a new legal regime is a new table with
its own ``effective_from`` and ``legal_reference``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_kernel.domain.values import ZERO


# ---------------------------------------------------------------------------
# IRT
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IRTBracket:
    """One row of the progressive IRT table.

    ``max_amount`` is None for the open-ended top bracket.  Bounds are whole
    kwanza and inclusive; a bracket starting at ``min_amount`` covers every
    amount strictly above ``min_amount - 1``, so fractional incomes between
    two published rows still land in exactly one bracket.
    """

    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal
    fixed_amount: Decimal

    @property
    def lower_bound(self) -> Decimal:
        """Exclusive lower bound (``min - 1``), floored at zero."""
        return max(ZERO, self.min_amount - 1)

    def contains(self, amount: Decimal) -> bool:
        if self.min_amount == ZERO:
            above = amount >= ZERO
        else:
            above = amount > self.min_amount - 1
        if self.max_amount is None:
            return above
        return above and amount <= self.max_amount

    def tax_for(self, amount: Decimal) -> Decimal:
        """Unrounded tax: fixed amount plus rate on the excess over ``min - 1``."""
        if self.rate == ZERO:
            return self.fixed_amount
        return self.fixed_amount + self.rate * (amount - self.lower_bound)


# ---------------------------------------------------------------------------
# Contributions, premiums, caps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class INSSRates:
    """Social security contribution rates on the INSS base."""

    employee_rate: Decimal
    employer_rate: Decimal
    retired_employee_rate: Decimal = ZERO
    legal_reference: str = ""


@dataclass(frozen=True)
class OvertimePremiums:
    """Overtime pay multipliers applied to the hourly rate.

    Normal overtime is paid at ``normal_first_tier`` for the first
    ``normal_tier_threshold_hours`` cumulative hours in the month and at
    ``normal_second_tier`` beyond that.
    """

    normal_first_tier: Decimal
    normal_second_tier: Decimal
    normal_tier_threshold_hours: Decimal
    night: Decimal
    holiday: Decimal


@dataclass(frozen=True)
class AllowanceCaps:
    """IRT-exempt ceilings for allowances and the family allowance rule."""

    meal_exempt_cap: Decimal
    transport_exempt_cap: Decimal
    family_allowance_per_dependent: Decimal
    family_allowance_max_dependents: int


@dataclass(frozen=True)
class SubsidyRates:
    """Fractions of base salary paid as statutory subsidies.

    The ``termination_*`` fractions apply to the proportional subsidies in
    a final settlement.
    """

    thirteenth_month: Decimal
    holiday: Decimal
    termination_thirteenth_month: Decimal
    termination_holiday: Decimal


@dataclass(frozen=True)
class SeveranceSchedule:
    """Severance as a fraction of base salary per year of service."""

    full_rate_years: int
    full_rate: Decimal
    reduced_rate: Decimal
    contract_end_factor: Decimal
    partial_year_threshold_months: int


@dataclass(frozen=True)
class NoticeSchedule:
    """Notice period in days by completed service."""

    under_one_year_days: int
    up_to_three_years_days: int
    over_three_years_days: int

    def days_for(self, years_of_service: Decimal) -> int:
        if years_of_service < 1:
            return self.under_one_year_days
        if years_of_service <= 3:
            return self.up_to_three_years_days
        return self.over_three_years_days


@dataclass(frozen=True)
class AnnualLeaveRule:
    """Base annual leave plus one extra day per ``extra_day_every_years``."""

    base_days: int
    extra_day_every_years: int
    max_extra_days: int


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateTable:
    """All statutory payroll parameters in force from ``effective_from``."""

    name: str
    jurisdiction: str
    currency: str
    legal_reference: str
    effective_from: date
    irt_brackets: tuple[IRTBracket, ...]
    irt_exemption_ceiling: Decimal
    inss: INSSRates
    overtime: OvertimePremiums
    allowances: AllowanceCaps
    subsidies: SubsidyRates
    severance: SeveranceSchedule
    notice: NoticeSchedule
    annual_leave: AnnualLeaveRule
    checksum: str = ""
