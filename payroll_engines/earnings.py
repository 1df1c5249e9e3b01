"""
Earnings/Deductions Engine - Angolan monthly payroll arithmetic.

Turns an employee's ``CompensationConfig`` plus one month's
``VariableInputs`` into a ``PayrollBreakdown``: earnings, INSS (social
security), IRT (income tax withheld at source), absence/delay deductions
and the resulting gross, net and employer cost.  Pure functions with no
I/O; the statutory rate table and company policy are parameters.

Formulas:
    inss_base          = base + transport + meal + 13th + overtime + other
    irt_taxable_gross  = base + excess(transport) + excess(meal)
                         + 13th + overtime + other
    taxable_income     = irt_taxable_gross - inss_employee
    gross              = base + meal + transport + family + other
                         + overtime + 13th + holiday subsidy + monthly bonus
    net                = gross - (irt + inss_employee + absence
                                  + loan + advance + other deductions)
    employer cost      = gross + inss_employer

Holiday subsidy and family allowance never enter the INSS base.  Every
statutory amount is rounded to whole kwanza (ROUND_HALF_UP); hourly and
daily rates keep full precision.

Usage:
    from decimal import Decimal
    from payroll_engines.earnings import (
        CompensationConfig, VariableInputs, calculate_payroll,
    )

    breakdown = calculate_payroll(
        CompensationConfig(
            base_salary=Decimal("150000"),
            meal_allowance=Decimal("30000"),
            transport_allowance=Decimal("30000"),
        ),
        VariableInputs(),
    )
    print(breakdown.inss_employee)  # 6300
    print(breakdown.irt)            # 5681
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from enum import Enum

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import resolve_rate_table
from payroll_config.schema import IRTBracket, RateTable
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO, clamp, to_kwanza, to_kwanza_up
from payroll_kernel.exceptions import (
    BracketNotFoundError,
    InvalidInputError,
    NegativeSalaryError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.earnings")

_TWELVE = Decimal("12")


class OvertimeType(str, Enum):
    """Overtime category; each carries its own premium."""

    NORMAL = "normal"
    NIGHT = "night"
    HOLIDAY = "holiday"  # holiday or weekly rest day


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class CompensationConfig:
    """
    The slice of an employee record the payroll engine reads.

    ``holiday_subsidy`` is the configured amount, paid only in the month
    before a scheduled vacation.  All amounts are monthly whole kwanza.
    """

    base_salary: Decimal
    meal_allowance: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    family_allowance: Decimal = ZERO
    other_allowances: Decimal = ZERO
    monthly_bonus: Decimal = ZERO
    holiday_subsidy: Decimal = ZERO
    is_retired: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name == "is_retired":
                continue
            value = getattr(self, f.name)
            if not isinstance(value, Decimal):
                raise TypeError(
                    f"{f.name} must be Decimal, got {type(value).__name__}"
                )
            if value < ZERO:
                raise NegativeSalaryError(f.name, value)


@dataclass(frozen=True)
class VariableInputs:
    """
    Per-employee, per-period inputs.

    Accepted as typed; out-of-range values are clamped by
    ``clamp_variable_inputs`` rather than rejected.
    """

    overtime_hours_normal: Decimal = ZERO
    overtime_hours_night: Decimal = ZERO
    overtime_hours_holiday: Decimal = ZERO
    days_absent: Decimal = ZERO
    delay_hours: Decimal = ZERO
    other_deductions: Decimal = ZERO
    loan_deduction: Decimal = ZERO
    advance_deduction: Decimal = ZERO

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, Decimal):
                raise TypeError(
                    f"{f.name} must be Decimal, got {type(value).__name__}"
                )


def clamp_variable_inputs(
    inputs: VariableInputs,
    config: PayrollConfig | None = None,
) -> VariableInputs:
    """
    Clamp every variable input into its documented range.

    Negative values become 0; absence days are capped at
    ``config.max_absence_days`` and delay hours at ``config.max_delay_hours``.
    Each adjustment is logged at WARNING.
    """
    policy = resolve_policy(config)
    upper = {
        "days_absent": policy.max_absence_days,
        "delay_hours": policy.max_delay_hours,
    }
    changes: dict[str, Decimal] = {}
    for f in fields(inputs):
        raw = getattr(inputs, f.name)
        bounded = max(ZERO, raw)
        if f.name in upper:
            bounded = min(bounded, upper[f.name])
        if bounded != raw:
            changes[f.name] = bounded
            logger.warning(
                "variable_input_clamped",
                extra={
                    "field": f.name,
                    "supplied": str(raw),
                    "clamped_to": str(bounded),
                },
            )
    if not changes:
        return inputs
    return replace(inputs, **changes)


# =============================================================================
# Rates
# =============================================================================


def hourly_rate(base_salary: Decimal, config: PayrollConfig | None = None) -> Decimal:
    """Base salary per standard hour (base / 176 by default)."""
    if base_salary < ZERO:
        raise NegativeSalaryError("base_salary", base_salary)
    return base_salary / resolve_policy(config).monthly_hours


def full_monthly_salary(compensation: CompensationConfig) -> Decimal:
    """Everything the employee is contractually owed for the month."""
    return (
        compensation.base_salary
        + compensation.meal_allowance
        + compensation.transport_allowance
        + compensation.family_allowance
        + compensation.other_allowances
        + compensation.monthly_bonus
        + compensation.holiday_subsidy
    )


def daily_rate(full_salary: Decimal, config: PayrollConfig | None = None) -> Decimal:
    return full_salary / resolve_policy(config).working_days_per_month


def hourly_delay_rate(full_salary: Decimal, config: PayrollConfig | None = None) -> Decimal:
    policy = resolve_policy(config)
    return daily_rate(full_salary, policy) / policy.hours_per_day


# =============================================================================
# Overtime
# =============================================================================


def overtime_pay(
    hourly_rate: Decimal,
    hours: Decimal,
    overtime_type: OvertimeType,
    hours_already_accrued: Decimal = ZERO,
    table: RateTable | None = None,
) -> Decimal:
    """
    Pay for ``hours`` of overtime at the premium for ``overtime_type``.

    Normal overtime is tiered against the cumulative monthly normal hours:
    hours that keep the running total at or below the threshold (30) are
    paid at the first tier (x1.5), the remainder at the second (x1.75).
    Night (x1.75) and holiday (x2.0) are flat.  Zero or negative hours pay 0.
    """
    if hours <= ZERO:
        return ZERO
    premiums = resolve_rate_table(table).overtime
    overtime_type = OvertimeType(overtime_type)

    if overtime_type is OvertimeType.NORMAL:
        accrued = max(ZERO, hours_already_accrued)
        first_tier_room = max(ZERO, premiums.normal_tier_threshold_hours - accrued)
        first_tier_hours = min(hours, first_tier_room)
        second_tier_hours = hours - first_tier_hours
        amount = hourly_rate * (
            first_tier_hours * premiums.normal_first_tier
            + second_tier_hours * premiums.normal_second_tier
        )
    elif overtime_type is OvertimeType.NIGHT:
        amount = hourly_rate * hours * premiums.night
    else:
        amount = hourly_rate * hours * premiums.holiday
    return to_kwanza(amount)


# =============================================================================
# INSS
# =============================================================================


def inss_base(
    base_salary: Decimal,
    transport_allowance: Decimal,
    meal_allowance: Decimal,
    thirteenth_month: Decimal,
    total_overtime: Decimal,
    other_allowances: Decimal,
) -> Decimal:
    """Contribution base.  Holiday subsidy and family allowance are excluded."""
    return (
        base_salary
        + transport_allowance
        + meal_allowance
        + thirteenth_month
        + total_overtime
        + other_allowances
    )


def calculate_inss(
    inss_base: Decimal,
    is_retired: bool = False,
    table: RateTable | None = None,
) -> tuple[Decimal, Decimal]:
    """
    Return ``(employee, employer)`` contributions.

    Retired employees pay the retired rate (0) on the employee side; the
    employer contribution always applies.
    """
    rates = resolve_rate_table(table).inss
    employee_rate = rates.retired_employee_rate if is_retired else rates.employee_rate
    employee = to_kwanza(inss_base * employee_rate)
    employer = to_kwanza(inss_base * rates.employer_rate)
    return employee, employer


# =============================================================================
# IRT
# =============================================================================


def taxable_excess(amount: Decimal, cap: Decimal) -> Decimal:
    """Portion of an allowance above its IRT-exempt cap."""
    return max(ZERO, amount - cap)


def irt_taxable_gross(
    base_salary: Decimal,
    transport_allowance: Decimal,
    meal_allowance: Decimal,
    thirteenth_month: Decimal,
    total_overtime: Decimal,
    other_allowances: Decimal,
    table: RateTable | None = None,
) -> Decimal:
    caps = resolve_rate_table(table).allowances
    return (
        base_salary
        + taxable_excess(transport_allowance, caps.transport_exempt_cap)
        + taxable_excess(meal_allowance, caps.meal_exempt_cap)
        + thirteenth_month
        + total_overtime
        + other_allowances
    )


def find_irt_bracket(taxable_income: Decimal, table: RateTable | None = None) -> IRTBracket:
    """
    The single bracket containing ``taxable_income``.

    Raises:
        BracketNotFoundError: No bracket matches (negative income or a
            broken table).
    """
    rate_table = resolve_rate_table(table)
    for bracket in rate_table.irt_brackets:
        if bracket.contains(taxable_income):
            return bracket
    raise BracketNotFoundError(taxable_income, rate_table.name)


def calculate_irt(taxable_income: Decimal, table: RateTable | None = None) -> Decimal:
    """IRT withheld on ``taxable_income``; 0 at or below the exemption ceiling.

    Rounded up to whole kwanza, so the first kwanza above the ceiling is taxed.
    """
    rate_table = resolve_rate_table(table)
    if taxable_income <= rate_table.irt_exemption_ceiling:
        return ZERO
    bracket = find_irt_bracket(taxable_income, rate_table)
    return to_kwanza_up(bracket.tax_for(taxable_income))


# =============================================================================
# Absences and subsidies
# =============================================================================


def absence_deduction(
    full_salary: Decimal,
    absence_days: Decimal,
    delay_hours: Decimal = ZERO,
    config: PayrollConfig | None = None,
) -> Decimal:
    """
    Deduction for unjustified absence days and delay hours.

    Days are clamped to [0, 26] and hours to [0, 208] before use.
    """
    policy = resolve_policy(config)
    days = clamp(absence_days, ZERO, policy.max_absence_days)
    hours = clamp(delay_hours, ZERO, policy.max_delay_hours)
    amount = (
        days * daily_rate(full_salary, policy)
        + hours * hourly_delay_rate(full_salary, policy)
    )
    return to_kwanza(amount)


def thirteenth_month(
    base_salary: Decimal,
    months_worked: Decimal | int,
    table: RateTable | None = None,
) -> Decimal:
    """Christmas subsidy: base x 0.5 x months worked / 12 (months in 0..12)."""
    months = clamp(Decimal(months_worked), ZERO, _TWELVE)
    rate = resolve_rate_table(table).subsidies.thirteenth_month
    return to_kwanza(base_salary * rate * months / _TWELVE)


def family_allowance_for(dependents: int, table: RateTable | None = None) -> Decimal:
    """Family allowance for a dependent count, capped at the statutory maximum."""
    if dependents < 0:
        raise InvalidInputError("dependents", dependents)
    caps = resolve_rate_table(table).allowances
    counted = min(dependents, caps.family_allowance_max_dependents)
    return caps.family_allowance_per_dependent * counted


def annual_leave_days(years_of_service: Decimal | int, table: RateTable | None = None) -> int:
    """Base leave days plus one per completed block of years, capped."""
    rule = resolve_rate_table(table).annual_leave
    if years_of_service < 0:
        raise InvalidInputError("years_of_service", years_of_service)
    extra = int(Decimal(years_of_service) // rule.extra_day_every_years)
    return rule.base_days + min(extra, rule.max_extra_days)


# =============================================================================
# Full computation
# =============================================================================


@dataclass(frozen=True)
class PayrollBreakdown:
    """
    Every figure of one employee's monthly payroll.

    Invariants (checked at construction):
        gross_salary        == sum of the earnings fields
        total_deductions    == irt + inss_employee + other deductions
        net_salary          == gross_salary - total_deductions
        total_employer_cost == gross_salary + inss_employer
    """

    # Earnings
    base_salary: Decimal
    meal_allowance: Decimal
    transport_allowance: Decimal
    family_allowance: Decimal
    other_allowances: Decimal
    monthly_bonus: Decimal
    overtime_normal: Decimal
    overtime_night: Decimal
    overtime_holiday: Decimal
    thirteenth_month: Decimal
    holiday_subsidy: Decimal
    # Statutory
    inss_base: Decimal
    irt_taxable_gross: Decimal
    taxable_income: Decimal
    irt: Decimal
    inss_employee: Decimal
    inss_employer: Decimal
    # Other deductions
    absence_deduction: Decimal
    loan_deduction: Decimal
    advance_deduction: Decimal
    other_deductions: Decimal
    # Totals
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    total_employer_cost: Decimal

    EARNING_FIELDS = (
        "base_salary",
        "meal_allowance",
        "transport_allowance",
        "family_allowance",
        "other_allowances",
        "monthly_bonus",
        "overtime_normal",
        "overtime_night",
        "overtime_holiday",
        "thirteenth_month",
        "holiday_subsidy",
    )
    DEDUCTION_FIELDS = (
        "irt",
        "inss_employee",
        "absence_deduction",
        "loan_deduction",
        "advance_deduction",
        "other_deductions",
    )

    def __post_init__(self) -> None:
        earnings = sum((getattr(self, n) for n in self.EARNING_FIELDS), ZERO)
        if earnings != self.gross_salary:
            raise ValueError(
                f"gross_salary {self.gross_salary} != sum of earnings {earnings}"
            )
        deductions = sum((getattr(self, n) for n in self.DEDUCTION_FIELDS), ZERO)
        if deductions != self.total_deductions:
            raise ValueError(
                f"total_deductions {self.total_deductions} != sum of deductions {deductions}"
            )
        if self.net_salary != self.gross_salary - self.total_deductions:
            raise ValueError("net_salary must equal gross_salary - total_deductions")
        if self.total_employer_cost != self.gross_salary + self.inss_employer:
            raise ValueError("total_employer_cost must equal gross_salary + inss_employer")

    @property
    def total_overtime(self) -> Decimal:
        return self.overtime_normal + self.overtime_night + self.overtime_holiday


@traced_engine(
    "payroll",
    "1.0",
    fingerprint_fields=(
        "compensation",
        "inputs",
        "holiday_subsidy_due",
        "include_thirteenth_month",
        "months_worked",
    ),
)
def calculate_payroll(
    compensation: CompensationConfig,
    inputs: VariableInputs,
    *,
    holiday_subsidy_due: bool = False,
    include_thirteenth_month: bool = False,
    months_worked: Decimal | int = 12,
    table: RateTable | None = None,
    config: PayrollConfig | None = None,
) -> PayrollBreakdown:
    """
    Compute one employee's full monthly payroll.

    Args:
        compensation: Static pay configuration.
        inputs: The month's variable inputs; clamped before use.
        holiday_subsidy_due: Pay the configured holiday subsidy this month.
        include_thirteenth_month: Pay the prorated 13th month this month.
        months_worked: Months worked in the year for 13th-month proration.
        table: Statutory rate table (default: shipped Angolan table).
        config: Company payroll policy (default: ``PayrollConfig()``).
    """
    rate_table = resolve_rate_table(table)
    policy = resolve_policy(config)
    inputs = clamp_variable_inputs(inputs, policy)
    c = compensation

    rate = hourly_rate(c.base_salary, policy)
    ot_normal = overtime_pay(
        rate, inputs.overtime_hours_normal, OvertimeType.NORMAL, table=rate_table
    )
    ot_night = overtime_pay(
        rate, inputs.overtime_hours_night, OvertimeType.NIGHT, table=rate_table
    )
    ot_holiday = overtime_pay(
        rate, inputs.overtime_hours_holiday, OvertimeType.HOLIDAY, table=rate_table
    )
    total_overtime = ot_normal + ot_night + ot_holiday

    thirteenth = (
        thirteenth_month(c.base_salary, months_worked, rate_table)
        if include_thirteenth_month
        else ZERO
    )
    holiday = c.holiday_subsidy if holiday_subsidy_due else ZERO

    base_for_inss = inss_base(
        c.base_salary,
        c.transport_allowance,
        c.meal_allowance,
        thirteenth,
        total_overtime,
        c.other_allowances,
    )
    inss_employee, inss_employer = calculate_inss(base_for_inss, c.is_retired, rate_table)

    taxable_gross = irt_taxable_gross(
        c.base_salary,
        c.transport_allowance,
        c.meal_allowance,
        thirteenth,
        total_overtime,
        c.other_allowances,
        rate_table,
    )
    taxable_income = taxable_gross - inss_employee
    irt = calculate_irt(taxable_income, rate_table)

    absence = absence_deduction(
        full_monthly_salary(c), inputs.days_absent, inputs.delay_hours, policy
    )

    gross = (
        c.base_salary
        + c.meal_allowance
        + c.transport_allowance
        + c.family_allowance
        + c.other_allowances
        + c.monthly_bonus
        + total_overtime
        + thirteenth
        + holiday
    )
    total_deductions = (
        irt
        + inss_employee
        + absence
        + inputs.loan_deduction
        + inputs.advance_deduction
        + inputs.other_deductions
    )
    net = gross - total_deductions
    if net < ZERO:
        logger.warning(
            "negative_net_salary",
            extra={"gross_salary": str(gross), "total_deductions": str(total_deductions)},
        )

    return PayrollBreakdown(
        base_salary=c.base_salary,
        meal_allowance=c.meal_allowance,
        transport_allowance=c.transport_allowance,
        family_allowance=c.family_allowance,
        other_allowances=c.other_allowances,
        monthly_bonus=c.monthly_bonus,
        overtime_normal=ot_normal,
        overtime_night=ot_night,
        overtime_holiday=ot_holiday,
        thirteenth_month=thirteenth,
        holiday_subsidy=holiday,
        inss_base=base_for_inss,
        irt_taxable_gross=taxable_gross,
        taxable_income=taxable_income,
        irt=irt,
        inss_employee=inss_employee,
        inss_employer=inss_employer,
        absence_deduction=absence,
        loan_deduction=inputs.loan_deduction,
        advance_deduction=inputs.advance_deduction,
        other_deductions=inputs.other_deductions,
        gross_salary=gross,
        total_deductions=total_deductions,
        net_salary=net,
        total_employer_cost=gross + inss_employer,
    )
