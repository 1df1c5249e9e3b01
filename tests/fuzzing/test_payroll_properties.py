"""
Hypothesis property tests for the payroll and termination engines.

Properties:
1. Net salary is gross minus deductions; employer cost is gross plus employer INSS
2. Every amount of a breakdown is whole kwanza
3. INSS is 3% (0 when retired) and 8% of the INSS base, rounded
4. IRT is zero up to the exemption ceiling, positive above it, and never
   decreases with income
5. Exactly one IRT bracket covers any non-negative income
6. Absence deductions never decrease and saturate at the clamp limits
7. Clamped inputs always lie inside the policy ranges
8. A termination package total is the sum of its components
9. A same-day exit with nothing owed pays nothing
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from payroll_config import PayrollConfig, load_default_rate_table
from payroll_engines.earnings import (
    CompensationConfig,
    PayrollBreakdown,
    VariableInputs,
    absence_deduction,
    calculate_irt,
    calculate_payroll,
    clamp_variable_inputs,
)
from payroll_engines.termination import TerminationReason, calculate_termination_package
from payroll_kernel.domain.values import to_kwanza

TABLE = load_default_rate_table()
POLICY = PayrollConfig()

FUZZ_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


# =============================================================================
# Strategies
# =============================================================================


def kwanza(max_value: int = 5_000_000):
    return st.decimals(
        min_value=Decimal("0"),
        max_value=Decimal(max_value),
        places=0,
        allow_nan=False,
        allow_infinity=False,
    )


def hours(max_value: int = 300):
    return st.decimals(
        min_value=Decimal("-10"),
        max_value=Decimal(max_value),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


@composite
def compensations(draw):
    return CompensationConfig(
        base_salary=draw(kwanza()),
        meal_allowance=draw(kwanza(80_000)),
        transport_allowance=draw(kwanza(80_000)),
        family_allowance=draw(kwanza(30_000)),
        other_allowances=draw(kwanza(200_000)),
        monthly_bonus=draw(kwanza(200_000)),
        holiday_subsidy=draw(kwanza(500_000)),
        is_retired=draw(st.booleans()),
    )


@composite
def variable_inputs(draw):
    return VariableInputs(
        overtime_hours_normal=draw(hours(80)),
        overtime_hours_night=draw(hours(40)),
        overtime_hours_holiday=draw(hours(24)),
        days_absent=draw(hours(40)),
        delay_hours=draw(hours(250)),
        other_deductions=draw(kwanza(50_000)),
        loan_deduction=draw(kwanza(50_000)),
        advance_deduction=draw(kwanza(50_000)),
    )


@composite
def service_dates(draw):
    hire = draw(st.dates(min_value=date(1990, 1, 1), max_value=date(2024, 12, 31)))
    days = draw(st.integers(min_value=0, max_value=15_000))
    return hire, hire + timedelta(days=days)


# =============================================================================
# Payroll
# =============================================================================


class TestPayrollProperties:
    @FUZZ_SETTINGS
    @given(
        compensation=compensations(),
        inputs=variable_inputs(),
        holiday_due=st.booleans(),
        thirteenth=st.booleans(),
        months=st.integers(min_value=0, max_value=12),
    )
    def test_totals_are_consistent(self, compensation, inputs, holiday_due, thirteenth, months):
        b = calculate_payroll(
            compensation,
            inputs,
            holiday_subsidy_due=holiday_due,
            include_thirteenth_month=thirteenth,
            months_worked=months,
            table=TABLE,
        )

        assert b.net_salary == b.gross_salary - b.total_deductions
        assert b.total_employer_cost == b.gross_salary + b.inss_employer
        assert b.taxable_income == b.irt_taxable_gross - b.inss_employee
        assert b.irt >= 0
        if compensation.is_retired:
            assert b.inss_employee == 0
        if not holiday_due:
            assert b.holiday_subsidy == 0

    @FUZZ_SETTINGS
    @given(compensation=compensations(), inputs=variable_inputs())
    def test_amounts_are_whole_kwanza(self, compensation, inputs):
        b = calculate_payroll(compensation, inputs, table=TABLE)
        for name in PayrollBreakdown.EARNING_FIELDS + ("irt", "inss_employee", "inss_employer", "absence_deduction"):
            value = getattr(b, name)
            assert value == value.to_integral_value(), name

    @FUZZ_SETTINGS
    @given(compensation=compensations(), inputs=variable_inputs())
    def test_inss_is_rate_times_base(self, compensation, inputs):
        b = calculate_payroll(compensation, inputs, table=TABLE)

        employee_rate = Decimal("0") if compensation.is_retired else Decimal("0.03")
        assert b.inss_employee == to_kwanza(b.inss_base * employee_rate)
        assert b.inss_employer == to_kwanza(b.inss_base * Decimal("0.08"))


class TestIRTProperties:
    @given(income=st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2))
    def test_exempt_up_to_ceiling(self, income):
        assert calculate_irt(income, TABLE) == 0

    @FUZZ_SETTINGS
    @given(income=st.decimals(min_value=Decimal("100000.01"), max_value=Decimal("20000000"), places=2))
    def test_taxed_above_ceiling(self, income):
        assert calculate_irt(income, TABLE) > 0

    @FUZZ_SETTINGS
    @given(
        a=st.decimals(min_value=Decimal("0"), max_value=Decimal("20000000"), places=2),
        b=st.decimals(min_value=Decimal("0"), max_value=Decimal("20000000"), places=2),
    )
    def test_monotone(self, a, b):
        low, high = sorted((a, b))
        assert calculate_irt(low, TABLE) <= calculate_irt(high, TABLE)

    @FUZZ_SETTINGS
    @given(income=st.decimals(min_value=Decimal("0"), max_value=Decimal("50000000"), places=2))
    def test_exactly_one_bracket(self, income):
        matches = [b for b in TABLE.irt_brackets if b.contains(income)]
        assert len(matches) == 1


class TestAbsenceProperties:
    @FUZZ_SETTINGS
    @given(
        salary=kwanza(),
        days=st.tuples(hours(40), hours(40)),
        delay=st.tuples(hours(250), hours(250)),
    )
    def test_never_decreases(self, salary, days, delay):
        low_days, high_days = sorted(days)
        low_delay, high_delay = sorted(delay)
        assert absence_deduction(salary, low_days, low_delay, POLICY) <= absence_deduction(
            salary, high_days, high_delay, POLICY
        )

    @FUZZ_SETTINGS
    @given(salary=kwanza(), extra=st.integers(min_value=0, max_value=60))
    def test_saturates_at_clamp_limits(self, salary, extra):
        assert absence_deduction(salary, Decimal(30), Decimal(0), POLICY) == absence_deduction(
            salary, Decimal(26), Decimal(0), POLICY
        )
        assert absence_deduction(
            salary, Decimal(0), Decimal(208 + extra), POLICY
        ) == absence_deduction(salary, Decimal(0), Decimal(208), POLICY)


class TestClampProperties:
    @FUZZ_SETTINGS
    @given(inputs=variable_inputs())
    def test_within_policy_ranges(self, inputs):
        clamped = clamp_variable_inputs(inputs, POLICY)

        assert 0 <= clamped.days_absent <= POLICY.max_absence_days
        assert 0 <= clamped.delay_hours <= POLICY.max_delay_hours
        assert clamped.overtime_hours_normal >= 0
        assert clamp_variable_inputs(clamped, POLICY) == clamped


# =============================================================================
# Termination
# =============================================================================


class TestTerminationProperties:
    @FUZZ_SETTINGS
    @given(
        dates=service_dates(),
        reason=st.sampled_from(list(TerminationReason)),
        salary=kwanza(),
        unused=st.decimals(min_value=Decimal("0"), max_value=Decimal("60"), places=1),
        notice_honored=st.booleans(),
    )
    def test_total_is_sum_of_components(self, dates, reason, salary, unused, notice_honored):
        hire, end = dates
        package = calculate_termination_package(
            hire,
            end,
            reason,
            salary,
            unused_leave_days=unused,
            notice_honored=notice_honored,
            table=TABLE,
        )

        assert package.total_package == sum(package.components().values())
        assert all(v >= 0 for v in package.components().values())
        assert 0 <= package.months_in_final_year <= 12
        if reason in (TerminationReason.VOLUNTARY, TerminationReason.MUTUAL_AGREEMENT):
            assert package.severance_pay == 0
        if notice_honored:
            assert package.notice_compensation == 0

    @FUZZ_SETTINGS
    @given(
        day=st.dates(min_value=date(1990, 1, 1), max_value=date(2030, 12, 31)),
        reason=st.sampled_from(list(TerminationReason)),
        salary=kwanza(),
    )
    def test_same_day_exit_pays_nothing(self, day, reason, salary):
        package = calculate_termination_package(
            day, day, reason, salary, unused_leave_days=0, notice_honored=True, table=TABLE
        )

        assert package.severance_pay == 0
        assert package.total_package == 0
