"""
Tests for the earnings/deductions engine.

Covers:
- Hourly, daily and delay rates
- Tiered, night and holiday overtime
- INSS base and contributions, including retired employees
- IRT taxable gross, bracket lookup and tax
- Absence/delay deductions and their clamps
- 13th month, family allowance and annual leave
- Full payroll computation and its invariants
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from payroll_config import PayrollConfig, load_default_rate_table
from payroll_engines.earnings import (
    CompensationConfig,
    OvertimeType,
    PayrollBreakdown,
    VariableInputs,
    absence_deduction,
    annual_leave_days,
    calculate_inss,
    calculate_irt,
    calculate_payroll,
    clamp_variable_inputs,
    daily_rate,
    family_allowance_for,
    find_irt_bracket,
    full_monthly_salary,
    hourly_delay_rate,
    hourly_rate,
    inss_base,
    irt_taxable_gross,
    overtime_pay,
    taxable_excess,
    thirteenth_month,
)
from payroll_kernel.exceptions import (
    BracketNotFoundError,
    InvalidInputError,
    NegativeSalaryError,
)

TABLE = load_default_rate_table()


def make_compensation(**overrides) -> CompensationConfig:
    values = {
        "base_salary": Decimal("150000"),
        "meal_allowance": Decimal("30000"),
        "transport_allowance": Decimal("30000"),
    }
    values.update(overrides)
    return CompensationConfig(**values)


# =============================================================================
# Rates
# =============================================================================


class TestRates:
    """Hourly rate uses base salary; daily and delay rates use the full salary."""

    def test_hourly_rate_is_base_over_176(self):
        assert hourly_rate(Decimal("176000")) == Decimal("1000")

    def test_hourly_rate_rejects_negative_base(self):
        with pytest.raises(NegativeSalaryError, match="base_salary"):
            hourly_rate(Decimal("-1"))

    def test_full_monthly_salary_sums_contractual_pay(self):
        comp = make_compensation(
            family_allowance=Decimal("5000"),
            other_allowances=Decimal("2000"),
            monthly_bonus=Decimal("3000"),
            holiday_subsidy=Decimal("75000"),
        )
        assert full_monthly_salary(comp) == Decimal("295000")

    def test_daily_rate_divides_by_26(self):
        assert daily_rate(Decimal("260000")) == Decimal("10000")

    def test_delay_rate_is_daily_over_8(self):
        assert hourly_delay_rate(Decimal("208000")) == Decimal("1000")

    def test_custom_policy_divisors(self):
        policy = PayrollConfig(working_days_per_month=Decimal("22"))
        assert daily_rate(Decimal("220000"), policy) == Decimal("10000")


# =============================================================================
# Overtime
# =============================================================================


class TestOvertime:
    """Overtime premiums; base 176000 gives an hourly rate of exactly 1000."""

    RATE = Decimal("1000")

    def test_normal_within_first_tier(self):
        assert overtime_pay(self.RATE, Decimal("10"), OvertimeType.NORMAL) == Decimal("15000")

    def test_normal_exactly_at_threshold(self):
        assert overtime_pay(self.RATE, Decimal("30"), OvertimeType.NORMAL) == Decimal("45000")

    def test_normal_spills_into_second_tier(self):
        # 30h x 1.5 + 10h x 1.75
        assert overtime_pay(self.RATE, Decimal("40"), OvertimeType.NORMAL) == Decimal("62500")

    def test_already_accrued_hours_shift_the_tier(self):
        # 5h left in the first tier, 5h in the second
        pay = overtime_pay(
            self.RATE, Decimal("10"), OvertimeType.NORMAL, hours_already_accrued=Decimal("25")
        )
        assert pay == Decimal("16250")

    def test_accrued_beyond_threshold_pays_second_tier_only(self):
        pay = overtime_pay(
            self.RATE, Decimal("4"), OvertimeType.NORMAL, hours_already_accrued=Decimal("35")
        )
        assert pay == Decimal("7000")

    def test_night_is_flat_175(self):
        assert overtime_pay(self.RATE, Decimal("4"), OvertimeType.NIGHT) == Decimal("7000")

    def test_holiday_is_double(self):
        assert overtime_pay(self.RATE, Decimal("8"), OvertimeType.HOLIDAY) == Decimal("16000")

    def test_zero_and_negative_hours_pay_nothing(self):
        assert overtime_pay(self.RATE, Decimal("0"), OvertimeType.NORMAL) == Decimal("0")
        assert overtime_pay(self.RATE, Decimal("-3"), OvertimeType.HOLIDAY) == Decimal("0")

    def test_accepts_string_type(self):
        assert overtime_pay(self.RATE, Decimal("1"), "night") == Decimal("1750")

    def test_result_rounded_to_whole_kwanza(self):
        rate = hourly_rate(Decimal("150000"))  # 852.2727...
        assert overtime_pay(rate, Decimal("1"), OvertimeType.NORMAL) == Decimal("1278")


# =============================================================================
# INSS
# =============================================================================


class TestINSS:
    """INSS contribution base and rates."""

    def test_base_includes_allowances_overtime_and_13th(self):
        base = inss_base(
            Decimal("150000"),
            Decimal("30000"),
            Decimal("30000"),
            Decimal("75000"),
            Decimal("10000"),
            Decimal("5000"),
        )
        assert base == Decimal("300000")

    def test_contributions_three_and_eight_percent(self):
        assert calculate_inss(Decimal("210000")) == (Decimal("6300"), Decimal("16800"))

    def test_retired_employee_pays_nothing(self):
        employee, employer = calculate_inss(Decimal("210000"), is_retired=True)
        assert employee == Decimal("0")
        assert employer == Decimal("16800")

    def test_rounding_half_up(self):
        # 3% of 50 = 1.5 -> 2
        employee, _ = calculate_inss(Decimal("50"))
        assert employee == Decimal("2")


# =============================================================================
# IRT
# =============================================================================


class TestIRT:
    """Progressive IRT on taxable income after employee INSS."""

    def test_taxable_excess(self):
        assert taxable_excess(Decimal("40000"), Decimal("30000")) == Decimal("10000")
        assert taxable_excess(Decimal("20000"), Decimal("30000")) == Decimal("0")

    def test_taxable_gross_excludes_allowances_up_to_cap(self):
        gross = irt_taxable_gross(
            Decimal("150000"),
            Decimal("30000"),
            Decimal("40000"),
            Decimal("0"),
            Decimal("0"),
            Decimal("0"),
        )
        assert gross == Decimal("160000")

    @pytest.mark.parametrize(
        "taxable, expected",
        [
            ("0", "0"),
            ("100000", "0"),
            ("143700", "5681"),
            ("150000", "6500"),
            ("200000", "14500"),
            ("250000", "23500"),
            ("12000000", "2825500"),
        ],
    )
    def test_tax_by_bracket(self, taxable, expected):
        assert calculate_irt(Decimal(taxable)) == Decimal(expected)

    def test_first_kwanza_above_ceiling_is_taxed(self):
        assert calculate_irt(Decimal("100000")) == Decimal("0")
        assert calculate_irt(Decimal("100001")) > 0
        assert calculate_irt(Decimal("100001")) == Decimal("1")

    def test_fractions_round_up(self):
        # 0.13 x 0.40 = 0.052
        assert calculate_irt(Decimal("100000.40")) == Decimal("1")
        # 6500 + 0.16 x 1 = 6500.16
        assert calculate_irt(Decimal("150001")) == Decimal("6501")

    def test_fractional_income_between_published_rows(self):
        bracket = find_irt_bracket(Decimal("150000.50"))
        assert bracket.min_amount == Decimal("150001")

    def test_every_bracket_found_exactly_once(self):
        for bracket in TABLE.irt_brackets:
            matches = [b for b in TABLE.irt_brackets if b.contains(bracket.min_amount)]
            assert matches == [bracket]

    def test_negative_income_has_no_bracket(self):
        with pytest.raises(BracketNotFoundError, match="angola_2024"):
            find_irt_bracket(Decimal("-1"))

    def test_broken_table_raises(self):
        broken = replace(TABLE, irt_brackets=TABLE.irt_brackets[:2])
        with pytest.raises(BracketNotFoundError):
            calculate_irt(Decimal("500000"), broken)


# =============================================================================
# Absences and subsidies
# =============================================================================


class TestAbsenceDeduction:
    """Absence days at full/26, delay hours at full/26/8."""

    FULL = Decimal("210000")

    def test_days_only(self):
        assert absence_deduction(self.FULL, Decimal("2")) == Decimal("16154")

    def test_delay_only(self):
        assert absence_deduction(self.FULL, Decimal("0"), Decimal("4")) == Decimal("4038")

    def test_days_and_delay_rounded_once(self):
        assert absence_deduction(self.FULL, Decimal("2"), Decimal("4")) == Decimal("20192")

    def test_days_clamped_to_26(self):
        assert absence_deduction(self.FULL, Decimal("40")) == self.FULL

    def test_negative_inputs_clamped_to_zero(self):
        assert absence_deduction(self.FULL, Decimal("-3"), Decimal("-1")) == Decimal("0")

    def test_delay_clamped_to_208_hours(self):
        assert absence_deduction(self.FULL, Decimal("0"), Decimal("500")) == self.FULL


class TestClampVariableInputs:
    def test_untouched_inputs_returned_as_is(self):
        inputs = VariableInputs(days_absent=Decimal("2"))
        assert clamp_variable_inputs(inputs) is inputs

    def test_out_of_range_values_clamped_and_logged(self, captured_logs):
        inputs = VariableInputs(days_absent=Decimal("30"), overtime_hours_night=Decimal("-2"))
        clamped = clamp_variable_inputs(inputs)

        assert clamped.days_absent == Decimal("26")
        assert clamped.overtime_hours_night == Decimal("0")
        clamps = [r for r in captured_logs() if r["message"] == "variable_input_clamped"]
        assert {r["field"] for r in clamps} == {"days_absent", "overtime_hours_night"}
        assert all(r["level"] == "WARNING" for r in clamps)

    def test_floats_rejected(self):
        with pytest.raises(TypeError, match="days_absent"):
            VariableInputs(days_absent=2.0)


class TestSubsidiesAndSupplements:
    def test_thirteenth_full_year(self):
        assert thirteenth_month(Decimal("150000"), 12) == Decimal("75000")

    def test_thirteenth_prorated(self):
        assert thirteenth_month(Decimal("150000"), 7) == Decimal("43750")

    def test_thirteenth_months_clamped(self):
        assert thirteenth_month(Decimal("150000"), 15) == Decimal("75000")
        assert thirteenth_month(Decimal("150000"), -1) == Decimal("0")

    def test_family_allowance_capped_at_six(self):
        assert family_allowance_for(3) == Decimal("15000")
        assert family_allowance_for(10) == Decimal("30000")

    def test_family_allowance_rejects_negative(self):
        with pytest.raises(InvalidInputError, match="dependents"):
            family_allowance_for(-1)

    @pytest.mark.parametrize("years, days", [(0, 22), (2, 22), (3, 23), (7, 24), (40, 32)])
    def test_annual_leave_days(self, years, days):
        assert annual_leave_days(years) == days


# =============================================================================
# Full computation
# =============================================================================


class TestCalculatePayroll:
    """End-to-end monthly payroll for one employee."""

    def test_reference_example(self):
        result = calculate_payroll(make_compensation(), VariableInputs())

        assert result.inss_base == Decimal("210000")
        assert result.inss_employee == Decimal("6300")
        assert result.inss_employer == Decimal("16800")
        assert result.irt_taxable_gross == Decimal("150000")
        assert result.taxable_income == Decimal("143700")
        assert result.irt == Decimal("5681")
        assert result.gross_salary == Decimal("210000")
        assert result.total_deductions == Decimal("11981")
        assert result.net_salary == Decimal("198019")
        assert result.total_employer_cost == Decimal("226800")

    def test_december_with_thirteenth_month(self):
        result = calculate_payroll(
            make_compensation(), VariableInputs(), include_thirteenth_month=True
        )
        assert result.thirteenth_month == Decimal("75000")
        assert result.inss_employee == Decimal("8550")
        assert result.taxable_income == Decimal("216450")
        assert result.irt == Decimal("17461")
        assert result.net_salary == Decimal("258989")

    def test_holiday_subsidy_only_when_due(self):
        comp = make_compensation(holiday_subsidy=Decimal("75000"))
        not_due = calculate_payroll(comp, VariableInputs())
        due = calculate_payroll(comp, VariableInputs(), holiday_subsidy_due=True)

        assert not_due.holiday_subsidy == Decimal("0")
        assert due.holiday_subsidy == Decimal("75000")
        assert due.gross_salary - not_due.gross_salary == Decimal("75000")
        # Holiday subsidy never enters the INSS base
        assert due.inss_base == not_due.inss_base

    def test_family_allowance_and_bonus_outside_statutory_bases(self):
        comp = make_compensation(family_allowance=Decimal("10000"), monthly_bonus=Decimal("20000"))
        result = calculate_payroll(comp, VariableInputs())
        assert result.inss_base == Decimal("210000")
        assert result.irt == Decimal("5681")
        assert result.gross_salary == Decimal("240000")

    def test_retired_employee(self):
        result = calculate_payroll(make_compensation(is_retired=True), VariableInputs())
        assert result.inss_employee == Decimal("0")
        assert result.inss_employer == Decimal("16800")
        assert result.irt == Decimal("6500")

    def test_overtime_flows_into_both_bases(self):
        comp = make_compensation(base_salary=Decimal("176000"))
        result = calculate_payroll(comp, VariableInputs(overtime_hours_normal=Decimal("10")))
        assert result.overtime_normal == Decimal("15000")
        assert result.inss_base == Decimal("251000")
        assert result.irt_taxable_gross == Decimal("191000")

    def test_deductions_from_inputs(self):
        inputs = VariableInputs(
            days_absent=Decimal("2"),
            loan_deduction=Decimal("10000"),
            advance_deduction=Decimal("5000"),
            other_deductions=Decimal("1000"),
        )
        result = calculate_payroll(make_compensation(), inputs)
        assert result.absence_deduction == Decimal("16154")
        assert result.total_deductions == Decimal("11981") + Decimal("32154")
        assert result.net_salary == Decimal("198019") - Decimal("32154")

    def test_negative_net_allowed_and_logged(self, captured_logs):
        comp = CompensationConfig(base_salary=Decimal("10000"))
        result = calculate_payroll(comp, VariableInputs(other_deductions=Decimal("50000")))

        assert result.net_salary == Decimal("-40300")
        assert any(r["message"] == "negative_net_salary" for r in captured_logs())

    def test_emits_engine_trace(self, captured_logs):
        calculate_payroll(make_compensation(), VariableInputs())
        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces and traces[0]["engine_name"] == "payroll"

    def test_negative_compensation_rejected(self):
        with pytest.raises(NegativeSalaryError, match="meal_allowance"):
            make_compensation(meal_allowance=Decimal("-1"))

    def test_breakdown_invariants_enforced(self):
        result = calculate_payroll(make_compensation(), VariableInputs())
        with pytest.raises(ValueError, match="net_salary"):
            replace(result, net_salary=result.net_salary + 1)

    def test_earning_fields_sum_to_gross(self):
        result = calculate_payroll(
            make_compensation(holiday_subsidy=Decimal("75000")),
            VariableInputs(overtime_hours_holiday=Decimal("8")),
            holiday_subsidy_due=True,
            include_thirteenth_month=True,
            months_worked=6,
        )
        total = sum(getattr(result, name) for name in PayrollBreakdown.EARNING_FIELDS)
        assert total == result.gross_salary
