"""
Module: payroll_engines
Responsibility:
    Pure calculation layer for Angolan payroll: the monthly earnings and
    deductions engine and the termination package engine.

Architecture position:
    Engines -- zero I/O.  May import payroll_kernel and payroll_config.
    MUST NOT import payroll_modules.

Invariants enforced:
    - Engines never read the clock; dates are parameters.
    - Decimal-only arithmetic, rounded to whole kwanza per statutory amount.
    - Identical inputs always produce identical outputs.

Audit relevance:
    ``calculate_payroll`` and ``calculate_termination_package`` are wrapped
    with ``@traced_engine`` and emit PAYROLL_ENGINE_TRACE records carrying
    an input fingerprint.
"""

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
from payroll_engines.termination import (
    TerminationPackage,
    TerminationReason,
    calculate_termination_package,
)

__all__ = [
    "CompensationConfig",
    "OvertimeType",
    "PayrollBreakdown",
    "TerminationPackage",
    "TerminationReason",
    "VariableInputs",
    "absence_deduction",
    "annual_leave_days",
    "calculate_inss",
    "calculate_irt",
    "calculate_payroll",
    "calculate_termination_package",
    "clamp_variable_inputs",
    "daily_rate",
    "family_allowance_for",
    "find_irt_bracket",
    "full_monthly_salary",
    "hourly_delay_rate",
    "hourly_rate",
    "inss_base",
    "irt_taxable_gross",
    "overtime_pay",
    "taxable_excess",
    "thirteenth_month",
]
