"""
Payroll configuration: statutory rate tables and company payroll policy.

    from payroll_config import load_default_rate_table, PayrollConfig

    table = load_default_rate_table()   # Angola, effective 2024-01-01
    policy = PayrollConfig()
"""

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import (
    load_default_rate_table,
    load_rate_table,
    resolve_rate_table,
)
from payroll_config.schema import (
    AllowanceCaps,
    AnnualLeaveRule,
    INSSRates,
    IRTBracket,
    NoticeSchedule,
    OvertimePremiums,
    RateTable,
    SeveranceSchedule,
    SubsidyRates,
)
from payroll_config.validator import check_rate_table, validate_rate_table

__all__ = [
    "AllowanceCaps",
    "AnnualLeaveRule",
    "INSSRates",
    "IRTBracket",
    "NoticeSchedule",
    "OvertimePremiums",
    "PayrollConfig",
    "RateTable",
    "SeveranceSchedule",
    "SubsidyRates",
    "check_rate_table",
    "load_default_rate_table",
    "load_rate_table",
    "resolve_policy",
    "resolve_rate_table",
    "validate_rate_table",
]
