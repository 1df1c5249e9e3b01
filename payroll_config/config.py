"""
Payroll Policy Configuration.

Company-level settings that sit beside the statutory rate table: how
variable inputs are clamped and which divisors turn a monthly salary into
daily and hourly rates.  Defaults follow common Angolan practice:

    config = PayrollConfig(monthly_hours=Decimal("173"))
"""

from dataclasses import dataclass
from decimal import Decimal

from payroll_kernel.exceptions import ConfigurationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("config.policy")


@dataclass(frozen=True)
class PayrollConfig:
    """
    Payroll policy schema.

    ``monthly_hours`` converts base salary to the hourly rate used for
    overtime.  ``working_days_per_month`` and ``hours_per_day`` convert
    the full monthly salary to the daily and hourly rates used for absence
    and delay deductions.
    """

    # Variable input clamps
    max_absence_days: Decimal = Decimal("26")
    max_delay_hours: Decimal = Decimal("208")

    # Rate divisors
    working_days_per_month: Decimal = Decimal("26")
    hours_per_day: Decimal = Decimal("8")
    monthly_hours: Decimal = Decimal("176")

    # 13th month is switched on by default in this month
    thirteenth_month_default_month: int = 12

    def __post_init__(self):
        for name in (
            "max_absence_days",
            "max_delay_hours",
            "working_days_per_month",
            "hours_per_day",
            "monthly_hours",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ConfigurationError(f"{name} must be Decimal, got {type(value).__name__}")
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        if not 1 <= self.thirteenth_month_default_month <= 12:
            raise ConfigurationError(
                "thirteenth_month_default_month must be 1..12, "
                f"got {self.thirteenth_month_default_month}"
            )
        logger.debug(
            "payroll_config_initialized",
            extra={
                "max_absence_days": str(self.max_absence_days),
                "max_delay_hours": str(self.max_delay_hours),
                "monthly_hours": str(self.monthly_hours),
            },
        )


_DEFAULT_POLICY = PayrollConfig()


def resolve_policy(config: PayrollConfig | None) -> PayrollConfig:
    """``config`` itself, or the default policy when None."""
    return config if config is not None else _DEFAULT_POLICY
