"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll code must tell a broken tax table apart from a user who typed 40
absence days, and both apart from an attempt to re-approve a salary
adjustment.  Callers catch by type and read structured attributes; they
never parse messages.

    try:
        service.approve_period(period_id, approved_by="rh.chefe")
    except InvalidTransitionError as e:
        show_warning(e.code, current=e.current_state, action=e.action)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- ConfigurationError              fatal, never silently defaulted
    |   +-- BracketNotFoundError
    |   +-- RateTableError
    |   +-- NegativeSalaryError
    |
    +-- InvalidInputError               variable inputs are clamped instead
    |   +-- NegativeServiceError
    |   +-- MissingRejectionReasonError
    |
    +-- StateTransitionError            operation refused, nothing mutated
    |   +-- InvalidTransitionError
    |   +-- PeriodLockedError
    |   +-- AdjustmentAlreadyResolvedError
    |
    +-- NotFoundError
    |   +-- PeriodNotFoundError
    |   +-- EntryNotFoundError
    |   +-- AdjustmentNotFoundError
    |   +-- EmployeeNotFoundError
    |
    +-- PeriodAlreadyExistsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Configuration   | BRACKET_NOT_FOUND             | No IRT bracket contains the income
                | RATE_TABLE_INVALID            | Rate table fails validation
                | NEGATIVE_SALARY               | Base/final/new salary below zero
----------------|-------------------------------|---------------------------------------
Input           | NEGATIVE_SERVICE              | Termination before hire date
                | REJECTION_REASON_REQUIRED     | Rejecting without a reason
----------------|-------------------------------|---------------------------------------
State           | INVALID_TRANSITION            | Action not allowed from current state
                | PERIOD_LOCKED                 | Editing/regenerating approved or paid
                | ADJUSTMENT_ALREADY_RESOLVED   | Approve/reject a resolved adjustment
----------------|-------------------------------|---------------------------------------
Lookup          | PERIOD_NOT_FOUND              | Unknown period id
                | ENTRY_NOT_FOUND               | Unknown entry id
                | ADJUSTMENT_NOT_FOUND          | Unknown adjustment id
                | EMPLOYEE_NOT_FOUND            | Unknown employee id
----------------|-------------------------------|---------------------------------------
Period          | PERIOD_ALREADY_EXISTS         | Second period for the same year/month
"""

from decimal import Decimal


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Configuration errors


class ConfigurationError(PayrollKernelError):
    """Static configuration or master data is unusable."""

    code: str = "CONFIGURATION_ERROR"


class BracketNotFoundError(ConfigurationError):
    """No IRT bracket covers the given taxable income."""

    code: str = "BRACKET_NOT_FOUND"

    def __init__(self, taxable_income: Decimal, table_name: str):
        self.taxable_income = str(taxable_income)
        self.table_name = table_name
        super().__init__(
            f"No IRT bracket in table '{table_name}' covers taxable income "
            f"{taxable_income}"
        )


class RateTableError(ConfigurationError):
    """A statutory rate table failed validation."""

    code: str = "RATE_TABLE_INVALID"

    def __init__(self, table_name: str, problems: list[str]):
        self.table_name = table_name
        self.problems = list(problems)
        super().__init__(
            f"Rate table '{table_name}' is invalid: " + "; ".join(self.problems)
        )


class NegativeSalaryError(ConfigurationError):
    """A salary figure is negative."""

    code: str = "NEGATIVE_SALARY"

    def __init__(self, field_name: str, amount: Decimal):
        self.field_name = field_name
        self.amount = str(amount)
        super().__init__(f"{field_name} cannot be negative (got {amount})")


# Input errors


class InvalidInputError(PayrollKernelError):
    """Caller-supplied input is out of range and cannot be clamped."""

    code: str = "INVALID_INPUT"

    def __init__(self, field_name: str, value: object, message: str | None = None):
        self.field_name = field_name
        self.value = str(value)
        super().__init__(message or f"Invalid value for {field_name}: {value}")


class NegativeServiceError(InvalidInputError):
    """Termination date precedes the hire date."""

    code: str = "NEGATIVE_SERVICE"

    def __init__(self, hire_date: str, termination_date: str):
        self.hire_date = hire_date
        self.termination_date = termination_date
        super().__init__(
            "termination_date",
            termination_date,
            f"Termination date {termination_date} precedes hire date {hire_date}",
        )


class MissingRejectionReasonError(InvalidInputError):
    """A rejection was attempted without a reason."""

    code: str = "REJECTION_REASON_REQUIRED"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(
            "reason",
            "",
            f"Rejecting salary adjustment {adjustment_id} requires a reason",
        )


# State errors


class StateTransitionError(PayrollKernelError):
    """Base for refused state changes.  No mutation has been performed."""

    code: str = "STATE_TRANSITION_ERROR"


class InvalidTransitionError(StateTransitionError):
    """The requested action is not defined from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, entity_id: str, current_state: str, action: str):
        self.workflow = workflow
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot '{action}' {workflow} {entity_id} from state '{current_state}'"
        )


class PeriodLockedError(StateTransitionError):
    """Entries of an approved or paid period cannot change."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_id: str, status: str, operation: str):
        self.period_id = period_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} payroll period {period_id}: period is {status}"
        )


class AdjustmentAlreadyResolvedError(StateTransitionError):
    """The salary adjustment was already approved or rejected."""

    code: str = "ADJUSTMENT_ALREADY_RESOLVED"

    def __init__(self, adjustment_id: str, status: str):
        self.adjustment_id = adjustment_id
        self.status = status
        super().__init__(
            f"Salary adjustment {adjustment_id} was already {status}"
        )


# Lookup errors


class NotFoundError(PayrollKernelError):
    """Base for unknown identifiers."""

    code: str = "NOT_FOUND"


class PeriodNotFoundError(NotFoundError):
    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Payroll period not found: {period_id}")


class EntryNotFoundError(NotFoundError):
    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Payroll entry not found: {entry_id}")


class AdjustmentNotFoundError(NotFoundError):
    code: str = "ADJUSTMENT_NOT_FOUND"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(f"Salary adjustment not found: {adjustment_id}")


class EmployeeNotFoundError(NotFoundError):
    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


# Period errors


class PeriodAlreadyExistsError(PayrollKernelError):
    """A payroll period already exists for the year and month."""

    code: str = "PERIOD_ALREADY_EXISTS"

    def __init__(self, year: int, month: int, existing_period_id: str):
        self.year = year
        self.month = month
        self.existing_period_id = existing_period_id
        super().__init__(
            f"Payroll period {year}-{month:02d} already exists "
            f"({existing_period_id})"
        )
