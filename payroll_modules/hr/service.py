"""
HR Service (``payroll_modules.hr.service``).

Responsibility
--------------
Salary adjustment requests and their approval or rejection, and
termination processing.  Approval is the only path by which an
employee's base salary changes.

Invariants enforced
-------------------
* An adjustment is resolved exactly once; approving or rejecting a
  resolved adjustment raises ``AdjustmentAlreadyResolvedError``.
* After approval the employee's base salary equals ``new_salary`` exactly.
* Rejection needs a non-empty reason and never touches the employee.
* Every approval and termination writes an ``AuditDelta``.

Failure modes
-------------
* ``EmployeeNotFoundError`` / ``AdjustmentNotFoundError`` -- unknown ids.
* ``NegativeSalaryError`` -- requested salary below zero.
* ``MissingRejectionReasonError`` -- blank rejection reason.
* Termination errors from ``calculate_termination_package`` propagate
  before anything is stored.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import resolve_rate_table
from payroll_config.schema import RateTable
from payroll_engines.termination import TerminationReason, calculate_termination_package
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import ZERO, to_decimal
from payroll_kernel.exceptions import (
    AdjustmentAlreadyResolvedError,
    AdjustmentNotFoundError,
    EmployeeNotFoundError,
    InvalidTransitionError,
    MissingRejectionReasonError,
    NegativeSalaryError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.hr.models import (
    AdjustmentType,
    ApprovalStatus,
    AuditDelta,
    SalaryAdjustment,
    TerminationRecord,
)
from payroll_modules.hr.repository import EmployeeDirectory, HRRepository
from payroll_modules.hr.workflows import SALARY_ADJUSTMENT_WORKFLOW
from payroll_modules.payroll.models import Employee, EmploymentStatus

logger = get_logger("modules.hr.service")

_PERCENT = Decimal("0.01")
_HUNDRED = Decimal("100")


def change_percent(previous_salary: Decimal, new_salary: Decimal) -> Decimal:
    """Percentage change to 2 dp; 0 when the previous salary is 0."""
    if previous_salary == ZERO:
        return ZERO
    change = (new_salary - previous_salary) / previous_salary * _HUNDRED
    return change.quantize(_PERCENT, rounding=ROUND_HALF_UP)


class HRService:
    """Salary adjustment workflow and termination processing."""

    def __init__(
        self,
        directory: EmployeeDirectory,
        repository: HRRepository,
        *,
        table: RateTable | None = None,
        config: PayrollConfig | None = None,
        clock: Clock | None = None,
    ):
        self._directory = directory
        self._repository = repository
        self._table = resolve_rate_table(table)
        self._config = resolve_policy(config)
        self._clock = clock or SystemClock()

    def _require_employee(self, employee_id: UUID) -> Employee:
        employee = self._directory.get(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def _require_pending(self, adjustment_id: UUID, action: str) -> tuple[SalaryAdjustment, ApprovalStatus]:
        adjustment = self._repository.get_adjustment(adjustment_id)
        if adjustment is None:
            raise AdjustmentNotFoundError(str(adjustment_id))
        if adjustment.status.is_resolved:
            raise AdjustmentAlreadyResolvedError(str(adjustment.id), adjustment.status.value)
        target = SALARY_ADJUSTMENT_WORKFLOW.next_state(
            adjustment.status.value, action, str(adjustment.id)
        )
        return adjustment, ApprovalStatus(target)

    # =========================================================================
    # Salary adjustments
    # =========================================================================

    def request_adjustment(
        self,
        employee_id: UUID,
        adjustment_type: AdjustmentType,
        new_salary: Decimal,
        reason: str,
        effective_date: date,
        requested_by: str,
        new_position: str | None = None,
    ) -> SalaryAdjustment:
        """Create a pending adjustment against the employee's current salary."""
        employee = self._require_employee(employee_id)
        new_salary = to_decimal(new_salary)
        if new_salary < ZERO:
            raise NegativeSalaryError("new_salary", new_salary)

        previous = employee.compensation.base_salary
        adjustment = SalaryAdjustment(
            id=uuid4(),
            employee_id=employee.id,
            employee_name=employee.full_name,
            adjustment_type=AdjustmentType(adjustment_type),
            effective_date=effective_date,
            previous_salary=previous,
            new_salary=new_salary,
            change_amount=new_salary - previous,
            change_percent=change_percent(previous, new_salary),
            reason=reason,
            requested_by=requested_by,
            requested_at=self._clock.now(),
            previous_position=employee.position or None,
            new_position=new_position or None,
        )
        self._repository.save_adjustment(adjustment)
        logger.info(
            "salary_adjustment_requested",
            extra={
                "adjustment_id": str(adjustment.id),
                "employee_id": str(employee.id),
                "adjustment_type": adjustment.adjustment_type.value,
                "previous_salary": str(previous),
                "new_salary": str(new_salary),
                "change_percent": str(adjustment.change_percent),
            },
        )
        return adjustment

    def approve_adjustment(self, adjustment_id: UUID, approved_by: str) -> SalaryAdjustment:
        """
        Approve and apply: base salary becomes ``new_salary``; the position
        changes when one was requested.
        """
        adjustment, target = self._require_pending(adjustment_id, "approve")
        employee = self._require_employee(adjustment.employee_id)
        now = self._clock.now()

        updated_employee = replace(
            employee,
            compensation=replace(employee.compensation, base_salary=adjustment.new_salary),
            position=adjustment.new_position or employee.position,
        )
        approved = replace(adjustment, status=target, approved_by=approved_by, approved_at=now)

        previous_value = {"base_salary": str(employee.compensation.base_salary)}
        new_value = {"base_salary": str(adjustment.new_salary)}
        if adjustment.new_position:
            previous_value["position"] = employee.position
            new_value["position"] = adjustment.new_position

        self._directory.save(updated_employee)
        self._repository.save_adjustment(approved)
        self._repository.record_audit(
            AuditDelta(
                action="salary_adjusted",
                entity_id=employee.id,
                actor=approved_by,
                occurred_at=now,
                previous_value=previous_value,
                new_value=new_value,
                description=(
                    f"Salary adjusted for {employee.full_name}: "
                    f"{adjustment.previous_salary} -> {adjustment.new_salary} "
                    f"({adjustment.change_percent}%)"
                ),
            )
        )
        with LogContext.bind(employee_id=str(employee.id), actor_id=approved_by):
            logger.info(
                "salary_adjustment_approved",
                extra={
                    "adjustment_id": str(adjustment.id),
                    "new_salary": str(adjustment.new_salary),
                    "new_position": adjustment.new_position,
                },
            )
        return approved

    def reject_adjustment(
        self,
        adjustment_id: UUID,
        rejected_by: str,
        reason: str,
    ) -> SalaryAdjustment:
        adjustment, target = self._require_pending(adjustment_id, "reject")
        if not reason or not reason.strip():
            raise MissingRejectionReasonError(str(adjustment.id))

        rejected = replace(
            adjustment,
            status=target,
            rejected_by=rejected_by,
            rejected_at=self._clock.now(),
            rejection_reason=reason.strip(),
        )
        self._repository.save_adjustment(rejected)
        logger.info(
            "salary_adjustment_rejected",
            extra={
                "adjustment_id": str(adjustment.id),
                "employee_id": str(adjustment.employee_id),
                "rejected_by": rejected_by,
            },
        )
        return rejected

    def pending_adjustments(self) -> list[SalaryAdjustment]:
        return sorted(
            (a for a in self._repository.list_adjustments() if a.status is ApprovalStatus.PENDING),
            key=lambda a: a.requested_at,
        )

    def adjustments_for_employee(self, employee_id: UUID) -> list[SalaryAdjustment]:
        """All adjustments of the employee, newest effective date first."""
        return sorted(
            (a for a in self._repository.list_adjustments() if a.employee_id == employee_id),
            key=lambda a: (a.effective_date, a.requested_at),
            reverse=True,
        )

    # =========================================================================
    # Terminations
    # =========================================================================

    def process_termination(
        self,
        employee_id: UUID,
        termination_date: date,
        reason: TerminationReason,
        processed_by: str,
        unused_leave_days: Decimal | int = 0,
        notice_honored: bool = True,
        reason_details: str | None = None,
    ) -> TerminationRecord:
        """Compute the final package, store it and mark the employee terminated."""
        employee = self._require_employee(employee_id)
        if employee.status is EmploymentStatus.TERMINATED:
            raise InvalidTransitionError(
                workflow="employment",
                entity_id=str(employee.id),
                current_state=employee.status.value,
                action="terminate",
            )

        package = calculate_termination_package(
            employee.hire_date,
            termination_date,
            TerminationReason(reason),
            employee.compensation.base_salary,
            unused_leave_days=unused_leave_days,
            notice_honored=notice_honored,
            table=self._table,
            config=self._config,
        )
        now = self._clock.now()
        record = TerminationRecord(
            id=uuid4(),
            employee_id=employee.id,
            employee_name=employee.full_name,
            termination_date=termination_date,
            reason=TerminationReason(reason),
            final_base_salary=employee.compensation.base_salary,
            unused_leave_days=Decimal(unused_leave_days),
            notice_honored=notice_honored,
            package=package,
            processed_by=processed_by,
            processed_at=now,
            reason_details=reason_details,
        )

        self._repository.add_termination(record)
        self._directory.save(
            replace(
                employee,
                status=EmploymentStatus.TERMINATED,
                termination_date=termination_date,
            )
        )
        self._repository.record_audit(
            AuditDelta(
                action="employee_terminated",
                entity_id=employee.id,
                actor=processed_by,
                occurred_at=now,
                previous_value={"status": employee.status.value},
                new_value={
                    "status": EmploymentStatus.TERMINATED.value,
                    "termination_date": termination_date.isoformat(),
                },
                description=(
                    f"Terminated {employee.full_name} - {record.reason.value} - "
                    f"Total: {package.total_package}"
                ),
            )
        )
        logger.info(
            "employee_terminated",
            extra={
                "employee_id": str(employee.id),
                "reason": record.reason.value,
                "total_package": str(package.total_package),
            },
        )
        return record
