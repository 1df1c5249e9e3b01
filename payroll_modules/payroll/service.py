"""
Payroll Period Service (``payroll_modules.payroll.service``).

Responsibility
--------------
Owns the monthly payroll period lifecycle: period creation, (re)generation
of entries from the employee roster, per-entry edits of variable inputs,
explicit aggregate recomputation, and the forward-only
``draft -> calculated -> approved -> paid`` transitions.

Architecture position
---------------------
**Modules layer** -- orchestration.  Figures come from
``payroll_engines.earnings`` via the generator; storage goes through an
injected ``PayrollRepository``; time comes from an injected ``Clock``.

Invariants enforced
-------------------
* One period per (year, month).
* Approved and paid periods refuse every entry change
  (``PeriodLockedError``).
* Every edit fully recomputes the entry from its stored compensation
  snapshot; no field is patched in place.
* Transitions go through ``PAYROLL_PERIOD_WORKFLOW``; an undeclared move
  raises ``InvalidTransitionError`` before anything is written.
* A transition rewrites the period and all of its entries in one
  ``replace_entries`` call; entry statuses mirror the period status.
* Period totals are only ever derived from entries (``recompute``).

Failure modes
-------------
* ``PeriodNotFoundError`` / ``EntryNotFoundError`` -- unknown ids.
* ``PeriodAlreadyExistsError`` -- duplicate (year, month).
* ``InvalidInputError`` -- month outside 1..12, blank approver,
  months worked outside 0..12.
* ``PeriodLockedError`` / ``InvalidTransitionError`` -- refused, no mutation.

Usage::

    service = PayrollService(InMemoryPayrollRepository(), clock=clock)
    period = service.create_period(2024, 12)
    service.regenerate_entries(period.id, employees, holiday_records=records)
    service.calculate_period(period.id)
    service.approve_period(period.id, approved_by="rh.chefe")
    service.mark_as_paid(period.id)
    records = service.settle_holiday_subsidies(period.id, records)
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import UUID, uuid4

from payroll_config.config import PayrollConfig, resolve_policy
from payroll_config.loader import resolve_rate_table
from payroll_config.schema import RateTable
from payroll_engines.earnings import PayrollBreakdown, VariableInputs
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.periods import validate_month
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import (
    EntryNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    PeriodAlreadyExistsError,
    PeriodLockedError,
    PeriodNotFoundError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.payroll.generator import (
    aggregate_entries,
    generate_entries,
    rebuild_entry,
    settle_holiday_subsidies,
    with_status,
)
from payroll_modules.payroll.models import (
    DepartmentTotals,
    Employee,
    HolidayRecord,
    PayrollEntry,
    PayrollPeriod,
    PayrollSummary,
    PeriodStatus,
)
from payroll_modules.payroll.repository import PayrollRepository
from payroll_modules.payroll.workflows import PAYROLL_PERIOD_WORKFLOW

logger = get_logger("modules.payroll.service")

UNASSIGNED_DEPARTMENT = "unassigned"


class PayrollService:
    """
    Period lifecycle manager.

    Contract
    --------
    * Methods return the stored DTOs after the change.
    * Aggregates are recomputed only by ``recompute``, by the transitions,
      and by ``refresh_after_sync``; entry edits leave the cached totals
      as they were.

    Non-goals
    ---------
    * No locking: callers serialize operations on a period.
    * No ledger posting.
    """

    def __init__(
        self,
        repository: PayrollRepository,
        *,
        table: RateTable | None = None,
        config: PayrollConfig | None = None,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._table = resolve_rate_table(table)
        self._config = resolve_policy(config)
        self._clock = clock or SystemClock()

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_period(self, period_id: UUID) -> PayrollPeriod:
        period = self._repository.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def get_entry(self, entry_id: UUID) -> PayrollEntry:
        entry = self._repository.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def list_entries(self, period_id: UUID) -> list[PayrollEntry]:
        self.get_period(period_id)
        return self._repository.list_entries(period_id)

    # =========================================================================
    # Period creation and entry generation
    # =========================================================================

    def create_period(self, year: int, month: int) -> PayrollPeriod:
        """Open a draft period for (year, month)."""
        validate_month(month)
        existing = self._repository.find_period(year, month)
        if existing is not None:
            raise PeriodAlreadyExistsError(year, month, str(existing.id))

        now = self._clock.now()
        period = PayrollPeriod(
            id=uuid4(),
            year=year,
            month=month,
            created_at=now,
            updated_at=now,
        )
        self._repository.add_period(period)
        logger.info(
            "payroll_period_created",
            extra={"period_id": str(period.id), "period": period.label},
        )
        return period

    def regenerate_entries(
        self,
        period_id: UUID,
        employees: Sequence[Employee],
        inputs_by_employee: Mapping[UUID, VariableInputs] | None = None,
        holiday_records: Iterable[HolidayRecord] = (),
        include_thirteenth_month: bool | None = None,
        preserve_overrides: bool = True,
    ) -> list[PayrollEntry]:
        """
        Replace every entry of the period with freshly computed ones.

        Args:
            period_id: Target period; must not be approved or paid.
            employees: Roster; only active employees get an entry.
            inputs_by_employee: Variable inputs for this run.
            holiday_records: Vacation schedule used to decide the holiday
                subsidy.
            include_thirteenth_month: Pay the 13th month; defaults to on
                only in the policy month.
            preserve_overrides: Carry the stored variable inputs forward
                for employees not present in ``inputs_by_employee``.
        """
        period = self.get_period(period_id)
        self._ensure_unlocked(period, "regenerate entries of")

        if include_thirteenth_month is None:
            include_thirteenth_month = (
                period.month == self._config.thirteenth_month_default_month
            )

        supplied: dict[UUID, VariableInputs] = {}
        preserved = 0
        if preserve_overrides:
            for entry in self._repository.list_entries(period.id):
                supplied[entry.employee_id] = entry.inputs
            preserved = len(supplied)
        supplied.update(inputs_by_employee or {})

        entries = generate_entries(
            period,
            employees,
            supplied,
            holiday_records,
            include_thirteenth_month,
            now=self._clock.now(),
            table=self._table,
            config=self._config,
        )
        self._repository.replace_entries(period.id, entries)

        logger.info(
            "payroll_entries_regenerated",
            extra={
                "period_id": str(period.id),
                "entry_count": len(entries),
                "preserve_overrides": preserve_overrides,
                "preserved_input_count": preserved,
            },
        )
        return entries

    # =========================================================================
    # Entry edits
    # =========================================================================

    def update_absences(
        self,
        entry_id: UUID,
        days_absent: Decimal,
        delay_hours: Decimal = ZERO,
    ) -> PayrollEntry:
        entry = self.get_entry(entry_id)
        inputs = replace(entry.inputs, days_absent=days_absent, delay_hours=delay_hours)
        return self._rebuild(entry, "update absences of", inputs=inputs)

    def update_overtime(
        self,
        entry_id: UUID,
        normal_hours: Decimal,
        night_hours: Decimal = ZERO,
        holiday_hours: Decimal = ZERO,
    ) -> PayrollEntry:
        entry = self.get_entry(entry_id)
        inputs = replace(
            entry.inputs,
            overtime_hours_normal=normal_hours,
            overtime_hours_night=night_hours,
            overtime_hours_holiday=holiday_hours,
        )
        return self._rebuild(entry, "update overtime of", inputs=inputs)

    def update_other_deductions(
        self,
        entry_id: UUID,
        other_deductions: Decimal,
        loan_deduction: Decimal | None = None,
        advance_deduction: Decimal | None = None,
    ) -> PayrollEntry:
        """Set other deductions; loan and advance change only when given."""
        entry = self.get_entry(entry_id)
        changes = {"other_deductions": other_deductions}
        if loan_deduction is not None:
            changes["loan_deduction"] = loan_deduction
        if advance_deduction is not None:
            changes["advance_deduction"] = advance_deduction
        inputs = replace(entry.inputs, **changes)
        return self._rebuild(entry, "update deductions of", inputs=inputs)

    def set_thirteenth_month(self, entry_id: UUID, months_worked: int | None) -> PayrollEntry:
        """Pay the 13th month for ``months_worked`` months, or drop it with ``None``."""
        entry = self.get_entry(entry_id)
        if months_worked is None:
            return self._rebuild(
                entry, "update 13th month of", include_thirteenth_month=False
            )
        if not 0 <= months_worked <= 12:
            raise InvalidInputError(
                "months_worked", months_worked, f"Months worked must be 0..12, got {months_worked}"
            )
        return self._rebuild(
            entry,
            "update 13th month of",
            include_thirteenth_month=True,
            months_worked=months_worked,
        )

    def _rebuild(
        self,
        entry: PayrollEntry,
        operation: str,
        *,
        inputs: VariableInputs | None = None,
        include_thirteenth_month: bool | None = None,
        months_worked: int | None = None,
    ) -> PayrollEntry:
        period = self.get_period(entry.period_id)
        self._ensure_unlocked(period, operation)

        rebuilt = rebuild_entry(
            entry,
            period,
            inputs=inputs,
            include_thirteenth_month=include_thirteenth_month,
            months_worked=months_worked,
            now=self._clock.now(),
            table=self._table,
            config=self._config,
        )
        self._repository.save_entry(rebuilt)
        logger.info(
            "payroll_entry_updated",
            extra={
                "period_id": str(period.id),
                "entry_id": str(entry.id),
                "employee_id": str(entry.employee_id),
                "operation": operation,
                "net_salary_before": str(entry.net_salary),
                "net_salary_after": str(rebuilt.net_salary),
            },
        )
        return rebuilt

    # =========================================================================
    # Aggregates
    # =========================================================================

    def recompute(self, period_id: UUID) -> PayrollPeriod:
        """Re-derive the period totals from its entries.  Status is unchanged."""
        period = self.get_period(period_id)
        totals = aggregate_entries(self._repository.list_entries(period.id))
        updated = replace(period, totals=totals, updated_at=self._clock.now())
        self._repository.save_period(updated)
        logger.info(
            "payroll_period_recomputed",
            extra={
                "period_id": str(period.id),
                "employee_count": totals.employee_count,
                "total_gross": str(totals.total_gross),
                "total_net": str(totals.total_net),
            },
        )
        return updated

    def refresh_after_sync(self) -> list[PayrollPeriod]:
        """Recompute every period after the stored tables were replaced externally."""
        refreshed = [self.recompute(p.id) for p in self._repository.list_periods()]
        logger.info("payroll_aggregates_refreshed", extra={"period_count": len(refreshed)})
        return refreshed

    # =========================================================================
    # Transitions
    # =========================================================================

    def calculate_period(self, period_id: UUID) -> PayrollPeriod:
        return self._transition(period_id, "calculate", calculated_at=True)

    def approve_period(self, period_id: UUID, approved_by: str) -> PayrollPeriod:
        if not approved_by or not approved_by.strip():
            raise InvalidInputError("approved_by", approved_by, "An approver is required")
        return self._transition(
            period_id, "approve", approved_at=True, approved_by=approved_by.strip()
        )

    def mark_as_paid(self, period_id: UUID) -> PayrollPeriod:
        return self._transition(period_id, "mark_paid", paid_at=True)

    def settle_holiday_subsidies(
        self,
        period_id: UUID,
        holiday_records: Iterable[HolidayRecord],
    ) -> list[HolidayRecord]:
        """
        Mark the holiday subsidies paid by a paid period.

        Returns every record, with ``subsidy_paid_in_month`` set on the ones
        this period paid; the caller stores them.
        """
        period = self.get_period(period_id)
        if period.status is not PeriodStatus.PAID:
            raise InvalidTransitionError(
                workflow=PAYROLL_PERIOD_WORKFLOW.name,
                entity_id=str(period.id),
                current_state=period.status.value,
                action="settle_holiday_subsidies",
            )
        entries = self._repository.list_entries(period.id)
        return settle_holiday_subsidies(holiday_records, entries, period.year, period.month)

    def _transition(
        self,
        period_id: UUID,
        action: str,
        *,
        calculated_at: bool = False,
        approved_at: bool = False,
        paid_at: bool = False,
        approved_by: str | None = None,
    ) -> PayrollPeriod:
        period = self.get_period(period_id)
        with LogContext.bind(period_id=str(period.id)):
            new_state = PAYROLL_PERIOD_WORKFLOW.next_state(
                period.status.value, action, str(period.id)
            )
            now = self._clock.now()
            entries = self._repository.list_entries(period.id)

            changes: dict = {
                "status": PeriodStatus(new_state),
                "totals": aggregate_entries(entries),
                "updated_at": now,
            }
            if calculated_at:
                changes["calculated_at"] = now
            if approved_at:
                changes["approved_at"] = now
                changes["approved_by"] = approved_by
            if paid_at:
                changes["paid_at"] = now
            updated = replace(period, **changes)

            self._repository.replace_entries(
                period.id, with_status(entries, updated, now), period=updated
            )
            logger.info(
                f"payroll_period_{new_state}",
                extra={
                    "from_status": period.status.value,
                    "to_status": new_state,
                    "action": action,
                    "employee_count": updated.totals.employee_count,
                    "total_net": str(updated.totals.total_net),
                    "approved_by": updated.approved_by,
                },
            )
        return updated

    # =========================================================================
    # Reporting and housekeeping
    # =========================================================================

    def get_payroll_summary(
        self,
        period_id: UUID,
        departments: Mapping[UUID, str] | None = None,
    ) -> PayrollSummary:
        """
        Totals per earnings and deduction category, plus per department.

        ``departments`` maps employee id to department name and overrides
        the department stored on the entry.
        """
        period = self.get_period(period_id)
        entries = self._repository.list_entries(period.id)
        names = departments or {}

        earnings = {name: ZERO for name in PayrollBreakdown.EARNING_FIELDS}
        deductions = {name: ZERO for name in PayrollBreakdown.DEDUCTION_FIELDS}
        inss_employer = ZERO
        grouped: dict[str, list[PayrollEntry]] = defaultdict(list)
        for entry in entries:
            for name in earnings:
                earnings[name] += getattr(entry.breakdown, name)
            for name in deductions:
                deductions[name] += getattr(entry.breakdown, name)
            inss_employer += entry.breakdown.inss_employer
            department = names.get(entry.employee_id, entry.department)
            grouped[department or UNASSIGNED_DEPARTMENT].append(entry)

        by_department = tuple(
            DepartmentTotals(
                department=name,
                employee_count=len(group),
                total_gross=sum((e.gross_salary for e in group), ZERO),
                total_net=sum((e.net_salary for e in group), ZERO),
                total_employer_cost=sum((e.total_employer_cost for e in group), ZERO),
            )
            for name, group in sorted(grouped.items())
        )
        return PayrollSummary(
            period_id=period.id,
            year=period.year,
            month=period.month,
            status=period.status,
            totals=aggregate_entries(entries),
            earnings=earnings,
            deductions=deductions,
            inss_employer=inss_employer,
            by_department=by_department,
        )

    def remove_entries_for_employee(self, employee_id: UUID) -> int:
        """Delete the employee's entries from every draft period."""
        removed = 0
        for period in self._repository.list_periods():
            if period.status is not PeriodStatus.DRAFT:
                continue
            ids = [
                e.id
                for e in self._repository.list_entries(period.id)
                if e.employee_id == employee_id
            ]
            removed += self._repository.delete_entries(ids)
        logger.info(
            "payroll_employee_entries_removed",
            extra={"employee_id": str(employee_id), "removed_count": removed},
        )
        return removed

    @staticmethod
    def _ensure_unlocked(period: PayrollPeriod, operation: str) -> None:
        if period.status.is_locked:
            logger.warning(
                "payroll_period_locked",
                extra={
                    "period_id": str(period.id),
                    "status": period.status.value,
                    "operation": operation,
                },
            )
            raise PeriodLockedError(str(period.id), period.status.value, operation)
