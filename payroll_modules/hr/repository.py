"""Storage ports for HR: the employee directory and HR records."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable
from uuid import UUID

from payroll_modules.hr.models import AuditDelta, SalaryAdjustment, TerminationRecord
from payroll_modules.payroll.models import Employee


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Read/write access to employee records."""

    def get(self, employee_id: UUID) -> Employee | None: ...

    def save(self, employee: Employee) -> None: ...

    def list_employees(self) -> list[Employee]: ...


class InMemoryEmployeeDirectory:
    def __init__(self, employees: Iterable[Employee] = ()):
        self._employees: dict[UUID, Employee] = {e.id: e for e in employees}

    def get(self, employee_id: UUID) -> Employee | None:
        return self._employees.get(employee_id)

    def save(self, employee: Employee) -> None:
        self._employees[employee.id] = employee

    def list_employees(self) -> list[Employee]:
        return sorted(self._employees.values(), key=lambda e: e.employee_number)


@runtime_checkable
class HRRepository(Protocol):
    """Salary adjustments, terminations and the audit trail."""

    def save_adjustment(self, adjustment: SalaryAdjustment) -> None: ...

    def get_adjustment(self, adjustment_id: UUID) -> SalaryAdjustment | None: ...

    def list_adjustments(self) -> list[SalaryAdjustment]: ...

    def add_termination(self, record: TerminationRecord) -> None: ...

    def get_termination_for_employee(self, employee_id: UUID) -> TerminationRecord | None: ...

    def record_audit(self, delta: AuditDelta) -> None: ...

    def list_audit(self, entity_id: UUID | None = None) -> list[AuditDelta]: ...


class InMemoryHRRepository:
    def __init__(self) -> None:
        self._adjustments: dict[UUID, SalaryAdjustment] = {}
        self._terminations: dict[UUID, TerminationRecord] = {}
        self._audit: list[AuditDelta] = []

    def save_adjustment(self, adjustment: SalaryAdjustment) -> None:
        self._adjustments[adjustment.id] = adjustment

    def get_adjustment(self, adjustment_id: UUID) -> SalaryAdjustment | None:
        return self._adjustments.get(adjustment_id)

    def list_adjustments(self) -> list[SalaryAdjustment]:
        return list(self._adjustments.values())

    def add_termination(self, record: TerminationRecord) -> None:
        self._terminations[record.id] = record

    def get_termination_for_employee(self, employee_id: UUID) -> TerminationRecord | None:
        for record in self._terminations.values():
            if record.employee_id == employee_id:
                return record
        return None

    def record_audit(self, delta: AuditDelta) -> None:
        self._audit.append(delta)

    def list_audit(self, entity_id: UUID | None = None) -> list[AuditDelta]:
        if entity_id is None:
            return list(self._audit)
        return [d for d in self._audit if d.entity_id == entity_id]
