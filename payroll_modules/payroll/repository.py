"""PayrollRepository -- storage port for payroll periods and entries.

``PayrollService`` owns no global state; it is handed a repository.  Two
implementations exist: ``InMemoryPayrollRepository`` (below) and
``SqlAlchemyPayrollRepository`` in ``payroll_modules.payroll.orm``.

``replace_entries`` is all-or-nothing in both: either every entry of the
period (and the period row, when given) is replaced, or nothing changes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable
from uuid import UUID

from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import PayrollEntry, PayrollPeriod

logger = get_logger("modules.payroll.repository")


@runtime_checkable
class PayrollRepository(Protocol):
    """Protocol for storing payroll periods and their entries."""

    def add_period(self, period: PayrollPeriod) -> None: ...

    def save_period(self, period: PayrollPeriod) -> None: ...

    def get_period(self, period_id: UUID) -> PayrollPeriod | None: ...

    def find_period(self, year: int, month: int) -> PayrollPeriod | None: ...

    def list_periods(self) -> list[PayrollPeriod]: ...

    def get_entry(self, entry_id: UUID) -> PayrollEntry | None: ...

    def list_entries(self, period_id: UUID) -> list[PayrollEntry]: ...

    def save_entry(self, entry: PayrollEntry) -> None: ...

    def replace_entries(
        self,
        period_id: UUID,
        entries: Sequence[PayrollEntry],
        period: PayrollPeriod | None = None,
    ) -> None:
        """Atomically replace all entries of ``period_id`` (and save ``period``)."""
        ...

    def delete_entries(self, entry_ids: Sequence[UUID]) -> int: ...


class InMemoryPayrollRepository:
    """Dict-backed repository for tests and single-process use."""

    def __init__(self) -> None:
        self._periods: dict[UUID, PayrollPeriod] = {}
        self._entries: dict[UUID, PayrollEntry] = {}

    def add_period(self, period: PayrollPeriod) -> None:
        if period.id in self._periods:
            raise ValueError(f"Period {period.id} already stored")
        self._periods[period.id] = period

    def save_period(self, period: PayrollPeriod) -> None:
        self._periods[period.id] = period

    def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        return self._periods.get(period_id)

    def find_period(self, year: int, month: int) -> PayrollPeriod | None:
        for period in self._periods.values():
            if period.year == year and period.month == month:
                return period
        return None

    def list_periods(self) -> list[PayrollPeriod]:
        return sorted(self._periods.values(), key=lambda p: (p.year, p.month))

    def get_entry(self, entry_id: UUID) -> PayrollEntry | None:
        return self._entries.get(entry_id)

    def list_entries(self, period_id: UUID) -> list[PayrollEntry]:
        return [e for e in self._entries.values() if e.period_id == period_id]

    def save_entry(self, entry: PayrollEntry) -> None:
        self._entries[entry.id] = entry

    def replace_entries(
        self,
        period_id: UUID,
        entries: Sequence[PayrollEntry],
        period: PayrollPeriod | None = None,
    ) -> None:
        for entry in entries:
            if entry.period_id != period_id:
                raise ValueError(
                    f"Entry {entry.id} belongs to period {entry.period_id}, not {period_id}"
                )
        # Build the new state completely before swapping it in
        kept = {k: v for k, v in self._entries.items() if v.period_id != period_id}
        kept.update({e.id: e for e in entries})
        self._entries = kept
        if period is not None:
            self._periods[period.id] = period

    def delete_entries(self, entry_ids: Sequence[UUID]) -> int:
        removed = 0
        for entry_id in entry_ids:
            if self._entries.pop(entry_id, None) is not None:
                removed += 1
        return removed

    def replace_all(
        self,
        periods: Sequence[PayrollPeriod],
        entries: Sequence[PayrollEntry],
    ) -> None:
        """Wholesale table replacement, as done by an external sync pulse."""
        self._periods = {p.id: p for p in periods}
        self._entries = {e.id: e for e in entries}
        logger.info(
            "payroll_repository_replaced",
            extra={"period_count": len(periods), "entry_count": len(entries)},
        )
