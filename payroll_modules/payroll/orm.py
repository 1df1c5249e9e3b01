"""
Payroll ORM Persistence Models (``payroll_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen payroll DTOs defined in
    ``payroll_modules.payroll.models``, and ``SqlAlchemyPayrollRepository``,
    the database-backed implementation of ``PayrollRepository``.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` which provides id (UUID PK), created_at,
    updated_at, created_by_id and updated_by_id.

Invariants enforced:
    - All monetary fields use Decimal (Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(20) containing the enum .value string.
    - One period per (year, month) (uq_payroll_period_year_month).
    - One entry per (period_id, employee_id) (uq_payroll_entry_period_employee).
    - replace_entries runs in a single transaction; any failure rolls back
      and leaves the previous entries in place.

Audit relevance:
    Each entry row stores the compensation snapshot and variable inputs next
    to the computed figures, so any row can be recomputed and checked.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from payroll_engines.earnings import CompensationConfig, PayrollBreakdown, VariableInputs
from payroll_kernel.db.base import TrackedBase
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import (
    PayrollEntry,
    PayrollPeriod,
    PeriodStatus,
    PeriodTotals,
)

logger = get_logger("modules.payroll.orm")


# ---------------------------------------------------------------------------
# PayrollPeriodModel
# ---------------------------------------------------------------------------

class PayrollPeriodModel(TrackedBase):
    """ORM model for ``PayrollPeriod``."""

    __tablename__ = "payroll_periods"

    year: Mapped[int] = mapped_column(nullable=False)
    month: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    total_gross: Mapped[Decimal] = mapped_column(nullable=False)
    total_net: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    total_employer_cost: Mapped[Decimal] = mapped_column(nullable=False)
    employee_count: Mapped[int] = mapped_column(nullable=False, default=0)
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_payroll_period_year_month"),
        Index("idx_payroll_period_status", "status"),
    )

    def to_dto(self) -> PayrollPeriod:
        return PayrollPeriod(
            id=self.id,
            year=self.year,
            month=self.month,
            status=PeriodStatus(self.status),
            totals=PeriodTotals(
                total_gross=self.total_gross,
                total_net=self.total_net,
                total_deductions=self.total_deductions,
                total_employer_cost=self.total_employer_cost,
                employee_count=self.employee_count,
            ),
            created_at=self.created_at,
            updated_at=self.updated_at,
            calculated_at=self.calculated_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            paid_at=self.paid_at,
        )

    def apply_dto(self, dto: PayrollPeriod, actor_id: UUID) -> None:
        """Copy mutable period state from ``dto`` onto this row."""
        self.status = dto.status.value
        self.total_gross = dto.totals.total_gross
        self.total_net = dto.totals.total_net
        self.total_deductions = dto.totals.total_deductions
        self.total_employer_cost = dto.totals.total_employer_cost
        self.employee_count = dto.totals.employee_count
        self.calculated_at = dto.calculated_at
        self.approved_at = dto.approved_at
        self.approved_by = dto.approved_by
        self.paid_at = dto.paid_at
        self.updated_by_id = actor_id

    @classmethod
    def from_dto(cls, dto: PayrollPeriod, created_by_id: UUID) -> "PayrollPeriodModel":
        model = cls(
            id=dto.id,
            year=dto.year,
            month=dto.month,
            created_by_id=created_by_id,
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
        model.apply_dto(dto, created_by_id)
        return model

    def __repr__(self) -> str:
        return f"<PayrollPeriodModel {self.year}-{self.month:02d} ({self.status})>"


# ---------------------------------------------------------------------------
# PayrollEntryModel
# ---------------------------------------------------------------------------

class PayrollEntryModel(TrackedBase):
    """
    ORM model for ``PayrollEntry``.

    Earnings that are copied straight from the compensation snapshot
    (base, allowances, bonus) and deductions copied from the inputs (loan,
    advance, other) are stored once and re-used for the breakdown.
    """

    __tablename__ = "payroll_entries"

    period_id: Mapped[UUID] = mapped_column(ForeignKey("payroll_periods.id"), nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    # Compensation snapshot
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    meal_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    transport_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    family_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    other_allowances: Mapped[Decimal] = mapped_column(nullable=False)
    monthly_bonus: Mapped[Decimal] = mapped_column(nullable=False)
    configured_holiday_subsidy: Mapped[Decimal] = mapped_column(nullable=False)
    is_retired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Variable inputs (clamped)
    overtime_hours_normal: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours_night: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours_holiday: Mapped[Decimal] = mapped_column(nullable=False)
    days_absent: Mapped[Decimal] = mapped_column(nullable=False)
    delay_hours: Mapped[Decimal] = mapped_column(nullable=False)
    loan_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    advance_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(nullable=False)

    # Subsidy flags
    holiday_subsidy_due: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    include_thirteenth_month: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    months_worked: Mapped[int] = mapped_column(nullable=False, default=12)

    # Computed figures
    overtime_normal: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_night: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_holiday: Mapped[Decimal] = mapped_column(nullable=False)
    thirteenth_month: Mapped[Decimal] = mapped_column(nullable=False)
    holiday_subsidy: Mapped[Decimal] = mapped_column(nullable=False)
    inss_base: Mapped[Decimal] = mapped_column(nullable=False)
    irt_taxable_gross: Mapped[Decimal] = mapped_column(nullable=False)
    taxable_income: Mapped[Decimal] = mapped_column(nullable=False)
    irt: Mapped[Decimal] = mapped_column(nullable=False)
    inss_employee: Mapped[Decimal] = mapped_column(nullable=False)
    inss_employer: Mapped[Decimal] = mapped_column(nullable=False)
    absence_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)
    total_employer_cost: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="uq_payroll_entry_period_employee"),
        Index("idx_payroll_entry_period", "period_id"),
        Index("idx_payroll_entry_employee", "employee_id"),
    )

    def to_dto(self) -> PayrollEntry:
        compensation = CompensationConfig(
            base_salary=self.base_salary,
            meal_allowance=self.meal_allowance,
            transport_allowance=self.transport_allowance,
            family_allowance=self.family_allowance,
            other_allowances=self.other_allowances,
            monthly_bonus=self.monthly_bonus,
            holiday_subsidy=self.configured_holiday_subsidy,
            is_retired=self.is_retired,
        )
        inputs = VariableInputs(
            overtime_hours_normal=self.overtime_hours_normal,
            overtime_hours_night=self.overtime_hours_night,
            overtime_hours_holiday=self.overtime_hours_holiday,
            days_absent=self.days_absent,
            delay_hours=self.delay_hours,
            other_deductions=self.other_deductions,
            loan_deduction=self.loan_deduction,
            advance_deduction=self.advance_deduction,
        )
        breakdown = PayrollBreakdown(
            base_salary=self.base_salary,
            meal_allowance=self.meal_allowance,
            transport_allowance=self.transport_allowance,
            family_allowance=self.family_allowance,
            other_allowances=self.other_allowances,
            monthly_bonus=self.monthly_bonus,
            overtime_normal=self.overtime_normal,
            overtime_night=self.overtime_night,
            overtime_holiday=self.overtime_holiday,
            thirteenth_month=self.thirteenth_month,
            holiday_subsidy=self.holiday_subsidy,
            inss_base=self.inss_base,
            irt_taxable_gross=self.irt_taxable_gross,
            taxable_income=self.taxable_income,
            irt=self.irt,
            inss_employee=self.inss_employee,
            inss_employer=self.inss_employer,
            absence_deduction=self.absence_deduction,
            loan_deduction=self.loan_deduction,
            advance_deduction=self.advance_deduction,
            other_deductions=self.other_deductions,
            gross_salary=self.gross_salary,
            total_deductions=self.total_deductions,
            net_salary=self.net_salary,
            total_employer_cost=self.total_employer_cost,
        )
        return PayrollEntry(
            id=self.id,
            period_id=self.period_id,
            employee_id=self.employee_id,
            compensation=compensation,
            inputs=inputs,
            breakdown=breakdown,
            holiday_subsidy_due=self.holiday_subsidy_due,
            include_thirteenth_month=self.include_thirteenth_month,
            months_worked=self.months_worked,
            department=self.department,
            status=PeriodStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: PayrollEntry, created_by_id: UUID) -> "PayrollEntryModel":
        c = dto.compensation
        i = dto.inputs
        b = dto.breakdown
        model = cls(
            id=dto.id,
            period_id=dto.period_id,
            employee_id=dto.employee_id,
            department=dto.department,
            status=dto.status.value,
            base_salary=c.base_salary,
            meal_allowance=c.meal_allowance,
            transport_allowance=c.transport_allowance,
            family_allowance=c.family_allowance,
            other_allowances=c.other_allowances,
            monthly_bonus=c.monthly_bonus,
            configured_holiday_subsidy=c.holiday_subsidy,
            is_retired=c.is_retired,
            overtime_hours_normal=i.overtime_hours_normal,
            overtime_hours_night=i.overtime_hours_night,
            overtime_hours_holiday=i.overtime_hours_holiday,
            days_absent=i.days_absent,
            delay_hours=i.delay_hours,
            loan_deduction=i.loan_deduction,
            advance_deduction=i.advance_deduction,
            other_deductions=i.other_deductions,
            holiday_subsidy_due=dto.holiday_subsidy_due,
            include_thirteenth_month=dto.include_thirteenth_month,
            months_worked=dto.months_worked,
            overtime_normal=b.overtime_normal,
            overtime_night=b.overtime_night,
            overtime_holiday=b.overtime_holiday,
            thirteenth_month=b.thirteenth_month,
            holiday_subsidy=b.holiday_subsidy,
            inss_base=b.inss_base,
            irt_taxable_gross=b.irt_taxable_gross,
            taxable_income=b.taxable_income,
            irt=b.irt,
            inss_employee=b.inss_employee,
            inss_employer=b.inss_employer,
            absence_deduction=b.absence_deduction,
            gross_salary=b.gross_salary,
            total_deductions=b.total_deductions,
            net_salary=b.net_salary,
            total_employer_cost=b.total_employer_cost,
            created_by_id=created_by_id,
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
        return model

    def __repr__(self) -> str:
        return (
            f"<PayrollEntryModel period={self.period_id} employee={self.employee_id} "
            f"net={self.net_salary} ({self.status})>"
        )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class SqlAlchemyPayrollRepository:
    """
    ``PayrollRepository`` backed by a SQLAlchemy session.

    Every write method owns its transaction: commit on success, rollback
    and re-raise on any exception.
    """

    def __init__(self, session: Session, actor_id: UUID):
        self._session = session
        self._actor_id = actor_id

    def add_period(self, period: PayrollPeriod) -> None:
        try:
            self._session.add(PayrollPeriodModel.from_dto(period, self._actor_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def save_period(self, period: PayrollPeriod) -> None:
        try:
            self._upsert_period(period)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        model = self._session.get(PayrollPeriodModel, period_id)
        return model.to_dto() if model is not None else None

    def find_period(self, year: int, month: int) -> PayrollPeriod | None:
        model = self._session.scalars(
            select(PayrollPeriodModel).where(
                PayrollPeriodModel.year == year,
                PayrollPeriodModel.month == month,
            )
        ).first()
        return model.to_dto() if model is not None else None

    def list_periods(self) -> list[PayrollPeriod]:
        models = self._session.scalars(
            select(PayrollPeriodModel).order_by(PayrollPeriodModel.year, PayrollPeriodModel.month)
        ).all()
        return [m.to_dto() for m in models]

    def get_entry(self, entry_id: UUID) -> PayrollEntry | None:
        model = self._session.get(PayrollEntryModel, entry_id)
        return model.to_dto() if model is not None else None

    def list_entries(self, period_id: UUID) -> list[PayrollEntry]:
        models = self._session.scalars(
            select(PayrollEntryModel).where(PayrollEntryModel.period_id == period_id)
        ).all()
        return [m.to_dto() for m in models]

    def save_entry(self, entry: PayrollEntry) -> None:
        try:
            existing = self._session.get(PayrollEntryModel, entry.id)
            if existing is not None:
                self._session.delete(existing)
                self._session.flush()
            self._session.add(PayrollEntryModel.from_dto(entry, self._actor_id))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def replace_entries(
        self,
        period_id: UUID,
        entries: Sequence[PayrollEntry],
        period: PayrollPeriod | None = None,
    ) -> None:
        try:
            for entry in entries:
                if entry.period_id != period_id:
                    raise ValueError(
                        f"Entry {entry.id} belongs to period {entry.period_id}, not {period_id}"
                    )
            existing = self._session.scalars(
                select(PayrollEntryModel).where(PayrollEntryModel.period_id == period_id)
            ).all()
            for model in existing:
                self._session.delete(model)
            # Replacement rows may reuse the ids just deleted
            self._session.flush()
            for entry in entries:
                self._session.add(PayrollEntryModel.from_dto(entry, self._actor_id))
            if period is not None:
                self._upsert_period(period)
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "payroll_entries_replace_rolled_back",
                extra={"period_id": str(period_id), "entry_count": len(entries)},
            )
            raise

    def delete_entries(self, entry_ids: Sequence[UUID]) -> int:
        if not entry_ids:
            return 0
        try:
            models = self._session.scalars(
                select(PayrollEntryModel).where(PayrollEntryModel.id.in_(list(entry_ids)))
            ).all()
            for model in models:
                self._session.delete(model)
            self._session.commit()
            return len(models)
        except Exception:
            self._session.rollback()
            raise

    def _upsert_period(self, period: PayrollPeriod) -> None:
        model = self._session.get(PayrollPeriodModel, period.id)
        if model is None:
            self._session.add(PayrollPeriodModel.from_dto(period, self._actor_id))
        else:
            model.apply_dto(period, self._actor_id)
