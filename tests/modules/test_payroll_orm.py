"""ORM round-trip tests for the payroll module.

Verifies that periods and entries persist and load back into equal DTO
figures, that the unique constraints are enforced by the database, and
that ``SqlAlchemyPayrollRepository`` drives ``PayrollService`` end to end.

Models under test (2):
    PayrollPeriodModel, PayrollEntryModel
"""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from payroll_engines.earnings import VariableInputs
from payroll_kernel.db.engine import session_scope
from payroll_modules.payroll import PayrollPeriod, PayrollService, PeriodStatus
from payroll_modules.payroll.generator import build_entry, generate_entries, with_status
from payroll_modules.payroll.orm import (
    PayrollEntryModel,
    PayrollPeriodModel,
    SqlAlchemyPayrollRepository,
)

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_period(**overrides) -> PayrollPeriod:
    defaults = dict(id=uuid4(), year=2024, month=3)
    defaults.update(overrides)
    return PayrollPeriod(**defaults)


@pytest.fixture
def repository(session, test_actor_id):
    return SqlAlchemyPayrollRepository(session, test_actor_id)


# ---------------------------------------------------------------------------
# Period
# ---------------------------------------------------------------------------

class TestPayrollPeriodModel:
    def test_round_trip(self, repository):
        period = _make_period()
        repository.add_period(period)

        loaded = repository.get_period(period.id)

        assert loaded.year == 2024
        assert loaded.month == 3
        assert loaded.status is PeriodStatus.DRAFT
        assert loaded.totals.total_net == Decimal("0")
        assert repository.find_period(2024, 3).id == period.id
        assert repository.find_period(2024, 4) is None

    def test_list_ordered_by_month(self, repository):
        repository.add_period(_make_period(month=5))
        repository.add_period(_make_period(month=1))
        repository.add_period(_make_period(year=2023, month=12))

        labels = [p.label for p in repository.list_periods()]

        assert labels == ["2023-12", "2024-01", "2024-05"]

    def test_year_month_unique(self, session, test_actor_id):
        with session_scope() as s:
            s.add(PayrollPeriodModel.from_dto(_make_period(), test_actor_id))

        with pytest.raises(IntegrityError):
            with session_scope() as s:
                s.add(PayrollPeriodModel.from_dto(_make_period(), test_actor_id))

    def test_save_period_updates_row(self, repository):
        period = _make_period()
        repository.add_period(period)

        approved = PayrollPeriod(
            id=period.id,
            year=2024,
            month=3,
            status=PeriodStatus.APPROVED,
            approved_at=NOW,
            approved_by="rh.chefe",
        )
        repository.save_period(approved)

        loaded = repository.get_period(period.id)
        assert loaded.status is PeriodStatus.APPROVED
        assert loaded.approved_by == "rh.chefe"


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

class TestPayrollEntryModel:
    def test_round_trip_preserves_figures(self, repository, employee_factory):
        period = _make_period()
        repository.add_period(period)
        employee = employee_factory(holiday_subsidy="75000", is_retired=True)
        entry = build_entry(
            period,
            employee,
            VariableInputs(days_absent=Decimal("1.5"), loan_deduction=Decimal("10000")),
            holiday_subsidy_due=True,
            now=NOW,
        )
        repository.save_entry(entry)

        loaded = repository.get_entry(entry.id)

        assert loaded.breakdown == entry.breakdown
        assert loaded.compensation == entry.compensation
        assert loaded.inputs == entry.inputs
        assert loaded.holiday_subsidy_due
        assert loaded.department == "Operations"
        assert loaded.status is PeriodStatus.DRAFT

    def test_period_employee_unique(self, session, repository, employee_factory, test_actor_id):
        period = _make_period()
        repository.add_period(period)
        employee = employee_factory()
        first = build_entry(period, employee, VariableInputs(), now=NOW)
        repository.save_entry(first)

        second = build_entry(period, employee, VariableInputs(), now=NOW)
        session.add(PayrollEntryModel.from_dto(second, test_actor_id))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_save_entry_overwrites(self, repository, employee_factory):
        period = _make_period()
        repository.add_period(period)
        entry = build_entry(period, employee_factory(), VariableInputs(), now=NOW)
        repository.save_entry(entry)

        changed = build_entry(
            period, employee_factory(), VariableInputs(days_absent=Decimal("2")), now=NOW
        )
        repository.save_entry(replace(changed, id=entry.id, employee_id=entry.employee_id))

        assert repository.get_entry(entry.id).net_salary == Decimal("181865")
        assert len(repository.list_entries(period.id)) == 1


# ---------------------------------------------------------------------------
# Repository writes
# ---------------------------------------------------------------------------

class TestSqlAlchemyPayrollRepository:
    def test_replace_entries(self, repository, employee_factory):
        period = _make_period()
        repository.add_period(period)
        employees = [employee_factory("E001"), employee_factory("E002")]
        repository.replace_entries(period.id, generate_entries(period, employees, now=NOW))

        replacement = generate_entries(period, employees[:1], now=NOW)
        repository.replace_entries(period.id, replacement)

        stored = repository.list_entries(period.id)
        assert [e.id for e in stored] == [replacement[0].id]

    def test_replace_entries_reusing_ids(self, repository, employee_factory):
        period = _make_period()
        repository.add_period(period)
        entries = generate_entries(period, [employee_factory()], now=NOW)
        repository.replace_entries(period.id, entries)

        calculated = _make_period(id=period.id, status=PeriodStatus.CALCULATED)
        repository.replace_entries(
            period.id, with_status(entries, calculated, NOW), period=calculated
        )

        assert repository.get_entry(entries[0].id).status is PeriodStatus.CALCULATED
        assert repository.get_period(period.id).status is PeriodStatus.CALCULATED

    def test_replace_entries_all_or_nothing(self, repository, employee_factory, captured_logs):
        march = _make_period()
        april = _make_period(month=4)
        repository.add_period(march)
        repository.add_period(april)
        original = generate_entries(march, [employee_factory()], now=NOW)
        repository.replace_entries(march.id, original)

        stray = generate_entries(april, [employee_factory("E009")], now=NOW)
        with pytest.raises(ValueError, match="belongs to period"):
            repository.replace_entries(march.id, stray)

        assert [e.id for e in repository.list_entries(march.id)] == [original[0].id]
        assert any(
            r["message"] == "payroll_entries_replace_rolled_back" for r in captured_logs()
        )

    def test_delete_entries(self, repository, employee_factory):
        period = _make_period()
        repository.add_period(period)
        entries = generate_entries(period, [employee_factory("E001"), employee_factory("E002")], now=NOW)
        repository.replace_entries(period.id, entries)

        assert repository.delete_entries([entries[0].id, uuid4()]) == 1
        assert repository.delete_entries([]) == 0
        assert len(repository.list_entries(period.id)) == 1


class TestServiceOnDatabase:
    """PayrollService runs unchanged on the SQLAlchemy repository."""

    def test_lifecycle(self, repository, employee_factory, rate_table, deterministic_clock):
        service = PayrollService(repository, table=rate_table, clock=deterministic_clock)
        employee = employee_factory()

        period = service.create_period(2024, 3)
        (entry,) = service.regenerate_entries(period.id, [employee])
        service.update_absences(entry.id, Decimal("2"))
        service.calculate_period(period.id)
        service.approve_period(period.id, approved_by="rh.chefe")

        stored = repository.get_period(period.id)
        assert stored.status is PeriodStatus.APPROVED
        assert stored.totals.total_net == Decimal("181865")
        assert stored.totals.employee_count == 1
        assert [e.status for e in repository.list_entries(period.id)] == [PeriodStatus.APPROVED]
