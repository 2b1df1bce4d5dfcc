import pytest
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import insert

from workforce.core.exceptions import ValidationError
from workforce.models.leave_credit import LeaveCredit
from workforce.services.leave_credit_service import (
    AccrualTier,
    LeaveCreditService,
    accrual_tier,
    add_months,
    calculate_working_days,
)


def _entries(db_session, employee, year):
    return db_session.query(LeaveCredit).filter(
        LeaveCredit.employee_id == employee.id,
        LeaveCredit.year == year,
    ).order_by(LeaveCredit.month).all()


@pytest.fixture
def service(db_session, clock):
    return LeaveCreditService(db_session, clock)


# --- Rates & eligibility ---

@pytest.mark.parametrize("role,tier", [
    ("Super Admin", AccrualTier.MANAGERIAL),
    ("Admin", AccrualTier.MANAGERIAL),
    ("Team Lead", AccrualTier.MANAGERIAL),
    ("HR", AccrualTier.MANAGERIAL),
    ("Agent", AccrualTier.STANDARD),
    ("IT", AccrualTier.STANDARD),
    ("Utility", AccrualTier.STANDARD),
])
def test_role_tiers(role, tier):
    assert accrual_tier(role) is tier


def test_unknown_role_is_rejected(service, make_employee):
    intern = make_employee(role="Intern")
    with pytest.raises(ValidationError):
        service.monthly_rate(intern)


def test_monthly_rates(service, make_employee):
    assert service.monthly_rate(make_employee(role="Team Lead")) == Decimal("1.5")
    assert service.monthly_rate(make_employee(role="Agent")) == Decimal("1.25")


def test_add_months_clamps_to_month_end():
    assert add_months(date(2025, 1, 31), 6) == date(2025, 7, 31)
    assert add_months(date(2024, 8, 31), 6) == date(2025, 2, 28)
    assert add_months(date(2025, 9, 15), 6) == date(2026, 3, 15)


def test_eligibility_window(service, make_employee, clock):
    employee = make_employee(hired_date=date(2025, 1, 1))
    assert service.eligibility_date(employee) == date(2025, 7, 1)

    clock.set_time(datetime(2025, 6, 30, 23, 59, 59))
    assert service.is_eligible_to_use(employee) is False

    clock.set_time(datetime(2025, 7, 1, 0, 0, 0))
    assert service.is_eligible_to_use(employee) is True


def test_no_hire_date_is_never_eligible(service, make_employee):
    employee = make_employee(hired_date=None)
    assert service.eligibility_date(employee) is None
    assert service.is_eligible_to_use(employee) is False


def test_working_days_skip_weekends():
    # Fri 2025-08-01 .. Mon 2025-08-04
    assert calculate_working_days(date(2025, 8, 1), date(2025, 8, 4)) == Decimal(2)
    assert calculate_working_days(date(2025, 8, 2), date(2025, 8, 3)) == Decimal(0)


# --- Accrual ---

def test_accrual_is_idempotent(service, make_employee, db_session):
    employee = make_employee()

    first = service.accrue_monthly(employee, 2025, 6)
    second = service.accrue_monthly(employee, 2025, 6)

    assert first is not None
    assert second.id == first.id
    assert second.credits_earned == Decimal("1.25")
    assert second.credits_balance == Decimal("1.25")
    assert len(_entries(db_session, employee, 2025)) == 1


def test_accrual_waits_for_month_end(service, make_employee, clock):
    employee = make_employee()

    assert service.accrue_monthly(employee, 2025, 12) is None

    clock.set_time(datetime(2025, 12, 31, 23, 59, 59))
    assert service.accrue_monthly(employee, 2025, 12) is None

    clock.advance(seconds=1)
    entry = service.accrue_monthly(employee, 2025, 12)
    assert entry is not None
    assert entry.accrued_at == date(2025, 12, 31)


def test_accrual_skips_months_before_hire(service, make_employee):
    employee = make_employee(hired_date=date(2025, 3, 15))

    assert service.accrue_monthly(employee, 2025, 2) is None
    assert service.accrue_monthly(employee, 2025, 3) is not None


def test_accrual_without_hire_date(service, make_employee):
    assert service.accrue_monthly(make_employee(hired_date=None), 2025, 6) is None


def test_accrual_rejects_invalid_month(service, make_employee):
    with pytest.raises(ValidationError):
        service.accrue_monthly(make_employee(), 2025, 13)


def test_concurrent_accrual_returns_existing_row(service, make_employee, db_session, monkeypatch):
    employee = make_employee()
    original_find = service._find_entry
    calls = {"n": 0}

    def racing_find(employee_id, year, month):
        calls["n"] += 1
        if calls["n"] == 1:
            # Another writer lands the same month between our read and insert
            db_session.execute(insert(LeaveCredit.__table__).values(
                employee_id=employee_id, year=year, month=month,
                credits_earned=Decimal("1.25"), credits_used=Decimal("0"),
                credits_balance=Decimal("1.25"), accrued_at=date(2025, 6, 30),
            ))
            db_session.commit()
            return None
        return original_find(employee_id, year, month)

    monkeypatch.setattr(service, "_find_entry", racing_find)

    entry, created = service._accrue(employee, 2025, 6)

    assert created is False
    assert entry is not None
    assert len(_entries(db_session, employee, 2025)) == 1


def test_backfill_creates_completed_months_only(service, make_employee, db_session):
    employee = make_employee(hired_date=date(2025, 1, 1))

    created = service.backfill_credits(employee)

    entries = _entries(db_session, employee, 2025)
    assert created == 11
    assert [e.month for e in entries] == list(range(1, 12))
    assert service.get_balance(employee, 2025) == Decimal("13.75")


def test_backfill_mid_november_stops_at_october(service, make_employee, clock):
    clock.set_time(datetime(2025, 11, 15, 9, 0, 0))
    employee = make_employee(hired_date=date(2025, 1, 1))

    assert service.backfill_credits(employee) == 10
    assert service.get_balance(employee, 2025) == Decimal("12.50")


def test_backfill_is_idempotent(service, make_employee):
    employee = make_employee()
    service.backfill_credits(employee)
    assert service.backfill_credits(employee) == 0


def test_backfill_spans_years_from_hire_month(service, make_employee, db_session, clock):
    clock.set_time(datetime(2026, 2, 10, 9, 0, 0))
    employee = make_employee(hired_date=date(2025, 11, 20), role="HR")

    assert service.backfill_credits(employee) == 3  # Nov, Dec, Jan
    assert [e.month for e in _entries(db_session, employee, 2025)] == [11, 12]
    assert service.get_balance(employee, 2026) == Decimal("1.5")


def test_no_carryover_across_years(service, make_employee, clock):
    employee = make_employee()
    service.backfill_credits(employee)

    clock.set_time(datetime(2026, 1, 1, 0, 0, 1))
    assert service.get_balance(employee, 2026) == Decimal("0")
    assert service.get_balance(employee, 2025) == Decimal("13.75")


def test_batch_accrual_isolates_failures(service, make_employee, db_session):
    good = make_employee(first_name="Ana", last_name="Reyes")
    bad = make_employee(first_name="Ben", last_name="Santos", role="Intern")
    inactive = make_employee(first_name="Cris", last_name="Lopez", is_active=False)
    make_employee(first_name="Dan", last_name="Garcia", hired_date=None)

    summary = service.accrue_monthly_for_all()

    assert (summary.year, summary.month) == (2025, 11)
    assert summary.accrued == 1
    assert [e["employee_id"] for e in summary.errors] == [bad.id]
    assert len(_entries(db_session, good, 2025)) == 1
    assert _entries(db_session, inactive, 2025) == []

    rerun = service.accrue_monthly_for_all(2025, 11)
    assert rerun.accrued == 0
    assert rerun.skipped == 1


# --- Deduction & restoration ---

@pytest.fixture
def five_months(service, make_employee, clock):
    """Agent with Jan-May 2025 at 1.25 each."""
    clock.set_time(datetime(2025, 6, 15, 9, 0, 0))
    employee = make_employee()
    assert service.backfill_credits(employee) == 5
    return employee


def test_fifo_deduction_order(service, five_months, db_session):
    result = service.deduct_credits(five_months, Decimal("4.0"), 2025)

    assert result.success
    assert result.allocations == (
        (1, Decimal("1.25")), (2, Decimal("1.25")), (3, Decimal("1.25")), (4, Decimal("0.25")),
    )

    entries = _entries(db_session, five_months, 2025)
    assert [e.credits_balance for e in entries[:3]] == [Decimal("0")] * 3
    assert entries[3].credits_used == Decimal("0.25")
    assert entries[3].credits_balance == Decimal("1.00")
    assert entries[4].credits_used == Decimal("0")
    assert entries[4].credits_balance == Decimal("1.25")


def test_deduction_is_all_or_nothing(service, five_months, db_session):
    result = service.deduct_credits(five_months, 7, 2025)

    assert not result
    assert result.applied == Decimal("0")
    assert result.available == Decimal("6.25")
    assert result.shortfall == Decimal("0.75")
    assert all(e.credits_used == Decimal("0") for e in _entries(db_session, five_months, 2025))


def test_deduct_then_restore_round_trip(service, five_months, db_session):
    before = [(e.credits_used, e.credits_balance) for e in _entries(db_session, five_months, 2025)]

    assert service.deduct_credits(five_months, Decimal("5.0"), 2025).success
    restored = service.restore_credits(five_months, Decimal("5.0"), 2025)

    assert restored.success
    after = [(e.credits_used, e.credits_balance) for e in _entries(db_session, five_months, 2025)]
    assert after == before


def test_restore_never_exceeds_used(service, five_months, db_session):
    service.deduct_credits(five_months, Decimal("2.0"), 2025)

    result = service.restore_credits(five_months, Decimal("3.0"), 2025)

    assert not result.success
    assert result.available == Decimal("2.0")
    assert service.get_balance(five_months, 2025) == Decimal("4.25")


def test_non_positive_amounts_are_rejected(service, five_months):
    with pytest.raises(ValidationError):
        service.deduct_credits(five_months, 0, 2025)
    with pytest.raises(ValidationError):
        service.restore_credits(five_months, Decimal("-1"), 2025)


def test_summary_and_ledger_audit(service, five_months, db_session):
    service.deduct_credits(five_months, Decimal("1.0"), 2025)

    summary = service.get_summary(five_months, 2025)
    assert summary["total_earned"] == Decimal("6.25")
    assert summary["total_used"] == Decimal("1.0")
    assert summary["balance"] == Decimal("5.25")
    assert summary["is_eligible"] is False
    assert len(summary["credits_by_month"]) == 5
    assert service.audit_ledger(five_months, 2025) == []

    broken = _entries(db_session, five_months, 2025)[4]
    broken.credits_used = Decimal("0.50")
    db_session.commit()

    issues = service.audit_ledger(five_months, 2025)
    assert [(i["month"], i["problems"]) for i in issues] == [(5, ["balance_mismatch"])]


def test_only_vl_sl_bl_consume_credits():
    from workforce.models.leave_request import CREDITED_LEAVE_TYPES, NON_CREDITED_LEAVE_TYPES, LeaveType

    assert {t.value for t in CREDITED_LEAVE_TYPES} == {"VL", "SL", "BL"}
    assert CREDITED_LEAVE_TYPES | NON_CREDITED_LEAVE_TYPES == set(LeaveType)
    assert not any(t.requires_credits for t in NON_CREDITED_LEAVE_TYPES)
