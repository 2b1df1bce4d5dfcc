"""
Leave Credit Service Layer

Monthly leave-credit ledger: accrual, balances, eligibility and FIFO
deduction/restoration.

Architecture:
- Router / LeaveWorkflowService -> LeaveCreditService (this module) -> LeaveCredit rows
- One ledger row per (employee, year, month); the database unique
  constraint is what makes accrual idempotent under concurrency
- Credits are year-scoped: a year's balance only ever counts that year's rows
- "Now" always comes from the injected Clock
"""
import calendar
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.core.config import settings
from workforce.core.exceptions import ValidationError
from workforce.models.employee import Employee, EmployeeRole
from workforce.models.leave_credit import LeaveCredit
from workforce.models.leave_request import LeaveRequest, LeaveStatus, CREDITED_LEAVE_TYPES
from workforce.services.base import BaseService

ZERO = Decimal("0")


class AccrualTier(str, enum.Enum):
    MANAGERIAL = "managerial"
    STANDARD = "standard"


ROLE_TIERS: Dict[EmployeeRole, AccrualTier] = {
    EmployeeRole.SUPER_ADMIN: AccrualTier.MANAGERIAL,
    EmployeeRole.ADMIN: AccrualTier.MANAGERIAL,
    EmployeeRole.TEAM_LEAD: AccrualTier.MANAGERIAL,
    EmployeeRole.HR: AccrualTier.MANAGERIAL,
    EmployeeRole.AGENT: AccrualTier.STANDARD,
    EmployeeRole.IT: AccrualTier.STANDARD,
    EmployeeRole.UTILITY: AccrualTier.STANDARD,
}


def accrual_tier(role: Union[str, EmployeeRole]) -> AccrualTier:
    """Resolve a stored role string to its accrual tier; unknown roles are rejected."""
    try:
        return ROLE_TIERS[EmployeeRole(role)]
    except (ValueError, KeyError):
        raise ValidationError(f"Unknown employee role '{role}'", details={"role": str(role)})


def tier_rates() -> Dict[AccrualTier, Decimal]:
    return {
        AccrualTier.MANAGERIAL: Decimal(settings.leave.managerial_monthly_rate),
        AccrualTier.STANDARD: Decimal(settings.leave.standard_monthly_rate),
    }


def month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the target month."""
    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def calculate_working_days(start_date: date, end_date: date) -> Decimal:
    """Monday-Friday days in the inclusive span; weekends are never charged."""
    days = 0
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return Decimal(days)


@dataclass(frozen=True)
class LedgerMutation:
    """
    Outcome of a FIFO deduction or restoration.

    On failure nothing was written; ``available`` tells how much the ledger
    could have covered.
    """
    success: bool
    requested: Decimal
    applied: Decimal
    available: Decimal
    allocations: Tuple[Tuple[int, Decimal], ...] = ()

    @property
    def shortfall(self) -> Decimal:
        return max(self.requested - self.available, ZERO) if not self.success else ZERO

    def __bool__(self) -> bool:
        return self.success


@dataclass
class AccrualBatchSummary:
    year: int
    month: int
    accrued: int = 0
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)


class LeaveCreditService(BaseService):
    """Ledger accrual engine for monthly leave credits."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)

    # ------------------------------------------------------------------
    # Rates & eligibility
    # ------------------------------------------------------------------

    def monthly_rate(self, employee: Employee) -> Decimal:
        return tier_rates()[accrual_tier(employee.role)]

    def eligibility_date(self, employee: Employee) -> Optional[date]:
        if not employee.hired_date:
            return None
        return add_months(employee.hired_date, settings.leave.eligibility_months)

    def is_eligible_to_use(self, employee: Employee) -> bool:
        eligible_on = self.eligibility_date(employee)
        if eligible_on is None:
            return False
        return self.clock.now() >= datetime.combine(eligible_on, time.min)

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    def _find_entry(self, employee_id: int, year: int, month: int) -> Optional[LeaveCredit]:
        return self.db.query(LeaveCredit).filter(
            LeaveCredit.employee_id == employee_id,
            LeaveCredit.year == year,
            LeaveCredit.month == month,
        ).first()

    def _accrue(self, employee: Employee, year: int, month: int) -> Tuple[Optional[LeaveCredit], bool]:
        """Accrue one month. Returns (entry, created)."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month {month}")

        if not employee.hired_date:
            return None, False

        # Only completed months accrue
        target = month_end(year, month)
        if self.clock.now() < datetime.combine(target, time.max):
            return None, False

        if target < employee.hired_date:
            return None, False

        existing = self._find_entry(employee.id, year, month)
        if existing:
            return existing, False

        rate = self.monthly_rate(employee)
        entry = LeaveCredit(
            employee_id=employee.id,
            year=year,
            month=month,
            credits_earned=rate,
            credits_used=ZERO,
            credits_balance=rate,
            accrued_at=target,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer accrued the same month between our read and insert
            self.db.rollback()
            existing = self._find_entry(employee.id, year, month)
            if existing is None:
                raise
            self.log_info(
                f"Accrual for employee {employee.id} {year}-{month:02d} already written concurrently",
                employee_id=employee.id,
            )
            return existing, False

        self.db.refresh(entry)
        return entry, True

    def accrue_monthly(self, employee: Employee, year: int, month: int) -> Optional[LeaveCredit]:
        """
        Create the ledger row for a completed month, or return the existing one.

        Returns None when the employee has no hire date, the month has not
        fully elapsed, or the month precedes the hire month.
        """
        entry, _ = self._accrue(employee, year, month)
        return entry

    def backfill_credits(self, employee: Employee) -> int:
        """Accrue every completed month from the hire month to now. Returns rows created."""
        if not employee.hired_date:
            return 0

        today = self.clock.today()
        year, month = employee.hired_date.year, employee.hired_date.month
        created = 0

        while (year, month) <= (today.year, today.month):
            _, was_created = self._accrue(employee, year, month)
            if was_created:
                created += 1
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

        if created:
            self.log_info(f"Backfilled {created} leave credit month(s) for employee {employee.id}", employee_id=employee.id)
        return created

    def accrue_monthly_for_all(self, year: Optional[int] = None, month: Optional[int] = None) -> AccrualBatchSummary:
        """
        Monthly batch over every active employee with a hire date.

        Defaults to the most recently completed month. A failure for one
        employee is rolled back and recorded; the run continues.
        """
        if year is None or month is None:
            last_month = self.clock.today().replace(day=1) - timedelta(days=1)
            year, month = last_month.year, last_month.month

        summary = AccrualBatchSummary(year=year, month=month)
        employees = self.db.query(Employee).filter(
            Employee.hired_date.isnot(None),
            Employee.is_active.is_(True),
        ).order_by(Employee.id).all()
        employee_ids = [e.id for e in employees]

        for employee_id in employee_ids:
            try:
                employee = self.db.get(Employee, employee_id)
                _, created = self._accrue(employee, year, month)
            except Exception as e:
                self.db.rollback()
                summary.errors.append({"employee_id": employee_id, "error": str(e)})
                self.log_error(
                    f"Accrual failed for employee {employee_id}: {e}",
                    exc_info=True,
                    employee_id=employee_id,
                )
                continue

            if created:
                summary.accrued += 1
            else:
                summary.skipped += 1

        self.log_info(
            f"Accrual batch {year}-{month:02d}: {summary.accrued} accrued, "
            f"{summary.skipped} skipped, {len(summary.errors)} failed"
        )
        return summary

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def get_entries(self, employee: Employee, year: int) -> List[LeaveCredit]:
        return self.db.query(LeaveCredit).filter(
            LeaveCredit.employee_id == employee.id,
            LeaveCredit.year == year,
        ).order_by(LeaveCredit.month).all()

    def get_balance(self, employee: Employee, year: int) -> Decimal:
        return sum((e.credits_balance for e in self.get_entries(employee, year)), ZERO)

    def get_pending_credits(self, employee: Employee) -> Decimal:
        """Days tied up in pending credited requests, across all years."""
        pending = self.db.query(LeaveRequest).filter(
            LeaveRequest.employee_id == employee.id,
            LeaveRequest.status == LeaveStatus.PENDING.value,
            LeaveRequest.leave_type.in_([t.value for t in CREDITED_LEAVE_TYPES]),
        ).all()
        return sum((r.days_requested for r in pending), ZERO)

    def get_summary(self, employee: Employee, year: Optional[int] = None) -> Dict[str, Any]:
        year = year or self.clock.today().year
        entries = self.get_entries(employee, year)
        return {
            "employee_id": employee.id,
            "year": year,
            "is_eligible": self.is_eligible_to_use(employee),
            "eligibility_date": self.eligibility_date(employee),
            "monthly_rate": self.monthly_rate(employee),
            "total_earned": sum((e.credits_earned for e in entries), ZERO),
            "total_used": sum((e.credits_used for e in entries), ZERO),
            "balance": sum((e.credits_balance for e in entries), ZERO),
            "pending_credits": self.get_pending_credits(employee),
            "credits_by_month": entries,
        }

    def audit_ledger(self, employee: Employee, year: int) -> List[Dict[str, Any]]:
        """Entries whose stored figures break the ledger invariants."""
        issues = []
        for entry in self.get_entries(employee, year):
            problems = []
            if entry.credits_balance != entry.credits_earned - entry.credits_used:
                problems.append("balance_mismatch")
            if entry.credits_balance < ZERO:
                problems.append("negative_balance")
            if entry.credits_balance > entry.credits_earned:
                problems.append("balance_exceeds_earned")
            if problems:
                issues.append({
                    "month": entry.month,
                    "problems": problems,
                    "earned": entry.credits_earned,
                    "used": entry.credits_used,
                    "balance": entry.credits_balance,
                })
        return issues

    # ------------------------------------------------------------------
    # Deduction & restoration
    # ------------------------------------------------------------------

    def _locked_entries(self, employee_id: int, year: int) -> List[LeaveCredit]:
        # Row locks serialize concurrent deductions/restorations per employee
        return self.db.query(LeaveCredit).filter(
            LeaveCredit.employee_id == employee_id,
            LeaveCredit.year == year,
        ).order_by(LeaveCredit.month).with_for_update().all()

    def deduct_credits(
        self,
        employee: Employee,
        days: Union[Decimal, float, int],
        year: int,
        commit: bool = True,
    ) -> LedgerMutation:
        """
        Consume ``days`` from the year's ledger, oldest month first.

        All-or-nothing: if the year's balance cannot cover the full amount
        no row is touched and ``success`` is False.
        """
        amount = to_decimal(days)
        if amount <= ZERO:
            raise ValidationError("Days to deduct must be positive")

        entries = self._locked_entries(employee.id, year)
        available = sum((e.credits_balance for e in entries), ZERO)
        if available < amount:
            self.log_warning(
                f"Insufficient credits for employee {employee.id} in {year}: need {amount}, have {available}",
                employee_id=employee.id,
            )
            return LedgerMutation(success=False, requested=amount, applied=ZERO, available=available)

        remaining = amount
        allocations = []
        for entry in entries:
            if remaining <= ZERO:
                break
            take = min(remaining, entry.credits_balance)
            if take <= ZERO:
                continue
            entry.credits_used += take
            entry.credits_balance -= take
            allocations.append((entry.month, take))
            remaining -= take

        self.db.flush()
        if commit:
            self.commit()
        return LedgerMutation(
            success=True, requested=amount, applied=amount, available=available, allocations=tuple(allocations)
        )

    def restore_credits(
        self,
        employee: Employee,
        days: Union[Decimal, float, int],
        year: int,
        commit: bool = True,
    ) -> LedgerMutation:
        """
        Give back ``days`` to the year's ledger, oldest month first.

        Each entry gets back at most what was used from it, so balance never
        exceeds earned. All-or-nothing like ``deduct_credits``.
        """
        amount = to_decimal(days)
        if amount <= ZERO:
            raise ValidationError("Days to restore must be positive")

        entries = self._locked_entries(employee.id, year)
        restorable = sum((e.credits_used for e in entries), ZERO)
        if restorable < amount:
            self.log_warning(
                f"Cannot restore {amount} credits for employee {employee.id} in {year}: only {restorable} used",
                employee_id=employee.id,
            )
            return LedgerMutation(success=False, requested=amount, applied=ZERO, available=restorable)

        remaining = amount
        allocations = []
        for entry in entries:
            if remaining <= ZERO:
                break
            give = min(remaining, entry.credits_used)
            if give <= ZERO:
                continue
            entry.credits_used -= give
            entry.credits_balance += give
            allocations.append((entry.month, give))
            remaining -= give

        self.db.flush()
        if commit:
            self.commit()
        return LedgerMutation(
            success=True, requested=amount, applied=amount, available=restorable, allocations=tuple(allocations)
        )
