"""
Leave Workflow Service

State machine for leave requests:

    pending -> approved | denied | cancelled
    approved -> cancelled   (only while start_date is still in the future)

Credited leave types (VL, SL, BL) charge the monthly ledger on approval and
get their credits back if an approved request is cancelled. Each transition
is one commit: status, ledger rows and the audit entry land together or not
at all. Notifications are emitted after the commit and never fail a
transition.
"""
from datetime import date
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.core.config import settings
from workforce.core.exceptions import (
    InsufficientCreditsError,
    LedgerIntegrityError,
    NotEligibleError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from workforce.models.employee import Employee
from workforce.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from workforce.services.audit import AuditService
from workforce.services.base import BaseService
from workforce.services.leave_credit_service import LeaveCreditService, calculate_working_days
from workforce.services.notification import LeaveEventNotifier, NotificationService


class LeaveWorkflowService(BaseService):

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        credits: Optional[LeaveCreditService] = None,
        notifier: Optional[LeaveEventNotifier] = None,
    ):
        super().__init__(db, clock)
        self.credits = credits or LeaveCreditService(db, self.clock)
        self.notifier = notifier or NotificationService(db)
        self.audit = AuditService(db, self.clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: int, for_update: bool = False) -> LeaveRequest:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id)
        if for_update:
            query = query.with_for_update()
        leave = query.first()
        if not leave:
            raise NotFoundError(f"Leave request {request_id} not found")
        return leave

    def list_requests(
        self,
        employee_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
    ) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if employee_id is not None:
            query = query.filter(LeaveRequest.employee_id == employee_id)
        if status is not None:
            query = query.filter(LeaveRequest.status == LeaveStatus(status).value)
        return query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()).all()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        employee_id: int,
        leave_type: Union[str, LeaveType],
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        employee = self.db.get(Employee, employee_id)
        if not employee:
            raise ValidationError(f"Employee {employee_id} does not exist")

        leave_type = self._parse_leave_type(leave_type)
        if end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        days = calculate_working_days(start_date, end_date)
        if days <= 0:
            raise ValidationError("Requested dates contain no working days")

        if leave_type.requires_credits:
            self._ensure_eligible(employee, start_date)
            balance = self.credits.get_balance(employee, start_date.year)
            if balance < days:
                raise InsufficientCreditsError(
                    f"Insufficient leave credits. You have {balance} days available, but requested {days} days.",
                    details={"balance": str(balance), "requested": str(days), "year": start_date.year},
                )

        leave = LeaveRequest(
            employee_id=employee.id,
            leave_type=leave_type.value,
            start_date=start_date,
            end_date=end_date,
            days_requested=days,
            reason=reason,
            status=LeaveStatus.PENDING.value,
            credits_deducted=None,
            credits_year=None,
        )
        try:
            self.db.add(leave)
            self.db.flush()
            self.audit.log_action(
                action="submit_leave",
                entity_type="leave_request",
                entity_id=leave.id,
                actor_id=employee.id,
                details={"leave_type": leave.leave_type, "days_requested": days},
                after_state=leave.snapshot(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request {leave.id} submitted by employee {employee.id}", leave_request_id=leave.id)
        self._notify("submitted", leave)
        return leave

    def approve(self, request_id: int, reviewer_id: int, notes: Optional[str] = None) -> LeaveRequest:
        leave = self.get_request(request_id, for_update=True)
        self._ensure_pending(leave, "approve")
        before_state = leave.snapshot()

        try:
            allocations = []
            if leave.requires_credits:
                employee = leave.employee
                self._ensure_eligible(employee, leave.start_date)
                year = leave.start_date.year
                result = self.credits.deduct_credits(employee, leave.days_requested, year, commit=False)
                if not result.success:
                    raise InsufficientCreditsError(
                        f"Insufficient leave credits to approve: {result.available} available in {year}, "
                        f"{result.requested} requested.",
                        details={
                            "available": str(result.available),
                            "requested": str(result.requested),
                            "shortfall": str(result.shortfall),
                            "year": year,
                        },
                    )
                leave.credits_deducted = leave.days_requested
                leave.credits_year = year
                allocations = result.allocations

            leave.status = LeaveStatus.APPROVED.value
            leave.reviewed_by = reviewer_id
            leave.reviewed_at = self.clock.now()
            leave.review_notes = notes

            self.audit.log_action(
                action="approve_leave",
                entity_type="leave_request",
                entity_id=leave.id,
                actor_id=reviewer_id,
                details={"notes": notes, "allocations": [{"month": m, "days": d} for m, d in allocations]},
                before_state=before_state,
                after_state=leave.snapshot(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request {leave.id} approved by {reviewer_id}", leave_request_id=leave.id)
        self._notify("approved", leave)
        return leave

    def deny(self, request_id: int, reviewer_id: int, notes: str) -> LeaveRequest:
        leave = self.get_request(request_id, for_update=True)
        self._ensure_pending(leave, "deny")

        min_length = settings.leave.min_denial_notes_length
        if not notes or len(notes.strip()) < min_length:
            self.db.rollback()
            raise ValidationError(f"Denial notes must be at least {min_length} characters")

        before_state = leave.snapshot()

        try:
            leave.status = LeaveStatus.DENIED.value
            leave.reviewed_by = reviewer_id
            leave.reviewed_at = self.clock.now()
            leave.review_notes = notes.strip()

            self.audit.log_action(
                action="deny_leave",
                entity_type="leave_request",
                entity_id=leave.id,
                actor_id=reviewer_id,
                details={"notes": leave.review_notes},
                before_state=before_state,
                after_state=leave.snapshot(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request {leave.id} denied by {reviewer_id}", leave_request_id=leave.id)
        self._notify("denied", leave)
        return leave

    def cancel(self, request_id: int, actor_id: int) -> LeaveRequest:
        leave = self.get_request(request_id, for_update=True)
        status = LeaveStatus(leave.status)

        if status is LeaveStatus.APPROVED:
            if leave.start_date <= self.clock.today():
                raise StateConflictError("Approved leave can only be cancelled before it starts")
        elif status.is_terminal:
            raise StateConflictError(f"Cannot cancel a {status.value} leave request")

        before_state = leave.snapshot()
        try:
            allocations = []
            if status is LeaveStatus.APPROVED and leave.credits_deducted:
                result = self.credits.restore_credits(
                    leave.employee, leave.credits_deducted, leave.credits_year, commit=False
                )
                if not result.success:
                    raise LedgerIntegrityError(
                        f"Ledger for {leave.credits_year} cannot take back {result.requested} credits "
                        f"(only {result.available} used)",
                        details={"leave_request_id": leave.id},
                    )
                allocations = result.allocations

            leave.status = LeaveStatus.CANCELLED.value
            leave.cancelled_by = actor_id
            leave.cancelled_at = self.clock.now()

            self.audit.log_action(
                action="cancel_leave",
                entity_type="leave_request",
                entity_id=leave.id,
                actor_id=actor_id,
                details={"restored": [{"month": m, "days": d} for m, d in allocations]},
                before_state=before_state,
                after_state=leave.snapshot(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request {leave.id} cancelled by {actor_id}", leave_request_id=leave.id)
        self._notify("cancelled", leave)
        return leave

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_leave_type(leave_type: Union[str, LeaveType]) -> LeaveType:
        try:
            return LeaveType(leave_type)
        except ValueError:
            raise ValidationError(f"Unknown leave type '{leave_type}'")

    @staticmethod
    def _ensure_pending(leave: LeaveRequest, action: str) -> None:
        if leave.status != LeaveStatus.PENDING.value:
            raise StateConflictError(
                f"Cannot {action} a {leave.status} leave request",
                details={"leave_request_id": leave.id, "status": leave.status},
            )

    def _ensure_eligible(self, employee: Employee, start_date: date) -> None:
        eligible_on = self.credits.eligibility_date(employee)
        if eligible_on is None:
            raise NotEligibleError("No hire date on record; credited leave is unavailable")
        if not self.credits.is_eligible_to_use(employee) or start_date < eligible_on:
            raise NotEligibleError(
                f"Not eligible to use leave credits yet. Eligible on {eligible_on.strftime('%B %d, %Y')}.",
                details={"eligibility_date": eligible_on.isoformat()},
            )

    def _notify(self, event: str, leave: LeaveRequest) -> None:
        try:
            self.notifier.leave_event(event, leave)
            self.db.commit()
        except Exception as e:
            # Don't fail the transition if notification fails
            self.db.rollback()
            self.log_warning(f"Notification '{event}' failed for leave request {leave.id}: {e}")
