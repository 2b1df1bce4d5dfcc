from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.core.exceptions import NotFoundError
from workforce.database import get_db
from workforce.dependencies import get_actor_id, get_clock
from workforce.models.employee import Employee
from workforce.schemas.leave import (
    AccrualRunRequest,
    AccrualRunResponse,
    BackfillResponse,
    LeaveBalanceResponse,
    LeaveCreditSummaryResponse,
)
from workforce.services.leave_credit_service import LeaveCreditService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave-credits", tags=["leave-credits"])


def get_credit_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaveCreditService:
    return LeaveCreditService(db, clock)


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


@router.post("/accrue", response_model=AccrualRunResponse)
def run_monthly_accrual(
    run: Optional[AccrualRunRequest] = None,
    actor_id: int = Depends(get_actor_id),
    service: LeaveCreditService = Depends(get_credit_service),
):
    """Accrue one month for every active employee. Defaults to the last completed month."""
    run = run or AccrualRunRequest()
    logger.info(f"Monthly accrual triggered by {actor_id}", extra={"actor_id": actor_id})
    summary = service.accrue_monthly_for_all(run.year, run.month)
    return AccrualRunResponse(
        year=summary.year,
        month=summary.month,
        accrued=summary.accrued,
        skipped=summary.skipped,
        errors=summary.errors,
    )


@router.get("/{employee_id}", response_model=LeaveCreditSummaryResponse)
def get_leave_credit_summary(
    employee_id: int,
    year: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    service: LeaveCreditService = Depends(get_credit_service),
):
    employee = _get_employee(db, employee_id)
    return service.get_summary(employee, year)


@router.get("/{employee_id}/balance", response_model=LeaveBalanceResponse)
def get_leave_credit_balance(
    employee_id: int,
    year: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    service: LeaveCreditService = Depends(get_credit_service),
):
    employee = _get_employee(db, employee_id)
    year = year or service.clock.today().year
    return LeaveBalanceResponse(employee_id=employee.id, year=year, balance=service.get_balance(employee, year))


@router.post("/{employee_id}/backfill", response_model=BackfillResponse)
def backfill_leave_credits(
    employee_id: int,
    db: Session = Depends(get_db),
    service: LeaveCreditService = Depends(get_credit_service),
):
    employee = _get_employee(db, employee_id)
    return BackfillResponse(employee_id=employee.id, created=service.backfill_credits(employee))
