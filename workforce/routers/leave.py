from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from workforce.core.clock import Clock
from workforce.database import get_db
from workforce.dependencies import get_actor_id, get_clock
from workforce.models.leave_request import LeaveStatus
from workforce.schemas.leave import (
    LeaveDenyRequest,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveReviewRequest,
)
from workforce.services.leave_workflow import LeaveWorkflowService

router = APIRouter(prefix="/leave", tags=["leave"])


def get_workflow(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaveWorkflowService:
    return LeaveWorkflowService(db, clock)


@router.post("/requests", response_model=LeaveRequestResponse, status_code=201)
def submit_leave_request(
    request: LeaveRequestCreate,
    workflow: LeaveWorkflowService = Depends(get_workflow),
):
    return workflow.submit(
        employee_id=request.employee_id,
        leave_type=request.leave_type,
        start_date=request.start_date,
        end_date=request.end_date,
        reason=request.reason,
    )


@router.get("/requests", response_model=List[LeaveRequestResponse])
def list_leave_requests(
    employee_id: Optional[int] = None,
    status: Optional[LeaveStatus] = None,
    workflow: LeaveWorkflowService = Depends(get_workflow),
):
    return workflow.list_requests(employee_id=employee_id, status=status)


@router.get("/requests/{request_id}", response_model=LeaveRequestResponse)
def get_leave_request(request_id: int, workflow: LeaveWorkflowService = Depends(get_workflow)):
    return workflow.get_request(request_id)


# Reviewer actions
@router.post("/requests/{request_id}/approve", response_model=LeaveRequestResponse)
def approve_leave_request(
    request_id: int,
    review: Optional[LeaveReviewRequest] = None,
    reviewer_id: int = Depends(get_actor_id),
    workflow: LeaveWorkflowService = Depends(get_workflow),
):
    notes = review.notes if review else None
    return workflow.approve(request_id, reviewer_id, notes)


@router.post("/requests/{request_id}/deny", response_model=LeaveRequestResponse)
def deny_leave_request(
    request_id: int,
    review: LeaveDenyRequest,
    reviewer_id: int = Depends(get_actor_id),
    workflow: LeaveWorkflowService = Depends(get_workflow),
):
    return workflow.deny(request_id, reviewer_id, review.notes)


@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestResponse)
def cancel_leave_request(
    request_id: int,
    actor_id: int = Depends(get_actor_id),
    workflow: LeaveWorkflowService = Depends(get_workflow),
):
    return workflow.cancel(request_id, actor_id)
