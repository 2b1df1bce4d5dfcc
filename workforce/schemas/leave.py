from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from workforce.models.leave_request import LeaveType


class LeaveRequestCreate(BaseModel):
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class LeaveRequestResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    start_date: date
    end_date: date
    days_requested: Decimal
    reason: Optional[str] = None
    status: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    credits_deducted: Optional[Decimal] = None
    credits_year: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class LeaveReviewRequest(BaseModel):
    notes: Optional[str] = None


class LeaveDenyRequest(BaseModel):
    notes: str


class LeaveCreditEntryResponse(BaseModel):
    year: int
    month: int
    credits_earned: Decimal
    credits_used: Decimal
    credits_balance: Decimal
    accrued_at: date

    model_config = ConfigDict(from_attributes=True)


class LeaveCreditSummaryResponse(BaseModel):
    employee_id: int
    year: int
    is_eligible: bool
    eligibility_date: Optional[date] = None
    monthly_rate: Decimal
    total_earned: Decimal
    total_used: Decimal
    balance: Decimal
    pending_credits: Decimal
    credits_by_month: List[LeaveCreditEntryResponse]


class LeaveBalanceResponse(BaseModel):
    employee_id: int
    year: int
    balance: Decimal


class BackfillResponse(BaseModel):
    employee_id: int
    created: int


class AccrualRunRequest(BaseModel):
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)


class AccrualRunResponse(BaseModel):
    year: int
    month: int
    accrued: int
    skipped: int
    errors: List[dict] = []


# Resolve forward references for Pydantic V2
LeaveCreditSummaryResponse.model_rebuild()
