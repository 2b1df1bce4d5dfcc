from pydantic import BaseModel, ConfigDict
from datetime import date, datetime, time
from typing import List, Optional


class AttendanceUploadResponse(BaseModel):
    id: int
    original_filename: Optional[str] = None
    site_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: str
    total_records: int
    processed_records: int
    skipped_records: int
    matched_employees: int
    unmatched_names: int
    unmatched_names_list: Optional[List[str]] = None
    dates_found: Optional[List[str]] = None
    first_scan_at: Optional[datetime] = None
    last_scan_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceResponse(BaseModel):
    id: int
    employee_id: int
    shift_date: date
    scheduled_time_in: Optional[time] = None
    scheduled_time_out: Optional[time] = None
    actual_time_in: Optional[datetime] = None
    actual_time_out: Optional[datetime] = None
    status: str
    bio_in_site_id: Optional[int] = None
    bio_out_site_id: Optional[int] = None
    admin_verified: bool
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
