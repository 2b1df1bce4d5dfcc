from sqlalchemy import Column, Integer, String, Date, Time, DateTime, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from workforce.database import Base
import enum


class AttendanceStatus(str, enum.Enum):
    ON_TIME = "on_time"
    TARDY = "tardy"
    UNDERTIME = "undertime"
    FAILED_BIO_OUT = "failed_bio_out"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"


class Attendance(Base):
    """One attendance day per (employee, shift_date); re-imports update in place."""
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("employee_id", "shift_date", name="uq_attendance_employee_shift_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    shift_date = Column(Date, nullable=False, index=True)

    scheduled_time_in = Column(Time, nullable=True)
    scheduled_time_out = Column(Time, nullable=True)
    actual_time_in = Column(DateTime, nullable=True)
    actual_time_out = Column(DateTime, nullable=True)

    status = Column(String(30), nullable=False, default=AttendanceStatus.NEEDS_MANUAL_REVIEW.value)
    bio_in_site_id = Column(Integer, nullable=True)
    bio_out_site_id = Column(Integer, nullable=True)

    admin_verified = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
