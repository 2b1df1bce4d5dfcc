from sqlalchemy import Column, Integer, String, Date, DateTime, Text, JSON
from sqlalchemy.sql import func
from workforce.database import Base
import enum


class UploadStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AttendanceUpload(Base):
    __tablename__ = "attendance_uploads"

    id = Column(Integer, primary_key=True, index=True)
    original_filename = Column(String(255), nullable=True)
    site_id = Column(Integer, nullable=True)
    date_from = Column(Date, nullable=True)
    date_to = Column(Date, nullable=True)

    status = Column(String(20), default=UploadStatus.PENDING.value, nullable=False)
    total_records = Column(Integer, default=0, nullable=False)
    processed_records = Column(Integer, default=0, nullable=False)
    skipped_records = Column(Integer, default=0, nullable=False)
    matched_employees = Column(Integer, default=0, nullable=False)
    unmatched_names = Column(Integer, default=0, nullable=False)
    unmatched_names_list = Column(JSON, nullable=True)
    dates_found = Column(JSON, nullable=True)
    # Earliest and latest scan in the export, whatever the date filter
    first_scan_at = Column(DateTime, nullable=True)
    last_scan_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
