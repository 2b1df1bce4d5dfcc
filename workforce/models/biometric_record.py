from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from workforce.database import Base


class BiometricRecord(Base):
    """Raw scan line from a device export, kept for the audit trail. Never updated."""
    __tablename__ = "biometric_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    upload_id = Column(Integer, ForeignKey("attendance_uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    site_id = Column(Integer, nullable=True)
    device_no = Column(String(20), nullable=True)
    employee_name = Column(String(255), nullable=False)  # name exactly as the device exported it
    scan_datetime = Column(DateTime, nullable=False, index=True)
