# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, employee_schedule,
    leave_credit, leave_request,
    attendance, attendance_upload, biometric_record,
    audit_log, notification,
)

# Explicit class exports for cleaner imports
from .employee import Employee, EmployeeRole
from .employee_schedule import EmployeeSchedule
from .leave_credit import LeaveCredit
from .leave_request import LeaveRequest, LeaveStatus, LeaveType
from .attendance import Attendance, AttendanceStatus
from .attendance_upload import AttendanceUpload, UploadStatus
from .biometric_record import BiometricRecord
from .audit_log import AuditLog
from .notification import Notification

__all__ = [
    "Employee",
    "EmployeeRole",
    "EmployeeSchedule",
    "LeaveCredit",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "Attendance",
    "AttendanceStatus",
    "AttendanceUpload",
    "UploadStatus",
    "BiometricRecord",
    "AuditLog",
    "Notification",
]
