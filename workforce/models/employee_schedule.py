from datetime import date
from sqlalchemy import Column, Integer, String, Date, Time, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from workforce.database import Base


class EmployeeSchedule(Base):
    """Shift schedule. Read-only to the attendance pipeline."""
    __tablename__ = "employee_schedules"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    shift_type = Column(String(30), nullable=True)  # e.g. morning_shift, night_shift
    scheduled_time_in = Column(Time, nullable=False)
    scheduled_time_out = Column(Time, nullable=False)
    work_days = Column(JSON, nullable=True)  # ["monday", "tuesday", ...]; null means every day
    grace_period_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    effective_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    employee = relationship("Employee", back_populates="schedules")

    def covers(self, day: date) -> bool:
        if not self.is_active or self.effective_date > day:
            return False
        return self.end_date is None or self.end_date >= day

    def works_on(self, day: date) -> bool:
        if not self.work_days:
            return True
        return day.strftime("%A").lower() in {d.lower() for d in self.work_days}
