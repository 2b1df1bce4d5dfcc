"""
Employee Model.
Owned by account management; the core reads identity, hire date, role and
name parts (the latter for biometric name matching).
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from workforce.database import Base


class EmployeeRole(str, enum.Enum):
    """
    Closed set of account roles.

    Each role maps onto exactly one accrual tier in
    ``workforce.services.leave_credit_service.ROLE_TIERS``.
    """
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    TEAM_LEAD = "Team Lead"
    HR = "HR"
    AGENT = "Agent"
    IT = "IT"
    UTILITY = "Utility"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False, index=True)

    # Stored as the role's display value; unknown values are rejected at accrual time
    role = Column(String(50), default=EmployeeRole.AGENT.value, nullable=False)
    hired_date = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    leave_credits = relationship("LeaveCredit", back_populates="employee", cascade="all, delete-orphan")
    leave_requests = relationship(
        "LeaveRequest",
        foreign_keys="[LeaveRequest.employee_id]",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    schedules = relationship("EmployeeSchedule", back_populates="employee", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Employee {self.id}: {self.full_name} ({self.role})>"

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)
