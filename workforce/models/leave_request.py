from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from workforce.database import Base
import enum

class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING

class LeaveType(str, enum.Enum):
    VL = "VL"      # vacation
    SL = "SL"      # sick
    BL = "BL"      # birthday
    SPL = "SPL"    # solo parent
    LOA = "LOA"    # leave of absence
    LDV = "LDV"    # domestic violence
    UPTO = "UPTO"  # unpaid time off
    ML = "ML"      # maternity

    @property
    def requires_credits(self) -> bool:
        return self in CREDITED_LEAVE_TYPES

CREDITED_LEAVE_TYPES = frozenset({LeaveType.VL, LeaveType.SL, LeaveType.BL})
NON_CREDITED_LEAVE_TYPES = frozenset(set(LeaveType) - CREDITED_LEAVE_TYPES)

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = Column(String(10), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_requested = Column(Numeric(6, 2), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(20), default=LeaveStatus.PENDING.value, nullable=False, index=True)

    reviewed_by = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(Text, nullable=True)

    cancelled_by = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Set only when approval actually charged the ledger
    credits_deducted = Column(Numeric(6, 2), nullable=True)
    credits_year = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="leave_requests")

    @property
    def requires_credits(self) -> bool:
        return LeaveType(self.leave_type).requires_credits

    def snapshot(self) -> dict:
        """State captured for the audit trail."""
        return {
            "status": self.status,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "credits_deducted": str(self.credits_deducted) if self.credits_deducted is not None else None,
            "credits_year": self.credits_year,
        }
