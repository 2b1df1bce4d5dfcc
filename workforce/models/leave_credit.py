from sqlalchemy import Column, Integer, Date, DateTime, Numeric, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from workforce.database import Base


class LeaveCredit(Base):
    """
    Monthly leave-credit ledger entry: one row per (employee, year, month).

    credits_balance == credits_earned - credits_used at all times.
    """
    __tablename__ = "leave_credits"
    __table_args__ = (
        # Concurrent accruals for the same month must collide here, not in app code
        UniqueConstraint("employee_id", "year", "month", name="uq_leave_credit_employee_month"),
        CheckConstraint("credits_balance >= 0", name="ck_leave_credit_balance_non_negative"),
        CheckConstraint("credits_balance <= credits_earned", name="ck_leave_credit_balance_le_earned"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False)

    credits_earned = Column(Numeric(6, 2), nullable=False)
    credits_used = Column(Numeric(6, 2), nullable=False, default=0)
    credits_balance = Column(Numeric(6, 2), nullable=False)

    accrued_at = Column(Date, nullable=False)  # last day of the accrued month
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", back_populates="leave_credits")

    def __repr__(self):
        return f"<LeaveCredit emp={self.employee_id} {self.year}-{self.month:02d} bal={self.credits_balance}>"
