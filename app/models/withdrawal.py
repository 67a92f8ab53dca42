import enum
from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


WITHDRAWAL_TRANSITIONS = {
    WithdrawalStatus.PENDING: {WithdrawalStatus.APPROVED, WithdrawalStatus.REJECTED},
    WithdrawalStatus.APPROVED: {WithdrawalStatus.COMPLETED},
    WithdrawalStatus.REJECTED: set(),
    WithdrawalStatus.COMPLETED: set(),
}


class WithdrawalRequest(Base, TimestampMixin):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(BigInteger, nullable=False)
    method = Column(String(32), nullable=False, default="bank_transfer")
    bank_details = Column(JSON, nullable=True)
    status = Column(value_enum(WithdrawalStatus, "withdrawalstatus"), nullable=False, default=WithdrawalStatus.PENDING)
    reference_id = Column(String(128), unique=True, nullable=True)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    admin_notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="withdrawals")


Index("ix_withdrawal_requests_status_requested", WithdrawalRequest.status, WithdrawalRequest.requested_at)
Index("ix_withdrawal_requests_user", WithdrawalRequest.user_id)
