import enum
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum


class DepositStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Deposit(Base, TimestampMixin):
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    gateway_id = Column(Integer, ForeignKey("payment_gateways.id"), nullable=False)
    amount = Column(BigInteger, nullable=False)
    status = Column(value_enum(DepositStatus, "depositstatus"), nullable=False, default=DepositStatus.PENDING)
    # Our transaction id, handed to the gateway in the redirect URL.
    reference = Column(String(64), unique=True, nullable=False, index=True)
    external_reference = Column(String(128), nullable=True)
    failure_reason = Column(String(255), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="deposits")
    gateway = relationship("PaymentGateway")


Index("ix_deposits_user_status", Deposit.user_id, Deposit.status)
