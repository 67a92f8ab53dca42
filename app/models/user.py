import enum
from sqlalchemy import Column, Integer, String, Boolean, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(value_enum(UserRole, "userrole"), nullable=False, default=UserRole.USER)
    is_active = Column(Boolean, default=True, nullable=False)

    wallet = relationship("Wallet", back_populates="user", uselist=False)
    bets = relationship("Bet", back_populates="user")
    withdrawals = relationship("WithdrawalRequest", back_populates="user")
    deposits = relationship("Deposit", back_populates="user")


Index("ix_users_role_active", User.role, User.is_active)
