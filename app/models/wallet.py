from sqlalchemy import BigInteger, Column, Integer, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class Wallet(Base, TimestampMixin):
    """
    Per-user projection of the ledger and the row every balance mutation locks.

    ``balance`` is a cache of SUM(ledger_entries.amount) for the user. It is
    rewritten from the ledger inside each mutating transaction and is never
    the source of truth.
    """

    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    balance = Column(BigInteger, default=0, nullable=False)
    last_entry_id = Column(Integer, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="wallet")
