import enum
from sqlalchemy import BigInteger, CheckConstraint, Column, Integer, ForeignKey, String, Index
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum


class LedgerKind(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL_HOLD = "withdrawal_hold"
    WITHDRAWAL_RELEASE = "withdrawal_release"
    BET_STAKE = "bet_stake"
    BET_PAYOUT = "bet_payout"
    BET_REFUND = "bet_refund"


class LedgerEntry(Base, TimestampMixin):
    """Append-only balance event. Rows are inserted once and never updated or deleted."""

    __tablename__ = "ledger_entries"
    __table_args__ = (CheckConstraint("amount <> 0", name="ck_ledger_entries_amount_nonzero"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    kind = Column(value_enum(LedgerKind, "ledgerkind"), nullable=False)
    amount = Column(BigInteger, nullable=False)  # signed, minor units
    reference_id = Column(String(128), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=False, default="")
    related_bet_id = Column(Integer, ForeignKey("bets.id"), nullable=True)
    related_withdrawal_id = Column(Integer, ForeignKey("withdrawal_requests.id"), nullable=True)
    related_deposit_id = Column(Integer, ForeignKey("deposits.id"), nullable=True)


Index("ix_ledger_entries_user_id_id", LedgerEntry.user_id, LedgerEntry.id)
Index("ix_ledger_entries_kind", LedgerEntry.kind)
