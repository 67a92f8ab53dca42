import enum
from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum
from app.models.match import BetType


class BetStatus(str, enum.Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


TERMINAL_BET_STATUSES = {BetStatus.WON, BetStatus.LOST, BetStatus.CANCELLED}


class Bet(Base, TimestampMixin):
    __tablename__ = "bets"
    __table_args__ = (
        CheckConstraint("stake > 0", name="ck_bets_stake_positive"),
        CheckConstraint("odds >= 1.00", name="ck_bets_odds_min"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False)
    bet_type = Column(value_enum(BetType, "bettype"), nullable=False)
    stake = Column(BigInteger, nullable=False)
    # Price at placement time; never re-read from the match at settlement.
    odds = Column(Numeric(8, 2), nullable=False)
    potential_payout = Column(BigInteger, nullable=False)
    status = Column(value_enum(BetStatus, "betstatus"), nullable=False, default=BetStatus.PENDING)
    reference_id = Column(String(128), unique=True, nullable=False, index=True)
    placed_at = Column(DateTime(timezone=True), nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="bets")
    match = relationship("Match", back_populates="bets")


Index("ix_bets_user_status", Bet.user_id, Bet.status)
Index("ix_bets_match_status", Bet.match_id, Bet.status)
