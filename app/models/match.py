import enum
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, value_enum


class MatchStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BetType(str, enum.Enum):
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


BETTABLE_STATUSES = {MatchStatus.UPCOMING, MatchStatus.LIVE}


class Match(Base, TimestampMixin):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    home_team = Column(String(120), nullable=False)
    away_team = Column(String(120), nullable=False)
    sport = Column(String(64), nullable=False, default="football")
    category_key = Column(String(128), nullable=True, index=True)
    match_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(value_enum(MatchStatus, "matchstatus"), nullable=False, default=MatchStatus.UPCOMING)
    home_odds = Column(Numeric(8, 2), nullable=True)
    away_odds = Column(Numeric(8, 2), nullable=True)
    draw_odds = Column(Numeric(8, 2), nullable=True)
    # Outcome recorded at settlement, one of BetType values.
    result = Column(String(8), nullable=True)
    show_on_frontend = Column(Boolean, nullable=False, default=False)
    api_source_id = Column(Integer, ForeignKey("game_apis.id"), nullable=True)
    external_id = Column(String(128), nullable=True)

    api_source = relationship("GameApi", back_populates="matches")
    bets = relationship("Bet", back_populates="match")


Index("ix_matches_frontend_date", Match.show_on_frontend, Match.match_date)
Index("ix_matches_source_external", Match.api_source_id, Match.external_id, unique=True)
