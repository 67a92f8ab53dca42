from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class GameApi(Base, TimestampMixin):
    """An external game data source (The Odds API or compatible)."""

    __tablename__ = "game_apis"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    api_url = Column(String(512), nullable=False)
    api_key = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync = Column(DateTime(timezone=True), nullable=True)
    config = Column(JSON, nullable=True)

    matches = relationship("Match", back_populates="api_source")
    categories = relationship("SportCategory", back_populates="api_source", cascade="all, delete-orphan")
