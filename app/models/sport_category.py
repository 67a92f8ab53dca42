from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class SportCategory(Base, TimestampMixin):
    __tablename__ = "sport_categories"

    id = Column(Integer, primary_key=True, index=True)
    api_source_id = Column(Integer, ForeignKey("game_apis.id"), nullable=False)
    category_key = Column(String(128), nullable=False)
    category_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)

    api_source = relationship("GameApi", back_populates="categories")


Index("ix_sport_categories_source_key", SportCategory.api_source_id, SportCategory.category_key, unique=True)
