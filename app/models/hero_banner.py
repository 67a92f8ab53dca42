from sqlalchemy import Boolean, Column, Integer, String
from app.core.database import Base
from app.models.base import TimestampMixin


class HeroBanner(Base, TimestampMixin):
    __tablename__ = "hero_banners"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(160), nullable=False)
    subtitle = Column(String(255), nullable=False, default="")
    button_text = Column(String(64), nullable=False, default="")
    background_color = Column(String(16), nullable=False, default="#f97316")
    # At most one banner is active at a time.
    is_active = Column(Boolean, nullable=False, default=False)
