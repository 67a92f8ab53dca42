from sqlalchemy import Column, Integer, JSON, String
from app.core.database import Base
from app.models.base import TimestampMixin


class SystemSetting(Base, TimestampMixin):
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(64), unique=True, nullable=False, index=True)
    value = Column(JSON, nullable=True)
    description = Column(String(255), nullable=True)
