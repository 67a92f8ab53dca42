from sqlalchemy import Boolean, Column, Integer, JSON, String
from app.core.database import Base
from app.models.base import TimestampMixin


class PaymentGateway(Base, TimestampMixin):
    __tablename__ = "payment_gateways"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    type = Column(String(32), nullable=False)  # e.g. "razorpay", "paytm", "upi"
    api_key = Column(String(255), nullable=True)
    secret_key = Column(String(255), nullable=True)
    webhook_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    is_test_mode = Column(Boolean, nullable=False, default=True)
    config = Column(JSON, nullable=True)  # checkout_url and gateway specific options
