from sqlalchemy import Column, DateTime, Enum, func


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


def value_enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values ("pending"), not the member names ("PENDING").
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])
