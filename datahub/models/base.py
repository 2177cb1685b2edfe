from sqlalchemy import Column, DateTime, func


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


def enum_values(enum_cls) -> list[str]:
    # Store enum values ("processing"), not member names, to match the migrations.
    return [member.value for member in enum_cls]
