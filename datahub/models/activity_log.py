from sqlalchemy import Column, Integer, String, Text, Index
from datahub.core.database import Base
from datahub.models.base import TimestampMixin


class ActivityLog(Base, TimestampMixin):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True)
    type = Column(String(32), nullable=False, default="system")  # auth|system|bundle|order|user
    level = Column(String(16), nullable=False, default="info")  # success|info|warning|error
    action = Column(String(128), nullable=False)
    message = Column(Text, nullable=False)


Index("ix_activity_logs_type_level", ActivityLog.type, ActivityLog.level)
