from sqlalchemy import Column, Integer, String, Text, Boolean, Index
from datahub.core.database import Base
from datahub.models.base import TimestampMixin


class Notification(Base, TimestampMixin):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False)
    title = Column(String(128), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(16), nullable=False, default="info")  # info|success|error
    is_read = Column(Boolean, default=False, nullable=False)


Index("ix_notifications_user_read", Notification.user_id, Notification.is_read)
