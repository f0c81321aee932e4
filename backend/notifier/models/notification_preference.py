"""Per-user notification preferences: one boolean per category, all enabled by default.

No row for a user means everything enabled. The two safety flags are stored but never
consulted for critical types.
"""
from sqlalchemy import Boolean, Column, DateTime, String, true
from sqlalchemy.sql import func

from notifier.db.base import Base


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    user_id = Column(String(64), primary_key=True)
    ride_requests = Column(Boolean, nullable=False, default=True, server_default=true())
    ride_status_updates = Column(Boolean, nullable=False, default=True, server_default=true())
    event_updates = Column(Boolean, nullable=False, default=True, server_default=true())
    dd_request_updates = Column(Boolean, nullable=False, default=True, server_default=true())
    dd_session_reminders = Column(Boolean, nullable=False, default=True, server_default=true())
    sep_failure_alerts = Column(Boolean, nullable=False, default=True, server_default=true())
    dd_revocation_alerts = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
