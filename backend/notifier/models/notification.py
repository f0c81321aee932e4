"""Notification record: durable, in-app visible history, one row per recipient per request.

Written whether or not push delivery happened (or the user had any device at all).
sent_at / delivered_at: set when at least one of the user's devices got an ok ticket.
"delivered" means accepted by the gateway; there are no device receipts.
failed_at / failure_reason: set when every ticket for the user was an error.
data: outbound payload data bag (screen + params for client routing).
"""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, false
from sqlalchemy.sql import func

from notifier.db.base import Base, JSONType


def _new_id() -> str:
    return str(uuid.uuid4())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(32), nullable=False, index=True)
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSONType, nullable=False, default=dict)
    priority = Column(String(16), nullable=False, server_default="normal")
    read = Column(Boolean, nullable=False, default=False, server_default=false())
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
