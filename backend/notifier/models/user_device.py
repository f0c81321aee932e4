"""Device push token. One row per Expo token; a user may have several devices.

is_active = False rows are skipped for delivery but kept for audit (logout, DeviceNotRegistered).
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, true
from sqlalchemy.sql import func

from notifier.db.base import Base


class UserDevice(Base):
    __tablename__ = "user_devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    expo_push_token = Column(String(256), nullable=False, unique=True, index=True)
    device_name = Column(String(256), nullable=True)
    device_os = Column(String(16), nullable=True)  # 'ios' | 'android'
    app_version = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true(), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    last_used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
