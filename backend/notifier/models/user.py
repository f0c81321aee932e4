"""Directory user: just the columns recipient resolution reads (group membership and role)."""
from sqlalchemy import Column, String

from notifier.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=True)
    group_id = Column(String(64), nullable=True, index=True)
    role = Column(String(32), nullable=False, server_default="member")  # 'member' | 'dd' | 'admin'
