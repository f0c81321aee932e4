from notifier.db.base import Base
from notifier.db.session import get_db, engine, SessionLocal
from notifier.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
