from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from src.database.engine import async_session, engine, sync_engine
from src.database.session import get_db

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utcnow",
    "async_session",
    "engine",
    "sync_engine",
    "get_db",
]
