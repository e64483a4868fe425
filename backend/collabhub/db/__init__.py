"""Database package."""

from collabhub.db.base import Base, BaseModel, TimestampMixin
from collabhub.db.session import DBSession, get_db_session

__all__ = ["Base", "BaseModel", "DBSession", "TimestampMixin", "get_db_session"]
