"""Database module for SQLAlchemy models and session management."""

from estate_intake.database.base import Base, engine, get_async_session
from estate_intake.database.client import DatabaseClient, db_client, init_database, close_database

__all__ = [
    "Base",
    "engine",
    "get_async_session",
    "DatabaseClient",
    "db_client",
    "init_database",
    "close_database",
]
