"""Engine lifecycle: startup check, schema bootstrap, health, shutdown."""

from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from estate_intake.database.base import Base, engine
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DatabaseClient:
    """Owns the async engine for the lifetime of the application.

    Alembic migrations are the source of truth for the schema;
    ``ensure_schema`` only creates tables that are missing, for local
    development and test databases.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.connected = False

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def connect(self) -> None:
        """Fail fast if the database cannot be reached."""
        try:
            await self.ping()
        except SQLAlchemyError:
            self.connected = False
            LOGGER.error("Database connection failed", exc_info=True)
            raise
        self.connected = True
        LOGGER.info("Database connection successful")

    async def ensure_schema(self) -> None:
        from estate_intake.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        LOGGER.info(
            "Database schema verified",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    async def disconnect(self) -> None:
        await self.engine.dispose()
        self.connected = False
        LOGGER.info("Database connection closed")

    async def health_check(self) -> Dict[str, Any]:
        """``{"status": "healthy"}``, or ``unhealthy`` with the error text."""
        try:
            await self.ping()
        except (SQLAlchemyError, OSError) as e:
            LOGGER.warning("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}


db_client = DatabaseClient(engine)


async def init_database(create_schema: bool = True) -> None:
    """Connect on startup and optionally create missing tables."""
    await db_client.connect()
    if create_schema:
        await db_client.ensure_schema()


async def close_database() -> None:
    await db_client.disconnect()
