from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_intake.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Get, create and update for one mapped table.

    Nothing managed here is ever deleted. Every write commits on its own, so
    multi-step flows such as confirmation persist progress step by step
    instead of inside one transaction.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model
        self.logger = LOGGER

    @property
    def table_name(self) -> str:
        return getattr(self.model, "__tablename__", self.model.__name__)

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading {self.table_name} {id}: {str(e)}", exc_info=True)
            raise

    async def _commit(self, instance: ModelType, action: str) -> ModelType:
        try:
            await self.session.flush()
            await self.session.commit()
            await self.session.refresh(instance)
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error {action} {self.table_name}: {str(e)}", exc_info=True)
            raise

    async def create(self, **fields: Any) -> ModelType:
        """Insert a row built from ``fields`` and return it refreshed."""
        instance = self.model(**fields)
        self.session.add(instance)
        return await self._commit(instance, "creating")

    async def update(self, id: UUID, **fields: Any) -> Optional[ModelType]:
        """Set ``fields`` on the row with ``id``.

        Keys that are not columns of the table are ignored.

        Returns:
            The updated row, or None if no row has that id
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        unknown = [key for key in fields if not hasattr(instance, key)]
        if unknown:
            self.logger.warning(
                f"Ignoring unknown {self.table_name} fields", extra={"fields": unknown}
            )
        for key, value in fields.items():
            if key not in unknown:
                setattr(instance, key, value)

        return await self._commit(instance, f"updating {id} in")
