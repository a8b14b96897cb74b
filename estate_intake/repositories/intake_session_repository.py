from typing import Optional, List, Dict, Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from estate_intake.repositories.base_repository import BaseRepository
from estate_intake.database.models import IntakeSession
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IntakeSessionRepository(BaseRepository[IntakeSession]):
    """Repository for intake sessions and their split children."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, IntakeSession)

    async def create_session(
        self,
        raw_text: str,
        created_by: Optional[str] = None,
        parent_session_id: Optional[UUID] = None,
        ai_meta: Optional[Dict[str, Any]] = None,
        status: str = "draft",
    ) -> IntakeSession:
        """Create a new intake session.

        Args:
            raw_text: Unprocessed input text
            created_by: Actor that captured the text
            parent_session_id: Set when the session is a split segment
            ai_meta: Initial metadata bag
            status: Initial status

        Returns:
            Created IntakeSession
        """
        return await self.create(
            raw_text=raw_text,
            created_by=created_by,
            parent_session_id=parent_session_id,
            ai_json={},
            ai_meta=dict(ai_meta or {}),
            status=status,
        )

    async def get_children(self, parent_session_id: UUID) -> List[IntakeSession]:
        """Return child sessions of a split parent in creation order."""
        try:
            query = (
                select(IntakeSession)
                .where(IntakeSession.parent_session_id == parent_session_id)
                .order_by(IntakeSession.created_at.asc())
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error retrieving children of session {parent_session_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def merge_meta(self, session_id: UUID, **meta: Any) -> Optional[IntakeSession]:
        """Shallow-merge keys into ``ai_meta`` and persist."""
        instance = await self.get_by_id(session_id)
        if not instance:
            return None
        return await self.update(session_id, ai_meta={**(instance.ai_meta or {}), **meta})
