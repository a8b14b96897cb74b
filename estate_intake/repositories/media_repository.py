from typing import Optional, List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from estate_intake.repositories.base_repository import BaseRepository
from estate_intake.database.models import MediaItem
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MediaRepository(BaseRepository[MediaItem]):
    """Repository for media attached to intake sessions or records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, MediaItem)

    async def list_for_session(self, intake_session_id: UUID) -> List[MediaItem]:
        """Media still attached to an intake session, oldest first."""
        try:
            query = (
                select(MediaItem)
                .where(MediaItem.intake_session_id == intake_session_id)
                .order_by(MediaItem.created_at.asc())
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error listing media for session {intake_session_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def find_duplicate(
        self, intake_session_id: UUID, original_filename: str, file_size: int
    ) -> Optional[MediaItem]:
        """Find an item with the same filename and size in the session."""
        try:
            query = select(MediaItem).where(
                MediaItem.intake_session_id == intake_session_id,
                MediaItem.original_filename == original_filename,
                MediaItem.file_size == file_size,
            ).limit(1)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error checking media duplicate: {str(e)}", exc_info=True)
            raise

    async def attach_to_record(
        self,
        media_id: UUID,
        record_type: str,
        record_id: UUID,
        file_url: str,
        storage_path: str,
    ) -> Optional[MediaItem]:
        """Re-point a media item from its session to a confirmed record."""
        return await self.update(
            media_id,
            record_type=record_type,
            record_id=record_id,
            intake_session_id=None,
            file_url=file_url,
            storage_path=storage_path,
        )
