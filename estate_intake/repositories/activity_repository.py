from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from estate_intake.repositories.base_repository import BaseRepository
from estate_intake.database.models import AuditLogEntry, TimelineEvent


class TimelineRepository(BaseRepository[TimelineEvent]):
    """Append-only timeline events."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TimelineEvent)

    async def add_event(
        self,
        record_type: str,
        record_id: UUID,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> TimelineEvent:
        return await self.create(
            record_type=record_type,
            record_id=record_id,
            action=action,
            details=dict(details or {}),
        )


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """Append-only audit log."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, AuditLogEntry)

    async def log(
        self,
        action: str,
        record_type: str,
        record_id: UUID,
        user_id: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        source: str = "app",
    ) -> AuditLogEntry:
        return await self.create(
            user_id=user_id,
            action=action,
            record_type=record_type,
            record_id=record_id,
            before_json=dict(before or {}),
            after_json=dict(after or {}),
            source=source,
        )
