"""Audit trail and record timeline writers."""

from typing import Any, Dict, Optional
from uuid import UUID

from estate_intake.repositories.activity_repository import AuditLogRepository, TimelineRepository
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AuditService:
    """Appends audit-log entries and timeline events. Never updates or deletes."""

    def __init__(self, audit_repository: AuditLogRepository, timeline_repository: TimelineRepository):
        self.audit_repository = audit_repository
        self.timeline_repository = timeline_repository

    async def write_audit_log(
        self,
        action: str,
        record_type: str,
        record_id: UUID,
        user_id: Optional[str] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        source: str = "app",
    ) -> None:
        await self.audit_repository.log(
            action=action,
            record_type=record_type,
            record_id=record_id,
            user_id=user_id,
            before=before,
            after=after,
            source=source,
        )
        LOGGER.info(
            f"Audit: {action}",
            extra={"record_type": record_type, "record_id": str(record_id), "user_id": user_id},
        )

    async def add_timeline_event(
        self,
        record_type: str,
        record_id: UUID,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.timeline_repository.add_event(
            record_type=record_type,
            record_id=record_id,
            action=action,
            details=details,
        )
