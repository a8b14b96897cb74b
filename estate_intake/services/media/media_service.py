"""Intake media: upload with duplicate suppression, and migration to records."""

import re
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from estate_intake.core.exceptions import StorageError, ValidationError
from estate_intake.database.models import MediaItem
from estate_intake.repositories.media_repository import MediaRepository
from estate_intake.schemas.confirm import MediaSummary
from estate_intake.services.media.storage_service import StorageService
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class IncomingFile:
    """A file received with an intake capture request."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


def detect_media_type(mime_type: str) -> str:
    """Coarse media type from a MIME type: image, video, document or other."""
    mime = (mime_type or "").lower()
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    if any(token in mime for token in ("pdf", "word", "sheet", "document")):
        return "document"
    return "other"


def build_intake_media_path(intake_session_id: UUID, filename: str, timestamp_ms: Optional[int] = None) -> str:
    safe = _WHITESPACE_RE.sub("_", filename.strip()) or "file"
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"intake_sessions/{intake_session_id}/{stamp}_{safe}"


def build_record_media_path(record_type: str, record_id: UUID, filename: str) -> str:
    return f"media/{record_type}/{record_id}/{filename}"


class MediaService:
    """Manages media attached to intake sessions and confirmed records."""

    def __init__(
        self,
        media_repository: MediaRepository,
        storage_service: StorageService,
        max_upload_bytes: Optional[int] = None,
    ):
        self.media_repository = media_repository
        self.storage_service = storage_service
        self.max_upload_bytes = max_upload_bytes

    async def list_session_media(self, intake_session_id: UUID) -> List[MediaItem]:
        return await self.media_repository.list_for_session(intake_session_id)

    async def attach_uploads(
        self, intake_session_id: UUID, files: List[IncomingFile]
    ) -> Tuple[List[MediaItem], List[str]]:
        """Upload files to a session, skipping same-name same-size duplicates.

        Args:
            intake_session_id: Session the files belong to
            files: Uploaded files in request order

        Returns:
            Tuple of (created media items, names of skipped duplicates)

        Raises:
            ValidationError: If a file exceeds the upload size limit
            StorageError: If an upload fails
        """
        for incoming in files:
            if self.max_upload_bytes and incoming.size > self.max_upload_bytes:
                raise ValidationError(
                    f"File '{incoming.filename}' exceeds the {self.max_upload_bytes} byte limit"
                )

        seen = set()
        created: List[MediaItem] = []
        skipped: List[str] = []

        for incoming in files:
            signature = (incoming.filename, incoming.size)
            if signature in seen or await self.media_repository.find_duplicate(
                intake_session_id, incoming.filename, incoming.size
            ):
                skipped.append(incoming.filename)
                continue
            seen.add(signature)

            path = build_intake_media_path(intake_session_id, incoming.filename)
            await self.storage_service.upload_file(
                incoming.content, path, content_type=incoming.content_type
            )
            item = await self.media_repository.create(
                intake_session_id=intake_session_id,
                file_url=self.storage_service.get_public_url(path),
                storage_path=path,
                mime_type=incoming.content_type or "application/octet-stream",
                media_type=detect_media_type(incoming.content_type),
                original_filename=incoming.filename,
                file_size=incoming.size,
            )
            created.append(item)

        if skipped:
            LOGGER.info(
                "Skipped duplicate uploads",
                extra={"intake_session_id": str(intake_session_id), "skipped": skipped},
            )
        return created, skipped

    async def migrate_session_media(
        self, intake_session_id: UUID, record_type: str, record_id: UUID
    ) -> MediaSummary:
        """Move a session's media under a confirmed record.

        Each item is moved, or copied if the move fails. Failures become
        warnings and never stop the batch; an item whose move and copy both
        fail stays attached to the session and is not counted.
        """
        summary = MediaSummary()

        for item in await self.media_repository.list_for_session(intake_session_id):
            source_path = item.storage_path or self.storage_service.storage_path_from_public_url(
                item.file_url
            )
            if not source_path:
                summary.move_warnings.append(f"Path parse failed for media {item.id}")
                continue

            filename = source_path.rsplit("/", 1)[-1] or str(item.id)
            destination_path = build_record_media_path(record_type, record_id, filename)

            try:
                await self.storage_service.move_object(source_path, destination_path)
            except StorageError:
                try:
                    await self.storage_service.copy_object(source_path, destination_path)
                except StorageError:
                    summary.move_warnings.append(f"Move/copy failed for media {item.id}")
                    continue
                summary.move_warnings.append(f"Move failed; copied instead for media {item.id}")

            try:
                await self.media_repository.attach_to_record(
                    item.id,
                    record_type=record_type,
                    record_id=record_id,
                    file_url=self.storage_service.get_public_url(destination_path),
                    storage_path=destination_path,
                )
            except SQLAlchemyError:
                summary.move_warnings.append(f"Media row update failed {item.id}")
                continue

            if item.media_type == "image":
                summary.images += 1
            elif item.media_type == "video":
                summary.videos += 1
            else:
                summary.documents += 1

        if summary.move_warnings:
            LOGGER.warning(
                "Media migration finished with warnings",
                extra={"record_id": str(record_id), "warnings": summary.move_warnings},
            )
        return summary
