"""Intake session lifecycle: capture, detect-and-extract, split, review view."""

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from estate_intake.core.exceptions import ExtractionParseError, PreconditionError, SessionNotFoundError, ValidationError
from estate_intake.core.result import Err, Ok, Result
from estate_intake.database.models import IntakeSession, MediaItem
from estate_intake.repositories.intake_session_repository import IntakeSessionRepository
from estate_intake.schemas.intake import (
    DetectResult,
    IntakeStatus,
    IntakeType,
    MediaItemResponse,
    ProcessIntakeResponse,
    SessionResponse,
    SplitSessionResponse,
)
from estate_intake.services.audit.audit_service import AuditService
from estate_intake.services.classification.classification_service import ClassificationService
from estate_intake.services.extraction.extraction_service import ExtractionService
from estate_intake.services.intake.review_questions import derive_quick_questions
from estate_intake.services.intake.session_state import SessionStateMachine
from estate_intake.services.media.media_service import IncomingFile, MediaService
from estate_intake.services.normalization.text_normalizer import normalize_text
from estate_intake.services.segmentation.segmentation_service import SegmentationService
from estate_intake.services.validation.validation_service import validate_and_normalize
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

LISTING_TYPES = (IntakeType.SALE, IntakeType.RENT)


class IntakeService:
    """Drives an intake session from capture to a reviewable draft.

    Model-backed services are optional so that read-only operations can be
    built without a language-model client.
    """

    def __init__(
        self,
        session_repository: IntakeSessionRepository,
        media_service: MediaService,
        audit_service: AuditService,
        classification_service: Optional[ClassificationService] = None,
        extraction_service: Optional[ExtractionService] = None,
        segmentation_service: Optional[SegmentationService] = None,
        enable_multi_listing_detection: bool = True,
    ):
        self.session_repository = session_repository
        self.media_service = media_service
        self.audit_service = audit_service
        self.classification_service = classification_service
        self.extraction_service = extraction_service
        self.segmentation_service = segmentation_service
        self.enable_multi_listing_detection = enable_multi_listing_detection

    async def _get_session(self, session_id: UUID) -> IntakeSession:
        session = await self.session_repository.get_by_id(session_id)
        if not session:
            raise SessionNotFoundError(f"Intake session {session_id} not found")
        return session

    # Capture

    async def create_session(
        self,
        raw_text: str,
        files: Optional[List[IncomingFile]] = None,
        actor_id: Optional[str] = None,
    ) -> Tuple[IntakeSession, List[MediaItem], List[str]]:
        """Create a draft session from pasted text and optional files.

        Returns:
            Tuple of (session, attached media, skipped duplicate file names)

        Raises:
            ValidationError: If ``raw_text`` is blank
        """
        raw_text = (raw_text or "").strip()
        if not raw_text:
            raise ValidationError("raw_text is required")

        session = await self.session_repository.create_session(
            raw_text=raw_text, created_by=actor_id
        )
        media, skipped = await self.media_service.attach_uploads(session.id, files or [])

        await self.audit_service.write_audit_log(
            action="create_intake",
            record_type="intake_sessions",
            record_id=session.id,
            user_id=actor_id,
            after={"raw_text": raw_text, "status": IntakeStatus.DRAFT.value},
            source="inbox",
        )
        LOGGER.info(
            "Intake session created",
            extra={"session_id": str(session.id), "media": len(media), "skipped": len(skipped)},
        )
        return session, media, skipped

    # Review view

    async def get_session(self, session_id: UUID) -> SessionResponse:
        """Session, its media and up to three follow-up questions."""
        session = await self._get_session(session_id)
        media = await self.media_service.list_session_media(session_id)

        ai_json = session.ai_json or {}
        ai_meta = session.ai_meta or {}
        intake_type = session.type_confirmed or session.type_detected or IntakeType.OTHER.value
        missing_fields = [str(f) for f in ai_meta.get("missing_fields") or []]

        return SessionResponse(
            id=session.id,
            parent_session_id=session.parent_session_id,
            status=session.status,
            raw_text=session.raw_text,
            type_detected=session.type_detected or "",
            type_confirmed=session.type_confirmed or "",
            ai_json=ai_json,
            ai_meta=ai_meta,
            completeness_score=float(session.completeness_score or 0),
            final_record_type=session.final_record_type,
            final_record_id=session.final_record_id,
            created_at=session.created_at,
            media=[MediaItemResponse.model_validate(item) for item in media],
            quick_questions=derive_quick_questions(
                intake_type, ai_json, session.raw_text, missing_fields
            ),
        )

    # Detect and extract

    async def _record_parse_failure(
        self,
        session: IntakeSession,
        error: ExtractionParseError,
        meta: Dict[str, Any],
        type_detected: Optional[str] = None,
    ) -> None:
        status = SessionStateMachine.transition(session.id, session.status, IntakeStatus.NEEDS_REVIEW)
        fields: Dict[str, Any] = {
            "status": status.value,
            "ai_meta": {**(session.ai_meta or {}), **meta, "extraction_error": error.message},
        }
        if type_detected is not None:
            fields["type_detected"] = type_detected
        await self.session_repository.update(session.id, **fields)
        LOGGER.warning(
            f"Intake processing left session in review: {error.message}",
            extra={"session_id": str(session.id)},
        )

    async def process_session(
        self,
        session_id: UUID,
        forced_type: Optional[IntakeType] = None,
    ) -> Result[ProcessIntakeResponse, ExtractionParseError]:
        """Classify (unless a type is forced), extract, validate and persist.

        A parseable run leaves the session in ``draft``, or ``needs_review``
        when critical fields are missing. Unparseable model output leaves it
        in ``needs_review`` with ``extraction_error`` recorded and is
        returned as ``Err``.

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionAlreadyConfirmedError: If the session is confirmed
        """
        session = await self._get_session(session_id)
        SessionStateMachine.ensure_mutable(session.id, session.status)

        if self.classification_service is None or self.extraction_service is None:
            raise PreconditionError("Language model services are not configured")

        detected: Optional[DetectResult] = None
        meta: Dict[str, Any] = {}

        if forced_type is None:
            classified = await self.classification_service.classify(session.raw_text)
            if isinstance(classified, Err):
                await self._record_parse_failure(session, classified.error, meta)
                return classified
            detected = classified.value
            intake_type = detected.detected_type
            normalized_text = detected.normalized_text
            meta.update(
                language=detected.language.value,
                detect_confidence=detected.confidence,
                normalized_text=normalized_text,
                signals=detected.signals,
            )

            if self._should_check_multi_listing(session, intake_type):
                split = await self.split_session(session.id)
                if split.multi_listing:
                    return Ok(ProcessIntakeResponse(
                        session_id=session.id,
                        status=IntakeStatus.NEEDS_REVIEW,
                        detected_type=intake_type,
                        confidence=detected.confidence,
                        language=detected.language,
                        multi_listing=True,
                        child_session_ids=split.child_session_ids,
                    ))
                session = await self._get_session(session.id)
        else:
            intake_type = forced_type
            normalized_text = normalize_text(session.raw_text)
            meta.update(normalized_text=normalized_text, forced_type=forced_type.value)

        extracted = await self.extraction_service.extract(intake_type, normalized_text)
        if isinstance(extracted, Err):
            await self._record_parse_failure(
                session, extracted.error, meta, type_detected=intake_type.value
            )
            return extracted

        extraction = extracted.value
        validated = validate_and_normalize(
            intake_type, extraction.fields, normalized_text, extraction.confidence_map
        )
        target = IntakeStatus.NEEDS_REVIEW if validated.missing_fields else IntakeStatus.DRAFT
        status = SessionStateMachine.transition(session.id, session.status, target)

        ai_meta = {
            **(session.ai_meta or {}),
            **meta,
            "confidence_map": validated.confidence_map,
            "missing_fields": validated.missing_fields,
            "extracted_json": extraction.fields,
        }
        ai_meta.pop("extraction_error", None)

        await self.session_repository.update(
            session.id,
            type_detected=intake_type.value,
            ai_json=validated.normalized_json,
            ai_meta=ai_meta,
            completeness_score=validated.completeness_score,
            status=status.value,
        )
        LOGGER.info(
            "Intake session processed",
            extra={
                "session_id": str(session.id),
                "intake_type": intake_type.value,
                "status": status.value,
                "missing_fields": validated.missing_fields,
            },
        )

        return Ok(ProcessIntakeResponse(
            session_id=session.id,
            status=status,
            detected_type=intake_type,
            confidence=detected.confidence if detected else None,
            language=detected.language if detected else None,
            extracted_json=extraction.fields,
            normalized_json=validated.normalized_json,
            missing_fields=validated.missing_fields,
            confidence_map=validated.confidence_map,
            completeness_score=validated.completeness_score,
        ))

    def _should_check_multi_listing(self, session: IntakeSession, intake_type: IntakeType) -> bool:
        return (
            self.enable_multi_listing_detection
            and self.segmentation_service is not None
            and session.parent_session_id is None
            and not (session.ai_meta or {}).get("child_session_ids")
            and intake_type in LISTING_TYPES
        )

    # Split

    async def split_session(self, session_id: UUID) -> SplitSessionResponse:
        """Create one child session per detected listing.

        Only top-level sessions split. If children already exist they are
        returned as they are. The parent moves to ``needs_review`` with
        ``multi_listing`` and ``child_session_ids`` recorded.

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionAlreadyConfirmedError: If the session is confirmed
            PreconditionError: If the session is itself a split child
        """
        session = await self._get_session(session_id)
        SessionStateMachine.ensure_mutable(session.id, session.status)
        if session.parent_session_id is not None:
            raise PreconditionError("Only top-level intake sessions can be split")

        existing = await self.session_repository.get_children(session.id)
        if existing:
            return SplitSessionResponse(
                session_id=session.id,
                multi_listing=True,
                child_session_ids=[child.id for child in existing],
                created=False,
            )

        if self.segmentation_service is None:
            raise PreconditionError("Multi-listing detection is not configured")

        detection = await self.segmentation_service.detect_multiple_listings(session.raw_text)
        if not detection.multi_listing:
            await self.session_repository.update(
                session.id, ai_meta={**(session.ai_meta or {}), "multi_listing": False}
            )
            return SplitSessionResponse(session_id=session.id, multi_listing=False)

        children: List[IntakeSession] = []
        for index, segment in enumerate(detection.segments):
            child = await self.session_repository.create_session(
                raw_text=segment,
                created_by=session.created_by,
                parent_session_id=session.id,
                ai_meta={"split_index": index, "split_from": str(session.id)},
            )
            children.append(child)

        child_ids = [child.id for child in children]
        status = SessionStateMachine.transition(session.id, session.status, IntakeStatus.NEEDS_REVIEW)
        await self.session_repository.update(
            session.id,
            status=status.value,
            ai_meta={
                **(session.ai_meta or {}),
                "multi_listing": True,
                "child_session_ids": [str(cid) for cid in child_ids],
                "split_count": len(child_ids),
            },
        )
        LOGGER.info(
            "Intake session split into listings",
            extra={"session_id": str(session.id), "children": len(child_ids)},
        )
        return SplitSessionResponse(
            session_id=session.id,
            multi_listing=True,
            child_session_ids=child_ids,
            created=True,
        )
