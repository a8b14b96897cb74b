"""Confirmation of a reviewed intake session into a canonical record."""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from estate_intake.core.exceptions import RecordNotFoundError, SessionNotFoundError, ValidationError
from estate_intake.repositories.intake_session_repository import IntakeSessionRepository
from estate_intake.repositories.record_repository import RecordRepository
from estate_intake.schemas.confirm import (
    CODE_PREFIX_BY_KIND,
    RECORD_TYPE_BY_KIND,
    ConfirmMode,
    ConfirmRequest,
    ConfirmResult,
    MediaSummary,
    MergeDecision,
    RecordStatus,
)
from estate_intake.schemas.intake import IntakeStatus
from estate_intake.services.audit.audit_service import AuditService
from estate_intake.services.base_service import BaseService
from estate_intake.services.contacts.contact_service import ContactService
from estate_intake.services.intake import confirmation_saga as saga_steps
from estate_intake.services.intake.code_allocator import CodeAllocator
from estate_intake.services.intake.confirmation_saga import ConfirmationSaga
from estate_intake.services.intake.record_sanitizer import as_text, contact_candidates, sanitize_for_kind
from estate_intake.services.intake.session_state import SessionStateMachine
from estate_intake.services.media.media_service import MediaService
from estate_intake.services.validation.critical_fields import missing_critical_fields

RecordRepositoryFactory = Callable[[str], RecordRepository]


def _comparable(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _append_note(current: Any, incoming: Any) -> str:
    left, right = as_text(current), as_text(incoming)
    if left and right:
        return f"{left}\n{right}"
    return left or right


def merge_row(
    existing: Mapping[str, Any],
    incoming: Mapping[str, Any],
    decisions: Mapping[str, MergeDecision],
) -> Tuple[Dict[str, Any], List[str]]:
    """Combine incoming values with an existing record field by field.

    ``notes`` defaults to append and every other field to replace. Append
    joins notes with a newline; on any other field it keeps the existing
    value.

    Returns:
        Tuple of (merged values for the incoming keys, keys whose value changed)
    """
    merged: Dict[str, Any] = {}
    changed: List[str] = []

    for key, new_value in incoming.items():
        default = MergeDecision.APPEND if key == "notes" else MergeDecision.REPLACE_WITH_NEW
        decision = MergeDecision(decisions.get(key, default))
        current = existing.get(key)

        if decision == MergeDecision.REPLACE_WITH_NEW:
            value = new_value
        elif decision == MergeDecision.APPEND and key == "notes":
            value = _append_note(current, new_value)
        else:
            value = current

        merged[key] = value
        if _comparable(current) != _comparable(value):
            changed.append(key)

    return merged, changed


def _media_event_action(summary: MediaSummary) -> str:
    return (
        f"Media attached: {summary.images} images, {summary.videos} videos, "
        f"{summary.documents} documents"
    )


class ConfirmationService(BaseService):
    """Turns a reviewed intake session into a created or updated record.

    Steps: sanitize, resolve contact, compute missing critical fields, create
    or merge the record, migrate media, write timeline and audit entries,
    then mark the session confirmed. Every step is logged through
    :class:`ConfirmationSaga` so a failed confirm can be retried.
    """

    def __init__(
        self,
        session_repository: IntakeSessionRepository,
        record_repository_factory: RecordRepositoryFactory,
        contact_service: ContactService,
        code_allocator: CodeAllocator,
        media_service: MediaService,
        audit_service: AuditService,
    ):
        super().__init__()
        self.session_repository = session_repository
        self.record_repository_factory = record_repository_factory
        self.contact_service = contact_service
        self.code_allocator = code_allocator
        self.media_service = media_service
        self.audit_service = audit_service

    async def confirm(self, request: ConfirmRequest, actor_id: Optional[str] = None) -> ConfirmResult:
        return await self.execute(request, actor_id=actor_id)

    def validate(self, request: ConfirmRequest, actor_id: Optional[str] = None):
        if request.mode == ConfirmMode.UPDATE_EXISTING and request.target_record_id is None:
            raise ValidationError("target_record_id is required for update_existing")

    async def run(self, request: ConfirmRequest, actor_id: Optional[str] = None) -> ConfirmResult:
        kind = request.type
        record_type = RECORD_TYPE_BY_KIND[kind].value
        records = self.record_repository_factory(record_type)

        session = await self.session_repository.get_by_id(request.session_id)
        if not session:
            raise SessionNotFoundError(f"Intake session {request.session_id} not found")
        SessionStateMachine.ensure_mutable(session.id, session.status)

        existing = None
        if request.mode == ConfirmMode.UPDATE_EXISTING:
            existing = await records.get_by_id(request.target_record_id)
            if not existing:
                raise RecordNotFoundError(f"Target record {request.target_record_id} not found")

        saga = ConfirmationSaga(self.session_repository, session)
        saga.begin(record_type, request.mode.value)
        resumed = saga.resumed

        sanitized = sanitize_for_kind(kind, request.extracted_data)

        # Contact
        if saga.completed(saga_steps.STEP_CONTACT):
            logged_contact = saga.get("contact_id")
            contact_id = UUID(logged_contact) if logged_contact else None
        else:
            name, phone = contact_candidates(sanitized, request.extracted_data)
            contact_id = await self.contact_service.resolve_contact_id(name=name, phone=phone)
            await saga.record(
                saga_steps.STEP_CONTACT, contact_id=str(contact_id) if contact_id else None
            )

        missing = missing_critical_fields(kind.value, sanitized)
        row_status = RecordStatus.NEEDS_REVIEW if missing else RecordStatus.ACTIVE

        # Record
        if saga.completed(saga_steps.STEP_RECORD):
            record_id = UUID(saga.get("record_id"))
            code = saga.get("code")
            changed_fields = list(saga.get("changed_fields") or [])
            missing = list(saga.get("missing_critical_fields") or [])
            row_status = RecordStatus(saga.get("row_status"))
        elif existing is None:
            code = await self.code_allocator.next_code(CODE_PREFIX_BY_KIND[kind])
            record = await records.create(
                **sanitized,
                contact_id=contact_id,
                code=code,
                status=row_status.value,
                intake_session_id=session.id,
                created_by=actor_id,
            )
            record_id = record.id
            changed_fields = list(sanitized.keys())
            if contact_id:
                changed_fields.append("contact_id")
        else:
            current = {key: getattr(existing, key, None) for key in sanitized}
            merged, changed_fields = merge_row(current, sanitized, request.merge_decisions)
            updates: Dict[str, Any] = dict(merged)
            if contact_id:
                updates["contact_id"] = contact_id
                if _comparable(existing.contact_id) != _comparable(contact_id):
                    changed_fields.append("contact_id")
            await records.update(existing.id, **updates, status=row_status.value)
            record_id = existing.id
            code = existing.code

        if not saga.completed(saga_steps.STEP_RECORD):
            await saga.record(
                saga_steps.STEP_RECORD,
                record_id=str(record_id),
                code=code,
                changed_fields=changed_fields,
                missing_critical_fields=missing,
                row_status=row_status.value,
            )

        if not saga.completed(saga_steps.STEP_RECORD_EVENT):
            if request.mode == ConfirmMode.CREATE_NEW:
                await self.audit_service.add_timeline_event(
                    record_type, record_id, "Record created from intake",
                    {"session_id": str(session.id), "type": kind.value, "row_status": row_status.value},
                )
            else:
                await self.audit_service.add_timeline_event(
                    record_type, record_id, "Record updated from intake",
                    {"session_id": str(session.id), "changed_fields": changed_fields, "row_status": row_status.value},
                )
            await saga.record(saga_steps.STEP_RECORD_EVENT)

        # Media
        if saga.completed(saga_steps.STEP_MEDIA):
            media_summary = MediaSummary.model_validate(saga.get("media_summary") or {})
        else:
            media_summary = await self.media_service.migrate_session_media(
                session.id, record_type, record_id
            )
            await saga.record(saga_steps.STEP_MEDIA, media_summary=media_summary.model_dump())

        if not saga.completed(saga_steps.STEP_MEDIA_EVENTS):
            if contact_id:
                await self.audit_service.add_timeline_event(
                    record_type, record_id, "Linked to contact", {"contact_id": str(contact_id)}
                )
            await self.audit_service.add_timeline_event(
                record_type, record_id, _media_event_action(media_summary),
                {
                    "session_id": str(session.id),
                    "images": media_summary.images,
                    "videos": media_summary.videos,
                    "documents": media_summary.documents,
                    "moveWarnings": media_summary.move_warnings,
                    "warning": bool(media_summary.move_warnings),
                },
            )
            if media_summary.move_warnings:
                await self.audit_service.add_timeline_event(
                    record_type, record_id, "Media move warning",
                    {"warnings": media_summary.move_warnings},
                )
            await saga.record(saga_steps.STEP_MEDIA_EVENTS)

        # Audit
        if not saga.completed(saga_steps.STEP_AUDIT):
            await self.audit_service.write_audit_log(
                action="confirm_create" if request.mode == ConfirmMode.CREATE_NEW else "confirm_merge",
                record_type=record_type,
                record_id=record_id,
                user_id=actor_id,
                after={
                    "changed_fields": changed_fields,
                    "status": row_status.value,
                    "session_id": str(session.id),
                },
                source="confirm",
            )
            await saga.record(saga_steps.STEP_AUDIT)

        # Session
        status = SessionStateMachine.transition(session.id, saga.session.status, IntakeStatus.CONFIRMED)
        await self.session_repository.update(
            session.id,
            status=status.value,
            type_confirmed=kind.value,
            final_record_type=record_type,
            final_record_id=record_id,
            ai_meta=saga.as_meta(
                missing_critical_fields=missing,
                final_row_status=row_status.value,
            ),
        )
        self.logger.info(
            "Intake session confirmed",
            extra={
                "session_id": str(session.id),
                "record_type": record_type,
                "record_id": str(record_id),
                "row_status": row_status.value,
                "resumed": resumed,
            },
        )

        return ConfirmResult(
            record_type=record_type,
            record_id=record_id,
            code=code,
            status=row_status,
            changed_fields=changed_fields,
            media_summary=media_summary,
        )
