"""Centralized dependency injection for the FastAPI application.

Repositories share the request's database session. The language-model
client and the rate limiter are process-wide and live on ``app.state``;
they are created in the application lifespan and can be replaced in tests
through ``app.dependency_overrides``.
"""

from typing import Annotated, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from estate_intake.config import settings
from estate_intake.core.auth import get_request_actor
from estate_intake.core.rate_limiter import RateLimiter, enforce_rate_limit
from estate_intake.core.unified_llm import LLMClient
from estate_intake.database import get_async_session
from estate_intake.repositories.activity_repository import AuditLogRepository, TimelineRepository
from estate_intake.repositories.code_sequence_repository import CodeSequenceRepository
from estate_intake.repositories.contact_repository import ContactRepository
from estate_intake.repositories.intake_session_repository import IntakeSessionRepository
from estate_intake.repositories.media_repository import MediaRepository
from estate_intake.repositories.record_repository import RecordRepository
from estate_intake.schemas.auth import RequestActor
from estate_intake.services.audit.audit_service import AuditService
from estate_intake.services.classification.classification_service import ClassificationService
from estate_intake.services.contacts.contact_service import ContactService
from estate_intake.services.extraction.extraction_service import ExtractionService
from estate_intake.services.intake.code_allocator import CodeAllocator
from estate_intake.services.intake.confirmation_service import ConfirmationService
from estate_intake.services.intake.intake_service import IntakeService
from estate_intake.services.llm.json_completion_service import JsonCompletionService
from estate_intake.services.media.media_service import MediaService
from estate_intake.services.media.storage_service import StorageService
from estate_intake.services.segmentation.segmentation_service import SegmentationService


# Process-wide collaborators


async def get_llm_client(request: Request) -> LLMClient:
    """Language-model client created at startup."""
    return request.app.state.llm_client


async def get_rate_limiter(request: Request) -> RateLimiter:
    """Rate limiter created at startup."""
    return request.app.state.rate_limiter


def rate_limit_key(request: Request, actor: RequestActor) -> str:
    """Bucket key: the actor id, else the first forwarded address."""
    if actor.user_id:
        return f"ai:{actor.user_id}"
    forwarded = request.headers.get("x-forwarded-for", "")
    client_ip = forwarded.split(",")[0].strip()
    return f"ai:{client_ip or 'anon'}"


async def enforce_ai_rate_limit(
    request: Request,
    actor: Annotated[RequestActor, Depends(get_request_actor)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Count one model-backed call against the caller's window.

    Raises:
        RateLimitExceededError: When the caller is over budget
    """
    enforce_rate_limit(limiter, rate_limit_key(request, actor))


# Repositories


async def get_intake_session_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> IntakeSessionRepository:
    """Get intake session repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        IntakeSessionRepository: Repository for intake sessions
    """
    return IntakeSessionRepository(db_session)


async def get_media_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> MediaRepository:
    return MediaRepository(db_session)


async def get_contact_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ContactRepository:
    return ContactRepository(db_session)


async def get_code_sequence_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> CodeSequenceRepository:
    return CodeSequenceRepository(db_session)


async def get_record_repository_factory(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> Callable[[str], RecordRepository]:
    """Get a factory that builds a repository for a canonical record table.

    The record table is only known once the confirm request is read, so the
    factory is injected rather than a repository.
    """

    def factory(record_type: str) -> RecordRepository:
        return RecordRepository(db_session, record_type)

    return factory


# Services


async def get_storage_service() -> StorageService:
    """Dependency to create StorageService instance."""
    return StorageService(settings.storage, settings.http_timeout)


async def get_media_service(
    media_repository: Annotated[MediaRepository, Depends(get_media_repository)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> MediaService:
    return MediaService(
        media_repository,
        storage_service,
        max_upload_bytes=settings.storage.max_upload_bytes,
    )


async def get_audit_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> AuditService:
    """Get audit service instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        AuditService: Writes audit log rows and timeline events
    """
    return AuditService(AuditLogRepository(db_session), TimelineRepository(db_session))


async def get_contact_service(
    contact_repository: Annotated[ContactRepository, Depends(get_contact_repository)],
) -> ContactService:
    return ContactService(contact_repository)


async def get_code_allocator(
    code_sequence_repository: Annotated[CodeSequenceRepository, Depends(get_code_sequence_repository)],
) -> CodeAllocator:
    return CodeAllocator(code_sequence_repository)


async def get_json_completion_service(
    llm_client: Annotated[LLMClient, Depends(get_llm_client)],
) -> JsonCompletionService:
    return JsonCompletionService(llm_client)


async def get_classification_service(
    completion_service: Annotated[JsonCompletionService, Depends(get_json_completion_service)],
) -> ClassificationService:
    return ClassificationService(completion_service)


async def get_extraction_service(
    completion_service: Annotated[JsonCompletionService, Depends(get_json_completion_service)],
) -> ExtractionService:
    return ExtractionService(completion_service)


async def get_segmentation_service(
    completion_service: Annotated[JsonCompletionService, Depends(get_json_completion_service)],
) -> SegmentationService:
    return SegmentationService(completion_service, max_segments=settings.intake.max_segments)


async def get_intake_service(
    session_repository: Annotated[IntakeSessionRepository, Depends(get_intake_session_repository)],
    media_service: Annotated[MediaService, Depends(get_media_service)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
) -> IntakeService:
    """Intake service for routes that never call the model."""
    return IntakeService(session_repository, media_service, audit_service)


async def get_pipeline_intake_service(
    session_repository: Annotated[IntakeSessionRepository, Depends(get_intake_session_repository)],
    media_service: Annotated[MediaService, Depends(get_media_service)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
    classification_service: Annotated[ClassificationService, Depends(get_classification_service)],
    extraction_service: Annotated[ExtractionService, Depends(get_extraction_service)],
    segmentation_service: Annotated[SegmentationService, Depends(get_segmentation_service)],
) -> IntakeService:
    """Intake service wired with the model-backed pipeline stages."""
    return IntakeService(
        session_repository,
        media_service,
        audit_service,
        classification_service=classification_service,
        extraction_service=extraction_service,
        segmentation_service=segmentation_service,
        enable_multi_listing_detection=settings.intake.enable_multi_listing_detection,
    )


async def get_confirmation_service(
    session_repository: Annotated[IntakeSessionRepository, Depends(get_intake_session_repository)],
    record_repository_factory: Annotated[
        Callable[[str], RecordRepository], Depends(get_record_repository_factory)
    ],
    contact_service: Annotated[ContactService, Depends(get_contact_service)],
    code_allocator: Annotated[CodeAllocator, Depends(get_code_allocator)],
    media_service: Annotated[MediaService, Depends(get_media_service)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
) -> ConfirmationService:
    """Get confirmation service instance.

    Returns:
        ConfirmationService: Orchestrates the confirm saga for one request
    """
    return ConfirmationService(
        session_repository=session_repository,
        record_repository_factory=record_repository_factory,
        contact_service=contact_service,
        code_allocator=code_allocator,
        media_service=media_service,
        audit_service=audit_service,
    )
