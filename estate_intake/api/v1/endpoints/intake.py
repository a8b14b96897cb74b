"""Intake session routes: capture, review view, detect-and-extract, split."""

from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from estate_intake.core.auth import get_request_actor, require_role
from estate_intake.dependencies import (
    enforce_ai_rate_limit,
    get_intake_service,
    get_pipeline_intake_service,
)
from estate_intake.schemas.auth import ActorRole, RequestActor
from estate_intake.schemas.intake import (
    CreateSessionResponse,
    ExtractByTypeRequest,
    IntakeStatus,
    IntakeType,
    MediaItemResponse,
    ProcessIntakeRequest,
    ProcessIntakeResponse,
    SessionResponse,
    SplitSessionResponse,
)
from estate_intake.services.intake.intake_service import IntakeService
from estate_intake.services.media.media_service import IncomingFile
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


async def read_uploads(files: Optional[List[UploadFile]]) -> List[IncomingFile]:
    """Read multipart uploads into memory, skipping empty file slots."""
    incoming: List[IncomingFile] = []
    for upload in files or []:
        if not upload.filename:
            continue
        content = await upload.read()
        incoming.append(
            IncomingFile(
                filename=upload.filename,
                content=content,
                content_type=upload.content_type or "application/octet-stream",
            )
        )
    return incoming


@router.post(
    "/sessions",
    response_model=CreateSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create intake session",
    description=(
        "Captures pasted listing text with optional media files. Files already "
        "attached to the session with the same name and size are skipped."
    ),
    operation_id="create_intake_session",
)
async def create_intake_session(
    actor: Annotated[RequestActor, Depends(require_role(ActorRole.AGENT))],
    intake_service: Annotated[IntakeService, Depends(get_intake_service)],
    raw_text: Annotated[str, Form()],
    files: Annotated[Optional[List[UploadFile]], File()] = None,
) -> CreateSessionResponse:
    """Create a draft intake session.

    Args:
        actor: Authenticated actor with at least the agent role
        intake_service: Injected intake service
        raw_text: Pasted listing or request text
        files: Optional media uploads

    Returns:
        CreateSessionResponse with attached media and skipped duplicates
    """
    incoming = await read_uploads(files)
    session, media, skipped = await intake_service.create_session(
        raw_text, incoming, actor_id=actor.user_id
    )
    return CreateSessionResponse(
        session_id=session.id,
        status=IntakeStatus(session.status),
        media=[MediaItemResponse.model_validate(item) for item in media],
        skipped_duplicates=skipped,
    )


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    summary="Get intake session",
    description="Returns the session, its media and up to three follow-up questions.",
    operation_id="get_intake_session",
)
async def get_intake_session(
    session_id: UUID,
    intake_service: Annotated[IntakeService, Depends(get_intake_service)],
) -> SessionResponse:
    return await intake_service.get_session(session_id)


@router.post(
    "/process",
    response_model=ProcessIntakeResponse,
    summary="Detect and extract",
    description=(
        "Classifies the session text, splits multi-listing posts, extracts "
        "type-specific fields and validates them."
    ),
    operation_id="process_intake_session",
    dependencies=[Depends(enforce_ai_rate_limit)],
)
async def process_intake_session(
    request: ProcessIntakeRequest,
    intake_service: Annotated[IntakeService, Depends(get_pipeline_intake_service)],
) -> ProcessIntakeResponse:
    """Run detect-and-extract on a session.

    Raises:
        ExtractionParseError: If the model output could not be parsed (422)
    """
    result = await intake_service.process_session(request.session_id)
    return result.unwrap()


@router.post(
    "/extract-by-type",
    response_model=ProcessIntakeResponse,
    summary="Extract as a given type",
    description="Skips classification and extracts fields for the forced type.",
    operation_id="extract_intake_by_type",
    dependencies=[Depends(enforce_ai_rate_limit)],
)
async def extract_intake_by_type(
    request: ExtractByTypeRequest,
    intake_service: Annotated[IntakeService, Depends(get_pipeline_intake_service)],
) -> ProcessIntakeResponse:
    result = await intake_service.process_session(
        request.session_id, forced_type=IntakeType(request.forced_type.value)
    )
    return result.unwrap()


@router.post(
    "/sessions/{session_id}/split",
    response_model=SplitSessionResponse,
    summary="Split multi-listing session",
    description=(
        "Detects several listings in one post and creates a child session per "
        "listing. Existing children are returned unchanged."
    ),
    operation_id="split_intake_session",
    dependencies=[Depends(enforce_ai_rate_limit)],
)
async def split_intake_session(
    session_id: UUID,
    actor: Annotated[RequestActor, Depends(get_request_actor)],
    intake_service: Annotated[IntakeService, Depends(get_pipeline_intake_service)],
) -> SplitSessionResponse:
    response = await intake_service.split_session(session_id)
    LOGGER.info(
        "Split requested",
        extra={"session_id": str(session_id), "user_id": actor.user_id, "created": response.created},
    )
    return response
