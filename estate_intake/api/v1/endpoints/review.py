"""Review routes: confirming an intake session into a canonical record."""

from typing import Annotated

from fastapi import APIRouter, Depends

from estate_intake.core.auth import require_role
from estate_intake.dependencies import get_confirmation_service
from estate_intake.schemas.auth import ActorRole, RequestActor
from estate_intake.schemas.confirm import ConfirmRequest, ConfirmResult
from estate_intake.services.intake.confirmation_service import ConfirmationService

router = APIRouter()


@router.post(
    "/confirm",
    response_model=ConfirmResult,
    summary="Confirm intake session",
    description=(
        "Creates a new record or merges into an existing one, resolves the "
        "contact, assigns a code, migrates media and marks the session "
        "confirmed. A failed confirm can be retried; completed steps are "
        "not repeated."
    ),
    operation_id="confirm_intake_session",
)
async def confirm_intake_session(
    request: ConfirmRequest,
    actor: Annotated[RequestActor, Depends(require_role(ActorRole.AGENT))],
    confirmation_service: Annotated[ConfirmationService, Depends(get_confirmation_service)],
) -> ConfirmResult:
    """Confirm a reviewed intake session.

    Args:
        request: Reviewed data, mode and per-field merge decisions
        actor: Authenticated actor with at least the agent role
        confirmation_service: Injected confirmation service

    Returns:
        ConfirmResult with the record id, code, status and media summary
    """
    return await confirmation_service.confirm(request, actor_id=actor.user_id)
