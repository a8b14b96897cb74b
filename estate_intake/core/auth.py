"""Actor resolution and role checks for API routes."""

from typing import Annotated, Callable, Optional

from fastapi import Depends, Header

from estate_intake.core.exceptions import AuthenticationError, PermissionDeniedError
from estate_intake.schemas.auth import ActorRole, RequestActor
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


def parse_role(value: Optional[str]) -> ActorRole:
    """Map a header value to a role; anything unknown ranks as viewer."""
    try:
        return ActorRole((value or "").strip().lower())
    except ValueError:
        return ActorRole.VIEWER


async def get_request_actor(
    x_actor_id: Annotated[Optional[str], Header()] = None,
    x_actor_role: Annotated[Optional[str], Header()] = None,
) -> RequestActor:
    """Read the actor from the ``X-Actor-Id`` / ``X-Actor-Role`` headers."""
    user_id = (x_actor_id or "").strip() or None
    return RequestActor(user_id=user_id, role=parse_role(x_actor_role))


def require_role(minimum: ActorRole) -> Callable:
    """Build a dependency that admits actors ranked at least ``minimum``.

    Raises:
        AuthenticationError: If the request carries no actor id
        PermissionDeniedError: If the actor's role ranks below ``minimum``
    """

    async def dependency(
        actor: Annotated[RequestActor, Depends(get_request_actor)],
    ) -> RequestActor:
        if not actor.is_authenticated:
            raise AuthenticationError("Authentication required")
        if not actor.has_role(minimum):
            LOGGER.warning(
                "Actor role below requirement",
                extra={"user_id": actor.user_id, "role": actor.role.value, "required": minimum.value},
            )
            raise PermissionDeniedError(f"Role '{minimum.value}' or higher required")
        return actor

    return dependency
