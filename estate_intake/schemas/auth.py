"""Request actor schema.

Identity and role come from an upstream gateway; this service only reads
them and ranks roles.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ActorRole(str, Enum):
    VIEWER = "viewer"
    AGENT = "agent"
    ADMIN = "admin"


ROLE_RANK = {
    ActorRole.VIEWER: 1,
    ActorRole.AGENT: 2,
    ActorRole.ADMIN: 3,
}


class RequestActor(BaseModel):
    """The caller of a request, as asserted by the gateway headers."""

    user_id: Optional[str] = Field(None, description="Actor id, absent for anonymous calls")
    role: ActorRole = Field(ActorRole.VIEWER, description="Actor role")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def has_role(self, minimum: ActorRole) -> bool:
        return ROLE_RANK[self.role] >= ROLE_RANK[minimum]
