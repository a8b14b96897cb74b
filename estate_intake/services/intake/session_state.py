"""Allowed status transitions of an intake session."""

from typing import Dict, FrozenSet, Union

from estate_intake.core.exceptions import PreconditionError, SessionAlreadyConfirmedError
from estate_intake.schemas.intake import IntakeStatus

_EDITABLE = frozenset({IntakeStatus.DRAFT, IntakeStatus.NEEDS_REVIEW, IntakeStatus.CONFIRMED})

TRANSITIONS: Dict[IntakeStatus, FrozenSet[IntakeStatus]] = {
    IntakeStatus.DRAFT: _EDITABLE,
    IntakeStatus.NEEDS_REVIEW: _EDITABLE,
    IntakeStatus.CONFIRMED: frozenset(),
}


class SessionStateMachine:
    """Guards status changes. ``confirmed`` is terminal."""

    @staticmethod
    def coerce(status: Union[str, IntakeStatus]) -> IntakeStatus:
        try:
            return IntakeStatus(status)
        except ValueError as e:
            raise PreconditionError(f"Unknown intake status: {status}", original_error=e)

    @classmethod
    def ensure_mutable(cls, session_id, status: Union[str, IntakeStatus]) -> None:
        """Raise if the session can no longer change.

        Raises:
            SessionAlreadyConfirmedError: If the session is confirmed
        """
        if cls.coerce(status) == IntakeStatus.CONFIRMED:
            raise SessionAlreadyConfirmedError(f"Intake session {session_id} already confirmed")

    @classmethod
    def transition(
        cls, session_id, current: Union[str, IntakeStatus], target: Union[str, IntakeStatus]
    ) -> IntakeStatus:
        """Validate ``current -> target`` and return the target status.

        Raises:
            SessionAlreadyConfirmedError: If ``current`` is confirmed
            PreconditionError: If either status is unknown
        """
        current_status = cls.coerce(current)
        target_status = cls.coerce(target)
        cls.ensure_mutable(session_id, current_status)
        if target_status not in TRANSITIONS[current_status]:
            raise PreconditionError(
                f"Cannot move intake session {session_id} from {current_status.value} to {target_status.value}"
            )
        return target_status
