"""Step log for the non-transactional confirm sequence.

Confirming writes to several tables and to object storage without one
enclosing transaction. Each completed step is appended to
``ai_meta["confirmation"]`` on the session and committed, so a confirm that
failed part way can be retried: steps already logged are skipped and their
outputs (contact id, record id, media summary) are reused.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from estate_intake.core.exceptions import PreconditionError
from estate_intake.database.models import IntakeSession
from estate_intake.repositories.intake_session_repository import IntakeSessionRepository
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

STEP_CONTACT = "contact_resolved"
STEP_RECORD = "record_written"
STEP_RECORD_EVENT = "record_event_written"
STEP_MEDIA = "media_migrated"
STEP_MEDIA_EVENTS = "media_events_written"
STEP_AUDIT = "audit_written"


class ConfirmationSaga:
    """Reads and appends the confirmation step log of one session."""

    def __init__(self, session_repository: IntakeSessionRepository, session: IntakeSession):
        self.session_repository = session_repository
        self.session = session
        state = (session.ai_meta or {}).get("confirmation")
        self.state: Dict[str, Any] = dict(state) if isinstance(state, dict) else {}
        self.state.setdefault("steps", [])

    @property
    def steps(self) -> List[str]:
        return list(self.state.get("steps") or [])

    @property
    def resumed(self) -> bool:
        return bool(self.steps)

    def completed(self, step: str) -> bool:
        return step in self.steps

    def get(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def begin(self, record_type: str, mode: str) -> None:
        """Check that a retried confirm targets what the first attempt did.

        Raises:
            PreconditionError: If the logged attempt used another record
                type or mode
        """
        if not self.resumed:
            self.state.update(record_type=record_type, mode=mode)
            return

        if self.state.get("record_type") != record_type or self.state.get("mode") != mode:
            raise PreconditionError(
                f"Confirmation of session {self.session.id} was started as "
                f"{self.state.get('mode')} {self.state.get('record_type')}; retry with the same choice"
            )
        LOGGER.info(
            "Resuming confirmation",
            extra={"session_id": str(self.session.id), "completed_steps": self.steps},
        )

    async def record(self, step: str, **outputs: Any) -> None:
        """Log ``step`` as done, with its outputs, and commit."""
        self.state.update(outputs)
        self.state["steps"] = self.steps + [step]
        self.state["updated_at"] = datetime.now(timezone.utc).isoformat()
        await self._persist()

    def as_meta(self, **extra: Any) -> Dict[str, Any]:
        """Session ``ai_meta`` with the current log and ``extra`` keys merged in."""
        return {**(self.session.ai_meta or {}), **extra, "confirmation": dict(self.state)}

    async def _persist(self) -> None:
        updated: Optional[IntakeSession] = await self.session_repository.update(
            self.session.id, ai_meta=self.as_meta()
        )
        if updated is not None:
            self.session = updated
