"""Tests for confirming intake sessions into records."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from conftest import make_session
from estate_intake.core.exceptions import (
    PreconditionError,
    RecordNotFoundError,
    SessionAlreadyConfirmedError,
    SessionNotFoundError,
)
from estate_intake.schemas.confirm import ConfirmRequest, MediaSummary, RecordStatus
from estate_intake.services.intake.confirmation_service import ConfirmationService


@pytest.fixture
def records() -> AsyncMock:
    repository = AsyncMock()
    repository.create.return_value = SimpleNamespace(id=uuid4())
    return repository


@pytest.fixture
def record_repository_factory(records) -> MagicMock:
    return MagicMock(return_value=records)


@pytest.fixture
def contact_service() -> AsyncMock:
    service = AsyncMock()
    service.resolve_contact_id.return_value = None
    return service


@pytest.fixture
def code_allocator() -> AsyncMock:
    allocator = AsyncMock()
    allocator.next_code.return_value = "SALE-2026-00001"
    return allocator


@pytest.fixture
def media_service() -> AsyncMock:
    service = AsyncMock()
    service.migrate_session_media.return_value = MediaSummary(images=2, documents=1)
    return service


@pytest.fixture
def confirmation_service(
    session_repository, record_repository_factory, contact_service,
    code_allocator, media_service, audit_service,
) -> ConfirmationService:
    return ConfirmationService(
        session_repository,
        record_repository_factory,
        contact_service,
        code_allocator,
        media_service,
        audit_service,
    )


def timeline_actions(audit_service) -> list:
    return [call.args[2] for call in audit_service.add_timeline_event.await_args_list]


class TestCreateNew:

    @pytest.mark.asyncio
    async def test_complete_sale_becomes_active(
        self, confirmation_service, session_repository, records,
        record_repository_factory, contact_service, audit_service,
    ):
        session = make_session(status="needs_review")
        session_repository.get_by_id.return_value = session
        contact_id = uuid4()
        contact_service.resolve_contact_id.return_value = contact_id
        request = ConfirmRequest(
            session_id=session.id,
            type="sale",
            extracted_data={
                "price": "3,500,000",
                "location_area": "New Cairo",
                "furnished": "fully_furnished",
                "contact_name": "Ahmed",
                "contact_phone": "+20 100 123 4567",
                "unknown_key": "dropped",
            },
        )

        result = await confirmation_service.confirm(request, actor_id="agent-1")

        assert result.status == RecordStatus.ACTIVE
        assert result.record_type.value == "properties_sale"
        assert result.code == "SALE-2026-00001"
        assert result.media_summary.images == 2
        assert "contact_id" in result.changed_fields
        record_repository_factory.assert_called_once_with("properties_sale")
        contact_service.resolve_contact_id.assert_awaited_once_with(name="Ahmed", phone="201001234567")

        created = records.create.await_args.kwargs
        assert created["price"] == 3500000
        assert created["area"] == "New Cairo"
        assert created["furnished"] == "furnished"
        assert created["status"] == "active"
        assert created["contact_id"] == contact_id
        assert created["intake_session_id"] == session.id
        assert created["created_by"] == "agent-1"
        assert "unknown_key" not in created

        assert timeline_actions(audit_service) == [
            "Record created from intake",
            "Linked to contact",
            "Media attached: 2 images, 0 videos, 1 documents",
        ]
        audit = audit_service.write_audit_log.await_args.kwargs
        assert audit["action"] == "confirm_create"
        assert audit["source"] == "confirm"

        final = session_repository.update.await_args.kwargs
        assert final["status"] == "confirmed"
        assert final["type_confirmed"] == "sale"
        assert final["final_record_type"] == "properties_sale"
        assert final["final_record_id"] == result.record_id
        assert final["ai_meta"]["final_row_status"] == "active"
        assert final["ai_meta"]["confirmation"]["steps"][-1] == "audit_written"

    @pytest.mark.asyncio
    async def test_missing_critical_fields_need_review(
        self, confirmation_service, session_repository, records, audit_service,
    ):
        session = make_session()
        session_repository.get_by_id.return_value = session
        request = ConfirmRequest(session_id=session.id, type="sale", extracted_data={"notes": "call later"})

        result = await confirmation_service.confirm(request)

        assert result.status == RecordStatus.NEEDS_REVIEW
        assert records.create.await_args.kwargs["status"] == "needs_review"
        assert "Linked to contact" not in timeline_actions(audit_service)
        final = session_repository.update.await_args.kwargs
        assert final["ai_meta"]["missing_critical_fields"] == ["price", "location_area"]

    @pytest.mark.asyncio
    async def test_media_warnings_add_timeline_event(
        self, confirmation_service, session_repository, media_service, audit_service,
    ):
        session = make_session()
        session_repository.get_by_id.return_value = session
        media_service.migrate_session_media.return_value = MediaSummary(
            move_warnings=["Move/copy failed for media 1"]
        )
        request = ConfirmRequest(session_id=session.id, type="client", extracted_data={"name": "Mona"})

        await confirmation_service.confirm(request)

        assert timeline_actions(audit_service)[-1] == "Media move warning"

    @pytest.mark.asyncio
    async def test_already_confirmed_writes_nothing(
        self, confirmation_service, session_repository, records, audit_service, code_allocator,
    ):
        session = make_session(status="confirmed")
        session_repository.get_by_id.return_value = session
        request = ConfirmRequest(session_id=session.id, type="sale", extracted_data={"price": "1"})

        with pytest.raises(SessionAlreadyConfirmedError) as exc_info:
            await confirmation_service.confirm(request)

        assert exc_info.value.status_code == 409
        records.create.assert_not_called()
        code_allocator.next_code.assert_not_called()
        audit_service.write_audit_log.assert_not_called()
        session_repository.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_session(self, confirmation_service, session_repository):
        session_repository.get_by_id.return_value = None
        request = ConfirmRequest(session_id=uuid4(), type="buyer")

        with pytest.raises(SessionNotFoundError):
            await confirmation_service.confirm(request)


class TestUpdateExisting:

    @pytest.mark.asyncio
    async def test_merge_with_decisions(
        self, confirmation_service, session_repository, records, code_allocator, audit_service,
    ):
        session = make_session(status="needs_review")
        session_repository.get_by_id.return_value = session
        existing = SimpleNamespace(
            id=uuid4(), code="SALE-2025-00003", contact_id=None,
            price=3000000, area="Maadi", notes="old note",
        )
        records.get_by_id.return_value = existing
        request = ConfirmRequest(
            session_id=session.id,
            type="sale",
            mode="update_existing",
            target_record_id=existing.id,
            extracted_data={"price": "3500000", "location_area": "Maadi", "notes": "new note"},
            merge_decisions={"price": "keep_existing"},
        )

        result = await confirmation_service.confirm(request, actor_id="agent-1")

        code_allocator.next_code.assert_not_called()
        records.create.assert_not_called()
        update_args = records.update.await_args
        assert update_args.args[0] == existing.id
        assert update_args.kwargs["price"] == 3000000
        assert update_args.kwargs["notes"] == "old note\nnew note"
        assert update_args.kwargs["status"] == "active"

        assert result.record_id == existing.id
        assert result.code == "SALE-2025-00003"
        assert "price" not in result.changed_fields
        assert "area" not in result.changed_fields
        assert "notes" in result.changed_fields
        assert timeline_actions(audit_service)[0] == "Record updated from intake"
        assert audit_service.write_audit_log.await_args.kwargs["action"] == "confirm_merge"

    @pytest.mark.asyncio
    async def test_incoming_without_critical_fields_needs_review(
        self, confirmation_service, session_repository, records,
    ):
        session = make_session(status="needs_review")
        session_repository.get_by_id.return_value = session
        existing = SimpleNamespace(
            id=uuid4(), code="SALE-2025-00004", contact_id=None,
            price=3000000, area="Maadi", notes="",
        )
        records.get_by_id.return_value = existing
        request = ConfirmRequest(
            session_id=session.id,
            type="sale",
            mode="update_existing",
            target_record_id=existing.id,
            extracted_data={"notes": "x"},
            merge_decisions={"price": "keep_existing", "area": "keep_existing"},
        )

        result = await confirmation_service.confirm(request)

        assert result.status == RecordStatus.NEEDS_REVIEW
        update_args = records.update.await_args
        assert update_args.kwargs["status"] == "needs_review"
        assert "price" not in update_args.kwargs
        final = session_repository.update.await_args.kwargs
        assert final["ai_meta"]["missing_critical_fields"] == ["price", "location_area"]

    @pytest.mark.asyncio
    async def test_missing_target_record(self, confirmation_service, session_repository, records):
        session = make_session()
        session_repository.get_by_id.return_value = session
        records.get_by_id.return_value = None
        request = ConfirmRequest(
            session_id=session.id, type="rent", mode="update_existing", target_record_id=uuid4()
        )

        with pytest.raises(RecordNotFoundError):
            await confirmation_service.confirm(request)
        session_repository.update.assert_not_called()


class TestResume:

    @pytest.mark.asyncio
    async def test_logged_record_is_not_rewritten(
        self, confirmation_service, session_repository, records,
        contact_service, code_allocator, audit_service,
    ):
        record_id = uuid4()
        session = make_session(ai_meta={"confirmation": {
            "steps": ["contact_resolved", "record_written"],
            "record_type": "properties_sale",
            "mode": "create_new",
            "contact_id": None,
            "record_id": str(record_id),
            "code": "SALE-2026-00007",
            "changed_fields": ["price", "area"],
            "missing_critical_fields": [],
            "row_status": "active",
        }})
        session_repository.get_by_id.return_value = session
        request = ConfirmRequest(
            session_id=session.id, type="sale",
            extracted_data={"price": "100", "location_area": "Zamalek"},
        )

        result = await confirmation_service.confirm(request)

        contact_service.resolve_contact_id.assert_not_called()
        code_allocator.next_code.assert_not_called()
        records.create.assert_not_called()
        assert result.record_id == record_id
        assert result.code == "SALE-2026-00007"
        assert result.changed_fields == ["price", "area"]
        assert timeline_actions(audit_service)[0] == "Record created from intake"
        assert session_repository.update.await_args.kwargs["status"] == "confirmed"

    @pytest.mark.asyncio
    async def test_retry_with_other_type_is_rejected(self, confirmation_service, session_repository, records):
        session = make_session(ai_meta={"confirmation": {
            "steps": ["contact_resolved"],
            "record_type": "properties_rent",
            "mode": "create_new",
        }})
        session_repository.get_by_id.return_value = session
        request = ConfirmRequest(session_id=session.id, type="sale")

        with pytest.raises(PreconditionError):
            await confirmation_service.confirm(request)
        records.create.assert_not_called()
