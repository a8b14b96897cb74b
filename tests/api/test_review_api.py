"""Tests for the review API endpoints."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from estate_intake.core.exceptions import SessionAlreadyConfirmedError
from estate_intake.dependencies import get_confirmation_service
from estate_intake.main import app
from estate_intake.schemas.confirm import ConfirmMode, ConfirmResult, RecordKind, RecordStatus


@pytest.fixture
def confirmation_service() -> AsyncMock:
    service = AsyncMock()
    app.dependency_overrides[get_confirmation_service] = lambda: service
    return service


class TestConfirm:

    def test_confirm_create(self, test_client: TestClient, confirmation_service, agent_headers) -> None:
        record_id = uuid4()
        confirmation_service.confirm.return_value = ConfirmResult(
            record_type="properties_sale",
            record_id=record_id,
            code="SALE-2026-00001",
            status=RecordStatus.ACTIVE,
            changed_fields=["price", "area"],
        )
        session_id = uuid4()

        response = test_client.post(
            "/api/v1/review/confirm",
            json={
                "session_id": str(session_id),
                "type": "sale",
                "extracted_data": {"price": "3500000", "location_area": "Maadi"},
            },
            headers=agent_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "SALE-2026-00001"
        assert data["status"] == "active"
        assert data["media_summary"] == {"images": 0, "videos": 0, "documents": 0, "move_warnings": []}

        request = confirmation_service.confirm.await_args.args[0]
        assert request.session_id == session_id
        assert request.type == RecordKind.SALE
        assert request.mode == ConfirmMode.CREATE_NEW
        assert confirmation_service.confirm.await_args.kwargs["actor_id"] == "agent-1"

    def test_admin_may_confirm(self, test_client: TestClient, confirmation_service) -> None:
        confirmation_service.confirm.return_value = ConfirmResult(
            record_type="clients", record_id=uuid4(), status=RecordStatus.NEEDS_REVIEW
        )

        response = test_client.post(
            "/api/v1/review/confirm",
            json={"session_id": str(uuid4()), "type": "client"},
            headers={"X-Actor-Id": "admin-1", "X-Actor-Role": "ADMIN"},
        )

        assert response.status_code == 200

    @pytest.mark.parametrize("headers, expected", [
        ({}, 401),
        ({"X-Actor-Id": "v-1"}, 403),
        ({"X-Actor-Id": "v-1", "X-Actor-Role": "superuser"}, 403),
    ])
    def test_role_required(self, test_client: TestClient, confirmation_service, headers, expected) -> None:
        response = test_client.post(
            "/api/v1/review/confirm",
            json={"session_id": str(uuid4()), "type": "sale"},
            headers=headers,
        )

        assert response.status_code == expected
        confirmation_service.confirm.assert_not_called()

    def test_type_other_is_rejected(self, test_client: TestClient, confirmation_service, agent_headers) -> None:
        response = test_client.post(
            "/api/v1/review/confirm",
            json={"session_id": str(uuid4()), "type": "other"},
            headers=agent_headers,
        )

        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"

    def test_update_requires_target(self, test_client: TestClient, confirmation_service, agent_headers) -> None:
        response = test_client.post(
            "/api/v1/review/confirm",
            json={"session_id": str(uuid4()), "type": "buyer", "mode": "update_existing"},
            headers=agent_headers,
        )

        assert response.status_code == 400
        confirmation_service.confirm.assert_not_called()

    def test_already_confirmed(self, test_client: TestClient, confirmation_service, agent_headers) -> None:
        confirmation_service.confirm.side_effect = SessionAlreadyConfirmedError("Intake session already confirmed")

        response = test_client.post(
            "/api/v1/review/confirm",
            json={"session_id": str(uuid4()), "type": "rent"},
            headers=agent_headers,
        )

        assert response.status_code == 409
        assert response.json()["error_type"] == "SessionAlreadyConfirmedError"
