"""Tests for intake media upload and migration."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.exc import SQLAlchemyError

from estate_intake.core.exceptions import StorageError, ValidationError
from estate_intake.services.media.media_service import (
    IncomingFile,
    MediaService,
    build_intake_media_path,
    build_record_media_path,
    detect_media_type,
)
from estate_intake.services.media.storage_service import StorageService


BASE_URL = "https://project.supabase.co/storage/v1/object/public/crm-media/"


@pytest.fixture
def media_repository() -> AsyncMock:
    repository = AsyncMock()
    repository.find_duplicate.return_value = None
    repository.create.side_effect = lambda **fields: SimpleNamespace(id=uuid4(), **fields)
    return repository


@pytest.fixture
def storage_service() -> MagicMock:
    storage = MagicMock()
    storage.upload_file = AsyncMock(return_value={})
    storage.move_object = AsyncMock(return_value=None)
    storage.copy_object = AsyncMock(return_value=None)
    storage.get_public_url.side_effect = lambda path: BASE_URL + path
    storage.storage_path_from_public_url.return_value = ""
    return storage


@pytest.fixture
def media_service(media_repository, storage_service) -> MediaService:
    return MediaService(media_repository, storage_service, max_upload_bytes=1000)


def media_row(media_type: str = "image", storage_path: str = "intake_sessions/s/1_a.jpg", file_url: str = ""):
    return SimpleNamespace(id=uuid4(), media_type=media_type, storage_path=storage_path, file_url=file_url)


@pytest.mark.parametrize("mime, expected", [
    ("image/jpeg", "image"),
    ("VIDEO/mp4", "video"),
    ("application/pdf", "document"),
    ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "document"),
    ("application/zip", "other"),
    ("", "other"),
])
def test_detect_media_type(mime, expected):
    assert detect_media_type(mime) == expected


def test_media_paths():
    session_id = uuid4()
    assert build_intake_media_path(session_id, "my flat photo.jpg", 1700000000000) == (
        f"intake_sessions/{session_id}/1700000000000_my_flat_photo.jpg"
    )
    record_id = uuid4()
    assert build_record_media_path("buyers", record_id, "a.pdf") == f"media/buyers/{record_id}/a.pdf"


class TestAttachUploads:

    @pytest.mark.asyncio
    async def test_duplicates_in_request_and_session_are_skipped(self, media_service, media_repository, storage_service):
        session_id = uuid4()
        media_repository.find_duplicate.side_effect = [None, None, SimpleNamespace(id=uuid4())]
        files = [
            IncomingFile("a.jpg", b"12345", "image/jpeg"),
            IncomingFile("a.jpg", b"54321", "image/jpeg"),
            IncomingFile("b.pdf", b"pdf", "application/pdf"),
            IncomingFile("c.mp4", b"video", "video/mp4"),
        ]

        created, skipped = await media_service.attach_uploads(session_id, files)

        assert [item.original_filename for item in created] == ["a.jpg", "b.pdf"]
        assert skipped == ["a.jpg", "c.mp4"]
        assert storage_service.upload_file.await_count == 2
        assert media_repository.find_duplicate.await_count == 3

    @pytest.mark.asyncio
    async def test_created_rows(self, media_service, media_repository, storage_service):
        session_id = uuid4()
        files = [IncomingFile("plan.pdf", b"%PDF", "application/pdf")]

        created, skipped = await media_service.attach_uploads(session_id, files)

        assert skipped == []
        fields = media_repository.create.await_args.kwargs
        assert fields["intake_session_id"] == session_id
        assert fields["media_type"] == "document"
        assert fields["file_size"] == 4
        assert fields["storage_path"].startswith(f"intake_sessions/{session_id}/")
        assert fields["file_url"] == BASE_URL + fields["storage_path"]
        storage_service.upload_file.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_size_limit(self, media_service, storage_service):
        files = [IncomingFile("ok.jpg", b"1"), IncomingFile("big.mp4", b"x" * 1001)]

        with pytest.raises(ValidationError):
            await media_service.attach_uploads(uuid4(), files)
        storage_service.upload_file.assert_not_called()


class TestMigrateSessionMedia:

    @pytest.mark.asyncio
    async def test_counts_by_media_type(self, media_service, media_repository):
        media_repository.list_for_session.return_value = [
            media_row("image"), media_row("image"), media_row("video"), media_row("document"),
        ]
        record_id = uuid4()

        summary = await media_service.migrate_session_media(uuid4(), "properties_sale", record_id)

        assert (summary.images, summary.videos, summary.documents) == (2, 1, 1)
        assert summary.move_warnings == []
        attach = media_repository.attach_to_record.await_args.kwargs
        assert attach["record_type"] == "properties_sale"
        assert attach["storage_path"] == f"media/properties_sale/{record_id}/1_a.jpg"

    @pytest.mark.asyncio
    async def test_copy_fallback_is_a_warning(self, media_service, media_repository, storage_service):
        item = media_row("image")
        media_repository.list_for_session.return_value = [item]
        storage_service.move_object.side_effect = StorageError("move failed")

        summary = await media_service.migrate_session_media(uuid4(), "buyers", uuid4())

        assert summary.images == 1
        assert summary.move_warnings == [f"Move failed; copied instead for media {item.id}"]
        storage_service.copy_object.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_item_stays_on_session(self, media_service, media_repository, storage_service):
        failed, moved = media_row("video"), media_row("document")
        media_repository.list_for_session.return_value = [failed, moved]
        storage_service.move_object.side_effect = [StorageError("move"), None]
        storage_service.copy_object.side_effect = StorageError("copy")

        summary = await media_service.migrate_session_media(uuid4(), "clients", uuid4())

        assert summary.videos == 0
        assert summary.documents == 1
        assert summary.move_warnings == [f"Move/copy failed for media {failed.id}"]
        assert media_repository.attach_to_record.await_count == 1
        assert media_repository.attach_to_record.await_args.args[0] == moved.id

    @pytest.mark.asyncio
    async def test_unparseable_url(self, media_service, media_repository, storage_service):
        item = media_row(storage_path="", file_url="https://elsewhere.example/a.jpg")
        media_repository.list_for_session.return_value = [item]

        summary = await media_service.migrate_session_media(uuid4(), "buyers", uuid4())

        assert summary.move_warnings == [f"Path parse failed for media {item.id}"]
        storage_service.move_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_row_update_failure(self, media_service, media_repository):
        item = media_row("image")
        media_repository.list_for_session.return_value = [item]
        media_repository.attach_to_record.side_effect = SQLAlchemyError("boom")

        summary = await media_service.migrate_session_media(uuid4(), "buyers", uuid4())

        assert summary.images == 0
        assert summary.move_warnings == [f"Media row update failed {item.id}"]


class TestStorageService:

    @pytest.fixture
    def storage(self) -> StorageService:
        return StorageService(
            SimpleNamespace(
                supabase_url="https://project.supabase.co/",
                service_role_key="service-key",
                media_bucket="crm-media",
            ),
            http_timeout=5,
        )

    def test_public_url_round_trip(self, storage):
        url = storage.get_public_url("intake_sessions/s/1_a b.jpg")
        assert url == BASE_URL + "intake_sessions/s/1_a b.jpg"
        assert storage.storage_path_from_public_url(BASE_URL + "intake_sessions/s/1_a%20b.jpg") == (
            "intake_sessions/s/1_a b.jpg"
        )

    def test_foreign_url(self, storage):
        assert storage.storage_path_from_public_url("https://cdn.example/a.jpg") == ""
        assert storage.storage_path_from_public_url("") == ""

    @pytest.mark.asyncio
    async def test_move_posts_keys(self, storage):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"message": "Successfully moved"})

        real_client = httpx.AsyncClient
        with patch.object(httpx, "AsyncClient", lambda: real_client(transport=httpx.MockTransport(handler))):
            await storage.move_object("intake_sessions/s/a.jpg", "media/buyers/r/a.jpg")

        assert str(requests[0].url) == "https://project.supabase.co/storage/v1/object/move"
        assert requests[0].headers["authorization"] == "Bearer service-key"
        assert b'"sourceKey":"intake_sessions/s/a.jpg"' in requests[0].content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_failed_copy_raises(self, storage):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="not found")

        real_client = httpx.AsyncClient
        with patch.object(httpx, "AsyncClient", lambda: real_client(transport=httpx.MockTransport(handler))):
            with pytest.raises(StorageError):
                await storage.copy_object("a", "b")
