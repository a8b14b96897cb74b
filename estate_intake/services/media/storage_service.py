"""Storage service for handling Supabase storage operations."""

from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx

from estate_intake.config import StorageSettings, settings
from estate_intake.core.exceptions import StorageError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Service for managing media objects in a Supabase storage bucket."""

    def __init__(
        self,
        storage_settings: Optional[StorageSettings] = None,
        http_timeout: Optional[int] = None,
    ):
        storage_settings = storage_settings or settings.storage
        self.url = storage_settings.supabase_url.rstrip("/")
        self.bucket = storage_settings.media_bucket
        self.service_role_key = storage_settings.service_role_key
        self.timeout = http_timeout or settings.http_timeout
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def upload_file(
        self,
        content: bytes,
        path: str,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        """Upload bytes to the media bucket.

        Args:
            content: File content.
            path: Target path within the bucket.
            content_type: MIME type sent with the object.

        Returns:
            Dict containing the upload result.

        Raises:
            StorageError: If the upload fails.
        """
        upload_url = f"{self.base_api_url}/object/{self.bucket}/{path}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    upload_url,
                    headers={**self.headers, "Content-Type": content_type},
                    content=content,
                    timeout=self.timeout
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to Supabase: {str(e)}", exc_info=True)
            raise StorageError(f"Storage upload error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"bucket": self.bucket, "path": path, "status_code": response.status_code}
            )
            raise StorageError(f"Upload failed: {response.text}")

        return response.json()

    async def _object_operation(self, operation: str, source_path: str, destination_path: str) -> None:
        url = f"{self.base_api_url}/object/{operation}"
        payload = {
            "bucketId": self.bucket,
            "sourceKey": source_path,
            "destinationKey": destination_path,
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=self.headers,
                    json=payload,
                    timeout=self.timeout
                )
        except httpx.HTTPError as e:
            LOGGER.warning(f"Storage {operation} request failed: {str(e)}")
            raise StorageError(f"Storage {operation} error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.warning(
                f"Storage {operation} failed: {response.text}",
                extra={"source": source_path, "destination": destination_path, "status_code": response.status_code}
            )
            raise StorageError(f"Storage {operation} failed: {response.text}")

    async def move_object(self, source_path: str, destination_path: str) -> None:
        """Move an object within the bucket.

        Raises:
            StorageError: If the move fails.
        """
        await self._object_operation("move", source_path, destination_path)

    async def copy_object(self, source_path: str, destination_path: str) -> None:
        """Copy an object within the bucket.

        Raises:
            StorageError: If the copy fails.
        """
        await self._object_operation("copy", source_path, destination_path)

    def get_public_url(self, path: str) -> str:
        return f"{self.base_api_url}/object/public/{self.bucket}/{path}"

    def storage_path_from_public_url(self, file_url: str) -> str:
        """Recover the object path from a public URL, or "" if it is not one."""
        marker = f"/object/public/{self.bucket}/"
        try:
            path = urlparse(file_url or "").path
        except ValueError:
            return ""
        index = path.find(marker)
        if index == -1:
            return ""
        return unquote(path[index + len(marker):])
