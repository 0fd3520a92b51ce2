"""
app/services/storage_service.py

Purpose: Artifact storage

- Uploads images and videos to GridFS, one new file per write
- Builds public media URLs served by app/api/media.py
- Reads artifacts back by id or by URL
"""

import time
from typing import Optional, Tuple

import httpx
from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile

from app.core.exceptions import StorageError, ResourceNotFoundError
from app.core.logging import get_logger
from utils.media_utils import extension_for

logger = get_logger(__name__)


class StorageService:
    """Stores immutable artifacts in a GridFS bucket."""

    def __init__(self, bucket, client: httpx.AsyncClient, media_base_url: str):
        self._bucket = bucket
        self._client = client
        self._media_base_url = media_base_url.rstrip("/")

    def public_url(self, file_id: str) -> str:
        return f"{self._media_base_url}/{file_id}"

    async def upload(self, data: bytes, content_type: str, prefix: str) -> str:
        """
        Stores bytes under a unique name.

        Args:
            data: Artifact content
            content_type: MIME type stored alongside the file
            prefix: Filename prefix (usually the conversation id)

        Returns:
            Public URL of the stored artifact

        Raises:
            StorageError: If the upload fails
        """
        filename = f"{prefix}-{int(time.time() * 1000)}{extension_for(content_type)}"
        try:
            file_id = await self._bucket.upload_from_stream(
                filename,
                data,
                metadata={"contentType": content_type}
            )
        except Exception as e:
            logger.error(f"Upload failed for {filename}: {e}")
            raise StorageError(f"Failed to upload {filename}") from e

        url = self.public_url(str(file_id))
        logger.info(f"Stored artifact {filename} ({len(data)} bytes)")
        return url

    async def open(self, file_id: str) -> Tuple[bytes, str]:
        """
        Reads a stored artifact.

        Raises:
            ResourceNotFoundError: Unknown or malformed id
        """
        try:
            oid = ObjectId(file_id)
        except (InvalidId, TypeError):
            raise ResourceNotFoundError("Media not found")

        try:
            stream = await self._bucket.open_download_stream(oid)
        except NoFile:
            raise ResourceNotFoundError("Media not found")

        data = await stream.read()
        metadata = stream.metadata or {}
        return data, metadata.get("contentType", "application/octet-stream")

    async def fetch(self, url: str, headers: Optional[dict] = None) -> Tuple[bytes, Optional[str]]:
        """
        Downloads an artifact over HTTP (stored media URLs, provider results).

        Raises:
            StorageError: On transport errors or non-200 responses
        """
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download {url}: {e}") from e

        if response.status_code != 200:
            raise StorageError(
                f"Failed to download artifact: HTTP {response.status_code}",
                details={"url": url}
            )
        return response.content, response.headers.get("content-type")
