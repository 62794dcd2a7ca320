"""Object store adapter for incident photos (Supabase Storage REST API)."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

import httpx

from citywatch.errors import InputValidationError, StorageDeleteError, StorageWriteError

logger = logging.getLogger(__name__)

PUBLIC_MARKER = "public"


class StorageBucket(StrEnum):
    YOLO_MODEL = "yolo_model"
    INCIDENTS = "incidents"
    ATTACHMENTS = "attachments"
    AVATARS = "avatars"


@dataclass(frozen=True)
class StoredObject:
    """Location of an uploaded object."""

    bucket: str
    relative_path: str
    public_url: str


class ObjectStore:
    """
    Uploads and deletes binary objects and maps public URLs to relative paths.

    The database only keeps relative paths; public URLs are always rebuilt
    from ``{base_url}/{bucket}/{relative_path}``.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.timeout = timeout
        self.base_url = (
            base_url.rstrip("/")
            if base_url
            else f"{self.supabase_url}/storage/v1/object/{PUBLIC_MARKER}"
        )
        self.headers: dict[str, str] = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, bucket: str, relative_path: str = "") -> str:
        url = f"{self.supabase_url}/storage/v1/object/{bucket}"
        return f"{url}/{relative_path}" if relative_path else url

    async def put(
        self,
        bucket: str,
        relative_path: str,
        data: bytes,
        content_type: str,
        overwrite: bool = False,
    ) -> StoredObject:
        """
        Upload an object.

        Raises:
            StorageWriteError: If the upload is rejected or the store is unreachable.
        """
        relative_path = relative_path.strip("/")
        if not relative_path:
            raise InputValidationError("Storage path must not be empty")

        headers = {
            **self.headers,
            "Content-Type": content_type,
            "x-upsert": "true" if overwrite else "false",
        }

        logger.info(f"Uploading file to bucket: {bucket}, path: {relative_path}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._object_url(bucket, relative_path),
                    headers=headers,
                    content=data,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Storage upload failed: {e.response.status_code} {e.response.text[:500]}"
            )
            raise StorageWriteError(detail=f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Storage unreachable on upload: {e}")
            raise StorageWriteError(detail=str(e)) from e

        public_url = self.public_url(bucket, relative_path)
        logger.info(f"File uploaded successfully: {public_url}")
        return StoredObject(bucket=str(bucket), relative_path=relative_path, public_url=public_url)

    async def delete(self, bucket: str, relative_path: str) -> None:
        """
        Delete an object.

        Raises:
            StorageDeleteError: If the deletion is rejected or the store is unreachable.
        """
        logger.info(f"Deleting file from bucket: {bucket}, path: {relative_path}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    "DELETE",
                    self._object_url(bucket),
                    headers=self.headers,
                    json={"prefixes": [relative_path]},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Storage delete failed: {e.response.status_code} {e.response.text[:500]}"
            )
            raise StorageDeleteError(detail=f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Storage unreachable on delete: {e}")
            raise StorageDeleteError(detail=str(e)) from e

        logger.info("File deleted successfully")

    def public_url(self, bucket: str, relative_path: str) -> str:
        """Public URL of an object. Pure string composition."""
        return f"{self.base_url}/{bucket}/{relative_path}"

    def locate(self, url: str) -> StoredObject | None:
        """
        Bucket and relative path of the object a public URL points at.

        URLs under the configured base URL are resolved directly; anything
        else is parsed by locating the ``public`` segment, taking the next
        segment as the bucket and the rest as the path. Returns None for URLs
        of any other shape. ``public_url`` of the result is the URL given.
        """
        if not isinstance(url, str) or not url:
            return None

        prefix = f"{self.base_url}/"
        if url.startswith(prefix):
            segments = url[len(prefix):].split("/")
        else:
            try:
                parts = urlsplit(url).path.split("/")
            except ValueError:
                return None
            if PUBLIC_MARKER not in parts:
                return None
            segments = parts[parts.index(PUBLIC_MARKER) + 1:]

        bucket, path = segments[0] if segments else "", "/".join(segments[1:])
        if not bucket or not path:
            return None
        return StoredObject(bucket=bucket, relative_path=path, public_url=url)

    def relative_path_from_url(self, url: str) -> str | None:
        """Bucket-relative path of a public URL, or None if it is not one."""
        located = self.locate(url)
        return located.relative_path if located else None
