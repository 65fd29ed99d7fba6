"""
Storage utilities.

Supabase Storage operations: signed upload/read URLs for user media and the
final render upload.
"""

import asyncio
import mimetypes
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from supabase import create_client
from shared.config import Settings
from shared.errors import ConfigError, RetryableError, ValidationError
from shared.logging import get_logger
from shared.retry import retry_with_backoff

logger = get_logger("storage")

# Maximum final render size in bytes
MAX_OUTPUT_SIZE = 100 * 1024 * 1024  # 100MB


def _signed_url_from_response(response: Any) -> str:
    """Extract the URL from a storage3 signed URL response."""
    if isinstance(response, dict):
        return response.get("signedURL") or response.get("signedUrl") or response.get("signed_url") or ""
    return str(response) if response else ""


class StorageClient:
    """Supabase Storage client for the uploads and outputs buckets."""

    def __init__(self, settings: Settings):
        """
        Initialize storage client.

        Raises:
            ConfigError: If Supabase is not configured
        """
        if not settings.supabase_configured:
            raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the storage client")
        self.uploads_bucket = settings.uploads_bucket
        self.outputs_bucket = settings.outputs_bucket
        self.upload_url_expiry = settings.upload_url_expiry_seconds
        self.output_url_expiry = settings.output_url_expiry_seconds
        try:
            self.client = create_client(settings.supabase_url, settings.supabase_service_key)
            self.storage = self.client.storage
        except Exception as e:
            raise ConfigError(f"Failed to initialize storage client: {str(e)}") from e

    async def _execute_sync(self, func: Callable[[], Any]) -> Any:
        """Run a synchronous storage3 call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    def _detect_content_type(self, path: str, default: Optional[str] = None) -> str:
        content_type, _ = mimetypes.guess_type(path)
        if content_type:
            return content_type
        return default or "application/octet-stream"

    def is_output_url(self, url: Optional[str]) -> bool:
        """
        Whether a URL references the outputs location.

        Any URL containing the outputs bucket as a path segment is treated as a
        trusted final-result reference.
        """
        return is_output_url(url, self.outputs_bucket)

    @retry_with_backoff(max_attempts=3, base_delay=2)
    async def create_signed_upload_url(self, path: str, bucket: Optional[str] = None) -> Dict[str, str]:
        """
        Create a signed upload URL for a user upload.

        Args:
            path: File path in bucket
            bucket: Bucket name (uploads bucket by default)

        Returns:
            Dict with signed_url, token and path

        Raises:
            RetryableError: If URL creation fails after retries
        """
        bucket = bucket or self.uploads_bucket
        try:
            response = await self._execute_sync(
                lambda: self.storage.from_(bucket).create_signed_upload_url(path)
            )
        except Exception as e:
            logger.error(
                f"Failed to create signed upload URL for {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise RetryableError(f"Failed to create signed upload URL: {str(e)}") from e

        signed_url = _signed_url_from_response(response)
        if not signed_url:
            raise RetryableError(f"Storage returned no signed upload URL for {bucket}/{path}")

        logger.info(f"Created signed upload URL for {bucket}/{path}", extra={"bucket": bucket, "path": path})
        return {
            "signed_url": signed_url,
            "token": response.get("token", "") if isinstance(response, dict) else "",
            "path": path,
        }

    @retry_with_backoff(max_attempts=3, base_delay=2)
    async def get_signed_url(self, bucket: str, path: str, expires_in: Optional[int] = None) -> str:
        """
        Generate a signed read URL.

        Args:
            bucket: Storage bucket name
            path: File path in bucket
            expires_in: Expiration in seconds (1 hour for uploads, 24 hours for outputs by default)

        Returns:
            Signed URL

        Raises:
            RetryableError: If URL generation fails
        """
        if expires_in is None:
            expires_in = self.output_url_expiry if bucket == self.outputs_bucket else self.upload_url_expiry
        try:
            response = await self._execute_sync(
                lambda: self.storage.from_(bucket).create_signed_url(path, expires_in)
            )
        except Exception as e:
            logger.error(
                f"Failed to generate signed URL for {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise RetryableError(f"Failed to generate signed URL: {str(e)}") from e

        signed_url = _signed_url_from_response(response)
        if not signed_url:
            raise RetryableError(f"Storage returned no signed URL for {bucket}/{path}")

        logger.info(
            f"Generated signed URL for {bucket}/{path}",
            extra={"bucket": bucket, "path": path, "expires_in": expires_in}
        )
        return signed_url

    @retry_with_backoff(max_attempts=3, base_delay=2)
    async def upload_file(
        self,
        bucket: str,
        path: str,
        file_data: bytes,
        content_type: Optional[str] = None,
        max_size: int = MAX_OUTPUT_SIZE
    ) -> str:
        """
        Upload a file and return its storage path.

        Args:
            bucket: Storage bucket name
            path: File path in bucket (write-once; existing objects are not overwritten)
            file_data: File data as bytes
            content_type: Content type (auto-detected if not provided)
            max_size: Maximum file size in bytes

        Returns:
            Path of the uploaded object

        Raises:
            ValidationError: If the file is empty or too large
            RetryableError: If upload fails after retries
        """
        if not file_data:
            raise ValidationError(f"Refusing to upload empty file to {bucket}/{path}")
        if len(file_data) > max_size:
            raise ValidationError(
                f"File size ({len(file_data) / (1024 * 1024):.2f} MB) exceeds maximum of "
                f"{max_size / (1024 * 1024):.2f} MB for bucket {bucket}"
            )

        content_type = content_type or self._detect_content_type(path)
        try:
            await self._execute_sync(
                lambda: self.storage.from_(bucket).upload(
                    path=path,
                    file=file_data,
                    file_options={"content-type": content_type}
                )
            )
        except Exception as e:
            logger.error(
                f"Failed to upload file to {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise RetryableError(f"Failed to upload file: {str(e)}") from e

        logger.info(
            f"Uploaded file to {bucket}/{path}",
            extra={"bucket": bucket, "path": path, "size": len(file_data)}
        )
        return path


def is_output_url(url: Optional[str], outputs_bucket: str = "outputs") -> bool:
    """
    Whether `url` is an http(s) URL with the outputs bucket as a path segment.

    Matches both public paths (`/outputs/final/x.mp4`) and Supabase signed
    paths (`/storage/v1/object/sign/outputs/...`). Query strings and host
    names are ignored.
    """
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    segments = parsed.path.split("/")[:-1]
    return outputs_bucket in segments
