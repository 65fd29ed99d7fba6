"""
Upload endpoints.

Signed upload URLs for the user's selfie and song.
"""

import re
import time
from typing import Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from shared.errors import ConfigError
from shared.logging import get_logger
from api_gateway.context import PipelineContext
from api_gateway.dependencies import get_context, get_current_user

logger = get_logger(__name__)

router = APIRouter()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class SignedUploadRequest(BaseModel):
    folder: Literal["selfies", "audio"]
    filename: str = Field(min_length=1, max_length=255)


def sanitize_filename(filename: str) -> str:
    """Reduce a client filename to a safe storage object name."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "upload"


def build_upload_path(user_id: str, folder: str, filename: str, now_ms: int) -> str:
    """User-scoped object path: {user_id}/{folder}/{timestamp_ms}_{name}."""
    return f"{user_id}/{folder}/{now_ms}_{sanitize_filename(filename)}"


@router.post("/uploads/signed-url", status_code=status.HTTP_201_CREATED)
async def create_signed_upload_url(
    request: SignedUploadRequest,
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Create a signed upload URL in the uploads bucket.

    Returns:
        {"path", "upload_url", "token", "read_url"}; both URLs expire in 1 hour
    """
    if ctx.storage is None:
        raise ConfigError("Object storage is not configured")

    path = build_upload_path(current_user["user_id"], request.folder, request.filename, int(time.time() * 1000))
    upload = await ctx.storage.create_signed_upload_url(path)
    read_url = await ctx.storage.get_signed_url(ctx.storage.uploads_bucket, path)

    logger.info("Signed upload URL created", extra={"user_id": current_user["user_id"], "path": path})
    return {
        "path": path,
        "upload_url": upload["signed_url"],
        "token": upload["token"],
        "read_url": read_url,
    }
