"""
Media fetching for assembly.

Fetches every clip and the audio track sequentially into a work directory.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from shared.errors import CompositionError
from shared.logging import get_logger
from shared.models.video import AssemblyManifest
from modules.composer.config import (
    DOWNLOAD_PROGRESS_END,
    DOWNLOAD_TIMEOUT,
    IMAGE_EXTENSIONS,
    MAX_MEDIA_BYTES,
    MIN_MEDIA_BYTES,
)
from modules.composer.progress import ProgressReporter

logger = get_logger("composer.downloader")


@dataclass
class MediaFile:
    """A fetched media file on local disk."""

    path: Path
    is_image: bool = False


def _url_suffix(url: str) -> str:
    return Path(urlparse(url).path).suffix.lower()


def is_image_media(url: str, content_type: Optional[str]) -> bool:
    """Whether fetched media is a still image (the selfie placeholder)."""
    if content_type:
        content_type = content_type.split(";")[0].strip().lower()
        if content_type.startswith("image/"):
            return True
        if content_type.startswith("video/"):
            return False
    return _url_suffix(url) in IMAGE_EXTENSIONS


async def download_media(http: httpx.AsyncClient, url: str, label: str) -> Tuple[bytes, Optional[str]]:
    """
    Fetch one media file.

    Returns:
        (bytes, content type)

    Raises:
        CompositionError: If the fetch fails or the body is empty or too large
    """
    try:
        response = await http.get(url, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise CompositionError(f"Failed to fetch {label}: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise CompositionError(f"Failed to fetch {label}: {str(e) or type(e).__name__}") from e

    data = response.content
    if len(data) < MIN_MEDIA_BYTES:
        raise CompositionError(f"Failed to fetch {label}: empty response")
    if len(data) > MAX_MEDIA_BYTES:
        raise CompositionError(f"Failed to fetch {label}: {len(data) / 1024 / 1024:.1f} MB exceeds limit")

    return data, response.headers.get("content-type")


async def download_manifest_media(
    http: httpx.AsyncClient,
    manifest: AssemblyManifest,
    work_dir: Path,
    progress: ProgressReporter
) -> Tuple[List[MediaFile], Path]:
    """
    Fetch every clip, then the audio, in manifest order.

    Progress moves from 0 to 30 percent: each clip reports i/(n+1) of the band
    and the audio completes it.

    Returns:
        (clip files in manifest order, audio path)
    """
    total = len(manifest.clips) + 1
    clip_files: List[MediaFile] = []

    for index, clip in enumerate(manifest.clips):
        data, content_type = await download_media(http, clip.url, f"clip {index + 1}")
        is_image = is_image_media(clip.url, content_type)
        path = work_dir / f"clip_{index}{_url_suffix(clip.url) or ('.jpg' if is_image else '.mp4')}"
        path.write_bytes(data)
        clip_files.append(MediaFile(path=path, is_image=is_image))
        logger.info(
            f"Fetched clip {index + 1}/{len(manifest.clips)}",
            extra={"clip_index": index, "size": len(data), "is_image": is_image}
        )
        await progress.report((index + 1) / total * DOWNLOAD_PROGRESS_END)

    data, _ = await download_media(http, manifest.audio_url, "audio")
    audio_path = work_dir / f"audio{_url_suffix(manifest.audio_url) or '.mp3'}"
    audio_path.write_bytes(data)
    logger.info("Fetched audio", extra={"size": len(data)})
    await progress.report(DOWNLOAD_PROGRESS_END)

    return clip_files, audio_path
