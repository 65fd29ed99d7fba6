"""
Main entry point for composer module.

Assembles a manifest into a single MP4: fetch clips and audio, concatenate
and mux with FFmpeg, read back the render.
"""
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union
from uuid import UUID

import httpx

from shared.errors import CompositionError
from shared.logging import get_logger
from shared.models.video import AssemblyManifest

from .config import (
    DEFAULT_CLIP_DURATION,
    DOWNLOAD_PROGRESS_END,
    ENCODE_PROGRESS_END,
    FFMPEG_TIMEOUT,
    FINAL_PROGRESS,
    get_output_dimensions_from_aspect_ratio,
)
from .downloader import download_manifest_media
from .encoder import build_concat_command
from .manifest_builder import total_duration
from .progress import ProgressCallback, ProgressReporter
from .utils import check_ffmpeg_available, run_ffmpeg_command

logger = get_logger("composer.process")


@contextmanager
def temp_directory(prefix: str) -> Iterator[Path]:
    """Temporary directory removed on exit."""
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


async def assemble(
    manifest: AssemblyManifest,
    http: httpx.AsyncClient,
    progress_callback: Optional[ProgressCallback] = None,
    job_id: Optional[Union[str, UUID]] = None
) -> bytes:
    """
    Assemble the final video described by a manifest.

    Progress: 0-30 fetching, 30-90 encoding, 90-100 finalization. Reported
    values never decrease and end at exactly 100 on success.

    Args:
        manifest: Assembly manifest
        http: HTTP client used to fetch media
        progress_callback: Optional sync or async callable receiving percent
        job_id: Job ID for logging

    Returns:
        MP4 bytes

    Raises:
        CompositionError: If any fetch or the encode fails; no partial output is returned
    """
    if not check_ffmpeg_available():
        raise CompositionError("FFmpeg is not installed or not in PATH", job_id=job_id)

    progress = ProgressReporter(progress_callback)
    await progress.report(0)

    width, height = get_output_dimensions_from_aspect_ratio(manifest.target.aspect_ratio)
    durations = [
        clip.duration_sec if clip.duration_sec is not None else DEFAULT_CLIP_DURATION
        for clip in manifest.clips
    ]
    expected_seconds = total_duration(manifest.clips) or 1.0

    with temp_directory(prefix="assemble_") as work_dir:
        clip_files, audio_path = await download_manifest_media(http, manifest, work_dir, progress)

        output_path = work_dir / "output.mp4"
        cmd = build_concat_command(clip_files, durations, audio_path, output_path, width, height)

        encode_band = ENCODE_PROGRESS_END - DOWNLOAD_PROGRESS_END

        async def on_out_time(seconds: float) -> None:
            fraction = min(1.0, seconds / expected_seconds)
            await progress.report(DOWNLOAD_PROGRESS_END + fraction * encode_band)

        logger.info(
            "Encoding final video",
            extra={"job_id": str(job_id) if job_id else None, "clips": len(clip_files), "width": width, "height": height}
        )
        await run_ffmpeg_command(cmd, job_id=job_id, timeout=FFMPEG_TIMEOUT, on_out_time=on_out_time)
        await progress.report(ENCODE_PROGRESS_END)

        if not output_path.exists():
            raise CompositionError("Final video not created", job_id=job_id)
        data = output_path.read_bytes()
        if not data:
            raise CompositionError("Final video is empty", job_id=job_id)

    logger.info(
        f"Final video assembled ({len(data) / 1024 / 1024:.2f} MB)",
        extra={"job_id": str(job_id) if job_id else None, "size_mb": len(data) / 1024 / 1024}
    )
    await progress.report(FINAL_PROGRESS)
    return data
