"""
Assembly manifest construction.

Pure aggregation of fulfilled clips into the manifest the assembler consumes.
"""
from typing import List, Union
from uuid import UUID

from shared.models.video import (
    AssemblyClip,
    AssemblyManifest,
    AssemblyTarget,
    UploadTarget,
    VERTICAL_ASPECT_RATIO,
)
from modules.composer.config import DEFAULT_CLIP_DURATION

FINAL_RENDER_PREFIX = "final"


def final_render_path(job_id: Union[str, UUID]) -> str:
    """Storage path of a job's final render."""
    return f"{FINAL_RENDER_PREFIX}/{job_id}.mp4"


def total_duration(clips: List[AssemblyClip]) -> float:
    """Sum of clip durations, counting DEFAULT_CLIP_DURATION for clips without one."""
    return sum(clip.duration_sec if clip.duration_sec is not None else DEFAULT_CLIP_DURATION for clip in clips)


def build_manifest(
    clips: List[AssemblyClip],
    audio_url: str,
    job_id: Union[str, UUID],
    outputs_bucket: str = "outputs"
) -> AssemblyManifest:
    """
    Build the assembly manifest for a job.

    Args:
        clips: Fulfilled clips in planner order
        audio_url: Song URL
        job_id: Job ID (names the final render)
        outputs_bucket: Bucket the final render is uploaded to

    Returns:
        AssemblyManifest targeting 9:16 with duration equal to the clip total

    Raises:
        ValueError: If there are no clips or no audio URL
    """
    if not clips:
        raise ValueError("Cannot build a manifest without clips")
    if not audio_url:
        raise ValueError("Cannot build a manifest without an audio URL")

    return AssemblyManifest(
        clips=list(clips),
        audio_url=audio_url,
        target=AssemblyTarget(aspect_ratio=VERTICAL_ASPECT_RATIO, duration_sec=total_duration(clips)),
        upload_target=UploadTarget(bucket=outputs_bucket, path=final_render_path(job_id)),
    )
