"""
Concatenation and muxing for composer module.

Builds a single FFmpeg invocation that scales every clip to the target
frame, concatenates them in order, muxes the audio, and stops at the
shorter of the video and audio streams.
"""
from pathlib import Path
from typing import List, Sequence

from .config import (
    FFMPEG_CRF,
    FFMPEG_PRESET,
    OUTPUT_AUDIO_BITRATE,
    OUTPUT_AUDIO_CODEC,
    OUTPUT_FPS,
    OUTPUT_VIDEO_CODEC,
)
from .downloader import MediaFile


def _format_seconds(value: float) -> str:
    return f"{value:.3f}"


def build_concat_command(
    clips: Sequence[MediaFile],
    durations: Sequence[float],
    audio_path: Path,
    output_path: Path,
    width: int,
    height: int
) -> List[str]:
    """
    Build the FFmpeg command for the final render.

    Still images loop for their clip duration; video clips are cut to it.

    Args:
        clips: Fetched clips in manifest order
        durations: Duration in seconds per clip
        audio_path: Fetched audio track
        output_path: Output MP4 path
        width: Output width
        height: Output height
    """
    if len(clips) != len(durations):
        raise ValueError("Every clip needs a duration")
    if not clips:
        raise ValueError("At least one clip is required")

    cmd = ["ffmpeg", "-hide_banner", "-nostats", "-y"]
    for clip, duration in zip(clips, durations):
        if clip.is_image:
            cmd += ["-loop", "1", "-framerate", str(OUTPUT_FPS)]
        cmd += ["-t", _format_seconds(duration), "-i", str(clip.path)]
    cmd += ["-i", str(audio_path)]

    filters = []
    for index in range(len(clips)):
        filters.append(
            f"[{index}:v]scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1,fps={OUTPUT_FPS},format=yuv420p[v{index}]"
        )
    labels = "".join(f"[v{index}]" for index in range(len(clips)))
    filters.append(f"{labels}concat=n={len(clips)}:v=1:a=0[outv]")

    audio_index = len(clips)
    cmd += [
        "-filter_complex", ";".join(filters),
        "-map", "[outv]",
        "-map", f"{audio_index}:a:0",
        "-c:v", OUTPUT_VIDEO_CODEC,
        "-preset", FFMPEG_PRESET,
        "-crf", str(FFMPEG_CRF),
        "-c:a", OUTPUT_AUDIO_CODEC,
        "-b:a", OUTPUT_AUDIO_BITRATE,
        "-shortest",
        "-movflags", "+faststart",
        "-progress", "pipe:1",
        str(output_path),
    ]
    return cmd
