"""
Composer configuration.

FFmpeg settings, output parameters, and progress bands for assembly.
"""
from typing import Tuple

# FFmpeg settings
FFMPEG_TIMEOUT = 300  # 5 minutes
FFMPEG_PRESET = "medium"  # Balance speed/quality
FFMPEG_CRF = 23  # High quality

# Video output settings
OUTPUT_FPS = 30
OUTPUT_AUDIO_BITRATE = "192k"
OUTPUT_VIDEO_CODEC = "libx264"
OUTPUT_AUDIO_CODEC = "aac"
OUTPUT_CONTENT_TYPE = "video/mp4"

# Clips without an explicit duration
DEFAULT_CLIP_DURATION = 3.0

# Media fetching
DOWNLOAD_TIMEOUT = 120.0
MIN_MEDIA_BYTES = 1  # empty bodies are rejected
MAX_MEDIA_BYTES = 200 * 1024 * 1024  # 200MB
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".heic", ".gif")

# Progress bands (percent): downloads, encoding, finalization
DOWNLOAD_PROGRESS_END = 30.0
ENCODE_PROGRESS_END = 90.0
FINAL_PROGRESS = 100.0


def get_output_dimensions_from_aspect_ratio(aspect_ratio: str = "9:16") -> Tuple[int, int]:
    """
    Get output width and height from aspect ratio.

    Uses standard resolutions for each aspect ratio:
    - 9:16 -> 1080x1920 (vertical/portrait)
    - 16:9 -> 1920x1080 (1080p)
    - 1:1 -> 1080x1080 (square)

    Raises:
        ValueError: If aspect ratio is not in W:H form
    """
    try:
        parts = aspect_ratio.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid aspect ratio format: {aspect_ratio}")
        width_ratio = float(parts[0])
        height_ratio = float(parts[1])
        if width_ratio <= 0 or height_ratio <= 0:
            raise ValueError(f"Invalid aspect ratio format: {aspect_ratio}")
    except (ValueError, IndexError) as e:
        raise ValueError(f"Invalid aspect ratio format: {aspect_ratio}") from e

    aspect_ratio_map = {
        "9:16": (1080, 1920),
        "16:9": (1920, 1080),
        "1:1": (1080, 1080),
    }
    if aspect_ratio in aspect_ratio_map:
        return aspect_ratio_map[aspect_ratio]

    # Custom ratios keep the short side at 1080; codecs need even dimensions
    if width_ratio >= height_ratio:
        height = 1080
        width = (int(height * (width_ratio / height_ratio)) // 2) * 2
    else:
        width = 1080
        height = (int(width * (height_ratio / width_ratio)) // 2) * 2
    return (width, height)
