"""
Utility functions for composer module.

FFmpeg command execution and availability checks.
"""
import asyncio
import shutil
from typing import Awaitable, Callable, List, Optional, Union
from uuid import UUID

from shared.errors import CompositionError
from shared.logging import get_logger

logger = get_logger("composer.utils")

# Receives encoded output time in seconds
OutTimeCallback = Callable[[float], Awaitable[None]]


def check_ffmpeg_available() -> bool:
    """
    Check if FFmpeg is installed and available in PATH.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return shutil.which("ffmpeg") is not None


def parse_progress_line(line: str) -> Optional[float]:
    """
    Parse one `-progress` key=value line into output seconds.

    Returns:
        Seconds encoded so far, or None for other keys and unknown values
    """
    key, _, value = line.strip().partition("=")
    value = value.strip()
    if not value or value == "N/A":
        return None
    try:
        # out_time_ms is microseconds despite its name
        if key in ("out_time_us", "out_time_ms"):
            return max(0.0, int(value) / 1_000_000)
        if key == "out_time":
            hours, minutes, seconds = value.split(":")
            return max(0.0, int(hours) * 3600 + int(minutes) * 60 + float(seconds))
    except ValueError:
        return None
    return None


async def run_ffmpeg_command(
    cmd: List[str],
    job_id: Optional[Union[str, UUID]] = None,
    timeout: int = 300,
    on_out_time: Optional[OutTimeCallback] = None
) -> None:
    """
    Run an FFmpeg command, streaming `-progress pipe:1` output.

    Args:
        cmd: FFmpeg command as list of strings
        job_id: Job ID for logging
        timeout: Timeout in seconds (default: 300)
        on_out_time: Called with encoded seconds as progress lines arrive

    Raises:
        CompositionError: If FFmpeg is missing, fails, or times out
    """
    logger.info(
        f"Running FFmpeg command: {' '.join(cmd)}",
        extra={"job_id": str(job_id) if job_id else None}
    )

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise CompositionError("FFmpeg is not installed or not in PATH", job_id=job_id) from e

    async def read_progress() -> None:
        while True:
            line = await process.stdout.readline()
            if not line:
                return
            seconds = parse_progress_line(line.decode(errors="replace"))
            if seconds is not None and on_out_time is not None:
                await on_out_time(seconds)

    async def communicate() -> bytes:
        stderr_task = asyncio.create_task(process.stderr.read())
        await read_progress()
        stderr = await stderr_task
        await process.wait()
        return stderr

    try:
        stderr = await asyncio.wait_for(communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CompositionError(f"FFmpeg command timeout after {timeout}s", job_id=job_id)

    if process.returncode != 0:
        error_msg = stderr.decode(errors="replace")[-2000:] if stderr else "Unknown FFmpeg error"
        logger.error(
            f"FFmpeg command failed: {error_msg}",
            extra={"job_id": str(job_id) if job_id else None, "returncode": process.returncode}
        )
        raise CompositionError(f"FFmpeg exited with code {process.returncode}: {error_msg}", job_id=job_id)
