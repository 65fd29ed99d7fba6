"""
Client-observable job status.

Status text and a progress percentage for every job status. Assembly reports
real progress when the assembler publishes it; the other processing phases
use an oscillating estimate.
"""

import time
from typing import Any, Dict, Optional

from shared.models.job import Job, JobStatus

STATUS_MESSAGES: Dict[JobStatus, str] = {
    JobStatus.QUEUED: "Preparing your vision...",
    JobStatus.RUNNING: "Creating your masterpiece...",
    JobStatus.READY_FOR_ASSEMBLY: "Assembling final video...",
    JobStatus.ASSEMBLING: "Putting it all together...",
    JobStatus.DONE: "Your video is ready!",
    JobStatus.ERROR: "Something went wrong",
}

STATUS_DETAILS: Dict[JobStatus, str] = {
    JobStatus.QUEUED: "Setting up the creative pipeline",
    JobStatus.RUNNING: "Generating visuals and syncing audio",
    JobStatus.READY_FOR_ASSEMBLY: "Combining all elements",
    JobStatus.ASSEMBLING: "Final rendering in progress",
    JobStatus.DONE: "Time to watch your creation",
    JobStatus.ERROR: "Please try again",
}

# The pulse advances every 50ms and wraps at 100
PULSE_STEP_SECONDS = 0.05
PULSE_PERIOD = 100


def current_pulse(now: Optional[float] = None) -> int:
    """Pulse counter in [0, 100) derived from the wall clock."""
    now = time.time() if now is None else now
    return int(now / PULSE_STEP_SECONDS) % PULSE_PERIOD


def estimate_progress(status: JobStatus, pulse: int, assembly_progress: Optional[float] = None) -> float:
    """
    Progress percentage for a status.

    Args:
        status: Job status
        pulse: Oscillation counter in [0, 100)
        assembly_progress: Real assembler progress, when published
    """
    if status == JobStatus.QUEUED:
        return 0
    if status == JobStatus.RUNNING:
        return 30 + (pulse % 30)
    if status in (JobStatus.READY_FOR_ASSEMBLY, JobStatus.ASSEMBLING):
        if assembly_progress is not None:
            return max(0.0, min(100.0, assembly_progress))
        return 60 + (pulse % 35)
    if status == JobStatus.DONE:
        return 100
    return 0


def present_job(job: Job, assembly_progress: Optional[float] = None, pulse: Optional[int] = None) -> Dict[str, Any]:
    """Status payload returned by the status endpoint."""
    pulse = current_pulse() if pulse is None else pulse
    clip_generation = job.refs.clip_generation
    return {
        "job_id": str(job.id),
        "status": job.status.value,
        "result_url": job.result_url,
        "error": job.error,
        "assembly": job.assembly_manifest.model_dump(mode="json") if job.assembly_manifest else None,
        "message": STATUS_MESSAGES[job.status],
        "detail": STATUS_DETAILS[job.status],
        "progress": estimate_progress(job.status, pulse, assembly_progress),
        "degraded": clip_generation.degraded if clip_generation else False,
    }
