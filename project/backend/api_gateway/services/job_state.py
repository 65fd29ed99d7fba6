"""
Job state machine.

queued -> running -> ready_for_assembly -> assembling -> done, with error
reachable from every non-terminal state. Every transition is a conditional
update guarded by the statuses it is legal from, so two racing callers cannot
both advance the same job.
"""

from typing import Any, Dict, Iterable, Optional, Union
from uuid import UUID, uuid4

from shared.errors import JobStateError, ValidationError
from shared.logging import get_logger
from shared.models.job import Emotion, Job, JobStatus, ProviderRefs, TERMINAL_STATUSES
from shared.models.video import AssemblyManifest
from shared.runtime_state import RuntimeState
from shared.storage import is_output_url
from api_gateway.services.job_store import JobStore, utcnow

logger = get_logger(__name__)

IdLike = Union[str, UUID]

FINALIZABLE_STATUSES = frozenset({JobStatus.RUNNING, JobStatus.READY_FOR_ASSEMBLY, JobStatus.ASSEMBLING})
CANCELLED_MESSAGE = "Job cancelled"
FINAL_VIDEO_ASSET = "final_video"


def _validated(job: Job, updates: Dict[str, Any]) -> None:
    """Check that applying `updates` keeps the job record consistent."""
    Job.model_validate({**job.model_dump(), **updates})


async def _transition(
    store: JobStore,
    job_id: IdLike,
    updates: Dict[str, Any],
    allowed: Iterable[JobStatus],
    action: str,
    user_id: Optional[IdLike] = None
) -> Job:
    """
    Apply a guarded transition.

    Raises:
        JobNotFoundError: If the job does not exist or is not owned by user_id
        JobStateError: If the job is not in one of the allowed statuses
    """
    allowed = frozenset(allowed)
    job = await store.get(job_id, user_id=user_id)
    if job.status not in allowed:
        raise JobStateError(f"Cannot {action} job in '{job.status.value}' state", job_id=job_id)

    _validated(job, updates)
    updated = await store.update(job_id, updates, expected_statuses=allowed)
    if updated is None:
        # Another caller moved the job between the read and the guarded write
        current = await store.get(job_id)
        raise JobStateError(f"Cannot {action} job in '{current.status.value}' state", job_id=job_id)

    logger.info(
        f"Job {action}: {job.status.value} -> {updated.status.value}",
        extra={"job_id": str(job_id), "from_status": job.status.value, "to_status": updated.status.value}
    )
    return updated


async def create_job(
    store: JobStore,
    user_id: IdLike,
    emotion: Emotion,
    song_url: str,
    selfie_url: str,
    lyrics: Optional[str] = None
) -> Job:
    """
    Create a queued job.

    Raises:
        ValidationError: If a required field is missing
    """
    if not song_url or not selfie_url:
        raise ValidationError("selfie_url and song_url are required")

    now = utcnow()
    job = Job(
        id=uuid4(),
        user_id=user_id,
        status=JobStatus.QUEUED,
        emotion=emotion,
        lyrics=lyrics.strip() if lyrics and lyrics.strip() else None,
        song_url=song_url,
        selfie_url=selfie_url,
        created_at=now,
        updated_at=now,
    )
    return await store.insert(job)


async def start_processing(store: JobStore, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
    """queued -> running. A second process request for the same job is a conflict."""
    return await _transition(store, job_id, {"status": JobStatus.RUNNING}, {JobStatus.QUEUED}, "process", user_id)


async def mark_ready(
    store: JobStore,
    job_id: IdLike,
    manifest: AssemblyManifest,
    provider_refs: ProviderRefs
) -> Job:
    """running -> ready_for_assembly with the manifest and provider diagnostics."""
    return await _transition(
        store,
        job_id,
        {
            "status": JobStatus.READY_FOR_ASSEMBLY,
            "assembly_manifest": manifest,
            "provider_refs": provider_refs.to_record(),
        },
        {JobStatus.RUNNING},
        "mark ready",
    )


async def start_assembling(store: JobStore, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
    """
    ready_for_assembly -> assembling.

    Idempotent for a job that is already assembling, so a client can resume.
    """
    job = await store.get(job_id, user_id=user_id)
    if job.status == JobStatus.ASSEMBLING:
        return job
    return await _transition(
        store, job_id, {"status": JobStatus.ASSEMBLING}, {JobStatus.READY_FOR_ASSEMBLY}, "start assembling", user_id
    )


async def finalize(
    store: JobStore,
    job_id: IdLike,
    final_video_url: str,
    outputs_bucket: str = "outputs",
    user_id: Optional[IdLike] = None
) -> Job:
    """
    Accept the final render and move the job to done.

    The job must be running, ready_for_assembly, or assembling, and the URL must
    reference the outputs location. In both rejections the job is unchanged.
    A final_video asset row is recorded afterwards; failing to write it does
    not fail finalization.

    Raises:
        JobNotFoundError: If the job does not exist or is not owned by user_id
        JobStateError: If the job is in any other state
        ValidationError: If the URL is missing or outside the outputs location
    """
    job = await store.get(job_id, user_id=user_id)
    if job.status not in FINALIZABLE_STATUSES:
        logger.warning(
            "Job in invalid state for finalization",
            extra={"job_id": str(job_id), "status": job.status.value}
        )
        raise JobStateError(f"Cannot finalize job in '{job.status.value}' state", job_id=job_id)

    if not final_video_url:
        raise ValidationError("final_video_url is required", job_id=job_id)
    if not is_output_url(final_video_url, outputs_bucket):
        logger.warning("Invalid video URL", extra={"job_id": str(job_id), "url": final_video_url[:50]})
        raise ValidationError("Invalid video URL", job_id=job_id)

    if job.assembly_manifest is None:
        # Finalizing straight from running: no manifest was ever recorded
        raise JobStateError("Cannot finalize job without an assembly manifest", job_id=job_id)

    done = await _transition(
        store,
        job_id,
        {"status": JobStatus.DONE, "result_url": final_video_url},
        FINALIZABLE_STATUSES,
        "finalize",
        user_id
    )

    try:
        await store.insert_asset(job.user_id, FINAL_VIDEO_ASSET, final_video_url, {"job_id": str(job_id)})
    except Exception as e:
        logger.warning("Failed to insert asset record", extra={"job_id": str(job_id), "error": str(e)})

    logger.info("Job finalized", extra={"job_id": str(job_id), "user_id": str(job.user_id)})
    return done


async def mark_error(store: JobStore, job_id: IdLike, message: str) -> Optional[Job]:
    """
    Move a non-terminal job to error.

    Best effort: returns None instead of raising if the job is already terminal
    or the store write fails, so callers can use it inside their own error path.
    """
    non_terminal = [status for status in JobStatus if status not in TERMINAL_STATUSES]
    try:
        updated = await store.update(
            job_id,
            {"status": JobStatus.ERROR, "error": message, "assembly_manifest": None},
            expected_statuses=non_terminal
        )
    except Exception as e:
        logger.error("Failed to record job error", exc_info=e, extra={"job_id": str(job_id)})
        return None

    if updated is None:
        logger.warning("Job already terminal, error not recorded", extra={"job_id": str(job_id)})
        return None

    logger.info("Job marked as error", extra={"job_id": str(job_id), "error": message})
    return updated


async def cancel(store: JobStore, runtime: RuntimeState, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
    """
    Cancel a job.

    A running job gets a cancellation flag that its in-flight provider polling
    observes; the pipeline then records the error. Jobs with nothing in flight
    move to error immediately.

    Raises:
        JobNotFoundError: If the job does not exist or is not owned by user_id
        JobStateError: If the job is already done or failed
    """
    job = await store.get(job_id, user_id=user_id)
    if job.is_terminal:
        raise JobStateError(f"Cannot cancel job in '{job.status.value}' state", job_id=job_id)

    logger.info("Cancellation requested", extra={"job_id": str(job_id), "status": job.status.value})
    if job.status == JobStatus.RUNNING:
        await runtime.request_cancel(str(job_id))
        return job

    await runtime.clear(str(job_id))
    updated = await mark_error(store, job_id, CANCELLED_MESSAGE)
    return updated or await store.get(job_id)
