"""
Pipeline orchestration logic.

Runs storyboard planning, scene fulfillment, and manifest building for a job,
and the server-side assembly path, with error handling.
"""

from typing import Optional, Union
from uuid import UUID

from shared.errors import CompositionError, JobCancelledError, JobStateError, ConfigError
from shared.logging import get_logger, set_job_id
from shared.models.job import Job, ProviderRefs
from modules.composer import assemble, build_manifest
from modules.composer.config import OUTPUT_CONTENT_TYPE
from modules.scene_fulfillment import fulfill_scenes
from modules.scene_planner import plan_storyboard
from api_gateway.context import PipelineContext
from api_gateway.services.job_state import (
    CANCELLED_MESSAGE,
    finalize,
    mark_error,
    mark_ready,
    start_assembling,
    start_processing,
)

logger = get_logger(__name__)

IdLike = Union[str, UUID]

PROCESSING_FAILED_MESSAGE = "Video generation failed. Please try again."
ASSEMBLY_FAILED_MESSAGE = "Video assembly failed. Please try again."


def failure_diagnostic(summary: str, error: BaseException) -> str:
    """Job error text for an unexpected failure: the summary plus the exception type and reason."""
    reason = str(error) or "no details"
    return f"{summary} ({type(error).__name__}: {reason})"


async def process_job(ctx: PipelineContext, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
    """
    Run the generation pipeline for a queued job.

    Moves the job queued -> running, plans the storyboard, fulfills every
    scene, and records the manifest (running -> ready_for_assembly). Provider
    failures never fail the job; anything else moves it to error.

    Args:
        ctx: Pipeline context
        job_id: Job ID
        user_id: Owning user; when given, other users' jobs are not found

    Returns:
        The job in ready_for_assembly

    Raises:
        JobNotFoundError: If the job does not exist or is not owned by user_id
        JobStateError: If the job is not queued
        JobCancelledError: If the job was cancelled while running
    """
    set_job_id(job_id)
    settings = ctx.settings

    # Conflicts are reported before anything runs and leave the job untouched
    job = await start_processing(ctx.store, job_id, user_id=user_id)

    async def should_cancel() -> bool:
        return await ctx.runtime.is_cancelled(str(job.id))

    try:
        logger.info("Pipeline started", extra={"job_id": str(job.id), "emotion": job.emotion.value})

        storyboard = await plan_storyboard(
            ctx.llm,
            job.emotion,
            job.lyrics,
            max_attempts=settings.provider_max_attempts,
            base_delay=settings.provider_retry_base_delay,
            sleep=ctx.sleep
        )

        fulfillment = await fulfill_scenes(
            storyboard.scenes,
            job.selfie_url,
            job.song_url,
            lipsync=ctx.lipsync,
            video=ctx.video,
            max_attempts=settings.provider_max_attempts,
            base_delay=settings.provider_retry_base_delay,
            should_cancel=should_cancel,
            sleep=ctx.sleep
        )

        if await should_cancel():
            raise JobCancelledError(CANCELLED_MESSAGE, job_id=job.id)

        manifest = build_manifest(fulfillment.clips, job.song_url, job.id, settings.outputs_bucket)
        refs = ProviderRefs(storyboard=storyboard, clip_generation=fulfillment.summary)
        ready = await mark_ready(ctx.store, job.id, manifest, refs)

    except JobCancelledError:
        logger.info("Pipeline cancelled", extra={"job_id": str(job.id)})
        await mark_error(ctx.store, job.id, CANCELLED_MESSAGE)
        raise
    except JobStateError:
        # The job already left running; there is nothing to record
        raise
    except Exception as e:
        logger.error("Pipeline failed", exc_info=e, extra={"job_id": str(job.id), "error_type": type(e).__name__})
        await mark_error(ctx.store, job.id, failure_diagnostic(PROCESSING_FAILED_MESSAGE, e))
        raise
    finally:
        await ctx.runtime.clear(str(job.id))

    logger.info(
        "Pipeline finished",
        extra={
            "job_id": str(job.id),
            "storyboard_source": storyboard.source,
            "clips_generated": fulfillment.summary.clips_generated,
            "placeholder_clips": fulfillment.summary.placeholder_clips,
            "degraded": fulfillment.summary.degraded,
        }
    )
    return ready


async def assemble_job(ctx: PipelineContext, job_id: IdLike, user_id: Optional[IdLike] = None) -> Job:
    """
    Assemble a ready job on the server and finalize it.

    Runs the assembler on the job's manifest (publishing progress to the runtime
    state), uploads the render to the manifest's upload target, signs it, and
    finalizes the job with the signed URL.

    Raises:
        ConfigError: If object storage is not configured
        JobNotFoundError: If the job does not exist or is not owned by user_id
        JobStateError: If the job is not ready_for_assembly or assembling
        CompositionError: If assembly fails (the job is moved to error)
    """
    set_job_id(job_id)
    if ctx.storage is None:
        raise ConfigError("Object storage is not configured, server-side assembly unavailable", job_id=job_id)

    job = await start_assembling(ctx.store, job_id, user_id=user_id)
    manifest = job.assembly_manifest
    target = manifest.upload_target

    async def on_progress(value: float) -> None:
        await ctx.runtime.set_progress(str(job.id), value)

    try:
        data = await assemble(manifest, ctx.http, on_progress, job_id=job.id)
        path = await ctx.storage.upload_file(target.bucket, target.path, data, content_type=OUTPUT_CONTENT_TYPE)
        final_url = await ctx.storage.get_signed_url(
            target.bucket, path, expires_in=ctx.settings.output_url_expiry_seconds
        )
    except CompositionError as e:
        logger.error("Assembly failed", exc_info=e, extra={"job_id": str(job.id)})
        await mark_error(ctx.store, job.id, e.message)
        await ctx.runtime.clear(str(job.id))
        raise
    except Exception as e:
        logger.error("Assembly failed", exc_info=e, extra={"job_id": str(job.id), "error_type": type(e).__name__})
        await mark_error(ctx.store, job.id, failure_diagnostic(ASSEMBLY_FAILED_MESSAGE, e))
        await ctx.runtime.clear(str(job.id))
        raise

    done = await finalize(ctx.store, job.id, final_url, outputs_bucket=ctx.settings.outputs_bucket)
    await ctx.runtime.clear(str(job.id))
    return done
