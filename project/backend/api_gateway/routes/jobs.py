"""
Job endpoints.

Job creation, processing, status, assembly, finalization, and cancellation.
"""

from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, status
from pydantic import BaseModel, Field

from shared.errors import ValidationError
from shared.logging import get_logger
from shared.models.job import Emotion, JobStatus
from shared.models.video import VERTICAL_ASPECT_RATIO
from api_gateway.context import PipelineContext
from api_gateway.dependencies import get_context, get_current_user
from api_gateway.orchestrator import assemble_job, process_job
from api_gateway.services import job_state
from api_gateway.services.status_presenter import present_job

logger = get_logger(__name__)

router = APIRouter()


class OutputOptions(BaseModel):
    duration_sec: Optional[float] = Field(default=None, gt=0)


class DirectorPlan(BaseModel):
    """Job creation request."""

    emotion: Emotion
    platform: Literal["9:16"] = VERTICAL_ASPECT_RATIO
    selfie_asset_url: str = Field(min_length=1)
    song_asset_url: str = Field(min_length=1)
    lyrics: Optional[str] = Field(default=None, max_length=5000)
    hero_segments: Optional[List[int]] = None
    style_chips: Optional[List[str]] = None
    output: Optional[OutputOptions] = None


class AssemblyProgressRequest(BaseModel):
    progress: Optional[float] = Field(default=None, ge=0, le=100)


class FinalizeRequest(BaseModel):
    final_video_url: str = Field(min_length=1)
    job_id: Optional[UUID] = None


@router.post("/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(
    plan: DirectorPlan,
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Create a queued job from a director plan.

    Returns:
        {"job_id": ...}
    """
    job = await job_state.create_job(
        ctx.store,
        user_id=current_user["user_id"],
        emotion=plan.emotion,
        song_url=plan.song_asset_url,
        selfie_url=plan.selfie_asset_url,
        lyrics=plan.lyrics
    )
    logger.info(
        "Job created",
        extra={"job_id": str(job.id), "user_id": current_user["user_id"], "emotion": plan.emotion.value}
    )
    return {"job_id": str(job.id)}


@router.post("/jobs/{job_id}/process")
async def process(
    job_id: UUID = Path(...),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Run the generation pipeline and return the assembly manifest.

    Returns:
        {"job_id", "status": "ready_for_assembly", "assembly", "degraded"}
    """
    job = await process_job(ctx, job_id, user_id=current_user["user_id"])
    clip_generation = job.refs.clip_generation
    return {
        "job_id": str(job.id),
        "status": job.status.value,
        "assembly": job.assembly_manifest.model_dump(mode="json"),
        "degraded": clip_generation.degraded if clip_generation else False,
    }


@router.get("/jobs/{job_id}")
async def get_job_status(
    job_id: UUID = Path(...),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Get job status.

    Returns:
        status, result_url, error, assembly, message, detail, progress, degraded
    """
    job = await ctx.store.get(job_id, user_id=current_user["user_id"])
    assembly_progress = None
    if job.status in (JobStatus.READY_FOR_ASSEMBLY, JobStatus.ASSEMBLING):
        assembly_progress = await ctx.runtime.get_progress(str(job.id))
    return present_job(job, assembly_progress=assembly_progress)


@router.post("/jobs/{job_id}/assembling")
async def report_assembling(
    job_id: UUID = Path(...),
    request: Optional[AssemblyProgressRequest] = Body(default=None),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Mark a job as being assembled by the client, optionally with its progress.
    """
    job = await job_state.start_assembling(ctx.store, job_id, user_id=current_user["user_id"])
    if request is not None and request.progress is not None:
        await ctx.runtime.set_progress(str(job.id), request.progress)
    return {"job_id": str(job.id), "status": job.status.value}


@router.post("/jobs/{job_id}/assemble")
async def assemble(
    job_id: UUID = Path(...),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Assemble the job on the server, upload the render, and finalize the job.
    """
    job = await assemble_job(ctx, job_id, user_id=current_user["user_id"])
    return {"job_id": str(job.id), "status": job.status.value, "result_url": job.result_url}


@router.post("/jobs/{job_id}/finalize")
async def finalize(
    request: FinalizeRequest,
    job_id: UUID = Path(...),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Record the final render URL and move the job to done.
    """
    if request.job_id is not None and request.job_id != job_id:
        raise ValidationError("job_id in body does not match the URL", job_id=job_id)

    job = await job_state.finalize(
        ctx.store,
        job_id,
        request.final_video_url,
        outputs_bucket=ctx.settings.outputs_bucket,
        user_id=current_user["user_id"]
    )
    await ctx.runtime.clear(str(job.id))
    return {"success": True, "job_id": str(job.id), "status": job.status.value, "result_url": job.result_url}


@router.post("/jobs/{job_id}/cancel")
async def cancel(
    job_id: UUID = Path(...),
    current_user: dict = Depends(get_current_user),
    ctx: PipelineContext = Depends(get_context)
):
    """
    Cancel a job. Running jobs stop at their next provider poll.
    """
    job = await job_state.cancel(ctx.store, ctx.runtime, job_id, user_id=current_user["user_id"])
    return {"job_id": str(job.id), "status": job.status.value}
