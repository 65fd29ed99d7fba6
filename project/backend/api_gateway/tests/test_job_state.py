"""
Tests for the job state machine.
"""

from uuid import uuid4

import pytest

from shared.errors import JobNotFoundError, JobStateError, ValidationError
from shared.models.job import ClipGenerationSummary, Emotion, JobStatus, ProviderRefs, StoryboardRef
from shared.models.scene import SceneType
from shared.models.video import AssemblyClip
from shared.runtime_state import RuntimeState
from modules.composer import build_manifest
from modules.scene_planner import default_storyboard
from api_gateway.services import job_state
from api_gateway.services.job_store import InMemoryJobStore

SELFIE = "https://storage.test/uploads/u/selfies/me.jpg"
SONG = "https://storage.test/uploads/u/audio/song.mp3"
OUTPUT = "https://storage.test/object/sign/outputs/final/x.mp4"


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def runtime():
    return RuntimeState()


@pytest.fixture
def owner():
    return uuid4()


async def _queued(store, owner):
    return await job_state.create_job(store, owner, Emotion.ASCENDING, SONG, SELFIE)


async def _ready(store, owner):
    job = await _queued(store, owner)
    await job_state.start_processing(store, job.id)
    manifest = build_manifest(
        [AssemblyClip(url=SELFIE, type=SceneType.PERFORMER, duration_sec=3)], SONG, job.id
    )
    refs = ProviderRefs(
        storyboard=StoryboardRef(source="template", scenes=default_storyboard("ascending")),
        clip_generation=ClipGenerationSummary(placeholder_clips=1),
    )
    return await job_state.mark_ready(store, job.id, manifest, refs)


class TestCreateJob:

    @pytest.mark.asyncio
    async def test_creates_queued_job(self, store, owner):
        job = await job_state.create_job(store, owner, Emotion.NUMB, SONG, SELFIE, lyrics="  ")

        assert job.status == JobStatus.QUEUED
        assert job.user_id == owner
        assert job.lyrics is None
        assert job.assembly_manifest is None
        assert (await store.get(job.id)).status == JobStatus.QUEUED

    @pytest.mark.asyncio
    async def test_requires_media(self, store, owner):
        with pytest.raises(ValidationError):
            await job_state.create_job(store, owner, Emotion.NUMB, "", SELFIE)


class TestTransitions:

    @pytest.mark.asyncio
    async def test_happy_path(self, store, owner):
        job = await _ready(store, owner)
        assert job.status == JobStatus.READY_FOR_ASSEMBLY
        assert job.assembly_manifest is not None
        assert job.provider_refs["clip_generation"]["degraded"] is True

        job = await job_state.start_assembling(store, job.id, user_id=owner)
        assert job.status == JobStatus.ASSEMBLING

        job = await job_state.finalize(store, job.id, OUTPUT, user_id=owner)
        assert job.status == JobStatus.DONE
        assert job.result_url == OUTPUT
        assert store.assets[0]["type"] == "final_video"
        assert store.assets[0]["meta"] == {"job_id": str(job.id)}

    @pytest.mark.asyncio
    async def test_second_process_is_a_conflict(self, store, owner):
        job = await _queued(store, owner)
        await job_state.start_processing(store, job.id)

        with pytest.raises(JobStateError, match="Cannot process job in 'running' state"):
            await job_state.start_processing(store, job.id)

    @pytest.mark.asyncio
    async def test_start_assembling_is_idempotent(self, store, owner):
        job = await _ready(store, owner)
        await job_state.start_assembling(store, job.id)

        job = await job_state.start_assembling(store, job.id)

        assert job.status == JobStatus.ASSEMBLING

    @pytest.mark.asyncio
    async def test_other_users_job_is_not_found(self, store, owner):
        job = await _queued(store, owner)

        with pytest.raises(JobNotFoundError):
            await job_state.start_processing(store, job.id, user_id=uuid4())


class TestFinalize:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [
        "https://evil.test/video.mp4",
        "https://evil.test/video.mp4?outputs=1",
        "https://evil.test/outputs-fake/x.mp4",
    ])
    async def test_rejects_url_outside_outputs(self, store, owner, url):
        job = await _ready(store, owner)

        with pytest.raises(ValidationError, match="Invalid video URL"):
            await job_state.finalize(store, job.id, url)

        assert (await store.get(job.id)).status == JobStatus.READY_FOR_ASSEMBLY
        assert store.assets == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [JobStatus.QUEUED, JobStatus.DONE, JobStatus.ERROR])
    async def test_rejects_illegal_state(self, store, owner, status):
        job = await _ready(store, owner)
        if status == JobStatus.QUEUED:
            job = await _queued(store, owner)
        elif status == JobStatus.DONE:
            await job_state.finalize(store, job.id, OUTPUT)
        else:
            await job_state.mark_error(store, job.id, "boom")

        with pytest.raises(JobStateError, match=f"Cannot finalize job in '{status.value}' state"):
            await job_state.finalize(store, job.id, OUTPUT)

        assert (await store.get(job.id)).status == status

    @pytest.mark.asyncio
    async def test_running_job_without_manifest_is_a_conflict(self, store, owner):
        job = await _queued(store, owner)
        await job_state.start_processing(store, job.id)

        with pytest.raises(JobStateError):
            await job_state.finalize(store, job.id, OUTPUT)

        assert (await store.get(job.id)).status == JobStatus.RUNNING

    @pytest.mark.asyncio
    async def test_asset_failure_is_not_fatal(self, store, owner):
        job = await _ready(store, owner)

        async def failing_insert(*args, **kwargs):
            raise RuntimeError("assets table unavailable")

        store.insert_asset = failing_insert
        job = await job_state.finalize(store, job.id, OUTPUT)

        assert job.status == JobStatus.DONE


class TestErrorAndCancel:

    @pytest.mark.asyncio
    async def test_mark_error_clears_manifest(self, store, owner):
        job = await _ready(store, owner)

        job = await job_state.mark_error(store, job.id, "Video generation failed")

        assert job.status == JobStatus.ERROR
        assert job.error == "Video generation failed"
        assert job.assembly_manifest is None

    @pytest.mark.asyncio
    async def test_mark_error_leaves_terminal_jobs(self, store, owner):
        job = await _ready(store, owner)
        await job_state.finalize(store, job.id, OUTPUT)

        assert await job_state.mark_error(store, job.id, "late failure") is None
        assert (await store.get(job.id)).status == JobStatus.DONE

    @pytest.mark.asyncio
    async def test_cancel_queued_job(self, store, runtime, owner):
        job = await _queued(store, owner)

        job = await job_state.cancel(store, runtime, job.id, user_id=owner)

        assert job.status == JobStatus.ERROR
        assert job.error == "Job cancelled"
        assert await runtime.is_cancelled(str(job.id)) is False

    @pytest.mark.asyncio
    async def test_cancel_running_job_sets_flag(self, store, runtime, owner):
        job = await _queued(store, owner)
        await job_state.start_processing(store, job.id)

        job = await job_state.cancel(store, runtime, job.id)

        assert job.status == JobStatus.RUNNING
        assert await runtime.is_cancelled(str(job.id)) is True

    @pytest.mark.asyncio
    async def test_cancel_done_job_is_a_conflict(self, store, runtime, owner):
        job = await _ready(store, owner)
        await job_state.finalize(store, job.id, OUTPUT)

        with pytest.raises(JobStateError):
            await job_state.cancel(store, runtime, job.id)
