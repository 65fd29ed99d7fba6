"""
Tests for data models.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from shared.models import (
    AssemblyClip,
    AssemblyManifest,
    AssemblyTarget,
    ClipGenerationSummary,
    Job,
    JobStatus,
    ProviderRefs,
    ProviderResult,
    SceneType,
    StoryboardScene,
    UploadTarget,
)


def _manifest():
    return AssemblyManifest(
        clips=[AssemblyClip(url="https://storage.test/me.jpg", type=SceneType.PERFORMER, duration_sec=3)],
        audio_url="https://storage.test/song.mp3",
        target=AssemblyTarget(duration_sec=3),
        upload_target=UploadTarget(bucket="outputs", path="final/x.mp4"),
    )


def _job(**overrides):
    now = datetime.now(timezone.utc)
    data = {
        "id": uuid4(),
        "user_id": uuid4(),
        "emotion": "unhinged",
        "song_url": "https://storage.test/song.mp3",
        "selfie_url": "https://storage.test/me.jpg",
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return Job(**data)


class TestJobInvariants:

    def test_queued_job(self):
        job = _job()

        assert job.status == JobStatus.QUEUED
        assert job.is_terminal is False
        assert job.provider_refs == {}

    def test_ready_requires_manifest(self):
        with pytest.raises(ValidationError):
            _job(status=JobStatus.READY_FOR_ASSEMBLY)

        assert _job(status=JobStatus.READY_FOR_ASSEMBLY, assembly_manifest=_manifest()).assembly_manifest

    def test_manifest_only_after_fulfillment(self):
        with pytest.raises(ValidationError):
            _job(status=JobStatus.RUNNING, assembly_manifest=_manifest())

    def test_result_url_only_when_done(self):
        with pytest.raises(ValidationError):
            _job(status=JobStatus.ASSEMBLING, assembly_manifest=_manifest(), result_url="https://x/outputs/a.mp4")
        with pytest.raises(ValidationError):
            _job(status=JobStatus.DONE, assembly_manifest=_manifest())

        done = _job(status=JobStatus.DONE, assembly_manifest=_manifest(), result_url="https://x/outputs/a.mp4")
        assert done.is_terminal is True

    def test_error_only_when_failed(self):
        with pytest.raises(ValidationError):
            _job(status=JobStatus.ERROR)
        with pytest.raises(ValidationError):
            _job(error="boom")

        assert _job(status=JobStatus.ERROR, error="boom").is_terminal is True

    def test_unknown_emotion_rejected(self):
        with pytest.raises(ValidationError):
            _job(emotion="happy")

    def test_serializes_ids_as_strings(self):
        job = _job()

        data = job.model_dump()

        assert data["id"] == str(job.id)
        assert isinstance(data["created_at"], str)


class TestStoryboardScene:

    @pytest.mark.parametrize("label,expected", [
        ("performer", SceneType.PERFORMER),
        ("Avatar", SceneType.PERFORMER),
        ("broll", SceneType.BACKGROUND),
        ("b-roll", SceneType.BACKGROUND),
    ])
    def test_type_aliases(self, label, expected):
        assert StoryboardScene(type=label, prompt="x", duration_sec=3).type == expected

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            StoryboardScene(type="title_card", prompt="x", duration_sec=3)

    @pytest.mark.parametrize("duration,expected", [(1, 2.0), (3.5, 3.5), (9, 4.0)])
    def test_duration_clamped(self, duration, expected):
        assert StoryboardScene(type="background", prompt="x", duration_sec=duration).duration_sec == expected


class TestProviderRefs:

    def test_record_carries_degraded_flag(self):
        refs = ProviderRefs(clip_generation=ClipGenerationSummary(clips_generated=2, placeholder_clips=1))

        record = refs.to_record()

        assert record["clip_generation"]["degraded"] is True
        assert "storyboard" not in record

    def test_unknown_keys_preserved(self):
        refs = ProviderRefs.model_validate({"legacy_provider": {"id": "abc"}})

        assert refs.to_record()["legacy_provider"] == {"id": "abc"}

    def test_full_generation_is_not_degraded(self):
        assert ClipGenerationSummary(clips_generated=3).degraded is False


def test_provider_result_kinds():
    assert ProviderResult.success("veo", media_url="u").ok
    assert ProviderResult.unavailable("veo", "no key").is_unavailable
    failure = ProviderResult.failure("veo", "HTTP 500", retryable=True)
    assert not failure.ok and failure.retryable


def test_manifest_needs_a_clip():
    with pytest.raises(ValidationError):
        AssemblyManifest(
            clips=[],
            audio_url="https://storage.test/song.mp3",
            target=AssemblyTarget(duration_sec=0),
            upload_target=UploadTarget(bucket="outputs", path="final/x.mp4"),
        )
