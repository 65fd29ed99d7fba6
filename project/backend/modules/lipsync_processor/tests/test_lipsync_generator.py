"""
Unit tests for the Sync lip-sync adapter.
"""

import json

import httpx
import pytest

from shared.config import Settings
from shared.errors import JobCancelledError
from shared.models.provider import ProviderOutcome
from modules.lipsync_processor.generator import SyncLipsyncClient, build_request_body, parse_generation

SELFIE_URL = "https://storage.test/uploads/u1/selfies/1-me.jpg"
SONG_URL = "https://storage.test/uploads/u1/songs/1-song.mp3"


async def _no_sleep(delay):
    return None


@pytest.fixture
def settings():
    return Settings(log_dir="", sync_api_key="sync-key", lipsync_max_poll_attempts=3)


def _client(settings, handler):
    return SyncLipsyncClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)), sleep=_no_sleep)


class TestPayloads:
    """Test request and status payloads."""

    def test_request_body(self):
        body = build_request_body("lipsync-1.9.0-beta", SELFIE_URL, SONG_URL)

        assert body == {
            "model": "lipsync-1.9.0-beta",
            "input": [{"type": "video", "url": SELFIE_URL}, {"type": "audio", "url": SONG_URL}],
            "options": {"output_format": "mp4", "aspect_ratio": "9:16"},
        }

    @pytest.mark.parametrize("status", ["PENDING", "PROCESSING", "", None])
    def test_pending_statuses(self, status):
        assert parse_generation({"status": status}) is None

    def test_completed_with_output_url(self):
        result = parse_generation({"status": "COMPLETED", "output_url": "https://cdn/ls.mp4"})
        assert result.media_url == "https://cdn/ls.mp4"

    def test_completed_with_output_list(self):
        result = parse_generation({"status": "COMPLETED", "output": [{"url": "https://cdn/ls.mp4"}]})
        assert result.media_url == "https://cdn/ls.mp4"

    def test_completed_without_url_is_failure(self):
        assert parse_generation({"status": "COMPLETED"}).outcome == ProviderOutcome.FAILED

    def test_failed(self):
        result = parse_generation({"status": "FAILED", "error": "no face detected"})
        assert result.outcome == ProviderOutcome.FAILED
        assert "no face detected" in result.reason


class TestSyncLipsyncClient:
    """Test submit and polling against a mock transport."""

    @pytest.mark.asyncio
    async def test_unavailable_without_api_key(self):
        client = _client(Settings(log_dir="", sync_api_key=""), lambda r: httpx.Response(500))

        result = await client.await_result(await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL}))

        assert result.is_unavailable

    @pytest.mark.asyncio
    async def test_submit_and_poll(self, settings):
        requests = []
        statuses = iter([{"status": "PROCESSING"}, {"status": "COMPLETED", "output_url": "https://cdn/ls.mp4"}])

        def handler(request):
            requests.append(request)
            if request.method == "POST":
                return httpx.Response(201, json={"id": "gen-1", "status": "PENDING"})
            return httpx.Response(200, json=next(statuses))

        client = _client(settings, handler)

        handle = await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL})
        result = await client.await_result(handle)

        assert handle.operation_id == "gen-1"
        assert result.ok
        assert result.media_url == "https://cdn/ls.mp4"
        assert str(requests[0].url) == "https://api.sync.so/v2/generate"
        assert requests[0].headers["x-api-key"] == "sync-key"
        assert json.loads(requests[0].content)["model"] == "lipsync-1.9.0-beta"
        assert str(requests[1].url) == "https://api.sync.so/v2/generate/gen-1"

    @pytest.mark.asyncio
    async def test_rate_limited_submit_is_retryable(self, settings):
        client = _client(settings, lambda r: httpx.Response(429))

        handle = await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL})

        assert handle.result.retryable is True

    @pytest.mark.asyncio
    async def test_missing_generation_id_is_failure(self, settings):
        client = _client(settings, lambda r: httpx.Response(200, json={"status": "PENDING"}))

        handle = await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL})

        assert handle.result.outcome == ProviderOutcome.FAILED
        assert handle.result.retryable is False

    @pytest.mark.asyncio
    async def test_polling_exhaustion(self, settings):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"id": "gen-1"})
            return httpx.Response(200, json={"status": "PROCESSING"})

        client = _client(settings, handler)

        result = await client.await_result(await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL}))

        assert result.outcome == ProviderOutcome.FAILED
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_missing_generation_stops_polling(self, settings):
        checks = []

        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"id": "gen-1"})
            checks.append(request)
            return httpx.Response(404, json={"message": "generation not found"})

        client = _client(settings, handler)

        result = await client.await_result(await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL}))

        assert result.outcome == ProviderOutcome.FAILED
        assert result.reason == "sync status check failed: HTTP 404"
        assert len(checks) == 1

    @pytest.mark.asyncio
    async def test_cancellation(self, settings):
        checks = []

        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"id": "gen-1"})
            checks.append(request)
            return httpx.Response(200, json={"status": "PROCESSING"})

        async def cancel_after_first_check():
            return len(checks) >= 1

        client = _client(settings, handler)
        handle = await client.submit({"video_url": SELFIE_URL, "audio_url": SONG_URL})

        with pytest.raises(JobCancelledError):
            await client.await_result(handle, should_cancel=cancel_after_first_check)
        assert len(checks) == 1
