"""
Unit tests for composer assembly.
"""
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from modules.composer.process import assemble
from shared.errors import CompositionError


def fake_ffmpeg(fetched, calls):
    """FFmpeg stand-in that writes the output file and streams progress."""

    async def run(cmd, job_id=None, timeout=300, on_out_time=None):
        calls.append({"cmd": cmd, "fetched_before": len(fetched)})
        for seconds in (0.0, 2.5, 2.0, 5.0, 10.0, 12.0):
            await on_out_time(seconds)
        Path(cmd[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp4final")

    return run


class TestAssemble:
    """Tests for assemble()."""

    @pytest.mark.asyncio
    async def test_assembles_and_reports_monotonic_progress(self, manifest, media_server):
        handler, fetched = media_server
        calls = []
        progress_values = []

        with patch("modules.composer.process.check_ffmpeg_available", return_value=True), \
                patch("modules.composer.process.run_ffmpeg_command", side_effect=fake_ffmpeg(fetched, calls)):
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                data = await assemble(manifest, http, progress_values.append, job_id="job-1")

        assert data == b"\x00\x00\x00\x18ftypmp4final"
        # Three clips and the audio are fetched before encoding starts
        assert calls[0]["fetched_before"] == 4
        assert progress_values[0] == 0
        assert progress_values[-1] == 100
        assert progress_values == sorted(progress_values)
        assert len(progress_values) == len(set(progress_values))
        assert all(0 <= value <= 100 for value in progress_values)

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, manifest, media_server):
        handler, fetched = media_server
        seen = []

        async def on_progress(value):
            seen.append(value)

        with patch("modules.composer.process.check_ffmpeg_available", return_value=True), \
                patch("modules.composer.process.run_ffmpeg_command", side_effect=fake_ffmpeg(fetched, [])):
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                await assemble(manifest, http, on_progress)

        assert seen[-1] == 100

    @pytest.mark.asyncio
    async def test_fetch_failure_aborts_without_encoding(self, manifest):
        calls = []

        def handler(request):
            if request.url.path.endswith(".mp3"):
                return httpx.Response(503)
            return httpx.Response(200, content=b"media", headers={"content-type": "video/mp4"})

        with patch("modules.composer.process.check_ffmpeg_available", return_value=True), \
                patch("modules.composer.process.run_ffmpeg_command", side_effect=fake_ffmpeg([], calls)):
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                with pytest.raises(CompositionError, match="Failed to fetch audio"):
                    await assemble(manifest, http)

        assert calls == []

    @pytest.mark.asyncio
    async def test_encode_failure_propagates(self, manifest, media_server):
        handler, _ = media_server
        progress_values = []

        async def failing_ffmpeg(cmd, job_id=None, timeout=300, on_out_time=None):
            raise CompositionError("FFmpeg exited with code 1: boom")

        with patch("modules.composer.process.check_ffmpeg_available", return_value=True), \
                patch("modules.composer.process.run_ffmpeg_command", side_effect=failing_ffmpeg):
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                with pytest.raises(CompositionError, match="FFmpeg exited"):
                    await assemble(manifest, http, progress_values.append)

        assert 100 not in progress_values

    @pytest.mark.asyncio
    async def test_missing_ffmpeg(self, manifest):
        with patch("modules.composer.process.check_ffmpeg_available", return_value=False):
            async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as http:
                with pytest.raises(CompositionError, match="FFmpeg is not installed"):
                    await assemble(manifest, http)
