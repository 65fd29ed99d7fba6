"""
Pytest fixtures for composer tests.
"""
import httpx
import pytest

from shared.models.scene import SceneType
from shared.models.video import AssemblyClip, AssemblyManifest, AssemblyTarget, UploadTarget

SELFIE_URL = "https://storage.test/uploads/u1/selfies/me.jpg"
LIPSYNC_URL = "https://cdn.test/lipsync/ls.mp4"
BACKGROUND_URL = "https://cdn.test/veo/bg.mp4"
AUDIO_URL = "https://storage.test/uploads/u1/songs/song.mp3"


@pytest.fixture
def manifest():
    """Three clips (one selfie placeholder) and an audio track."""
    return AssemblyManifest(
        clips=[
            AssemblyClip(url=LIPSYNC_URL, type=SceneType.PERFORMER, duration_sec=3),
            AssemblyClip(url=SELFIE_URL, type=SceneType.BACKGROUND, duration_sec=4),
            AssemblyClip(url=LIPSYNC_URL, type=SceneType.PERFORMER, duration_sec=3),
        ],
        audio_url=AUDIO_URL,
        target=AssemblyTarget(aspect_ratio="9:16", duration_sec=10),
        upload_target=UploadTarget(bucket="outputs", path="final/job-1.mp4"),
    )


@pytest.fixture
def media_server():
    """Mock transport serving every media URL, recording fetched URLs."""
    fetched = []

    def handler(request):
        url = str(request.url)
        fetched.append(url)
        if url.endswith(".jpg"):
            return httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})
        if url.endswith(".mp3"):
            return httpx.Response(200, content=b"ID3audio", headers={"content-type": "audio/mpeg"})
        return httpx.Response(200, content=b"\x00\x00\x00\x18ftypmp4", headers={"content-type": "video/mp4"})

    return handler, fetched
