"""
Shared test fixtures for API gateway tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from shared.config import Settings
from api_gateway.context import build_context
from api_gateway.main import create_app

JWT_SECRET = "test-jwt-secret"
SELFIE_URL = "https://storage.test/storage/v1/object/sign/uploads/u/selfies/1_me.jpg?token=s"
SONG_URL = "https://storage.test/storage/v1/object/sign/uploads/u/audio/1_song.mp3?token=a"
OUTPUT_URL = "https://storage.test/storage/v1/object/sign/outputs/final/job.mp4?token=o"


async def no_sleep(delay):
    return None


@pytest.fixture
def settings():
    """Memory-backed settings with every provider unconfigured."""
    return Settings(
        log_dir="",
        job_store_backend="memory",
        supabase_url="",
        supabase_service_key="",
        supabase_jwt_secret=JWT_SECRET,
        redis_url="",
        openai_api_key="",
        google_service_account_json="",
        vertex_project_id="",
        sync_api_key="",
    )


@pytest.fixture
def provider_http():
    """HTTP client that fails every request; providers are unavailable in these tests."""
    def handler(request):
        return httpx.Response(500)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def ctx(settings, provider_http):
    """Pipeline context with an in-memory store and in-process runtime state."""
    context = build_context(settings, http=provider_http)
    context.sleep = no_sleep
    return context


@pytest.fixture
def user_id():
    return str(uuid4())


@pytest.fixture
def make_token():
    """Factory for Supabase-style HS256 access tokens."""
    def _make(sub, secret=JWT_SECRET, expires_in=3600):
        now = datetime.now(timezone.utc)
        claims = {
            "sub": sub,
            "email": "singer@example.com",
            "role": "authenticated",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        }
        return jwt.encode(claims, secret, algorithm="HS256")
    return _make


@pytest.fixture
def auth_headers(make_token, user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def client(ctx):
    """TestClient over an app wired to the test context."""
    with TestClient(create_app(ctx=ctx)) as test_client:
        yield test_client


@pytest.fixture
def plan():
    """Director plan for job creation."""
    return {
        "emotion": "ascending",
        "platform": "9:16",
        "selfie_asset_url": SELFIE_URL,
        "song_asset_url": SONG_URL,
        "lyrics": "we rise above the noise",
    }


@pytest.fixture
def output_url():
    """Signed URL of a render in the outputs bucket."""
    return OUTPUT_URL
