"""
Shared test fixtures for video generator tests.
"""

import httpx
import pytest

from shared.config import Settings


class StaticTokenProvider:
    """Token provider that always returns the same token."""

    def __init__(self, token="test-token", configured=True):
        self.token = token
        self.configured = configured
        self.calls = 0

    async def get_token(self):
        self.calls += 1
        return self.token


async def no_sleep(delay):
    return None


@pytest.fixture
def veo_settings():
    """Settings with Vertex configured and fast polling."""
    return Settings(
        log_dir="",
        vertex_project_id="test-project",
        vertex_location="us-central1",
        poll_interval_seconds=5.0,
        veo_max_poll_attempts=3,
    )


@pytest.fixture
def token_provider():
    return StaticTokenProvider()


@pytest.fixture
def unconfigured_token_provider():
    return StaticTokenProvider(token=None, configured=False)


@pytest.fixture
def make_http_client():
    """Factory for an httpx.AsyncClient served by a handler function."""
    clients = []

    def _make(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    return _make


@pytest.fixture
def sleep():
    return no_sleep
