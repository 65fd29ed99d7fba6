"""
Shared test fixtures for scene planner tests.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import Settings


@pytest.fixture
def make_completion():
    """Factory for objects shaped like an OpenAI chat completion."""
    def _make(content):
        message = SimpleNamespace(content=content)
        usage = SimpleNamespace(prompt_tokens=120, completion_tokens=80)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)
    return _make


@pytest.fixture
def settings():
    """Settings with no provider credentials."""
    return Settings(openai_api_key="", log_dir="", storyboard_timeout_seconds=30.0)


@pytest.fixture
def openai_client():
    """Mock AsyncOpenAI client."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def valid_storyboard_json():
    """LLM storyboard using the avatar/broll vocabulary."""
    return json.dumps({
        "scenes": [
            {"type": "avatar", "prompt": "performer singing under a streetlight", "duration_sec": 3},
            {"type": "broll", "prompt": "sunrise over a city skyline", "duration_sec": 4},
            {"type": "broll", "prompt": "birds lifting off a rooftop", "duration_sec": 3},
            {"type": "avatar", "prompt": "close-up of performer, eyes closed", "duration_sec": 3},
        ]
    })
