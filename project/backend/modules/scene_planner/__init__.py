"""
Scene Planner module exports.

Public API for storyboard planning.
"""

from .llm_client import StoryboardLLMClient
from .planner import parse_storyboard, plan_storyboard
from .templates import default_storyboard

__all__ = [
    "StoryboardLLMClient",
    "parse_storyboard",
    "plan_storyboard",
    "default_storyboard",
]
