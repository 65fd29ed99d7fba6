"""
Data models for the video generation pipeline.

This module exports all Pydantic models used across pipeline modules.
"""

from .job import (
    Job,
    JobStatus,
    Emotion,
    ProviderRefs,
    StoryboardRef,
    ClipGenerationSummary,
    TERMINAL_STATUSES,
    MANIFEST_STATUSES,
)
from .scene import StoryboardScene, SceneType
from .video import AssemblyClip, AssemblyManifest, AssemblyTarget, UploadTarget, VERTICAL_ASPECT_RATIO
from .provider import ProviderResult, ProviderOutcome, OperationHandle

__all__ = [
    # Job models
    "Job",
    "JobStatus",
    "Emotion",
    "ProviderRefs",
    "StoryboardRef",
    "ClipGenerationSummary",
    "TERMINAL_STATUSES",
    "MANIFEST_STATUSES",
    # Scene models
    "StoryboardScene",
    "SceneType",
    # Assembly models
    "AssemblyClip",
    "AssemblyManifest",
    "AssemblyTarget",
    "UploadTarget",
    "VERTICAL_ASPECT_RATIO",
    # Provider models
    "ProviderResult",
    "ProviderOutcome",
    "OperationHandle",
]
