"""
Job-related data models.

Defines the Job record, its status enum, the emotion set, and provider diagnostics.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_serializer, model_validator

from .scene import StoryboardScene
from .video import AssemblyManifest


class JobStatus(str, Enum):
    """Job lifecycle states. String values are part of the external contract."""

    QUEUED = "queued"
    RUNNING = "running"
    READY_FOR_ASSEMBLY = "ready_for_assembly"
    ASSEMBLING = "assembling"
    DONE = "done"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({JobStatus.DONE, JobStatus.ERROR})
MANIFEST_STATUSES = frozenset({JobStatus.READY_FOR_ASSEMBLY, JobStatus.ASSEMBLING, JobStatus.DONE})


class Emotion(str, Enum):
    """Fixed mood tags a user can pick."""

    UNFILTERED = "unfiltered"
    VULNERABLE = "vulnerable"
    UNTOUCHABLE = "untouchable"
    NUMB = "numb"
    ASCENDING = "ascending"
    UNHINGED = "unhinged"


class StoryboardRef(BaseModel):
    """Diagnostics recorded by the storyboard planner."""

    kind: Literal["storyboard"] = "storyboard"
    source: Literal["llm", "template"]
    scenes: List[StoryboardScene]
    fallback_reason: Optional[str] = None


class ClipGenerationSummary(BaseModel):
    """Diagnostics recorded by scene fulfillment."""

    kind: Literal["clip_generation"] = "clip_generation"
    clips_generated: int = 0
    placeholder_clips: int = 0
    has_lipsync: bool = False
    failures: List[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when any clip fell back to the selfie placeholder."""
        return self.placeholder_clips > 0


class ProviderRefs(BaseModel):
    """
    Provider diagnostic metadata attached to a job.

    Typed per provider stage but persisted as a free-form JSON object, so unknown
    keys written by other clients are preserved.
    """

    model_config = {"extra": "allow"}

    storyboard: Optional[StoryboardRef] = None
    clip_generation: Optional[ClipGenerationSummary] = None

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        data = self.model_dump(mode="json", exclude_none=True)
        if self.clip_generation is not None:
            data["clip_generation"]["degraded"] = self.clip_generation.degraded
        return data


class Job(BaseModel):
    """Job model representing one video generation request."""

    id: UUID
    user_id: UUID
    status: JobStatus = JobStatus.QUEUED
    emotion: Emotion
    lyrics: Optional[str] = None
    song_url: str
    selfie_url: str
    result_url: Optional[str] = None
    assembly_manifest: Optional[AssemblyManifest] = None
    error: Optional[str] = None
    provider_refs: Dict[str, Any] = Field(default_factory=dict, description="JSONB provider diagnostics")
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def check_status_invariants(self) -> "Job":
        """Output fields must agree with the status."""
        has_manifest = self.assembly_manifest is not None
        if has_manifest != (self.status in MANIFEST_STATUSES):
            raise ValueError(
                f"assembly_manifest must be set exactly when status is one of "
                f"{sorted(s.value for s in MANIFEST_STATUSES)} (status={self.status.value})"
            )
        if (self.result_url is not None) != (self.status == JobStatus.DONE):
            raise ValueError(f"result_url must be set exactly when status is done (status={self.status.value})")
        if (self.error is not None) != (self.status == JobStatus.ERROR):
            raise ValueError(f"error must be set exactly when status is error (status={self.status.value})")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def refs(self) -> ProviderRefs:
        """Typed view of provider_refs."""
        return ProviderRefs.model_validate(self.provider_refs or {})

    @field_serializer("id", "user_id")
    def serialize_uuid(self, value: UUID) -> str:
        """Serialize UUID to string."""
        return str(value)

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format string."""
        return value.isoformat()
