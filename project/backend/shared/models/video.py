"""
Assembly data models.

Defines AssemblyClip and AssemblyManifest, the declarative input of the assembler.
The JSON shape is shared with browser clients and must stay stable.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from .scene import SceneType

VERTICAL_ASPECT_RATIO = "9:16"


class AssemblyClip(BaseModel):
    """A resolved media reference for one planned scene."""

    url: str
    type: SceneType
    duration_sec: Optional[float] = Field(default=None, gt=0)


class AssemblyTarget(BaseModel):
    """Output format of the assembled video."""

    aspect_ratio: str = VERTICAL_ASPECT_RATIO
    duration_sec: float = Field(ge=0, description="Sum of clip durations")


class UploadTarget(BaseModel):
    """Where the final render is written."""

    bucket: str
    path: str


class AssemblyManifest(BaseModel):
    """Ordered clips, audio, and target format consumed by the assembler."""

    clips: List[AssemblyClip] = Field(min_length=1)
    audio_url: str
    target: AssemblyTarget
    upload_target: UploadTarget
