"""
Storyboard data models.
"""

from enum import Enum
from pydantic import BaseModel, Field, field_validator

# Scene duration bounds in seconds
MIN_SCENE_DURATION = 2.0
MAX_SCENE_DURATION = 4.0


class SceneType(str, Enum):
    """Scene kinds: the lip-synced performer, or mood footage."""

    PERFORMER = "performer"
    BACKGROUND = "background"


# Labels the storyboard LLM may use for the same scene kinds
SCENE_TYPE_ALIASES = {
    "performer": SceneType.PERFORMER,
    "avatar": SceneType.PERFORMER,
    "lipsync": SceneType.PERFORMER,
    "background": SceneType.BACKGROUND,
    "broll": SceneType.BACKGROUND,
    "b-roll": SceneType.BACKGROUND,
}


class StoryboardScene(BaseModel):
    """One planned segment of the output video."""

    type: SceneType
    prompt: str = Field(min_length=1, description="Visual description for generation")
    duration_sec: float = Field(gt=0, description="Target duration in seconds")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        """Accept the aliases the LLM tends to emit."""
        if isinstance(v, str):
            key = v.strip().lower()
            if key in SCENE_TYPE_ALIASES:
                return SCENE_TYPE_ALIASES[key]
        return v

    @field_validator("duration_sec")
    @classmethod
    def clamp_duration(cls, v: float) -> float:
        """Keep scenes within the short-form bounds."""
        return max(MIN_SCENE_DURATION, min(MAX_SCENE_DURATION, float(v)))
