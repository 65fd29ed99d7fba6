"""
Storyboard planning.

Turns an emotion and optional lyrics into 3-4 StoryboardScene values through
the LLM adapter, falling back to the static per-emotion template.
"""

import asyncio
import json
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.errors import GenerationError
from shared.logging import get_logger
from shared.models.job import StoryboardRef
from shared.models.scene import SceneType, StoryboardScene
from shared.retry import Sleep, with_retry

from .llm_client import StoryboardLLMClient
from .templates import default_storyboard

logger = get_logger("scene_planner")

MIN_SCENES = 3
MAX_SCENES = 4
TARGET_TOTAL_DURATION = (10.0, 15.0)


def parse_storyboard(content: Any) -> List[StoryboardScene]:
    """
    Parse and validate LLM storyboard output.

    Accepts a JSON string or an already-decoded value: either a list of scenes
    or an object holding them under "scenes".

    Raises:
        GenerationError: If the content is not a valid storyboard
    """
    if isinstance(content, str):
        try:
            content = json.loads(content)
        except json.JSONDecodeError as e:
            raise GenerationError(f"Storyboard is not valid JSON: {str(e)}") from e

    raw_scenes = content.get("scenes") if isinstance(content, dict) else content
    if not isinstance(raw_scenes, list):
        raise GenerationError("Storyboard JSON has no scene list")

    if not MIN_SCENES <= len(raw_scenes) <= MAX_SCENES:
        raise GenerationError(f"Storyboard must have {MIN_SCENES}-{MAX_SCENES} scenes, got {len(raw_scenes)}")

    try:
        scenes = [StoryboardScene.model_validate(raw) for raw in raw_scenes]
    except PydanticValidationError as e:
        raise GenerationError(f"Invalid storyboard scene: {str(e)}") from e

    if scenes[0].type != SceneType.PERFORMER or scenes[-1].type != SceneType.PERFORMER:
        raise GenerationError("Storyboard must start and end with a performer scene")

    total = sum(scene.duration_sec for scene in scenes)
    low, high = TARGET_TOTAL_DURATION
    if not low <= total <= high:
        # Scene durations are already clamped; an off-target total is tolerated
        logger.warning("Storyboard total duration outside target", extra={"total_duration": total})

    return scenes


async def plan_storyboard(
    llm: StoryboardLLMClient,
    emotion: str,
    lyrics: Optional[str] = None,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    sleep: Sleep = asyncio.sleep
) -> StoryboardRef:
    """
    Plan the storyboard for a job.

    Never raises: every LLM outcome other than a valid storyboard falls back to
    the static template for the emotion.

    Args:
        llm: Storyboard LLM adapter
        emotion: Emotion label
        lyrics: Optional lyrics text
        max_attempts: Attempts for transient LLM failures
        base_delay: Backoff base delay in seconds
        sleep: Awaitable sleep function

    Returns:
        StoryboardRef with the scenes, their source, and the fallback reason
    """
    emotion = getattr(emotion, "value", emotion)
    try:
        result = await with_retry(
            lambda: llm.generate(emotion, lyrics),
            max_attempts=max_attempts,
            base_delay=base_delay,
            sleep=sleep,
            name="storyboard_llm"
        )
        if result.is_unavailable:
            return _fallback(emotion, result.reason, unavailable=True)
        if not result.ok:
            return _fallback(emotion, result.reason)

        scenes = parse_storyboard(result.content)
    except Exception as e:
        return _fallback(emotion, str(e))

    logger.info(
        "Storyboard planned by LLM",
        extra={"emotion": emotion, "scene_count": len(scenes), "total_duration": sum(s.duration_sec for s in scenes)}
    )
    return StoryboardRef(source="llm", scenes=scenes)


def _fallback(emotion: str, reason: Optional[str], unavailable: bool = False) -> StoryboardRef:
    if unavailable:
        logger.info("Storyboard LLM unavailable, using template", extra={"emotion": emotion, "reason": reason})
    else:
        logger.warning("Storyboard LLM failed, using template", extra={"emotion": emotion, "reason": reason})
    return StoryboardRef(source="template", scenes=default_storyboard(emotion), fallback_reason=reason)
