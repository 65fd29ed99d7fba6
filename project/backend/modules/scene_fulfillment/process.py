"""
Scene fulfillment.

Performer scenes share a single lip-sync generation per job; background
scenes each get a text-to-video generation. No provider failure aborts the
job: the selfie URL stands in for any scene that could not be generated.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from shared.errors import JobCancelledError
from shared.logging import get_logger
from shared.models.job import ClipGenerationSummary
from shared.models.provider import OperationHandle, ProviderResult
from shared.models.scene import SceneType, StoryboardScene
from shared.models.video import AssemblyClip, VERTICAL_ASPECT_RATIO
from shared.polling import CancelProbe
from shared.retry import Sleep, with_retry

logger = get_logger("scene_fulfillment")


class MediaProvider(Protocol):
    """Polling-style provider adapter."""

    provider: str

    async def submit(self, params: Dict[str, Any]) -> OperationHandle:
        ...

    async def await_result(self, handle: OperationHandle, should_cancel: Optional[CancelProbe] = None) -> ProviderResult:
        ...


@dataclass
class FulfillmentResult:
    """Ordered clips plus generation diagnostics."""

    clips: List[AssemblyClip]
    summary: ClipGenerationSummary


async def generate_media(
    adapter: MediaProvider,
    params: Dict[str, Any],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    should_cancel: Optional[CancelProbe] = None,
    sleep: Sleep = asyncio.sleep
) -> ProviderResult:
    """
    Submit with retry, then wait for the result.

    Any exception other than cancellation is converted to a failed result.

    Raises:
        JobCancelledError: If the job is cancelled while waiting
    """
    try:
        handle = await with_retry(
            lambda: adapter.submit(params),
            max_attempts=max_attempts,
            base_delay=base_delay,
            sleep=sleep,
            name=f"{adapter.provider}.submit"
        )
        return await adapter.await_result(handle, should_cancel=should_cancel)
    except JobCancelledError:
        raise
    except Exception as e:
        logger.error(
            f"{adapter.provider} generation raised: {str(e)}",
            extra={"provider": adapter.provider},
            exc_info=True
        )
        return ProviderResult.failure(adapter.provider, f"Unexpected error: {str(e)}")


async def fulfill_scenes(
    scenes: List[StoryboardScene],
    selfie_url: str,
    audio_url: str,
    lipsync: MediaProvider,
    video: MediaProvider,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    should_cancel: Optional[CancelProbe] = None,
    sleep: Sleep = asyncio.sleep
) -> FulfillmentResult:
    """
    Resolve every scene to an AssemblyClip, in planner order.

    Args:
        scenes: Planned scenes
        selfie_url: User selfie; lip-sync source and placeholder for failed scenes
        audio_url: User song; lip-sync audio
        lipsync: Lip-sync adapter (performer scenes)
        video: Text-to-video adapter (background scenes)
        max_attempts: Submission attempts for transient provider failures
        base_delay: Backoff base delay in seconds
        should_cancel: Optional cancellation probe
        sleep: Awaitable sleep function

    Returns:
        FulfillmentResult with exactly one clip per scene

    Raises:
        JobCancelledError: If the job is cancelled
    """
    clips: List[AssemblyClip] = []
    summary = ClipGenerationSummary()
    lipsync_attempted = False
    lipsync_url: Optional[str] = None

    for index, scene in enumerate(scenes, start=1):
        if should_cancel is not None and await should_cancel():
            raise JobCancelledError("Job cancelled")

        media_url: Optional[str] = None

        if scene.type == SceneType.PERFORMER:
            if not lipsync_attempted:
                lipsync_attempted = True
                result = await generate_media(
                    lipsync,
                    {"video_url": selfie_url, "audio_url": audio_url},
                    max_attempts=max_attempts,
                    base_delay=base_delay,
                    should_cancel=should_cancel,
                    sleep=sleep
                )
                if result.ok:
                    lipsync_url = result.media_url
                else:
                    _record_miss(summary, index, scene, result)
            media_url = lipsync_url
        else:
            result = await generate_media(
                video,
                {"prompt": scene.prompt, "duration_sec": scene.duration_sec, "aspect_ratio": VERTICAL_ASPECT_RATIO},
                max_attempts=max_attempts,
                base_delay=base_delay,
                should_cancel=should_cancel,
                sleep=sleep
            )
            if result.ok:
                media_url = result.media_url
            else:
                _record_miss(summary, index, scene, result)

        if media_url:
            summary.clips_generated += 1
        else:
            summary.placeholder_clips += 1

        clips.append(AssemblyClip(url=media_url or selfie_url, type=scene.type, duration_sec=scene.duration_sec))

    summary.has_lipsync = lipsync_url is not None

    logger.info(
        "Scenes fulfilled",
        extra={
            "clips_generated": summary.clips_generated,
            "placeholder_clips": summary.placeholder_clips,
            "has_lipsync": summary.has_lipsync
        }
    )
    return FulfillmentResult(clips=clips, summary=summary)


def _record_miss(summary: ClipGenerationSummary, index: int, scene: StoryboardScene, result: ProviderResult) -> None:
    verb = "skipped" if result.is_unavailable else "failed"
    summary.failures.append(f"scene {index} ({scene.type.value}) {verb}: {result.reason}")
    if result.is_unavailable:
        logger.info(
            f"Scene {index} {verb}, using selfie placeholder",
            extra={"scene_index": index, "provider": result.provider, "reason": result.reason}
        )
    else:
        logger.warning(
            f"Scene {index} {verb}, using selfie placeholder",
            extra={"scene_index": index, "provider": result.provider, "reason": result.reason}
        )
