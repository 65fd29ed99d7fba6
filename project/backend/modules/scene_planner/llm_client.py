"""
Storyboard LLM adapter.

Immediate-style provider: one OpenAI chat completion per submit(), bounded by
a timeout. Provider failures are returned as ProviderResult values.
"""

import asyncio
from typing import Any, Dict, Optional

from openai import AsyncOpenAI
from openai import APIError, RateLimitError, APITimeoutError

from shared.config import Settings
from shared.logging import get_logger
from shared.models.provider import OperationHandle, ProviderResult

logger = get_logger("scene_planner")

PROVIDER_NAME = "storyboard_llm"

SYSTEM_PROMPT = """You are a music video director. Create a storyboard with 3-4 scenes for a short-form vertical video.
Return a JSON object with a "scenes" array. Each scene has: type ("performer" for lip-sync shots of the singer or "background" for b-roll footage), prompt (visual description for AI video generation), duration_sec (2-4 seconds each).
Performer scenes show the performer singing. Background scenes are cinematic visuals matching the mood.
Total duration should be 10-15 seconds. Start and end with performer scenes, background scenes in between."""


def build_user_prompt(emotion: str, lyrics: Optional[str] = None) -> str:
    """Build the user message for a storyboard request."""
    prompt = f"Create a storyboard for a {emotion} music video."
    if lyrics and lyrics.strip():
        prompt += f' Lyrics: "{lyrics.strip()}"'
    return prompt


def extract_json(content: str) -> str:
    """Strip a markdown code fence around a JSON payload, if present."""
    content = content.strip()
    if "```json" in content:
        start_idx = content.find("```json") + 7
        end_idx = content.find("```", start_idx)
        if end_idx != -1:
            return content[start_idx:end_idx].strip()
    elif content.startswith("```"):
        start_idx = content.find("```") + 3
        end_idx = content.find("```", start_idx)
        if end_idx != -1:
            return content[start_idx:end_idx].strip()
    return content


class StoryboardLLMClient:
    """OpenAI chat-completions adapter for storyboard generation."""

    provider = PROVIDER_NAME

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.model = settings.storyboard_model
        self.timeout = settings.storyboard_timeout_seconds
        self.max_tokens = settings.storyboard_max_tokens
        self._client = client
        if self._client is None and settings.openai_api_key:
            # Retries are handled by with_retry, not the SDK
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=self.timeout,
                max_retries=0
            )

    @property
    def available(self) -> bool:
        return self._client is not None

    async def submit(self, params: Dict[str, Any]) -> OperationHandle:
        """
        Request a storyboard.

        Args:
            params: {"emotion": str, "lyrics": Optional[str]}

        Returns:
            Resolved OperationHandle carrying the ProviderResult
        """
        result = await self._complete(params["emotion"], params.get("lyrics"))
        return OperationHandle(provider=self.provider, result=result)

    async def await_result(self, handle: OperationHandle) -> ProviderResult:
        if handle.result is None:
            return ProviderResult.failure(self.provider, "Storyboard request was never submitted")
        return handle.result

    async def generate(self, emotion: str, lyrics: Optional[str] = None) -> ProviderResult:
        """submit() + await_result() in one call."""
        handle = await self.submit({"emotion": emotion, "lyrics": lyrics})
        return await self.await_result(handle)

    async def _complete(self, emotion: str, lyrics: Optional[str]) -> ProviderResult:
        if not self.available:
            logger.info("OPENAI_API_KEY not set, storyboard LLM unavailable")
            return ProviderResult.unavailable(self.provider, "OpenAI API key not configured")

        logger.info("Calling LLM for storyboard", extra={"model": self.model, "emotion": emotion})
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": build_user_prompt(emotion, lyrics)}
                    ],
                    response_format={"type": "json_object"},
                    max_tokens=self.max_tokens
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Storyboard LLM timed out after {self.timeout}s")
            return ProviderResult.failure(self.provider, f"LLM timed out after {self.timeout:.0f}s", retryable=True)
        except RateLimitError as e:
            logger.warning(f"Rate limit error: {str(e)}")
            return ProviderResult.failure(self.provider, f"Rate limit error: {str(e)}", retryable=True)
        except APITimeoutError as e:
            logger.warning(f"API timeout: {str(e)}")
            return ProviderResult.failure(self.provider, f"API timeout: {str(e)}", retryable=True)
        except APIError as e:
            status_code = getattr(e, "status_code", None)
            logger.warning(f"OpenAI API error: {str(e)}", extra={"status_code": status_code})
            return ProviderResult.failure(
                self.provider,
                f"OpenAI API error: {str(e)}",
                retryable=status_code is None or status_code >= 500
            )

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            return ProviderResult.failure(self.provider, "Empty response from LLM")

        usage = getattr(response, "usage", None)
        logger.info(
            "Storyboard generated",
            extra={
                "model": self.model,
                "input_tokens": getattr(usage, "prompt_tokens", None),
                "output_tokens": getattr(usage, "completion_tokens", None)
            }
        )
        return ProviderResult.success(self.provider, content=extract_json(content))
