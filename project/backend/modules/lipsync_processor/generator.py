"""
Sync lip-sync adapter.

Polling-style provider: submit() creates a generation from the selfie and the
song, await_result() polls it until COMPLETED or FAILED.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from shared.config import Settings
from shared.logging import get_logger
from shared.models.provider import OperationHandle, ProviderResult
from shared.polling import CancelProbe, poll_operation
from shared.retry import Sleep

from modules.lipsync_processor.config import (
    LIPSYNC_ASPECT_RATIO,
    LIPSYNC_OUTPUT_FORMAT,
    LIPSYNC_REQUEST_TIMEOUT_SECONDS,
    STATUS_COMPLETED,
    STATUS_FAILED,
)

logger = get_logger("lipsync_processor.generator")

PROVIDER_NAME = "sync"


def build_request_body(model: str, video_url: str, audio_url: str) -> Dict[str, Any]:
    """Build the generate request body."""
    return {
        "model": model,
        "input": [
            {"type": "video", "url": video_url},
            {"type": "audio", "url": audio_url},
        ],
        "options": {
            "output_format": LIPSYNC_OUTPUT_FORMAT,
            "aspect_ratio": LIPSYNC_ASPECT_RATIO,
        },
    }


def parse_generation(data: Dict[str, Any]) -> Optional[ProviderResult]:
    """
    Interpret a generation status payload.

    Returns:
        None while pending, otherwise a terminal ProviderResult
    """
    status = str(data.get("status") or "").upper()

    if status == STATUS_COMPLETED:
        output = data.get("output")
        output_url = data.get("output_url") or data.get("outputUrl")
        if not output_url and isinstance(output, list) and output and isinstance(output[0], dict):
            output_url = output[0].get("url")
        if output_url:
            return ProviderResult.success(PROVIDER_NAME, media_url=output_url)
        return ProviderResult.failure(PROVIDER_NAME, "Lip-sync completed without an output URL")

    if status in STATUS_FAILED:
        error = data.get("error") or status.lower()
        return ProviderResult.failure(PROVIDER_NAME, f"Lip-sync generation failed: {error}")

    return None


class SyncLipsyncClient:
    """Sync (sync.so) lip-sync adapter."""

    provider = PROVIDER_NAME

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient, sleep: Sleep = asyncio.sleep):
        self.api_key = settings.sync_api_key
        self.base_url = settings.sync_base_url.rstrip("/")
        self.model = settings.sync_model
        self.poll_interval = settings.poll_interval_seconds
        self.max_poll_attempts = settings.lipsync_max_poll_attempts
        self.http = http_client
        self.sleep = sleep

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key}

    async def submit(self, params: Dict[str, Any]) -> OperationHandle:
        """
        Create a lip-sync generation.

        Args:
            params: {"video_url": str, "audio_url": str}
        """
        if not self.available:
            logger.info("SYNC_API_KEY not set, lip-sync unavailable")
            return self._resolved(ProviderResult.unavailable(self.provider, "Sync API key not configured"))

        body = build_request_body(self.model, params["video_url"], params["audio_url"])
        logger.info("Submitting lip-sync generation", extra={"model": self.model})
        try:
            response = await self.http.post(
                f"{self.base_url}/generate",
                json=body,
                headers=self._headers(),
                timeout=LIPSYNC_REQUEST_TIMEOUT_SECONDS
            )
        except httpx.HTTPError as e:
            return self._resolved(ProviderResult.failure(self.provider, f"Sync request failed: {str(e)}", retryable=True))

        if response.status_code >= 400:
            logger.warning(
                "Sync API error",
                extra={"status_code": response.status_code, "body": response.text[:500]}
            )
            return self._resolved(ProviderResult.failure(
                self.provider,
                f"Sync API error {response.status_code}",
                retryable=response.status_code == 429 or response.status_code >= 500
            ))

        try:
            data = response.json()
        except ValueError:
            return self._resolved(ProviderResult.failure(self.provider, "Sync returned a malformed response"))

        generation_id = data.get("id")
        if not generation_id:
            return self._resolved(ProviderResult.failure(self.provider, "Sync response has no generation id"))

        logger.info("Lip-sync generation created", extra={"generation_id": generation_id})
        return OperationHandle(provider=self.provider, operation_id=str(generation_id))

    async def await_result(
        self,
        handle: OperationHandle,
        should_cancel: Optional[CancelProbe] = None
    ) -> ProviderResult:
        """Poll the generation until it completes, fails, or the attempt bound is reached."""
        if handle.is_resolved:
            return handle.result

        url = f"{self.base_url}/generate/{handle.operation_id}"

        async def check_status() -> Optional[ProviderResult]:
            response = await self.http.get(url, headers=self._headers(), timeout=LIPSYNC_REQUEST_TIMEOUT_SECONDS)
            response.raise_for_status()
            try:
                data = response.json()
            except ValueError:
                return ProviderResult.failure(self.provider, "Sync returned a malformed status")
            return parse_generation(data)

        result = await poll_operation(
            self.provider,
            check_status,
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
            should_cancel=should_cancel,
            sleep=self.sleep
        )
        if result.ok:
            logger.info("Lip-sync clip ready", extra={"generation_id": handle.operation_id})
        else:
            logger.warning("Lip-sync did not produce a clip", extra={"reason": result.reason})
        return result

    def _resolved(self, result: ProviderResult) -> OperationHandle:
        return OperationHandle(provider=self.provider, result=result)
