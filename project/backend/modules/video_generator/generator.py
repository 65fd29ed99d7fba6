"""
Veo text-to-video adapter.

Polling-style provider: submit() starts a predictLongRunning operation on
Vertex AI, await_result() polls the operation until it is done.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from shared.config import Settings
from shared.logging import get_logger
from shared.models.provider import OperationHandle, ProviderResult
from shared.models.video import VERTICAL_ASPECT_RATIO
from shared.polling import CancelProbe, poll_operation
from shared.retry import Sleep

from .config import (
    PROMPT_SUFFIX,
    VEO_REQUEST_TIMEOUT_SECONDS,
    operation_url,
    predict_long_running_url,
)
from .google_auth import GoogleTokenProvider

logger = get_logger("video_generator")

PROVIDER_NAME = "veo"


def build_request_body(prompt: str, duration_sec: float, aspect_ratio: str = VERTICAL_ASPECT_RATIO) -> Dict[str, Any]:
    """Build the predictLongRunning request body."""
    return {
        "instances": [{"prompt": f"{prompt}, {PROMPT_SUFFIX}"}],
        "parameters": {
            "aspectRatio": aspect_ratio,
            "durationSeconds": max(1, int(round(duration_sec))),
            "numberOfVideos": 1,
        },
    }


def parse_operation(data: Dict[str, Any]) -> Optional[ProviderResult]:
    """
    Interpret an operation status payload.

    Returns:
        None while the operation is pending, otherwise a terminal ProviderResult
    """
    if not data.get("done"):
        return None

    if data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        return ProviderResult.failure(PROVIDER_NAME, f"Veo operation failed: {message}")

    response = data.get("response") or {}
    predictions = response.get("predictions") or response.get("videos") or []
    first = predictions[0] if predictions and isinstance(predictions[0], dict) else {}

    video_uri = first.get("videoUri") or first.get("gcsUri")
    if video_uri:
        # The assembler fetches over HTTP; gs:// objects cannot be downloaded
        if not video_uri.startswith(("http://", "https://")):
            return ProviderResult.failure(PROVIDER_NAME, f"Veo returned a non-HTTP video URI: {video_uri}")
        return ProviderResult.success(PROVIDER_NAME, media_url=video_uri)
    if first.get("video") or first.get("bytesBase64Encoded"):
        return ProviderResult.failure(PROVIDER_NAME, "Veo returned inline video bytes instead of a URI")
    return ProviderResult.failure(PROVIDER_NAME, "Veo operation finished without a video")


class VeoClient:
    """Vertex AI Veo adapter."""

    provider = PROVIDER_NAME

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        token_provider: Optional[GoogleTokenProvider] = None,
        sleep: Sleep = asyncio.sleep
    ):
        self.project_id = settings.vertex_project_id
        self.location = settings.vertex_location
        self.model = settings.veo_model
        self.poll_interval = settings.poll_interval_seconds
        self.max_poll_attempts = settings.veo_max_poll_attempts
        self.http = http_client
        self.tokens = token_provider or GoogleTokenProvider(settings.service_account_info, http_client)
        self.sleep = sleep

    @property
    def available(self) -> bool:
        return self.tokens.configured and bool(self.project_id)

    async def submit(self, params: Dict[str, Any]) -> OperationHandle:
        """
        Start a background clip generation.

        Args:
            params: {"prompt": str, "duration_sec": float, "aspect_ratio": Optional[str]}

        Returns:
            OperationHandle with the operation name, or resolved with the outcome
        """
        if not self.available:
            reason = (
                "Google service account not configured" if not self.tokens.configured
                else "VERTEX_PROJECT_ID not configured"
            )
            logger.info(f"Veo unavailable: {reason}")
            return self._resolved(ProviderResult.unavailable(self.provider, reason))

        token = await self.tokens.get_token()
        if not token:
            return self._resolved(ProviderResult.failure(
                self.provider, "Could not obtain Google access token", retryable=True
            ))

        body = build_request_body(
            params["prompt"],
            params.get("duration_sec") or 4,
            params.get("aspect_ratio") or VERTICAL_ASPECT_RATIO
        )
        url = predict_long_running_url(self.project_id, self.location, self.model)

        logger.info("Submitting Veo generation", extra={"prompt": params["prompt"][:200], "model": self.model})
        try:
            response = await self.http.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
                timeout=VEO_REQUEST_TIMEOUT_SECONDS
            )
        except httpx.HTTPError as e:
            return self._resolved(ProviderResult.failure(self.provider, f"Veo request failed: {str(e)}", retryable=True))

        if response.status_code >= 400:
            logger.warning(
                "Veo API error",
                extra={"status_code": response.status_code, "body": response.text[:500]}
            )
            return self._resolved(ProviderResult.failure(
                self.provider,
                f"Veo API error {response.status_code}",
                retryable=response.status_code == 429 or response.status_code >= 500
            ))

        try:
            data = response.json()
        except ValueError:
            return self._resolved(ProviderResult.failure(self.provider, "Veo returned a malformed response"))

        if data.get("name"):
            return OperationHandle(provider=self.provider, operation_id=data["name"])

        result = parse_operation({**data, "done": True})
        return self._resolved(result)

    async def await_result(
        self,
        handle: OperationHandle,
        should_cancel: Optional[CancelProbe] = None
    ) -> ProviderResult:
        """Poll the operation until done, failed, or the attempt bound is reached."""
        if handle.is_resolved:
            return handle.result

        url = operation_url(self.location, handle.operation_id)

        async def check_status() -> Optional[ProviderResult]:
            token = await self.tokens.get_token()
            if not token:
                return None
            response = await self.http.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=VEO_REQUEST_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            try:
                data = response.json()
            except ValueError:
                return ProviderResult.failure(self.provider, "Veo returned a malformed operation status")
            return parse_operation(data)

        result = await poll_operation(
            self.provider,
            check_status,
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
            should_cancel=should_cancel,
            sleep=self.sleep
        )
        if result.ok:
            logger.info("Veo clip ready", extra={"operation": handle.operation_id})
        return result

    def _resolved(self, result: ProviderResult) -> OperationHandle:
        return OperationHandle(provider=self.provider, result=result)
