"""
Bounded polling for long-running provider operations.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx

from shared.errors import JobCancelledError
from shared.logging import get_logger
from shared.models.provider import ProviderResult

logger = get_logger("polling")

# Returns a terminal ProviderResult, or None while the operation is still pending
StatusCheck = Callable[[], Awaitable[Optional[ProviderResult]]]
CancelProbe = Callable[[], Awaitable[bool]]


def is_transient_status(status_code: int) -> bool:
    """Rate limiting and server errors are worth polling through; other errors are final."""
    return status_code == 429 or status_code >= 500


async def poll_operation(
    provider: str,
    check_status: StatusCheck,
    interval: float,
    max_attempts: int,
    should_cancel: Optional[CancelProbe] = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep
) -> ProviderResult:
    """
    Poll an operation until it reaches a terminal status or attempts run out.

    Each attempt waits `interval` seconds, then checks the status. A transport
    error, 429 or 5xx on a single status check counts as a pending attempt;
    any other HTTP error status ends polling with a permanent failure. Exhaustion is
    reported as a non-retryable failure so the caller falls back instead of
    resubmitting a job that may still be running remotely.

    Args:
        provider: Provider name for results and logs
        check_status: Status check returning a terminal result or None
        interval: Seconds between checks
        max_attempts: Maximum number of status checks
        should_cancel: Optional probe consulted before every wait
        sleep: Awaitable sleep function

    Returns:
        Terminal ProviderResult

    Raises:
        JobCancelledError: If the cancel probe reports cancellation
    """
    for attempt in range(1, max_attempts + 1):
        if should_cancel is not None and await should_cancel():
            logger.info(f"{provider} polling cancelled", extra={"provider": provider, "attempt": attempt})
            raise JobCancelledError(f"{provider} operation cancelled")

        await sleep(interval)

        try:
            result = await check_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if not is_transient_status(status_code):
                logger.warning(
                    f"{provider} status check rejected with HTTP {status_code}",
                    extra={"provider": provider, "attempt": attempt, "status_code": status_code}
                )
                return ProviderResult.failure(provider, f"{provider} status check failed: HTTP {status_code}")
            logger.warning(
                f"{provider} status check returned HTTP {status_code}, will poll again",
                extra={"provider": provider, "attempt": attempt, "status_code": status_code}
            )
            continue
        except httpx.HTTPError as e:
            logger.warning(
                f"{provider} status check failed, will poll again",
                extra={"provider": provider, "attempt": attempt, "error": str(e)}
            )
            continue

        if result is not None:
            return result

        logger.debug(
            f"{provider} operation pending",
            extra={"provider": provider, "attempt": attempt, "max_attempts": max_attempts}
        )

    return ProviderResult.failure(
        provider,
        f"{provider} operation did not finish after {max_attempts} status checks "
        f"({max_attempts * interval:.0f}s)"
    )
