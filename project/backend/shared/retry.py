"""
Retry logic with exponential backoff.

with_retry() wraps a fallible async operation; retry_with_backoff() is the
decorator form used for storage and database calls.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from shared.errors import RetryableError
from shared.logging import get_logger
from shared.models.provider import OperationHandle, ProviderResult

T = TypeVar("T")
logger = get_logger("retry")

Sleep = Callable[[float], Awaitable[Any]]


def _retryable_failure(result: Any) -> Optional[ProviderResult]:
    """The ProviderResult behind `result` if it is a retryable failure."""
    if isinstance(result, OperationHandle):
        result = result.result
    if isinstance(result, ProviderResult) and not result.ok and result.retryable:
        return result
    return None


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Delay before the attempt following `attempt` (1-based): base, 2x base, 4x base..."""
    return base_delay * (2 ** (attempt - 1))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 2.0,
    retryable_exceptions: Tuple[Type[BaseException], ...] = (RetryableError,),
    sleep: Sleep = asyncio.sleep,
    name: str = "operation"
) -> T:
    """
    Invoke an async operation with bounded exponential backoff.

    An attempt fails when the operation raises one of `retryable_exceptions` or
    returns a ProviderResult (or a resolved OperationHandle) that failed with
    `retryable=True`. Unavailable and permanently failed results are returned
    immediately; any other exception propagates immediately.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Maximum number of invocations
        base_delay: Delay in seconds after the first failure, doubled after each further failure
        retryable_exceptions: Exception types treated as transient
        sleep: Awaitable sleep function
        name: Operation name for logs

    Returns:
        The first successful (or non-retryable) result, or the last failed
        result once attempts are exhausted

    Raises:
        The last retryable exception once attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception = None
    last_result = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
        except retryable_exceptions as e:
            last_exception, last_result = e, None
            reason = str(e)
        else:
            failure = _retryable_failure(result)
            if failure is None:
                return result
            last_exception, last_result = None, result
            reason = failure.reason

        if attempt < max_attempts:
            delay = backoff_delay(base_delay, attempt)
            logger.warning(
                f"Retry attempt {attempt}/{max_attempts} for {name} after {delay}s delay",
                extra={"error": reason, "attempt": attempt}
            )
            await sleep(delay)
        else:
            logger.error(
                f"All {max_attempts} retry attempts failed for {name}",
                extra={"error": reason}
            )

    if last_result is not None:
        return last_result
    raise last_exception


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 2,
    retryable_exceptions: Tuple[Type[BaseException], ...] = (RetryableError,)
):
    """
    Decorator for retrying async functions with exponential backoff.

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=2)
        async def upload():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                base_delay=base_delay,
                retryable_exceptions=retryable_exceptions,
                name=func.__name__
            )
        return wrapper
    return decorator
