"""
Assembly progress reporting.
"""
import inspect
from typing import Awaitable, Callable, Optional, Union

ProgressCallback = Callable[[float], Union[None, Awaitable[None]]]


class ProgressReporter:
    """
    Forwards progress to a callback, clamped to [0, 100] and never decreasing.

    The callback may be a plain function or a coroutine function.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.value = 0.0
        self._reported = False

    async def report(self, value: float) -> None:
        value = max(self.value, min(100.0, float(value)))
        if self._reported and value == self.value:
            return
        self.value = value
        self._reported = True
        if self.callback is None:
            return
        result = self.callback(value)
        if inspect.isawaitable(result):
            await result
