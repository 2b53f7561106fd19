"""
Cancellation signal checked at remote call boundaries.

A token is cancelled either explicitly or once its deadline passes.
"""

import asyncio
import time
from typing import Optional


class CancellationToken:
    """Cooperative cancellation with an optional deadline."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds from now after which the token counts as cancelled
        """
        self._event = asyncio.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early on cancel.

        Returns:
            True if the token was cancelled during or before the sleep
        """
        if self.cancelled:
            return True
        timeout = seconds
        if self.remaining is not None:
            timeout = min(timeout, self.remaining)
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled
