"""Cooperative cancellation for shell invocations."""

import asyncio
from typing import Callable, List

from ..utils.logging import logger


class CancellationToken:
    """One-shot cancellation trigger passed through every suspend point.

    Listeners are plain callables invoked on the event loop when the token
    fires. Register them for the lifetime of the work they guard and remove
    them afterwards. A listener added after cancellation runs immediately.
    """

    def __init__(self):
        self._cancelled = False
        self._listeners: List[Callable[[], None]] = []
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Fire the token. Subsequent calls do nothing."""
        if self._cancelled:
            return
        self._cancelled = True
        self._event.set()
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Cancellation listener failed: {e}")

    def add_listener(self, listener: Callable[[], None]) -> None:
        if self._cancelled:
            listener()
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def wait(self) -> None:
        """Suspend until the token fires."""
        await self._event.wait()
