"""
Cooperative cancellation for a single turn.

One token is created per turn and threaded through every suspension point:
the transport call, the permission prompt and any nested sub-agent. Tools
that are already running are never interrupted.
"""

import asyncio
from typing import Awaitable, TypeVar

from ..errors import Interrupted

T = TypeVar("T")


class CancellationToken:
    """Query-and-signal cancellation handle.

    `cancel()` must be called from the event loop thread (signal handlers
    registered with `loop.add_signal_handler` qualify).
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Signal cancellation. Returns False if already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        return True

    def raise_if_cancelled(self, message: str = "operation interrupted") -> None:
        if self._cancelled:
            raise Interrupted(message)

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, aborting it if the token fires first.

        Raises Interrupted when cancellation wins the race; the pending
        operation is cancelled and drained before returning.
        """
        if self._cancelled:
            # unscheduled coroutine
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise Interrupted()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._get_event().wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise Interrupted()
