"""
Minimal push-based event stream.

Used for the backend error channel, discovery progress and account
activity. Handlers run synchronously inside `emit()`, in attach order.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")

_CLOSED = object()


class Subscription:
    """Handle for one attached handler. Closing it twice is harmless."""

    def __init__(self, stream: Stream, handler: Callable) -> None:
        self._stream = stream
        self._handler = handler
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream._detach(self._handler)


class Stream(Generic[T]):
    def __init__(self) -> None:
        self._handlers: list[Callable[[T], None]] = []
        self._dispose_hooks: list[Callable[[], None]] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def attach(self, handler: Callable[[T], None]) -> Subscription:
        """Attach a handler. On a disposed stream the handler is never called."""
        if not self._disposed:
            self._handlers.append(handler)
        return Subscription(self, handler)

    def _detach(self, handler: Callable[[T], None]) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def emit(self, value: T) -> None:
        if self._disposed:
            return
        # Handlers may detach themselves (or others) while being called
        for handler in list(self._handlers):
            try:
                handler(value)
            except Exception as e:
                logger.opt(exception=e).error(f"Stream handler {handler!r} failed: {e}")

    def on_dispose(self, hook: Callable[[], None]) -> None:
        """Run `hook` once when the stream is disposed (immediately if it already is)."""
        if self._disposed:
            hook()
            return
        self._dispose_hooks.append(hook)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._handlers.clear()
        hooks, self._dispose_hooks = self._dispose_hooks, []
        for hook in hooks:
            try:
                hook()
            except Exception as e:
                logger.opt(exception=e).error(f"Stream dispose hook failed: {e}")

    async def values(self) -> AsyncIterator[T]:
        """Iterate emitted values until the stream is disposed."""
        if self._disposed:
            return

        queue: asyncio.Queue = asyncio.Queue()
        subscription = self.attach(queue.put_nowait)

        def closed() -> None:
            queue.put_nowait(_CLOSED)

        self.on_dispose(closed)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            subscription.close()
            # Consumer left early (break or cancellation)
            if closed in self._dispose_hooks:
                self._dispose_hooks.remove(closed)
