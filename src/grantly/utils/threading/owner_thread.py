"""Utilities for delivering callables on the thread that owns UI state."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class OwnerThreadDispatcher:
    """
    Posts work onto the owner thread's event loop.

    Without a registered loop, or when already on the owner thread, work runs
    directly on the calling thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._owner_thread_id: Optional[int] = None
        if loop is not None:
            self.set_owner_loop(loop)

    def set_owner_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Register the owner event loop and the calling thread as owner."""
        self._loop = loop
        self._owner_thread_id = threading.get_ident()

    def clear(self) -> None:
        self._loop = None
        self._owner_thread_id = None

    def is_owner_thread(self) -> bool:
        """Return True if the current thread is the registered owner thread."""
        return (
            self._owner_thread_id is not None
            and threading.get_ident() == self._owner_thread_id
        )

    def _should_run_inline(self) -> bool:
        return (
            self._loop is None
            or self._loop.is_closed()
            or not self._loop.is_running()
            or self.is_owner_thread()
        )

    def post(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Schedule a callable on the owner thread without waiting for it."""
        if self._should_run_inline():
            func(*args, **kwargs)
            return
        try:
            self._loop.call_soon_threadsafe(lambda: func(*args, **kwargs))
        except RuntimeError:
            func(*args, **kwargs)

    def call_later(self, delay: float, func: Callable[[], Any]) -> None:
        """
        Run a callable after ``delay`` seconds.

        Uses the owner loop's timer when a loop is running, otherwise a daemon
        timer thread. A non-positive delay runs immediately.
        """
        if delay <= 0:
            self.post(func)
            return
        if self._loop is not None and self._loop.is_running() and not self._loop.is_closed():
            try:
                self._loop.call_soon_threadsafe(self._loop.call_later, delay, func)
                return
            except RuntimeError:
                logger.debug("Owner loop closed, falling back to timer thread")
        timer = threading.Timer(delay, lambda: self.post(func))
        timer.daemon = True
        timer.start()

