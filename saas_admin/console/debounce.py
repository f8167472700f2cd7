"""
Cancel-and-replace debouncer on the running event loop.
"""
import asyncio
from collections.abc import Callable
from typing import Any

from saas_admin.core import config


class Debouncer:
    """
    Delay `callback(value)` until `delay` seconds pass without a new trigger.

    Every trigger cancels the pending timer and starts a new one; only the
    last surviving timer fires. Must be used from within a running loop.
    """

    def __init__(self, callback: Callable[[Any], None], delay: float = config.SEARCH_DEBOUNCE_MS / 1000):
        self.callback = callback
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, value: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, value)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, value: Any) -> None:
        self._handle = None
        self.callback(value)
