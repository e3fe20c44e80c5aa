"""Cancellable debounce timer built on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

__all__ = ["DebouncedCall"]

LOGGER = logging.getLogger(__name__)


class DebouncedCall:
    """Invoke ``callback`` once ``delay`` seconds pass without a new ``schedule()``."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._delay = max(0.0, float(delay))
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)start the timer, dropping any previously scheduled call."""

        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending call. Returns ``True`` when one was pending."""

        handle = self._handle
        self._handle = None
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception:
            LOGGER.exception("Debounced callback %r failed", self._callback)
