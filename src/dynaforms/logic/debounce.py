"""Trailing debounce on the running asyncio loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger("dynaforms.logic.debounce")


class DebounceTimer:
    """
    Trailing debounce timer.

    Every ``trigger()`` restarts the delay; the handler fires once
    ``delay_ms`` passes without another trigger. Without a running event
    loop the handler fires immediately, and the first such trigger logs a
    warning.
    """

    def __init__(self, delay_ms: int, handler: Callable[[], None], name: Optional[str] = None):
        self._delay = max(delay_ms, 0) / 1000
        self._handler = handler
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self._warned_no_loop = False
        self.name = name

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._cancelled:
            return
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if not self._warned_no_loop:
                self._warned_no_loop = True
                logger.warning("debounce_without_event_loop", extra={"timer": self.name})
            self._handler()
            return
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._cancelled:
            self._handler()

    def cancel(self) -> None:
        """Drops the pending call; later triggers are ignored."""
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def force(self) -> None:
        """Fires the pending call now."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._handler()
