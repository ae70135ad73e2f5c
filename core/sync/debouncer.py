"""
Ingestion debouncer.

A copy or a tag editor save produces a burst of notifications for the same
file. The debouncer keeps one timestamp per path and forwards a path only
after it has been quiet for the settle window, so each burst is synced once.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .events import SettledEvent

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_WINDOW_S = 5.0


class IngestionDebouncer:
    """
    Coalesces per-path touches into settled events.

    The ledger and the settle timer belong to the event loop thread; call
    ``touch`` only from that thread.
    """

    def __init__(
        self,
        forward: Callable[[SettledEvent], None],
        window: float = DEFAULT_SETTLE_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        Initialize the debouncer.

        Args:
            forward: Called once per settled path
            window: Seconds a path must stay untouched before it is forwarded
            clock: Monotonic time source in seconds
            loop: Event loop for the settle timer; defaults to the running loop
        """
        if window <= 0:
            raise ValueError("Settle window must be positive")

        self.forward = forward
        self.window = window
        self.clock = clock
        self._loop = loop
        self._ledger: Dict[str, float] = {}
        self._timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def pending(self) -> List[str]:
        """Paths waiting to settle"""
        return list(self._ledger)

    @property
    def timer_scheduled(self) -> bool:
        return self._timer is not None

    def touch(self, path: Union[str, Path]) -> None:
        """Record activity on ``path`` and make sure a settle pass is coming"""
        if self._closed:
            logger.debug(f"Debouncer closed, ignoring touch of {path}")
            return

        self._ledger[str(path)] = self.clock()
        if self._timer is None:
            self._schedule()

    def settle(self) -> List[SettledEvent]:
        """
        Forward every path that has been quiet for the settle window.

        Returns:
            The events forwarded by this pass
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._closed:
            return []

        now = self.clock()
        quiet = [path for path, touched in self._ledger.items() if now - touched >= self.window]
        settled = [
            SettledEvent(file_path=Path(path), last_touched_at=self._ledger.pop(path), settled_at=now)
            for path in quiet
        ]

        for event in settled:
            try:
                self.forward(event)
            except Exception as e:
                logger.error(f"Failed to forward {event}: {e}")

        if self._ledger:
            self._schedule()

        if settled:
            logger.debug(f"Settled {len(settled)} paths, {len(self._ledger)} still pending")
        return settled

    def close(self) -> None:
        """Cancel the timer and discard pending paths"""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._ledger:
            logger.info(f"Discarding {len(self._ledger)} unsettled paths")
        self._ledger.clear()

    def _schedule(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(2 * self.window, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.settle()
