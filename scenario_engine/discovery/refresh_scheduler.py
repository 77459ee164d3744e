"""Debounced refresh scheduling and cancellation for index scans."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.5


class CancellationToken:
    """Cooperative cancellation flag checked between files."""

    def __init__(self):
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class RefreshScheduler:
    """Coalesces bursts of refresh requests into one re-scan.

    ``schedule()`` (re)starts a debounce timer; when it fires the refresh
    coroutine runs as a single task. ``flush()`` skips the wait. While a
    refresh is in flight every caller shares that task, so at most one
    re-scan runs at a time.
    """

    def __init__(self, refresh: Callable[[], Awaitable[None]], debounce: float = DEFAULT_DEBOUNCE):
        """Initialize refresh scheduler.

        Args:
            refresh: Coroutine function performing the re-scan.
            debounce: Quiet period in seconds before a scheduled refresh runs.
        """
        self.refresh = refresh
        self.debounce = debounce
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._pending_since: Optional[float] = None
        self._rerun = False

    @property
    def is_pending(self) -> bool:
        """Whether a debounced refresh is waiting to fire."""
        return self._timer is not None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def elapsed(self) -> float:
        """Seconds since the first request of the current burst."""
        if self._pending_since is None:
            return 0.0
        return time.monotonic() - self._pending_since

    def schedule(self) -> None:
        """Request a refresh after the debounce window.

        Without a running event loop the request is only remembered; the
        next ``flush()`` performs it.
        """
        if self._pending_since is None:
            self._pending_since = time.monotonic()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._rerun = True
            return

        if self.is_running:
            # Refresh again once the in-flight scan finishes
            self._rerun = True
            return

        self._cancel_timer()
        self._timer = loop.call_later(self.debounce, self._fire)

    def cancel(self) -> None:
        """Drop a pending (not yet started) refresh."""
        self._cancel_timer()
        self._rerun = False
        self._pending_since = None

    async def flush(self) -> None:
        """Run a refresh now, or await the one already in flight.

        Requests made while a refresh runs are served before returning,
        so the last completed refresh started after every earlier request.
        """
        self._cancel_timer()
        if self.is_running:
            await self._task
            if not self._has_rerun():
                return
        while True:
            self._cancel_timer()
            self._start()
            await self._task
            if not self._has_rerun():
                return

    async def wait(self) -> None:
        """Await the in-flight refresh, if any."""
        if self.is_running:
            await self._task

    def _has_rerun(self) -> bool:
        # _run turns a rerun request into a timer once the scan finishes
        return self._rerun or self._timer is not None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if not self.is_running:
            self._start()

    def _start(self) -> None:
        self._rerun = False
        self._pending_since = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self.refresh()
        except Exception:
            logger.exception("Scheduled refresh failed")
        if self._rerun:
            self._rerun = False
            self._timer = asyncio.get_running_loop().call_later(self.debounce, self._fire)
