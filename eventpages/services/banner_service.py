"""Change detection for the shared event banner and event data."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from eventpages.services.template_service import TemplateContext

logger = logging.getLogger(__name__)


class BannerWatcher:
    """Run a callback whenever the shared event context changes.

    Owners of the banner call ``notify_changed()`` after updating it. When
    ``poll`` is enabled the watcher also re-reads the context every
    ``interval`` seconds, for environments without such notifications.
    ``stop()`` must be called when the owning view is torn down.
    """

    def __init__(
        self,
        read_context: Callable[[], Awaitable[TemplateContext]],
        on_change: Callable[[TemplateContext], Awaitable[None]],
        *,
        interval: float = 0.5,
        poll: bool = True,
    ) -> None:
        self._read_context = read_context
        self._on_change = on_change
        self.interval = interval
        self.poll = poll
        self._last: TemplateContext | None = None
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Snapshot the current context and begin watching."""
        if self.running:
            return
        self._last = await self._read_context()
        self._task = asyncio.create_task(self._run(), name="banner-watcher")

    async def stop(self) -> None:
        """Cancel the watch loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def notify_changed(self) -> None:
        """Push notification from whatever owns the banner."""
        self._wakeup.set()

    async def check_now(self) -> bool:
        """Compare the context with the last snapshot; run the callback if it changed."""
        current = await self._read_context()
        if current == self._last:
            return False
        self._last = current
        logger.debug("Event context changed; reconciling open pages")
        await self._on_change(current)
        return True

    async def _run(self) -> None:
        while True:
            if self.poll:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval)
            else:
                await self._wakeup.wait()
            self._wakeup.clear()
            try:
                await self.check_now()
            except Exception:
                logger.exception("Event context refresh failed")
