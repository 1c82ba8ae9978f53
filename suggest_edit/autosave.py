"""
Suggest Edit Autosave - Debounced persistence of the open document.

Every edit to the title or the content restarts a trailing timer; when the
document has been left alone for the configured delay and differs from the
last saved version, the save callback runs in the background. Automatic
saves are silent, failures included (logged only). A manual save cancels
the pending timer and reports its outcome to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Tuple

logger = logging.getLogger(__name__)

# (title, content) -> awaitable; raising means the save failed
SaveCallback = Callable[[str, str], Awaitable[Any]]


class AutoSaver:
    """Trailing-timer saver for one document session."""

    def __init__(
        self,
        save: SaveCallback,
        delay_seconds: float = 5.0,
        title: str = "",
        content: str = "",
    ):
        self.save = save
        self.delay_seconds = delay_seconds
        self.saved: Tuple[str, str] = (title, content)
        self.saving = False
        self._pending: Optional[Tuple[str, str]] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def dirty(self) -> bool:
        return self._pending is not None

    def touch(self, title: str, content: str) -> None:
        """Register an edit; (re)arms the timer when there is something to save."""
        self._cancel_timer()
        if (title, content) == self.saved:
            self._pending = None
            return
        self._pending = (title, content)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, autosave not scheduled")
            return
        self._handle = loop.call_later(self.delay_seconds, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        if self._pending is None:
            return
        title, content = self._pending
        task = asyncio.get_running_loop().create_task(self._save(title, content, manual=False))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def save_now(self, title: str, content: str) -> bool:
        """Manual save. Returns False when the callback failed."""
        self._cancel_timer()
        return await self._save(title, content, manual=True)

    async def _save(self, title: str, content: str, manual: bool) -> bool:
        self.saving = True
        try:
            await self.save(title, content)
        except Exception as e:
            if manual:
                logger.error(f"Failed to save document: {e}")
            else:
                logger.warning(f"Autosave failed, will retry on the next edit: {e}")
            return False
        finally:
            self.saving = False

        self.saved = (title, content)
        if self._pending == (title, content):
            self._pending = None
        logger.debug(f"Document saved ({'manual' if manual else 'auto'}), {len(content)} chars")
        return True

    def cancel(self) -> None:
        """Drop a pending autosave."""
        self._cancel_timer()
        self._pending = None

    def reset(self, title: str = "", content: str = "") -> None:
        """Start over for another document; a pending autosave is dropped."""
        self._cancel_timer()
        self._pending = None
        self.saved = (title, content)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
