import asyncio
import logging
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)


class BackgroundWriter:
    """Fire-and-forget persistence with a logging error channel.

    Submitted writes run as independent tasks; failures are logged as
    warnings and never reach the submitting request. ``flush`` waits for
    whatever is still pending, e.g. before shutdown.
    """

    def __init__(self) -> None:
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, label: str, write: Callable[[], Awaitable[object]]) -> asyncio.Task:
        task = asyncio.create_task(self._run(label, write))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, label: str, write: Callable[[], Awaitable[object]]) -> None:
        try:
            await write()
        except Exception:
            logger.warning("Background write %s failed", label, exc_info=True)

    async def flush(self, timeout: float = 5.0) -> None:
        if not self._pending:
            return
        pending = list(self._pending)
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.warning("%d background writes still pending after %.1fs", len(not_done), timeout)
        logger.debug("Flushed %d background writes", len(done))
