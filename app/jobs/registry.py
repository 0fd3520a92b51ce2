"""
app/jobs/registry.py

Purpose: Background job ownership

- One asyncio task per conversation id
- Starting a job cancels the previous one for the same conversation
- Cancellation on new image and on shutdown
"""

import asyncio
import contextvars
from typing import Coroutine, Any, Dict, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)


class JobRegistry:
    """Tracks in-flight polling jobs keyed by conversation id."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self, conversation_id: str, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """
        Schedules a job for the conversation, cancelling any job it already has.
        """
        self.cancel(conversation_id)

        # Fresh context so the job does not inherit the request's LogContext
        task = contextvars.Context().run(
            asyncio.create_task, coro, name=f"{name}:{conversation_id}"
        )
        self._tasks[conversation_id] = task
        task.add_done_callback(lambda t: self._on_done(conversation_id, t))
        logger.info(f"Started {name} job", extra={"conversation_id": conversation_id})
        return task

    def cancel(self, conversation_id: str) -> bool:
        """
        Cancels the conversation's in-flight job, if any.

        Returns:
            True if a running job was cancelled
        """
        task = self._tasks.pop(conversation_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(
            f"Cancelled stale job {task.get_name()}",
            extra={"conversation_id": conversation_id}
        )
        return True

    def get(self, conversation_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(conversation_id)

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def _on_done(self, conversation_id: str, task: asyncio.Task):
        if self._tasks.get(conversation_id) is task:
            del self._tasks[conversation_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Job {task.get_name()} crashed: {exc}",
                exc_info=exc,
                extra={"conversation_id": conversation_id}
            )

    async def shutdown(self):
        """Cancels every job and waits for them to unwind."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} background jobs")
        self._tasks.clear()
