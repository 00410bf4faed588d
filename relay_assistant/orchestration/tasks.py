"""BackgroundTaskRegistry: detached work that outlives the webhook request.

Tasks are inserted on spawn and removed by their own done callback, so the
registry only ever holds work in flight. ``drain`` waits for all of it and
is called when the server shuts down.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Dict, Optional

from relay_assistant._logging import get_component_logger


class BackgroundTaskRegistry:
    def __init__(self, log: Optional[Any] = None):
        self._tasks: Dict[str, "asyncio.Task[Any]"] = {}
        self._counter = 0
        self.logger = get_component_logger("background_tasks", log)

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        self._counter += 1
        key = f"{name}#{self._counter}"
        task = asyncio.create_task(coro, name=key)
        self._tasks[key] = task
        task.add_done_callback(lambda done: self._on_done(key, done))
        self.logger.debug("task_spawned", task=key, in_flight=len(self._tasks))
        return task

    def _on_done(self, key: str, task: "asyncio.Task[Any]") -> None:
        self._tasks.pop(key, None)
        if task.cancelled():
            self.logger.warning("task_cancelled", task=key)
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("task_failed", task=key, error=str(exc), error_type=type(exc).__name__)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight tasks; cancel whatever is left after ``timeout``."""
        pending = list(self._tasks.values())
        if not pending:
            return
        self.logger.info("tasks_draining", count=len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self.logger.warning("tasks_cancelled_on_drain", count=len(still_running))

    def __len__(self) -> int:
        return len(self._tasks)
