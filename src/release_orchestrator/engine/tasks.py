"""
release_orchestrator.engine.tasks

Background task tracking for deploy runs.

Responsibilities:
- Keep one tracked asyncio task per running deploy.
- Refuse to start a deploy that already has a live task.
- Drain all tasks on application shutdown.
- Provide an interruptible sleep for polling loops.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from functools import partial
from typing import Any

from release_orchestrator.errors import ConflictError
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


async def sleep_or_stop(seconds: float, stop: asyncio.Event | None) -> bool:
    """
    Sleep up to `seconds`; return True if `stop` was set before (or while) sleeping.
    """

    if stop is None:
        await asyncio.sleep(seconds)
        return False
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True


class DeployTaskRegistry:
    def __init__(self) -> None:
        self._tasks: dict[int, asyncio.Task[Any]] = {}

    def is_running(self, deploy_id: int) -> bool:
        task = self._tasks.get(deploy_id)
        return task is not None and not task.done()

    def running_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def spawn(self, deploy_id: int, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        if self.is_running(deploy_id):
            coro.close()
            raise ConflictError(f"deploy {deploy_id} is already running")
        task = asyncio.create_task(coro, name=f"deploy-{deploy_id}")
        self._tasks[deploy_id] = task
        task.add_done_callback(partial(self._on_done, deploy_id))
        log.info("deploy_task_spawned", deploy_id=deploy_id)
        return task

    async def wait(self, deploy_id: int) -> None:
        task = self._tasks.get(deploy_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _on_done(self, deploy_id: int, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(deploy_id) is task:
            del self._tasks[deploy_id]
        if task.cancelled():
            log.warning("deploy_task_cancelled", deploy_id=deploy_id)
            return
        exc = task.exception()
        if exc is not None:
            log.error("deploy_task_crashed", deploy_id=deploy_id, error=str(exc), exc_info=exc)
