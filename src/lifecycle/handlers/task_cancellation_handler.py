from __future__ import annotations

import asyncio
from typing import List, Optional

from lifecycle.shutdown_protocol import IShutdownHandler
from lifecycle.task_registry import TaskRegistry
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class TaskCancellationHandler(IShutdownHandler):
    """
    Shutdown handler for asyncio tasks.

    Cancels and awaits the given tasks, or every unfinished tracked task
    when none are given. The task running the shutdown is never cancelled.

    Priority: 40
    """

    def __init__(self, tasks: Optional[List[asyncio.Task]] = None):
        self.tasks = tasks

    @property
    def shutdown_priority(self) -> int:
        """Tasks are cancelled after persistence has drained."""
        return 40

    async def shutdown(self) -> None:
        current = asyncio.current_task()
        if self.tasks is None:
            tasks = TaskRegistry.instance().get_tasks_for_shutdown(exclude=[current] if current else None)
        else:
            tasks = [t for t in self.tasks if t is not current]

        pending = [t for t in tasks if not t.done()]
        if not pending:
            log.debug("No background tasks to cancel")
            return

        log.info(f"Cancelling {len(pending)} background task(s)...")
        for task in pending:
            task.cancel()
            log.debug(f"Cancelled task: {task.get_name()}")

        await asyncio.gather(*pending, return_exceptions=True)
        log.debug("All tasks cancelled")
