"""Asyncio execution runner (implements IExecutionRunner).

One task per admitted execution. Tasks share nothing but the engine's
store; a crashing run is logged and never affects other runs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class AsyncioExecutionRunner:
    """Runs engine executions as background asyncio tasks and tracks them for shutdown."""

    def __init__(self, run: Callable[[str], Awaitable[object]]) -> None:
        self._run = run
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, execution_id: str) -> None:
        """Schedule the run for execution_id on the running loop and return immediately."""
        task = asyncio.create_task(
            self._guarded(execution_id), name=f"workflow-execution-{execution_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, execution_id: str) -> None:
        try:
            await self._run(execution_id)
        except asyncio.CancelledError:
            logger.warning("Execution %s task cancelled", execution_id)
            raise
        except Exception:
            logger.exception("Execution %s task crashed", execution_id)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight executions to finish (up to timeout seconds)."""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d execution(s) still running after drain", len(pending))

    async def shutdown(self, timeout: float | None = 30.0) -> None:
        """Drain, then cancel whatever is left.

        A cancelled run stays 'running' in the store; it is never re-entered.
        """
        await self.drain(timeout)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
