"""AsyncioExecutionRunner tests: isolation of runs and shutdown."""

import asyncio

from automation.infrastructure.services.execution_runner import AsyncioExecutionRunner


async def test_crashing_run_does_not_affect_others() -> None:
    finished: list[str] = []

    async def run(execution_id: str) -> None:
        if execution_id == "bad":
            raise RuntimeError("boom")
        await asyncio.sleep(0.01)
        finished.append(execution_id)

    runner = AsyncioExecutionRunner(run)
    for execution_id in ("a", "bad", "b"):
        runner.submit(execution_id)
    assert runner.in_flight == 3

    await runner.drain(timeout=1)

    assert sorted(finished) == ["a", "b"]
    assert runner.in_flight == 0


async def test_shutdown_cancels_runs_still_in_flight() -> None:
    cancelled = asyncio.Event()

    async def run(execution_id: str) -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    runner = AsyncioExecutionRunner(run)
    runner.submit("slow")
    await asyncio.sleep(0)

    await runner.shutdown(timeout=0.05)

    assert cancelled.is_set()
    assert runner.in_flight == 0
