"""Automation worker entry point.

Wiring only: logging, lifespan, signal handling. No business logic here
(SRP). See automation.core.lifespan for startup/shutdown.
"""

import asyncio
import signal

from automation.core.config import get_settings
from automation.core.lifespan import engine_lifespan
from automation.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def serve() -> None:
    """Run the engine (schedule ticks, event ingress, runner) until SIGINT/SIGTERM."""
    settings = get_settings()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with engine_lifespan(settings) as runtime:
        logger.info(
            "Worker ready: actions=%s, redis=%s",
            sorted(runtime.executor.supported_types),
            settings.redis_enabled,
        )
        await stop.wait()
        logger.info("Shutdown signal received")


def main() -> None:
    setup_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
