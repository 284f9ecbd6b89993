"""Periodic sweep entry point (``lms-sweep``), meant to be run from cron.

Runs due outbox jobs and due AGO sync retries once, then exits.
"""

import asyncio
import logging
import sys

from lms.core.config import get_settings
from lms.core.database import async_session_factory, engine
from lms.services.sweep import run_sweep

logger = logging.getLogger(__name__)


async def sweep_once() -> dict:
    async with async_session_factory() as session:
        return await run_sweep(session)


async def _main() -> dict:
    try:
        return await sweep_once()
    finally:
        await engine.dispose()


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        summary = asyncio.run(_main())
    except Exception:
        logger.exception("[SWEEP] Sweep failed")
        return 1

    logger.info(f"[SWEEP] Finished: {summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
