"""One run of the periodic trigger: outbox jobs first, then due AGO retries."""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import Settings, get_settings
from lms.services.ago_client import AgoClient
from lms.services.job_runner import JobRunner

logger = logging.getLogger(__name__)


async def run_sweep(
    db: AsyncSession,
    ago_client: Optional[AgoClient] = None,
    settings: Optional[Settings] = None,
) -> dict[str, Any]:
    settings = settings or get_settings()
    runner = JobRunner(db, ago_client=ago_client, settings=settings)

    jobs = await runner.run_pending(limit=settings.sweep_batch_size)
    retries = await runner.sync_service().sweep_due_retries(limit=settings.sweep_batch_size)

    logger.info(f"[SWEEP] jobs={jobs} retries={retries}")
    return {"jobs": jobs, "retries": retries}
