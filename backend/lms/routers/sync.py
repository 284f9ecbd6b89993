"""Sweep trigger for cron / schedulers."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import require_admin, AuthenticatedUser
from lms.schemas.logs import SweepResponse
from lms.services.ago_client import AgoClient, provide_ago_client
from lms.services.sweep import run_sweep

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/sweep", response_model=SweepResponse)
async def sweep(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin),
    ago_client: AgoClient = Depends(provide_ago_client),
):
    """Run due outbox jobs and due AGO sync retries once."""
    return await run_sweep(db, ago_client=ago_client)
