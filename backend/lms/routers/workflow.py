"""Review queue for approvers."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import require_reviewer, AuthenticatedUser
from lms.models.enums import EntityType
from lms.schemas.workflow import ReviewQueueResponse
from lms.services.records import RecordService

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.get("/review-queue", response_model=ReviewQueueResponse)
async def review_queue(
    entity_type: Optional[EntityType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_reviewer),
):
    """Submitted customers and properties, oldest submission first."""
    return await RecordService(db).review_queue(entity_type=entity_type, page=page, limit=limit)
