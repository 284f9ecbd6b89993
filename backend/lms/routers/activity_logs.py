"""Activity log router."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import get_current_user, AuthenticatedUser
from lms.routers.params import parse_entity_type
from lms.schemas.logs import ActivityLogResponse
from lms.services.activity import ActivityLogger

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


@router.get("/{entity_type}/{entity_id}", response_model=ActivityLogResponse)
async def get_activity_logs(
    entity_type: str,
    entity_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Lifecycle history of a record, newest first."""
    return await ActivityLogger(db).list_for_entity(
        parse_entity_type(entity_type), entity_id, page=page, limit=limit
    )
