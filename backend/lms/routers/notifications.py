"""Notifications router (the current user's inbox)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import get_current_user, AuthenticatedUser
from lms.models.enums import NotificationFilter
from lms.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse,
)
from lms.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    filter: NotificationFilter = NotificationFilter.ALL,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    recent: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Newest first. ``recent=true`` returns the latest five without pagination."""
    return await NotificationService(db).list(
        current_user.db_user_id, filter=filter, page=page, limit=limit, recent=recent
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    count = await NotificationService(db).unread_count(current_user.db_user_id)
    return UnreadCountResponse(unread_count=count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    updated = await NotificationService(db).mark_all_read(current_user.db_user_id)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await NotificationService(db).mark_read(notification_id, current_user.db_user_id)
