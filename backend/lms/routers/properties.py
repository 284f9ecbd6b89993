"""Properties router: records, approval workflow and AGO sync."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import get_settings
from lms.core.database import get_db
from lms.core.errors import Forbidden
from lms.core.security import get_current_user, AuthenticatedUser
from lms.models.enums import EntityStatus, EntityType, WorkflowAction
from lms.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    SyncResponse,
    SyncRetryResponse,
)
from lms.schemas.workflow import ActionResponse, ArchiveRequest, RejectRequest
from lms.services.ago_client import AgoClient, provide_ago_client
from lms.services.policy import can_perform
from lms.services.records import RecordService
from lms.services.sync import SyncService, list_retries
from lms.services.workflow import WorkflowService

router = APIRouter(prefix="/properties", tags=["properties"])


def require_sync_permission(current_user: AuthenticatedUser) -> None:
    if not can_perform(WorkflowAction.SYNC, EntityType.PROPERTY, current_user.role):
        raise Forbidden("Only administrators can sync properties to AGO")


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    data: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Create a property in DRAFT; the reference id is prefixed with the district code."""
    return await RecordService(db).create_property(data.model_dump(), current_user.db_user_id)


@router.get("", response_model=PropertyListResponse)
async def list_properties(
    status_filter: Optional[EntityStatus] = Query(None, alias="status"),
    district_code: Optional[str] = None,
    owner_customer_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).list_properties(
        status=status_filter,
        district_code=district_code,
        owner_customer_id=owner_customer_id,
        page=page,
        limit=limit,
    )


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).get_entity(EntityType.PROPERTY, property_id)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: UUID,
    data: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).update_entity(
        EntityType.PROPERTY,
        property_id,
        data.model_dump(exclude_unset=True),
        current_user.db_user_id,
    )


@router.post("/{property_id}/submit", response_model=ActionResponse)
async def submit_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    await WorkflowService(db).submit(EntityType.PROPERTY, property_id, current_user.db_user_id)
    return ActionResponse(message="Property submitted successfully")


@router.post("/{property_id}/approve", response_model=ActionResponse)
async def approve_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Approve a submitted property. AGO sync is queued for the next sweep."""
    await WorkflowService(db).approve(EntityType.PROPERTY, property_id, current_user.db_user_id)
    return ActionResponse(message="Property approved successfully")


@router.post("/{property_id}/reject", response_model=ActionResponse)
async def reject_property(
    property_id: UUID,
    data: RejectRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    await WorkflowService(db).reject(
        EntityType.PROPERTY, property_id, current_user.db_user_id, data.feedback
    )
    return ActionResponse(message="Property rejected successfully")


@router.post("/{property_id}/archive", response_model=ActionResponse)
async def archive_property(
    property_id: UUID,
    data: Optional[ArchiveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    unarchive = bool(data and data.unarchive)
    await WorkflowService(db).archive(
        EntityType.PROPERTY, property_id, current_user.db_user_id, unarchive=unarchive
    )
    verb = "unarchived" if unarchive else "archived"
    return ActionResponse(message=f"Property {verb} successfully")


@router.post("/{property_id}/sync", response_model=SyncResponse)
async def sync_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
    ago_client: AgoClient = Depends(provide_ago_client),
):
    """Push an approved property to AGO now.

    A failed push is recorded and scheduled for retry; the response then
    carries ``success: false`` and the error instead of an error status.
    """
    require_sync_permission(current_user)
    service = SyncService(db, ago_client, get_settings().sync_retry_delays_minutes)
    result = await service.attempt_sync(property_id, performed_by=current_user.db_user_id)

    if result.success:
        return SyncResponse(success=True, message="Property synced to AGO", global_id=result.global_id)
    return SyncResponse(success=False, message="Sync failed, retry scheduled", error=result.error)


@router.get("/{property_id}/sync-retries", response_model=List[SyncRetryResponse])
async def list_sync_retries(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    require_sync_permission(current_user)
    await RecordService(db).get_entity(EntityType.PROPERTY, property_id)
    return await list_retries(db, property_id)
