"""Audit log router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import get_current_user, require_admin, AuthenticatedUser
from lms.models.enums import AuditAction
from lms.routers.params import parse_entity_type
from lms.schemas.logs import AuditLogItem, AuditLogListResponse
from lms.services.audit import AuditLogger

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("", response_model=AuditLogListResponse)
async def search_audit_logs(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    action: Optional[AuditAction] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin),
):
    """Search the audit trail across all records (administrators)."""
    rows, total = await AuditLogger(db).search(
        entity_type=parse_entity_type(entity_type).audit_name if entity_type else None,
        user_id=user_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return AuditLogListResponse(data=rows, total=total, limit=limit, offset=offset)


@router.get("/{entity_type}/{entity_id}", response_model=List[AuditLogItem])
async def get_entity_audit_logs(
    entity_type: str,
    entity_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Field-level change history of one record, newest first."""
    return await AuditLogger(db).list_for_entity(parse_entity_type(entity_type).audit_name, entity_id)
