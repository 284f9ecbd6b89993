"""Activity and audit log schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from lms.models.enums import ActivityAction, AuditAction
from lms.schemas.base import BaseSchema, IDMixin, Pagination


class ActivityLogItem(BaseSchema, IDMixin):
    action: ActivityAction
    performed_by: Optional[UUID] = None
    performed_by_name: str
    timestamp: datetime
    metadata: Optional[dict[str, Any]] = None


class ActivityLogResponse(BaseSchema):
    data: list[ActivityLogItem]
    pagination: Pagination


class AuditLogItem(BaseSchema, IDMixin):
    entity_type: str
    entity_id: UUID
    action: AuditAction
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: UUID
    changed_by_name: str
    timestamp: datetime


class AuditLogListResponse(BaseSchema):
    data: list[AuditLogItem]
    total: int
    limit: int
    offset: int


class SweepResponse(BaseSchema):
    """Summary of one sweep run."""

    jobs: dict[str, int]
    retries: dict[str, int]
