"""Notification schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from lms.models.enums import EntityType
from lms.schemas.base import BaseSchema, IDMixin, Pagination


class NotificationResponse(BaseSchema, IDMixin):
    title: str
    message: str
    entity_type: EntityType
    entity_id: UUID
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(BaseSchema):
    data: list[NotificationResponse]
    unread_count: int
    pagination: Optional[Pagination] = None


class UnreadCountResponse(BaseSchema):
    unread_count: int


class MarkAllReadResponse(BaseSchema):
    success: bool = True
    updated: int
