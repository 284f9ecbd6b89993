"""Workflow action schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from lms.models.enums import EntityType
from lms.schemas.base import BaseSchema, Pagination


class RejectRequest(BaseSchema):
    # Length is checked by the workflow so the error reads the same everywhere
    feedback: Optional[str] = None


class ArchiveRequest(BaseSchema):
    unarchive: bool = False


class ActionResponse(BaseSchema):
    success: bool = True
    message: str


class ReviewQueueItem(BaseSchema):
    entity_type: EntityType
    id: UUID
    reference_id: str
    title: str
    submitted_at: Optional[datetime] = None
    submitted_by: UUID
    submitted_by_name: str
    days_pending: int


class ReviewQueueResponse(BaseSchema):
    data: list[ReviewQueueItem]
    pagination: Pagination
