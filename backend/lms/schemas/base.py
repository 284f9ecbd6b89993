"""Base schema utilities."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from lms.models.enums import EntityStatus


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class TimestampMixin(BaseModel):
    """Mixin for created_at/updated_at timestamps."""

    created_at: datetime
    updated_at: Optional[datetime] = None


class IDMixin(BaseModel):
    """Mixin for UUID id field."""

    id: UUID


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class WorkflowFieldsMixin(BaseModel):
    """Approval workflow columns shared by customers and properties."""

    reference_id: str
    status: EntityStatus
    created_by: UUID
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    rejection_feedback: Optional[str] = None

