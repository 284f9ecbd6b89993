"""Property schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from lms.models.enums import AgoSyncStatus, PropertyType, SyncRetryStatus
from lms.schemas.base import BaseSchema, IDMixin, TimestampMixin, Pagination, WorkflowFieldsMixin


class PropertyCreate(BaseSchema):
    """Register a new property (starts in DRAFT).

    ``district_code`` prefixes the reference id, e.g. ``MOG-2025-000001``.
    """

    district_code: str = Field(..., min_length=2, max_length=20, pattern=r"^[A-Za-z0-9]+$")
    property_type: PropertyType = PropertyType.RESIDENTIAL
    owner_customer_id: Optional[UUID] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    land_size: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None


class PropertyUpdate(BaseSchema):
    """Edit a DRAFT or REJECTED property."""

    property_type: Optional[PropertyType] = None
    owner_customer_id: Optional[UUID] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    land_size: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None


class PropertyResponse(BaseSchema, IDMixin, TimestampMixin, WorkflowFieldsMixin):
    """Property response."""

    district_code: str
    property_type: PropertyType
    owner_customer_id: Optional[UUID] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    land_size: Optional[float] = None
    description: Optional[str] = None

    ago_sync_status: AgoSyncStatus
    ago_sync_error: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    global_id: Optional[str] = None


class PropertyListResponse(BaseSchema):
    data: list[PropertyResponse]
    pagination: Pagination


class SyncRetryResponse(BaseSchema, IDMixin):
    property_id: UUID
    attempt_number: int
    last_attempt_at: Optional[datetime] = None
    next_retry_at: datetime
    error_message: Optional[str] = None
    status: SyncRetryStatus
    created_at: datetime


class SyncResponse(BaseSchema):
    """Outcome of a manual sync; failures are scheduled for retry, not raised."""

    success: bool
    message: Optional[str] = None
    global_id: Optional[str] = None
    error: Optional[str] = None
