"""Tax assessment schemas."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from lms.models.enums import OccupancyType
from lms.schemas.base import BaseSchema, IDMixin, TimestampMixin, Pagination


class TaxAssessmentCreate(BaseSchema):
    property_id: UUID
    tax_year: int = Field(..., ge=1900, le=2100)
    occupancy_type: OccupancyType = OccupancyType.OWNER_OCCUPIED
    assessed_amount: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)
    notes: Optional[str] = None


class TaxAssessmentResponse(BaseSchema, IDMixin, TimestampMixin):
    reference_id: str
    property_id: UUID
    tax_year: int
    occupancy_type: OccupancyType
    assessed_amount: Decimal
    notes: Optional[str] = None
    is_archived: bool
    created_by: UUID


class TaxAssessmentListResponse(BaseSchema):
    data: list[TaxAssessmentResponse]
    pagination: Pagination
