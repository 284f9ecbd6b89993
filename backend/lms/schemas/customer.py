"""Customer schemas."""

from typing import Optional

from pydantic import EmailStr, Field

from lms.models.enums import CustomerType
from lms.schemas.base import BaseSchema, IDMixin, TimestampMixin, Pagination, WorkflowFieldsMixin


class CustomerCreate(BaseSchema):
    """Create a new customer (starts in DRAFT)."""

    customer_type: CustomerType
    display_name: str = Field(..., min_length=2, max_length=255)
    national_id: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerUpdate(BaseSchema):
    """Edit a DRAFT or REJECTED customer."""

    customer_type: Optional[CustomerType] = None
    display_name: Optional[str] = Field(None, min_length=2, max_length=255)
    national_id: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerResponse(BaseSchema, IDMixin, TimestampMixin, WorkflowFieldsMixin):
    """Customer response."""

    customer_type: CustomerType
    display_name: str
    national_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerListResponse(BaseSchema):
    data: list[CustomerResponse]
    pagination: Pagination
