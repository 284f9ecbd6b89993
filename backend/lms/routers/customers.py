"""Customers router: records and their approval workflow."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import get_current_user, AuthenticatedUser
from lms.models.enums import CustomerType, EntityStatus, EntityType
from lms.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListResponse,
)
from lms.schemas.workflow import ActionResponse, ArchiveRequest, RejectRequest
from lms.services.records import RecordService
from lms.services.workflow import WorkflowService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Create a customer in DRAFT with the next ``CUS-YYYY-NNNNNN`` reference."""
    return await RecordService(db).create_customer(data.model_dump(), current_user.db_user_id)


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    status_filter: Optional[EntityStatus] = Query(None, alias="status"),
    customer_type: Optional[CustomerType] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).list_customers(
        status=status_filter,
        customer_type=customer_type,
        search=search,
        page=page,
        limit=limit,
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).get_entity(EntityType.CUSTOMER, customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Edit a DRAFT or REJECTED customer (a rejected one goes back to DRAFT)."""
    return await RecordService(db).update_entity(
        EntityType.CUSTOMER,
        customer_id,
        data.model_dump(exclude_unset=True),
        current_user.db_user_id,
    )


@router.post("/{customer_id}/submit", response_model=ActionResponse)
async def submit_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    await WorkflowService(db).submit(EntityType.CUSTOMER, customer_id, current_user.db_user_id)
    return ActionResponse(message="Customer submitted successfully")


@router.post("/{customer_id}/approve", response_model=ActionResponse)
async def approve_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    await WorkflowService(db).approve(EntityType.CUSTOMER, customer_id, current_user.db_user_id)
    return ActionResponse(message="Customer approved successfully")


@router.post("/{customer_id}/reject", response_model=ActionResponse)
async def reject_customer(
    customer_id: UUID,
    data: RejectRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    await WorkflowService(db).reject(
        EntityType.CUSTOMER, customer_id, current_user.db_user_id, data.feedback
    )
    return ActionResponse(message="Customer rejected successfully")


@router.post("/{customer_id}/archive", response_model=ActionResponse)
async def archive_customer(
    customer_id: UUID,
    data: Optional[ArchiveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Archive, or with ``{"unarchive": true}`` restore, a customer."""
    unarchive = bool(data and data.unarchive)
    await WorkflowService(db).archive(
        EntityType.CUSTOMER, customer_id, current_user.db_user_id, unarchive=unarchive
    )
    verb = "unarchived" if unarchive else "archived"
    return ActionResponse(message=f"Customer {verb} successfully")
