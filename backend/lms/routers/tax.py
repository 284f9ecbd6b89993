"""Tax assessments router."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.security import get_current_user, AuthenticatedUser
from lms.models.enums import EntityType
from lms.schemas.tax import TaxAssessmentCreate, TaxAssessmentResponse, TaxAssessmentListResponse
from lms.schemas.workflow import ActionResponse, ArchiveRequest
from lms.services.records import RecordService
from lms.services.workflow import WorkflowService

router = APIRouter(prefix="/tax-assessments", tags=["tax-assessments"])


@router.post("", response_model=TaxAssessmentResponse, status_code=status.HTTP_201_CREATED)
async def create_tax_assessment(
    data: TaxAssessmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Create a yearly assessment (one per property and year)."""
    return await RecordService(db).create_tax_assessment(data.model_dump(), current_user.db_user_id)


@router.get("", response_model=TaxAssessmentListResponse)
async def list_tax_assessments(
    property_id: Optional[UUID] = None,
    tax_year: Optional[int] = None,
    include_archived: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """List assessments; archived ones only with ``include_archived=true``."""
    return await RecordService(db).list_tax_assessments(
        property_id=property_id,
        tax_year=tax_year,
        include_archived=include_archived,
        page=page,
        limit=limit,
    )


@router.get("/{assessment_id}", response_model=TaxAssessmentResponse)
async def get_tax_assessment(
    assessment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    return await RecordService(db).get_entity(EntityType.TAX_ASSESSMENT, assessment_id)


@router.post("/{assessment_id}/archive", response_model=ActionResponse)
async def archive_tax_assessment(
    assessment_id: UUID,
    data: Optional[ArchiveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    unarchive = bool(data and data.unarchive)
    await WorkflowService(db).archive_tax_assessment(
        assessment_id, current_user.db_user_id, unarchive=unarchive
    )
    verb = "unarchived" if unarchive else "archived"
    return ActionResponse(message=f"Tax assessment {verb} successfully")
