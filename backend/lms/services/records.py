"""Create, edit and query customers, properties and tax assessments."""

import logging
import math
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.errors import Forbidden, Internal, InvalidTransition, NotFound, ValidationError
from lms.models.customer import Customer
from lms.models.enums import (
    ActivityAction, AuditAction, CustomerType, EntityStatus, EntityType, OccupancyType, WorkflowAction,
)
from lms.models.property import Property
from lms.models.tax import TaxAssessment
from lms.models.user import User
from lms.services.audit import generate_field_changes
from lms.services.job_runner import JobRunner
from lms.services.policy import CREATE_ROLES, can_perform
from lms.services.reference import (
    CUSTOMER_PREFIX, TAX_ASSESSMENT_PREFIX, generate_reference_id, property_prefix,
)
from lms.services.workflow import WORKFLOW_MODELS, WorkflowService, load_actor, workflow_model

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = frozenset({
    "customer_type", "display_name", "national_id", "phone", "email", "address", "notes",
})
PROPERTY_FIELDS = frozenset({
    "property_type", "owner_customer_id", "address", "latitude", "longitude", "land_size",
    "description",
})
EDITABLE_FIELDS = {
    EntityType.CUSTOMER: CUSTOMER_FIELDS,
    EntityType.PROPERTY: PROPERTY_FIELDS,
}
EDITABLE_STATUSES = (EntityStatus.DRAFT, EntityStatus.REJECTED)

REFERENCE_ID_ATTEMPTS = 3


def paginate(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def days_pending(submitted_at: Optional[datetime], now: datetime) -> int:
    """Whole days (rounded up) a record has waited for review."""
    if submitted_at is None:
        return 0
    return max(0, math.ceil((now - submitted_at).total_seconds() / 86400))


class RecordService:
    """Customer / property / tax assessment records outside of status transitions."""

    def __init__(self, db: AsyncSession, runner: Optional[JobRunner] = None):
        self.db = db
        self.workflow = WorkflowService(db, runner)
        self.runner = self.workflow.runner
        self.jobs = self.workflow.jobs

    # Create

    async def create_customer(self, data: dict[str, Any], actor_id: UUID) -> Customer:
        actor = await self._creator(actor_id)
        customer = Customer(
            **{k: v for k, v in data.items() if k in CUSTOMER_FIELDS and v is not None},
            status=EntityStatus.DRAFT,
            created_by=actor.id,
        )
        await self._insert_with_reference(customer, CUSTOMER_PREFIX)
        return await self._after_create(
            EntityType.CUSTOMER,
            customer,
            actor.id,
            {"reference_id": customer.reference_id, "customer_type": customer.customer_type.value},
        )

    async def create_property(self, data: dict[str, Any], actor_id: UUID) -> Property:
        actor = await self._creator(actor_id)
        district_code = (data.get("district_code") or "").strip()
        if not district_code:
            raise ValidationError("district_code is required")

        owner_id = data.get("owner_customer_id")
        if owner_id and not await self.db.get(Customer, owner_id):
            raise ValidationError("Owner customer not found")

        prop = Property(
            **{k: v for k, v in data.items() if k in PROPERTY_FIELDS and v is not None},
            district_code=property_prefix(district_code),
            status=EntityStatus.DRAFT,
            created_by=actor.id,
        )
        await self._insert_with_reference(prop, property_prefix(district_code))
        return await self._after_create(
            EntityType.PROPERTY,
            prop,
            actor.id,
            {"reference_id": prop.reference_id, "district_code": prop.district_code},
        )

    async def create_tax_assessment(self, data: dict[str, Any], actor_id: UUID) -> TaxAssessment:
        actor = await self._creator(actor_id)
        property_id = data["property_id"]
        if not await self.db.get(Property, property_id):
            raise NotFound("Property not found")

        existing = await self.db.scalar(
            select(TaxAssessment.id).where(
                TaxAssessment.property_id == property_id,
                TaxAssessment.tax_year == data["tax_year"],
            )
        )
        if existing:
            raise ValidationError(f"A tax assessment for {data['tax_year']} already exists for this property")

        assessment = TaxAssessment(
            property_id=property_id,
            tax_year=data["tax_year"],
            occupancy_type=data.get("occupancy_type") or OccupancyType.OWNER_OCCUPIED,
            assessed_amount=data["assessed_amount"],
            notes=data.get("notes"),
            created_by=actor.id,
        )
        await self._insert_with_reference(assessment, TAX_ASSESSMENT_PREFIX)
        return await self._after_create(
            EntityType.TAX_ASSESSMENT,
            assessment,
            actor.id,
            {"reference_id": assessment.reference_id, "tax_year": assessment.tax_year},
        )

    # Update

    async def update_entity(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        changes: dict[str, Any],
        actor_id: UUID,
    ):
        """Edit a DRAFT or REJECTED record. Editing a REJECTED record moves it back to DRAFT."""
        actor = await load_actor(self.db, actor_id)
        entity = await self.workflow.get_entity(entity_type, entity_id)
        label = entity_type.label

        if not can_perform(WorkflowAction.EDIT, entity_type, actor.role, actor.id, entity.created_by):
            raise Forbidden(f"Only the creator or an administrator can edit this {label.lower()}")
        if entity.status not in EDITABLE_STATUSES:
            raise InvalidTransition(f"Only DRAFT or REJECTED records can be edited ({label.lower()} is {entity.status.value})")

        unknown = set(changes) - EDITABLE_FIELDS[entity_type]
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if entity_type == EntityType.PROPERTY and changes.get("owner_customer_id"):
            if not await self.db.get(Customer, changes["owner_customer_id"]):
                raise ValidationError("Owner customer not found")

        new_values = dict(changes)
        if entity.status == EntityStatus.REJECTED:
            new_values["status"] = EntityStatus.DRAFT

        old_values = {field: getattr(entity, field) for field in new_values}
        entries = generate_field_changes(
            entity_type.audit_name, entity_id, old_values, new_values, actor.id, AuditAction.UPDATE
        )
        if not entries:
            return entity

        await self.workflow.compare_and_set(
            entity_type,
            entity_id,
            expected=entity.status,
            values=new_values,
            error=f"{label} was modified concurrently",
        )

        job_ids = [
            await self.jobs.enqueue_activity(
                entity_type, entity_id, ActivityAction.UPDATED, actor.id,
                {
                    "reference_id": entity.reference_id,
                    "changed_fields": [entry.field for entry in entries],
                },
            ),
            await self.jobs.enqueue_audit(entries),
        ]
        return await self.workflow.commit_and_run(entity_type, entity_id, job_ids, f"updated by {actor.id}")

    # Queries

    async def get_entity(self, entity_type: EntityType, entity_id: UUID):
        if entity_type == EntityType.TAX_ASSESSMENT:
            assessment = await self.db.get(TaxAssessment, entity_id)
            if not assessment:
                raise NotFound("Tax assessment not found")
            return assessment
        return await self.workflow.get_entity(entity_type, entity_id)

    async def list_customers(
        self,
        status: Optional[EntityStatus] = None,
        customer_type: Optional[CustomerType] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        conditions = []
        if status:
            conditions.append(Customer.status == status)
        if customer_type:
            conditions.append(Customer.customer_type == customer_type)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                Customer.display_name.ilike(pattern) | Customer.reference_id.ilike(pattern)
            )
        return await self._page(Customer, conditions, page, limit)

    async def list_properties(
        self,
        status: Optional[EntityStatus] = None,
        district_code: Optional[str] = None,
        owner_customer_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        conditions = []
        if status:
            conditions.append(Property.status == status)
        if district_code:
            conditions.append(Property.district_code == property_prefix(district_code))
        if owner_customer_id:
            conditions.append(Property.owner_customer_id == owner_customer_id)
        return await self._page(Property, conditions, page, limit)

    async def list_tax_assessments(
        self,
        property_id: Optional[UUID] = None,
        tax_year: Optional[int] = None,
        include_archived: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        conditions = []
        if property_id:
            conditions.append(TaxAssessment.property_id == property_id)
        if tax_year:
            conditions.append(TaxAssessment.tax_year == tax_year)
        if not include_archived:
            conditions.append(TaxAssessment.is_archived.is_(False))
        return await self._page(TaxAssessment, conditions, page, limit)

    async def review_queue(
        self,
        entity_type: Optional[EntityType] = None,
        page: int = 1,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """SUBMITTED customers and properties, longest waiting first."""
        now = now or datetime.utcnow()
        types = [entity_type] if entity_type else list(WORKFLOW_MODELS)

        items = []
        for kind in types:
            model = workflow_model(kind)
            result = await self.db.execute(
                select(model, User.full_name)
                .outerjoin(User, model.created_by == User.id)
                .where(model.status == EntityStatus.SUBMITTED)
            )
            for entity, submitter_name in result.all():
                items.append({
                    "entity_type": kind,
                    "id": entity.id,
                    "reference_id": entity.reference_id,
                    "title": entity.display_name if kind == EntityType.CUSTOMER else (entity.address or entity.reference_id),
                    "submitted_at": entity.submitted_at,
                    "submitted_by": entity.created_by,
                    "submitted_by_name": submitter_name or "Unknown User",
                    "days_pending": days_pending(entity.submitted_at, now),
                })

        items.sort(key=lambda item: item["submitted_at"] or now)
        start = (page - 1) * limit
        return {
            "data": items[start:start + limit],
            "pagination": paginate(page, limit, len(items)),
        }

    # Helpers

    async def _creator(self, actor_id: UUID) -> User:
        actor = await load_actor(self.db, actor_id)
        if actor.role not in CREATE_ROLES:
            raise Forbidden("Your role cannot create records")
        return actor

    async def _insert_with_reference(self, record, prefix: str) -> None:
        """Add ``record`` under the next reference id, retrying if a concurrent insert took it."""
        for _ in range(REFERENCE_ID_ATTEMPTS):
            record.reference_id = await generate_reference_id(self.db, type(record), prefix)
            self.db.add(record)
            try:
                await self.db.flush()
                return
            except IntegrityError:
                await self.db.rollback()
                logger.warning(f"[RECORDS] Reference id {record.reference_id} taken, retrying")
        raise Internal("Could not allocate a reference id")

    async def _after_create(
        self,
        entity_type: EntityType,
        record,
        actor_id: UUID,
        metadata: dict[str, Any],
    ):
        record_id = record.id
        fields = {
            column.key: getattr(record, column.key)
            for column in type(record).__table__.columns
        }
        job_ids = [
            await self.jobs.enqueue_activity(entity_type, record_id, ActivityAction.CREATED, actor_id, metadata),
            await self.jobs.enqueue_audit(
                generate_field_changes(
                    entity_type.audit_name, record_id, {}, fields, actor_id, AuditAction.CREATE
                )
            ),
        ]
        await self.db.commit()
        logger.info(f"[RECORDS] Created {entity_type.value} {metadata['reference_id']}")

        await self.runner.run_after_commit(job_ids)

        model = type(record)
        result = await self.db.execute(
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _page(self, model, conditions: list, page: int, limit: int) -> dict[str, Any]:
        total = await self.db.scalar(select(func.count(model.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(model)
            .where(*conditions)
            .order_by(model.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return {"data": list(result.scalars().all()), "pagination": paginate(page, limit, total)}
