"""
Approval workflow engine for customers and properties.

    DRAFT -> SUBMITTED -> APPROVED | REJECTED
    REJECTED -> DRAFT                 (on edit, see RecordService)
    APPROVED <-> ARCHIVED
    DRAFT <-> ARCHIVED                (administrators only)

Every transition is a single conditional UPDATE on the current status. The
activity, audit and notification side effects are enqueued in the jobs outbox
inside the same transaction and run after commit; a failing side effect
never fails the transition.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.errors import (
    AlreadyInState, Forbidden, InvalidTransition, NotFound, NotInState, Unauthorized, ValidationError,
)
from lms.models.customer import Customer
from lms.models.enums import (
    ActivityAction, AgoSyncStatus, AuditAction, EntityStatus, EntityType, UserRole, WorkflowAction,
)
from lms.models.property import Property
from lms.models.tax import TaxAssessment
from lms.models.user import User
from lms.services.audit import AuditEntry, generate_field_changes, status_change
from lms.services.job_runner import JobRunner
from lms.services.policy import can_archive_draft, can_perform, unarchive_target

logger = logging.getLogger(__name__)

WorkflowEntity = Union[Customer, Property]

WORKFLOW_MODELS = {
    EntityType.CUSTOMER: Customer,
    EntityType.PROPERTY: Property,
}

ENTITY_PATHS = {
    EntityType.CUSTOMER: "customers",
    EntityType.PROPERTY: "properties",
    EntityType.TAX_ASSESSMENT: "tax-assessments",
}

MIN_FEEDBACK_LENGTH = 10

REVIEWER_ROLES = (UserRole.APPROVER, UserRole.ADMINISTRATOR)


def entity_link(entity_type: EntityType, entity_id: UUID) -> str:
    return f"/{ENTITY_PATHS[entity_type]}/{entity_id}"


async def load_actor(db: AsyncSession, actor_id: Optional[UUID]) -> User:
    """The acting user; inactive or unknown users are rejected."""
    actor = await db.get(User, actor_id) if actor_id else None
    if not actor or not actor.is_active:
        raise Unauthorized("User profile not found or inactive")
    return actor


def workflow_model(entity_type: EntityType):
    model = WORKFLOW_MODELS.get(entity_type)
    if model is None:
        raise ValidationError(f"{entity_type.label} does not go through the approval workflow")
    return model


class WorkflowService:
    """Status transitions of customers, properties and tax assessments."""

    def __init__(self, db: AsyncSession, runner: Optional[JobRunner] = None):
        self.db = db
        self.runner = runner or JobRunner(db)
        self.jobs = self.runner.jobs

    async def submit(self, entity_type: EntityType, entity_id: UUID, actor_id: UUID) -> WorkflowEntity:
        """DRAFT -> SUBMITTED. Creator or administrator only."""
        actor = await load_actor(self.db, actor_id)
        entity = await self.get_entity(entity_type, entity_id)
        label = entity_type.label

        if not can_perform(WorkflowAction.SUBMIT, entity_type, actor.role, actor.id, entity.created_by):
            raise Forbidden(f"Only the creator or an administrator can submit this {label.lower()}")
        if entity.status != EntityStatus.DRAFT:
            raise InvalidTransition(f"{label} must be in DRAFT status to submit")

        now = datetime.utcnow()
        await self.compare_and_set(
            entity_type,
            entity_id,
            expected=EntityStatus.DRAFT,
            values={"status": EntityStatus.SUBMITTED, "submitted_at": now, "rejection_feedback": None},
            error=f"{label} must be in DRAFT status to submit",
        )

        metadata: dict[str, Any] = {"reference_id": entity.reference_id}
        if isinstance(entity, Customer):
            metadata["customer_type"] = entity.customer_type.value

        job_ids = [
            await self.jobs.enqueue_activity(entity_type, entity_id, ActivityAction.SUBMITTED, actor.id, metadata),
            await self.jobs.enqueue_audit(
                self._changes(
                    entity_type, entity, actor.id, AuditAction.SUBMIT,
                    {"status": EntityStatus.SUBMITTED, "rejection_feedback": None},
                )
            ),
            await self.jobs.enqueue_notify_roles(
                REVIEWER_ROLES,
                title=f"New {label} Submitted",
                message=f"{label} {entity.reference_id} submitted by {actor.full_name}",
                entity_type=entity_type,
                entity_id=entity_id,
                link=entity_link(entity_type, entity_id),
            ),
        ]

        return await self.commit_and_run(entity_type, entity_id, job_ids, f"submitted by {actor.id}")

    async def approve(self, entity_type: EntityType, entity_id: UUID, actor_id: UUID) -> WorkflowEntity:
        """SUBMITTED -> APPROVED. Approved properties are queued for AGO sync."""
        actor = await load_actor(self.db, actor_id)
        entity = await self.get_entity(entity_type, entity_id)
        label = entity_type.label

        if not can_perform(WorkflowAction.APPROVE, entity_type, actor.role):
            raise Forbidden(f"Only approvers can approve a {label.lower()}")
        if entity.status != EntityStatus.SUBMITTED:
            raise InvalidTransition(f"{label} must be in SUBMITTED status to approve")

        now = datetime.utcnow()
        values: dict[str, Any] = {
            "status": EntityStatus.APPROVED,
            "approved_by": actor.id,
            "approved_at": now,
        }
        if entity_type == EntityType.PROPERTY:
            values["ago_sync_status"] = AgoSyncStatus.PENDING
            values["ago_sync_error"] = None

        await self.compare_and_set(
            entity_type,
            entity_id,
            expected=EntityStatus.SUBMITTED,
            values=values,
            error=f"{label} must be in SUBMITTED status to approve",
        )

        job_ids = [
            await self.jobs.enqueue_activity(
                entity_type, entity_id, ActivityAction.APPROVED, actor.id,
                {"reference_id": entity.reference_id, "approver_name": actor.full_name},
            ),
            await self.jobs.enqueue_audit(
                self._changes(
                    entity_type, entity, actor.id, AuditAction.APPROVE,
                    {"status": EntityStatus.APPROVED, "approved_by": actor.id},
                )
            ),
            await self.jobs.enqueue_notify(
                [entity.created_by],
                title=f"{label} Approved",
                message=f"Your {label.lower()} {entity.reference_id} was approved by {actor.full_name}",
                entity_type=entity_type,
                entity_id=entity_id,
                link=entity_link(entity_type, entity_id),
            ),
        ]
        if entity_type == EntityType.PROPERTY:
            # Picked up by the sweep, never run inline
            await self.jobs.enqueue_ago_sync(entity_id, now)

        return await self.commit_and_run(entity_type, entity_id, job_ids, f"approved by {actor.id}")

    async def reject(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        actor_id: UUID,
        feedback: Optional[str],
    ) -> WorkflowEntity:
        """SUBMITTED -> REJECTED with reviewer feedback for the creator."""
        feedback = (feedback or "").strip()
        if len(feedback) < MIN_FEEDBACK_LENGTH:
            raise ValidationError(
                f"Rejection feedback is required (at least {MIN_FEEDBACK_LENGTH} characters)"
            )

        actor = await load_actor(self.db, actor_id)
        entity = await self.get_entity(entity_type, entity_id)
        label = entity_type.label

        if not can_perform(WorkflowAction.REJECT, entity_type, actor.role):
            raise Forbidden(f"Only approvers can reject a {label.lower()}")
        if entity.status != EntityStatus.SUBMITTED:
            raise InvalidTransition(f"{label} must be in SUBMITTED status to reject")

        await self.compare_and_set(
            entity_type,
            entity_id,
            expected=EntityStatus.SUBMITTED,
            values={"status": EntityStatus.REJECTED, "rejection_feedback": feedback},
            error=f"{label} must be in SUBMITTED status to reject",
        )

        job_ids = [
            await self.jobs.enqueue_activity(
                entity_type, entity_id, ActivityAction.REJECTED, actor.id,
                {
                    "reference_id": entity.reference_id,
                    "approver_name": actor.full_name,
                    "rejection_feedback": feedback,
                },
            ),
            await self.jobs.enqueue_audit(
                self._changes(
                    entity_type, entity, actor.id, AuditAction.REJECT,
                    {"status": EntityStatus.REJECTED, "rejection_feedback": feedback},
                )
            ),
            await self.jobs.enqueue_notify(
                [entity.created_by],
                title=f"{label} Rejected",
                message=f"Your {label.lower()} {entity.reference_id} has been rejected: {feedback}",
                entity_type=entity_type,
                entity_id=entity_id,
                link=entity_link(entity_type, entity_id),
            ),
        ]

        return await self.commit_and_run(entity_type, entity_id, job_ids, f"rejected by {actor.id}")

    async def archive(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        actor_id: UUID,
        unarchive: bool = False,
    ) -> WorkflowEntity:
        """Archive a record, or restore it to APPROVED (if ever approved) or DRAFT."""
        actor = await load_actor(self.db, actor_id)
        entity = await self.get_entity(entity_type, entity_id)
        label = entity_type.label
        action = WorkflowAction.UNARCHIVE if unarchive else WorkflowAction.ARCHIVE

        if not can_perform(action, entity_type, actor.role):
            raise Forbidden(f"You do not have permission to {action.value} this {label.lower()}")

        expected = entity.status
        if unarchive:
            if entity.status != EntityStatus.ARCHIVED:
                raise NotInState(f"{label} is not archived")
            target = unarchive_target(entity.approved_by)
        else:
            if entity.status == EntityStatus.ARCHIVED:
                raise AlreadyInState(f"{label} is already archived")
            target = EntityStatus.ARCHIVED

        # DRAFT <-> ARCHIVED is admin-only in both directions
        touches_draft = target == EntityStatus.DRAFT or entity.status == EntityStatus.DRAFT
        if touches_draft and not can_archive_draft(actor.role):
            raise Forbidden(f"Only administrators can {action.value} a draft {label.lower()}")

        await self.compare_and_set(
            entity_type,
            entity_id,
            expected=expected,
            values={"status": target},
            error=f"{label} is no longer in {expected.value} status",
        )

        audit_action = AuditAction.UNARCHIVE if unarchive else AuditAction.ARCHIVE
        activity_action = ActivityAction.UNARCHIVED if unarchive else ActivityAction.ARCHIVED
        job_ids = [
            await self.jobs.enqueue_activity(
                entity_type, entity_id, activity_action, actor.id,
                {"reference_id": entity.reference_id},
            ),
            await self.jobs.enqueue_audit(
                self._changes(entity_type, entity, actor.id, audit_action, {"status": target})
            ),
        ]
        if entity_type == EntityType.PROPERTY and not unarchive:
            job_ids.append(
                await self.jobs.enqueue_notify(
                    [entity.created_by],
                    title="Property Archived",
                    message=f"Property {entity.reference_id} was archived by {actor.full_name}",
                    entity_type=entity_type,
                    entity_id=entity_id,
                    link=entity_link(entity_type, entity_id),
                )
            )

        return await self.commit_and_run(entity_type, entity_id, job_ids, f"{activity_action.value.lower()} by {actor.id}")

    async def archive_tax_assessment(
        self,
        assessment_id: UUID,
        actor_id: UUID,
        unarchive: bool = False,
    ) -> TaxAssessment:
        """Toggle ``is_archived`` on a tax assessment. Administrators only."""
        actor = await load_actor(self.db, actor_id)
        assessment = await self.db.get(TaxAssessment, assessment_id)
        if not assessment:
            raise NotFound("Tax assessment not found")

        action = WorkflowAction.UNARCHIVE if unarchive else WorkflowAction.ARCHIVE
        if not can_perform(action, EntityType.TAX_ASSESSMENT, actor.role):
            raise Forbidden(f"Only administrators can {action.value} tax assessments")

        if unarchive and not assessment.is_archived:
            raise NotInState("Tax assessment is not archived")
        if not unarchive and assessment.is_archived:
            raise AlreadyInState("Tax assessment is already archived")

        result = await self.db.execute(
            update(TaxAssessment)
            .where(TaxAssessment.id == assessment_id, TaxAssessment.is_archived.is_(unarchive))
            .values(is_archived=not unarchive, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidTransition("Tax assessment was modified concurrently")

        entity_type = EntityType.TAX_ASSESSMENT
        audit_action = AuditAction.UNARCHIVE if unarchive else AuditAction.ARCHIVE
        activity_action = ActivityAction.UNARCHIVED if unarchive else ActivityAction.ARCHIVED
        job_ids = [
            await self.jobs.enqueue_activity(
                entity_type, assessment_id, activity_action, actor.id,
                {"reference_id": assessment.reference_id, "tax_year": assessment.tax_year},
            ),
            await self.jobs.enqueue_audit([
                status_change(
                    entity_type.audit_name, assessment_id, actor.id, audit_action,
                    unarchive, not unarchive, field="is_archived",
                )
            ]),
        ]

        await self.db.commit()
        logger.info(f"[WORKFLOW] Tax assessment {assessment_id} {activity_action.value.lower()} by {actor.id}")
        await self.runner.run_after_commit(job_ids)

        result = await self.db.execute(
            select(TaxAssessment)
            .where(TaxAssessment.id == assessment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_entity(self, entity_type: EntityType, entity_id: UUID) -> WorkflowEntity:
        model = workflow_model(entity_type)
        entity = await self.db.get(model, entity_id)
        if not entity:
            raise NotFound(f"{entity_type.label} not found")
        return entity

    async def compare_and_set(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        expected: EntityStatus,
        values: dict[str, Any],
        error: str,
    ) -> None:
        """UPDATE ... WHERE status = expected; a concurrent transition makes it fail."""
        model = workflow_model(entity_type)
        result = await self.db.execute(
            update(model)
            .where(model.id == entity_id, model.status == expected)
            .values(**values, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.info(f"[WORKFLOW] Lost status race on {entity_type.value}:{entity_id}")
            raise InvalidTransition(error)

    @staticmethod
    def _changes(
        entity_type: EntityType,
        entity: WorkflowEntity,
        actor_id: UUID,
        action: AuditAction,
        new_values: dict[str, Any],
    ) -> list[AuditEntry]:
        old_values = {field: getattr(entity, field) for field in new_values}
        return generate_field_changes(
            entity_type.audit_name, entity.id, old_values, new_values, actor_id, action
        )

    async def commit_and_run(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        job_ids: Iterable[Optional[UUID]],
        what: str,
    ) -> WorkflowEntity:
        await self.db.commit()
        logger.info(f"[WORKFLOW] {entity_type.value}:{entity_id} {what}")

        await self.runner.run_after_commit(job_ids)

        model = workflow_model(entity_type)
        result = await self.db.execute(
            select(model)
            .where(model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
