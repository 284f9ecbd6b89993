"""Jobs outbox service for async side effects.

Side effects of a workflow transition (activity, audit, notifications, AGO
sync) are enqueued in the same transaction as the status change and run
after commit. No fire-and-forget tasks.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.enums import ActivityAction, EntityType, JobStatus, UserRole
from lms.models.jobs import JobsOutbox
from lms.services.audit import AuditEntry

JOB_ACTIVITY_LOG = "activity_log"
JOB_AUDIT_LOG = "audit_log"
JOB_NOTIFY = "notify"
JOB_NOTIFY_ROLES = "notify_roles"
JOB_AGO_SYNC = "ago_sync"


class JobsService:
    """Enqueue, claim and settle outbox jobs."""

    def __init__(self, db: AsyncSession, max_attempts: int = 3):
        self.db = db
        self.max_attempts = max_attempts

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(JobsOutbox)
        return sqlite.insert(JobsOutbox)

    async def enqueue(
        self,
        job_type: str,
        payload: dict[str, Any],
        unique_scope: Optional[str] = None,
        run_after: Optional[datetime] = None,
    ) -> Optional[uuid.UUID]:
        """Insert a PENDING job inside the caller's transaction (no commit here).

        ``unique_scope`` defaults to the job id. Returns None when a job with
        the same scope already exists.
        """
        job_id = uuid.uuid4()

        stmt = self._insert().values(
            id=job_id,
            type=job_type,
            payload=payload,
            status=JobStatus.PENDING,
            unique_scope=unique_scope or f"{job_type}:{job_id}",
            attempts=0,
            max_attempts=self.max_attempts,
            run_after=run_after or datetime.utcnow(),
            created_at=datetime.utcnow(),
        ).on_conflict_do_nothing(index_elements=["unique_scope"])

        result = await self.db.execute(stmt)
        return job_id if result.rowcount else None

    async def claim_jobs(
        self,
        job_ids: Optional[Iterable[uuid.UUID]] = None,
        job_type: Optional[str] = None,
        limit: int = 10,
    ) -> list[JobsOutbox]:
        """Claim due pending jobs for processing.

        Each job is moved to PROCESSING with a conditional update, so a job
        picked by two concurrent sweeps is only returned to one of them.
        """
        now = datetime.utcnow()
        query = select(JobsOutbox.id).where(
            JobsOutbox.status == JobStatus.PENDING,
            JobsOutbox.run_after <= now,
        )

        if job_ids is not None:
            query = query.where(JobsOutbox.id.in_(list(job_ids)))
        if job_type:
            query = query.where(JobsOutbox.type == job_type)

        query = query.order_by(JobsOutbox.run_after).limit(limit)

        result = await self.db.execute(query)
        candidate_ids = list(result.scalars().all())

        claimed_ids = []
        for job_id in candidate_ids:
            claim = await self.db.execute(
                update(JobsOutbox)
                .where(JobsOutbox.id == job_id, JobsOutbox.status == JobStatus.PENDING)
                .values(
                    status=JobStatus.PROCESSING,
                    started_at=now,
                    attempts=JobsOutbox.attempts + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if claim.rowcount == 1:
                claimed_ids.append(job_id)

        await self.db.commit()

        if not claimed_ids:
            return []

        result = await self.db.execute(
            select(JobsOutbox)
            .where(JobsOutbox.id.in_(claimed_ids))
            .order_by(JobsOutbox.run_after)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def release_stale_jobs(self, stale_after: timedelta = timedelta(minutes=15)) -> int:
        """Return jobs stuck in PROCESSING (crashed worker) to PENDING."""
        result = await self.db.execute(
            update(JobsOutbox)
            .where(
                JobsOutbox.status == JobStatus.PROCESSING,
                JobsOutbox.started_at < datetime.utcnow() - stale_after,
            )
            .values(status=JobStatus.PENDING)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0

    async def complete_job(self, job_id: uuid.UUID) -> None:
        """Mark job as completed."""
        await self.db.execute(
            update(JobsOutbox)
            .where(JobsOutbox.id == job_id)
            .values(
                status=JobStatus.COMPLETED,
                completed_at=datetime.utcnow(),
                last_error=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    async def fail_job(
        self,
        job_id: uuid.UUID,
        error: str,
        dead_letter: bool = False,
    ) -> JobStatus:
        """Record a failed attempt; PENDING again until the attempts run out."""
        result = await self.db.execute(
            select(JobsOutbox.attempts, JobsOutbox.max_attempts).where(JobsOutbox.id == job_id)
        )
        row = result.one_or_none()

        if not row:
            return JobStatus.FAILED

        attempts, max_attempts = row
        if dead_letter or attempts >= max_attempts:
            new_status = JobStatus.DEAD_LETTER
        else:
            new_status = JobStatus.PENDING

        await self.db.execute(
            update(JobsOutbox)
            .where(JobsOutbox.id == job_id)
            .values(
                status=new_status,
                last_error=error,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return new_status

    # Convenience enqueue methods for workflow side effects

    async def enqueue_activity(
        self,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        action: ActivityAction,
        performed_by: Optional[uuid.UUID],
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[uuid.UUID]:
        return await self.enqueue(
            job_type=JOB_ACTIVITY_LOG,
            payload={
                "entity_type": entity_type.value,
                "entity_id": str(entity_id),
                "action": action.value,
                "performed_by": str(performed_by) if performed_by else None,
                "metadata": metadata or {},
            },
        )

    async def enqueue_audit(self, entries: list[AuditEntry]) -> Optional[uuid.UUID]:
        if not entries:
            return None
        return await self.enqueue(
            job_type=JOB_AUDIT_LOG,
            payload={"entries": [entry.to_payload() for entry in entries]},
        )

    async def enqueue_notify(
        self,
        recipient_ids: Iterable[uuid.UUID],
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        link: Optional[str] = None,
    ) -> Optional[uuid.UUID]:
        return await self.enqueue(
            job_type=JOB_NOTIFY,
            payload={
                "recipient_ids": [str(r) for r in recipient_ids if r is not None],
                "title": title,
                "message": message,
                "entity_type": entity_type.value,
                "entity_id": str(entity_id),
                "link": link,
            },
        )

    async def enqueue_notify_roles(
        self,
        roles: Iterable[UserRole],
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        link: Optional[str] = None,
    ) -> Optional[uuid.UUID]:
        return await self.enqueue(
            job_type=JOB_NOTIFY_ROLES,
            payload={
                "roles": [role.value for role in roles],
                "title": title,
                "message": message,
                "entity_type": entity_type.value,
                "entity_id": str(entity_id),
                "link": link,
            },
        )

    async def enqueue_ago_sync(
        self,
        property_id: uuid.UUID,
        approved_at: datetime,
    ) -> Optional[uuid.UUID]:
        """Enqueue the first AGO sync of an approval.

        One job per approval: re-approving after an unarchive/edit cycle gets
        a new scope.
        """
        return await self.enqueue(
            job_type=JOB_AGO_SYNC,
            payload={"property_id": str(property_id)},
            unique_scope=f"{JOB_AGO_SYNC}:property:{property_id}:{approved_at.isoformat()}",
        )
