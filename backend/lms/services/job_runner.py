"""Executes jobs from the outbox.

``run_jobs`` is called right after a workflow transition commits, for the
jobs that transition enqueued. ``run_pending`` is called by the sweep and
picks up everything else: jobs whose first run failed and AGO sync jobs.
A failing handler never raises to the caller; the job goes back to pending
(or dead_letter once ``max_attempts`` is reached).
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import Settings, get_settings
from lms.core.errors import InvalidTransition, NotFound
from lms.models.enums import ActivityAction, EntityType, UserRole
from lms.models.jobs import JobsOutbox
from lms.services.activity import ActivityLogger
from lms.services.ago_client import AgoClient, get_ago_client
from lms.services.audit import AuditEntry, AuditLogger
from lms.services.jobs import (
    JOB_ACTIVITY_LOG, JOB_AGO_SYNC, JOB_AUDIT_LOG, JOB_NOTIFY, JOB_NOTIFY_ROLES, JobsService,
)
from lms.services.notifications import NotificationService
from lms.services.sync import SyncService

logger = logging.getLogger(__name__)


class JobFailed(Exception):
    """A handler could not complete its side effect."""


class JobRunner:
    def __init__(
        self,
        db: AsyncSession,
        ago_client: Optional[AgoClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.jobs = JobsService(db, max_attempts=self.settings.jobs_max_attempts)
        self._ago_client = ago_client
        self.handlers: dict[str, Callable[[dict[str, Any]], Awaitable[None]]] = {
            JOB_ACTIVITY_LOG: self._handle_activity_log,
            JOB_AUDIT_LOG: self._handle_audit_log,
            JOB_NOTIFY: self._handle_notify,
            JOB_NOTIFY_ROLES: self._handle_notify_roles,
            JOB_AGO_SYNC: self._handle_ago_sync,
        }

    @property
    def ago_client(self) -> AgoClient:
        if self._ago_client is None:
            self._ago_client = get_ago_client(self.settings)
        return self._ago_client

    def sync_service(self) -> SyncService:
        return SyncService(self.db, self.ago_client, self.settings.sync_retry_delays_minutes)

    async def run_jobs(self, job_ids: Iterable[Optional[UUID]]) -> dict[str, int]:
        """Run the given jobs now (those still pending)."""
        ids = [job_id for job_id in job_ids if job_id is not None]
        if not ids:
            return {"processed": 0, "completed": 0, "failed": 0}

        claimed = await self.jobs.claim_jobs(job_ids=ids, limit=len(ids))
        return await self._run_all(claimed)

    async def run_after_commit(self, job_ids: Iterable[Optional[UUID]]) -> None:
        """Best-effort inline run; whatever fails here is left for the sweep."""
        try:
            await self.run_jobs(job_ids)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[JOBS] Inline run failed, left for the sweep: {e}")

    async def run_pending(self, job_type: Optional[str] = None, limit: int = 50) -> dict[str, int]:
        """Run due pending jobs, oldest first."""
        released = await self.jobs.release_stale_jobs()
        if released:
            logger.warning(f"[JOBS] Released {released} stale processing jobs")
        claimed = await self.jobs.claim_jobs(job_type=job_type, limit=limit)
        return await self._run_all(claimed)

    async def _run_all(self, claimed: list[JobsOutbox]) -> dict[str, int]:
        # Plain values: a handler rollback expires every loaded instance
        work = [(job.id, job.type, dict(job.payload), job.attempts) for job in claimed]

        summary = {"processed": 0, "completed": 0, "failed": 0}
        for job_id, job_type, payload, attempts in work:
            summary["processed"] += 1
            if await self._run_one(job_id, job_type, payload, attempts):
                summary["completed"] += 1
            else:
                summary["failed"] += 1
        return summary

    async def _run_one(self, job_id: UUID, job_type: str, payload: dict[str, Any], attempts: int) -> bool:
        handler = self.handlers.get(job_type)
        if handler is None:
            await self.jobs.fail_job(job_id, f"Unknown job type: {job_type}", dead_letter=True)
            logger.error(f"[JOBS] Unknown job type {job_type} for job {job_id}")
            return False

        try:
            await handler(payload)
        except Exception as e:
            await self.db.rollback()
            new_status = await self.jobs.fail_job(job_id, str(e) or e.__class__.__name__)
            logger.error(
                f"[JOBS] {job_type} job {job_id} failed on attempt {attempts}: {e} "
                f"(now {new_status.value})"
            )
            return False

        await self.jobs.complete_job(job_id)
        logger.debug(f"[JOBS] {job_type} job {job_id} completed")
        return True

    # Handlers

    async def _handle_activity_log(self, payload: dict[str, Any]) -> None:
        performed_by = payload.get("performed_by")
        await ActivityLogger(self.db).log(
            entity_type=EntityType(payload["entity_type"]),
            entity_id=UUID(payload["entity_id"]),
            action=ActivityAction(payload["action"]),
            performed_by=UUID(performed_by) if performed_by else None,
            metadata=payload.get("metadata") or {},
        )

    async def _handle_audit_log(self, payload: dict[str, Any]) -> None:
        entries = [AuditEntry.from_payload(entry) for entry in payload.get("entries", [])]
        written = await AuditLogger(self.db).record_batch(entries)
        if written != len(entries):
            raise JobFailed(f"Audit insert failed ({written}/{len(entries)} rows)")

    async def _handle_notify(self, payload: dict[str, Any]) -> None:
        recipients = list(dict.fromkeys(UUID(r) for r in payload.get("recipient_ids", [])))
        await self._notify(recipients, payload)

    async def _handle_notify_roles(self, payload: dict[str, Any]) -> None:
        service = NotificationService(self.db)
        recipients = await service.active_user_ids(UserRole(r) for r in payload.get("roles", []))
        await self._notify(recipients, payload)

    async def _notify(self, recipients: list[UUID], payload: dict[str, Any]) -> None:
        written = await NotificationService(self.db).notify(
            recipients,
            title=payload["title"],
            message=payload["message"],
            entity_type=EntityType(payload["entity_type"]),
            entity_id=UUID(payload["entity_id"]),
            link=payload.get("link"),
        )
        if written != len(recipients):
            raise JobFailed(f"Notification insert failed ({written}/{len(recipients)} rows)")

    async def _handle_ago_sync(self, payload: dict[str, Any]) -> None:
        property_id = UUID(payload["property_id"])
        try:
            await self.sync_service().attempt_sync(property_id, attempt_number=1)
        except (NotFound, InvalidTransition) as e:
            # Archived or deleted before the sweep got to it
            logger.info(f"[JOBS] Skipping AGO sync of property {property_id}: {e.message}")
