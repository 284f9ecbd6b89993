"""
AGO sync and retry scheduling.

Sync of approved properties is decoupled from approval: the approve
transition enqueues an ``ago_sync`` outbox job, and every failed attempt
persists a ``SyncRetry`` row that a periodic sweep picks up once it is due.
Nothing is kept in memory between sweeps.

Backoff (minutes before retry N): 15, 30, 60, 120, 240. After the fifth
retry fails no further retry is scheduled and administrators are notified.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.errors import InvalidTransition, NotFound, SyncFailure
from lms.models.enums import (
    ActivityAction, AgoSyncStatus, EntityStatus, EntityType, SyncRetryStatus, UserRole,
)
from lms.models.property import Property
from lms.models.sync import SyncRetry
from lms.services.activity import ActivityLogger
from lms.services.ago_client import AgoClient, SyncResult
from lms.services.notifications import NotificationService

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAYS_MINUTES = (15, 30, 60, 120, 240)


def retry_delay(
    attempt_number: int,
    delays_minutes: Sequence[int] = DEFAULT_RETRY_DELAYS_MINUTES,
) -> Optional[timedelta]:
    """Delay before retrying after failed attempt ``attempt_number``; None once the budget is spent."""
    if attempt_number < 1 or attempt_number > len(delays_minutes):
        return None
    return timedelta(minutes=delays_minutes[attempt_number - 1])


def property_attributes(prop: Property) -> dict[str, Any]:
    """Feature attributes pushed to the AGO layer."""
    return {
        "lms_id": str(prop.id),
        "reference_id": prop.reference_id,
        "district_code": prop.district_code,
        "property_type": prop.property_type.value if prop.property_type else None,
        "address": prop.address,
        "latitude": prop.latitude,
        "longitude": prop.longitude,
        "land_size": prop.land_size,
        "status": prop.status.value,
    }


async def list_retries(db: AsyncSession, property_id: UUID) -> list[SyncRetry]:
    """Retry history of one property, latest attempt first."""
    result = await db.execute(
        select(SyncRetry)
        .where(SyncRetry.property_id == property_id)
        .order_by(SyncRetry.attempt_number.desc(), SyncRetry.created_at.desc())
    )
    return list(result.scalars().all())


class SyncService:
    """Pushes approved properties to AGO and drives the retry schedule."""

    def __init__(
        self,
        db: AsyncSession,
        client: AgoClient,
        delays_minutes: Sequence[int] = DEFAULT_RETRY_DELAYS_MINUTES,
    ):
        self.db = db
        self.client = client
        self.delays_minutes = tuple(delays_minutes)
        self.activity = ActivityLogger(db)
        self.notifications = NotificationService(db)

    async def attempt_sync(
        self,
        property_id: UUID,
        attempt_number: int = 1,
        now: Optional[datetime] = None,
        performed_by: Optional[UUID] = None,
    ) -> SyncResult:
        """Push one property to AGO and record the outcome.

        A failure is stored on the property and scheduled for retry; it is
        never raised to the caller.
        """
        prop = await self.db.get(Property, property_id)
        if not prop:
            raise NotFound("Property not found")
        if prop.status != EntityStatus.APPROVED:
            raise InvalidTransition("Only approved properties can be synced")
        reference_id = prop.reference_id

        try:
            result = await self.client.push_feature(property_attributes(prop))
        except SyncFailure as e:
            result = SyncResult(success=False, error=e.message)
        except Exception as e:
            logger.exception(f"[SYNC] AGO client error for {reference_id}")
            result = SyncResult(success=False, error=str(e) or e.__class__.__name__)

        now = now or datetime.utcnow()
        prop.last_sync_at = now

        if result.success:
            prop.ago_sync_status = AgoSyncStatus.SYNCED
            prop.ago_sync_error = None
            prop.global_id = result.global_id
            await self.db.commit()
            logger.info(f"[SYNC] {reference_id} synced (attempt {attempt_number}): {result.global_id}")
            await self._record_activity(
                property_id,
                ActivityAction.SYNCED,
                performed_by,
                {
                    "message": "Successfully synced to AGO",
                    "global_id": result.global_id,
                    "attempt_number": attempt_number,
                },
            )
            return result

        prop.ago_sync_status = AgoSyncStatus.ERROR
        prop.ago_sync_error = result.error
        await self.db.commit()
        logger.warning(f"[SYNC] {reference_id} failed (attempt {attempt_number}): {result.error}")
        await self._record_activity(
            property_id,
            ActivityAction.SYNC_FAILED,
            performed_by,
            {"error": result.error, "attempt_number": attempt_number},
        )
        await self.schedule_retry(property_id, attempt_number, result.error, now, reference_id=reference_id)
        return result

    async def schedule_retry(
        self,
        property_id: UUID,
        attempt_number: int,
        error: Optional[str],
        now: Optional[datetime] = None,
        reference_id: Optional[str] = None,
    ) -> Optional[SyncRetry]:
        """Persist the next retry for a failed attempt, or give up and alert administrators."""
        now = now or datetime.utcnow()
        delay = retry_delay(attempt_number, self.delays_minutes)
        if reference_id is None:
            reference_id = await self.db.scalar(
                select(Property.reference_id).where(Property.id == property_id)
            )

        if delay is None:
            logger.error(
                f"[SYNC] {reference_id} exhausted retry budget after {attempt_number} attempts"
            )
            await self.notifications.notify_roles(
                [UserRole.ADMINISTRATOR],
                title="AGO Sync Failed",
                message=(
                    f"Property {reference_id} failed to sync to AGO after "
                    f"{attempt_number} attempts. Error: {error}"
                ),
                entity_type=EntityType.PROPERTY,
                entity_id=property_id,
                link=f"/properties/{property_id}",
            )
            return None

        retry = SyncRetry(
            property_id=property_id,
            attempt_number=attempt_number,
            last_attempt_at=now,
            next_retry_at=now + delay,
            error_message=error,
            status=SyncRetryStatus.PENDING,
        )
        self.db.add(retry)
        await self.db.commit()
        logger.info(f"[SYNC] Retry {attempt_number} for {reference_id} scheduled at {retry.next_retry_at.isoformat()}")
        return retry

    async def sweep_due_retries(
        self,
        now: Optional[datetime] = None,
        limit: int = 50,
    ) -> dict[str, int]:
        """Run every PENDING retry whose ``next_retry_at`` has passed."""
        now = now or datetime.utcnow()
        summary = {"processed": 0, "succeeded": 0, "failed": 0}
        await self.release_stale_retries(now)

        result = await self.db.execute(
            select(SyncRetry.id)
            .where(
                SyncRetry.status == SyncRetryStatus.PENDING,
                SyncRetry.next_retry_at <= now,
            )
            .order_by(SyncRetry.next_retry_at)
            .limit(limit)
        )
        due_ids = list(result.scalars().all())

        for retry_id in due_ids:
            claimed = await self._claim(retry_id, now)
            if claimed is None:
                continue

            summary["processed"] += 1
            property_id, attempt_number = claimed
            try:
                succeeded = await self._run_retry(retry_id, property_id, attempt_number, now)
            except Exception as e:
                logger.exception(f"[SYNC] Retry {retry_id} crashed, returning it to the queue")
                await self.db.rollback()
                await self._finish(retry_id, SyncRetryStatus.PENDING, now, error=str(e) or e.__class__.__name__)
                succeeded = False
            summary["succeeded" if succeeded else "failed"] += 1

        if summary["processed"]:
            logger.info(f"[SYNC] Sweep done: {summary}")
        return summary

    async def release_stale_retries(
        self,
        now: Optional[datetime] = None,
        stale_after: timedelta = timedelta(minutes=15),
    ) -> int:
        """Return retries left in RETRYING by a crashed sweep to PENDING."""
        now = now or datetime.utcnow()
        result = await self.db.execute(
            update(SyncRetry)
            .where(
                SyncRetry.status == SyncRetryStatus.RETRYING,
                SyncRetry.updated_at < now - stale_after,
            )
            .values(status=SyncRetryStatus.PENDING, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        released = result.rowcount or 0
        if released:
            logger.warning(f"[SYNC] Released {released} stale retries")
        return released

    async def _claim(self, retry_id: UUID, now: datetime) -> Optional[tuple[UUID, int]]:
        """PENDING -> RETRYING; None if another sweep got there first."""
        claim = await self.db.execute(
            update(SyncRetry)
            .where(SyncRetry.id == retry_id, SyncRetry.status == SyncRetryStatus.PENDING)
            .values(status=SyncRetryStatus.RETRYING, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if claim.rowcount != 1:
            return None

        result = await self.db.execute(
            select(SyncRetry.property_id, SyncRetry.attempt_number).where(SyncRetry.id == retry_id)
        )
        property_id, attempt_number = result.one()
        return property_id, attempt_number

    async def _run_retry(
        self,
        retry_id: UUID,
        property_id: UUID,
        attempt_number: int,
        now: datetime,
    ) -> bool:
        sync_status = await self.db.scalar(
            select(Property.ago_sync_status).where(Property.id == property_id)
        )
        if sync_status == AgoSyncStatus.SYNCED:
            # Synced in the meantime (manual sync)
            await self._finish(retry_id, SyncRetryStatus.SUCCESS, now)
            return True

        try:
            result = await self.attempt_sync(property_id, attempt_number + 1, now=now)
        except (NotFound, InvalidTransition) as e:
            await self._finish(retry_id, SyncRetryStatus.FAILED, now, error=e.message)
            return False

        if result.success:
            await self._finish(retry_id, SyncRetryStatus.SUCCESS, now)
            return True

        await self._finish(retry_id, SyncRetryStatus.FAILED, now, error=result.error)
        return False

    async def _finish(
        self,
        retry_id: UUID,
        status: SyncRetryStatus,
        now: datetime,
        error: Optional[str] = None,
    ) -> None:
        values: dict[str, Any] = {"status": status, "last_attempt_at": now, "updated_at": now}
        if error is not None:
            values["error_message"] = error
        await self.db.execute(
            update(SyncRetry)
            .where(SyncRetry.id == retry_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    async def _record_activity(
        self,
        property_id: UUID,
        action: ActivityAction,
        performed_by: Optional[UUID],
        metadata: dict[str, Any],
    ) -> None:
        try:
            await self.activity.log(EntityType.PROPERTY, property_id, action, performed_by, metadata)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[SYNC] Failed to log {action.value} for property {property_id}: {e}")
